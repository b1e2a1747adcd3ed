"""Main Config model."""

from pydantic import BaseModel, Field

from .defaults import DEFAULT_LARGE_MODEL, DEFAULT_MAX_TOKENS, DEFAULT_SMALL_MODEL
from .project_config import ProjectConfig


class GlobalConfig(BaseModel):
    """User-wide configuration stored in the home directory."""

    large_model: str = Field(
        default=DEFAULT_LARGE_MODEL,
        description="Model used for the main conversation",
    )
    small_model: str = Field(
        default=DEFAULT_SMALL_MODEL,
        description="Model used for quick classification calls",
    )
    max_tokens: int = Field(
        default=DEFAULT_MAX_TOKENS,
        description="Maximum output tokens per model call",
    )
    api_key: str | None = Field(
        default=None,
        description="API key; falls back to ANTHROPIC_API_KEY",
    )
    base_url: str | None = Field(
        default=None,
        description="Override for the model API endpoint",
    )
    stream: bool = Field(
        default=False,
        description="Use streaming requests for model calls",
    )
    verbose: bool = Field(
        default=False,
        description="Show full tool output in the terminal",
    )
    projects: dict[str, ProjectConfig] = Field(
        default_factory=dict,
        description="Per-project settings keyed by absolute directory",
    )
