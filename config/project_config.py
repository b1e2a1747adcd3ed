"""Project Config model."""

from pydantic import BaseModel, Field


class ProjectConfig(BaseModel):
    """Settings scoped to one project directory."""

    allowed_tools: list[str] = Field(
        default_factory=list,
        description="Persisted permission keys, sorted and deduplicated",
    )
    context: dict[str, str] = Field(
        default_factory=dict,
        description="User-defined context entries added to the system prompt",
    )
    history: list[str] = Field(
        default_factory=list,
        description="Recent prompts, most recent first",
    )
    dont_crawl_directory: bool = False
    has_trust_dialog_accepted: bool = False
    last_cost: float | None = None
    last_api_duration: float | None = None
    last_duration: float | None = None
    last_session_id: str | None = None
