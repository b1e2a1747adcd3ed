"""Token cost computation."""

from config.defaults import MODEL_PRICING

from ..models import Usage

TOKENS_PER_PRICE_UNIT = 1_000_000


def calculate_cost(usage: Usage, tier: str) -> float:
    """
    Compute the USD cost of one model call.

    Args:
        usage: Token usage reported by the provider
        tier: Logical model tier, "large" or "small"

    Returns:
        Cost in USD
    """
    pricing = MODEL_PRICING[tier]
    return (
        usage.input_tokens * pricing["input"]
        + usage.output_tokens * pricing["output"]
        + (usage.cache_read_input_tokens or 0) * pricing["cache_read"]
        + (usage.cache_creation_input_tokens or 0) * pricing["cache_write"]
    ) / TOKENS_PER_PRICE_UNIT
