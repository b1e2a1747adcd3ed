"""Default configuration values."""

GLOBAL_CONFIG_FILENAME = ".kestrel.json"
CONFIG_PATH_ENV = "KESTREL_CONFIG_PATH"
API_KEY_ENV = "ANTHROPIC_API_KEY"

DEFAULT_LARGE_MODEL = "claude-sonnet-4-20250514"
DEFAULT_SMALL_MODEL = "claude-3-5-haiku-20241022"
DEFAULT_MAX_TOKENS = 8000
DEFAULT_MAX_THINKING_TOKENS = 0  # extended thinking off unless requested

# Per-million-token prices in USD, by logical model tier
MODEL_PRICING = {
    "large": {
        "input": 3.0,
        "output": 15.0,
        "cache_write": 3.75,
        "cache_read": 0.3,
    },
    "small": {
        "input": 0.8,
        "output": 4.0,
        "cache_write": 1.0,
        "cache_read": 0.08,
    },
}

# Retry Configuration
DEFAULT_MAX_RETRIES = 10
SWE_BENCH_MAX_RETRIES = 100  # offline benchmark runs ride out long outages
VERIFY_API_KEY_MAX_RETRIES = 2
RETRY_BASE_DELAY_MS = 500
RETRY_MAX_DELAY_MS = 32000
