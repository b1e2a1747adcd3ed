"""
Core constants for the conversation engine.

This module defines system-wide constants used across the codebase.
Following the style guide: no magic constants in code.
"""

PRODUCT_NAME = "Kestrel"
PROJECT_FILE = "KESTREL.md"

# Synthetic message texts
INTERRUPT_MESSAGE = "[Request interrupted by user]"
INTERRUPT_MESSAGE_FOR_TOOL_USE = "[Request interrupted by user for tool use]"
CANCEL_MESSAGE = (
    "The user doesn't want to take this action right now. STOP what you are "
    "doing and wait for the user to tell you how to proceed."
)
REJECT_MESSAGE = (
    "The user doesn't want to proceed with this tool use. The tool use was "
    "rejected (eg. if it was a file edit, the new_string was NOT written to "
    "the file). STOP what you are doing and wait for the user to tell you how "
    "to proceed."
)
NO_RESPONSE_REQUESTED = "No response requested."
NO_CONTENT_MESSAGE = "(no content)"

SYNTHETIC_ASSISTANT_MESSAGES = frozenset(
    {
        INTERRUPT_MESSAGE,
        INTERRUPT_MESSAGE_FOR_TOOL_USE,
        CANCEL_MESSAGE,
        REJECT_MESSAGE,
        NO_RESPONSE_REQUESTED,
    }
)
SYNTHETIC_MODEL = "<synthetic>"

# Tool scheduling
MAX_TOOL_USE_CONCURRENCY = 10  # read-only tools run at most this many at once

# Tool error formatting
MAX_ERROR_LENGTH = 10000  # characters kept from a formatted tool error
ERROR_HEAD_TAIL_LENGTH = 5000  # characters kept from each end when truncating

# Shell output limits
MAX_BASH_OUTPUT_LENGTH = 30000  # 30K characters
DEFAULT_BASH_TIMEOUT_MS = 30 * 60 * 1000  # 30 minutes
MAX_BASH_TIMEOUT_MS = 10 * 60 * 1000  # 10 minutes - cap for model-supplied timeouts

# File read limits
DEFAULT_READ_LIMIT = 2000  # lines returned when no limit is given
MAX_LINE_LENGTH = 2000  # characters per line before truncation
MAX_FILE_READ_BYTES = 256 * 1024  # 256KB - refuse larger reads without a limit

# Listing/search limits
MAX_LS_ENTRIES = 1000
MAX_GLOB_RESULTS = 100
DEFAULT_GREP_TIMEOUT_SECONDS = 30

# History
MAX_HISTORY_ITEMS = 100

# Context gathering
MAX_GIT_STATUS_LINES = 200
RECENT_COMMIT_COUNT = 5
