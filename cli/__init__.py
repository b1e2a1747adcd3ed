"""
Terminal front end.

Argument parsing, the interactive loop, message rendering, permission
prompts and logging setup.
"""
from .logging_config import log_timing, setup_logging, timed
from .main import main
from .permission_prompt import make_ask
from .render import MessageRenderer
from .session import Session

__all__ = [
    "main",
    "Session",
    "MessageRenderer",
    "make_ask",
    # Logging
    "setup_logging",
    "log_timing",
    "timed",
]
