"""
Core domain exceptions.

These exceptions are transport-agnostic. Components convert them into typed
results (tool-result errors, synthetic assistant messages) before they cross
a component boundary; only AbortError escapes the permission engine.
"""


class CoreError(Exception):
    """Base exception for all core errors."""

    pass


class AbortError(CoreError):
    """Raised when a cancellable step observes the abort signal."""

    def __init__(self, message: str = "Operation aborted"):
        super().__init__(message)


class ToolNotFoundError(CoreError):
    """Raised when the model requests a tool that is not in the catalog."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No such tool available: {name}")


class ConfigError(CoreError):
    """Raised when a configuration file cannot be parsed or written."""

    pass


class InvalidOperationError(CoreError):
    """Raised when an operation cannot be performed in the current state."""

    pass
