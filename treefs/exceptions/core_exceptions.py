"""
Core Exceptions

Exceptions raised outside the tree itself: subsystem lifecycle misuse
and configuration loading. Codes are in the 1000 range so they never
collide with the filesystem's ErrorCode values.
"""

from typing import Any, Optional


class CoreException(Exception):
    """
    Base exception for lifecycle and configuration errors.

    Attributes:
        message: Human-readable error description
        error_code: Numeric error code for programmatic handling
        context: Extra key/value details, rendered after the message
    """

    code = 1000

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.code
        self.context = dict(context or {})

    def __str__(self) -> str:
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        text = f"[Error {self.error_code}] {self.message}"
        return f"{text} ({details})" if details else text

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, error_code={self.error_code})"


class SubsystemStateError(CoreException):
    """An operation was called before initialize() or after cleanup()."""

    code = 1002

    def __init__(self, subsystem: str, state: str) -> None:
        super().__init__(
            f"Subsystem '{subsystem}' is not ready",
            context={'subsystem': subsystem, 'state': state}
        )
        self.subsystem = subsystem
        self.state = state


class ConfigLoadError(CoreException):
    """The configuration file could not be read or parsed."""

    code = 1003

    def __init__(self, message: str, config_path: Optional[str] = None) -> None:
        context = {'config_path': config_path} if config_path else None
        super().__init__(message, context=context)
        self.config_path = config_path


class ConfigValidationError(CoreException):
    """A configuration key is unknown, or its value is out of range."""

    code = 1004

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message, context={'key': key} if key else None)
        self.key = key
