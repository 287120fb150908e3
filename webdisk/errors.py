"""Exception types for webdisk."""

from typing import Optional


class WebdiskError(Exception):
    """Base class for webdisk errors."""


class ConfigValidationError(WebdiskError):
    """Raised when a configuration value or document is invalid."""


class BindError(WebdiskError):
    """Raised when no listener could be bound."""

    def __init__(self, message: str, cause: Optional[OSError] = None):
        super().__init__(message)
        self.cause = cause


class AuthError(WebdiskError):
    """Raised when a WebDAV request is rejected by the auth gate."""

    def __init__(self, status: int, message: str, challenge: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.challenge = challenge


class ProcessControlError(WebdiskError):
    """Raised when the background service cannot be signalled."""
