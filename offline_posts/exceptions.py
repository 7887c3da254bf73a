"""
Custom exceptions for the offline posts data layer.

Remote failures derive from RefreshError so callers can treat every
"refresh didn't succeed" outcome the same way, while storage failures
stay a separate, fatal kind.
"""


class PostSyncError(Exception):
    """Base exception for all offline posts errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RefreshError(PostSyncError):
    """Raised when pulling data from the remote source does not succeed."""


class NetworkFailureError(RefreshError):
    """Raised on timeouts, refused connections, non-2xx replies or undecodable bodies."""

    def __init__(
        self,
        endpoint: str,
        status: int | None = None,
        reason: str | None = None,
        cause: Exception | None = None,
    ):
        details: dict = {"endpoint": endpoint}
        if status is not None:
            details["status"] = status
        if reason:
            details["reason"] = reason
        if cause:
            details["cause"] = str(cause)

        message = f"Request to {endpoint} failed"
        if status is not None:
            message += f" with HTTP {status}"
        if reason:
            message += f": {reason}"
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status = status
        self.reason = reason
        self.cause = cause


class PostNotFoundError(RefreshError):
    """Raised when the remote source reports that a post does not exist."""

    def __init__(self, post_id: int):
        super().__init__(f"Post not found: {post_id}", {"post_id": post_id})
        self.post_id = post_id


class StorageFailureError(PostSyncError):
    """Raised when a cache read or write fails."""

    def __init__(self, operation: str, cause: Exception | None = None):
        details = {"operation": operation}
        if cause:
            details["cause"] = str(cause)
        message = f"Cache storage error during {operation}"
        if cause:
            message += f": {cause}"
        super().__init__(message, details)
        self.operation = operation
        self.cause = cause


class ConfigurationError(PostSyncError):
    """Raised when a settings value is invalid."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Invalid configuration for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value
