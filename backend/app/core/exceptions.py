# backend/app/core/exceptions.py

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base class for errors that map to an HTTP status before a stream opens.
    Rendered as {"error": msg} by the handler registered in main.py.
    """
    def __init__(
        self,
        code: int = 400,
        slug: str = "bad_request",
        msg: str = "Bad Request",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.slug = slug
        self.msg = msg
        self.details = details or {}
        super().__init__(self.msg)


class ValidationError(AppException):
    def __init__(self, msg: str = "Validation failed", details: dict = None):
        super().__init__(code=400, slug="validation_error", msg=msg, details=details)


class AuthorizationError(AppException):
    def __init__(self, msg: str = "Unauthorized", details: dict = None):
        super().__init__(code=401, slug="unauthorized", msg=msg, details=details)


class ResourceNotFoundError(AppException):
    def __init__(self, msg: str = "Resource not found", details: dict = None):
        super().__init__(code=404, slug="resource_not_found", msg=msg, details=details)


class DuplicateResourceError(AppException):
    def __init__(self, msg: str = "Resource already exists", details: dict = None):
        super().__init__(code=409, slug="duplicate_resource", msg=msg, details=details)


# ---------------------------------------------------------------------------
# Errors raised after the stream is open. These never change the HTTP status.
# ---------------------------------------------------------------------------
class ProviderError(Exception):
    """Completion service failure: network, non-success status, bad stream, idle timeout."""


class PersistenceError(Exception):
    """Storage write failure during reconciliation. Logged only."""


class ClientDisconnected(Exception):
    """The consumer of a frame channel went away; writing is no longer possible."""
