# agristore/errors.py
import functools
import logging
from typing import Any, Callable, List, Optional

log = logging.getLogger("agristore.errors")


class AgriStoreError(Exception):
    """Base error. Subclasses carry the HTTP status and public label."""

    status_code = 500
    error = "Request failed"

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error:
            self.error = error

    def to_dict(self) -> dict:
        return {"error": self.error, "details": self.message}


class ValidationError(AgriStoreError):
    status_code = 400
    error = "Missing required fields"

    def __init__(self, fields: List[str], message: Optional[str] = None, error: Optional[str] = None):
        self.fields = list(fields)
        super().__init__(message or f"Invalid or missing fields: {', '.join(self.fields)}", error)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["fields"] = self.fields
        return body


class InvalidAddressError(ValidationError):
    error = "Valid wallet address required"

    def __init__(self, address: Any, field: str = "walletAddress"):
        super().__init__([field], f"Not a valid wallet address: {address!r}")


class StorageUploadError(AgriStoreError):
    status_code = 500
    error = "Failed to upload to Lighthouse"


class NotFoundError(AgriStoreError):
    status_code = 404
    error = "Not found"

    def __init__(self, message: str, upstream_status: Optional[int] = None, error: Optional[str] = None):
        super().__init__(message, error)
        self.upstream_status = upstream_status


class AuthError(AgriStoreError):
    status_code = 401
    error = "Invalid signature"

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["authenticated"] = False
        return body


class ChainError(AgriStoreError):
    status_code = 500
    error = "Failed to fetch network information"


def fail_open(default: Callable[[], Any]):
    """
    Mark a read as non-critical: any exception is logged and `default()` is
    returned instead of propagating.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except Exception:
                log.warning("%s failed, returning default", fn.__qualname__, exc_info=True)
                return default()

        wrapper.fail_open = True
        return wrapper

    return decorator
