from __future__ import annotations

from typing import Any

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound", "NoSuchBucket"})
_FORBIDDEN_CODES = frozenset({"403", "AccessDenied", "Forbidden"})


class BucketFSError(Exception):
    """Base error for bucketfs."""


class MalformedAddress(BucketFSError, ValueError):
    """Raised when a string is not a valid ``scheme://bucket/key`` address."""


class ObjectNotFound(BucketFSError, FileNotFoundError):
    """Raised when the store reports that an object does not exist."""


class AccessDenied(BucketFSError, PermissionError):
    """Raised when the store refuses access to an object."""


class TransportFailure(BucketFSError, OSError):
    """Raised for any other store or transport failure."""


class SettingsError(BucketFSError, ValueError):
    """Raised when configuration values are invalid."""


def error_code(exc: BaseException) -> tuple[str, int | None]:
    """Return ``(code, http_status)`` from a botocore-style error response."""

    response: Any = getattr(exc, "response", None) or {}
    error = response.get("Error") or {}
    code = str(error.get("Code") or "")
    status = (response.get("ResponseMetadata") or {}).get("HTTPStatusCode")
    return code, int(status) if status is not None else None


def classify_error(exc: BaseException, *, uri: str | None = None) -> BucketFSError:
    """Map a client exception onto the bucketfs taxonomy.

    Already-classified errors are returned unchanged. The original exception is
    attached as ``__cause__`` on the returned error.
    """

    if isinstance(exc, BucketFSError):
        return exc

    code, status = error_code(exc)
    target = f" {uri}" if uri else ""
    if code in _NOT_FOUND_CODES or status == 404:
        classified: BucketFSError = ObjectNotFound(f"Object not found:{target}")
    elif code in _FORBIDDEN_CODES or status == 403:
        classified = AccessDenied(f"Access denied:{target} ({exc})")
    else:
        classified = TransportFailure(f"Store request failed:{target} ({exc})")
    classified.__cause__ = exc
    return classified


def as_transport_failure(exc: BaseException, *, uri: str | None = None) -> TransportFailure:
    """Classify ``exc`` for an operation whose callers only expect ``TransportFailure``."""

    classified = classify_error(exc, uri=uri)
    if isinstance(classified, TransportFailure):
        return classified
    failure = TransportFailure(str(classified))
    failure.__cause__ = classified
    return failure
