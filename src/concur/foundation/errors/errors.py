"""Error codes, exception types and structured failure records.

Failures inside one unit of concurrent work are captured as data
(``SourceFailure``) rather than propagated, so they can be reported next to
the successful results of sibling units.
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from typing import Self

from pydantic import BaseModel, Field, computed_field


class ErrorCode(StrEnum):
    """Classification of recorded failures."""
    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    HTTP_STATUS = "HTTP_STATUS"
    DECODE_ERROR = "DECODE_ERROR"
    IO_ERROR = "IO_ERROR"
    UNKNOWN = "UNKNOWN"


# Checked in order; first substring hit wins
_PATTERN_CODES: dict[str, ErrorCode] = {
    "filenotfound": ErrorCode.NOT_FOUND,
    "no such file": ErrorCode.NOT_FOUND,
    "isadirectory": ErrorCode.IO_ERROR,
    "permission": ErrorCode.PERMISSION_DENIED,
    "timeout": ErrorCode.TIMEOUT,
    "timed out": ErrorCode.TIMEOUT,
    "httpstatus": ErrorCode.HTTP_STATUS,
    "status": ErrorCode.HTTP_STATUS,
    "connect": ErrorCode.NETWORK_ERROR,
    "network": ErrorCode.NETWORK_ERROR,
    "decode": ErrorCode.DECODE_ERROR,
    "unicode": ErrorCode.DECODE_ERROR,
    "oserror": ErrorCode.IO_ERROR,
    "ioerror": ErrorCode.IO_ERROR,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES)


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map an exception to an error code.

    Wrapped exceptions are classified by their cause first, so a
    ``SourceIOError`` raised from ``FileNotFoundError`` reports NOT_FOUND.
    """
    if (cause := exc.__cause__) is not None:
        code = classify_exception(cause)
        if code is not ErrorCode.UNKNOWN:
            return code
    return _classify_cached(f"{type(exc).__name__} {exc}")


class ConcurError(Exception):
    """Base class for errors raised by concur."""


class SourceIOError(ConcurError):
    """A source could not be opened or read.

    Raised for missing/unreadable files, transport failures and non-2xx HTTP
    responses. The original exception is chained as ``__cause__``.
    """

    def __init__(self, label: str, message: str) -> None:
        super().__init__(f"{label}: {message}")
        self.label = label
        self.message = message


class SourceFailure(BaseModel):
    """Recorded failure of one source during aggregation."""

    model_config = {"frozen": True}

    label: str = Field(description="Label of the source that failed")
    code: ErrorCode = ErrorCode.UNKNOWN
    message: str = Field(description="Human-readable failure description")
    exception_type: str | None = None

    @classmethod
    def from_exception(cls, label: str, exc: BaseException) -> Self:
        """Create from an exception with auto-classification."""
        message = exc.message if isinstance(exc, SourceIOError) else str(exc) or type(exc).__name__
        return cls(label=label, code=classify_exception(exc), message=message, exception_type=type(exc).__name__)

    @computed_field
    @property
    def is_transient(self) -> bool:
        """Whether retrying later could plausibly succeed."""
        return self.code in (ErrorCode.NETWORK_ERROR, ErrorCode.TIMEOUT)

    def render(self) -> str:
        return f"[{self.code}] {self.label}: {self.message}"

    __str__ = render
