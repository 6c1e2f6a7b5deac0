"""Unified error handling for concur.

- ErrorCode / classify_exception: Failure classification
- ConcurError / SourceIOError: Exception hierarchy
- SourceFailure: Structured record of an isolated per-source failure
"""

from .errors import ConcurError, ErrorCode, SourceFailure, SourceIOError, classify_exception

__all__ = ["ErrorCode", "classify_exception", "ConcurError", "SourceIOError", "SourceFailure"]
