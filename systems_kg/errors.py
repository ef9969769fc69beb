"""
Error Types

Every error raised by the package derives from SystemsKGError and carries a
stable ``code`` and a ``retryable`` hint that the scheduler copies onto failed
jobs.

    InvalidRequestError     bad job parameters or filters; raised at submission
    TransientServiceError   LLM timeout or rate limit; absorbed per chunk
    PersistenceError        storage write/read failure; fails the job

Resource pressure (cache overflow, memory threshold) is handled by eviction
and admission deferral and has no error type.
"""

from __future__ import annotations


class SystemsKGError(Exception):
    """Base class for package errors."""

    code = "systems_kg_error"
    retryable = False

    def __init__(self, message: str, *, code: str | None = None, retryable: bool | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable


class InvalidRequestError(SystemsKGError, ValueError):
    """A job submission or query carried invalid parameters."""

    code = "invalid_request"
    retryable = False


class TransientServiceError(SystemsKGError):
    """
    The external text-understanding service timed out or was rate limited.

    Attributes:
        kind: "timeout" or "rate_limited"
    """

    code = "transient_service_error"
    retryable = True

    def __init__(self, message: str, *, kind: str = "timeout") -> None:
        super().__init__(message)
        self.kind = kind


class PersistenceError(SystemsKGError):
    """The storage backend failed. Earlier writes are not rolled back."""

    code = "persistence_error"
    retryable = True
