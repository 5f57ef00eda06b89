"""
Typed domain errors for the review scheduler.

Callers distinguish failure modes by type and map each one to a client
response (validation → 400, not found → 404, unauthorized → 401,
concurrency → 409, task execution → 500).
"""


class DomainError(Exception):
    """Base class for all domain-specific errors."""


class ValidationError(DomainError):
    """Input rejected: bad grade, malformed schedule, grading a suspended item."""


class NotFoundError(DomainError):
    """Referenced job, item or review state does not exist."""

    def __init__(self, kind: str, key: object) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} {key!r} not found")


class UnauthorizedError(DomainError):
    """Missing or invalid secret, bearer token or session."""


class ConcurrencyError(DomainError):
    """Two writers raced on the same review state."""

    def __init__(self, key: object, detail: str = "") -> None:
        self.key = key
        message = f"Concurrent modification of review state {key!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class TaskExecutionError(DomainError):
    """A scheduled task raised during one run."""

    def __init__(self, job_name: str, cause: BaseException) -> None:
        self.job_name = job_name
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)
