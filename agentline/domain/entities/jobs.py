"""Webhook job state machine."""

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle states of a webhook job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobType(str, Enum):
    """Kinds of retryable routing work."""

    # Point a number's Retell agent assignment at another agent
    REASSIGN_NUMBER = "reassign_number"
    # Re-apply fallback routing to one number of an inactive client
    SUSPEND_NUMBER = "suspend_number"
    # Re-attach one number of an active client to the trunk
    RESTORE_NUMBER = "restore_number"


ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset(
        {JobStatus.COMPLETED, JobStatus.PENDING, JobStatus.FAILED}
    ),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

# Lower-cased substrings of an error message that mark it as recoverable
TRANSIENT_ERROR_MARKERS: tuple[str, ...] = (
    "timeout",
    "timed out",
    "econnreset",
    "connection reset",
    "503",
    "429",
)


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    """Check whether a job may move from `current` to `target`."""
    return target in ALLOWED_TRANSITIONS[current]


def is_transient_error(message: str) -> bool:
    """Classify an error message as transient (retry-eligible)."""
    lowered = message.lower()
    return any(marker in lowered for marker in TRANSIENT_ERROR_MARKERS)


def next_status_after_failure(
    message: str, retry_count: int, max_retries: int
) -> JobStatus:
    """Decide where a failed job goes.

    Args:
        message: Error message of the failed attempt
        retry_count: Retry counter after this attempt was counted
        max_retries: Configured retry ceiling

    Returns:
        PENDING when the error is transient and retries remain, else FAILED
    """
    if is_transient_error(message) and retry_count < max_retries:
        return JobStatus.PENDING
    return JobStatus.FAILED
