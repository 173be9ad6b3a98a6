"""Verification states and retry policy.

`VerificationState` is a closed union of small immutable dataclasses. The
orchestrator holds exactly one of them at a time and the presentation layer
renders purely from the latest one.
"""

from dataclasses import dataclass
from typing import Union

# --- States ---


@dataclass(frozen=True)
class Idle:
    """Before the first check."""

    @property
    def is_terminal(self) -> bool:
        return False


@dataclass(frozen=True)
class Checking:
    """A check is in flight or a retry is scheduled.

    Attributes:
        attempt: 0-based count of failures before this cycle.
        message: Human-readable progress text (empty while a call is in flight).
    """
    attempt: int = 0
    message: str = ""

    @property
    def is_terminal(self) -> bool:
        return False


@dataclass(frozen=True)
class Licensed:
    """The authority confirmed the entitlement."""

    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True)
class Unlicensed:
    """The authority explicitly denied the entitlement. Not an error."""
    reason: str

    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    """Retries exhausted or a definitive provider error occurred."""
    reason: str

    @property
    def is_terminal(self) -> bool:
        return True


VerificationState = Union[Idle, Checking, Licensed, Unlicensed, Failed]

# --- Retry Policy ---

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 0.3


@dataclass(frozen=True)
class RetryPolicy:
    """Linear backoff: delay(attempt) = (attempt + 1) * base_delay."""
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")

    def delay(self, attempt: int) -> float:
        """Returns the delay in seconds before the retry following `attempt`."""
        if attempt < 0:
            raise ValueError(f"attempt must be >= 0, got {attempt}")
        return (attempt + 1) * self.base_delay


def format_delay(seconds: float) -> str:
    """Formats a delay the way the gate shows it, e.g. '0.3s'."""
    return f"{seconds:.1f}s"
