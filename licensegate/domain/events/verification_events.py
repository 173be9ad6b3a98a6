"""Domain Events emitted by the verification orchestrator.

Examples include events for when a check cycle starts, a retry is
scheduled, the gate settles in a terminal state, or the gate is torn down.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class CheckCycleStarted(DomainEvent):
    """Event triggered when a check cycle begins."""
    attempt: int
    manual: bool = False
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a failed cycle schedules an automatic retry."""
    attempt_number: int  # Attempt the retry will run as (1-based)
    delay_seconds: float
    reason: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class VerificationSettled(DomainEvent):
    """Event triggered when the gate reaches a terminal state."""
    outcome: str  # 'licensed', 'unlicensed', 'failed'
    reason: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class OrchestratorClosed(DomainEvent):
    """Event triggered when the gate is torn down."""
    timestamp: float = field(default_factory=time.time)
