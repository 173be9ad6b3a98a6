"""Verification Orchestrator: the gate's state machine.

Runs check cycles against a `LicensingProvider`. A cycle calls `initialize`
then `is_entitled`, each through the deadline guard. Failures are retried
through the `RetryScheduler` until the policy's retry budget is spent; the
gate then settles in `Failed` and waits for a manual `check_again()`.

All mutation happens on one event loop. Every cycle carries a generation
number; a cycle whose generation is no longer current (a newer cycle started,
or the gate was closed) never touches state.
"""

import asyncio
import logging
from typing import Callable, Optional

from licensegate.domain.errors import GuardError, PurchaseLaunchError
from licensegate.domain.events.verification_events import (
    CheckCycleStarted, DomainEvent, OrchestratorClosed, RetryScheduled, VerificationSettled,
)
from licensegate.domain.interfaces.licensing_provider import LicensingProvider
from licensegate.domain.interfaces.presentation import PurchaseLauncher
from licensegate.domain.models.common import INITIALIZE, IS_ENTITLED
from licensegate.domain.models.verification import (
    Checking, Failed, Idle, Licensed, Unlicensed, VerificationState, format_delay,
)
from licensegate.infrastructure.resilience.retry_scheduler import RetryScheduler, TimerHandle
from licensegate.infrastructure.resilience.timeout_guard import DEFAULT_DEADLINE_SECONDS, guard

logger = logging.getLogger(__name__)

UNLICENSED_REASON = "no valid purchase"
UNABLE_TO_VERIFY = (
    "Unable to verify purchase. Please ensure you're connected to the internet and try again."
)

StateCallback = Callable[[VerificationState], None]
EventListener = Callable[[DomainEvent], None]


class VerificationOrchestrator:
    """Owns the verification state, the attempt counter and the retry timer."""

    def __init__(
        self,
        provider: LicensingProvider,
        on_state_change: Optional[StateCallback] = None,
        scheduler: Optional[RetryScheduler] = None,
        purchase_launcher: Optional[PurchaseLauncher] = None,
        initialize_timeout: float = DEFAULT_DEADLINE_SECONDS,
        is_entitled_timeout: float = DEFAULT_DEADLINE_SECONDS,
        reset_attempts_on_manual: bool = True,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the orchestrator in the `Idle` state.

        Args:
            provider: The licensing authority adapter.
            on_state_change: Called synchronously with every new state.
            scheduler: Retry scheduler; its policy bounds the retries.
            purchase_launcher: Target of `purchase_requested()`.
            initialize_timeout: Deadline for `provider.initialize`, seconds.
            is_entitled_timeout: Deadline for `provider.is_entitled`, seconds.
            reset_attempts_on_manual: Whether `check_again()` restarts the
                retry budget from zero or keeps the accumulated count.
            event_listener: Optional receiver of domain events.
        """
        self.provider = provider
        self.on_state_change = on_state_change
        self.scheduler = scheduler or RetryScheduler()
        self.purchase_launcher = purchase_launcher
        self.initialize_timeout = initialize_timeout
        self.is_entitled_timeout = is_entitled_timeout
        self.reset_attempts_on_manual = reset_attempts_on_manual
        self.event_listener = event_listener

        self._state: VerificationState = Idle()
        self._attempt = 0
        self._pending_timer: Optional[TimerHandle] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._generation = 0
        self._closed = False
        self._settled: Optional[asyncio.Event] = None

    # --- Read-only views ---

    @property
    def state(self) -> VerificationState:
        return self._state

    @property
    def attempt(self) -> int:
        return self._attempt

    @property
    def max_retries(self) -> int:
        return self.scheduler.policy.max_retries

    @property
    def pending_timer(self) -> Optional[TimerHandle]:
        if self._pending_timer is not None and self._pending_timer.pending:
            return self._pending_timer
        return None

    @property
    def closed(self) -> bool:
        return self._closed

    # --- Entry points ---

    async def start(self, manual: bool = False) -> None:
        """Runs one check cycle.

        Cancels any pending retry and abandons any cycle still in flight
        before calling the provider.

        Args:
            manual: True when the user asked for the check.
        """
        if self._closed:
            logger.warning("start() called on a closed orchestrator; ignoring.")
            return

        self._cancel_pending_timer()
        current = asyncio.current_task()
        if self._cycle_task is not None and self._cycle_task is not current:
            self._abandon_cycle_task()

        if manual and self.reset_attempts_on_manual:
            self._attempt = 0
        self._generation += 1
        generation = self._generation
        self._settled_event().clear()

        self._dispatch_event(CheckCycleStarted(attempt=self._attempt, manual=manual))
        self._transition(Checking(attempt=self._attempt, message=""))
        if self._is_stale(generation):
            return

        try:
            await guard(self.provider.initialize, self.initialize_timeout, name=INITIALIZE)
            if self._is_stale(generation):
                return
            entitled = await guard(self.provider.is_entitled, self.is_entitled_timeout, name=IS_ENTITLED)
        except GuardError as e:
            if self._is_stale(generation):
                logger.debug(f"Ignoring failure from superseded cycle {generation}: {e}")
                return
            self._handle_failure(e)
            return

        if self._is_stale(generation):
            logger.debug(f"Ignoring verdict from superseded cycle {generation}.")
            return

        if entitled:
            logger.info(f"Entitlement confirmed on attempt {self._attempt}.")
            self._settle(Licensed(), "licensed")
        else:
            logger.info("Authority reported no valid purchase.")
            self._settle(Unlicensed(reason=UNLICENSED_REASON), "unlicensed", UNLICENSED_REASON)

    def begin(self) -> Optional[asyncio.Task]:
        """Starts the first cycle as a task. Call when the gate is entered."""
        if self._closed:
            logger.warning("begin() called on a closed orchestrator; ignoring.")
            return None
        return self._spawn_cycle(manual=False)

    def check_again(self) -> Optional[asyncio.Task]:
        """Manual retry from `Unlicensed` or `Failed`.

        From `Checking` the current cycle and any pending retry are dropped
        and a fresh cycle starts.
        """
        if self._closed:
            logger.warning("check_again() called on a closed orchestrator; ignoring.")
            return None
        if isinstance(self._state, Checking):
            logger.info("check_again() during an active check; restarting the cycle.")
        else:
            logger.info(f"Manual check requested from {type(self._state).__name__}.")
        return self._spawn_cycle(manual=True)

    def purchase_requested(self) -> bool:
        """Forwards the purchase action to the launcher.

        Returns:
            True if the purchase flow was launched.
        """
        if self.purchase_launcher is None:
            logger.warning("Purchase requested but no purchase launcher is configured.")
            return False
        try:
            self.purchase_launcher.launch_purchase()
        except PurchaseLaunchError as e:
            logger.error(f"Failed to launch purchase flow: {e}")
            return False
        logger.info("Purchase flow launched.")
        return True

    async def wait_until_settled(self) -> VerificationState:
        """Waits until the gate reaches a terminal state or is closed."""
        if not self._closed:
            await self._settled_event().wait()
        return self._state

    async def run_until_settled(self) -> VerificationState:
        """Begins verification if it has not started yet, then waits."""
        if isinstance(self._state, Idle) and self._cycle_task is None:
            self.begin()
        return await self.wait_until_settled()

    def close(self) -> None:
        """Tears the gate down.

        Cancels the pending retry and the in-flight cycle. No state change is
        observable afterwards.
        """
        if self._closed:
            return
        self._cancel_pending_timer()
        self._generation += 1
        self._abandon_cycle_task()
        self._closed = True
        logger.info(f"Orchestrator closed in state {type(self._state).__name__}.")
        self._dispatch_event(OrchestratorClosed())
        if self._settled is not None:
            self._settled.set()

    # --- Failure path ---

    def _handle_failure(self, error: GuardError) -> None:
        if not error.retryable:
            logger.error(f"Definitive provider error, not retrying: {error}")
            reason = f"{UNABLE_TO_VERIFY} ({error})"
            self._settle(Failed(reason=reason), "failed", reason)
            return

        if self._attempt < self.max_retries:
            self._attempt += 1
            delay = self.scheduler.delay_for(self._attempt - 1)
            logger.warning(
                f"Verification attempt {self._attempt - 1} failed: {error}. "
                f"Retry {self._attempt}/{self.max_retries} in {delay:.2f}s."
            )
            self._transition(Checking(attempt=self._attempt, message=f"retrying in {format_delay(delay)}"))
            if self._closed:
                return
            self._pending_timer = self.scheduler.schedule(self._attempt - 1, self._on_retry_timer)
            self._dispatch_event(
                RetryScheduled(attempt_number=self._attempt, delay_seconds=delay, reason=str(error))
            )
        else:
            logger.error(f"Max retries ({self.max_retries}) reached. Last error: {error}")
            reason = f"{UNABLE_TO_VERIFY} (last error: {error})"
            self._settle(Failed(reason=reason), "failed", reason)

    def _on_retry_timer(self) -> None:
        self._pending_timer = None
        if self._closed:
            return
        self._spawn_cycle(manual=False)

    # --- Internals ---

    def _spawn_cycle(self, manual: bool) -> asyncio.Task:
        self._cancel_pending_timer()
        self._abandon_cycle_task()
        self._settled_event().clear()
        loop = asyncio.get_running_loop()
        self._cycle_task = loop.create_task(self.start(manual=manual))
        return self._cycle_task

    def _abandon_cycle_task(self) -> None:
        task = self._cycle_task
        self._cycle_task = None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("In-flight check cycle cancelled.")

    def _cancel_pending_timer(self) -> None:
        if self._pending_timer is not None:
            self.scheduler.cancel(self._pending_timer)
            self._pending_timer = None

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self._generation

    def _settle(self, state: VerificationState, outcome: str, reason: Optional[str] = None) -> None:
        self._cancel_pending_timer()
        self._transition(state)
        if self._closed:
            return
        self._dispatch_event(VerificationSettled(outcome=outcome, reason=reason))

    def _settled_event(self) -> asyncio.Event:
        if self._settled is None:
            self._settled = asyncio.Event()
        return self._settled

    def _transition(self, state: VerificationState) -> None:
        if self._closed:
            return
        self._state = state
        logger.info(f"Verification state -> {state}")
        if state.is_terminal:
            self._settled_event().set()
        if self.on_state_change is not None:
            try:
                self.on_state_change(state)
            except Exception as e:
                logger.error(f"State change callback failed for {state}: {e}", exc_info=True)

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self.event_listener is None:
            return
        try:
            self.event_listener(event)
        except Exception as e:
            logger.error(f"Event listener failed for {type(event).__name__}: {e}", exc_info=True)
