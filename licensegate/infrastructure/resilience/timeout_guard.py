"""Deadline guard for single provider calls.

Races one awaitable operation against a deadline. The caller gets either the
operation's result, a `ProviderError` wrapping the operation's own failure,
or a `GuardTimeoutError`. On timeout the operation is cancelled and
abandoned: whatever it does afterwards is never observed.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from licensegate.domain.errors import GuardError, GuardTimeoutError, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DEADLINE_SECONDS = 5.0


def _discard_outcome(task: "asyncio.Future") -> None:
    """Done-callback that retrieves an abandoned task's outcome."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Abandoned operation finished late with {type(exc).__name__}: {exc}")
    else:
        logger.debug("Abandoned operation finished late; result ignored.")


def _abandon(task: "asyncio.Future") -> None:
    task.cancel()
    task.add_done_callback(_discard_outcome)


async def guard(
    operation: Callable[[], Awaitable[T]],
    deadline: float = DEFAULT_DEADLINE_SECONDS,
    name: Optional[str] = None,
) -> T:
    """Runs `operation` with a deadline.

    Args:
        operation: Zero-argument callable returning an awaitable.
        deadline: Maximum wait in seconds.
        name: Operation name used in errors and logs (defaults to __name__).

    Returns:
        The operation's result.

    Raises:
        GuardTimeoutError: If the deadline elapsed first.
        ProviderError: If the operation failed on its own.
    """
    op_name = name or getattr(operation, "__name__", "operation")

    try:
        awaitable = operation()
    except GuardError:
        raise
    except Exception as e:
        raise ProviderError(op_name, f"{op_name} failed: {e}", original_exception=e) from e

    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=deadline)
    except asyncio.CancelledError:
        # The caller went away; take the operation with it.
        _abandon(task)
        raise

    if task not in done:
        _abandon(task)
        logger.warning(f"Guarded call '{op_name}' exceeded its {deadline:.1f}s deadline.")
        raise GuardTimeoutError(op_name, deadline)

    if task.cancelled():
        raise ProviderError(op_name, f"{op_name} was cancelled by the provider")

    exc = task.exception()
    if exc is None:
        return task.result()
    if isinstance(exc, GuardError):
        raise exc
    logger.warning(f"Guarded call '{op_name}' failed: {type(exc).__name__}: {exc}")
    raise ProviderError(op_name, f"{op_name} failed: {exc}", original_exception=exc) from exc
