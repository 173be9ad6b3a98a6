import asyncio
from collections import deque
from pathlib import Path
from typing import Any, Iterable, List

import pytest
from typer.testing import CliRunner

from licensegate.domain.interfaces.licensing_provider import LicensingProvider
from licensegate.domain.models.verification import RetryPolicy
from licensegate.infrastructure.config import settings
from licensegate.infrastructure.resilience.retry_scheduler import RetryScheduler

# Outcome that never completes (until cancelled).
HANG = object()


class ScriptedProvider(LicensingProvider):
    """LicensingProvider whose outcomes are scripted per call.

    Each outcome is a plain value (returned), an exception instance (raised),
    or HANG (never completes). When a script runs out, the default is used.
    """

    def __init__(
        self,
        initialize: Iterable[Any] = (),
        is_entitled: Iterable[Any] = (),
        default_initialize: Any = None,
        default_is_entitled: Any = True,
    ):
        self._initialize = deque(initialize)
        self._is_entitled = deque(is_entitled)
        self.default_initialize = default_initialize
        self.default_is_entitled = default_is_entitled
        self.initialize_calls = 0
        self.is_entitled_calls = 0
        self.cancelled_calls = 0

    async def _play(self, script: deque, default: Any) -> Any:
        outcome = script.popleft() if script else default
        if outcome is HANG:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled_calls += 1
                raise
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def initialize(self) -> None:
        self.initialize_calls += 1
        await self._play(self._initialize, self.default_initialize)

    async def is_entitled(self) -> bool:
        self.is_entitled_calls += 1
        return await self._play(self._is_entitled, self.default_is_entitled)


class StateRecorder:
    """on_state_change callback that keeps every state it receives."""

    def __init__(self):
        self.states: List[Any] = []

    def __call__(self, state: Any) -> None:
        self.states.append(state)

    @property
    def kinds(self) -> List[str]:
        return [type(state).__name__ for state in self.states]


@pytest.fixture
def recorder() -> StateRecorder:
    return StateRecorder()


@pytest.fixture
def fast_scheduler() -> RetryScheduler:
    """Scheduler with the standard retry budget and 10ms base delay."""
    return RetryScheduler(RetryPolicy(max_retries=3, base_delay=0.01))


@pytest.fixture
def make_provider():
    """Factory fixture for ScriptedProvider."""
    return ScriptedProvider


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keeps configuration state from leaking between tests."""
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", False)
    settings.clear_test_config()
    yield
    settings.clear_test_config()


@pytest.fixture
def cli_config(tmp_path: Path, mocker):
    """Fast, isolated configuration for CLI runs.

    Skips reading the user's config file and leaves logging alone.
    """
    mocker.patch("licensegate.main.load_configuration")
    mocker.patch("licensegate.main.setup_logging")
    settings.set_config_for_testing({
        "cache.directory": str(tmp_path / "cache"),
        "retry.base_delay_seconds": 0.01,
        "timeouts.initialize_seconds": 1.0,
        "timeouts.is_entitled_seconds": 1.0,
        "licensing.status": "LICENSED",
    })
    return settings
