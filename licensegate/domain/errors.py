"""Exception taxonomy for entitlement verification.

Guarded provider calls fail with a `GuardError`: either the deadline elapsed
(`GuardTimeoutError`) or the provider itself failed (`ProviderError`). The
orchestrator is the only place that turns these into verification states.
"""

from typing import Optional


class LicenseGateError(Exception):
    """Base class for all licensegate errors."""


class ConfigurationError(LicenseGateError):
    """A configuration value is missing or invalid."""


# --- Guarded Call Failures ---

class GuardError(LicenseGateError):
    """A guarded provider call did not produce a result."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return True


class GuardTimeoutError(GuardError, TimeoutError):
    """The deadline elapsed before the provider responded."""

    def __init__(self, operation: str, deadline: float):
        self.deadline = deadline
        super().__init__(operation, f"{operation} timed out after {deadline:.1f}s")


class ProviderError(GuardError):
    """The provider call completed with a failure.

    Providers may raise this directly with `retryable=False` to signal a
    definitive failure that should not be retried.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        original_exception: Optional[BaseException] = None,
        retryable: bool = True,
    ):
        self.original_exception = original_exception
        self._retryable = retryable
        super().__init__(operation, message)

    @property
    def retryable(self) -> bool:
        return self._retryable


# --- Outer Surfaces ---

class PurchaseLaunchError(LicenseGateError):
    """The store page could not be opened."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Could not open {url}: {reason}")
