"""Interface for licensing authorities.

Defines the contract the orchestrator uses to ask an external authority
whether this installation is entitled to run. How the authority is reached
is up to the implementation.
"""

import abc


class LicensingProvider(abc.ABC):
    """Abstract Base Class for entitlement checks."""

    @abc.abstractmethod
    async def initialize(self) -> None:
        """Prepares the provider for checks asynchronously.

        Must be idempotent: the orchestrator calls it again on every retry.

        Raises:
            Exception: If the provider cannot be initialized.
        """
        pass

    @abc.abstractmethod
    async def is_entitled(self) -> bool:
        """Asks the authority whether the current installation is entitled.

        Returns:
            True if entitled, False if the authority explicitly denies it.

        Raises:
            Exception: If the authority could not produce a verdict.
        """
        pass
