"""Interfaces for the gate's outer surfaces.

`PresentationSink` renders verification states; `PurchaseLauncher` starts
the external purchase flow.
"""

import abc
from typing import Any

from licensegate.domain.models.verification import VerificationState


class PresentationSink(abc.ABC):
    """Abstract Base Class for rendering the gate."""

    @abc.abstractmethod
    def render(self, state: VerificationState, **kwargs: Any) -> None:
        """Renders a verification state.

        Implementations must not keep state of their own that affects the
        output: the same state always renders the same way.

        Args:
            state: The orchestrator's current state.
            **kwargs: Additional arguments for formatting.
        """
        pass

    def display_purchase_failed(self, message: str) -> None:
        """Tells the user that the store could not be opened.

        Args:
            message: The error message string.
        """
        pass


class PurchaseLauncher(abc.ABC):
    """Abstract Base Class for starting the purchase flow."""

    @abc.abstractmethod
    def launch_purchase(self) -> None:
        """Opens the purchase flow.

        Raises:
            PurchaseLaunchError: If the flow could not be started.
        """
        pass
