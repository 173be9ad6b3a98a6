"""Console rendering of the license gate using rich.

`ConsoleGateDisplay` is a stateless projection of `VerificationState`: the
panel shown for a state depends on nothing but that state.
"""

import enum
import logging
from typing import Any, Dict, Optional, Tuple

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from licensegate.domain.interfaces.presentation import PresentationSink
from licensegate.domain.models.verification import (
    Checking, Failed, Idle, Licensed, Unlicensed, VerificationState,
)

logger = logging.getLogger(__name__)

APP_TITLE = "Widdle Reader"
TAGLINE = "Your Premium Audiobook Player"
PRICE_TAG = "One-time purchase: $1.99"
PURCHASE_REQUIRED = "This app requires a valid purchase from the store."


class GateAction(enum.Enum):
    """What the user can do on the gating screen."""
    PURCHASE = "p"
    CHECK_AGAIN = "c"
    QUIT = "q"


ACTION_LABELS: Dict[GateAction, str] = {
    GateAction.PURCHASE: "[p] Purchase from the store",
    GateAction.CHECK_AGAIN: "[c] Check again",
    GateAction.QUIT: "[q] Quit",
}


def available_actions(state: VerificationState) -> Tuple[GateAction, ...]:
    """Actions offered for a state. Only terminal non-licensed states offer any."""
    if isinstance(state, Unlicensed):
        return (GateAction.PURCHASE, GateAction.CHECK_AGAIN, GateAction.QUIT)
    if isinstance(state, Failed):
        return (GateAction.CHECK_AGAIN, GateAction.QUIT)
    return ()


def build_renderable(state: VerificationState) -> Panel:
    """Builds the panel shown for `state`."""
    header = Text.assemble((APP_TITLE, "bold"), "\n", (TAGLINE, "dim"))

    if isinstance(state, (Idle, Checking)):
        body = [Text("Verifying purchase...", style="cyan")]
        if isinstance(state, Checking) and state.message:
            body.append(Text(state.message.capitalize(), style="red"))
        return Panel(Group(header, Text(""), *body), title="[bold cyan]License[/bold cyan]",
                     border_style="cyan", box=SIMPLE, padding=(0, 1))

    if isinstance(state, Licensed):
        return Panel(Group(header, Text(""), Text("Purchase verified. Entering application.", style="green")),
                     title="[bold green]Licensed[/bold green]", border_style="green",
                     box=ROUNDED, padding=(0, 1))

    if isinstance(state, Unlicensed):
        body = [
            Text(f"{APP_TITLE} is a premium app", style="bold"),
            Text(PURCHASE_REQUIRED),
            Text(f"Reason: {state.reason}", style="dim"),
            Text(""),
            *[Text(ACTION_LABELS[action]) for action in available_actions(state)],
            Text(""),
            Text(PRICE_TAG, style="bold magenta"),
        ]
        return Panel(Group(header, Text(""), *body), title="[bold yellow]Purchase required[/bold yellow]",
                     border_style="yellow", box=HEAVY, padding=(0, 1))

    if isinstance(state, Failed):
        body = [
            Text(state.reason, style="white"),
            Text(""),
            *[Text(ACTION_LABELS[action]) for action in available_actions(state)],
        ]
        return Panel(Group(header, Text(""), *body), title="[bold red]Verification failed[/bold red]",
                     border_style="red", box=HEAVY, padding=(0, 1))

    raise TypeError(f"Unknown verification state: {state!r}")


class ConsoleGateDisplay(PresentationSink):
    """Concrete PresentationSink writing to a rich Console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def render(self, state: VerificationState, **kwargs: Any) -> None:
        logger.debug(f"Rendering state {state}")
        self.console.print(build_renderable(state))

    def display_purchase_failed(self, message: str) -> None:
        logger.warning(f"Display warning: {message}")
        self.console.print(Panel(Text(message, style="white"), title="[bold red]Error[/bold red]",
                                 border_style="red", box=HEAVY, padding=(0, 1)))

    def display_info(self, info_message: str) -> None:
        self.console.print(f"[blue]Info:[/blue] {info_message}")

    def display_error(self, error_message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {error_message}")

    def ask_next_action(self, state: VerificationState) -> GateAction:
        """Asks which of the state's actions to take; repeats until valid.

        Args:
            state: A terminal, non-licensed state.

        Returns:
            The chosen action.
        """
        actions = available_actions(state)
        if not actions:
            raise ValueError(f"No actions are offered in state {type(state).__name__}")
        choices = "/".join(action.value for action in actions)
        while True:
            answer = self.console.input(f"[bold green]Choose an action ({choices}):[/bold green] ")
            answer = answer.strip().lower()
            for action in actions:
                if answer == action.value:
                    return action
            self.console.print(f"[yellow]Please enter one of: {choices}[/yellow]")
