import io

import pytest
from unittest.mock import MagicMock
from rich.console import Console
from rich.panel import Panel

from licensegate.infrastructure.cli.display import (
    PRICE_TAG, ConsoleGateDisplay, GateAction, available_actions, build_renderable,
)
from licensegate.domain.models.verification import Checking, Failed, Idle, Licensed, Unlicensed


@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()


@pytest.fixture
def console_display(mock_console: MagicMock):
    """Fixture to create a ConsoleGateDisplay with a mocked console."""
    return ConsoleGateDisplay(console=mock_console)


def render_text(state) -> str:
    console = Console(file=io.StringIO(), width=100, record=True)
    ConsoleGateDisplay(console=console).render(state)
    return console.export_text()


def test_checking_shows_progress_and_retry_message():
    assert "Verifying purchase..." in render_text(Idle())
    text = render_text(Checking(attempt=2, message="retrying in 0.6s"))
    assert "Verifying purchase..." in text
    assert "Retrying in 0.6s" in text


def test_licensed_panel():
    text = render_text(Licensed())
    assert "Purchase verified. Entering application." in text
    assert "[c] Check again" not in text


def test_unlicensed_panel_offers_purchase():
    text = render_text(Unlicensed(reason="no valid purchase"))
    assert "Widdle Reader is a premium app" in text
    assert "Reason: no valid purchase" in text
    assert "[p] Purchase from the store" in text
    assert "[c] Check again" in text
    assert PRICE_TAG in text


def test_failed_panel_shows_reason_without_purchase():
    text = render_text(Failed(reason="Unable to verify purchase. (last error: offline)"))
    assert "Verification failed" in text
    assert "(last error: offline)" in text
    assert "[c] Check again" in text
    assert "[p] Purchase" not in text


def test_rendering_depends_only_on_state():
    """The same state yields the same output regardless of what was rendered before."""
    console = Console(file=io.StringIO(), width=100, record=True)
    display = ConsoleGateDisplay(console=console)
    display.render(Unlicensed(reason="no valid purchase"))
    first = console.export_text(clear=True)
    display.render(Failed(reason="boom"))
    console.export_text(clear=True)
    display.render(Unlicensed(reason="no valid purchase"))

    assert console.export_text() == first


def test_unknown_state_is_rejected():
    with pytest.raises(TypeError):
        build_renderable(object())


def test_render_prints_a_panel(console_display: ConsoleGateDisplay, mock_console: MagicMock):
    console_display.render(Licensed())
    args, _ = mock_console.print.call_args
    assert isinstance(args[0], Panel)


@pytest.mark.parametrize("state, expected", [
    (Idle(), ()),
    (Checking(attempt=1), ()),
    (Licensed(), ()),
    (Unlicensed(reason="x"), (GateAction.PURCHASE, GateAction.CHECK_AGAIN, GateAction.QUIT)),
    (Failed(reason="x"), (GateAction.CHECK_AGAIN, GateAction.QUIT)),
])
def test_available_actions(state, expected):
    assert available_actions(state) == expected


def test_ask_next_action_repeats_until_valid(console_display: ConsoleGateDisplay, mock_console: MagicMock):
    """Invalid answers are rejected with a hint; answers are case and space insensitive."""
    mock_console.input.side_effect = ["x", "p", " C "]

    action = console_display.ask_next_action(Failed(reason="boom"))

    assert action is GateAction.CHECK_AGAIN
    assert mock_console.input.call_count == 3
    mock_console.print.assert_called_with("[yellow]Please enter one of: c/q[/yellow]")


def test_ask_next_action_needs_an_actionable_state(console_display: ConsoleGateDisplay):
    with pytest.raises(ValueError):
        console_display.ask_next_action(Licensed())


def test_display_error(console_display: ConsoleGateDisplay, mock_console: MagicMock):
    """Test that display_error calls console.print with error formatting."""
    console_display.display_error("Something went wrong")
    mock_console.print.assert_called_once_with("[bold red]Error:[/bold red] Something went wrong")


def test_display_info(console_display: ConsoleGateDisplay, mock_console: MagicMock):
    """Test that display_info calls console.print with info formatting."""
    console_display.display_info("Stored license data cleared.")
    mock_console.print.assert_called_once_with("[blue]Info:[/blue] Stored license data cleared.")


def test_display_purchase_failed_prints_panel(console_display: ConsoleGateDisplay, mock_console: MagicMock):
    console_display.display_purchase_failed("Could not open the store")
    args, _ = mock_console.print.call_args
    assert isinstance(args[0], Panel)
