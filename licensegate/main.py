"""Main entry point for the licensegate application.

Sets up the Typer CLI application, performs dependency injection (Composition
Root) and runs the license gate until the user is let in or gives up.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from typing_extensions import Annotated

from licensegate.core.verification_orchestrator import VerificationOrchestrator
from licensegate.domain.errors import LicenseGateError
from licensegate.domain.models.verification import Failed, Licensed, Unlicensed, VerificationState
from licensegate.infrastructure.cli.display import ConsoleGateDisplay, GateAction
from licensegate.infrastructure.config.settings import (
    DEFAULT_CONFIG_FILE, get_cache_dir, get_cache_ttl, get_licensing_latency,
    get_licensing_status, get_purchase_url, get_reset_on_manual, get_retry_policy, get_timeouts,
    load_configuration,
)
from licensegate.infrastructure.licensing.caching_provider import CachingLicensingProvider
from licensegate.infrastructure.licensing.configured_provider import ConfiguredLicensingProvider
from licensegate.infrastructure.monitoring.logger_setup import setup_logging
from licensegate.infrastructure.purchase.store_launcher import StorePageLauncher
from licensegate.infrastructure.resilience.retry_scheduler import RetryScheduler

logger = logging.getLogger(__name__)

PURCHASE_FAILED_MESSAGE = "Could not open the store"


# --- Dependency Injection (Manual) ---

def configure(config_file: Path = DEFAULT_CONFIG_FILE) -> None:
    """Loads configuration, then configures logging from it."""
    load_configuration(config_file=config_file)
    setup_logging()


def create_dependencies(use_cache: bool = True, ui: Optional[ConsoleGateDisplay] = None) -> Dict[str, Any]:
    """Creates and wires up the gate's collaborators from configuration.

    This acts as the Composition Root.
    """
    dependencies: Dict[str, Any] = {}
    dependencies["ui"] = ui or ConsoleGateDisplay()

    provider = ConfiguredLicensingProvider(
        status=get_licensing_status(),
        latency_seconds=get_licensing_latency(),
    )
    if use_cache:
        provider = CachingLicensingProvider(provider, cache_dir=get_cache_dir(), ttl_seconds=get_cache_ttl())
    dependencies["provider"] = provider
    dependencies["purchase_launcher"] = StorePageLauncher(get_purchase_url())
    dependencies["scheduler"] = RetryScheduler(get_retry_policy())

    timeouts = get_timeouts()
    dependencies["orchestrator"] = VerificationOrchestrator(
        provider=provider,
        on_state_change=dependencies["ui"].render,
        scheduler=dependencies["scheduler"],
        purchase_launcher=dependencies["purchase_launcher"],
        initialize_timeout=timeouts["initialize"],
        is_entitled_timeout=timeouts["is_entitled"],
        reset_attempts_on_manual=get_reset_on_manual(),
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


async def run_gate(
    orchestrator: VerificationOrchestrator,
    ui: ConsoleGateDisplay,
    interactive: bool = True,
) -> VerificationState:
    """Runs the gate and handles the user's actions until it is left.

    Returns:
        The state the gate was left in.
    """
    try:
        state = await orchestrator.run_until_settled()
        while interactive and isinstance(state, (Unlicensed, Failed)):
            action = await asyncio.to_thread(ui.ask_next_action, state)
            if action is GateAction.QUIT:
                logger.info("User left the gate without a license.")
                break
            if action is GateAction.PURCHASE:
                if not orchestrator.purchase_requested():
                    ui.display_purchase_failed(PURCHASE_FAILED_MESSAGE)
                continue
            orchestrator.check_again()
            state = await orchestrator.wait_until_settled()
        return state
    finally:
        orchestrator.close()


# --- Typer App Definition ---
app = typer.Typer(
    name="licensegate",
    help="licensegate: verify the purchase before entering the application.",
    add_completion=False,
)

NoCacheOption = Annotated[
    bool,
    typer.Option("--no-cache", help="Always ask the licensing authority; ignore the cached verdict."),
]
NonInteractiveOption = Annotated[
    bool,
    typer.Option("--non-interactive", help="Exit as soon as the gate settles instead of offering actions."),
]


def _run_check(no_cache: bool, non_interactive: bool) -> None:
    try:
        configure()
        dependencies = create_dependencies(use_cache=not no_cache)
    except LicenseGateError as e:
        logger.error(f"Initialization failed: {e}", exc_info=True)
        ConsoleGateDisplay().display_error(f"Application Initialization Failed: {e}")
        raise typer.Exit(code=2)

    ui: ConsoleGateDisplay = dependencies["ui"]
    provider = dependencies["provider"]
    try:
        state = asyncio.run(run_gate(dependencies["orchestrator"], ui, interactive=not non_interactive))
    finally:
        if isinstance(provider, CachingLicensingProvider):
            provider.close()

    if isinstance(state, Licensed):
        ui.display_info("Entering application.")
        return
    raise typer.Exit(code=1)


@app.command()
def check(no_cache: NoCacheOption = False, non_interactive: NonInteractiveOption = False):
    """Verify the purchase and report whether the application may start."""
    _run_check(no_cache, non_interactive)


@app.command(name="clear-license")
def clear_license_command():
    """Deletes the cached license verdict."""
    configure()
    provider = CachingLicensingProvider(ConfiguredLicensingProvider(), cache_dir=get_cache_dir())
    try:
        provider.clear()
    finally:
        provider.close()
    ConsoleGateDisplay().display_info("Stored license data cleared.")


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context):
    """Runs `check` if no command is given."""
    if ctx.invoked_subcommand is None:
        _run_check(no_cache=False, non_interactive=False)


def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
