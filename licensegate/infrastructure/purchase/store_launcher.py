"""Opens the product's store page to start a purchase."""

import logging

import typer

from licensegate.domain.errors import PurchaseLaunchError
from licensegate.domain.interfaces.presentation import PurchaseLauncher

logger = logging.getLogger(__name__)


class StorePageLauncher(PurchaseLauncher):
    """Launches the store URL with the platform's default handler."""

    def __init__(self, url: str):
        self.url = url

    def launch_purchase(self) -> None:
        logger.info(f"Opening store page: {self.url}")
        result = typer.launch(self.url)
        if result != 0:
            raise PurchaseLaunchError(self.url, f"launcher exited with status {result}")
