"""Licensing authority driven by configuration.

Stands in for a real store authority during development and offline use:
the verdict comes from `licensing.status` and an optional latency from
`licensing.latency_seconds`.
"""

import asyncio
import logging

from licensegate.domain.errors import ConfigurationError
from licensegate.domain.interfaces.licensing_provider import LicensingProvider
from licensegate.domain.models.common import LICENSED, NOT_LICENSED

logger = logging.getLogger(__name__)

ERROR_STATUS = "ERROR"
VALID_STATUSES = (LICENSED, NOT_LICENSED, ERROR_STATUS)


class AuthorityUnavailableError(RuntimeError):
    """The configured authority is set to fail."""


class ConfiguredLicensingProvider(LicensingProvider):
    """Answers entitlement checks from configuration values."""

    def __init__(self, status: str = LICENSED, latency_seconds: float = 0.0):
        status = status.upper()
        if status not in VALID_STATUSES:
            raise ConfigurationError(
                f"licensing.status must be one of {', '.join(VALID_STATUSES)}, got '{status}'"
            )
        self.status = status
        self.latency_seconds = latency_seconds
        self.initialized = False
        self.check_count = 0

    async def initialize(self) -> None:
        if self.initialized:
            return
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        self.initialized = True
        logger.debug(f"Configured licensing provider initialized (status={self.status}).")

    async def is_entitled(self) -> bool:
        self.check_count += 1
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        if self.status == ERROR_STATUS:
            raise AuthorityUnavailableError("licensing authority unavailable")
        return self.status == LICENSED
