"""Licensing provider decorator that remembers the authority's verdict.

A verdict is reused for `ttl_seconds` (one day by default) as long as it was
recorded on the same device. When the authority cannot be reached, a
previously stored LICENSED verdict is honoured regardless of its age.
Verdicts are stored with `diskcache` so they survive restarts.
"""

import hashlib
import logging
import platform
import time
from pathlib import Path
from typing import Callable, Optional, Union

import diskcache as dc

from licensegate.domain.interfaces.licensing_provider import LicensingProvider
from licensegate.domain.models.common import (
    LICENSED, NOT_LICENSED, DeviceFingerprint, VerdictRecord,
)

logger = logging.getLogger(__name__)

VERDICT_KEY = "license_verdict"
DEFAULT_TTL_SECONDS = 24 * 60 * 60


def compute_device_fingerprint() -> DeviceFingerprint:
    """Hashes host identity fields so the raw values are never stored."""
    try:
        uname = platform.uname()
        device_data = "_".join([uname.node, uname.machine, uname.system, uname.processor])
    except OSError as e:
        logger.warning(f"Error reading device identity, using a time-based id: {e}")
        device_data = str(time.time_ns())
    return DeviceFingerprint(hashlib.sha256(device_data.encode("utf-8")).hexdigest())


class CachingLicensingProvider(LicensingProvider):
    """Caches the verdict of an inner provider on disk."""

    def __init__(
        self,
        inner: LicensingProvider,
        cache_dir: Union[str, Path],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        device_id_factory: Callable[[], DeviceFingerprint] = compute_device_fingerprint,
        clock: Callable[[], float] = time.time,
    ):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self._device_id_factory = device_id_factory
        self._clock = clock
        self._device_id: Optional[DeviceFingerprint] = None
        self._initialized = False
        self.disk_cache = dc.Cache(str(cache_dir), timeout=1)
        logger.info(f"License verdict cache at {self.disk_cache.directory}, TTL {ttl_seconds:.0f}s")

    @property
    def device_id(self) -> DeviceFingerprint:
        if self._device_id is None:
            self._device_id = self._device_id_factory()
        return self._device_id

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self.inner.initialize()
        self._initialized = True
        logger.debug("Inner licensing provider initialized.")

    async def is_entitled(self) -> bool:
        record = self.read_record()

        if record is not None and self._is_fresh(record):
            logger.debug("Using cached license verdict - still valid")
            return record["verdict"] == LICENSED

        try:
            await self.initialize()
            entitled = await self.inner.is_entitled()
        except Exception as e:
            if record is not None and record["verdict"] == LICENSED and record["device_id"] == self.device_id:
                logger.warning(f"Authority unavailable ({e}); using previously verified license.")
                return True
            raise

        self._store(LICENSED if entitled else NOT_LICENSED)
        logger.info(f"License check result: {'LICENSED' if entitled else 'NOT_LICENSED'}")
        return entitled

    def read_record(self) -> Optional[VerdictRecord]:
        record = self.disk_cache.get(VERDICT_KEY)
        if record is None:
            return None
        if not isinstance(record, dict) or not {"verdict", "recorded_at", "device_id"} <= record.keys():
            logger.warning("Discarding malformed cached license verdict.")
            self.disk_cache.delete(VERDICT_KEY)
            return None
        return record

    def clear(self) -> None:
        """Deletes all stored license data."""
        self.disk_cache.delete(VERDICT_KEY)
        logger.info("Cleared stored license data.")

    def close(self) -> None:
        self.disk_cache.close()

    def _is_fresh(self, record: VerdictRecord) -> bool:
        if record["device_id"] != self.device_id:
            logger.debug("Cached verdict belongs to another device; ignoring it.")
            return False
        return self._clock() - record["recorded_at"] < self.ttl_seconds

    def _store(self, verdict: str) -> None:
        record = VerdictRecord(verdict=verdict, recorded_at=self._clock(), device_id=self.device_id)
        self.disk_cache.set(VERDICT_KEY, record)
