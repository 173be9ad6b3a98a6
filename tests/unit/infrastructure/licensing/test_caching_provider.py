from unittest.mock import AsyncMock

import pytest

from licensegate.domain.interfaces.licensing_provider import LicensingProvider
from licensegate.domain.models.common import LICENSED, NOT_LICENSED
from licensegate.infrastructure.licensing.caching_provider import (
    DEFAULT_TTL_SECONDS, VERDICT_KEY, CachingLicensingProvider, compute_device_fingerprint,
)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def inner():
    mock = AsyncMock(spec=LicensingProvider)
    mock.is_entitled.return_value = True
    return mock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_caching_provider(tmp_path, inner, clock):
    created = []

    def factory(device_id="device-a", cache_dir=None):
        provider = CachingLicensingProvider(
            inner,
            cache_dir=cache_dir or tmp_path / "cache",
            device_id_factory=lambda: device_id,
            clock=clock,
        )
        created.append(provider)
        return provider

    yield factory
    for provider in created:
        provider.close()


@pytest.mark.asyncio
async def test_first_check_asks_authority_and_stores_verdict(make_caching_provider, inner, clock):
    provider = make_caching_provider()

    assert await provider.is_entitled() is True

    inner.initialize.assert_awaited_once()
    inner.is_entitled.assert_awaited_once()
    record = provider.read_record()
    assert record == {"verdict": LICENSED, "recorded_at": clock.now, "device_id": "device-a"}


@pytest.mark.asyncio
async def test_fresh_verdict_is_reused(make_caching_provider, inner, clock):
    provider = make_caching_provider()
    await provider.is_entitled()

    clock.now += DEFAULT_TTL_SECONDS - 1
    inner.is_entitled.return_value = False

    assert await provider.is_entitled() is True
    inner.is_entitled.assert_awaited_once()


@pytest.mark.asyncio
async def test_denied_verdict_is_cached_too(make_caching_provider, inner):
    inner.is_entitled.return_value = False
    provider = make_caching_provider()

    assert await provider.is_entitled() is False
    assert await provider.is_entitled() is False
    assert provider.read_record()["verdict"] == NOT_LICENSED
    inner.is_entitled.assert_awaited_once()


@pytest.mark.asyncio
async def test_expired_verdict_asks_again(make_caching_provider, inner, clock):
    provider = make_caching_provider()
    await provider.is_entitled()

    clock.now += DEFAULT_TTL_SECONDS
    inner.is_entitled.return_value = False

    assert await provider.is_entitled() is False
    assert inner.is_entitled.await_count == 2
    assert provider.read_record()["verdict"] == NOT_LICENSED


@pytest.mark.asyncio
async def test_verdict_from_another_device_is_ignored(make_caching_provider, inner, tmp_path):
    first = make_caching_provider(device_id="device-a")
    await first.is_entitled()
    first.close()

    second = make_caching_provider(device_id="device-b")
    inner.is_entitled.return_value = False

    assert await second.is_entitled() is False
    assert second.read_record()["device_id"] == "device-b"


@pytest.mark.asyncio
async def test_previous_license_is_honoured_when_authority_fails(make_caching_provider, inner, clock):
    provider = make_caching_provider()
    await provider.is_entitled()

    clock.now += 10 * DEFAULT_TTL_SECONDS
    inner.is_entitled.side_effect = ConnectionError("offline")

    assert await provider.is_entitled() is True


@pytest.mark.asyncio
async def test_failure_without_previous_license_propagates(make_caching_provider, inner, clock):
    inner.is_entitled.return_value = False
    provider = make_caching_provider()
    await provider.is_entitled()

    clock.now += DEFAULT_TTL_SECONDS
    inner.is_entitled.side_effect = ConnectionError("offline")

    with pytest.raises(ConnectionError):
        await provider.is_entitled()


@pytest.mark.asyncio
async def test_initialize_is_idempotent(make_caching_provider, inner):
    provider = make_caching_provider()

    await provider.initialize()
    await provider.initialize()
    await provider.is_entitled()

    inner.initialize.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_initialize_is_attempted_again(make_caching_provider, inner):
    inner.initialize.side_effect = [RuntimeError("not ready"), None]
    provider = make_caching_provider()

    with pytest.raises(RuntimeError):
        await provider.initialize()
    await provider.initialize()

    assert inner.initialize.await_count == 2


@pytest.mark.asyncio
async def test_clear_removes_stored_license(make_caching_provider, inner):
    provider = make_caching_provider()
    await provider.is_entitled()

    provider.clear()

    assert provider.read_record() is None
    await provider.is_entitled()
    assert inner.is_entitled.await_count == 2


def test_malformed_record_is_discarded(make_caching_provider):
    provider = make_caching_provider()
    provider.disk_cache.set(VERDICT_KEY, "LICENSED")

    assert provider.read_record() is None
    assert provider.disk_cache.get(VERDICT_KEY) is None


def test_device_fingerprint_is_stable_sha256():
    fingerprint = compute_device_fingerprint()
    assert fingerprint == compute_device_fingerprint()
    assert len(fingerprint) == 64
    int(fingerprint, 16)


@pytest.mark.asyncio
async def test_license_from_another_device_is_not_a_fallback(make_caching_provider, inner):
    first = make_caching_provider(device_id="device-a")
    await first.is_entitled()
    first.close()

    second = make_caching_provider(device_id="device-b")
    inner.is_entitled.side_effect = ConnectionError("offline")

    with pytest.raises(ConnectionError):
        await second.is_entitled()
