"""Defines common Value Objects used across the verification context.

These objects represent simple values like operation names, verdicts and
device fingerprints, ensuring consistency and type safety.
"""

from typing import NewType, TypedDict

# === Provider Calls ===
OperationName = NewType("OperationName", str)  # 'initialize', 'is_entitled'

INITIALIZE = OperationName("initialize")
IS_ENTITLED = OperationName("is_entitled")

# === Cached Verdicts ===
Verdict = NewType("Verdict", str)  # 'LICENSED' or 'NOT_LICENSED'
DeviceFingerprint = NewType("DeviceFingerprint", str)  # SHA-256 hex digest

LICENSED = Verdict("LICENSED")
NOT_LICENSED = Verdict("NOT_LICENSED")


class VerdictRecord(TypedDict):
    """A verdict as persisted by the caching provider."""
    verdict: Verdict
    recorded_at: float  # Unix time, seconds
    device_id: DeviceFingerprint


class Timeouts(TypedDict):
    """Per-call deadlines in seconds."""
    initialize: float
    is_entitled: float
