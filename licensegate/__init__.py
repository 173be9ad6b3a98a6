"""licensegate: gates application entry behind an entitlement check.

The core is the verification orchestrator, which drives a licensing provider
through deadline-guarded calls with bounded, linearly escalating retries.
"""

__version__ = "1.0.0"
