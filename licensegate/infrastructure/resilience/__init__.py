"""Resilience Implementations.

Deadline guard for single provider calls and the cancellable retry scheduler.
Bounded Context: Verification Resilience
"""
