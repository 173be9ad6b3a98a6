"""Licensing provider adapters."""
