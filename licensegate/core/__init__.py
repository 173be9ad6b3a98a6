"""Core Application Layer: the verification orchestrator.

Connects the domain layer with the infrastructure layer through interfaces.
"""
