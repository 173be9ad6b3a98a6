"""Domain Layer: states, value objects, events and the ports (interfaces)
that the core depends on. Contains no I/O.
"""
