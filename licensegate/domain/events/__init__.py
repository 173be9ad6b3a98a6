"""Domain Event definitions.

Represents significant occurrences during entitlement verification that
other parts of the system (diagnostics, UI) might react to.
"""
