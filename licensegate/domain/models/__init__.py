"""Domain models: verification states and retry policy."""
