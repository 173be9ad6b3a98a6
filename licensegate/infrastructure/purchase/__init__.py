"""Purchase flow launchers."""
