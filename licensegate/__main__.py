"""Main entry point when executing licensegate as a package.

This allows running the package using python -m licensegate.
"""

from licensegate.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
