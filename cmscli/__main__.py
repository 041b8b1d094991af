"""Main entry point when executing cmscli as a package.

This allows running the package using python -m cmscli.
"""

from cmscli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
