"""Main entry point when executing bggproxy as a package.

This allows running the package using python -m bggproxy.
"""

from bggproxy.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
