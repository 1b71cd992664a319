"""Main entry point when executing formacli as a package.

This allows running the package using python -m formacli.
"""

from formacli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
