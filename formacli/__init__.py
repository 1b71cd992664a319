"""formacli: resilient client and CLI for the formation-center API."""

__version__ = "1.0.0"
