"""Domain Event definitions.

Represents significant occurrences during API calls (retries, rate limiting,
token refresh) that other parts of the system might react to.
"""
