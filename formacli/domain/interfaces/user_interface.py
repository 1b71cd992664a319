"""Interface for presenting results to the user.

Defines the contract for displaying API results, errors, warnings and
rate-limit notices, allowing different UI implementations (e.g., console, GUI).
"""

import abc
from typing import Any, Optional


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: Any, **kwargs: Any) -> None:
        """Displays an API result to the user.

        Args:
            output: Decoded JSON value or text returned by the API.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_rate_limit(self, retry_after_seconds: Optional[float]) -> None:
        """Tells the user the server is rate limiting and when to try again.

        Args:
            retry_after_seconds: Advertised wait, or None if the server gave none.
        """
        pass
