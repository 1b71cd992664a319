"""Interface for durable client-side credential storage.

Defines the contract for a small string key-value store that survives
process restarts, used to keep the access and refresh tokens between runs.
"""

import abc
from typing import Optional


class TokenStore(abc.ABC):
    """Abstract Base Class for credential persistence."""

    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Returns the stored value for key, or None if absent."""
        pass

    @abc.abstractmethod
    def set(self, key: str, value: str) -> None:
        """Stores value under key, replacing any existing value."""
        pass

    @abc.abstractmethod
    def remove(self, key: str) -> None:
        """Removes key. Removing a missing key is not an error."""
        pass
