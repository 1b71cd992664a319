"""Credential storage implementations.

Bounded Context: Session Credentials
"""

from formacli.infrastructure.storage.token_store import FileTokenStore, InMemoryTokenStore

__all__ = ['FileTokenStore', 'InMemoryTokenStore']
