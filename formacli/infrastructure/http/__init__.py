"""HTTP adapter for the formation-center JSON API."""

from formacli.infrastructure.http.api_client import ApiClient

__all__ = ['ApiClient']
