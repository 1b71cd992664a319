"""Endpoint wrappers for the formation-center resource collections.

Each method is a thin call to ApiClient.request; retries, rate limiting and
authentication are handled there.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import quote

from formacli.domain.models.common import Endpoint
from formacli.infrastructure.http.api_client import ApiClient

logger = logging.getLogger(__name__)

# Collections exposing list/get/create/update/delete
COLLECTIONS = ("candidates", "formations", "payments", "certificates", "notifications")

Identifier = Union[int, str]
Params = Optional[Mapping[str, Any]]


def _segment(value: Identifier) -> str:
    return quote(str(value), safe='')


class ResourceService:
    """Typed access to every collection and aggregate endpoint of the API."""

    def __init__(self, api_client: ApiClient):
        self.api_client = api_client

    @staticmethod
    def _collection(resource: str) -> Endpoint:
        name = resource.strip('/').lower()
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown resource '{resource}'. Expected one of: {', '.join(COLLECTIONS)}")
        return Endpoint(f"/{name}")

    # --- Generic CRUD ---

    async def list(self, resource: str, params: Params = None) -> Any:
        return await self.api_client.request(self._collection(resource), params=params)

    async def get(self, resource: str, resource_id: Identifier) -> Any:
        return await self.api_client.request(f"{self._collection(resource)}/{_segment(resource_id)}")

    async def create(self, resource: str, payload: Dict[str, Any]) -> Any:
        return await self.api_client.request(self._collection(resource), "POST", json=payload)

    async def update(self, resource: str, resource_id: Identifier, updates: Dict[str, Any]) -> Any:
        return await self.api_client.request(f"{self._collection(resource)}/{_segment(resource_id)}", "PUT", json=updates)

    async def delete(self, resource: str, resource_id: Identifier) -> Any:
        return await self.api_client.request(f"{self._collection(resource)}/{_segment(resource_id)}", "DELETE")

    # --- Collection-specific endpoints ---

    async def search_candidates(self, query: str) -> Any:
        return await self.api_client.request("/candidates/search", params={'q': query})

    async def get_formation_stats(self, formation_id: Identifier) -> Any:
        return await self.api_client.request(f"/formations/{_segment(formation_id)}/stats")

    async def get_payment_receipt(self, payment_id: Identifier) -> Any:
        return await self.api_client.request(f"/payments/{_segment(payment_id)}/receipt")

    async def generate_certificate_pdf(self, certificate_id: Identifier) -> Any:
        return await self.api_client.request(f"/certificates/{_segment(certificate_id)}/pdf")

    async def verify_certificate(self, certificate_number: str) -> Any:
        """Public endpoint; works without a session."""
        return await self.api_client.request(f"/certificates/verify/{_segment(certificate_number)}")

    async def mark_notification_as_read(self, notification_id: Identifier) -> Any:
        return await self.api_client.request(f"/notifications/{_segment(notification_id)}/read", "PATCH")

    async def mark_all_notifications_as_read(self) -> Any:
        return await self.api_client.request("/notifications/read-all", "PATCH")

    # --- Dashboard & reports ---

    async def get_dashboard_stats(self) -> Any:
        return await self.api_client.request("/dashboard/stats")

    async def get_dashboard_charts(self, time_range: str = "month") -> Any:
        return await self.api_client.request("/dashboard/charts", params={'range': time_range})

    async def get_recent_activity(self, limit: int = 10) -> Any:
        return await self.api_client.request("/dashboard/activity", params={'limit': limit})

    async def generate_report(self, report_type: str, params: Params = None) -> Any:
        return await self.api_client.request(f"/reports/{_segment(report_type)}", params=params)

    async def export_report(self, report_type: str, export_format: str = "pdf", params: Params = None) -> Any:
        query = dict(params or {})
        query['format'] = export_format
        return await self.api_client.request(f"/reports/{_segment(report_type)}/export", params=query)

    # --- Settings ---

    async def get_settings(self) -> Any:
        return await self.api_client.request("/settings")

    async def update_settings(self, updates: Dict[str, Any]) -> Any:
        return await self.api_client.request("/settings", "PUT", json=updates)

    async def get_setting(self, key: str) -> Any:
        return await self.api_client.request(f"/settings/{_segment(key)}")

    async def set_setting(self, key: str, value: Any) -> Any:
        return await self.api_client.request(f"/settings/{_segment(key)}", "PUT", json={'value': value})

    # --- Files ---

    async def upload_file(self, path: Path, file_type: str = "document") -> Any:
        """Uploads a file as multipart form data."""
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
        # Read eagerly so a retry can resend the same body
        content = path.read_bytes()
        logger.debug(f"Uploading {path.name} ({len(content)} bytes, {content_type})")
        return await self.api_client.request(
            "/upload",
            "POST",
            files={'file': (path.name, content, content_type)},
            data={'type': file_type},
        )

    async def delete_file(self, file_id: Identifier) -> Any:
        return await self.api_client.request(f"/upload/{_segment(file_id)}", "DELETE")

    # --- Sync & backup ---

    async def sync_data(self) -> Any:
        return await self.api_client.request("/sync", "POST")

    async def get_sync_status(self) -> Any:
        return await self.api_client.request("/sync/status")

    async def backup_data(self) -> Any:
        return await self.api_client.request("/backup", "POST")

    async def restore_data(self, backup_id: Identifier) -> Any:
        return await self.api_client.request(f"/backup/{_segment(backup_id)}/restore", "POST")

    # --- Service info ---

    async def health_check(self) -> Any:
        return await self.api_client.request("/health")

    async def get_api_version(self) -> Any:
        return await self.api_client.request("/version")
