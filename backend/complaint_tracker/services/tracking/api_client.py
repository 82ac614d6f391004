"""
Complaints API Client

Thin httpx wrapper over the tracker's own REST endpoints, used by the
ComplaintStore when it runs against a remote backend.
"""
import logging
import os
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ...models.domain import Complaint, WIRE_NAMES

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("COMPLAINTS_API_BASE_URL", "http://localhost:4000/api")
API_TIMEOUT_SECONDS = float(os.getenv("COMPLAINTS_API_TIMEOUT", "10"))


class ComplaintApiError(Exception):
    """Non-success response from the complaints API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message or f"Request failed: {status_code}")
        self.status_code = status_code


class ComplaintsApiClient:
    """Synchronous client for /complaints endpoints."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = API_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ComplaintsApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # =========================================================================
    # REQUESTS
    # =========================================================================

    def fetch_complaints(self) -> List[Complaint]:
        response = self._client.get("/complaints", headers={"Cache-Control": "no-store"})
        return [Complaint.from_dict(item) for item in self._parse_json(response)]

    def create_complaint(self, data: Mapping[str, Any]) -> Complaint:
        response = self._client.post("/complaints", json=dict(data))
        return Complaint.from_dict(self._parse_json(response))

    def update_complaint(self, complaint_id: str, patch: Mapping[str, Any]) -> Complaint:
        body = {WIRE_NAMES.get(key, key): value for key, value in patch.items()}
        response = self._client.patch(f"/complaints/{complaint_id}", json=body)
        return Complaint.from_dict(self._parse_json(response))

    def delete_complaint(self, complaint_id: str) -> None:
        response = self._client.delete(f"/complaints/{complaint_id}")
        if response.status_code != 204 and not response.is_success:
            raise ComplaintApiError(response.status_code, response.text)

    def bulk_upsert(self, complaints: List[Complaint]) -> int:
        payload = {"complaints": [c.to_dict() for c in complaints]}
        response = self._client.post("/complaints/bulk-upsert", json=payload)
        return int(self._parse_json(response).get("upserted", 0))

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        if not response.is_success:
            logger.warning(f"{response.request.method} {response.request.url} -> {response.status_code}")
            raise ComplaintApiError(response.status_code, response.text)
        return response.json()


def complaint_payload(complaint: Complaint) -> Dict[str, Any]:
    """Wire body for create: everything except server-owned fields."""
    payload = complaint.to_dict()
    for server_owned in ("lastUpdated", "resolvedAt"):
        payload.pop(server_owned, None)
    if not payload.get("id"):
        payload.pop("id", None)
    return payload
