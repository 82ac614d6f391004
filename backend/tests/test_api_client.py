"""
Tests for ComplaintsApiClient against an httpx.MockTransport.
"""
import json

import httpx
import pytest


def make_client(handler):
    from complaint_tracker.services.tracking.api_client import ComplaintsApiClient

    http = httpx.Client(base_url="http://tracker.test/api", transport=httpx.MockTransport(handler))
    return ComplaintsApiClient(client=http)


WIRE_COMPLAINT = {
    "id": "srv-1",
    "complaintId": "R-1",
    "portalName": "RTI Online",
    "category": "RTI",
    "status": "Pending",
    "dateLodged": "2026-03-01",
    "lastUpdated": "2026-03-01T00:00:00.000Z",
    "documents": [],
    # derived fields the server adds are ignored
    "dueDate": "2026-03-31",
    "displayStatus": "Pending",
}


class TestComplaintsApiClient:

    def test_fetch_complaints(self):
        def handler(request):
            assert request.method == "GET"
            assert request.url.path == "/api/complaints"
            return httpx.Response(200, json=[WIRE_COMPLAINT])

        with make_client(handler) as client:
            [complaint] = client.fetch_complaints()

        assert complaint.id == "srv-1"
        assert complaint.portal_name == "RTI Online"
        assert complaint.status.value == "Pending"

    def test_create_posts_body(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=WIRE_COMPLAINT)

        client = make_client(handler)
        complaint = client.create_complaint({"complaintId": "R-1", "portalName": "RTI Online"})

        assert seen["body"] == {"complaintId": "R-1", "portalName": "RTI Online"}
        assert complaint.id == "srv-1"

    def test_update_sends_wire_names(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=WIRE_COMPLAINT)

        make_client(handler).update_complaint("srv-1", {"office_email": "pio@example.gov.in", "status": "Pending"})

        assert seen["method"] == "PATCH"
        assert seen["path"] == "/api/complaints/srv-1"
        assert seen["body"] == {"officeEmail": "pio@example.gov.in", "status": "Pending"}

    def test_delete_accepts_204(self):
        client = make_client(lambda request: httpx.Response(204))
        assert client.delete_complaint("srv-1") is None

    def test_delete_404_raises(self):
        from complaint_tracker.services.tracking.api_client import ComplaintApiError

        client = make_client(lambda request: httpx.Response(404, json={"detail": "Complaint not found"}))

        with pytest.raises(ComplaintApiError) as excinfo:
            client.delete_complaint("missing")
        assert excinfo.value.status_code == 404

    def test_error_response_raises_with_status(self):
        from complaint_tracker.services.tracking.api_client import ComplaintApiError

        client = make_client(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(ComplaintApiError) as excinfo:
            client.fetch_complaints()
        assert excinfo.value.status_code == 500
        assert "boom" in str(excinfo.value)

    def test_bulk_upsert_returns_count(self):
        from complaint_tracker.models.domain import Complaint

        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"upserted": 1, "added": 1, "updated": 0})

        count = make_client(handler).bulk_upsert([Complaint(id="A", complaint_id="1", portal_name="P")])

        assert count == 1
        assert seen["body"]["complaints"][0]["complaintId"] == "1"

    def test_complaint_payload_drops_server_owned_fields(self):
        from complaint_tracker.services.tracking.api_client import complaint_payload
        from complaint_tracker.models.domain import Complaint

        payload = complaint_payload(Complaint(
            id=None, complaint_id="1", portal_name="P",
            last_updated="2026-03-01T00:00:00Z", resolved_at="2026-03-01T00:00:00Z",
        ))

        assert "id" not in payload
        assert "lastUpdated" not in payload
        assert "resolvedAt" not in payload
        assert payload["complaintId"] == "1"
