"""
Complaint Lifecycle

Status transition rules shared by the API service, the local store and the
feed importers.

Statuses move freely among the open states. Resolved and Closed are
terminal: entering one stamps resolved_at, leaving one clears it.
"""
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from ...models.domain import (
    AttachmentRef, Complaint, ComplaintStatus, ATTRIBUTE_NAMES, WIRE_NAMES,
    coerce_category, coerce_status, is_terminal, new_complaint_id, utc_now_iso,
)


# =============================================================================
# STATE CONFIGURATION
# =============================================================================

STATUS_CONFIG = {
    ComplaintStatus.FILED: {"description": "Drafted or filed, not yet acknowledged", "terminal": False},
    ComplaintStatus.SUBMITTED: {"description": "Submitted on the portal", "terminal": False},
    ComplaintStatus.PENDING: {"description": "Awaiting action by the office", "terminal": False},
    ComplaintStatus.IN_PROGRESS: {"description": "Office is working on it", "terminal": False},
    ComplaintStatus.TRANSFERED: {"description": "Moved to another office", "terminal": False},
    ComplaintStatus.ASSIGNED: {"description": "Assigned to an officer", "terminal": False},
    ComplaintStatus.FIRST_APPEAL: {"description": "First appeal filed", "terminal": False},
    ComplaintStatus.SECOND_APPEAL: {"description": "Second appeal filed", "terminal": False},
    ComplaintStatus.CLOSED: {"description": "Closed by the office", "terminal": True},
    ComplaintStatus.RESOLVED: {"description": "Resolved", "terminal": True},
}

# Never changed by a patch
IMMUTABLE_FIELDS = frozenset({"id"})


def resolve_resolved_at(
    status: ComplaintStatus,
    supplied: Optional[str],
    previous: Optional[str],
    now: str,
) -> Optional[str]:
    """
    resolved_at for a complaint that now has `status`.

    Terminal: the explicitly supplied value, else the one already recorded,
    else the transition time. Open: always None.
    """
    if not is_terminal(status):
        return None
    return supplied or previous or now


def normalize_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Accept wire or attribute names; drop unknown and immutable keys."""
    normalized: Dict[str, Any] = {}
    for key, value in patch.items():
        attr = ATTRIBUTE_NAMES.get(key, key)
        if attr not in WIRE_NAMES or attr in IMMUTABLE_FIELDS:
            continue
        normalized[attr] = value
    if "status" in normalized:
        normalized["status"] = coerce_status(normalized["status"])
    if "category" in normalized:
        normalized["category"] = coerce_category(normalized["category"])
    if "documents" in normalized:
        normalized["documents"] = [
            doc if isinstance(doc, AttachmentRef) else AttachmentRef.from_dict(doc)
            for doc in (normalized["documents"] or [])
        ]
    return normalized


def status_options() -> List[Dict[str, Any]]:
    """Statuses in workflow order, for form dropdowns."""
    return [
        {"value": status.value, "description": config["description"], "terminal": config["terminal"]}
        for status, config in STATUS_CONFIG.items()
    ]


def build_complaint(
    data: Mapping[str, Any],
    now: Optional[str] = None,
    complaint_id: Optional[str] = None,
) -> Complaint:
    """
    Create a new complaint from user input.

    Generates an id when none is given, stamps last_updated, and sets
    resolved_at when the complaint is created already closed out.
    """
    now = now or utc_now_iso()
    complaint = Complaint.from_dict(data)
    return replace(
        complaint,
        id=complaint_id or complaint.id or new_complaint_id(),
        date_lodged=complaint.date_lodged or now[:10],
        last_updated=now,
        resolved_at=resolve_resolved_at(complaint.status, complaint.resolved_at, None, now),
    )


def import_record(data: Mapping[str, Any], now: Optional[str] = None) -> Complaint:
    """
    A complaint as supplied by an import file or bulk upsert.

    Unlike build_complaint, supplied timestamps are kept; only missing
    ones are filled. ids and resolved_at are settled by reconcile().
    """
    now = now or utc_now_iso()
    complaint = Complaint.from_dict(data)
    return replace(
        complaint,
        portal_name=complaint.portal_name or "Unknown",
        date_lodged=complaint.date_lodged or now[:10],
        last_updated=complaint.last_updated or now,
    )


def apply_patch(
    current: Complaint,
    patch: Mapping[str, Any],
    now: Optional[str] = None,
) -> Complaint:
    """
    Apply a partial update. The id never changes; last_updated is restamped.

    Raises ValueError for an unknown status.
    """
    now = now or utc_now_iso()
    changes = normalize_patch(patch)
    supplied_resolved_at = changes.pop("resolved_at", None)
    merged = replace(current, **changes)
    return replace(
        merged,
        last_updated=now,
        resolved_at=resolve_resolved_at(merged.status, supplied_resolved_at, current.resolved_at, now),
    )
