"""
Complaint Tracker - Domain Models

The in-memory representation of a tracked complaint. Every service works on
these dataclasses; the REST layer, the local cache and the import feeds all
convert to and from them at the boundary.

Dates are carried as ISO strings exactly as they arrive (YYYY-MM-DD for
calendar dates, ISO-8601 for timestamps). Parsing happens on read in the
deadline engine, so a malformed value degrades to an absent result instead of
failing the whole record.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union
from uuid import uuid4

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================

class ComplaintCategory(str, Enum):
    RTI = "RTI"
    GRIEVANCE = "Grievance"
    OTHER = "Other"


class ComplaintStatus(str, Enum):
    """Stored lifecycle states. Order matches the portal workflow."""
    FILED = "Filed"
    SUBMITTED = "Submitted"
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    TRANSFERED = "Transfered"
    ASSIGNED = "Assigned"
    FIRST_APPEAL = "First Appeal"
    SECOND_APPEAL = "Second Appeal"
    CLOSED = "Closed"
    RESOLVED = "Resolved"


class DisplayStatus(str, Enum):
    """View-only labels. Never persisted as a complaint status."""
    OVERDUE = "Overdue"


# Tuples, not sets: Enum hashes by member name, so raw "Resolved" strings
# only match through ==.
TERMINAL_STATUSES = (ComplaintStatus.RESOLVED, ComplaintStatus.CLOSED)
APPEAL_STATUSES = (ComplaintStatus.FIRST_APPEAL, ComplaintStatus.SECOND_APPEAL)

StatusLike = Union[ComplaintStatus, str]


def is_terminal(status: Optional[StatusLike]) -> bool:
    """True for Resolved and Closed."""
    return status in TERMINAL_STATUSES


def utc_now_iso() -> str:
    """Current UTC timestamp in the same shape browsers emit (millis + Z)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_complaint_id() -> str:
    return str(uuid4())


# =============================================================================
# ATTACHMENTS
# =============================================================================

@dataclass
class AttachmentRef:
    """Metadata for a blob held by the attachment store."""
    id: str
    name: str
    type: str = "application/octet-stream"
    size: int = 0
    added_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "addedAt": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AttachmentRef":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            type=str(data.get("type") or "application/octet-stream"),
            size=int(data.get("size") or 0),
            added_at=str(data.get("addedAt") or data.get("added_at") or ""),
        )


# =============================================================================
# COMPLAINT
# =============================================================================

# snake_case attribute -> camelCase wire name
WIRE_NAMES = {
    "id": "id",
    "complaint_id": "complaintId",
    "complaint_name": "complaintName",
    "portal_name": "portalName",
    "category": "category",
    "description": "description",
    "date_lodged": "dateLodged",
    "status": "status",
    "department": "department",
    "office_email": "officeEmail",
    "office_phone": "officePhone",
    "expected_response_date": "expectedResponseDate",
    "documents": "documents",
    "notes": "notes",
    "section_data": "sectionData",
    "last_updated": "lastUpdated",
    "resolved_at": "resolvedAt",
}
ATTRIBUTE_NAMES = {wire: attr for attr, wire in WIRE_NAMES.items()}


def coerce_status(value: StatusLike) -> ComplaintStatus:
    """Map a status string onto the closed enumeration. Raises ValueError."""
    if isinstance(value, ComplaintStatus):
        return value
    return ComplaintStatus(str(value).strip())


def coerce_category(value: Optional[Union[ComplaintCategory, str]]) -> ComplaintCategory:
    """Unknown categories fall back to Other."""
    if isinstance(value, ComplaintCategory):
        return value
    try:
        return ComplaintCategory(str(value or "").strip())
    except ValueError:
        if value:
            logger.warning(f"Unknown complaint category '{value}', treating as Other")
        return ComplaintCategory.OTHER


@dataclass
class Complaint:
    """A single tracked complaint or RTI request."""
    id: Optional[str]
    complaint_id: str
    portal_name: str
    category: ComplaintCategory = ComplaintCategory.OTHER
    status: ComplaintStatus = ComplaintStatus.SUBMITTED
    date_lodged: Optional[str] = None
    last_updated: Optional[str] = None
    complaint_name: str = ""
    description: str = ""
    department: str = ""
    office_email: str = ""
    office_phone: str = ""
    notes: str = ""
    expected_response_date: Optional[str] = None
    resolved_at: Optional[str] = None
    documents: List[AttachmentRef] = field(default_factory=list)
    section_data: Optional[Dict[str, Any]] = None

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase wire names."""
        data = asdict(self)
        data["category"] = self.category.value
        data["status"] = self.status.value
        data["documents"] = [doc.to_dict() for doc in self.documents]
        return {WIRE_NAMES[key]: value for key, value in data.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Complaint":
        """
        Build a complaint from a wire (camelCase) or attribute (snake_case) mapping.

        Unknown keys are ignored. An unknown status raises ValueError.
        """
        values: Dict[str, Any] = {}
        for key, value in data.items():
            attr = ATTRIBUTE_NAMES.get(key, key)
            if attr in WIRE_NAMES:
                values[attr] = value

        documents = values.get("documents") or []
        values["documents"] = [
            doc if isinstance(doc, AttachmentRef) else AttachmentRef.from_dict(doc)
            for doc in documents
        ]
        values["category"] = coerce_category(values.get("category"))
        values["status"] = coerce_status(values.get("status") or ComplaintStatus.SUBMITTED)
        values["complaint_id"] = str(values.get("complaint_id") or "")
        values["portal_name"] = str(values.get("portal_name") or "")
        values.setdefault("id", None)

        for text_field in ("complaint_name", "description", "department",
                           "office_email", "office_phone", "notes"):
            if values.get(text_field) is None:
                values.pop(text_field, None)
        for optional_date in ("expected_response_date", "resolved_at"):
            if values.get(optional_date) == "":
                values[optional_date] = None

        return cls(**values)
