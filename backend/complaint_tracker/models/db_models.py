"""
Complaint Tracker - SQLAlchemy ORM Models
PostgreSQL database models for persistent storage
"""
from datetime import date, datetime, timezone
from typing import Optional

from dateutil.parser import isoparse
from sqlalchemy import Column, String, Integer, DateTime, Date, Text, JSON, BigInteger

from ..database import Base
from .domain import Complaint, AttachmentRef, coerce_category, coerce_status


class ComplaintDB(Base):
    """Persisted complaint. One row per natural key."""
    __tablename__ = "complaints"

    id = Column(String(64), primary_key=True)
    complaint_id = Column(String(255), nullable=False)
    complaint_name = Column(String(500), default="")
    portal_name = Column(String(255), nullable=False)
    # lower(trim(portal)) :: lower(trim(complaint id)); enforces complaint identity
    natural_key = Column(String(520), nullable=False, unique=True, index=True)
    category = Column(String(32), nullable=False, default="Other")
    description = Column(Text, nullable=False, default="")
    date_lodged = Column(Date, nullable=False)
    status = Column(String(32), nullable=False)
    department = Column(String(255), nullable=False, default="")
    office_email = Column(String(255), default="")
    office_phone = Column(String(64), default="")
    expected_response_date = Column(Date, nullable=True)
    documents = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=False, default="")
    section_data = Column(JSON, nullable=True)
    last_updated = Column(DateTime, nullable=False)  # naive UTC
    resolved_at = Column(DateTime, nullable=True)    # naive UTC
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_complaint(self) -> Complaint:
        """Row -> domain dataclass, dates rendered back to ISO strings."""
        return Complaint(
            id=self.id,
            complaint_id=self.complaint_id,
            complaint_name=self.complaint_name or "",
            portal_name=self.portal_name,
            category=coerce_category(self.category),
            status=coerce_status(self.status),
            description=self.description or "",
            date_lodged=format_date(self.date_lodged),
            department=self.department or "",
            office_email=self.office_email or "",
            office_phone=self.office_phone or "",
            expected_response_date=format_date(self.expected_response_date),
            documents=[AttachmentRef.from_dict(doc) for doc in (self.documents or [])],
            notes=self.notes or "",
            section_data=self.section_data,
            last_updated=format_timestamp(self.last_updated),
            resolved_at=format_timestamp(self.resolved_at),
        )

    def apply(self, complaint: Complaint, natural_key: str) -> None:
        """Copy every field of a domain complaint onto this row (id excluded)."""
        today = date.today()
        self.complaint_id = complaint.complaint_id
        self.complaint_name = complaint.complaint_name or ""
        self.portal_name = complaint.portal_name
        self.natural_key = natural_key
        self.category = complaint.category.value
        self.description = complaint.description or ""
        self.date_lodged = parse_date_column(complaint.date_lodged) or today
        self.status = complaint.status.value
        self.department = complaint.department or ""
        self.office_email = complaint.office_email or ""
        self.office_phone = complaint.office_phone or ""
        self.expected_response_date = parse_date_column(complaint.expected_response_date)
        self.documents = [doc.to_dict() for doc in complaint.documents]
        self.notes = complaint.notes or ""
        self.section_data = complaint.section_data
        self.last_updated = parse_timestamp_column(complaint.last_updated) or datetime.utcnow()
        self.resolved_at = parse_timestamp_column(complaint.resolved_at)


class SyncRunDB(Base):
    """One row per feed import, successful or not."""
    __tablename__ = "sync_runs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    source = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False)  # "success" | "skipped" | "failed"
    count_imported = Column(Integer, nullable=False, default=0)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "status": self.status,
            "countImported": self.count_imported,
            "message": self.message,
            "createdAt": format_timestamp(self.created_at),
        }


# =============================================================================
# COLUMN CONVERSION HELPERS
# =============================================================================

def format_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Naive UTC column value -> ISO string with a Z suffix."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


def parse_date_column(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return isoparse(str(value)).date()
    except (ValueError, OverflowError):
        return None


def parse_timestamp_column(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = isoparse(str(value))
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
