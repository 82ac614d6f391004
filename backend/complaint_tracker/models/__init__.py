"""Complaint Tracker - Data Models"""
from .domain import (
    # Enums
    ComplaintCategory, ComplaintStatus, DisplayStatus,
    TERMINAL_STATUSES, APPEAL_STATUSES,
    # Records
    AttachmentRef, Complaint,
    # Helpers
    is_terminal, coerce_status, coerce_category, utc_now_iso, new_complaint_id,
)

__all__ = [
    "ComplaintCategory", "ComplaintStatus", "DisplayStatus",
    "TERMINAL_STATUSES", "APPEAL_STATUSES",
    "AttachmentRef", "Complaint",
    "is_terminal", "coerce_status", "coerce_category", "utc_now_iso", "new_complaint_id",
]
