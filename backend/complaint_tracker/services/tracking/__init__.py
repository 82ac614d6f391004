"""
Complaint Tracking Module

Deadline engine, reconciliation engine and the client-side store.

Data flow:
- Portal feeds / API / local cache -> Complaint records
- reconcile() merges incoming records into the working set by natural key
- deadline_engine derives due dates and Overdue from each record on read
"""
from .deadline_engine import (
    TIMELINE_CONFIG,
    parse_calendar_date,
    statutory_timeline_days,
    effective_due_date,
    days_until_due,
    is_overdue,
    display_status,
    days_pending,
    deadline_summary,
)
from .reconciliation import (
    IdentityConflictError,
    ReconcileResult,
    natural_key,
    dedupe,
    merge_record,
    reconcile,
    reconcile_with_stats,
)
from .lifecycle import (
    STATUS_CONFIG,
    build_complaint,
    import_record,
    apply_patch,
    status_options,
)
from .attachments import AttachmentStore, StoredAttachment
from .local_cache import LocalCache
from .api_client import ComplaintApiError, ComplaintsApiClient
from .store import ComplaintStore
from .feed_sync import FeedSyncResult, FeedSyncService, parse_feed, load_feed

__all__ = [
    # Deadline engine
    "TIMELINE_CONFIG",
    "parse_calendar_date",
    "statutory_timeline_days",
    "effective_due_date",
    "days_until_due",
    "is_overdue",
    "display_status",
    "days_pending",
    "deadline_summary",
    # Reconciliation
    "IdentityConflictError",
    "ReconcileResult",
    "natural_key",
    "dedupe",
    "merge_record",
    "reconcile",
    "reconcile_with_stats",
    # Lifecycle
    "STATUS_CONFIG",
    "build_complaint",
    "import_record",
    "apply_patch",
    "status_options",
    # Client side
    "AttachmentStore",
    "StoredAttachment",
    "LocalCache",
    "ComplaintApiError",
    "ComplaintsApiClient",
    "ComplaintStore",
    "FeedSyncResult",
    "FeedSyncService",
    "parse_feed",
    "load_feed",
]
