"""
Deadline Engine

Derives response deadlines for tracked complaints.
Pure functions over a Complaint snapshot - no database, no side effects.

Key behaviors:
- Statutory timeline per category and appeal stage (15/30/90 days)
- Explicit expected response date always overrides the computed deadline
- Appeals are measured from the date the complaint entered the appeal stage
- Overdue is a display label computed on read, never a stored status
- Resolved and Closed complaints carry no outstanding deadline

All day counts are calendar-day differences between naive dates.
Unparsable dates produce None instead of raising, so callers can sort and
filter on the result directly.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Union

from dateutil.parser import isoparse

from ...models.domain import (
    Complaint, ComplaintCategory, ComplaintStatus, DisplayStatus,
    APPEAL_STATUSES, StatusLike, is_terminal,
)


# =============================================================================
# TIMELINE CONFIGURATION
# =============================================================================

TIMELINE_CONFIG = {
    ComplaintCategory.RTI: {
        "days": 30,
        "second_appeal_days": 90,
        "description": "RTI reply window; second appeals get the longer commission window",
    },
    ComplaintCategory.GRIEVANCE: {
        "days": 30,
        "description": "Public grievance redressal window",
    },
    ComplaintCategory.OTHER: {
        "days": 15,
        "description": "Default follow-up window",
    },
}


# =============================================================================
# DATE PARSING
# =============================================================================

DateLike = Union[date, datetime, str, None]


def parse_calendar_date(value: DateLike) -> Optional[date]:
    """
    Reduce a date, datetime or ISO string to a naive calendar date.

    Time of day and timezone offsets are dropped, not converted.
    Returns None for empty or unparsable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return isoparse(text).date()
    except (ValueError, OverflowError):
        return None


# =============================================================================
# DEADLINE FUNCTIONS
# =============================================================================

def statutory_timeline_days(
    category: Union[ComplaintCategory, str, None],
    status: StatusLike,
) -> Optional[int]:
    """Days allowed before a complaint falls due, or None once it is closed out."""
    if is_terminal(status):
        return None

    if category == ComplaintCategory.RTI:
        config = TIMELINE_CONFIG[ComplaintCategory.RTI]
        if status == ComplaintStatus.SECOND_APPEAL:
            return config["second_appeal_days"]
        return config["days"]

    if category == ComplaintCategory.GRIEVANCE:
        return TIMELINE_CONFIG[ComplaintCategory.GRIEVANCE]["days"]

    return TIMELINE_CONFIG[ComplaintCategory.OTHER]["days"]


def effective_due_date(complaint: Complaint) -> Optional[date]:
    """
    The date a response is due.

    An explicit expected_response_date wins whenever it parses. Otherwise the
    statutory timeline is added to last_updated (appeals) or date_lodged.
    """
    explicit = parse_calendar_date(complaint.expected_response_date)
    if explicit:
        return explicit

    timeline = statutory_timeline_days(complaint.category, complaint.status)
    if timeline is None:
        return None

    if complaint.status in APPEAL_STATUSES:
        base = parse_calendar_date(complaint.last_updated)
    else:
        base = parse_calendar_date(complaint.date_lodged)

    if base is None:
        return None
    try:
        return base + timedelta(days=timeline)
    except OverflowError:
        # Past date.max: treat as undated
        return None


def days_until_due(complaint: Complaint, today: Optional[date] = None) -> Optional[int]:
    """Signed calendar days to the due date; negative when overdue."""
    due = effective_due_date(complaint)
    if due is None:
        return None
    today = today or date.today()
    return (due - today).days


def is_overdue(complaint: Complaint, today: Optional[date] = None) -> bool:
    if is_terminal(complaint.status):
        return False
    days = days_until_due(complaint, today=today)
    return days is not None and days < 0


def display_status(
    complaint: Complaint,
    today: Optional[date] = None,
) -> Union[ComplaintStatus, DisplayStatus]:
    """Stored status, or the Overdue label for open complaints past their due date."""
    if is_terminal(complaint.status):
        return complaint.status
    if is_overdue(complaint, today=today):
        return DisplayStatus.OVERDUE
    return complaint.status


def days_pending(complaint: Complaint, today: Optional[date] = None) -> Optional[int]:
    """
    Calendar days the complaint has been (or was) open.

    Closed-out complaints count up to resolved_at, falling back to
    last_updated. Never negative.
    """
    start = parse_calendar_date(complaint.date_lodged)
    if start is None:
        return None

    if is_terminal(complaint.status):
        end = parse_calendar_date(complaint.resolved_at or complaint.last_updated)
    else:
        end = today or date.today()

    if end is None:
        return None
    return max(0, (end - start).days)


def deadline_summary(complaint: Complaint, today: Optional[date] = None) -> Dict[str, Any]:
    """Every derived deadline value for one complaint, keyed for the JSON boundary."""
    today = today or date.today()
    due = effective_due_date(complaint)
    return {
        "timelineDays": statutory_timeline_days(complaint.category, complaint.status),
        "dueDate": due.isoformat() if due else None,
        "daysUntilDue": days_until_due(complaint, today=today),
        "isOverdue": is_overdue(complaint, today=today),
        "displayStatus": display_status(complaint, today=today).value,
        "daysPending": days_pending(complaint, today=today),
    }
