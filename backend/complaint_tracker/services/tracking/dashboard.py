"""
Dashboard Aggregates

Read-side summaries over a complaint snapshot: deadline alerts, overview
counters and the distributions the dashboard charts are drawn from.
All counts use the display status, so Overdue shows up as its own bucket.
"""
from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from ...models.domain import Complaint, ComplaintStatus, DisplayStatus, is_terminal
from .deadline_engine import (
    days_until_due, display_status, effective_due_date, parse_calendar_date,
)

ALERT_WINDOW_DAYS = 7
ALERT_LIMIT = 6
TOP_PORTALS = 6
TIMELINE_WEEKS = 12


# =============================================================================
# ALERTS
# =============================================================================

def build_alerts(
    complaints: Iterable[Complaint],
    today: Optional[date] = None,
    window_days: int = ALERT_WINDOW_DAYS,
    limit: int = ALERT_LIMIT,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Overdue and upcoming deadlines for open complaints.

    Upcoming means due within `window_days` (today included). Each list is
    sorted most urgent first and capped at `limit`.
    """
    today = today or date.today()
    overdue: List[Dict[str, Any]] = []
    upcoming: List[Dict[str, Any]] = []

    for complaint in complaints:
        if is_terminal(complaint.status):
            continue
        until = days_until_due(complaint, today=today)
        due = effective_due_date(complaint)
        if until is None or due is None:
            continue

        item = {
            "id": complaint.id,
            "complaintId": complaint.complaint_id,
            "portalName": complaint.portal_name,
            "daysUntil": until,
            "dueDate": due.isoformat(),
        }
        if until < 0:
            overdue.append({**item, "kind": "overdue"})
        elif until <= window_days:
            upcoming.append({**item, "kind": "upcoming"})

    overdue.sort(key=lambda i: i["daysUntil"])
    upcoming.sort(key=lambda i: i["daysUntil"])
    return {"overdue": overdue[:limit], "upcoming": upcoming[:limit]}


# =============================================================================
# AGGREGATES
# =============================================================================

def overview(complaints: Iterable[Complaint], today: Optional[date] = None) -> Dict[str, int]:
    """Total, resolved, overdue and everything else still pending."""
    counts = {"total": 0, "resolved": 0, "overdue": 0, "pending": 0}
    for complaint in complaints:
        counts["total"] += 1
        shown = display_status(complaint, today=today)
        if shown == ComplaintStatus.RESOLVED:
            counts["resolved"] += 1
        elif shown == DisplayStatus.OVERDUE:
            counts["overdue"] += 1
        else:
            counts["pending"] += 1
    return counts


def status_distribution(
    complaints: Iterable[Complaint],
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    counter = Counter(display_status(c, today=today).value for c in complaints)
    return [{"name": name, "value": value} for name, value in counter.most_common()]


def category_counts(complaints: Iterable[Complaint]) -> List[Dict[str, Any]]:
    counter = Counter(c.category.value for c in complaints)
    return [{"category": category, "count": count} for category, count in counter.items()]


def portal_counts(complaints: Iterable[Complaint], top: int = TOP_PORTALS) -> List[Dict[str, Any]]:
    """Busiest portals; the tail is folded into a single "Other" entry."""
    ranked = Counter(c.portal_name for c in complaints).most_common()
    rows = [{"portal": portal, "count": count} for portal, count in ranked[:top]]
    rest = sum(count for _, count in ranked[top:])
    if rest:
        rows.append({"portal": "Other", "count": rest})
    return rows


def weekly_timeline(
    complaints: Iterable[Complaint],
    today: Optional[date] = None,
    weeks: int = TIMELINE_WEEKS,
) -> List[Dict[str, Any]]:
    """Complaints lodged per week (weeks start Monday), oldest week first."""
    today = today or date.today()
    current_week = today - timedelta(days=today.weekday())
    buckets = {
        current_week - timedelta(weeks=offset): 0
        for offset in range(weeks - 1, -1, -1)
    }

    for complaint in complaints:
        lodged = parse_calendar_date(complaint.date_lodged)
        if lodged is None:
            continue
        week_start = lodged - timedelta(days=lodged.weekday())
        if week_start in buckets:
            buckets[week_start] += 1

    return [
        {"weekStart": week.isoformat(), "label": f"{week:%b} {week.day}", "count": count}
        for week, count in sorted(buckets.items())
    ]


def dashboard_summary(complaints: List[Complaint], today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    return {
        "overview": overview(complaints, today=today),
        "statusDistribution": status_distribution(complaints, today=today),
        "categories": category_counts(complaints),
        "portals": portal_counts(complaints),
        "timeline": weekly_timeline(complaints, today=today),
        "alerts": build_alerts(complaints, today=today),
    }
