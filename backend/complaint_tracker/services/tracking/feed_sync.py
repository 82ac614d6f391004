"""
Grievance Feed Sync

Imports the municipal grievance portal feed produced by the portal scraper:

    {"syncedAt": "<iso timestamp>", "complaints": [{"complaintId": ..., ...}]}

Feed rows are normalized into Complaints (portal Smart_UMC_Grievances,
category Grievance) and merged into the local set with reconcile(), so
locally attached documents and resolution timestamps survive every sync.

A sync is skipped when the feed's syncedAt matches the last one imported and
feed complaints are already present, unless forced.
"""
import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import httpx

from ...models.domain import (
    Complaint, ComplaintCategory, ComplaintStatus, is_terminal, new_complaint_id, utc_now_iso,
)
from .reconciliation import reconcile_with_stats
from .store import ComplaintStore

logger = logging.getLogger(__name__)

FEED_URL = os.getenv("FEED_URL", "data/umc-complaints.json")
FEED_PORTAL_NAME = "Smart_UMC_Grievances"
FEED_PORTAL_NAMES = frozenset({"Smart_UMC_Grievances", "UMC_Grievances"})
SYNCED_AT_STATE_KEY = "umc-sync:last-synced-at"

MONTHS = {
    "jan": "01", "feb": "02", "mar": "03", "apr": "04", "may": "05", "jun": "06",
    "jul": "07", "aug": "08", "sep": "09", "oct": "10", "nov": "11", "dec": "12",
}

YMD_RE = re.compile(r"(\d{4})[-/](\d{2})[-/](\d{2})")
DMY_RE = re.compile(r"(\d{1,2})-([A-Za-z]{3})-(\d{4})")


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize_status(value: Optional[str]) -> ComplaintStatus:
    """Map free-text portal status onto the closed status enumeration."""
    if not value:
        return ComplaintStatus.SUBMITTED
    cleaned = value.strip()
    try:
        return ComplaintStatus(cleaned)
    except ValueError:
        pass
    if re.search(r"resolve|closed", cleaned, re.IGNORECASE):
        return ComplaintStatus.RESOLVED
    if re.search(r"progress", cleaned, re.IGNORECASE):
        return ComplaintStatus.IN_PROGRESS
    if re.search(r"assign", cleaned, re.IGNORECASE):
        return ComplaintStatus.ASSIGNED
    if re.search(r"pend", cleaned, re.IGNORECASE):
        return ComplaintStatus.PENDING
    return ComplaintStatus.SUBMITTED


def normalize_feed_date(value: Optional[str]) -> Optional[str]:
    """
    Portal date text -> YYYY-MM-DD.

    Accepts 2026-01-31, 2026/01/31 and 31-Jan-2026. Returns None otherwise.
    """
    if not value:
        return None
    match = YMD_RE.search(value)
    if match:
        candidate = f"{match.group(1)}-{match.group(2)}-{match.group(3)}"
    else:
        match = DMY_RE.search(value)
        if not match:
            return None
        month = MONTHS.get(match.group(2).lower())
        if not month:
            return None
        candidate = f"{match.group(3)}-{month}-{int(match.group(1)):02d}"

    try:
        date.fromisoformat(candidate)
    except ValueError:
        return None
    return candidate


def _text(item: Mapping[str, Any], key: str) -> str:
    return str(item.get(key) or "").strip()


def feed_item_to_complaint(item: Mapping[str, Any], now: Optional[str] = None) -> Optional[Complaint]:
    """One feed row -> Complaint, or None when it has no complaint reference."""
    complaint_id = _text(item, "complaintId")
    if not complaint_id:
        return None

    now = now or utc_now_iso()
    status = normalize_status(item.get("status"))
    date_lodged = normalize_feed_date(_text(item, "dateLodged"))

    return Complaint(
        id=new_complaint_id(),
        complaint_id=complaint_id,
        complaint_name=_text(item, "complaintName") or "UMC Grievance",
        portal_name=FEED_PORTAL_NAME,
        category=ComplaintCategory.GRIEVANCE,
        description=_text(item, "description"),
        date_lodged=date_lodged or now[:10],
        status=status,
        department=_text(item, "department"),
        office_email=_text(item, "officeEmail"),
        office_phone=_text(item, "officePhone"),
        expected_response_date=normalize_feed_date(_text(item, "expectedResponseDate")),
        documents=[],
        notes=_text(item, "notes"),
        last_updated=now,
        resolved_at=now if is_terminal(status) else None,
    )


def parse_feed(payload: Any, now: Optional[str] = None) -> List[Complaint]:
    """Feed document (object with "complaints", or a bare list) -> Complaints."""
    if isinstance(payload, Mapping):
        rows = payload.get("complaints")
    else:
        rows = payload
    if not isinstance(rows, list):
        return []

    now = now or utc_now_iso()
    complaints = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        complaint = feed_item_to_complaint(row, now=now)
        if complaint is not None:
            complaints.append(complaint)
    return complaints


def load_feed(source: str = FEED_URL, client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    """
    Read the feed document from an http(s) URL or a local path.

    Raises httpx.HTTPError, OSError or ValueError on failure.
    """
    if source.startswith(("http://", "https://")):
        http = client or httpx.Client(timeout=30)
        try:
            response = http.get(source, headers={"Cache-Control": "no-store"})
            response.raise_for_status()
            return response.json()
        finally:
            if client is None:
                http.close()

    return json.loads(Path(source).read_text(encoding="utf-8"))


# =============================================================================
# CLIENT-SIDE SYNC
# =============================================================================

@dataclass
class FeedSyncResult:
    imported: int
    updated: int = 0
    skipped: bool = False


class FeedSyncService:
    """Pulls the grievance feed into a ComplaintStore."""

    def __init__(
        self,
        store: ComplaintStore,
        fetch_feed: Callable[[], Dict[str, Any]] = load_feed,
    ):
        self.store = store
        self.fetch_feed = fetch_feed

    def sync(self, force: bool = False) -> FeedSyncResult:
        """
        Fetch the feed and merge it into the store.

        Failures are logged and reported as nothing imported; the store is
        left untouched.
        """
        try:
            feed = self.fetch_feed()
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.error(f"Grievance feed sync failed: {e}")
            return FeedSyncResult(imported=0, skipped=True)

        cache = self.store.cache
        remote_synced_at = ""
        if isinstance(feed, Mapping):
            remote_synced_at = str(feed.get("syncedAt") or "").strip()
        last_synced_at = cache.get_state(SYNCED_AT_STATE_KEY) or ""
        has_feed_complaints = any(
            c.portal_name in FEED_PORTAL_NAMES for c in self.store.complaints
        )

        if not force and remote_synced_at and remote_synced_at == last_synced_at and has_feed_complaints:
            logger.info(f"Grievance feed unchanged since {last_synced_at}, skipping")
            return FeedSyncResult(imported=0, skipped=True)

        incoming = parse_feed(feed)
        if not incoming:
            if remote_synced_at:
                cache.set_state(SYNCED_AT_STATE_KEY, remote_synced_at)
            return FeedSyncResult(imported=0)

        result = reconcile_with_stats(self.store.complaints, incoming)
        self.store.set_complaints(result.complaints)
        if remote_synced_at:
            cache.set_state(SYNCED_AT_STATE_KEY, remote_synced_at)

        logger.info(f"Grievance feed sync: {result.added} new, {result.updated} updated")
        return FeedSyncResult(imported=result.added, updated=result.updated)
