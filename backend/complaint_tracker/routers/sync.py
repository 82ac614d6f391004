"""
Feed Sync API Routes

INTERNAL ENDPOINTS - called by the portal scraper job, not by users.
Requires the X-Internal-Key header.
"""
import logging
import os
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException, Header, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.complaint_service import ComplaintService
from ..services.tracking.feed_sync import FEED_URL, load_feed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", tags=["feed-sync"])


# =============================================================================
# INTERNAL API KEY VALIDATION
# =============================================================================

INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "feed-sync-internal-key-change-in-production")


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for feed endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


# =============================================================================
# FEED ENDPOINTS (SYSTEM-ONLY)
# =============================================================================

@router.post("/feed-sync", response_model=dict)
async def run_feed_sync(
    feed: Optional[Dict[str, Any]] = Body(None),
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Merge the grievance feed into the complaints table.

    The request body is the feed document. Without a body the feed is read
    from FEED_URL. Each call is recorded as a sync run.
    """
    service = ComplaintService(db)
    source = "umc-feed"

    if feed is None:
        try:
            feed = load_feed(FEED_URL)
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.error(f"Could not load grievance feed from {FEED_URL}: {e}")
            raise HTTPException(status_code=502, detail=f"Feed unavailable: {e}")
        source = FEED_URL

    try:
        return service.import_feed(feed, source=source)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/sync-runs", response_model=dict)
async def get_sync_runs(
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """Most recent feed imports, newest first."""
    service = ComplaintService(db)
    runs = service.list_sync_runs(limit=limit)
    return {"count": len(runs), "runs": runs}
