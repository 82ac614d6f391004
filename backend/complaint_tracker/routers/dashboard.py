"""Dashboard API Routes - aggregate views over every tracked complaint."""
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.complaint_service import ComplaintService
from ..services.tracking.dashboard import dashboard_summary


router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("", response_model=dict)
async def get_dashboard(db: Session = Depends(get_db)):
    """
    Overview counters, status and category distributions, busiest portals,
    the weekly lodged timeline and current alerts.
    """
    service = ComplaintService(db)
    return dashboard_summary(service.list_complaints(), today=date.today())
