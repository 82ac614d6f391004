"""
Complaint API Routes

CRUD over tracked complaints plus the read-side views built on the deadline
engine: alerts, CSV export and status options.

Complaints are exchanged with camelCase keys. Every complaint returned by a
read endpoint also carries its derived deadline fields (dueDate,
daysUntilDue, isOverdue, displayStatus, daysPending).
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.domain import Complaint, ComplaintStatus
from ..services.complaint_service import ComplaintService
from ..services.tracking.attachments import ATTACHMENTS_DIR, AttachmentStore
from ..services.tracking.dashboard import build_alerts
from ..services.tracking.deadline_engine import deadline_summary
from ..services.tracking.export import complaints_to_csv, complaints_to_pdf, export_filename
from ..services.tracking.lifecycle import status_options
from ..services.tracking.reconciliation import IdentityConflictError


router = APIRouter(prefix="/api/complaints", tags=["complaints"])


def get_attachment_store() -> AttachmentStore:
    """Dependency - blob store used to release documents on delete."""
    return AttachmentStore(ATTACHMENTS_DIR)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class AttachmentPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    type: str = "application/octet-stream"
    size: int = 0
    added_at: str = Field("", alias="addedAt")


class ComplaintFields(BaseModel):
    """Fields shared by create and patch. Unknown statuses are rejected with 422."""
    model_config = ConfigDict(populate_by_name=True)

    complaint_name: Optional[str] = Field(None, alias="complaintName", description="Short title")
    category: Optional[str] = Field(None, description="RTI, Grievance or Other (unknown values become Other)")
    description: Optional[str] = Field(None, description="Free-text complaint body")
    date_lodged: Optional[str] = Field(None, alias="dateLodged", description="YYYY-MM-DD")
    status: Optional[ComplaintStatus] = Field(None, description="Stored lifecycle status")
    department: Optional[str] = Field(None, description="Office the complaint is addressed to")
    office_email: Optional[str] = Field(None, alias="officeEmail")
    office_phone: Optional[str] = Field(None, alias="officePhone")
    expected_response_date: Optional[str] = Field(
        None, alias="expectedResponseDate", description="Overrides the statutory deadline when set"
    )
    documents: Optional[List[AttachmentPayload]] = Field(None, description="Attachment references")
    notes: Optional[str] = Field(None, description="Private notes")
    section_data: Optional[Dict[str, Any]] = Field(None, alias="sectionData")
    resolved_at: Optional[str] = Field(None, alias="resolvedAt", description="Only kept for terminal statuses")


class CreateComplaintRequest(ComplaintFields):
    """Create, or update the complaint with the same portal and reference."""
    id: Optional[str] = Field(None, description="Client-generated id (optional)")
    complaint_id: str = Field(..., alias="complaintId", min_length=1, description="Portal reference number")
    portal_name: str = Field(..., alias="portalName", min_length=1, description="Portal the complaint was lodged on")
    last_updated: Optional[str] = Field(None, alias="lastUpdated")


class UpdateComplaintRequest(ComplaintFields):
    """Partial update. Only the fields sent are applied."""
    complaint_id: Optional[str] = Field(None, alias="complaintId")
    portal_name: Optional[str] = Field(None, alias="portalName")


class BulkUpsertRequest(BaseModel):
    complaints: List[Dict[str, Any]] = Field(..., description="Complaints in wire format")


def _wire(request: BaseModel) -> Dict[str, Any]:
    return request.model_dump(by_alias=True, exclude_unset=True)


def _with_deadlines(complaint: Complaint, today: Optional[date] = None) -> Dict[str, Any]:
    return {**complaint.to_dict(), **deadline_summary(complaint, today=today)}


# =============================================================================
# COLLECTION ENDPOINTS
# =============================================================================

@router.get("", response_model=list)
async def list_complaints(db: Session = Depends(get_db)):
    """All complaints, most recently lodged first, with derived deadlines."""
    service = ComplaintService(db)
    today = date.today()
    return [_with_deadlines(c, today) for c in service.list_complaints()]


@router.post("", response_model=dict, status_code=201)
async def create_complaint(
    request: CreateComplaintRequest,
    db: Session = Depends(get_db),
):
    """
    Create a complaint.

    If a complaint with the same portal and reference exists, it is updated
    in place and keeps its id and documents.
    A supplied id that belongs to another complaint is rejected with 409.
    """
    service = ComplaintService(db)
    try:
        complaint = service.create_complaint(_wire(request))
    except IdentityConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _with_deadlines(complaint)


@router.post("/bulk-upsert", response_model=dict)
async def bulk_upsert(
    request: BulkUpsertRequest,
    db: Session = Depends(get_db),
):
    """Upsert many complaints; existing rows keep their id and documents."""
    service = ComplaintService(db)
    try:
        return service.bulk_upsert(request.complaints)
    except IdentityConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (ValueError, KeyError) as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/alerts", response_model=dict)
async def get_alerts(db: Session = Depends(get_db)):
    """Overdue and due-within-a-week complaints."""
    service = ComplaintService(db)
    return build_alerts(service.list_complaints())


@router.get("/export.csv")
async def export_csv(db: Session = Depends(get_db)):
    service = ComplaintService(db)
    body = complaints_to_csv(service.list_complaints())
    filename = export_filename(datetime.now())
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export.pdf")
async def export_pdf(db: Session = Depends(get_db)):
    """Printable landscape table of every complaint with its deadline columns."""
    service = ComplaintService(db)
    now = datetime.now()
    body = complaints_to_pdf(service.list_complaints(), generated_at=now)
    filename = export_filename(now, extension="pdf")
    return Response(
        content=body,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/options", response_model=dict)
async def get_options():
    """Status values for form dropdowns."""
    return {"statuses": status_options()}


# =============================================================================
# ITEM ENDPOINTS
# =============================================================================

@router.get("/{complaint_id}", response_model=dict)
async def get_complaint(complaint_id: str, db: Session = Depends(get_db)):
    service = ComplaintService(db)
    complaint = service.get_complaint(complaint_id)
    if complaint is None:
        raise HTTPException(status_code=404, detail="Complaint not found")
    return _with_deadlines(complaint)


@router.patch("/{complaint_id}", response_model=dict)
async def update_complaint(
    complaint_id: str,
    request: UpdateComplaintRequest,
    db: Session = Depends(get_db),
):
    """
    Apply a partial update.

    Moving into Resolved or Closed stamps resolvedAt; moving out clears it.
    Renaming onto another complaint's portal and reference is a 409.
    """
    service = ComplaintService(db)
    try:
        complaint = service.update_complaint(complaint_id, _wire(request))
    except IdentityConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if complaint is None:
        raise HTTPException(status_code=404, detail="Complaint not found")
    return _with_deadlines(complaint)


@router.delete("/{complaint_id}", status_code=204)
async def delete_complaint(
    complaint_id: str,
    db: Session = Depends(get_db),
    attachments: AttachmentStore = Depends(get_attachment_store),
):
    """Delete a complaint and release its attachment blobs."""
    service = ComplaintService(db, attachments=attachments)
    if not service.delete_complaint(complaint_id):
        raise HTTPException(status_code=404, detail="Complaint not found")
    return Response(status_code=204)
