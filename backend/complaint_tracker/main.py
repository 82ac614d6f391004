"""
Complaint Tracker - FastAPI Application

Main entry point for the complaint tracker backend.

Architecture:
- Portal feed / UI -> ComplaintService -> complaints table
- Reconciliation engine merges incoming records by natural key
- Deadline engine derives due dates and Overdue on every read
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import __version__
from .database import get_db, init_db, ping_db
from .routers import complaints_router, dashboard_router, sync_router

logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Complaint Tracker",
    description="""
    Complaint Tracker - RTI and Grievance Follow-up

    Tracks complaints and RTI requests lodged on government portals and
    computes when each one is due for a reply.

    ## Engines
    1. **Deadline Engine**: statutory timelines, due dates, Overdue label
    2. **Reconciliation Engine**: merges feeds and imports by portal + reference

    ## Key Principles
    - Overdue is derived on read, never stored
    - A merge never changes a complaint's id or its documents
    - Resolved and Closed carry resolvedAt; reopening clears it
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(complaints_router)
app.include_router(dashboard_router)
app.include_router(sync_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Complaint Tracker",
        "version": __version__,
        "description": "RTI and grievance deadline tracking",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint - confirms the database answers."""
    try:
        ping_db(db)
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})
    return {"ok": True, "version": __version__}


# For running with: python -m complaint_tracker.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "4000")))
