#!/usr/bin/env python3
"""
Complaint Import Script
Upserts complaints from a JSON export into the database.

The file may hold a bare array of complaints or {"complaints": [...]}.
Existing complaints (same portal and reference) keep their id and documents.

Usage:
    python -m scripts.import_complaints_json <path>

Example:
    python -m scripts.import_complaints_json data/complaints-backup.json
"""
import json
import sys
from pathlib import Path

from sqlalchemy.orm import Session
from complaint_tracker.database import SessionLocal, engine, Base
from complaint_tracker.models import db_models  # noqa: F401
from complaint_tracker.services.complaint_service import ComplaintService


def read_complaints_file(path: Path) -> list:
    """Complaint dicts from an export file. Raises ValueError on a bad shape."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("complaints")
    if not isinstance(payload, list):
        raise ValueError("Expected a JSON array or an object with a 'complaints' array")
    return [item for item in payload if isinstance(item, dict)]


def import_complaints(path: Path) -> bool:
    """Upsert every complaint in the file."""
    try:
        items = read_complaints_file(path)
    except (OSError, ValueError) as e:
        print(f"Error reading {path}: {e}")
        return False

    # Ensure tables exist
    Base.metadata.create_all(bind=engine)

    if not items:
        print("No complaints found in file.")
        return True

    db: Session = SessionLocal()
    try:
        counts = ComplaintService(db).bulk_upsert(items)
        print(f"Imported {counts['upserted']} complaints from {path}")
        print(f"  New: {counts['added']}")
        print(f"  Updated: {counts['updated']}")
        return True

    except Exception as e:
        print(f"Error importing complaints: {e}")
        db.rollback()
        return False
    finally:
        db.close()


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    path = Path(sys.argv[1])
    if not path.is_file():
        print(f"Error: File '{path}' not found.")
        sys.exit(1)

    success = import_complaints(path)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
