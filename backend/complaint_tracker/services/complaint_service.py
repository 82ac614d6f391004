"""
Complaint Service

Server-side orchestration over the complaints table.
Coordinates the lifecycle rules, the reconciliation engine and the
attachment store for the REST API and the import scripts.

Identity:
- Rows are keyed by opaque id for reads, patches and deletes
- Creates and imports upsert on the natural key (portal + complaint reference)
- An upsert never changes an existing row's id or documents
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..models.db_models import ComplaintDB, SyncRunDB
from ..models.domain import Complaint
from .tracking.attachments import AttachmentStore
from .tracking.feed_sync import parse_feed
from .tracking.lifecycle import apply_patch, build_complaint, import_record
from .tracking.reconciliation import (
    IdentityConflictError,
    dedupe,
    merge_record,
    natural_key,
    reconcile_with_stats,
)

logger = logging.getLogger(__name__)


class ComplaintService:
    """
    Main service for complaint persistence.

    Every write path funnels through _save(), which keeps the natural_key
    column in step with the record.
    """

    def __init__(self, db_session: Session, attachments: Optional[AttachmentStore] = None):
        """Initialize with database session and (optionally) the blob store."""
        self.db = db_session
        self.attachments = attachments

    # =========================================================================
    # READS
    # =========================================================================

    def list_complaints(self) -> List[Complaint]:
        rows = self.db.query(ComplaintDB).order_by(
            ComplaintDB.date_lodged.desc(),
            ComplaintDB.last_updated.desc(),
        ).all()
        return [row.to_complaint() for row in rows]

    def get_complaint(self, complaint_id: str) -> Optional[Complaint]:
        row = self.db.query(ComplaintDB).get(complaint_id)
        return row.to_complaint() if row else None

    def _rows_by_key(self, keys: Iterable[str]) -> Dict[str, ComplaintDB]:
        keys = list(set(keys))
        if not keys:
            return {}
        rows = self.db.query(ComplaintDB).filter(ComplaintDB.natural_key.in_(keys)).all()
        return {row.natural_key: row for row in rows}

    def _save(self, complaint: Complaint, row: Optional[ComplaintDB] = None) -> ComplaintDB:
        if row is None:
            row = ComplaintDB(id=complaint.id)
            self.db.add(row)
        row.apply(complaint, natural_key(complaint))
        return row

    def _check_new_ids(self, complaints: List[Complaint]) -> None:
        """Ids about to be inserted must be unused, in the table and in the batch."""
        ids = [c.id for c in complaints]
        if len(set(ids)) != len(ids):
            raise IdentityConflictError("Two complaints in one request share an id")
        if not ids:
            return
        taken = self.db.query(ComplaintDB).filter(ComplaintDB.id.in_(ids)).first()
        if taken is not None:
            raise IdentityConflictError(
                f"Complaint id {taken.id} is already used by {taken.portal_name} / {taken.complaint_id}"
            )

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_complaint(self, data: Mapping[str, Any]) -> Complaint:
        """
        Create a complaint, or update the one sharing its natural key.

        Raises ValueError for an unknown status, and IdentityConflictError
        when a supplied id belongs to a complaint with another natural key.
        """
        complaint = build_complaint(data)
        key = natural_key(complaint)
        row = self._rows_by_key([key]).get(key)

        if row is not None:
            complaint = merge_record(row.to_complaint(), complaint)
            logger.info(f"Complaint {key} already tracked as {row.id}, updating")
        else:
            self._check_new_ids([complaint])

        self._save(complaint, row)
        self.db.commit()
        return complaint

    def update_complaint(self, complaint_id: str, patch: Mapping[str, Any]) -> Optional[Complaint]:
        """
        Apply a partial update. Returns None when the id is unknown.

        Raises IdentityConflictError when the patched portal or reference
        would collide with another complaint's natural key.
        """
        row = self.db.query(ComplaintDB).get(complaint_id)
        if row is None:
            return None

        updated = apply_patch(row.to_complaint(), patch)
        key = natural_key(updated)
        owner = self._rows_by_key([key]).get(key)
        if owner is not None and owner.id != complaint_id:
            raise IdentityConflictError(
                f"{updated.portal_name} / {updated.complaint_id} is already tracked as {owner.id}"
            )
        self._save(updated, row)
        self.db.commit()
        return updated

    def delete_complaint(self, complaint_id: str) -> bool:
        """Delete a complaint and release the attachment blobs it owned."""
        row = self.db.query(ComplaintDB).get(complaint_id)
        if row is None:
            return False

        documents = row.to_complaint().documents
        self.db.delete(row)
        self.db.commit()

        if documents and self.attachments is not None:
            released = self.attachments.delete_many(documents)
            logger.info(f"Deleted complaint {complaint_id}, released {released} attachments")
        return True

    def bulk_upsert(self, items: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
        """
        Upsert many complaints with the reconciliation rules.

        Existing rows keep their id and documents; everything else follows
        the incoming record.
        """
        incoming = dedupe(import_record(item) for item in items)
        return self._reconcile_into_db(incoming)

    def _reconcile_into_db(self, incoming: List[Complaint]) -> Dict[str, int]:
        rows = self._rows_by_key(natural_key(c) for c in incoming)
        existing = [row.to_complaint() for row in rows.values()]
        result = reconcile_with_stats(existing, incoming)
        self._check_new_ids([c for c in result.complaints if natural_key(c) not in rows])

        for complaint in result.complaints:
            self._save(complaint, rows.get(natural_key(complaint)))
        self.db.commit()

        return {
            "upserted": result.added + result.updated,
            "added": result.added,
            "updated": result.updated,
        }

    # =========================================================================
    # FEED IMPORT
    # =========================================================================

    def import_feed(self, feed: Any, source: str = "umc-feed") -> Dict[str, Any]:
        """
        Merge a grievance feed document into the table and record the run.
        """
        try:
            incoming = dedupe(parse_feed(feed))
            counts = self._reconcile_into_db(incoming)
        except Exception as e:
            self.db.rollback()
            self._record_sync_run(source, "failed", 0, str(e))
            logger.error(f"Feed import from {source} failed: {e}")
            raise

        run = self._record_sync_run(
            source,
            "success" if incoming else "skipped",
            counts["added"],
            f"{counts['added']} new, {counts['updated']} updated",
        )
        logger.info(f"Feed import from {source}: {run.message}")
        return {"syncRun": run.to_dict(), **counts}

    def _record_sync_run(self, source: str, status: str, count: int, message: str) -> SyncRunDB:
        run = SyncRunDB(source=source, status=status, count_imported=count, message=message)
        self.db.add(run)
        self.db.commit()
        return run

    def list_sync_runs(self, limit: int = 20) -> List[Dict[str, Any]]:
        runs = self.db.query(SyncRunDB).order_by(SyncRunDB.id.desc()).limit(limit).all()
        return [run.to_dict() for run in runs]
