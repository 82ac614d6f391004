"""
Complaint Store

Client-side working set of complaints for one session.

Construct one ComplaintStore per process and pass it to whatever needs it.
Collaborators are injected:
- api: ComplaintsApiClient for the REST backend (optional)
- cache: LocalCache, the on-disk fallback copy
- attachments: AttachmentStore holding document blobs

Every mutation tries the backend first. When the backend is unreachable or
rejects the call, the store applies the same lifecycle rules locally so the
tracker keeps working offline. Each change is deduplicated by natural key and
written through to the cache.
"""
import logging
from dataclasses import replace
from typing import Any, Iterable, List, Mapping, Optional

import httpx

from ...models.domain import Complaint
from .api_client import ComplaintApiError, ComplaintsApiClient, complaint_payload
from .attachments import AttachmentStore
from .lifecycle import apply_patch, build_complaint
from .local_cache import LocalCache
from .reconciliation import IdentityConflictError, dedupe, natural_key

logger = logging.getLogger(__name__)

# Failures that switch the store to local-only behaviour for one call
REMOTE_ERRORS = (ComplaintApiError, httpx.HTTPError)


def upsert_by_key(items: List[Complaint], complaint: Complaint) -> List[Complaint]:
    """Replace the complaint sharing the natural key in place, or prepend."""
    key = natural_key(complaint)
    for index, existing in enumerate(items):
        if natural_key(existing) == key:
            updated = list(items)
            updated[index] = complaint
            return dedupe(updated)
    return dedupe([complaint, *items])


class ComplaintStore:
    """Single-writer complaint store with remote-first, cache-backed persistence."""

    def __init__(
        self,
        cache: LocalCache,
        attachments: AttachmentStore,
        api: Optional[ComplaintsApiClient] = None,
    ):
        self.api = api
        self.cache = cache
        self.attachments = attachments
        self.loading = False
        self._complaints: List[Complaint] = cache.read_complaints()

    @property
    def complaints(self) -> List[Complaint]:
        return list(self._complaints)

    def get(self, complaint_id: str) -> Optional[Complaint]:
        return next((c for c in self._complaints if c.id == complaint_id), None)

    def _find_by_key(self, key: str) -> Optional[Complaint]:
        return next((c for c in self._complaints if natural_key(c) == key), None)

    def _commit(self, complaints: Iterable[Complaint]) -> None:
        self._complaints = dedupe(complaints)
        self.cache.write_complaints(self._complaints)

    # =========================================================================
    # LOADING
    # =========================================================================

    def load(self) -> List[Complaint]:
        """Refresh from the backend; fall back to the cached copy."""
        self.loading = True
        try:
            if self.api is None:
                self._complaints = self.cache.read_complaints()
                return self.complaints
            try:
                fetched = self.api.fetch_complaints()
            except REMOTE_ERRORS as e:
                logger.warning(f"Complaint fetch failed, using local cache: {e}")
                self._complaints = self.cache.read_complaints()
            else:
                self._commit(fetched)
                logger.info(f"Loaded {len(self._complaints)} complaints from API")
            return self.complaints
        finally:
            self.loading = False

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create(self, data: Mapping[str, Any]) -> Complaint:
        """
        Create (or upsert by natural key) a complaint.

        Raises ValueError for an unknown status before anything is sent.
        Raises IdentityConflictError when a locally saved id belongs to a
        complaint with a different natural key.
        """
        draft = Complaint.from_dict(data)
        saved: Optional[Complaint] = None
        if self.api is not None:
            try:
                saved = self.api.create_complaint(complaint_payload(draft))
            except REMOTE_ERRORS as e:
                logger.warning(f"Complaint create failed remotely, saving locally: {e}")

        if saved is None:
            saved = build_complaint(data)
            existing = self._find_by_key(natural_key(saved))
            if existing is not None:
                # Same complaint already tracked: keep its identity
                saved = replace(saved, id=existing.id)
            elif self.get(saved.id) is not None:
                raise IdentityConflictError(f"Complaint id {saved.id} belongs to another complaint")

        self._commit(upsert_by_key(self._complaints, saved))
        return saved

    def update(self, complaint_id: str, patch: Mapping[str, Any]) -> Optional[Complaint]:
        """
        Patch a complaint by opaque id.

        Returns None if it is unknown locally and remotely. Raises IdentityConflictError when the patch moves the complaint onto
        another complaint's natural key.
        """
        saved: Optional[Complaint] = None
        if self.api is not None:
            try:
                saved = self.api.update_complaint(complaint_id, patch)
            except REMOTE_ERRORS as e:
                logger.warning(f"Complaint update failed remotely, applying locally: {e}")

        if saved is not None:
            self._commit(upsert_by_key(self._complaints, saved))
            return saved

        current = self.get(complaint_id)
        if current is None:
            return None
        updated = apply_patch(current, patch)
        owner = self._find_by_key(natural_key(updated))
        if owner is not None and owner.id != complaint_id:
            # Committing would let dedupe drop the other complaint
            raise IdentityConflictError(
                f"{updated.portal_name} / {updated.complaint_id} is already tracked as {owner.id}"
            )
        self._commit(updated if c.id == complaint_id else c for c in self._complaints)
        return updated

    def delete(self, complaint_id: str) -> bool:
        """
        Remove a complaint and release its attachments.

        The local copy is always removed, even when the backend call fails.
        """
        target = self.get(complaint_id)
        if self.api is not None:
            try:
                self.api.delete_complaint(complaint_id)
            except REMOTE_ERRORS as e:
                logger.warning(f"Complaint delete failed remotely, removing locally: {e}")

        self._commit(c for c in self._complaints if c.id != complaint_id)

        if target is not None and target.documents:
            released = self.attachments.delete_many(target.documents)
            logger.info(f"Released {released} attachments of complaint {complaint_id}")
        return target is not None

    def set_complaints(self, complaints: Iterable[Complaint]) -> None:
        self._commit(complaints)

    def clear_all(self) -> None:
        self._complaints = []
        self.cache.clear()
