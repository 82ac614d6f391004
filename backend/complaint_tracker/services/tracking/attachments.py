"""
Attachment Store

Keeps uploaded documents as blobs on disk, outside the complaint records.
A complaint only carries AttachmentRef metadata; deleting the complaint
must release its blobs through delete().

Layout under the root directory:
    <id>.bin   raw bytes
    <id>.json  metadata (name, type, size, addedAt, sha256)
"""
import hashlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union
from uuid import uuid4

from ...models.domain import AttachmentRef, utc_now_iso

logger = logging.getLogger(__name__)

ATTACHMENTS_DIR = os.getenv("ATTACHMENTS_DIR", "data/attachments")


@dataclass
class StoredAttachment:
    ref: AttachmentRef
    content: bytes
    sha256: str


class AttachmentStore:
    """Filesystem blob store keyed by attachment id."""

    def __init__(self, root: Union[str, Path] = ATTACHMENTS_DIR):
        self.root = Path(root)

    def _blob_path(self, attachment_id: str) -> Path:
        return self.root / f"{attachment_id}.bin"

    def _meta_path(self, attachment_id: str) -> Path:
        return self.root / f"{attachment_id}.json"

    def put(
        self,
        name: str,
        content: bytes,
        mime_type: Optional[str] = None,
    ) -> AttachmentRef:
        """Store a blob and return the reference to keep on the complaint."""
        self.root.mkdir(parents=True, exist_ok=True)
        ref = AttachmentRef(
            id=uuid4().hex,
            name=name,
            type=mime_type or "application/octet-stream",
            size=len(content),
            added_at=utc_now_iso(),
        )
        digest = hashlib.sha256(content).hexdigest()

        self._blob_path(ref.id).write_bytes(content)
        meta = {**ref.to_dict(), "sha256": digest}
        self._meta_path(ref.id).write_text(json.dumps(meta), encoding="utf-8")

        logger.info(f"Stored attachment {ref.id} ({ref.size} bytes)")
        return ref

    def get(self, attachment_id: str) -> Optional[StoredAttachment]:
        """Blob and metadata, or None if it was never stored or already released."""
        blob_path = self._blob_path(attachment_id)
        meta_path = self._meta_path(attachment_id)
        if not blob_path.exists() or not meta_path.exists():
            return None

        meta = json.loads(meta_path.read_text(encoding="utf-8"))
        return StoredAttachment(
            ref=AttachmentRef.from_dict(meta),
            content=blob_path.read_bytes(),
            sha256=meta.get("sha256", ""),
        )

    def delete(self, attachment_id: str) -> bool:
        """Release a blob. Returns False if nothing was stored under the id."""
        removed = False
        for path in (self._blob_path(attachment_id), self._meta_path(attachment_id)):
            if path.exists():
                path.unlink()
                removed = True
        if removed:
            logger.info(f"Released attachment {attachment_id}")
        return removed

    def delete_many(self, refs: Iterable[AttachmentRef]) -> int:
        """Release every blob a complaint owned; returns how many were found."""
        return sum(1 for ref in refs if self.delete(ref.id))
