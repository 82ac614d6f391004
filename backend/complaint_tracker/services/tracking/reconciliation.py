"""
Reconciliation Engine

Merges an authoritative incoming set of complaints (remote fetch, feed
import, bulk upsert) into an existing local set.

Identity is the natural key (portal name + complaint reference, trimmed and
case-folded), never the opaque id. For a matched complaint:
- the existing id is kept (ids are local and survive every refresh)
- the existing documents are kept (feeds never see attachments)
- every other field follows the incoming record
- resolved_at is preserved once set, so re-syncs do not move it

Running the same incoming set twice produces the same result as running it
once.
"""
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, List, Mapping, Union

from ...models.domain import Complaint, is_terminal, new_complaint_id


RecordLike = Union[Complaint, Mapping[str, Any]]


class IdentityConflictError(ValueError):
    """A write would give two complaints the same natural key or id."""


@dataclass
class ReconcileResult:
    """
    Merged set plus per-record counts.

    added counts incoming records with a key not seen before; updated counts
    incoming records merged onto an existing complaint.
    """
    complaints: List[Complaint]
    added: int
    updated: int


def _field(record: RecordLike, attr: str, wire: str) -> Any:
    if isinstance(record, Mapping):
        if attr in record:
            return record[attr]
        return record.get(wire)
    return getattr(record, attr)


def natural_key(record: RecordLike) -> str:
    """lower(trim(portal)) :: lower(trim(complaint reference))"""
    portal = str(_field(record, "portal_name", "portalName") or "")
    reference = str(_field(record, "complaint_id", "complaintId") or "")
    return f"{portal.strip().lower()}::{reference.strip().lower()}"


def dedupe(records: Iterable[RecordLike]) -> List[RecordLike]:
    """
    One record per natural key.

    Later records replace earlier ones (input order, not timestamps);
    output keeps first-insertion order of each key.
    """
    by_key: "OrderedDict[str, RecordLike]" = OrderedDict()
    for record in records:
        by_key[natural_key(record)] = record
    return list(by_key.values())


def merge_record(existing: Complaint, incoming: Complaint) -> Complaint:
    """Fold an incoming version of a complaint onto the local one."""
    if is_terminal(incoming.status):
        resolved_at = existing.resolved_at or incoming.last_updated
    else:
        resolved_at = None

    return replace(
        incoming,
        id=existing.id,
        documents=list(existing.documents),
        resolved_at=resolved_at,
    )


def _as_new(record: Complaint, id_factory: Callable[[], str]) -> Complaint:
    """First sighting of a key: ensure an id and a resolved_at consistent with status."""
    if is_terminal(record.status):
        resolved_at = record.resolved_at or record.last_updated
    else:
        resolved_at = None
    return replace(record, id=record.id or id_factory(), resolved_at=resolved_at)


def _fold_duplicate(first: Complaint, later: Complaint) -> Complaint:
    """Two existing complaints share a key: keep the first id and every document."""
    seen = {doc.id for doc in first.documents}
    documents = list(first.documents) + [doc for doc in later.documents if doc.id not in seen]
    return replace(merge_record(first, later), documents=documents)


def reconcile_with_stats(
    existing: Iterable[Complaint],
    incoming: Iterable[Complaint],
    id_factory: Callable[[], str] = new_complaint_id,
) -> ReconcileResult:
    """reconcile(), also counting how many complaints were added vs merged."""
    merged: "OrderedDict[str, Complaint]" = OrderedDict()
    for complaint in existing:
        key = natural_key(complaint)
        previous = merged.get(key)
        merged[key] = complaint if previous is None else _fold_duplicate(previous, complaint)

    added = 0
    updated = 0
    for record in incoming:
        key = natural_key(record)
        previous = merged.get(key)
        if previous is None:
            merged[key] = _as_new(record, id_factory)
            added += 1
            continue
        merged[key] = merge_record(previous, record)
        updated += 1

    return ReconcileResult(complaints=list(merged.values()), added=added, updated=updated)


def reconcile(
    existing: Iterable[Complaint],
    incoming: Iterable[Complaint],
    id_factory: Callable[[], str] = new_complaint_id,
) -> List[Complaint]:
    """
    Merge incoming complaints into existing ones by natural key.

    Existing complaints untouched by the incoming set pass through as-is;
    new keys are appended in incoming order.
    Existing complaints that share a key are folded into one first.
    """
    return reconcile_with_stats(existing, incoming, id_factory=id_factory).complaints
