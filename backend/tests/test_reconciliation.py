"""
Tests for the Reconciliation Engine.

Covers:
1. Natural key is case and whitespace insensitive; id is irrelevant
2. dedupe() keeps the last record per key, in first-insertion order
3. reconcile() keeps local id and documents, takes every other field from incoming
4. resolved_at is preserved once set and cleared when reopened
5. Idempotence
"""
import pytest


def make_complaint(**overrides):
    from complaint_tracker.models.domain import Complaint, ComplaintStatus

    values = dict(
        id="A",
        complaint_id="1",
        portal_name="P",
        status=ComplaintStatus.PENDING,
        date_lodged="2026-01-01",
        last_updated="2026-01-01T00:00:00Z",
    )
    values.update(overrides)
    return Complaint(**values)


def make_doc(attachment_id="doc1"):
    from complaint_tracker.models.domain import AttachmentRef

    return AttachmentRef(id=attachment_id, name="reply.pdf", type="application/pdf", size=1024,
                         added_at="2026-01-02T00:00:00Z")


def counter_ids():
    ids = iter(f"new-{n}" for n in range(1, 100))
    return lambda: next(ids)


# =============================================================================
# TEST: NATURAL KEY / DEDUPE
# =============================================================================

class TestNaturalKey:

    def test_key_is_trimmed_and_lowercased(self):
        from complaint_tracker.services.tracking.reconciliation import natural_key

        assert natural_key(make_complaint(portal_name="  CPGRAMS ", complaint_id=" AbC-9 ")) == "cpgrams::abc-9"

    def test_id_does_not_affect_key(self):
        from complaint_tracker.services.tracking.reconciliation import natural_key

        assert natural_key(make_complaint(id="A")) == natural_key(make_complaint(id="B"))

    def test_works_on_wire_dicts(self):
        from complaint_tracker.services.tracking.reconciliation import natural_key

        assert natural_key({"portalName": "P", "complaintId": "1"}) == "p::1"
        assert natural_key({"portal_name": "P", "complaint_id": "1"}) == "p::1"


class TestDedupe:

    def test_last_record_wins_case_and_whitespace_insensitive(self):
        from complaint_tracker.services.tracking.reconciliation import dedupe

        result = dedupe([
            {"portalName": "P", "complaintId": "1", "x": 1},
            {"portalName": "p", "complaintId": " 1 ", "x": 2},
        ])

        assert len(result) == 1
        assert result[0]["x"] == 2

    def test_preserves_first_insertion_order(self):
        from complaint_tracker.services.tracking.reconciliation import dedupe

        first = make_complaint(complaint_id="1", notes="old")
        second = make_complaint(complaint_id="2")
        first_again = make_complaint(complaint_id="1", notes="new")

        result = dedupe([first, second, first_again])

        assert [c.complaint_id for c in result] == ["1", "2"]
        assert result[0].notes == "new"

    def test_empty_input(self):
        from complaint_tracker.services.tracking.reconciliation import dedupe

        assert dedupe([]) == []


# =============================================================================
# TEST: RECONCILE
# =============================================================================

class TestReconcile:
    """Tests for reconcile() and reconcile_with_stats()."""

    def test_matched_record_keeps_local_id_and_documents(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile
        from complaint_tracker.models.domain import ComplaintStatus

        doc1 = make_doc()
        existing = [make_complaint(id="A", documents=[doc1], status=ComplaintStatus.PENDING)]
        incoming = [make_complaint(
            id="B",
            documents=[],
            status=ComplaintStatus.RESOLVED,
            last_updated="2026-03-01T00:00:00Z",
        )]

        result = reconcile(existing, incoming)

        assert len(result) == 1
        merged = result[0]
        assert merged.id == "A"
        assert merged.documents == [doc1]
        assert merged.status == ComplaintStatus.RESOLVED
        assert merged.resolved_at == "2026-03-01T00:00:00Z"

    def test_other_fields_follow_incoming(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile

        existing = [make_complaint(notes="local note", department="Old Dept", section_data={"a": 1})]
        incoming = [make_complaint(id=None, notes="", department="New Dept", section_data=None)]

        merged = reconcile(existing, incoming)[0]

        assert merged.department == "New Dept"
        assert merged.notes == ""
        assert merged.section_data is None

    def test_existing_resolved_at_is_not_regenerated(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile
        from complaint_tracker.models.domain import ComplaintStatus

        existing = [make_complaint(status=ComplaintStatus.RESOLVED, resolved_at="2026-02-01T00:00:00Z")]
        incoming = [make_complaint(status=ComplaintStatus.CLOSED, last_updated="2026-04-01T00:00:00Z")]

        assert reconcile(existing, incoming)[0].resolved_at == "2026-02-01T00:00:00Z"

    def test_reopened_record_clears_resolved_at(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile
        from complaint_tracker.models.domain import ComplaintStatus

        existing = [make_complaint(status=ComplaintStatus.RESOLVED, resolved_at="2026-02-01T00:00:00Z")]
        incoming = [make_complaint(status=ComplaintStatus.FIRST_APPEAL, resolved_at="2026-02-01T00:00:00Z")]

        assert reconcile(existing, incoming)[0].resolved_at is None

    def test_new_record_keeps_its_id(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile

        result = reconcile([], [make_complaint(id="remote-7")], id_factory=counter_ids())

        assert [c.id for c in result] == ["remote-7"]

    def test_new_record_without_id_gets_one(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile

        result = reconcile([], [make_complaint(id=None)], id_factory=counter_ids())

        assert result[0].id == "new-1"

    def test_untouched_existing_records_pass_through_unchanged(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile

        untouched = make_complaint(id="X", complaint_id="99", documents=[make_doc("d9")])
        matched = make_complaint(id="A", complaint_id="1")
        result = reconcile([untouched, matched], [make_complaint(id="B", complaint_id="1"),
                                                  make_complaint(id="C", complaint_id="2")])

        assert result[0] is untouched
        assert [c.id for c in result] == ["X", "A", "C"]

    def test_stats_count_added_and_updated(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile_with_stats

        existing = [make_complaint(id="A", complaint_id="1")]
        incoming = [make_complaint(id=None, complaint_id="1"), make_complaint(id=None, complaint_id="2")]

        result = reconcile_with_stats(existing, incoming, id_factory=counter_ids())

        assert result.added == 1
        assert result.updated == 1
        assert len(result.complaints) == 2

    def test_matching_ignores_case_and_whitespace(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile

        existing = [make_complaint(id="A", portal_name="Smart_UMC", complaint_id="G-1")]
        incoming = [make_complaint(id="B", portal_name=" smart_umc", complaint_id="g-1 ")]

        result = reconcile(existing, incoming)

        assert len(result) == 1
        assert result[0].id == "A"

    def test_duplicate_existing_records_are_folded_not_dropped(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile

        first = make_complaint(id="A", documents=[make_doc("d1")])
        second = make_complaint(id="B", notes="newer copy", documents=[make_doc("d2")])

        [folded] = reconcile([first, second], [])

        assert folded.id == "A"
        assert folded.notes == "newer copy"
        assert [d.id for d in folded.documents] == ["d1", "d2"]

    def test_duplicate_existing_without_documents_keeps_earlier_documents(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile

        [folded] = reconcile([make_complaint(id="A", documents=[make_doc("d1")]), make_complaint(id="B")], [])

        assert folded.id == "A"
        assert [d.id for d in folded.documents] == ["d1"]


# =============================================================================
# TEST: IDEMPOTENCE
# =============================================================================

class TestIdempotence:

    @pytest.mark.parametrize("status", ["Pending", "Resolved", "Second Appeal"])
    def test_reconciling_same_incoming_twice_is_stable(self, status):
        from complaint_tracker.services.tracking.reconciliation import reconcile
        from complaint_tracker.models.domain import ComplaintStatus

        existing = [
            make_complaint(id="A", complaint_id="1", documents=[make_doc()]),
            make_complaint(id="Z", complaint_id="zz"),
        ]
        incoming = [
            make_complaint(id=None, complaint_id="1", status=ComplaintStatus(status),
                           last_updated="2026-03-01T00:00:00Z"),
            make_complaint(id=None, complaint_id="2", status=ComplaintStatus(status),
                           last_updated="2026-03-02T00:00:00Z"),
        ]

        once = reconcile(existing, incoming, id_factory=counter_ids())
        twice = reconcile(once, incoming, id_factory=counter_ids())

        assert twice == once

    def test_new_terminal_record_gets_resolved_at_on_first_pass(self):
        from complaint_tracker.services.tracking.reconciliation import reconcile
        from complaint_tracker.models.domain import ComplaintStatus

        incoming = [make_complaint(id="N", status=ComplaintStatus.RESOLVED, resolved_at=None,
                                   last_updated="2026-03-05T00:00:00Z")]

        assert reconcile([], incoming)[0].resolved_at == "2026-03-05T00:00:00Z"
