# Overview: Pytest coverage for the verification queue listings and bulk/single status updates.

"""
Verification Service Tests

Covers:
- Session listing by derived status (one tab per session)
- needs_approval isolation of imported history
- Rolling approved window (expires without writes)
- Atomic bulk session updates and the empty-session result
- Single-item updates and their effect on the derived session status
"""

import pytest

from reuse_store.models import Checkout, Item
from reuse_store.services.status_service import derive_session_status
from reuse_store.services.verification_service import (
    ItemStatusUpdate,
    SessionStatusUpdate,
    list_items_by_status,
    list_sessions_by_status,
    session_stats,
    set_item_status,
    set_session_status,
)
from reuse_store.validation import NotFoundError, StoreError, ValidationError

from conftest import NOW, days_ago, failing_statements


def _ids(result):
    return [c["id"] for c in result["checkouts"]]


class TestListSessionsByStatus:

    def test_each_session_in_exactly_one_tab(self, db_session, make_checkout):
        pending = make_checkout(["pending", "pending"])
        partial = make_checkout(["approved", "pending"])
        approved = make_checkout(["approved", "approved"])
        flagged = make_checkout(["approved", "flagged"])

        tabs = {
            status: _ids(list_sessions_by_status(status, now=NOW))
            for status in ("pending", "approved", "flagged")
        }

        assert sorted(tabs["pending"]) == sorted([pending.id, partial.id])
        assert tabs["approved"] == [approved.id]
        assert tabs["flagged"] == [flagged.id]

    def test_listed_sessions_match_python_derivation(self, db_session, make_checkout):
        make_checkout(["pending"])
        make_checkout(["approved", "flagged", "pending"])
        make_checkout(["approved"])

        for status in ("pending", "approved", "flagged"):
            for session in list_sessions_by_status(status, now=NOW)["checkouts"]:
                assert derive_session_status(session["items"]) == status
                assert session["status"] == status
                assert any(i["verification_status"] == status for i in session["items"])

    def test_imported_sessions_never_listed(self, db_session, make_checkout):
        make_checkout(["pending"], needs_approval=False)
        make_checkout(["flagged"], needs_approval=False)
        make_checkout(["approved"], needs_approval=False)

        for status in ("pending", "approved", "flagged"):
            result = list_sessions_by_status(status, now=NOW)
            assert result["checkouts"] == []
            assert result["stats"][status] == 0

    def test_empty_sessions_excluded(self, db_session, make_checkout):
        make_checkout([])
        result = list_sessions_by_status("pending", now=NOW)
        assert result["checkouts"] == []
        assert result["pagination"]["total"] == 0

    def test_year_filter(self, db_session, make_checkout):
        keep = make_checkout(["pending"], year_range="2025-2026")
        make_checkout(["pending"], year_range="2024-2025")

        result = list_sessions_by_status("pending", year_range="2025-2026", now=NOW)
        assert _ids(result) == [keep.id]

    def test_newest_first_and_pagination(self, db_session, make_checkout):
        oldest = make_checkout(["pending"], date=days_ago(3))
        middle = make_checkout(["pending"], date=days_ago(2))
        newest = make_checkout(["pending"], date=days_ago(1))

        first = list_sessions_by_status("pending", page=1, page_size=2, now=NOW)
        second = list_sessions_by_status("pending", page=2, page_size=2, now=NOW)

        assert _ids(first) == [newest.id, middle.id]
        assert _ids(second) == [oldest.id]
        assert first["pagination"] == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}

    def test_items_ordered_by_id(self, db_session, make_checkout):
        make_checkout(["pending", "pending", "pending"])
        session = list_sessions_by_status("pending", now=NOW)["checkouts"][0]
        ids = [i["id"] for i in session["items"]]
        assert ids == sorted(ids)
        assert session["total_items"] == 3

    def test_approved_window(self, db_session, make_checkout):
        recent = make_checkout(["approved"], verified_at=days_ago(5))
        make_checkout(["approved"], verified_at=days_ago(40))

        result = list_sessions_by_status("approved", now=NOW)
        assert _ids(result) == [recent.id]
        assert result["stats"]["approved"] == 1

    def test_window_disabled_shows_all_approved(self, db_session, make_checkout):
        make_checkout(["approved"], verified_at=days_ago(5))
        make_checkout(["approved"], verified_at=days_ago(400))

        result = list_sessions_by_status("approved", approved_window_days=None, now=NOW)
        assert len(result["checkouts"]) == 2
        assert result["stats"]["approved"] == 2

    def test_window_uses_latest_approval(self, db_session, make_checkout):
        checkout = make_checkout(["approved", "approved"], verified_at=days_ago(45))
        checkout.items[1].verified_at = days_ago(2)
        db_session.commit()

        assert _ids(list_sessions_by_status("approved", now=NOW)) == [checkout.id]

    def test_window_does_not_hide_pending_or_flagged(self, db_session, make_checkout):
        flagged = make_checkout(["flagged"], verified_at=days_ago(90))
        assert _ids(list_sessions_by_status("flagged", now=NOW)) == [flagged.id]

    def test_custom_window_length(self, db_session, make_checkout):
        make_checkout(["approved"], verified_at=days_ago(10))
        assert list_sessions_by_status("approved", approved_window_days=7, now=NOW)["checkouts"] == []
        assert len(list_sessions_by_status("approved", approved_window_days=14, now=NOW)["checkouts"]) == 1

    @pytest.mark.parametrize("kwargs", [
        {"status": "done"},
        {"status": None},
        {"status": "pending", "page": 0},
        {"status": "pending", "page_size": 0},
        {"status": "pending", "page_size": 101},
        {"status": "pending", "approved_window_days": -1},
    ])
    def test_invalid_arguments(self, db_session, kwargs):
        kwargs = dict(kwargs)
        status = kwargs.pop("status")
        with pytest.raises(ValidationError):
            list_sessions_by_status(status, **kwargs)


class TestSessionStats:

    def test_counts_by_derived_status(self, db_session, make_checkout):
        make_checkout(["pending"])
        make_checkout(["approved", "pending"])
        make_checkout(["approved"])
        make_checkout(["flagged", "approved"])
        make_checkout(["flagged"], needs_approval=False)

        assert session_stats(now=NOW) == {"pending": 2, "approved": 1, "flagged": 1}

    def test_stats_ignore_year_filter(self, db_session, make_checkout):
        make_checkout(["pending"], year_range="2024-2025")
        make_checkout(["pending"], year_range="2025-2026")

        result = list_sessions_by_status("pending", year_range="2025-2026", now=NOW)
        assert len(result["checkouts"]) == 1
        assert result["stats"]["pending"] == 2

    def test_negative_window_rejected(self, db_session, make_checkout):
        make_checkout(["approved"])
        with pytest.raises(ValidationError) as exc:
            session_stats(approved_window_days=-5, now=NOW)
        assert exc.value.field == "windowDays"


class TestSetSessionStatus:

    def test_scenario_approve_whole_session(self, db_session, make_checkout):
        """Two pending items -> approved; listed until the window passes."""
        checkout = make_checkout(["pending", "pending"])
        assert derive_session_status(checkout.items) == "pending"

        result = set_session_status(checkout.id, SessionStatusUpdate(status="approved"), now=NOW)

        assert result.items_updated == 2
        assert not result.is_empty
        db_session.expire_all()
        items = db_session.query(Item).filter_by(checkout_id=checkout.id).all()
        assert all(i.verification_status == "approved" for i in items)
        assert all(i.verified_at == NOW for i in items)
        assert derive_session_status(items) == "approved"

        assert _ids(list_sessions_by_status("approved", now=days_ago(-29))) == [checkout.id]
        assert list_sessions_by_status("approved", now=days_ago(-31))["checkouts"] == []

    def test_flag_sets_mirror_on_every_item(self, db_session, make_checkout):
        checkout = make_checkout(["pending", "approved", "pending"])
        set_session_status(checkout.id, SessionStatusUpdate(status="flagged", actor="rev"), now=NOW)

        db_session.expire_all()
        items = db_session.query(Item).filter_by(checkout_id=checkout.id).all()
        assert {i.verification_status for i in items} == {"flagged"}
        assert all(i.flagged for i in items)
        assert {i.verified_by for i in items} == {"rev"}

    def test_flagged_to_approved_clears_mirror(self, db_session, make_checkout):
        checkout = make_checkout(["flagged", "flagged"])
        set_session_status(checkout.id, SessionStatusUpdate(status="approved"), now=NOW)

        db_session.expire_all()
        items = db_session.query(Item).filter_by(checkout_id=checkout.id).all()
        assert not any(i.flagged for i in items)

    def test_empty_session_is_not_an_error(self, db_session, make_checkout):
        checkout = make_checkout([])
        result = set_session_status(checkout.id, SessionStatusUpdate(status="approved"), now=NOW)

        assert result.is_empty
        assert result.to_dict() == {
            "success": True,
            "checkoutId": checkout.id,
            "status": "approved",
            "itemsUpdated": 0,
            "empty": True,
        }

    def test_missing_session(self, db_session):
        with pytest.raises(NotFoundError):
            set_session_status(99999, SessionStatusUpdate(status="approved"))

    def test_pending_rejected(self, db_session, make_checkout):
        checkout = make_checkout(["approved"])
        with pytest.raises(ValidationError):
            set_session_status(checkout.id, SessionStatusUpdate(status="pending"))

    def test_other_sessions_untouched(self, db_session, make_checkout):
        target = make_checkout(["pending"])
        other = make_checkout(["pending"])
        set_session_status(target.id, SessionStatusUpdate(status="approved"), now=NOW)

        db_session.expire_all()
        assert db_session.get(Item, other.items[0].id).verification_status == "pending"

    def test_failed_write_rolls_back_every_item(self, db_session, make_checkout):
        """The first item UPDATE reaches the database; the second fails."""
        checkout = make_checkout(["pending", "pending", "pending"])

        with failing_statements("UPDATE items", start_at=2) as updates:
            with pytest.raises(StoreError):
                set_session_status(
                    checkout.id,
                    SessionStatusUpdate(status="approved"),
                    now=NOW,
                )

        assert len(updates) >= 2
        db_session.expire_all()
        statuses = [i.verification_status for i in db_session.query(Item).filter_by(checkout_id=checkout.id)]
        assert statuses == ["pending", "pending", "pending"]


class TestSessionStatusUpdatePayload:

    def test_reads_verified_by(self):
        update = SessionStatusUpdate.from_payload({"status": "Flagged", "verifiedBy": " rev@haverford.edu "})
        assert update == SessionStatusUpdate(status="flagged", actor="rev@haverford.edu")

    def test_missing_status(self):
        with pytest.raises(ValidationError) as exc:
            SessionStatusUpdate.from_payload({})
        assert exc.value.field == "status"

    def test_non_object_payload(self):
        with pytest.raises(ValidationError):
            SessionStatusUpdate.from_payload(["approved"])


class TestSetItemStatus:

    def test_single_item_changes_session_status(self, db_session, make_checkout):
        checkout = make_checkout(["approved", "pending"])
        pending_item = checkout.items[1]

        item = set_item_status(pending_item.id, ItemStatusUpdate(status="flagged"), now=NOW)

        assert item.verification_status == "flagged"
        assert item.flagged is True
        assert item.verified_at == NOW
        db_session.expire_all()
        assert derive_session_status(db_session.get(Checkout, checkout.id).items) == "flagged"

    def test_siblings_untouched(self, db_session, make_checkout):
        checkout = make_checkout(["pending", "pending"])
        set_item_status(checkout.items[0].id, ItemStatusUpdate(status="approved"), now=NOW)

        db_session.expire_all()
        assert db_session.get(Item, checkout.items[1].id).verification_status == "pending"

    def test_image_url_can_be_cleared(self, db_session, make_checkout):
        checkout = make_checkout(["pending"])
        item_id = checkout.items[0].id
        set_item_status(item_id, ItemStatusUpdate.from_payload({"image_url": "https://img.example/a.jpg"}))
        assert db_session.get(Item, item_id).image_url == "https://img.example/a.jpg"

        item = set_item_status(item_id, ItemStatusUpdate.from_payload({"image_url": None}))
        assert item.image_url is None
        assert item.verification_status == "pending"

    def test_verified_by_and_restamp(self, db_session, make_checkout):
        checkout = make_checkout(["approved"], verified_at=days_ago(10))
        item = set_item_status(
            checkout.items[0].id,
            ItemStatusUpdate.from_payload({"verified_by": "rev", "verifiedAt": True}),
            now=NOW,
        )
        assert item.verified_by == "rev"
        assert item.verified_at == NOW

    def test_empty_update_rejected(self, db_session, make_checkout):
        checkout = make_checkout(["pending"])
        with pytest.raises(ValidationError, match="No fields"):
            set_item_status(checkout.items[0].id, ItemStatusUpdate.from_payload({}))

    def test_missing_item(self, db_session):
        with pytest.raises(NotFoundError):
            set_item_status(99999, ItemStatusUpdate(status="approved"))

    def test_payload_accepts_legacy_key(self):
        update = ItemStatusUpdate.from_payload({"verification_status": "approved"})
        assert update.status == "approved"

    @pytest.mark.parametrize("payload", [
        {"status": "pending"},
        {"flagged": "yes"},
        {"image_url": 42},
        {"verified_by": ["rev"]},
    ])
    def test_payload_validation(self, payload):
        with pytest.raises(ValidationError):
            ItemStatusUpdate.from_payload(payload)


class TestListItemsByStatus:

    def test_lists_items_with_owner_fields(self, db_session, make_checkout):
        checkout = make_checkout(["pending", "approved"], owner_name="Sarah Johnson")
        result = list_items_by_status("pending", now=NOW)

        assert len(result["items"]) == 1
        row = result["items"][0]
        assert row["checkout_id"] == checkout.id
        assert row["owner_name"] == "Sarah Johnson"
        assert row["date"].endswith("Z")

    def test_stats_share_the_session_population(self, db_session, make_checkout):
        make_checkout(["pending", "flagged"])
        make_checkout(["pending", "pending"], needs_approval=False)

        result = list_items_by_status("pending", now=NOW)

        assert result["pagination"]["total"] == 1
        assert result["stats"] == {"pending": 1, "approved": 0, "flagged": 1}
        assert result["session_stats"] == {"pending": 0, "approved": 0, "flagged": 1}

    def test_approved_items_outside_window(self, db_session, make_checkout):
        make_checkout(["approved"], verified_at=days_ago(31))
        assert list_items_by_status("approved", now=NOW)["items"] == []
        assert len(list_items_by_status("approved", approved_window_days=None, now=NOW)["items"]) == 1
