# Overview: Pytest coverage for the store and verification CLI groups.

from reuse_store.cli import SAMPLE_CHECKOUTS
from reuse_store.models import Checkout, Item


class TestStoreCommands:

    def test_init_db(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["store", "init-db"])
        assert result.exit_code == 0
        assert "Tables created" in result.output

    def test_seed_verification(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["store", "seed-verification"])

        assert result.exit_code == 0, result.output
        assert db_session.query(Checkout).filter_by(needs_approval=True).count() == len(SAMPLE_CHECKOUTS)
        assert db_session.query(Item).filter_by(verification_status="pending").count() == sum(
            len(sample["items"]) for sample in SAMPLE_CHECKOUTS
        )
        assert f"Pending checkouts: {len(SAMPLE_CHECKOUTS)}" in result.output

    def test_seed_reset_replaces_existing(self, app, make_checkout, db_session):
        make_checkout(["approved"], needs_approval=False)

        result = app.test_cli_runner().invoke(args=["store", "seed-verification", "--reset", "--yes"])

        assert result.exit_code == 0, result.output
        assert db_session.query(Checkout).count() == len(SAMPLE_CHECKOUTS)

    def test_seed_reset_aborts_without_confirmation(self, app, make_checkout, db_session):
        make_checkout(["approved"], needs_approval=False)

        result = app.test_cli_runner().invoke(args=["store", "seed-verification", "--reset"], input="n\n")

        assert result.exit_code != 0
        assert db_session.query(Checkout).count() == 1


class TestVerificationCommands:

    def test_stats(self, app, make_checkout):
        make_checkout(["pending"])
        make_checkout(["flagged"])

        result = app.test_cli_runner().invoke(args=["verification", "stats"])

        assert result.exit_code == 0
        assert "pending" in result.output
        assert "last 30 days" in result.output

    def test_stats_rejects_negative_window(self, app, make_checkout):
        make_checkout(["approved"])

        result = app.test_cli_runner().invoke(args=["verification", "stats", "--window-days=-5"])

        assert result.exit_code == 2
        assert "--window-days" in result.output

    def test_set_status(self, app, make_checkout, db_session):
        checkout = make_checkout(["pending", "pending"])

        result = app.test_cli_runner().invoke(
            args=["verification", "set-status", str(checkout.id), "approved", "--actor", "rev"]
        )

        assert result.exit_code == 0, result.output
        assert "2 items marked approved" in result.output
        db_session.expire_all()
        assert {i.verified_by for i in db_session.query(Item).all()} == {"rev"}

    def test_set_status_empty_session(self, app, make_checkout):
        checkout = make_checkout([])
        result = app.test_cli_runner().invoke(args=["verification", "set-status", str(checkout.id), "flagged"])

        assert result.exit_code == 0
        assert "no items" in result.output

    def test_set_status_missing_session(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["verification", "set-status", "99999", "approved"])
        assert result.exit_code != 0
        assert "not found" in result.output

    def test_set_status_rejects_pending(self, app, make_checkout):
        checkout = make_checkout(["approved"])
        result = app.test_cli_runner().invoke(args=["verification", "set-status", str(checkout.id), "pending"])
        assert result.exit_code != 0
