# Overview: Pytest coverage for checkout administration, search, and reporting endpoints.

from reuse_store.models import Checkout, Item

from conftest import days_ago


class TestCheckoutAdministration:

    def test_list_checkouts_includes_imported_history(self, client, make_checkout):
        logged = make_checkout(["pending"], date=days_ago(1))
        imported = make_checkout(["pending"], needs_approval=False, date=days_ago(2))

        response = client.get('/api/checkouts')

        assert response.status_code == 200
        data = response.get_json()
        assert [c["id"] for c in data["checkouts"]] == [logged.id, imported.id]
        assert data["pagination"]["total"] == 2

    def test_list_checkouts_search(self, client, make_checkout):
        make_checkout(["pending"], owner_name="Sarah Johnson", email="sjohnson@haverford.edu")
        make_checkout(["pending"], owner_name="David Park", email="dpark@haverford.edu")

        data = client.get('/api/checkouts?search=johnson').get_json()
        assert [c["owner_name"] for c in data["checkouts"]] == ["Sarah Johnson"]

    def test_search_treats_wildcards_literally(self, client, make_checkout):
        make_checkout(["pending"], owner_name="Sarah Johnson")
        data = client.get('/api/checkouts?search=%25').get_json()
        assert data["checkouts"] == []

    def test_get_checkout_with_derived_status(self, client, make_checkout):
        checkout = make_checkout(["approved", "flagged"])

        response = client.get(f'/api/checkouts/{checkout.id}')

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "flagged"
        assert data["total_items"] == 2

    def test_get_missing_checkout(self, client, db_session):
        assert client.get('/api/checkouts/99999').status_code == 404

    def test_update_contact(self, client, make_checkout, db_session):
        checkout = make_checkout(["pending"])

        response = client.patch(f'/api/checkouts/{checkout.id}', json={
            "housing_assignment": "Barclay 305",
            "notes": "Picked up at the front desk",
        })

        assert response.status_code == 200
        db_session.expire_all()
        updated = db_session.get(Checkout, checkout.id)
        assert updated.housing_assignment == "Barclay 305"
        assert updated.notes == "Picked up at the front desk"

    def test_update_contact_rejects_verification_fields(self, client, make_checkout):
        checkout = make_checkout(["pending"])
        response = client.patch(f'/api/checkouts/{checkout.id}', json={"needs_approval": False})

        assert response.status_code == 400
        assert response.get_json()["field"] == "needs_approval"

    def test_update_contact_blank_owner(self, client, make_checkout):
        checkout = make_checkout(["pending"])
        response = client.patch(f'/api/checkouts/{checkout.id}', json={"owner_name": "  "})
        assert response.status_code == 400

    def test_update_missing_checkout(self, client, db_session):
        response = client.patch('/api/checkouts/99999', json={"notes": "x"})
        assert response.status_code == 404


class TestItemAdministration:

    def test_update_item_details_keeps_status(self, client, make_checkout, db_session):
        checkout = make_checkout(["flagged"])
        item_id = checkout.items[0].id

        response = client.patch(f'/api/items/{item_id}', json={"item_quantity": 3, "description": "Set of three"})

        assert response.status_code == 200
        data = response.get_json()
        assert data["item_quantity"] == 3
        assert data["verification_status"] == "flagged"
        assert data["flagged"] is True

    def test_update_item_quantity_must_be_positive(self, client, make_checkout):
        checkout = make_checkout(["pending"])
        response = client.patch(f'/api/items/{checkout.items[0].id}', json={"item_quantity": 0})

        assert response.status_code == 400
        assert response.get_json()["field"] == "item_quantity"

    def test_update_item_status_not_writable(self, client, make_checkout):
        checkout = make_checkout(["pending"])
        response = client.patch(f'/api/items/{checkout.items[0].id}', json={"verification_status": "approved"})
        assert response.status_code == 400

    def test_search_items(self, client, make_checkout):
        make_checkout(["pending", "pending"], item_names=["Desk Lamp", "Hangers"], owner_name="John Smith")

        response = client.get('/api/items/search?query=lamp')

        assert response.status_code == 200
        data = response.get_json()
        assert [row["item_name"] for row in data] == ["Desk Lamp"]
        assert data[0]["owner_name"] == "John Smith"

    def test_search_items_requires_query(self, client, db_session):
        response = client.get('/api/items/search')
        assert response.status_code == 400
        assert response.get_json()["field"] == "query"


class TestDonorSearch:

    def test_latest_details_per_email(self, client, make_checkout, db_session):
        make_checkout(["pending"], owner_name="Sarah Johnson", email="sjohnson@haverford.edu")
        latest = make_checkout(["pending"], owner_name="Sarah Johnson", email="SJohnson@haverford.edu")
        latest.housing_assignment = "Gummere 104"
        db_session.commit()

        data = client.get('/api/donors/search?q=sarah').get_json()

        assert len(data) == 1
        assert data[0]["housing"] == "Gummere 104"
        assert set(data[0]) == {"name", "email", "housing", "gradYear"}


class TestReporting:

    def test_years(self, client, make_checkout):
        make_checkout(["pending"], year_range="2025-2026")
        make_checkout(["pending"], year_range="2024-2025")
        make_checkout(["pending"], year_range="2025-2026")

        data = client.get('/api/years').get_json()
        assert data == [{"year_range": "2024-2025"}, {"year_range": "2025-2026"}]

    def test_statistics(self, client, make_checkout):
        make_checkout(["pending", "approved"], year_range="2025-2026")
        make_checkout(["flagged"], year_range="2025-2026", needs_approval=False)
        make_checkout(["pending"], year_range="2024-2025")

        data = client.get('/api/statistics?year=2025-2026').get_json()

        assert data["total_checkouts"] == 2
        assert data["total_items"] == 3
        assert data["total_quantity"] == 3
        assert data["pending_items"] == 1
        assert data["approved_items"] == 1
        assert data["flagged_items"] == 1
        assert data["flagged_mirror_items"] == 1

    def test_top_items(self, client, make_checkout, db_session):
        make_checkout(["pending", "pending"], item_names=["Hangers", "Desk Lamp"])
        make_checkout(["pending"], item_names=["hangers"])
        db_session.query(Item).filter(Item.item_name == "Desk Lamp").update({"item_quantity": 5})
        db_session.commit()

        data = client.get('/api/analytics/top-items?limit=2').get_json()

        assert [row["total_quantity"] for row in data] == [5, 2]
        assert data[1]["checkout_count"] == 2
