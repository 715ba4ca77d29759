"""
Tests for creating remittances and managing remittance types:
- /api/v1/remittances (create, quote, types)
- /api/v1/admin/remittance-types
"""
from decimal import Decimal

import pytest

from app.models.activity_log import ActivityLog
from app.models.remittance import Remittance
from tests.factories import create_test_remittance_type

BASE = "/api/v1/remittances"
ADMIN_BASE = "/api/v1/admin/remittance-types"

RECIPIENT = {
    "recipient_name": "Yamila Perez",
    "recipient_phone": "+53 52345678",
    "recipient_province": "La Habana",
    "recipient_address": "Calle 23 #456, Vedado",
}


class TestQuote:

    @pytest.mark.api
    def test_commission_and_delivered_amount(self, client, db, customer_headers):
        remittance_type = create_test_remittance_type(db)
        db.commit()

        response = client.post(
            f"{BASE}/quote", headers=customer_headers,
            json={"remittance_type_id": remittance_type.id, "amount": "100.00"},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert Decimal(data["commission_total"]) == Decimal("7.00")
        assert Decimal(data["amount_to_deliver"]) == Decimal("29760.00")
        assert data["currency_delivered"] == "CUP"
        assert data["max_delivery_days"] == 3

    @pytest.mark.api
    @pytest.mark.parametrize("amount, bound", [("10.00", "min_amount"), ("1500.00", "max_amount")])
    def test_amount_outside_limits(self, client, db, customer_headers, amount, bound):
        remittance_type = create_test_remittance_type(db)
        db.commit()

        response = client.post(
            f"{BASE}/quote", headers=customer_headers,
            json={"remittance_type_id": remittance_type.id, "amount": amount},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "VALIDATION_ERROR"
        assert bound in data["details"]

    @pytest.mark.api
    def test_inactive_type_is_not_found(self, client, db, customer_headers):
        remittance_type = create_test_remittance_type(db, is_active=False)
        db.commit()

        response = client.post(
            f"{BASE}/quote", headers=customer_headers,
            json={"remittance_type_id": remittance_type.id, "amount": "100.00"},
        )

        assert response.status_code == 404


class TestCreateRemittance:

    @pytest.mark.api
    def test_creates_payment_pending_remittance(self, client, db, customer_user, customer_headers):
        remittance_type = create_test_remittance_type(db, max_delivery_days=2)
        db.commit()

        response = client.post(
            BASE, headers=customer_headers,
            json={"remittance_type_id": remittance_type.id, "amount": "100.00",
                  "notes": "Call before going", **RECIPIENT},
        )

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["status"] == "payment_pending"
        assert data["remittance_number"].startswith("REM-")
        assert data["remittance_number"].endswith("-00001")
        assert data["user_id"] == customer_user.id
        assert data["remittance_type_id"] == remittance_type.id
        assert Decimal(data["commission_total"]) == Decimal("7.00")
        assert Decimal(data["amount_to_deliver"]) == Decimal("29760.00")
        assert data["currency_sent"] == "USD"
        assert data["currency_delivered"] == "CUP"
        assert data["delivery_notes"] == "Call before going"
        assert data["version"] == 1
        assert data["available_actions"] == ["submit_payment_proof", "cancel"]

        remittance = db.query(Remittance).filter(Remittance.id == data["id"]).one()
        assert remittance.max_delivery_days == 2
        log = db.query(ActivityLog).filter(ActivityLog.action == "remittance_created").one()
        assert log.performed_by == customer_user.id

    @pytest.mark.api
    def test_numbers_follow_the_daily_sequence(self, client, db, customer_headers):
        remittance_type = create_test_remittance_type(db)
        db.commit()
        body = {"remittance_type_id": remittance_type.id, "amount": "50.00", **RECIPIENT}

        first = client.post(BASE, headers=customer_headers, json=body).json()
        second = client.post(BASE, headers=customer_headers, json=body).json()

        assert first["remittance_number"].endswith("-00001")
        assert second["remittance_number"].endswith("-00002")

    @pytest.mark.api
    def test_amount_below_minimum_creates_nothing(self, client, db, customer_headers):
        remittance_type = create_test_remittance_type(db)
        db.commit()

        response = client.post(
            BASE, headers=customer_headers,
            json={"remittance_type_id": remittance_type.id, "amount": "5.00", **RECIPIENT},
        )

        assert response.status_code == 400
        assert db.query(Remittance).count() == 0

    @pytest.mark.api
    def test_validation_starts_the_delivery_window(self, client, db, customer_headers, admin_headers):
        remittance_type = create_test_remittance_type(db, max_delivery_days=2)
        db.commit()
        created = client.post(
            BASE, headers=customer_headers,
            json={"remittance_type_id": remittance_type.id, "amount": "100.00", **RECIPIENT},
        ).json()
        assert created["max_delivery_date"] is None

        client.post(
            f"{BASE}/{created['id']}/payment-proof", headers=customer_headers,
            files={"file": ("zelle.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 32, "image/png")},
        )
        response = client.post(
            f"/api/v1/admin/remittances/{created['id']}/validate-payment", headers=admin_headers
        )

        assert response.status_code == 200, response.text
        remittance = db.query(Remittance).filter(Remittance.id == created["id"]).one()
        db.refresh(remittance)
        window = remittance.max_delivery_date - remittance.payment_validated_at
        assert window.days == 2

    @pytest.mark.api
    def test_active_types_for_customers(self, client, db, customer_headers):
        shown = create_test_remittance_type(db, display_order=1)
        create_test_remittance_type(db, is_active=False)
        first = create_test_remittance_type(db, display_order=0)
        db.commit()

        response = client.get(f"{BASE}/types", headers=customer_headers)

        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == [first.id, shown.id]


class TestAdminRemittanceTypes:

    @pytest.mark.api
    def test_create_and_update(self, client, admin_headers):
        response = client.post(
            ADMIN_BASE, headers=admin_headers,
            json={
                "name": "USD to MLC (card)",
                "delivery_currency": "mlc",
                "exchange_rate": "1.0000",
                "commission_percentage": "3",
                "delivery_method": "card",
                "min_amount": "20",
                "max_amount": "500",
            },
        )
        assert response.status_code == 201, response.text
        created = response.json()
        assert created["delivery_currency"] == "MLC"
        assert created["max_delivery_days"] == 3

        response = client.patch(
            f"{ADMIN_BASE}/{created['id']}", headers=admin_headers,
            json={"exchange_rate": "1.0500", "is_active": False},
        )
        assert response.status_code == 200
        assert Decimal(response.json()["exchange_rate"]) == Decimal("1.0500")
        assert response.json()["is_active"] is False

    @pytest.mark.api
    def test_duplicate_name(self, client, db, admin_headers):
        create_test_remittance_type(db, name="USD to CUP (cash)")
        db.commit()

        response = client.post(
            ADMIN_BASE, headers=admin_headers,
            json={"name": "USD to CUP (cash)", "delivery_currency": "CUP", "exchange_rate": "300"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "DUPLICATE_ERROR"

    @pytest.mark.api
    def test_update_cannot_invert_limits(self, client, db, admin_headers):
        remittance_type = create_test_remittance_type(db)
        db.commit()

        response = client.patch(
            f"{ADMIN_BASE}/{remittance_type.id}", headers=admin_headers, json={"max_amount": "10"}
        )

        assert response.status_code == 400

    @pytest.mark.api
    def test_customer_cannot_manage_types(self, client, customer_headers):
        response = client.get(ADMIN_BASE, headers=customer_headers)

        assert response.status_code == 403
        assert response.json()["error"] == "PERMISSION_DENIED"
