from __future__ import annotations

from datetime import date
from decimal import Decimal

from backend.app import models


def _invoice_payload(tenant: models.Tenant, **overrides) -> dict:
    payload = {
        "tenant_id": tenant.id,
        "room_id": tenant.room_id,
        "period_start": "2024-02-01",
        "period_end": "2024-02-29",
        "issue_date": "2024-01-25",
        "due_date": "2024-02-08",
        "banish_date": "2024-02-15",
        "description": "Manual invoice",
        "created_by": "front-desk",
        "charges": [
            {"name": "Rent", "amount": "500000"},
            {"name": "Electricity", "amount": "75000.25", "description": "Token top up"},
        ],
    }
    payload.update(overrides)
    return payload


def test_health_endpoint(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_invoice_sums_charges(client, tenant_factory):
    tenant = tenant_factory()

    response = client.post("/invoices/", json=_invoice_payload(tenant))

    assert response.status_code == 201, response.text
    body = response.json()
    assert Decimal(body["total_amount_due"]) == Decimal("575000.25")
    assert Decimal(body["total_amount_paid"]) == Decimal("0")
    assert body["status"] == models.InvoiceStatus.ISSUED.value
    assert body["created_by"] == "front-desk"
    assert len(body["charges"]) == 2
    assert all(charge["transaction_type"] == "debit" for charge in body["charges"])


def test_create_invoice_rejects_duplicate_period(client, tenant_factory):
    tenant = tenant_factory()
    assert client.post("/invoices/", json=_invoice_payload(tenant)).status_code == 201

    response = client.post("/invoices/", json=_invoice_payload(tenant))

    assert response.status_code == 400
    assert "already has an invoice" in response.json()["detail"]


def test_create_invoice_requires_charges(client, tenant_factory):
    tenant = tenant_factory()

    response = client.post("/invoices/", json=_invoice_payload(tenant, charges=[]))

    assert response.status_code == 422


def test_create_invoice_rejects_inverted_period(client, tenant_factory):
    tenant = tenant_factory()

    response = client.post(
        "/invoices/",
        json=_invoice_payload(tenant, period_start="2024-03-01", period_end="2024-02-01"),
    )

    assert response.status_code == 422


def test_create_invoice_unknown_tenant_returns_404(client, tenant_factory):
    tenant = tenant_factory()

    response = client.post(
        "/invoices/",
        json=_invoice_payload(tenant, tenant_id="00000000-0000-0000-0000-000000000000"),
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Provided tenant not found"


def test_list_and_filter_invoices(client, tenant_factory):
    first = tenant_factory()
    second = tenant_factory()
    client.post("/invoices/", json=_invoice_payload(first))

    response = client.get("/invoices/", params={"tenant_id": first.id})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert {item["tenant_id"] for item in body["items"]} == {first.id}

    issued = client.get("/invoices/", params={"status": "Issued"}).json()
    assert issued["total"] == 1

    response = client.get(
        "/invoices/", params={"issued_from": "2024-02-01", "issued_to": "2024-01-01"}
    )
    assert response.status_code == 400

    assert client.get("/invoices/", params={"tenant_id": second.id}).json()["total"] == 1


def test_get_invoice_detail_and_missing(client, tenant_factory):
    tenant = tenant_factory()
    created = client.post("/invoices/", json=_invoice_payload(tenant)).json()

    response = client.get(f"/invoices/{created['id']}")

    assert response.status_code == 200
    assert response.json()["transactions"] == []
    assert client.get("/invoices/does-not-exist").status_code == 404


def test_update_invoice_fields(client, tenant_factory):
    tenant = tenant_factory()
    created = client.post("/invoices/", json=_invoice_payload(tenant)).json()

    response = client.put(
        f"/invoices/{created['id']}",
        json={"due_date": "2024-02-10", "description": "Extended", "updated_by": "manager"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["due_date"] == "2024-02-10"
    assert body["description"] == "Extended"
    assert body["updated_by"] == "manager"


def test_update_paid_invoice_only_allows_void(client, db_session, tenant_factory):
    tenant = tenant_factory()
    paid = (
        db_session.query(models.Invoice)
        .filter(models.Invoice.tenant_id == tenant.id)
        .one()
    )

    response = client.put(f"/invoices/{paid.id}", json={"status": "Unpaid"})
    assert response.status_code == 400

    response = client.put(f"/invoices/{paid.id}", json={"status": "Void"})
    assert response.status_code == 200
    assert response.json()["status"] == "Void"


def test_update_rejects_inverted_period(client, tenant_factory):
    tenant = tenant_factory()
    created = client.post("/invoices/", json=_invoice_payload(tenant)).json()

    response = client.put(f"/invoices/{created['id']}", json={"period_end": "2024-01-15"})

    assert response.status_code == 400


def test_void_invoice(client, db_session, tenant_factory):
    tenant = tenant_factory()
    created = client.post("/invoices/", json=_invoice_payload(tenant)).json()

    response = client.delete(f"/invoices/{created['id']}", params={"updated_by": "manager"})

    assert response.status_code == 200
    assert response.json()["status"] == "Void"
    assert response.json()["updated_by"] == "manager"

    # A voided period can be billed again
    assert client.post("/invoices/", json=_invoice_payload(tenant)).status_code == 201


def test_void_refused_for_paid_invoice(client, db_session, tenant_factory):
    tenant = tenant_factory()
    paid = (
        db_session.query(models.Invoice)
        .filter(models.Invoice.tenant_id == tenant.id)
        .one()
    )

    response = client.delete(f"/invoices/{paid.id}")

    assert response.status_code == 400
    assert db_session.get(models.Invoice, paid.id).period_end == date(2024, 1, 31)


def test_charges_are_returned_in_the_order_they_were_given(client, tenant_factory):
    tenant = tenant_factory()
    charges = [
        {"name": "Rent", "amount": "500000"},
        {"name": "WiFi", "amount": "50000"},
        {"name": "Cleaning", "amount": "25000"},
        {"name": "Laundry", "amount": "30000"},
    ]
    created = client.post("/invoices/", json=_invoice_payload(tenant, charges=charges)).json()

    body = client.get(f"/invoices/{created['id']}").json()

    assert [charge["name"] for charge in body["charges"]] == ["Rent", "WiFi", "Cleaning", "Laundry"]
    assert [charge["position"] for charge in body["charges"]] == [0, 1, 2, 3]
    assert Decimal(body["total_amount_due"]) == Decimal("605000")


def test_reopening_voided_invoice_refused_when_period_was_reissued(client, db_session, tenant_factory):
    tenant = tenant_factory()
    voided = client.post("/invoices/", json=_invoice_payload(tenant)).json()
    assert client.delete(f"/invoices/{voided['id']}").status_code == 200
    replacement = client.post("/invoices/", json=_invoice_payload(tenant)).json()

    response = client.put(f"/invoices/{voided['id']}", json={"status": "Issued"})

    assert response.status_code == 400
    assert replacement["id"] in response.json()["detail"]
    assert db_session.get(models.Invoice, voided["id"]).status == models.InvoiceStatus.VOID

    # The session is still usable after the refusal.
    assert client.get(f"/invoices/{replacement['id']}").status_code == 200


def test_update_refuses_period_start_of_another_live_invoice(client, tenant_factory):
    tenant = tenant_factory()
    created = client.post("/invoices/", json=_invoice_payload(tenant)).json()

    response = client.put(f"/invoices/{created['id']}", json={"period_start": "2024-01-01"})

    assert response.status_code == 400
    assert "already covers" in response.json()["detail"]


def test_voiding_through_update_skips_the_live_invoice_check(client, tenant_factory):
    tenant = tenant_factory()
    created = client.post("/invoices/", json=_invoice_payload(tenant)).json()

    response = client.put(
        f"/invoices/{created['id']}", json={"status": "Void", "period_start": "2024-01-01"}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "Void"
