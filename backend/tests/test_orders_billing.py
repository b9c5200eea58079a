# Overview: Pytest coverage for orders, invoices, bills, receipts and payments.

"""
Order-to-Cash / Procure-to-Pay Tests

Covers the single-company document chain:
1. Orders priced from product lines or an explicit total
2. Partial invoicing; the invoiced sum never exceeds the order total
3. Receipts and payments; never more than the balance due
4. Status moves forward only: pending -> invoiced -> completed
"""

import pytest


def _create_sales_order(client, headers, company, customer, **extra):
    payload = {"company_id": company.id, "customer_id": customer.id}
    payload.update(extra)
    resp = client.post("/api/sales-orders", headers=headers, json=payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _invoice(client, headers, company, order_id, **extra):
    payload = {"company_id": company.id, "sales_order_id": order_id}
    payload.update(extra)
    return client.post("/api/invoices", headers=headers, json=payload)


class TestSalesOrders:

    def test_create_from_product_lines(self, client, headers_a, manufacturer, customer, widget):
        order = _create_sales_order(
            client, headers_a, manufacturer, customer,
            items=[
                {"product_id": widget.id, "quantity": 4},
                {"description": "Setup fee", "unit_price": "50.00"},
            ],
        )
        assert order["status"] == "pending"
        assert order["total_cents"] == 4 * 2500 + 5000
        assert order["order_number"] == f"SO-{manufacturer.id:03d}-0001"
        assert [item["amount_cents"] for item in order["items"]] == [10000, 5000]
        assert order["expected_date"] is not None

    def test_create_from_total(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total="120.00")
        assert order["total_cents"] == 12000
        assert order["items"] == []

    @pytest.mark.parametrize("payload", [
        {},
        {"total_cents": 0},
        {"total_cents": -500},
        {"items": "not-a-list"},
        {"items": [{"description": "No price"}]},
        {"items": [{"description": "Bad qty", "unit_price_cents": 100, "quantity": 0}]},
        {"total": "NaN"},
        {"total": "Infinity"},
        {"total_cents": 1_000_000_000_000},
        {"items": [{"description": "Bad price", "unit_price": "sNaN"}]},
        {"items": [{"description": "Bulk", "unit_price_cents": 100, "quantity": 1_000_001}]},
        {"items": [{"description": "Huge", "unit_price_cents": 999_999_999_999, "quantity": 2}]},
    ])
    def test_invalid_order_is_400(self, client, headers_a, manufacturer, customer, payload):
        body = {"company_id": manufacturer.id, "customer_id": customer.id}
        body.update(payload)
        resp = client.post("/api/sales-orders", headers=headers_a, json=body)
        assert resp.status_code == 400

    def test_totals_beyond_32_bits(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=5_000_000_000)
        assert order["total_cents"] == 5_000_000_000

        detail = client.get(f"/api/sales-orders/{order['id']}", headers=headers_a).get_json()
        assert detail["total_cents"] == 5_000_000_000

    def test_customer_of_other_company_is_404(self, client, headers_a, distributor, customer):
        resp = client.post("/api/sales-orders", headers=headers_a, json={
            "company_id": distributor.id,
            "customer_id": customer.id,
            "total_cents": 1000,
        })
        assert resp.status_code == 404

    def test_list_filters_and_pagination(self, client, headers_a, manufacturer, customer):
        for cents in (1000, 2000, 3000):
            _create_sales_order(client, headers_a, manufacturer, customer, total_cents=cents)

        resp = client.get("/api/sales-orders?limit=2", headers=headers_a)
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["count"] == 3
        assert body["limit"] == 2
        assert len(body["items"]) == 2

        resp = client.get("/api/sales-orders?status=bogus", headers=headers_a)
        assert resp.status_code == 400

    def test_cancel_pending_order(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=1000)

        resp = client.post(f"/api/sales-orders/{order['id']}/cancel", headers=headers_a)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "cancelled"

        resp = client.post(f"/api/sales-orders/{order['id']}/cancel", headers=headers_a)
        assert resp.status_code == 409

    def test_cannot_cancel_invoiced_order(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=1000)
        assert _invoice(client, headers_a, manufacturer, order["id"], total_cents=400).status_code == 201

        resp = client.post(f"/api/sales-orders/{order['id']}/cancel", headers=headers_a)
        assert resp.status_code == 409

    def test_summary(self, client, headers_a, manufacturer, customer):
        _create_sales_order(client, headers_a, manufacturer, customer, total_cents=1000)
        cancelled = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=500)
        client.post(f"/api/sales-orders/{cancelled['id']}/cancel", headers=headers_a)

        body = client.get("/api/sales-orders/summary", headers=headers_a).get_json()
        assert body["count"] == 2
        assert body["total_cents"] == 1000
        assert body["pending_cents"] == 1000
        assert body["by_status"]["cancelled"] == 1


class TestInvoicesAndReceipts:

    def test_partial_invoicing_then_full(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=10000)

        resp = _invoice(client, headers_a, manufacturer, order["id"], total_cents=4000)
        assert resp.status_code == 201
        first = resp.get_json()
        assert first["is_partial_invoice"] is True
        assert first["due_date"] is not None

        detail = client.get(f"/api/sales-orders/{order['id']}", headers=headers_a).get_json()
        assert detail["status"] == "pending"
        assert detail["invoiced_cents"] == 4000

        resp = _invoice(client, headers_a, manufacturer, order["id"], total_cents=7000)
        assert resp.status_code == 400

        resp = _invoice(client, headers_a, manufacturer, order["id"])
        assert resp.status_code == 201
        assert resp.get_json()["total_cents"] == 6000
        assert resp.get_json()["is_partial_invoice"] is False

        detail = client.get(f"/api/sales-orders/{order['id']}", headers=headers_a).get_json()
        assert detail["status"] == "invoiced"
        assert len(detail["invoices"]) == 2

        resp = _invoice(client, headers_a, manufacturer, order["id"], total_cents=1)
        assert resp.status_code == 409

    def test_standalone_invoice_needs_customer(self, client, headers_a, manufacturer, customer):
        resp = client.post("/api/invoices", headers=headers_a, json={
            "company_id": manufacturer.id,
            "total_cents": 2500,
        })
        assert resp.status_code == 400

        resp = client.post("/api/invoices", headers=headers_a, json={
            "company_id": manufacturer.id,
            "customer_id": customer.id,
            "total": "25.00",
            "tax": "5.00",
        })
        assert resp.status_code == 201
        invoice = resp.get_json()
        assert invoice["sales_order_id"] is None
        assert invoice["subtotal_cents"] == 2000
        assert invoice["tax_cents"] == 500
        assert invoice["invoice_number"] == f"INV-{manufacturer.id:03d}-0001"

    def test_receipts_move_invoice_and_order_forward(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=10000)
        invoice = _invoice(client, headers_a, manufacturer, order["id"]).get_json()

        resp = client.post("/api/receipts", headers=headers_a, json={
            "invoice_id": invoice["id"],
            "amount_cents": 10001,
        })
        assert resp.status_code == 400

        resp = client.post("/api/receipts", headers=headers_a, json={
            "invoice_id": invoice["id"],
            "amount_cents": 3000,
            "payment_method": "check",
            "reference": "CHK-1001",
        })
        assert resp.status_code == 201
        receipt = resp.get_json()
        assert receipt["is_partial_payment"] is True
        assert receipt["payment_method"] == "check"

        detail = client.get(f"/api/invoices/{invoice['id']}", headers=headers_a).get_json()
        assert detail["status"] == "partial"
        assert detail["balance_due_cents"] == 7000
        assert len(detail["receipts"]) == 1

        resp = client.post("/api/receipts", headers=headers_a, json={"invoice_id": invoice["id"]})
        assert resp.status_code == 201
        assert resp.get_json()["amount_cents"] == 7000

        detail = client.get(f"/api/invoices/{invoice['id']}", headers=headers_a).get_json()
        assert detail["status"] == "paid"
        assert detail["balance_due_cents"] == 0

        order_detail = client.get(f"/api/sales-orders/{order['id']}", headers=headers_a).get_json()
        assert order_detail["status"] == "completed"

        resp = client.post("/api/receipts", headers=headers_a, json={
            "invoice_id": invoice["id"],
            "amount_cents": 1,
        })
        assert resp.status_code == 409

    def test_unknown_payment_method_is_400(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=1000)
        invoice = _invoice(client, headers_a, manufacturer, order["id"]).get_json()
        resp = client.post("/api/receipts", headers=headers_a, json={
            "invoice_id": invoice["id"],
            "payment_method": "barter",
        })
        assert resp.status_code == 400

    def test_void_open_invoice_frees_order_amount(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=10000)
        invoice = _invoice(client, headers_a, manufacturer, order["id"], total_cents=4000).get_json()

        resp = client.post(f"/api/invoices/{invoice['id']}/void", headers=headers_a)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "void"
        assert resp.get_json()["balance_due_cents"] == 0

        detail = client.get(f"/api/sales-orders/{order['id']}", headers=headers_a).get_json()
        assert detail["invoiced_cents"] == 0

        resp = client.post(f"/api/invoices/{invoice['id']}/void", headers=headers_a)
        assert resp.status_code == 409

    def test_cannot_void_paid_or_fully_invoiced(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=1000)
        invoice = _invoice(client, headers_a, manufacturer, order["id"]).get_json()

        resp = client.post(f"/api/invoices/{invoice['id']}/void", headers=headers_a)
        assert resp.status_code == 409

        client.post("/api/receipts", headers=headers_a, json={"invoice_id": invoice["id"]})
        resp = client.post(f"/api/invoices/{invoice['id']}/void", headers=headers_a)
        assert resp.status_code == 409

    def test_invoice_and_receipt_summaries(self, client, headers_a, manufacturer, customer):
        order = _create_sales_order(client, headers_a, manufacturer, customer, total_cents=10000)
        invoice = _invoice(client, headers_a, manufacturer, order["id"]).get_json()
        client.post("/api/receipts", headers=headers_a, json={"invoice_id": invoice["id"], "amount_cents": 2500})

        body = client.get("/api/invoices/summary", headers=headers_a).get_json()
        assert body["count"] == 1
        assert body["paid_cents"] == 2500
        assert body["outstanding_cents"] == 7500

        body = client.get(f"/api/receipts/summary?company_id={manufacturer.id}", headers=headers_a).get_json()
        assert body["count"] == 1
        assert body["total_cents"] == 2500
        assert body["by_payment_method"] == {"bank_transfer": {"count": 1, "total_cents": 2500}}


class TestBillsAndPayments:

    def test_purchase_order_bill_payment_flow(self, client, headers_a, distributor, vendor):
        resp = client.post("/api/purchase-orders", headers=headers_a, json={
            "company_id": distributor.id,
            "vendor_id": vendor.id,
            "items": [{"description": "Bolts", "quantity": 100, "unit_price_cents": 30}],
        })
        assert resp.status_code == 201
        order = resp.get_json()
        assert order["total_cents"] == 3000
        assert order["order_number"] == f"PO-{distributor.id:03d}-0001"

        resp = client.post("/api/bills", headers=headers_a, json={
            "company_id": distributor.id,
            "purchase_order_id": order["id"],
            "total_cents": 3001,
        })
        assert resp.status_code == 400

        resp = client.post("/api/bills", headers=headers_a, json={
            "company_id": distributor.id,
            "purchase_order_id": order["id"],
        })
        assert resp.status_code == 201
        bill = resp.get_json()
        assert bill["bill_number"] == f"BILL-{distributor.id:03d}-0001"

        detail = client.get(f"/api/purchase-orders/{order['id']}", headers=headers_a).get_json()
        assert detail["status"] == "invoiced"

        resp = client.post("/api/payments", headers=headers_a, json={
            "bill_id": bill["id"],
            "amount_cents": 5000,
        })
        assert resp.status_code == 400

        resp = client.post("/api/payments", headers=headers_a, json={"bill_id": bill["id"], "amount": "30.00"})
        assert resp.status_code == 201
        payment = resp.get_json()
        assert payment["payment_number"] == f"PAY-{distributor.id:03d}-0001"
        assert payment["mirror_receipt_id"] is None

        detail = client.get(f"/api/bills/{bill['id']}", headers=headers_a).get_json()
        assert detail["status"] == "paid"
        assert len(detail["payments"]) == 1

        detail = client.get(f"/api/purchase-orders/{order['id']}", headers=headers_a).get_json()
        assert detail["status"] == "completed"

    def test_unknown_bill_is_404(self, client, headers_a, distributor):
        assert client.get("/api/bills/424242", headers=headers_a).status_code == 404
        resp = client.post("/api/payments", headers=headers_a, json={"bill_id": 424242})
        assert resp.status_code == 404
