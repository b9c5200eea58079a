# Overview: Pytest coverage for AR/AP tracking, dashboard figures and reference lookup.

import pytest


@pytest.fixture
def invoiced_books(client, headers_a, manufacturer, distributor, customer, vendor):
    """
    One overdue customer invoice (part paid), one current vendor bill and
    one intercompany sale. Returns the intercompany transaction.
    """
    invoice = client.post("/api/invoices", headers=headers_a, json={
        "company_id": manufacturer.id,
        "customer_id": customer.id,
        "total_cents": 10000,
        "tax_cents": 1000,
        "due_date": "2020-01-31",
    }).get_json()
    client.post("/api/receipts", headers=headers_a, json={"invoice_id": invoice["id"], "amount_cents": 2500})

    client.post("/api/bills", headers=headers_a, json={
        "company_id": distributor.id,
        "vendor_id": vendor.id,
        "total_cents": 4000,
    })

    return client.post("/api/intercompany/sales-order", headers=headers_a, json={
        "source_company_id": manufacturer.id,
        "target_company_id": distributor.id,
        "total_cents": 3000,
    }).get_json()


class TestArApTracking:

    def test_summary_across_tenant(self, client, headers_a, invoiced_books):
        body = client.get("/api/ar-ap-summary", headers=headers_a).get_json()
        receivable = body["accounts_receivable"]
        payable = body["accounts_payable"]
        assert receivable["invoice_count"] == 1
        assert receivable["invoice_total_cents"] == 10000
        assert receivable["receipts_total_cents"] == 2500
        assert receivable["outstanding_cents"] == 7500
        assert payable["bill_total_cents"] == 4000
        assert payable["outstanding_cents"] == 4000
        assert body["net_position_cents"] == 3500

    def test_summary_for_one_company(self, client, headers_a, distributor, invoiced_books):
        body = client.get(f"/api/ar-ap-summary?company_id={distributor.id}", headers=headers_a).get_json()
        assert body["company_ids"] == [distributor.id]
        assert body["accounts_receivable"]["invoice_count"] == 0

    def test_ar_tracking_splits_overdue(self, client, headers_a, invoiced_books):
        body = client.get("/api/reports/ar-tracking", headers=headers_a).get_json()
        assert body["document_count"] == 1
        assert body["overdue_cents"] == 7500
        assert body["current_cents"] == 0
        doc = body["documents"][0]
        assert doc["is_overdue"] is True
        assert doc["days_overdue"] > 0
        assert doc["party_name"] == "Retail Co"

    def test_ap_tracking_current(self, client, headers_a, invoiced_books):
        body = client.get("/api/reports/ap-tracking", headers=headers_a).get_json()
        assert body["current_cents"] == 4000
        assert body["overdue_cents"] == 0
        assert body["documents"][0]["party_name"] == "Parts Supplier"


class TestDashboard:

    def test_stats(self, client, headers_a, invoiced_books):
        body = client.get("/api/dashboard/stats", headers=headers_a).get_json()
        assert body == {
            "total_companies": 2,
            "total_sales_orders": 1,
            "total_purchase_orders": 1,
            "total_invoices": 1,
            "total_bills": 1,
            "total_intercompany_transactions": 1,
        }

    def test_recent_transactions(self, client, headers_a, invoiced_books):
        body = client.get("/api/dashboard/recent-transactions", headers=headers_a).get_json()
        assert body["count"] == 5
        assert {row["type"] for row in body["items"]} == {
            "invoice", "receipt", "bill", "sales_order", "purchase_order",
        }

        body = client.get("/api/dashboard/recent-transactions?limit=2", headers=headers_a).get_json()
        assert body["count"] == 2

        resp = client.get("/api/dashboard/recent-transactions?limit=101", headers=headers_a)
        assert resp.status_code == 400

    def test_pending_actions(self, client, headers_a, invoiced_books):
        body = client.get("/api/dashboard/pending-actions", headers=headers_a).get_json()
        assert body["open_invoices"] == 1
        assert body["overdue_invoices"] == 1
        assert body["open_bills"] == 1
        assert body["overdue_bills"] == 0
        assert body["pending_sales_orders"] == 1
        assert body["pending_purchase_orders"] == 1
        assert body["intercompany_awaiting_settlement"] == 0

    def test_cash_flow(self, client, headers_a, invoiced_books):
        body = client.get("/api/dashboard/cash-flow?days=7", headers=headers_a).get_json()
        assert body["days"] == 7
        assert body["inflows_cents"] == 2500
        assert body["outflows_cents"] == 0
        assert body["net_cents"] == 2500

        resp = client.get("/api/dashboard/cash-flow?days=0", headers=headers_a)
        assert resp.status_code == 400

        body = client.get("/api/dashboard/cash-flow", headers=headers_a).get_json()
        assert body["days"] == 30
        assert body["inflows_cents"] == 2500

        resp = client.get("/api/dashboard/cash-flow?days=367", headers=headers_a)
        assert resp.status_code == 400

    def test_pl_monthly_uses_subtotals(self, client, headers_a, invoiced_books):
        body = client.get("/api/dashboard/pl-monthly", headers=headers_a).get_json()
        assert body["revenue_cents"] == 9000
        assert body["expenses_cents"] == 4000
        assert body["profit_cents"] == 5000


class TestReferenceLookup:

    def test_intercompany_reference_finds_both_orders(self, client, headers_a, manufacturer, distributor, invoiced_books):
        reference = invoiced_books["reference_number"]
        resp = client.get(f"/api/reference/{reference}", headers=headers_a)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["found"] is True
        assert body["intercompany_transaction"]["id"] == invoiced_books["id"]
        assert [o["company_id"] for o in body["sales_orders"]] == [manufacturer.id]
        assert [o["company_id"] for o in body["purchase_orders"]] == [distributor.id]
        assert body["invoices"] == []

    def test_document_number_lookup(self, client, headers_a, manufacturer, invoiced_books):
        number = f"INV-{manufacturer.id:03d}-0001"
        body = client.get(f"/api/reference/{number}", headers=headers_a).get_json()
        assert [inv["invoice_number"] for inv in body["invoices"]] == [number]
        assert body["intercompany_transaction"] is None

    def test_unknown_reference_is_404(self, client, headers_a, invoiced_books):
        resp = client.get("/api/reference/NOPE-1", headers=headers_a)
        assert resp.status_code == 404
        assert resp.get_json()["found"] is False

    def test_other_tenant_sees_nothing(self, client, headers_b, invoiced_books):
        resp = client.get(f"/api/reference/{invoiced_books['reference_number']}", headers=headers_b)
        assert resp.status_code == 404
