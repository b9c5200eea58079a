# Overview: Pytest coverage for mirrored intercompany transactions.

"""
Intercompany Transaction Tests

Every intercompany write lands in both ledgers at once:
1. Sales order <-> purchase order, same reference and total
2. Invoice <-> bill, same amount
3. Receipt <-> payment, same amount, payment linked to its receipt
4. A failure on either side leaves nothing behind
"""

import pytest
from sqlalchemy.exc import OperationalError

from multico.extensions import db
from multico.models import Customer, IntercompanyTransaction, PurchaseOrder, SalesOrder, Vendor
from multico.services import intercompany_service


def _sell(client, headers, seller, buyer, **extra):
    payload = {"source_company_id": seller.id, "target_company_id": buyer.id}
    payload.update(extra)
    return client.post("/api/intercompany/sales-order", headers=headers, json=payload)


def _invoiced_transaction(client, headers, seller, buyer, total_cents=10000):
    transaction = _sell(client, headers, seller, buyer, total_cents=total_cents).get_json()
    return _invoiced_transaction_for(client, headers, transaction["id"])


def _invoiced_transaction_for(client, headers, transaction_id):
    resp = client.post("/api/intercompany/invoice", headers=headers, json={"transaction_id": transaction_id})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _settle(client, headers, transaction_id, **extra):
    payload = {"transaction_id": transaction_id}
    payload.update(extra)
    return client.post("/api/intercompany/receipt-payment", headers=headers, json=payload)


class TestMirroredOrders:

    def test_sales_order_writes_both_sides(self, client, db_session, headers_a, manufacturer, distributor, widget):
        resp = _sell(client, headers_a, manufacturer, distributor, items=[{"product_id": widget.id, "quantity": 40}])
        assert resp.status_code == 201
        tx = resp.get_json()

        assert tx["reference_number"] == f"IC-{manufacturer.id:03d}-{distributor.id:03d}-00001"
        assert tx["source_company_id"] == manufacturer.id
        assert tx["target_company_id"] == distributor.id
        assert tx["initiated_by"] == "sales"
        assert tx["status"] == "pending"
        assert tx["payment_status"] == "pending"
        assert tx["amount_cents"] == 100000

        sales_order = tx["source_order"]
        purchase_order = tx["target_order"]
        assert sales_order["company_id"] == manufacturer.id
        assert purchase_order["company_id"] == distributor.id
        assert sales_order["total_cents"] == purchase_order["total_cents"] == 100000
        assert sales_order["reference_number"] == purchase_order["reference_number"] == tx["reference_number"]
        assert sales_order["items"][0]["product_id"] == widget.id
        assert purchase_order["items"][0]["product_id"] is None
        assert purchase_order["items"][0]["description"] == "Widget"

        customer = db_session.get(Customer, sales_order["customer_id"])
        vendor = db_session.get(Vendor, purchase_order["vendor_id"])
        assert customer.linked_company_id == distributor.id
        assert vendor.linked_company_id == manufacturer.id

    def test_linked_parties_are_reused(self, client, db_session, headers_a, manufacturer, distributor):
        first = _sell(client, headers_a, manufacturer, distributor, total_cents=1000).get_json()
        second = _sell(client, headers_a, manufacturer, distributor, total_cents=2000).get_json()

        assert first["source_order"]["customer_id"] == second["source_order"]["customer_id"]
        assert first["target_order"]["vendor_id"] == second["target_order"]["vendor_id"]
        assert second["reference_number"].endswith("-00002")
        assert db_session.query(Customer).filter_by(company_id=manufacturer.id).count() == 1

    def test_purchase_order_is_stored_seller_to_buyer(self, client, headers_a, manufacturer, distributor):
        resp = client.post("/api/intercompany/purchase-order", headers=headers_a, json={
            "source_company_id": distributor.id,
            "target_company_id": manufacturer.id,
            "items": [{"description": "Widgets", "quantity": 10, "unit_price": "15.00"}],
        })
        assert resp.status_code == 201
        tx = resp.get_json()
        assert tx["initiated_by"] == "purchase"
        assert tx["source_company_id"] == manufacturer.id
        assert tx["target_company_id"] == distributor.id
        assert tx["source_order"]["company_id"] == manufacturer.id
        assert tx["target_order"]["company_id"] == distributor.id
        assert tx["amount_cents"] == 15000

    def test_explicit_reference_must_be_unique(self, client, headers_a, manufacturer, distributor):
        resp = _sell(client, headers_a, manufacturer, distributor, total_cents=1000, reference_number="DEAL-7")
        assert resp.status_code == 201
        assert resp.get_json()["reference_number"] == "DEAL-7"

        resp = _sell(client, headers_a, manufacturer, distributor, total_cents=1000, reference_number="DEAL-7")
        assert resp.status_code == 409

    def test_same_company_is_400(self, client, headers_a, manufacturer):
        resp = _sell(client, headers_a, manufacturer, manufacturer, total_cents=1000)
        assert resp.status_code == 400

    def test_missing_total_is_400(self, client, headers_a, manufacturer, distributor):
        resp = _sell(client, headers_a, manufacturer, distributor)
        assert resp.status_code == 400

    def test_failure_on_buyer_side_rolls_back_seller_side(
        self, client, db_session, headers_a, manufacturer, distributor, monkeypatch
    ):
        def _boom(**kwargs):
            raise RuntimeError("purchase order insert failed")

        monkeypatch.setattr(intercompany_service, "build_purchase_order", _boom)

        resp = _sell(client, headers_a, manufacturer, distributor, total_cents=5000)
        assert resp.status_code == 500

        assert db_session.query(SalesOrder).count() == 0
        assert db_session.query(PurchaseOrder).count() == 0
        assert db_session.query(IntercompanyTransaction).count() == 0
        assert db_session.query(Customer).filter_by(linked_company_id=distributor.id).count() == 0

    def test_failed_commit_reruns_the_whole_write(
        self, client, db_session, headers_a, manufacturer, distributor, monkeypatch
    ):
        real_commit = db.session.commit
        attempts = []

        def _commit_locked_once():
            attempts.append(1)
            if len(attempts) == 1:
                raise OperationalError("COMMIT", {}, Exception("database is locked"))
            return real_commit()

        monkeypatch.setattr(db.session, "commit", _commit_locked_once)
        resp = _sell(client, headers_a, manufacturer, distributor, total_cents=5000)
        monkeypatch.undo()

        assert resp.status_code == 201
        assert len(attempts) == 2
        assert db_session.query(SalesOrder).count() == 1
        assert db_session.query(PurchaseOrder).count() == 1
        stored = db_session.query(IntercompanyTransaction).one()
        assert stored.id == resp.get_json()["id"]
        assert stored.reference_number == resp.get_json()["reference_number"]

    def test_commit_that_keeps_failing_is_500(
        self, client, db_session, headers_a, manufacturer, distributor, monkeypatch
    ):
        def _commit_locked():
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(db.session, "commit", _commit_locked)
        resp = _sell(client, headers_a, manufacturer, distributor, total_cents=5000)
        monkeypatch.undo()

        assert resp.status_code == 500
        assert db_session.query(SalesOrder).count() == 0
        assert db_session.query(IntercompanyTransaction).count() == 0

    @pytest.mark.parametrize("total", ["NaN", "Infinity", "-Infinity", "sNaN"])
    def test_non_finite_total_is_400(self, client, headers_a, manufacturer, distributor, total):
        resp = _sell(client, headers_a, manufacturer, distributor, total=total)
        assert resp.status_code == 400

    def test_plain_endpoints_refuse_intercompany_documents(self, client, headers_a, manufacturer, distributor):
        tx = _sell(client, headers_a, manufacturer, distributor, total_cents=5000).get_json()

        resp = client.post(f"/api/sales-orders/{tx['source_order_id']}/cancel", headers=headers_a)
        assert resp.status_code == 409

        resp = client.post("/api/invoices", headers=headers_a, json={
            "company_id": manufacturer.id,
            "sales_order_id": tx["source_order_id"],
        })
        assert resp.status_code == 409

        resp = client.post("/api/bills", headers=headers_a, json={
            "company_id": distributor.id,
            "purchase_order_id": tx["target_order_id"],
        })
        assert resp.status_code == 409


class TestMirroredInvoices:

    def test_invoice_writes_bill_for_same_amount(self, client, headers_a, manufacturer, distributor):
        tx = _invoiced_transaction(client, headers_a, manufacturer, distributor, total_cents=10000)

        assert tx["status"] == "invoiced"
        invoice = tx["source_invoice"]
        bill = tx["target_bill"]
        assert invoice["company_id"] == manufacturer.id
        assert bill["company_id"] == distributor.id
        assert invoice["total_cents"] == bill["total_cents"] == 10000
        assert invoice["reference_number"] == bill["reference_number"] == tx["reference_number"]
        assert invoice["due_date"] == bill["due_date"]
        assert tx["source_order"]["status"] == "invoiced"
        assert tx["target_order"]["status"] == "invoiced"

    def test_invoice_by_sales_order_id(self, client, headers_a, manufacturer, distributor):
        tx = _sell(client, headers_a, manufacturer, distributor, total_cents=8000).get_json()
        resp = client.post("/api/intercompany/invoice", headers=headers_a, json={
            "sales_order_id": tx["source_order_id"],
            "total_cents": 8000,
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["target_bill"]["total_cents"] == 8000
        assert body["source_invoice"]["is_partial_invoice"] is False

    def test_partial_invoice_is_400(self, client, headers_a, manufacturer, distributor):
        tx = _sell(client, headers_a, manufacturer, distributor, total_cents=8000).get_json()
        resp = client.post("/api/intercompany/invoice", headers=headers_a, json={
            "transaction_id": tx["id"],
            "total_cents": 3000,
        })
        assert resp.status_code == 400

        detail = client.get(f"/api/intercompany/transactions/{tx['id']}", headers=headers_a).get_json()
        assert detail["status"] == "pending"
        assert detail["source_invoice_id"] is None

        # The order can still be invoiced in full and settled to completion
        full = _invoiced_transaction_for(client, headers_a, tx["id"])
        body = _settle(client, headers_a, full["id"]).get_json()
        assert body["transaction"]["status"] == "completed"
        assert body["transaction"]["payment_status"] == "paid"

        detail = client.get(f"/api/intercompany/transactions/{tx['id']}", headers=headers_a).get_json()
        assert detail["source_order"]["status"] == "completed"
        assert detail["target_order"]["status"] == "completed"

    def test_second_invoice_is_409(self, client, headers_a, manufacturer, distributor):
        tx = _invoiced_transaction(client, headers_a, manufacturer, distributor)
        resp = client.post("/api/intercompany/invoice", headers=headers_a, json={"transaction_id": tx["id"]})
        assert resp.status_code == 409

    def test_invoice_above_order_total_is_400(self, client, headers_a, manufacturer, distributor):
        tx = _sell(client, headers_a, manufacturer, distributor, total_cents=1000).get_json()
        resp = client.post("/api/intercompany/invoice", headers=headers_a, json={
            "transaction_id": tx["id"],
            "total_cents": 1001,
        })
        assert resp.status_code == 400

    def test_unknown_transaction_is_404(self, client, headers_a, manufacturer):
        resp = client.post("/api/intercompany/invoice", headers=headers_a, json={"transaction_id": 999})
        assert resp.status_code == 404

    def test_intercompany_invoice_cannot_be_voided(self, client, headers_a, manufacturer, distributor):
        tx = _sell(client, headers_a, manufacturer, distributor, total_cents=8000).get_json()
        tx = _invoiced_transaction_for(client, headers_a, tx["id"])
        resp = client.post(f"/api/invoices/{tx['source_invoice_id']}/void", headers=headers_a)
        assert resp.status_code == 409


class TestMirroredSettlements:

    def test_receipt_before_invoice_is_409(self, client, headers_a, manufacturer, distributor):
        tx = _sell(client, headers_a, manufacturer, distributor, total_cents=1000).get_json()
        resp = _settle(client, headers_a, tx["id"], amount_cents=500)
        assert resp.status_code == 409

    def test_partial_then_full_settlement(self, client, headers_a, manufacturer, distributor):
        tx = _invoiced_transaction(client, headers_a, manufacturer, distributor, total_cents=10000)

        resp = _settle(client, headers_a, tx["id"], amount_cents=4000, payment_method="wire", reference="W-1")
        assert resp.status_code == 201
        body = resp.get_json()
        receipt = body["receipt"]
        payment = body["payment"]
        assert body["transaction"]["payment_status"] == "partial"
        assert body["transaction"]["status"] == "invoiced"
        assert body["transaction"]["paid_cents"] == 4000
        assert receipt["company_id"] == manufacturer.id
        assert payment["company_id"] == distributor.id
        assert receipt["amount_cents"] == payment["amount_cents"] == 4000
        assert payment["mirror_receipt_id"] == receipt["id"]
        assert payment["payment_method"] == "wire"
        assert receipt["reference_number"] == payment["reference_number"] == tx["reference_number"]

        resp = _settle(client, headers_a, tx["id"], amount_cents=6001)
        assert resp.status_code == 400

        resp = _settle(client, headers_a, tx["id"])
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["receipt"]["amount_cents"] == 6000
        assert body["transaction"]["payment_status"] == "paid"
        assert body["transaction"]["status"] == "completed"
        assert body["transaction"]["remaining_cents"] == 0

        detail = client.get(f"/api/intercompany/transactions/{tx['id']}", headers=headers_a).get_json()
        assert detail["source_invoice"]["status"] == "paid"
        assert detail["target_bill"]["status"] == "paid"
        assert detail["source_order"]["status"] == "completed"
        assert detail["target_order"]["status"] == "completed"
        assert len(detail["receipts"]) == 2
        assert len(detail["payments"]) == 2

        resp = _settle(client, headers_a, tx["id"], amount_cents=1)
        assert resp.status_code == 409

    def test_settle_by_invoice_id(self, client, headers_a, manufacturer, distributor):
        tx = _invoiced_transaction(client, headers_a, manufacturer, distributor, total_cents=2500)
        resp = client.post("/api/intercompany/receipt-payment", headers=headers_a, json={
            "invoice_id": tx["source_invoice_id"],
            "amount": "25.00",
        })
        assert resp.status_code == 201
        assert resp.get_json()["transaction"]["status"] == "completed"

    def test_plain_receipt_refuses_intercompany_invoice(self, client, headers_a, manufacturer, distributor):
        tx = _invoiced_transaction(client, headers_a, manufacturer, distributor)
        resp = client.post("/api/receipts", headers=headers_a, json={"invoice_id": tx["source_invoice_id"]})
        assert resp.status_code == 409
        resp = client.post("/api/payments", headers=headers_a, json={"bill_id": tx["target_bill_id"]})
        assert resp.status_code == 409


class TestTransactionQueries:

    def test_cancel_pending_transaction(self, client, headers_a, manufacturer, distributor):
        tx = _sell(client, headers_a, manufacturer, distributor, total_cents=1000).get_json()

        resp = client.post(f"/api/intercompany/transactions/{tx['id']}/cancel", headers=headers_a)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "cancelled"
        assert body["source_order"]["status"] == "cancelled"
        assert body["target_order"]["status"] == "cancelled"

        resp = client.post(f"/api/intercompany/transactions/{tx['id']}/cancel", headers=headers_a)
        assert resp.status_code == 409

    def test_cannot_cancel_invoiced_transaction(self, client, headers_a, manufacturer, distributor):
        tx = _invoiced_transaction(client, headers_a, manufacturer, distributor)
        resp = client.post(f"/api/intercompany/transactions/{tx['id']}/cancel", headers=headers_a)
        assert resp.status_code == 409

    def test_list_filters(self, client, headers_a, manufacturer, distributor):
        _sell(client, headers_a, manufacturer, distributor, total_cents=1000)
        _invoiced_transaction(client, headers_a, manufacturer, distributor)

        body = client.get("/api/intercompany/transactions", headers=headers_a).get_json()
        assert body["count"] == 2

        body = client.get("/api/intercompany/transactions?status=invoiced", headers=headers_a).get_json()
        assert body["count"] == 1

        body = client.get(
            f"/api/intercompany/transactions?company_id={distributor.id}&payment_status=pending",
            headers=headers_a,
        ).get_json()
        assert body["count"] == 2

        resp = client.get("/api/intercompany/transactions?status=bogus", headers=headers_a)
        assert resp.status_code == 400

    def test_foreign_company_filter_is_404(self, client, headers_a, foreign_company):
        resp = client.get(f"/api/intercompany/transactions?company_id={foreign_company.id}", headers=headers_a)
        assert resp.status_code == 404

    def test_receipt_eligible(self, client, headers_a, manufacturer, distributor):
        _sell(client, headers_a, manufacturer, distributor, total_cents=1000)
        tx = _invoiced_transaction(client, headers_a, manufacturer, distributor, total_cents=5000)
        _settle(client, headers_a, tx["id"], amount_cents=2000)

        body = client.get("/api/intercompany/receipt-eligible", headers=headers_a).get_json()
        assert body["count"] == 1
        item = body["items"][0]
        assert item["transaction_id"] == tx["id"]
        assert item["remaining_cents"] == 3000
        assert item["paid_cents"] == 2000
        assert item["invoice_id"] == tx["source_invoice_id"]
        assert item["bill_id"] == tx["target_bill_id"]

    def test_balances_per_counterparty(self, client, headers_a, manufacturer, distributor):
        tx = _invoiced_transaction(client, headers_a, manufacturer, distributor, total_cents=5000)
        _settle(client, headers_a, tx["id"], amount_cents=1500)

        resp = client.get(f"/api/intercompany-balances?company_id={manufacturer.id}", headers=headers_a)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["total_receivable_cents"] == 3500
        assert body["total_payable_cents"] == 0
        assert body["balances"][0]["company_id"] == distributor.id
        assert body["balances"][0]["sales_cents"] == 5000

        body = client.get(f"/api/intercompany-balances?company_id={distributor.id}", headers=headers_a).get_json()
        assert body["total_payable_cents"] == 3500
        assert body["net_cents"] == -3500

    def test_balances_require_company(self, client, headers_a, manufacturer):
        assert client.get("/api/intercompany-balances", headers=headers_a).status_code == 400
