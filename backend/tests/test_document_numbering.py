# Overview: Pytest coverage for per-company document numbering.

import pytest
from multico.models import DocumentSequence
from multico.services.document_service import (
    DocumentSequenceError,
    next_document_number,
    next_intercompany_reference,
)


class TestDocumentNumbers:

    def test_sequential_per_company_and_type(self, db_session, manufacturer, distributor):
        first = next_document_number(company_id=manufacturer.id, document_type="SALES_ORDER")
        second = next_document_number(company_id=manufacturer.id, document_type="SALES_ORDER")
        invoice = next_document_number(company_id=manufacturer.id, document_type="INVOICE")
        other = next_document_number(company_id=distributor.id, document_type="SALES_ORDER")
        db_session.commit()

        assert first == f"SO-{manufacturer.id:03d}-0001"
        assert second == f"SO-{manufacturer.id:03d}-0002"
        assert invoice == f"INV-{manufacturer.id:03d}-0001"
        assert other == f"SO-{distributor.id:03d}-0001"

        seq = db_session.query(DocumentSequence).filter_by(
            company_id=manufacturer.id, document_type="SALES_ORDER"
        ).one()
        assert seq.next_number == 3

    def test_rolled_back_numbers_are_reused(self, db_session, manufacturer):
        next_document_number(company_id=manufacturer.id, document_type="BILL")
        db_session.commit()
        next_document_number(company_id=manufacturer.id, document_type="BILL")
        db_session.rollback()

        assert next_document_number(company_id=manufacturer.id, document_type="BILL") == f"BILL-{manufacturer.id:03d}-0002"

    def test_unknown_type_is_rejected(self, db_session, manufacturer):
        with pytest.raises(DocumentSequenceError):
            next_document_number(company_id=manufacturer.id, document_type="CREDIT_NOTE")

    def test_custom_prefix(self, db_session, manufacturer):
        number = next_document_number(company_id=manufacturer.id, document_type="CREDIT_NOTE", prefix="CN", pad=6)
        assert number == f"CN-{manufacturer.id:03d}-000001"

    def test_intercompany_reference_counts_per_seller(self, db_session, manufacturer, distributor):
        first = next_intercompany_reference(source_company_id=manufacturer.id, target_company_id=distributor.id)
        second = next_intercompany_reference(source_company_id=manufacturer.id, target_company_id=distributor.id)
        reverse = next_intercompany_reference(source_company_id=distributor.id, target_company_id=manufacturer.id)

        assert first == f"IC-{manufacturer.id:03d}-{distributor.id:03d}-00001"
        assert second.endswith("-00002")
        assert reverse == f"IC-{distributor.id:03d}-{manufacturer.id:03d}-00001"

    def test_orders_and_invoices_number_through_api(self, client, headers_a, manufacturer, customer):
        numbers = []
        for _ in range(2):
            resp = client.post("/api/sales-orders", headers=headers_a, json={
                "company_id": manufacturer.id,
                "customer_id": customer.id,
                "total_cents": 1000,
            })
            numbers.append(resp.get_json()["order_number"])
        assert numbers == [f"SO-{manufacturer.id:03d}-0001", f"SO-{manufacturer.id:03d}-0002"]
