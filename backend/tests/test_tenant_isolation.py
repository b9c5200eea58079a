# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for core resources.

These tests create two tenants with their own companies, then verify that:
1. Requests without a usable X-Tenant-ID header are rejected
2. Passing a foreign company_id is answered with "not found"
3. Documents of another tenant are invisible by id and in lists
4. Intercompany transactions cannot span tenants
"""

import pytest
from multico.services.tenant_service import (
    TenantAccessError,
    get_tenant_company_ids,
    require_company_in_tenant,
    require_companies_in_tenant,
    scoped_query,
)
from multico.models import SalesOrder
from multico.services import order_service


class TestTenantServiceHelpers:
    """Test tenant_service helper functions."""

    def test_require_company_in_tenant_valid(self, db_session, tenant_a, manufacturer):
        result = require_company_in_tenant(manufacturer.id, tenant_a.id)
        assert result.id == manufacturer.id

    def test_require_company_in_tenant_cross_tenant(self, db_session, tenant_a, foreign_company):
        with pytest.raises(TenantAccessError):
            require_company_in_tenant(foreign_company.id, tenant_a.id)

    def test_require_company_in_tenant_nonexistent(self, db_session, tenant_a):
        with pytest.raises(TenantAccessError):
            require_company_in_tenant(99999, tenant_a.id)

    def test_require_companies_in_tenant_keeps_input_order(self, db_session, tenant_a, manufacturer, distributor):
        companies = require_companies_in_tenant([distributor.id, manufacturer.id], tenant_a.id)
        assert [c.id for c in companies] == [distributor.id, manufacturer.id]

    def test_require_companies_in_tenant_rejects_mixed(self, db_session, tenant_a, manufacturer, foreign_company):
        with pytest.raises(TenantAccessError):
            require_companies_in_tenant([manufacturer.id, foreign_company.id], tenant_a.id)

    def test_get_tenant_company_ids(self, db_session, tenant_a, tenant_b, manufacturer, distributor, foreign_company):
        assert get_tenant_company_ids(tenant_a.id) == {manufacturer.id, distributor.id}
        assert get_tenant_company_ids(tenant_b.id) == {foreign_company.id}

    def test_scoped_query_hides_other_tenants(self, db_session, tenant_a, tenant_b, customer):
        order_service.create_sales_order(
            company=customer.company, customer_id=customer.id, total_cents=10000
        )
        db_session.commit()

        assert scoped_query(SalesOrder, tenant_a.id).count() == 1
        assert scoped_query(SalesOrder, tenant_b.id).count() == 0


class TestTenantHeader:
    """require_tenant decorator."""

    def test_missing_header_is_400(self, client, db_session):
        resp = client.get("/api/companies")
        assert resp.status_code == 400
        assert "X-Tenant-ID" in resp.get_json()["error"]

    def test_non_integer_header_is_400(self, client, db_session):
        resp = client.get("/api/companies", headers={"X-Tenant-ID": "acme"})
        assert resp.status_code == 400

    def test_unknown_tenant_is_404(self, client, db_session):
        resp = client.get("/api/companies", headers={"X-Tenant-ID": "4242"})
        assert resp.status_code == 404

    def test_inactive_tenant_is_404(self, client, db_session, tenant_a, headers_a):
        tenant_a.is_active = False
        db_session.commit()
        resp = client.get("/api/companies", headers=headers_a)
        assert resp.status_code == 404


class TestCrossTenantApi:
    """Foreign records look exactly like missing ones."""

    def test_company_list_only_shows_own_tenant(self, client, headers_a, manufacturer, distributor, foreign_company):
        resp = client.get("/api/companies", headers=headers_a)
        assert resp.status_code == 200
        ids = {c["id"] for c in resp.get_json()["items"]}
        assert ids == {manufacturer.id, distributor.id}

    def test_foreign_company_by_id_is_404(self, client, headers_a, foreign_company):
        resp = client.get(f"/api/companies/{foreign_company.id}", headers=headers_a)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Company not found"

    def test_foreign_company_filter_is_404(self, client, headers_a, foreign_company):
        resp = client.get(f"/api/sales-orders?company_id={foreign_company.id}", headers=headers_a)
        assert resp.status_code == 404

    def test_cannot_create_order_in_foreign_company(self, client, headers_a, foreign_company):
        resp = client.post("/api/sales-orders", headers=headers_a, json={
            "company_id": foreign_company.id,
            "customer_id": 1,
            "total_cents": 1000,
        })
        assert resp.status_code == 404

    def test_foreign_sales_order_by_id_is_404(self, client, db_session, headers_b, customer):
        order = order_service.create_sales_order(
            company=customer.company, customer_id=customer.id, total_cents=5000
        )
        db_session.commit()

        resp = client.get(f"/api/sales-orders/{order.id}", headers=headers_b)
        assert resp.status_code == 404

        resp = client.get("/api/sales-orders", headers=headers_b)
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 0

    def test_intercompany_cannot_span_tenants(self, client, headers_a, manufacturer, foreign_company):
        resp = client.post("/api/intercompany/sales-order", headers=headers_a, json={
            "source_company_id": manufacturer.id,
            "target_company_id": foreign_company.id,
            "total_cents": 10000,
        })
        assert resp.status_code == 404
        assert client.get("/api/intercompany/transactions", headers=headers_a).get_json()["count"] == 0
