# Overview: Pytest coverage for tenants, companies, counterparties, products and accounts.

from multico.models import Account
from multico.services.account_service import DEFAULT_ACCOUNTS


class TestSystemRoutes:

    def test_health_reports_counts(self, client, db_session, tenant_a, manufacturer):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"

    def test_version(self, client, db_session):
        resp = client.get("/version")
        assert resp.status_code == 200
        assert resp.get_json()["api_version"] == "1.0.0"


class TestTenants:

    def test_create_and_list_tenants(self, client, db_session):
        resp = client.post("/api/tenants", json={"name": "Gamma", "subdomain": "Gamma-Co"})
        assert resp.status_code == 201
        tenant = resp.get_json()
        assert tenant["subdomain"] == "gamma-co"
        assert tenant["plan_type"] == "standard"

        resp = client.get("/api/tenants")
        assert [t["subdomain"] for t in resp.get_json()["items"]] == ["gamma-co"]

    def test_duplicate_subdomain_is_409(self, client, tenant_a):
        resp = client.post("/api/tenants", json={"name": "Other", "subdomain": "acme"})
        assert resp.status_code == 409

    def test_invalid_subdomain_is_400(self, client, db_session):
        resp = client.post("/api/tenants", json={"name": "Bad", "subdomain": "no spaces"})
        assert resp.status_code == 400

    def test_get_tenant_counts_companies(self, client, tenant_a, manufacturer, distributor):
        resp = client.get(f"/api/tenants/{tenant_a.id}")
        assert resp.status_code == 200
        assert resp.get_json()["company_count"] == 2


class TestCompanies:

    def test_create_company_seeds_chart_of_accounts(self, client, db_session, headers_a):
        resp = client.post("/api/companies", headers=headers_a, json={
            "name": "Acme Plant",
            "code": "plant-1",
            "company_type": "plant",
        })
        assert resp.status_code == 201
        company = resp.get_json()
        assert company["code"] == "PLANT-1"
        assert company["base_currency"] == "USD"

        codes = {a.code for a in db_session.query(Account).filter_by(company_id=company["id"]).all()}
        assert codes == {code for code, _name, _type in DEFAULT_ACCOUNTS}

    def test_duplicate_code_is_409(self, client, headers_a, manufacturer):
        resp = client.post("/api/companies", headers=headers_a, json={"name": "Again", "code": "mfg"})
        assert resp.status_code == 409

    def test_same_code_allowed_in_other_tenant(self, client, headers_b, manufacturer):
        resp = client.post("/api/companies", headers=headers_b, json={"name": "Beta Mfg", "code": "MFG"})
        assert resp.status_code == 201

    def test_missing_name_is_400(self, client, headers_a, tenant_a):
        resp = client.post("/api/companies", headers=headers_a, json={"code": "X"})
        assert resp.status_code == 400

    def test_update_company(self, client, headers_a, manufacturer):
        resp = client.put(f"/api/companies/{manufacturer.id}", headers=headers_a, json={
            "name": "Acme Manufacturing Ltd",
            "code": "CHANGED",
        })
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["name"] == "Acme Manufacturing Ltd"
        assert body["code"] == "MFG"

    def test_deactivate_hides_from_default_list(self, client, headers_a, manufacturer, distributor):
        resp = client.delete(f"/api/companies/{distributor.id}", headers=headers_a)
        assert resp.status_code == 200
        assert resp.get_json()["is_active"] is False

        ids = [c["id"] for c in client.get("/api/companies", headers=headers_a).get_json()["items"]]
        assert ids == [manufacturer.id]


class TestCounterparties:

    def test_create_linked_customer(self, client, headers_a, manufacturer, distributor):
        resp = client.post(f"/api/companies/{manufacturer.id}/customers", headers=headers_a, json={
            "name": "Acme Distribution",
            "linked_company_id": distributor.id,
        })
        assert resp.status_code == 201
        assert resp.get_json()["linked_company_id"] == distributor.id

        resp = client.get(f"/api/companies/{manufacturer.id}/customers", headers=headers_a)
        assert resp.get_json()["count"] == 1

    def test_link_to_self_is_400(self, client, headers_a, manufacturer):
        resp = client.post(f"/api/companies/{manufacturer.id}/vendors", headers=headers_a, json={
            "name": "Me",
            "linked_company_id": manufacturer.id,
        })
        assert resp.status_code == 400

    def test_link_to_foreign_company_is_404(self, client, headers_a, manufacturer, foreign_company):
        resp = client.post(f"/api/companies/{manufacturer.id}/vendors", headers=headers_a, json={
            "name": "Elsewhere",
            "linked_company_id": foreign_company.id,
        })
        assert resp.status_code == 404

    def test_create_product_with_decimal_prices(self, client, headers_a, manufacturer):
        resp = client.post(f"/api/companies/{manufacturer.id}/products", headers=headers_a, json={
            "code": "gear",
            "name": "Gear",
            "sales_price": "12.50",
            "purchase_price_cents": 800,
        })
        assert resp.status_code == 201
        product = resp.get_json()
        assert product["code"] == "GEAR"
        assert product["sales_price_cents"] == 1250
        assert product["purchase_price_cents"] == 800


class TestAccounts:

    def test_list_requires_company_id(self, client, headers_a, manufacturer):
        resp = client.get("/api/accounts", headers=headers_a)
        assert resp.status_code == 400

    def test_list_default_chart(self, client, headers_a, manufacturer):
        resp = client.get(f"/api/accounts?company_id={manufacturer.id}", headers=headers_a)
        assert resp.status_code == 200
        codes = [a["code"] for a in resp.get_json()["items"]]
        assert codes == sorted(code for code, _name, _type in DEFAULT_ACCOUNTS)

    def test_create_child_account(self, client, db_session, headers_a, manufacturer):
        cash = db_session.query(Account).filter_by(company_id=manufacturer.id, code="1000").one()
        resp = client.post("/api/accounts", headers=headers_a, json={
            "company_id": manufacturer.id,
            "code": "1010",
            "name": "Petty Cash",
            "account_type": "asset",
            "parent_id": cash.id,
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["level"] == 2
        assert body["account_type"] == "asset"

    def test_duplicate_account_code_is_409(self, client, headers_a, manufacturer):
        resp = client.post("/api/accounts", headers=headers_a, json={
            "company_id": manufacturer.id,
            "code": "1000",
            "name": "Cash Again",
            "account_type": "asset",
        })
        assert resp.status_code == 409

    def test_unknown_account_type_is_400(self, client, headers_a, manufacturer):
        resp = client.post("/api/accounts", headers=headers_a, json={
            "company_id": manufacturer.id,
            "code": "9999",
            "name": "Mystery",
            "account_type": "magic",
        })
        assert resp.status_code == 400
