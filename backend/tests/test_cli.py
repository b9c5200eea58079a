# Overview: Pytest coverage for the Flask CLI command groups.

from multico.models import Company, IntercompanyTransaction, Tenant


class TestCli:

    def test_tenants_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["tenants", "create", "--name", "Gamma", "--subdomain", "gamma"])
        assert "PASS Created tenant: Gamma" in result.output
        assert db_session.query(Tenant).filter_by(subdomain="gamma").count() == 1

        result = runner.invoke(args=["tenants", "create", "--name", "Gamma", "--subdomain", "gamma"])
        assert "FAIL" in result.output

        result = runner.invoke(args=["tenants", "list"])
        assert "gamma" in result.output

    def test_companies_create(self, app, db_session, tenant_a):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "companies", "create",
            "--tenant-id", str(tenant_a.id),
            "--name", "Acme Plant",
            "--code", "plant",
            "--type", "plant",
        ])
        assert "PASS Created company: Acme Plant" in result.output
        company = db_session.query(Company).filter_by(tenant_id=tenant_a.id).one()
        assert company.code == "PLANT"

        result = runner.invoke(args=["companies", "create", "--tenant-id", "999", "--name", "X", "--code", "X"])
        assert "FAIL Tenant 999 not found" in result.output

    def test_demo_seed(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["demo", "seed"])
        assert result.exit_code == 0
        assert "PASS Demo tenant ready" in result.output

        transaction = db_session.query(IntercompanyTransaction).one()
        assert transaction.status == "invoiced"
        assert transaction.payment_status == "partial"
        assert transaction.paid_cents == transaction.amount_cents // 2

        result = runner.invoke(args=["demo", "seed"])
        assert "FAIL Tenant 'demo' already exists" in result.output
