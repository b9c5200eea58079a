# Overview: Flask CLI command groups for bootstrap, inspection, and demo data.

# backend/multico/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app wsgi <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app wsgi system init-db
#   Create all tables and seed the global account types. Idempotent.
# - flask --app wsgi system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask --app wsgi system seed-account-types
#   Insert any missing account types.
#
# Tenant management:
# - flask --app wsgi tenants list
# - flask --app wsgi tenants create --name "Acme Group" --subdomain acme [--plan professional]
#
# Company management:
# - flask --app wsgi companies list --tenant-id 1
# - flask --app wsgi companies create --tenant-id 1 --name "Acme Manufacturing" --code MFG --type manufacturer
#
# Demo data:
# - flask --app wsgi demo seed
#   Tenant with a manufacturer and a distributor, linked parties, and one
#   intercompany sale that is invoiced and partly settled.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, Tenant
from .models.tenancy import COMPANY_TYPES
from .services import account_service, company_service, intercompany_service, party_service, product_service
from .services.tenant_service import PLAN_TYPES, create_tenant
from .validation import ConflictError, NotFoundError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create tables and seed account types."""
    click.echo("BUILD  Creating all tables...")
    db.create_all()
    created = account_service.seed_account_types()
    db.session.commit()
    click.echo(f"PASS Database initialized ({created} account types created)")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()
    account_service.seed_account_types()
    db.session.commit()

    click.echo("PASS Database reset complete. Run 'flask --app wsgi demo seed' for sample data.")


@system_group.command('seed-account-types')
@with_appcontext
def seed_account_types_cli():
    """Insert any missing account types."""
    created = account_service.seed_account_types()
    db.session.commit()
    click.echo(f"PASS {created} account types created")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants_cli():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Subdomain':<20} {'Plan':<14} {'Active':<8} {'Companies'}")
    click.echo("="*80)

    for tenant in tenants:
        company_count = db.session.query(Company).filter_by(tenant_id=tenant.id).count()
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(
            f"{tenant.id:<5} {tenant.name:<30} {tenant.subdomain:<20} {tenant.plan_type:<14} {active_str:<8} {company_count}"
        )

    click.echo("="*80 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--subdomain', required=True, help='Unique lowercase slug')
@click.option('--plan', 'plan_type', type=click.Choice(PLAN_TYPES), default='standard', help='Plan type')
@with_appcontext
def create_tenant_cli(name, subdomain, plan_type):
    """Create a new tenant."""
    try:
        tenant = create_tenant(name, subdomain, plan_type)
        db.session.commit()
    except (ValidationError, ConflictError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Subdomain: {tenant.subdomain})")


@click.group('companies')
def companies_group():
    """Company management commands."""


@companies_group.command('list')
@click.option('--tenant-id', type=int, help='Filter by tenant ID')
@with_appcontext
def list_companies_cli(tenant_id):
    """List companies with their tenant."""
    query = db.session.query(Company)
    if tenant_id:
        query = query.filter_by(tenant_id=tenant_id)
    companies = query.order_by(Company.tenant_id, Company.code).all()

    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Tenant':<8} {'Code':<10} {'Name':<30} {'Type':<14} {'Active'}")
    click.echo("="*80)

    for company in companies:
        active_str = "Yes" if company.is_active else "No"
        click.echo(
            f"{company.id:<5} {company.tenant_id:<8} {company.code:<10} {company.name:<30} {company.company_type:<14} {active_str}"
        )

    click.echo("="*80 + "\n")


@companies_group.command('create')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--name', required=True, help='Company name')
@click.option('--code', required=True, help='Short code (unique within tenant)')
@click.option('--type', 'company_type', type=click.Choice(COMPANY_TYPES), default='general', help='Company type')
@click.option('--currency', default='USD', help='Base currency')
@with_appcontext
def create_company_cli(tenant_id, name, code, company_type, currency):
    """Create a company with its default chart of accounts."""
    if not db.session.get(Tenant, tenant_id):
        click.echo(f"FAIL Tenant {tenant_id} not found")
        return

    try:
        company = company_service.create_company(
            tenant_id=tenant_id,
            name=name,
            code=code,
            company_type=company_type,
            base_currency=currency,
        )
        db.session.commit()
    except (ValidationError, ConflictError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created company: {company.name} (ID: {company.id}, Code: {company.code})")


@click.group('demo')
def demo_group():
    """Sample data commands."""


@demo_group.command('seed')
@click.option('--subdomain', default='demo', help='Subdomain of the demo tenant')
@with_appcontext
def seed_demo(subdomain):
    """
    Create a demo tenant with a manufacturer and a distributor.

    The manufacturer sells to the distributor through one intercompany
    transaction, which is invoiced and settled by half.
    """
    if db.session.query(Tenant.id).filter_by(subdomain=subdomain).first():
        click.echo(f"FAIL Tenant '{subdomain}' already exists")
        return

    try:
        account_service.seed_account_types()
        tenant = create_tenant("Demo Group", subdomain, "professional")
        manufacturer = company_service.create_company(
            tenant_id=tenant.id, name="Demo Manufacturing", code="MFG", company_type="manufacturer"
        )
        distributor = company_service.create_company(
            tenant_id=tenant.id, name="Demo Distribution", code="DIST", company_type="distributor"
        )
        party_service.ensure_intercompany_customer(manufacturer, distributor)
        party_service.ensure_intercompany_vendor(distributor, manufacturer)
        widget = product_service.create_product(
            company=manufacturer,
            code="WIDGET",
            name="Widget",
            sales_price_cents=2500,
            purchase_price_cents=1500,
        )
        db.session.commit()

        transaction = intercompany_service.create_intercompany_sales_order(
            tenant_id=tenant.id,
            source_company_id=manufacturer.id,
            target_company_id=distributor.id,
            items=[{"product_id": widget.id, "quantity": 40}],
            description="Quarterly widget supply",
        )
        db.session.commit()
        intercompany_service.create_intercompany_invoice(tenant_id=tenant.id, transaction_id=transaction.id)
        db.session.commit()
        intercompany_service.create_intercompany_receipt(
            tenant_id=tenant.id,
            transaction_id=transaction.id,
            amount_cents=transaction.amount_cents // 2,
            reference="DEMO-WIRE-1",
        )
        db.session.commit()
    except (ValidationError, NotFoundError, ConflictError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Demo tenant ready (ID: {tenant.id}, X-Tenant-ID: {tenant.id})")
    click.echo(f"   {manufacturer.code} -> company {manufacturer.id}")
    click.echo(f"   {distributor.code} -> company {distributor.id}")
    click.echo(f"   Intercompany {transaction.reference_number}: {transaction.status}/{transaction.payment_status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(companies_group)
    app.cli.add_command(demo_group)
