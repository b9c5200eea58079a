from __future__ import annotations

from ..extensions import db
from multico.time_utils import to_utc_z


COMPANY_TYPES = ("manufacturer", "plant", "distributor", "subsidiary", "general")


class Tenant(db.Model):
    """
    Multi-tenant root: every account is a Tenant.

    All companies belong to exactly one tenant. Intercompany transactions
    only ever link companies of the same tenant.
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    subdomain = db.Column(db.String(64), nullable=False, unique=True, index=True)
    plan_type = db.Column(db.String(32), nullable=False, default="standard")

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} subdomain={self.subdomain!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "subdomain": self.subdomain,
            "plan_type": self.plan_type,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Company(db.Model):
    """
    A legal entity with its own ledger.

    MULTI-TENANT: Company codes are unique within a tenant, not globally.
    """
    __tablename__ = "companies"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "code", name="uq_companies_tenant_code"),
        db.Index("ix_companies_tenant_active", "tenant_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=False)
    company_type = db.Column(db.String(32), nullable=False, default="general")

    tax_id = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    base_currency = db.Column(db.String(3), nullable=False, default="USD")
    industry = db.Column(db.String(128), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("companies", lazy=True))

    def __repr__(self) -> str:
        return f"<Company id={self.id} code={self.code!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "code": self.code,
            "company_type": self.company_type,
            "tax_id": self.tax_id,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "base_currency": self.base_currency,
            "industry": self.industry,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
