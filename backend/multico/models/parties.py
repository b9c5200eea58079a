from __future__ import annotations

from ..extensions import db
from multico.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer of a company (accounts receivable side).

    linked_company_id is set when the customer is another company of the
    same tenant; intercompany documents always bill that customer.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_company_linked", "company_id", "linked_company_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    tax_id = db.Column(db.String(64), nullable=True)
    linked_company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", foreign_keys=[company_id], backref=db.backref("customers", lazy=True))
    linked_company = db.relationship("Company", foreign_keys=[linked_company_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "tax_id": self.tax_id,
            "linked_company_id": self.linked_company_id,
            "is_intercompany": self.linked_company_id is not None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Vendor(db.Model):
    """Supplier of a company (accounts payable side)."""
    __tablename__ = "vendors"
    __table_args__ = (
        db.Index("ix_vendors_company_linked", "company_id", "linked_company_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)
    tax_id = db.Column(db.String(64), nullable=True)
    linked_company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", foreign_keys=[company_id], backref=db.backref("vendors", lazy=True))
    linked_company = db.relationship("Company", foreign_keys=[linked_company_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "tax_id": self.tax_id,
            "linked_company_id": self.linked_company_id,
            "is_intercompany": self.linked_company_id is not None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """Sellable/purchasable item. Codes are unique within a company."""
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_products_company_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sales_price_cents = db.Column(db.BigInteger, nullable=False, default=0)
    purchase_price_cents = db.Column(db.BigInteger, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("products", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "sales_price_cents": self.sales_price_cents,
            "purchase_price_cents": self.purchase_price_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
