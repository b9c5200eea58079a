from __future__ import annotations

from ..extensions import db
from multico.time_utils import to_utc_z


class AccountType(db.Model):
    """
    Global account classification (asset, liability, equity, revenue, expense).

    Seeded once per database; never tenant-scoped.
    """
    __tablename__ = "account_types"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(128), nullable=False)
    balance_sheet_section = db.Column(db.String(32), nullable=False)  # assets, liabilities, equity, income
    normal_balance = db.Column(db.String(8), nullable=False)  # debit, credit
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "balance_sheet_section": self.balance_sheet_section,
            "normal_balance": self.normal_balance,
            "is_active": self.is_active,
        }


class Account(db.Model):
    """Chart of accounts entry. Codes are unique within a company."""
    __tablename__ = "accounts"
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_accounts_company_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    account_type_id = db.Column(db.Integer, db.ForeignKey("account_types.id"), nullable=False)
    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=True)
    level = db.Column(db.Integer, nullable=False, default=1)
    balance_cents = db.Column(db.BigInteger, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    company = db.relationship("Company", backref=db.backref("accounts", lazy=True))
    account_type = db.relationship("AccountType")
    parent = db.relationship("Account", remote_side=[id], backref=db.backref("children", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "account_type_id": self.account_type_id,
            "account_type": self.account_type.code if self.account_type else None,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "parent_id": self.parent_id,
            "level": self.level,
            "balance_cents": self.balance_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
