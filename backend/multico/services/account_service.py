# Overview: Service-layer operations for the chart of accounts; encapsulates business logic and database work.

"""
Chart of Accounts Service

Account types are global and seeded once. Every company gets a default
chart on creation: cash, receivables, payables, revenue, cost of goods sold
and the two intercompany clearing accounts.
"""
from __future__ import annotations

import logging

from ..extensions import db
from ..models import Account, AccountType, Company
from ..validation import ConflictError, NotFoundError, ValidationError


logger = logging.getLogger(__name__)

# code, name, balance_sheet_section, normal_balance
ACCOUNT_TYPES = (
    ("asset", "Asset", "assets", "debit"),
    ("liability", "Liability", "liabilities", "credit"),
    ("equity", "Equity", "equity", "credit"),
    ("revenue", "Revenue", "income", "credit"),
    ("expense", "Expense", "income", "debit"),
)

# code, name, account type code
DEFAULT_ACCOUNTS = (
    ("1000", "Cash", "asset"),
    ("1100", "Accounts Receivable", "asset"),
    ("1150", "Intercompany Receivable", "asset"),
    ("2000", "Accounts Payable", "liability"),
    ("2150", "Intercompany Payable", "liability"),
    ("3000", "Retained Earnings", "equity"),
    ("4000", "Sales Revenue", "revenue"),
    ("5000", "Cost of Goods Sold", "expense"),
)


class AccountNotFoundError(NotFoundError):
    """Raised when an account is not found."""
    pass


class AccountValidationError(ValidationError):
    """Raised when account data fails validation."""
    pass


def seed_account_types() -> int:
    """
    Insert any missing account types.

    Returns:
        Number of account types created
    """
    existing = {code for (code,) in db.session.query(AccountType.code).all()}
    created = 0
    for code, name, section, normal_balance in ACCOUNT_TYPES:
        if code in existing:
            continue
        db.session.add(AccountType(
            code=code,
            name=name,
            balance_sheet_section=section,
            normal_balance=normal_balance,
            is_active=True,
        ))
        created += 1
    db.session.flush()
    return created


def _account_types_by_code() -> dict[str, AccountType]:
    seed_account_types()
    return {t.code: t for t in db.session.query(AccountType).all()}


def seed_default_accounts(company_id: int) -> int:
    """
    Create the default chart of accounts for a company. Idempotent.

    Returns:
        Number of accounts created
    """
    types = _account_types_by_code()
    existing = {
        code for (code,) in db.session.query(Account.code).filter_by(company_id=company_id).all()
    }
    created = 0
    for code, name, type_code in DEFAULT_ACCOUNTS:
        if code in existing:
            continue
        db.session.add(Account(
            company_id=company_id,
            account_type_id=types[type_code].id,
            code=code,
            name=name,
            level=1,
            balance_cents=0,
            is_active=True,
        ))
        created += 1
    db.session.flush()
    if created:
        logger.info("Seeded %d default accounts for company %s", created, company_id)
    return created


def list_accounts(company_id: int, *, active_only: bool = True) -> list[Account]:
    query = db.session.query(Account).filter_by(company_id=company_id)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Account.code).all()


def get_account(account_id: int, company_id: int) -> Account:
    account = db.session.query(Account).filter_by(id=account_id, company_id=company_id).first()
    if not account:
        raise AccountNotFoundError("Account not found")
    return account


def create_account(
    *,
    company: Company,
    code: str,
    name: str,
    account_type: str,
    description: str | None = None,
    parent_id: int | None = None,
) -> Account:
    """
    Create an account in a company's chart.

    Args:
        company: Owning company (already tenant-validated)
        code: Account code, unique within the company
        name: Account name
        account_type: AccountType code (asset, liability, ...)
        description: Optional description
        parent_id: Optional parent account in the same company

    Returns:
        Created Account (flushed)

    Raises:
        AccountValidationError: Missing fields or unknown account type
        AccountNotFoundError: Parent not found in this company
        ConflictError: Duplicate code
    """
    code = (code or "").strip()
    name = (name or "").strip()
    if not code:
        raise AccountValidationError("code is required")
    if not name:
        raise AccountValidationError("name is required")

    types = _account_types_by_code()
    acct_type = types.get((account_type or "").strip().lower())
    if not acct_type:
        raise AccountValidationError(
            f"account_type must be one of: {', '.join(t[0] for t in ACCOUNT_TYPES)}"
        )

    if db.session.query(Account.id).filter_by(company_id=company.id, code=code).first():
        raise ConflictError(f"Account code '{code}' already exists for this company")

    level = 1
    if parent_id is not None:
        parent = get_account(parent_id, company.id)
        level = parent.level + 1

    account = Account(
        company_id=company.id,
        account_type_id=acct_type.id,
        code=code,
        name=name,
        description=description,
        parent_id=parent_id,
        level=level,
        balance_cents=0,
        is_active=True,
    )
    db.session.add(account)
    db.session.flush()
    return account
