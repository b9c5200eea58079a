# Overview: Service-layer operations for companies; encapsulates business logic and database work.

"""
Company Service

MULTI-TENANT: Companies are scoped to tenants via tenant_id.
Company codes are unique within a tenant.

Creating a company also seeds its default chart of accounts.
"""
from __future__ import annotations

import logging

from ..extensions import db
from ..models import Company
from ..models.tenancy import COMPANY_TYPES
from ..validation import ConflictError, ValidationError
from .account_service import seed_default_accounts
from .tenant_service import require_company_in_tenant


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "company_type", "tax_id", "address", "phone", "email", "base_currency", "industry")


class CompanyValidationError(ValidationError):
    """Raised when company data fails validation."""
    pass


def _normalize_company_type(value: str | None) -> str:
    company_type = (value or "general").strip().lower()
    if company_type not in COMPANY_TYPES:
        raise CompanyValidationError(f"company_type must be one of: {', '.join(COMPANY_TYPES)}")
    return company_type


def _normalize_currency(value: str | None) -> str:
    currency = (value or "USD").strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise CompanyValidationError("base_currency must be a 3-letter ISO code")
    return currency


def list_companies(tenant_id: int, *, include_inactive: bool = False) -> list[Company]:
    query = db.session.query(Company).filter_by(tenant_id=tenant_id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(Company.name).all()


def get_company(company_id: int, tenant_id: int) -> Company:
    return require_company_in_tenant(company_id, tenant_id)


def create_company(
    *,
    tenant_id: int,
    name: str,
    code: str,
    company_type: str | None = None,
    tax_id: str | None = None,
    address: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    base_currency: str | None = None,
    industry: str | None = None,
) -> Company:
    """
    Create a company and its default chart of accounts.

    Args:
        tenant_id: Owning tenant
        name: Company name (required)
        code: Short code, unique within the tenant (required, stored upper-case)
        company_type: One of COMPANY_TYPES (default "general")

    Returns:
        Created Company (flushed)

    Raises:
        CompanyValidationError: Missing or invalid fields
        ConflictError: Duplicate code within the tenant
    """
    name = (name or "").strip()
    code = (code or "").strip().upper()
    if not name:
        raise CompanyValidationError("name is required")
    if not code:
        raise CompanyValidationError("code is required")

    if db.session.query(Company.id).filter_by(tenant_id=tenant_id, code=code).first():
        raise ConflictError(f"Company code '{code}' already exists in this tenant")

    company = Company(
        tenant_id=tenant_id,
        name=name,
        code=code,
        company_type=_normalize_company_type(company_type),
        tax_id=tax_id,
        address=address,
        phone=phone,
        email=email,
        base_currency=_normalize_currency(base_currency),
        industry=industry,
        is_active=True,
    )
    db.session.add(company)
    db.session.flush()

    seed_default_accounts(company.id)

    logger.info("Created company %s (%s) in tenant %s", company.id, code, tenant_id)
    return company


def update_company(company_id: int, tenant_id: int, changes: dict) -> Company:
    """Apply a partial update. Code and tenant are immutable."""
    company = require_company_in_tenant(company_id, tenant_id)

    for field in UPDATABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if field == "name":
            value = (value or "").strip()
            if not value:
                raise CompanyValidationError("name cannot be empty")
        elif field == "company_type":
            value = _normalize_company_type(value)
        elif field == "base_currency":
            value = _normalize_currency(value)
        setattr(company, field, value)

    db.session.flush()
    return company


def deactivate_company(company_id: int, tenant_id: int) -> Company:
    company = require_company_in_tenant(company_id, tenant_id)
    company.is_active = False
    db.session.flush()
    logger.info("Deactivated company %s", company_id)
    return company
