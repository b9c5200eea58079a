"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Centralize tenant validation logic for reuse across services and routes.
Every /api request is scoped to a tenant, and cross-tenant access must be
indistinguishable from a missing record.

TENANT INVARIANTS:
1. Every tenant-scoped request has g.tenant_id set (see require_tenant)
2. Company IDs from client input must be validated against g.tenant_id
3. Queries touching company-owned data must filter by validated companies
4. Cross-tenant access attempts are logged and answered with "not found"

USAGE:
    from multico.services.tenant_service import require_company_in_tenant

    company = require_company_in_tenant(company_id, g.tenant_id)
"""
from __future__ import annotations

import logging
import re

from flask import g, has_request_context, request

from ..extensions import db
from ..models import Company, Tenant
from ..validation import ConflictError, NotFoundError, ValidationError


logger = logging.getLogger(__name__)

SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,62}[a-z0-9])?$")
PLAN_TYPES = ("standard", "professional", "enterprise")


class TenantAccessError(NotFoundError):
    """Raised when a record is missing or belongs to another tenant."""
    pass


class TenantContextError(ValueError):
    """Raised when the request carries no usable tenant context."""
    pass


def get_current_tenant_id() -> int:
    """
    Get current tenant id from Flask g context.

    Raises TenantContextError if tenant_id not set. This should never happen
    after @require_tenant, but is a safety check.
    """
    if not hasattr(g, "tenant_id") or g.tenant_id is None:
        raise TenantContextError("Tenant context not established")
    return g.tenant_id


def get_active_tenant(tenant_id: int) -> Tenant:
    """
    Validate that a tenant exists and is active.

    Raises:
        TenantAccessError if tenant doesn't exist or is inactive
    """
    tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant or not tenant.is_active:
        raise TenantAccessError("Tenant not found")
    return tenant


def list_tenants(active_only: bool = True) -> list[Tenant]:
    query = db.session.query(Tenant)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Tenant.name).all()


def create_tenant(name: str, subdomain: str, plan_type: str = "standard") -> Tenant:
    """
    Create a tenant.

    Args:
        name: Display name
        subdomain: Unique lowercase slug (letters, digits, hyphens)
        plan_type: One of PLAN_TYPES

    Returns:
        The new Tenant (flushed, not committed)

    Raises:
        ValidationError: Bad name, subdomain or plan
        ConflictError: Subdomain already taken
    """
    name = (name or "").strip()
    subdomain = (subdomain or "").strip().lower()
    if not name:
        raise ValidationError("name is required")
    if not SUBDOMAIN_PATTERN.match(subdomain):
        raise ValidationError("subdomain must be lowercase letters, digits and hyphens")
    if plan_type not in PLAN_TYPES:
        raise ValidationError(f"plan_type must be one of: {', '.join(PLAN_TYPES)}")

    if db.session.query(Tenant.id).filter_by(subdomain=subdomain).first():
        raise ConflictError(f"Subdomain '{subdomain}' is already taken")

    tenant = Tenant(name=name, subdomain=subdomain, plan_type=plan_type, is_active=True)
    db.session.add(tenant)
    db.session.flush()
    logger.info("Created tenant %s (%s)", tenant.id, subdomain)
    return tenant


def require_company_in_tenant(company_id: int, tenant_id: int) -> Company:
    """
    Validate that a company belongs to the specified tenant.

    Core tenant isolation check. Call this before any operation that uses
    a company_id from client input.

    Raises:
        TenantAccessError if company doesn't exist or belongs to different tenant
    """
    company = db.session.query(Company).filter_by(id=company_id).first()

    if not company:
        raise TenantAccessError("Company not found")

    if company.tenant_id != tenant_id:
        _log_cross_tenant_attempt(
            f"Company {company_id} belongs to tenant {company.tenant_id}, not {tenant_id}",
            tenant_id=tenant_id,
        )
        raise TenantAccessError("Company not found")  # Don't reveal it exists in another tenant

    return company


def require_companies_in_tenant(company_ids: list[int], tenant_id: int) -> list[Company]:
    """
    Validate multiple companies belong to the specified tenant.

    Returns the companies in the order the ids were given.
    """
    if not company_ids:
        return []

    companies = db.session.query(Company).filter(Company.id.in_(company_ids)).all()
    by_id = {c.id: c for c in companies}

    missing_ids = set(company_ids) - set(by_id)
    if missing_ids:
        raise TenantAccessError("One or more companies not found")

    for company in companies:
        if company.tenant_id != tenant_id:
            _log_cross_tenant_attempt(
                f"Company {company.id} belongs to tenant {company.tenant_id}, not {tenant_id}",
                tenant_id=tenant_id,
            )
            raise TenantAccessError("One or more companies not found")

    return [by_id[cid] for cid in company_ids]


def get_tenant_company_ids(tenant_id: int) -> set[int]:
    """
    Get set of company IDs for a tenant.

    Useful for quick membership checks without loading full objects.
    """
    rows = db.session.query(Company.id).filter_by(tenant_id=tenant_id).all()
    return {r.id for r in rows}


def scoped_query(model, tenant_id: int | None = None):
    """
    Create a base query scoped to the tenant via company_id.

    Usage:
        invoices = scoped_query(Invoice).filter_by(status="open").all()
    """
    if tenant_id is None:
        tenant_id = get_current_tenant_id()

    company_ids = db.session.query(Company.id).filter(Company.tenant_id == tenant_id)
    return db.session.query(model).filter(model.company_id.in_(company_ids.scalar_subquery()))


def _log_cross_tenant_attempt(reason: str, tenant_id: int | None = None) -> None:
    """Log a cross-tenant access attempt."""
    in_request = has_request_context()
    logger.warning(
        "Cross-tenant access denied: %s (tenant=%s path=%s ip=%s)",
        reason,
        tenant_id,
        request.path if in_request else None,
        request.remote_addr if in_request else None,
    )
