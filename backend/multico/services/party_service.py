# Overview: Service-layer operations for customers and vendors; encapsulates business logic and database work.

"""
Counterparty Service

Customers and vendors belong to one company. When the counterparty is
another company of the same tenant, linked_company_id points at it and the
intercompany writers reuse that record instead of creating placeholders.
"""
from __future__ import annotations

import logging

from ..extensions import db
from ..models import Company, Customer, Vendor
from ..validation import NotFoundError, ValidationError


logger = logging.getLogger(__name__)


class CustomerNotFoundError(NotFoundError):
    """Raised when a customer is not found."""
    pass


class VendorNotFoundError(NotFoundError):
    """Raised when a vendor is not found."""
    pass


class PartyValidationError(ValidationError):
    """Raised when customer/vendor data fails validation."""
    pass


def _validate_linked_company(company: Company, linked_company_id: int | None) -> int | None:
    if linked_company_id is None:
        return None
    if linked_company_id == company.id:
        raise PartyValidationError("A company cannot be its own counterparty")
    linked = db.session.query(Company).filter_by(id=linked_company_id).first()
    if not linked or linked.tenant_id != company.tenant_id:
        raise NotFoundError("Linked company not found")
    return linked.id


def list_customers(company_id: int, *, active_only: bool = True) -> list[Customer]:
    query = db.session.query(Customer).filter_by(company_id=company_id)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Customer.name).all()


def list_vendors(company_id: int, *, active_only: bool = True) -> list[Vendor]:
    query = db.session.query(Vendor).filter_by(company_id=company_id)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Vendor.name).all()


def get_customer(customer_id: int, company_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id, company_id=company_id).first()
    if not customer:
        raise CustomerNotFoundError("Customer not found")
    return customer


def get_vendor(vendor_id: int, company_id: int) -> Vendor:
    vendor = db.session.query(Vendor).filter_by(id=vendor_id, company_id=company_id).first()
    if not vendor:
        raise VendorNotFoundError("Vendor not found")
    return vendor


def create_customer(
    *,
    company: Company,
    name: str,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    tax_id: str | None = None,
    linked_company_id: int | None = None,
) -> Customer:
    """
    Create a customer for a company.

    Raises:
        PartyValidationError: Missing name or self-link
        NotFoundError: linked_company_id outside the tenant
    """
    name = (name or "").strip()
    if not name:
        raise PartyValidationError("Customer name is required")

    customer = Customer(
        company_id=company.id,
        name=name,
        email=email,
        phone=phone,
        address=address,
        tax_id=tax_id,
        linked_company_id=_validate_linked_company(company, linked_company_id),
        is_active=True,
    )
    db.session.add(customer)
    db.session.flush()
    return customer


def create_vendor(
    *,
    company: Company,
    name: str,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    tax_id: str | None = None,
    linked_company_id: int | None = None,
) -> Vendor:
    """Create a vendor for a company. Same rules as create_customer."""
    name = (name or "").strip()
    if not name:
        raise PartyValidationError("Vendor name is required")

    vendor = Vendor(
        company_id=company.id,
        name=name,
        email=email,
        phone=phone,
        address=address,
        tax_id=tax_id,
        linked_company_id=_validate_linked_company(company, linked_company_id),
        is_active=True,
    )
    db.session.add(vendor)
    db.session.flush()
    return vendor


def ensure_intercompany_customer(company: Company, counterparty: Company) -> Customer:
    """
    Return the customer of `company` that represents `counterparty`.

    Reuses the oldest active linked customer; creates one named after the
    counterparty when none exists.
    """
    customer = (
        db.session.query(Customer)
        .filter_by(company_id=company.id, linked_company_id=counterparty.id, is_active=True)
        .order_by(Customer.id)
        .first()
    )
    if customer:
        return customer

    customer = Customer(
        company_id=company.id,
        name=counterparty.name,
        email=counterparty.email,
        phone=counterparty.phone,
        address=counterparty.address,
        tax_id=counterparty.tax_id,
        linked_company_id=counterparty.id,
        is_active=True,
    )
    db.session.add(customer)
    db.session.flush()
    logger.info("Created intercompany customer %s for company %s -> %s", customer.id, company.id, counterparty.id)
    return customer


def ensure_intercompany_vendor(company: Company, counterparty: Company) -> Vendor:
    """Return the vendor of `company` that represents `counterparty`, creating it if needed."""
    vendor = (
        db.session.query(Vendor)
        .filter_by(company_id=company.id, linked_company_id=counterparty.id, is_active=True)
        .order_by(Vendor.id)
        .first()
    )
    if vendor:
        return vendor

    vendor = Vendor(
        company_id=company.id,
        name=counterparty.name,
        email=counterparty.email,
        phone=counterparty.phone,
        address=counterparty.address,
        tax_id=counterparty.tax_id,
        linked_company_id=counterparty.id,
        is_active=True,
    )
    db.session.add(vendor)
    db.session.flush()
    logger.info("Created intercompany vendor %s for company %s -> %s", vendor.id, company.id, counterparty.id)
    return vendor
