# Overview: Service-layer operations for invoices and bills; encapsulates business logic and database work.

"""
Billing Service

Invoices (receivables) and bills (payables), standalone or raised against
an order. An order can be invoiced in several parts; the sum of its
non-void invoices never exceeds the order total.

LIFECYCLE:
1. open: Issued, nothing paid
2. partial: Some payment applied
3. paid: Paid in full
4. void: Voided while open with nothing paid

Documents that belong to an intercompany transaction are written, voided
and settled only through the intercompany service.
"""
from __future__ import annotations

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import (
    Bill,
    Company,
    Customer,
    IntercompanyTransaction,
    Invoice,
    PurchaseOrder,
    SalesOrder,
    Vendor,
)
from ..models.billing import DOC_STATUS_OPEN, DOC_STATUS_PAID, DOC_STATUS_PARTIAL, DOC_STATUS_VOID
from ..models.orders import ORDER_STATUS_PENDING
from ..time_utils import days_after, utcnow
from ..validation import MAX_AMOUNT_CENTS, ConflictError, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_with_retry
from .document_service import next_document_number
from .order_service import get_purchase_order, get_sales_order, refresh_order_status
from .party_service import get_customer, get_vendor
from .tenant_service import scoped_query


logger = logging.getLogger(__name__)

DOC_STATUSES = (DOC_STATUS_OPEN, DOC_STATUS_PARTIAL, DOC_STATUS_PAID, DOC_STATUS_VOID)


class InvoiceNotFoundError(NotFoundError):
    """Raised when an invoice is not found."""
    pass


class BillNotFoundError(NotFoundError):
    """Raised when a bill is not found."""
    pass


class BillingError(ConflictError):
    """Raised when a document is in the wrong state for the operation."""
    pass


def _default_due_date(document_date: datetime) -> datetime:
    return days_after(document_date, current_app.config.get("DEFAULT_PAYMENT_TERMS_DAYS", 30))


def resolve_document_total(
    *,
    order_remaining_cents: int | None,
    total_cents: int | None,
    tax_cents: int | None,
) -> tuple[int, int, int]:
    """
    Work out (subtotal, tax, total) for an invoice or bill.

    Against an order the total defaults to the order's remaining amount and
    may not exceed it.
    """
    tax_cents = tax_cents or 0
    if total_cents is None:
        if order_remaining_cents is None:
            raise ValidationError("total_cents is required")
        total_cents = order_remaining_cents
    if total_cents <= 0:
        raise ValidationError("Document total must be greater than zero")
    if total_cents > MAX_AMOUNT_CENTS:
        raise ValidationError("Document total exceeds maximum allowed amount")
    if order_remaining_cents is not None and total_cents > order_remaining_cents:
        raise ValidationError(
            f"Total {total_cents} exceeds the order's remaining amount {order_remaining_cents}"
        )
    if tax_cents > total_cents:
        raise ValidationError("tax_cents cannot exceed the document total")
    return total_cents - tax_cents, tax_cents, total_cents


def _require_order_billable(order) -> None:
    if order.status != ORDER_STATUS_PENDING:
        raise BillingError(f"Cannot invoice an order in {order.status} status")


def _advance_document_status(document, amount_cents: int) -> None:
    """Apply a payment to an invoice or bill, moving open -> partial -> paid."""
    if document.status == DOC_STATUS_VOID:
        raise BillingError("Cannot apply a payment to a void document")
    if document.status == DOC_STATUS_PAID:
        raise BillingError("Document is already paid in full")
    if amount_cents <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    balance = document.balance_due_cents
    if amount_cents > balance:
        raise ValidationError(f"Payment amount {amount_cents} exceeds balance due {balance}")

    document.amount_paid_cents = (document.amount_paid_cents or 0) + amount_cents
    document.status = DOC_STATUS_PAID if document.amount_paid_cents >= document.total_cents else DOC_STATUS_PARTIAL
    db.session.flush()


def _paid_summary(model, company_ids: list[int]) -> dict:
    row = (
        db.session.query(
            func.count(model.id),
            func.coalesce(func.sum(model.total_cents), 0),
            func.coalesce(func.sum(case((model.status == DOC_STATUS_PAID, 1), else_=0)), 0),
            func.coalesce(func.sum(model.amount_paid_cents), 0),
        )
        .filter(model.company_id.in_(company_ids), model.status != DOC_STATUS_VOID)
        .one()
    )
    count, total_cents, paid_count, paid_cents = (int(v) for v in row)
    return {
        "count": count,
        "total_cents": total_cents,
        "paid_count": paid_count,
        "paid_cents": paid_cents,
        "outstanding_cents": max(0, total_cents - paid_cents),
    }


# =============================================================================
# Invoices
# =============================================================================

def build_invoice(
    *,
    company: Company,
    customer: Customer,
    sales_order: SalesOrder | None = None,
    total_cents: int | None = None,
    tax_cents: int | None = None,
    invoice_date: datetime | None = None,
    due_date: datetime | None = None,
    notes: str | None = None,
    reference_number: str | None = None,
) -> Invoice:
    """
    Insert an invoice, optionally against a (locked) sales order.

    Raises:
        BillingError: Order not in pending status
        ValidationError: Bad total, or total above the uninvoiced remainder
    """
    remaining = None
    if sales_order is not None:
        _require_order_billable(sales_order)
        remaining = sales_order.uninvoiced_cents

    subtotal, tax, total = resolve_document_total(
        order_remaining_cents=remaining,
        total_cents=total_cents,
        tax_cents=tax_cents,
    )

    invoice_date = invoice_date or utcnow()
    invoice = Invoice(
        company_id=company.id,
        customer_id=customer.id,
        sales_order=sales_order,
        invoice_number=next_document_number(company_id=company.id, document_type="INVOICE"),
        invoice_date=invoice_date,
        due_date=due_date or _default_due_date(invoice_date),
        status=DOC_STATUS_OPEN,
        subtotal_cents=subtotal,
        tax_cents=tax,
        total_cents=total,
        amount_paid_cents=0,
        is_partial_invoice=remaining is not None and total < remaining,
        notes=notes,
        reference_number=reference_number or (sales_order.reference_number if sales_order else None),
    )
    db.session.add(invoice)
    db.session.flush()

    if sales_order is not None:
        refresh_order_status(sales_order)
    return invoice


def create_invoice(
    *,
    company: Company,
    tenant_id: int,
    customer_id: int | None = None,
    sales_order_id: int | None = None,
    total_cents: int | None = None,
    tax_cents: int | None = None,
    invoice_date: datetime | None = None,
    due_date: datetime | None = None,
    notes: str | None = None,
) -> Invoice:
    """
    Create an invoice, standalone (customer_id) or from a sales order.

    Intercompany sales orders are invoiced through the intercompany service.
    """
    def _op():
        sales_order = None
        if sales_order_id is not None:
            sales_order = get_sales_order(sales_order_id, tenant_id, for_update=True)
            if sales_order.company_id != company.id:
                raise ValidationError("Sales order belongs to a different company")
            if db.session.query(IntercompanyTransaction.id).filter_by(source_order_id=sales_order.id).first():
                raise BillingError("Intercompany orders are invoiced through /api/intercompany/invoice")
            customer = sales_order.customer
            if customer_id is not None and customer_id != customer.id:
                raise ValidationError("customer_id does not match the sales order")
        elif customer_id is not None:
            customer = get_customer(customer_id, company.id)
        else:
            raise ValidationError("customer_id or sales_order_id is required")

        invoice = build_invoice(
            company=company,
            customer=customer,
            sales_order=sales_order,
            total_cents=total_cents,
            tax_cents=tax_cents,
            invoice_date=invoice_date,
            due_date=due_date,
            notes=notes,
        )
        logger.info("Created invoice %s (%s cents) for company %s", invoice.invoice_number, invoice.total_cents, company.id)
        return invoice

    return run_with_retry(_op)


def get_invoice(invoice_id: int, tenant_id: int, *, for_update: bool = False) -> Invoice:
    query = scoped_query(Invoice, tenant_id).filter(Invoice.id == invoice_id)
    if for_update:
        query = lock_for_update(query)
    invoice = query.first()
    if not invoice:
        raise InvoiceNotFoundError("Invoice not found")
    return invoice


def list_invoices(
    company_ids: list[int],
    *,
    status: str | None = None,
    customer_id: int | None = None,
    sales_order_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Invoice], int]:
    query = db.session.query(Invoice).filter(Invoice.company_id.in_(company_ids))
    if status:
        if status not in DOC_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(DOC_STATUSES)}")
        query = query.filter(Invoice.status == status)
    if customer_id is not None:
        query = query.filter(Invoice.customer_id == customer_id)
    if sales_order_id is not None:
        query = query.filter(Invoice.sales_order_id == sales_order_id)
    total = query.count()
    invoices = query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).offset(offset).limit(limit).all()
    return invoices, total


def void_invoice(invoice_id: int, tenant_id: int) -> Invoice:
    """
    Void an open invoice with nothing paid.

    Only invoices whose sales order is still pending can be voided, so the
    order status never moves backwards.
    """
    def _op():
        invoice = get_invoice(invoice_id, tenant_id, for_update=True)
        if invoice.status != DOC_STATUS_OPEN or invoice.amount_paid_cents:
            raise BillingError(f"Cannot void invoice in {invoice.status} status")
        if db.session.query(IntercompanyTransaction.id).filter_by(source_invoice_id=invoice.id).first():
            raise BillingError("Intercompany invoices cannot be voided on one side")
        if invoice.sales_order is not None and invoice.sales_order.status != ORDER_STATUS_PENDING:
            raise BillingError("Cannot void an invoice of a fully invoiced order")
        invoice.status = DOC_STATUS_VOID
        db.session.flush()
        logger.info("Voided invoice %s", invoice.invoice_number)
        return invoice

    return run_with_retry(_op)


def apply_invoice_payment(invoice: Invoice, amount_cents: int) -> Invoice:
    """
    Record money received against a locked invoice.

    Raises:
        ValidationError: Non-positive amount or amount above balance due
        BillingError: Invoice void or already paid
    """
    _advance_document_status(invoice, amount_cents)
    if invoice.sales_order is not None:
        refresh_order_status(invoice.sales_order)
    return invoice


def invoice_summary(company_ids: list[int]) -> dict:
    return _paid_summary(Invoice, company_ids)


# =============================================================================
# Bills
# =============================================================================

def build_bill(
    *,
    company: Company,
    vendor: Vendor,
    purchase_order: PurchaseOrder | None = None,
    total_cents: int | None = None,
    tax_cents: int | None = None,
    bill_date: datetime | None = None,
    due_date: datetime | None = None,
    notes: str | None = None,
    reference_number: str | None = None,
) -> Bill:
    """Insert a bill, optionally against a (locked) purchase order. Same rules as build_invoice."""
    remaining = None
    if purchase_order is not None:
        _require_order_billable(purchase_order)
        remaining = purchase_order.unbilled_cents

    subtotal, tax, total = resolve_document_total(
        order_remaining_cents=remaining,
        total_cents=total_cents,
        tax_cents=tax_cents,
    )

    bill_date = bill_date or utcnow()
    bill = Bill(
        company_id=company.id,
        vendor_id=vendor.id,
        purchase_order=purchase_order,
        bill_number=next_document_number(company_id=company.id, document_type="BILL"),
        bill_date=bill_date,
        due_date=due_date or _default_due_date(bill_date),
        status=DOC_STATUS_OPEN,
        subtotal_cents=subtotal,
        tax_cents=tax,
        total_cents=total,
        amount_paid_cents=0,
        is_partial_bill=remaining is not None and total < remaining,
        notes=notes,
        reference_number=reference_number or (purchase_order.reference_number if purchase_order else None),
    )
    db.session.add(bill)
    db.session.flush()

    if purchase_order is not None:
        refresh_order_status(purchase_order)
    return bill


def create_bill(
    *,
    company: Company,
    tenant_id: int,
    vendor_id: int | None = None,
    purchase_order_id: int | None = None,
    total_cents: int | None = None,
    tax_cents: int | None = None,
    bill_date: datetime | None = None,
    due_date: datetime | None = None,
    notes: str | None = None,
) -> Bill:
    """Create a bill, standalone (vendor_id) or from a purchase order."""
    def _op():
        purchase_order = None
        if purchase_order_id is not None:
            purchase_order = get_purchase_order(purchase_order_id, tenant_id, for_update=True)
            if purchase_order.company_id != company.id:
                raise ValidationError("Purchase order belongs to a different company")
            if db.session.query(IntercompanyTransaction.id).filter_by(target_order_id=purchase_order.id).first():
                raise BillingError("Intercompany orders are billed through /api/intercompany/invoice")
            vendor = purchase_order.vendor
            if vendor_id is not None and vendor_id != vendor.id:
                raise ValidationError("vendor_id does not match the purchase order")
        elif vendor_id is not None:
            vendor = get_vendor(vendor_id, company.id)
        else:
            raise ValidationError("vendor_id or purchase_order_id is required")

        bill = build_bill(
            company=company,
            vendor=vendor,
            purchase_order=purchase_order,
            total_cents=total_cents,
            tax_cents=tax_cents,
            bill_date=bill_date,
            due_date=due_date,
            notes=notes,
        )
        logger.info("Created bill %s (%s cents) for company %s", bill.bill_number, bill.total_cents, company.id)
        return bill

    return run_with_retry(_op)


def get_bill(bill_id: int, tenant_id: int, *, for_update: bool = False) -> Bill:
    query = scoped_query(Bill, tenant_id).filter(Bill.id == bill_id)
    if for_update:
        query = lock_for_update(query)
    bill = query.first()
    if not bill:
        raise BillNotFoundError("Bill not found")
    return bill


def list_bills(
    company_ids: list[int],
    *,
    status: str | None = None,
    vendor_id: int | None = None,
    purchase_order_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Bill], int]:
    query = db.session.query(Bill).filter(Bill.company_id.in_(company_ids))
    if status:
        if status not in DOC_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(DOC_STATUSES)}")
        query = query.filter(Bill.status == status)
    if vendor_id is not None:
        query = query.filter(Bill.vendor_id == vendor_id)
    if purchase_order_id is not None:
        query = query.filter(Bill.purchase_order_id == purchase_order_id)
    total = query.count()
    bills = query.order_by(Bill.created_at.desc(), Bill.id.desc()).offset(offset).limit(limit).all()
    return bills, total


def void_bill(bill_id: int, tenant_id: int) -> Bill:
    def _op():
        bill = get_bill(bill_id, tenant_id, for_update=True)
        if bill.status != DOC_STATUS_OPEN or bill.amount_paid_cents:
            raise BillingError(f"Cannot void bill in {bill.status} status")
        if db.session.query(IntercompanyTransaction.id).filter_by(target_bill_id=bill.id).first():
            raise BillingError("Intercompany bills cannot be voided on one side")
        if bill.purchase_order is not None and bill.purchase_order.status != ORDER_STATUS_PENDING:
            raise BillingError("Cannot void a bill of a fully billed order")
        bill.status = DOC_STATUS_VOID
        db.session.flush()
        logger.info("Voided bill %s", bill.bill_number)
        return bill

    return run_with_retry(_op)


def apply_bill_payment(bill: Bill, amount_cents: int) -> Bill:
    """Record money paid against a locked bill. Same rules as apply_invoice_payment."""
    _advance_document_status(bill, amount_cents)
    if bill.purchase_order is not None:
        refresh_order_status(bill.purchase_order)
    return bill


def bill_summary(company_ids: list[int]) -> dict:
    return _paid_summary(Bill, company_ids)
