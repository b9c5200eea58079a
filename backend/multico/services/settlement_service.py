# Overview: Service-layer operations for receipts and payments; encapsulates business logic and database work.

"""
Settlement Service

Receipts settle invoices, payments settle bills. A settlement is positive,
never exceeds the document's balance due, and is immutable once written.
Several partial settlements may be applied to one document.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Bill, Company, IntercompanyTransaction, Invoice, Payment, Receipt
from ..models.billing import PAYMENT_METHODS
from ..time_utils import to_utc_z, utcnow
from ..validation import NotFoundError, ValidationError
from .billing_service import BillingError, apply_bill_payment, apply_invoice_payment, get_bill, get_invoice
from .concurrency import run_with_retry
from .document_service import next_document_number
from .tenant_service import scoped_query


logger = logging.getLogger(__name__)


class ReceiptNotFoundError(NotFoundError):
    """Raised when a receipt is not found."""
    pass


class PaymentNotFoundError(NotFoundError):
    """Raised when a payment is not found."""
    pass


def normalize_payment_method(value: str | None) -> str:
    method = (value or "bank_transfer").strip().lower()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    return method


def _settlement_summary(model, date_column, company_ids: list[int]) -> dict:
    rows = (
        db.session.query(model.payment_method, func.count(model.id), func.coalesce(func.sum(model.amount_cents), 0))
        .filter(model.company_id.in_(company_ids))
        .group_by(model.payment_method)
        .all()
    )
    by_method = {method: {"count": int(count), "total_cents": int(total)} for method, count, total in rows}
    last_date = db.session.query(func.max(date_column)).filter(model.company_id.in_(company_ids)).scalar()
    return {
        "count": sum(v["count"] for v in by_method.values()),
        "total_cents": sum(v["total_cents"] for v in by_method.values()),
        "by_payment_method": by_method,
        "last_date": to_utc_z(last_date),
    }


# =============================================================================
# Receipts
# =============================================================================

def build_receipt(
    *,
    company: Company,
    invoice: Invoice,
    amount_cents: int,
    payment_method: str | None = None,
    receipt_date: datetime | None = None,
    reference: str | None = None,
    notes: str | None = None,
    reference_number: str | None = None,
    intercompany_transaction_id: int | None = None,
) -> Receipt:
    """
    Apply money received to a locked invoice and record the receipt.

    Raises:
        ValidationError: Amount not positive or above balance due
        BillingError: Invoice void or already paid
    """
    method = normalize_payment_method(payment_method)
    apply_invoice_payment(invoice, amount_cents)

    receipt = Receipt(
        company_id=company.id,
        customer_id=invoice.customer_id,
        invoice=invoice,
        sales_order_id=invoice.sales_order_id,
        intercompany_transaction_id=intercompany_transaction_id,
        receipt_number=next_document_number(company_id=company.id, document_type="RECEIPT"),
        receipt_date=receipt_date or utcnow(),
        amount_cents=amount_cents,
        payment_method=method,
        reference=reference,
        is_partial_payment=invoice.balance_due_cents > 0,
        notes=notes,
        reference_number=reference_number or invoice.reference_number,
    )
    db.session.add(receipt)
    db.session.flush()
    return receipt


def create_receipt(
    *,
    tenant_id: int,
    invoice_id: int,
    amount_cents: int | None,
    payment_method: str | None = None,
    receipt_date: datetime | None = None,
    reference: str | None = None,
    notes: str | None = None,
) -> Receipt:
    """
    Record a receipt against an invoice of the tenant.

    amount_cents defaults to the full balance due. Invoices of intercompany
    transactions are settled through the intercompany service.
    """
    def _op():
        invoice = get_invoice(invoice_id, tenant_id, for_update=True)
        if db.session.query(IntercompanyTransaction.id).filter_by(source_invoice_id=invoice.id).first():
            raise BillingError("Intercompany invoices are settled through /api/intercompany/receipt-payment")
        amount = invoice.balance_due_cents if amount_cents is None else amount_cents
        receipt = build_receipt(
            company=invoice.company,
            invoice=invoice,
            amount_cents=amount,
            payment_method=payment_method,
            receipt_date=receipt_date,
            reference=reference,
            notes=notes,
        )
        logger.info("Receipt %s: %s cents against invoice %s", receipt.receipt_number, amount, invoice.invoice_number)
        return receipt

    return run_with_retry(_op)


def get_receipt(receipt_id: int, tenant_id: int) -> Receipt:
    receipt = scoped_query(Receipt, tenant_id).filter(Receipt.id == receipt_id).first()
    if not receipt:
        raise ReceiptNotFoundError("Receipt not found")
    return receipt


def list_receipts(
    company_ids: list[int],
    *,
    invoice_id: int | None = None,
    customer_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Receipt], int]:
    query = db.session.query(Receipt).filter(Receipt.company_id.in_(company_ids))
    if invoice_id is not None:
        query = query.filter(Receipt.invoice_id == invoice_id)
    if customer_id is not None:
        query = query.filter(Receipt.customer_id == customer_id)
    total = query.count()
    receipts = query.order_by(Receipt.receipt_date.desc(), Receipt.id.desc()).offset(offset).limit(limit).all()
    return receipts, total


def receipt_summary(company_ids: list[int]) -> dict:
    return _settlement_summary(Receipt, Receipt.receipt_date, company_ids)


# =============================================================================
# Payments
# =============================================================================

def build_payment(
    *,
    company: Company,
    bill: Bill,
    amount_cents: int,
    payment_method: str | None = None,
    payment_date: datetime | None = None,
    reference: str | None = None,
    notes: str | None = None,
    reference_number: str | None = None,
    intercompany_transaction_id: int | None = None,
    mirror_receipt: Receipt | None = None,
) -> Payment:
    """Apply money paid to a locked bill and record the payment. Same rules as build_receipt."""
    method = normalize_payment_method(payment_method)
    apply_bill_payment(bill, amount_cents)

    payment = Payment(
        company_id=company.id,
        vendor_id=bill.vendor_id,
        bill=bill,
        purchase_order_id=bill.purchase_order_id,
        intercompany_transaction_id=intercompany_transaction_id,
        mirror_receipt=mirror_receipt,
        payment_number=next_document_number(company_id=company.id, document_type="PAYMENT"),
        payment_date=payment_date or utcnow(),
        amount_cents=amount_cents,
        payment_method=method,
        reference=reference,
        is_partial_payment=bill.balance_due_cents > 0,
        notes=notes,
        reference_number=reference_number or bill.reference_number,
    )
    db.session.add(payment)
    db.session.flush()
    return payment


def create_payment(
    *,
    tenant_id: int,
    bill_id: int,
    amount_cents: int | None,
    payment_method: str | None = None,
    payment_date: datetime | None = None,
    reference: str | None = None,
    notes: str | None = None,
) -> Payment:
    """Record a payment against a bill of the tenant. amount_cents defaults to the balance due."""
    def _op():
        bill = get_bill(bill_id, tenant_id, for_update=True)
        if db.session.query(IntercompanyTransaction.id).filter_by(target_bill_id=bill.id).first():
            raise BillingError("Intercompany bills are settled through /api/intercompany/receipt-payment")
        amount = bill.balance_due_cents if amount_cents is None else amount_cents
        payment = build_payment(
            company=bill.company,
            bill=bill,
            amount_cents=amount,
            payment_method=payment_method,
            payment_date=payment_date,
            reference=reference,
            notes=notes,
        )
        logger.info("Payment %s: %s cents against bill %s", payment.payment_number, amount, bill.bill_number)
        return payment

    return run_with_retry(_op)


def get_payment(payment_id: int, tenant_id: int) -> Payment:
    payment = scoped_query(Payment, tenant_id).filter(Payment.id == payment_id).first()
    if not payment:
        raise PaymentNotFoundError("Payment not found")
    return payment


def list_payments(
    company_ids: list[int],
    *,
    bill_id: int | None = None,
    vendor_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[Payment], int]:
    query = db.session.query(Payment).filter(Payment.company_id.in_(company_ids))
    if bill_id is not None:
        query = query.filter(Payment.bill_id == bill_id)
    if vendor_id is not None:
        query = query.filter(Payment.vendor_id == vendor_id)
    total = query.count()
    payments = query.order_by(Payment.payment_date.desc(), Payment.id.desc()).offset(offset).limit(limit).all()
    return payments, total


def payment_summary(company_ids: list[int]) -> dict:
    return _settlement_summary(Payment, Payment.payment_date, company_ids)
