# Overview: Service-layer operations for intercompany transactions; writes mirrored document pairs.

"""
Intercompany Service

WHY: A trade between two companies of the same tenant must show up in both
ledgers at once. Every write here produces a mirrored pair of documents:

    seller                      buyer
    ------                      -----
    sales order        <->      purchase order
    invoice            <->      bill
    receipt            <->      payment

Both documents of a pair carry the transaction's reference_number and the
same amount. Each operation is one unit of work: the route commits once,
and any failure rolls back both sides.

LIFECYCLE (status):
1. pending: Order pair written
2. invoiced: Invoice/bill pair written
3. completed: Invoice/bill settled in full
4. cancelled: Cancelled while pending (both orders cancelled)

payment_status moves pending -> partial -> paid as receipt/payment pairs land.

The transaction row always records the seller as source and the buyer as
target, whichever side initiated (initiated_by = "sales" | "purchase").
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime

from sqlalchemy import or_

from ..extensions import db
from ..models import Company, IntercompanyTransaction, Payment, Receipt
from ..models.intercompany import (
    IC_PAYMENT_PAID,
    IC_PAYMENT_PARTIAL,
    IC_PAYMENT_PENDING,
    IC_STATUS_CANCELLED,
    IC_STATUS_COMPLETED,
    IC_STATUS_INVOICED,
    IC_STATUS_PENDING,
    INITIATED_BY_PURCHASE,
    INITIATED_BY_SALES,
)
from ..models.billing import DOC_STATUS_PAID
from ..validation import ConflictError, NotFoundError, ValidationError
from .billing_service import build_bill, build_invoice, get_bill, get_invoice
from .concurrency import lock_for_update, run_with_retry
from .document_service import next_intercompany_reference
from .order_service import (
    build_purchase_order,
    build_sales_order,
    get_purchase_order,
    get_sales_order,
    mark_order_cancelled,
    mirror_lines,
    normalize_lines,
    resolve_total,
)
from .party_service import ensure_intercompany_customer, ensure_intercompany_vendor
from .settlement_service import build_payment, build_receipt
from .tenant_service import require_companies_in_tenant


logger = logging.getLogger(__name__)

IC_STATUSES = (IC_STATUS_PENDING, IC_STATUS_INVOICED, IC_STATUS_COMPLETED, IC_STATUS_CANCELLED)
IC_PAYMENT_STATUSES = (IC_PAYMENT_PENDING, IC_PAYMENT_PARTIAL, IC_PAYMENT_PAID)


class IntercompanyNotFoundError(NotFoundError):
    """Raised when an intercompany transaction is not found."""
    pass


class IntercompanyError(ConflictError):
    """Raised when a transaction is in the wrong state for the operation."""
    pass


# =============================================================================
# Helpers
# =============================================================================

def _resolve_pair(tenant_id: int, first_company_id: int, second_company_id: int) -> tuple[Company, Company]:
    """Validate two distinct, active companies of the tenant."""
    if first_company_id == second_company_id:
        raise ValidationError("Source and target company must be different")
    first, second = require_companies_in_tenant([first_company_id, second_company_id], tenant_id)
    for company in (first, second):
        if not company.is_active:
            raise IntercompanyError(f"Company {company.code} is not active")
    return first, second


def _allocate_reference(seller: Company, buyer: Company, reference_number: str | None) -> str:
    if reference_number is None:
        return next_intercompany_reference(source_company_id=seller.id, target_company_id=buyer.id)

    reference_number = reference_number.strip()
    if not reference_number:
        raise ValidationError("reference_number cannot be empty")
    if len(reference_number) > 64:
        raise ValidationError("reference_number must be at most 64 characters")
    exists = db.session.query(IntercompanyTransaction.id).filter_by(reference_number=reference_number).first()
    if exists:
        raise ConflictError(f"Reference number '{reference_number}' is already in use")
    return reference_number


def _tenant_query(tenant_id: int):
    return db.session.query(IntercompanyTransaction).filter(IntercompanyTransaction.tenant_id == tenant_id)


def _locate_transaction(
    tenant_id: int,
    *,
    transaction_id: int | None = None,
    sales_order_id: int | None = None,
    invoice_id: int | None = None,
) -> IntercompanyTransaction:
    """Find and lock a transaction by id, by its sales order or by its invoice."""
    query = _tenant_query(tenant_id)
    if transaction_id is not None:
        query = query.filter(IntercompanyTransaction.id == transaction_id)
    elif sales_order_id is not None:
        query = query.filter(IntercompanyTransaction.source_order_id == sales_order_id)
    elif invoice_id is not None:
        query = query.filter(IntercompanyTransaction.source_invoice_id == invoice_id)
    else:
        raise ValidationError("transaction_id is required")

    transaction = lock_for_update(query).first()
    if not transaction:
        raise IntercompanyNotFoundError("Intercompany transaction not found")
    return transaction


def _write_order_pair(
    *,
    tenant_id: int,
    seller: Company,
    buyer: Company,
    seller_lines: list[dict],
    buyer_lines: list[dict],
    total_cents: int,
    initiated_by: str,
    description: str | None,
    reference_number: str | None,
    order_date: datetime | None,
    expected_date: datetime | None,
    notes: str | None,
) -> IntercompanyTransaction:
    reference = _allocate_reference(seller, buyer, reference_number)
    customer = ensure_intercompany_customer(seller, buyer)
    vendor = ensure_intercompany_vendor(buyer, seller)

    sales_order = build_sales_order(
        company=seller,
        customer=customer,
        lines=seller_lines,
        total_cents=total_cents,
        order_date=order_date,
        expected_date=expected_date,
        notes=notes,
        reference_number=reference,
    )
    purchase_order = build_purchase_order(
        company=buyer,
        vendor=vendor,
        lines=buyer_lines,
        total_cents=total_cents,
        order_date=sales_order.order_date,
        expected_date=sales_order.expected_date,
        notes=notes,
        reference_number=reference,
    )

    transaction = IntercompanyTransaction(
        tenant_id=tenant_id,
        source_company_id=seller.id,
        target_company_id=buyer.id,
        reference_number=reference,
        description=description or f"Intercompany order {seller.code} -> {buyer.code}",
        amount_cents=total_cents,
        paid_cents=0,
        transaction_date=sales_order.order_date,
        source_order_id=sales_order.id,
        target_order_id=purchase_order.id,
        initiated_by=initiated_by,
        status=IC_STATUS_PENDING,
        payment_status=IC_PAYMENT_PENDING,
    )
    db.session.add(transaction)
    db.session.flush()

    logger.info(
        "Intercompany %s: %s %s <-> %s %s (%s cents, initiated by %s)",
        reference,
        seller.code,
        sales_order.order_number,
        buyer.code,
        purchase_order.order_number,
        total_cents,
        initiated_by,
    )
    return transaction


# =============================================================================
# Mirrored writers
# =============================================================================

def create_intercompany_sales_order(
    *,
    tenant_id: int,
    source_company_id: int,
    target_company_id: int,
    items=None,
    total_cents: int | None = None,
    description: str | None = None,
    reference_number: str | None = None,
    order_date: datetime | None = None,
    expected_date: datetime | None = None,
    notes: str | None = None,
) -> IntercompanyTransaction:
    """
    Seller-initiated trade: sales order in the source company, mirrored
    purchase order in the target company.

    Args:
        tenant_id: Request tenant
        source_company_id: Selling company
        target_company_id: Buying company
        items: Optional raw lines (priced from the seller's products)
        total_cents: Explicit total when no lines are given
        reference_number: Optional caller-chosen shared reference

    Returns:
        The IntercompanyTransaction (flushed, not committed)

    Raises:
        ValidationError: Same company, bad lines or total
        TenantAccessError: Company outside the tenant
        ConflictError: Reference number already used, inactive company
    """
    def _op():
        seller, buyer = _resolve_pair(tenant_id, source_company_id, target_company_id)
        lines = normalize_lines(items, company_id=seller.id, price_attr="sales_price_cents")
        total = resolve_total(lines, total_cents)
        return _write_order_pair(
            tenant_id=tenant_id,
            seller=seller,
            buyer=buyer,
            seller_lines=lines,
            buyer_lines=mirror_lines(lines),
            total_cents=total,
            initiated_by=INITIATED_BY_SALES,
            description=description,
            reference_number=reference_number,
            order_date=order_date,
            expected_date=expected_date,
            notes=notes,
        )

    return run_with_retry(_op)


def create_intercompany_purchase_order(
    *,
    tenant_id: int,
    source_company_id: int,
    target_company_id: int,
    items=None,
    total_cents: int | None = None,
    description: str | None = None,
    reference_number: str | None = None,
    order_date: datetime | None = None,
    expected_date: datetime | None = None,
    notes: str | None = None,
) -> IntercompanyTransaction:
    """
    Buyer-initiated trade: purchase order in the source (buying) company,
    mirrored sales order in the target (selling) company.

    The stored transaction is normalized so source = seller, target = buyer.
    """
    def _op():
        buyer, seller = _resolve_pair(tenant_id, source_company_id, target_company_id)
        lines = normalize_lines(items, company_id=buyer.id, price_attr="purchase_price_cents")
        total = resolve_total(lines, total_cents)
        return _write_order_pair(
            tenant_id=tenant_id,
            seller=seller,
            buyer=buyer,
            seller_lines=mirror_lines(lines),
            buyer_lines=lines,
            total_cents=total,
            initiated_by=INITIATED_BY_PURCHASE,
            description=description,
            reference_number=reference_number,
            order_date=order_date,
            expected_date=expected_date,
            notes=notes,
        )

    return run_with_retry(_op)


def create_intercompany_invoice(
    *,
    tenant_id: int,
    transaction_id: int | None = None,
    sales_order_id: int | None = None,
    total_cents: int | None = None,
    tax_cents: int | None = None,
    invoice_date: datetime | None = None,
    due_date: datetime | None = None,
    notes: str | None = None,
) -> IntercompanyTransaction:
    """
    Invoice the seller's sales order and bill the buyer's purchase order
    for the same amount.

    One invoice pair per transaction, always for the full order total, so
    settling it in full completes both orders. total_cents may be given
    but must equal the order total.

    Raises:
        IntercompanyError: Transaction cancelled or already invoiced
        ValidationError: Total other than the order total
    """
    def _op():
        transaction = _locate_transaction(
            tenant_id, transaction_id=transaction_id, sales_order_id=sales_order_id
        )
        if transaction.status == IC_STATUS_CANCELLED:
            raise IntercompanyError("Cannot invoice a cancelled transaction")
        if transaction.source_invoice_id is not None:
            raise IntercompanyError(f"Transaction {transaction.reference_number} is already invoiced")

        sales_order = get_sales_order(transaction.source_order_id, tenant_id, for_update=True)
        purchase_order = get_purchase_order(transaction.target_order_id, tenant_id, for_update=True)
        if total_cents is not None and total_cents < sales_order.total_cents:
            raise ValidationError(
                f"Intercompany invoices must cover the full order total of {sales_order.total_cents} cents"
            )

        invoice = build_invoice(
            company=sales_order.company,
            customer=sales_order.customer,
            sales_order=sales_order,
            total_cents=total_cents,
            tax_cents=tax_cents,
            invoice_date=invoice_date,
            due_date=due_date,
            notes=notes,
            reference_number=transaction.reference_number,
        )
        bill = build_bill(
            company=purchase_order.company,
            vendor=purchase_order.vendor,
            purchase_order=purchase_order,
            total_cents=invoice.total_cents,
            tax_cents=invoice.tax_cents,
            bill_date=invoice.invoice_date,
            due_date=invoice.due_date,
            notes=notes,
            reference_number=transaction.reference_number,
        )

        transaction.source_invoice_id = invoice.id
        transaction.target_bill_id = bill.id
        transaction.status = IC_STATUS_INVOICED
        db.session.flush()

        logger.info(
            "Intercompany %s invoiced: %s <-> %s (%s cents)",
            transaction.reference_number,
            invoice.invoice_number,
            bill.bill_number,
            invoice.total_cents,
        )
        return transaction

    return run_with_retry(_op)


def create_intercompany_receipt(
    *,
    tenant_id: int,
    transaction_id: int | None = None,
    invoice_id: int | None = None,
    amount_cents: int | None = None,
    payment_method: str | None = None,
    settlement_date: datetime | None = None,
    reference: str | None = None,
    notes: str | None = None,
) -> tuple[IntercompanyTransaction, Receipt, Payment]:
    """
    Settle an invoiced transaction: receipt in the seller against the
    invoice, payment in the buyer against the bill, same amount.

    amount_cents defaults to the remaining balance. Partial settlements
    are allowed; the transaction completes when the invoice is paid.

    Raises:
        IntercompanyError: Transaction not invoiced, cancelled or settled
        ValidationError: Amount not positive or above the remaining balance
    """
    def _op():
        transaction = _locate_transaction(tenant_id, transaction_id=transaction_id, invoice_id=invoice_id)
        if transaction.status == IC_STATUS_CANCELLED:
            raise IntercompanyError("Cannot settle a cancelled transaction")
        if transaction.status == IC_STATUS_COMPLETED or transaction.payment_status == IC_PAYMENT_PAID:
            raise IntercompanyError(f"Transaction {transaction.reference_number} is already paid")
        if transaction.status != IC_STATUS_INVOICED:
            raise IntercompanyError(f"Transaction {transaction.reference_number} has not been invoiced")

        invoice = get_invoice(transaction.source_invoice_id, tenant_id, for_update=True)
        bill = get_bill(transaction.target_bill_id, tenant_id, for_update=True)
        if invoice.balance_due_cents != bill.balance_due_cents:
            raise IntercompanyError(f"Transaction {transaction.reference_number} is out of balance")

        amount = invoice.balance_due_cents if amount_cents is None else amount_cents

        receipt = build_receipt(
            company=invoice.company,
            invoice=invoice,
            amount_cents=amount,
            payment_method=payment_method,
            receipt_date=settlement_date,
            reference=reference,
            notes=notes,
            reference_number=transaction.reference_number,
            intercompany_transaction_id=transaction.id,
        )
        payment = build_payment(
            company=bill.company,
            bill=bill,
            amount_cents=amount,
            payment_method=receipt.payment_method,
            payment_date=receipt.receipt_date,
            reference=reference,
            notes=notes,
            reference_number=transaction.reference_number,
            intercompany_transaction_id=transaction.id,
            mirror_receipt=receipt,
        )

        transaction.paid_cents = (transaction.paid_cents or 0) + amount
        if invoice.status == DOC_STATUS_PAID:
            transaction.payment_status = IC_PAYMENT_PAID
            transaction.status = IC_STATUS_COMPLETED
        else:
            transaction.payment_status = IC_PAYMENT_PARTIAL
        db.session.flush()

        logger.info(
            "Intercompany %s settled %s cents: %s <-> %s (payment_status=%s)",
            transaction.reference_number,
            amount,
            receipt.receipt_number,
            payment.payment_number,
            transaction.payment_status,
        )
        return transaction, receipt, payment

    return run_with_retry(_op)


def cancel_intercompany_transaction(transaction_id: int, tenant_id: int) -> IntercompanyTransaction:
    """Cancel a pending transaction and both of its orders."""
    def _op():
        transaction = _locate_transaction(tenant_id, transaction_id=transaction_id)
        if transaction.status != IC_STATUS_PENDING:
            raise IntercompanyError(f"Cannot cancel transaction in {transaction.status} status")

        sales_order = get_sales_order(transaction.source_order_id, tenant_id, for_update=True)
        purchase_order = get_purchase_order(transaction.target_order_id, tenant_id, for_update=True)
        mark_order_cancelled(sales_order)
        mark_order_cancelled(purchase_order)

        transaction.status = IC_STATUS_CANCELLED
        db.session.flush()
        logger.info("Intercompany %s cancelled", transaction.reference_number)
        return transaction

    return run_with_retry(_op)


# =============================================================================
# Queries
# =============================================================================

def get_transaction(transaction_id: int, tenant_id: int) -> IntercompanyTransaction:
    transaction = _tenant_query(tenant_id).filter(IntercompanyTransaction.id == transaction_id).first()
    if not transaction:
        raise IntercompanyNotFoundError("Intercompany transaction not found")
    return transaction


def get_transaction_by_reference(reference_number: str, tenant_id: int) -> IntercompanyTransaction | None:
    return _tenant_query(tenant_id).filter(IntercompanyTransaction.reference_number == reference_number).first()


def list_transactions(
    tenant_id: int,
    *,
    company_id: int | None = None,
    status: str | None = None,
    payment_status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[IntercompanyTransaction], int]:
    """List transactions of the tenant, optionally where company_id is either side."""
    query = _tenant_query(tenant_id)
    if company_id is not None:
        query = query.filter(or_(
            IntercompanyTransaction.source_company_id == company_id,
            IntercompanyTransaction.target_company_id == company_id,
        ))
    if status:
        if status not in IC_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(IC_STATUSES)}")
        query = query.filter(IntercompanyTransaction.status == status)
    if payment_status:
        if payment_status not in IC_PAYMENT_STATUSES:
            raise ValidationError(f"payment_status must be one of: {', '.join(IC_PAYMENT_STATUSES)}")
        query = query.filter(IntercompanyTransaction.payment_status == payment_status)
    total = query.count()
    rows = (
        query.order_by(IntercompanyTransaction.created_at.desc(), IntercompanyTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total


def list_receipt_eligible(tenant_id: int, *, company_id: int | None = None) -> list[dict]:
    """Invoiced transactions with money still to settle, oldest first."""
    query = _tenant_query(tenant_id).filter(
        IntercompanyTransaction.status == IC_STATUS_INVOICED,
        IntercompanyTransaction.payment_status != IC_PAYMENT_PAID,
    )
    if company_id is not None:
        query = query.filter(or_(
            IntercompanyTransaction.source_company_id == company_id,
            IntercompanyTransaction.target_company_id == company_id,
        ))

    eligible = []
    for transaction in query.order_by(IntercompanyTransaction.created_at, IntercompanyTransaction.id).all():
        invoice = transaction.source_invoice
        bill = transaction.target_bill
        eligible.append({
            "transaction_id": transaction.id,
            "reference_number": transaction.reference_number,
            "source_company_id": transaction.source_company_id,
            "source_company_name": transaction.source_company.name,
            "target_company_id": transaction.target_company_id,
            "target_company_name": transaction.target_company.name,
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "bill_id": bill.id,
            "bill_number": bill.bill_number,
            "invoice_total_cents": invoice.total_cents,
            "paid_cents": transaction.paid_cents,
            "remaining_cents": invoice.balance_due_cents,
            "payment_status": transaction.payment_status,
        })
    return eligible


def intercompany_balances(tenant_id: int, company: Company) -> dict:
    """
    Open intercompany receivables and payables of `company`, per counterparty.

    Receivable: balance due on invoices the company issued to a sister
    company. Payable: balance due on bills it received from one.
    """
    transactions = (
        _tenant_query(tenant_id)
        .filter(
            or_(
                IntercompanyTransaction.source_company_id == company.id,
                IntercompanyTransaction.target_company_id == company.id,
            ),
            IntercompanyTransaction.status != IC_STATUS_CANCELLED,
        )
        .all()
    )

    per_company: dict[int, dict] = defaultdict(lambda: {
        "receivable_cents": 0,
        "payable_cents": 0,
        "sales_cents": 0,
        "purchases_cents": 0,
        "transaction_count": 0,
    })
    names: dict[int, str] = {}

    for transaction in transactions:
        if transaction.source_company_id == company.id:
            other = transaction.target_company
            entry = per_company[other.id]
            entry["sales_cents"] += transaction.amount_cents
            if transaction.source_invoice is not None:
                entry["receivable_cents"] += transaction.source_invoice.balance_due_cents
        else:
            other = transaction.source_company
            entry = per_company[other.id]
            entry["purchases_cents"] += transaction.amount_cents
            if transaction.target_bill is not None:
                entry["payable_cents"] += transaction.target_bill.balance_due_cents
        entry["transaction_count"] += 1
        names[other.id] = other.name

    balances = []
    for other_id in sorted(per_company, key=lambda cid: names[cid]):
        entry = per_company[other_id]
        balances.append({
            "company_id": other_id,
            "company_name": names[other_id],
            **entry,
            "net_cents": entry["receivable_cents"] - entry["payable_cents"],
        })

    total_receivable = sum(b["receivable_cents"] for b in balances)
    total_payable = sum(b["payable_cents"] for b in balances)
    return {
        "company_id": company.id,
        "company_name": company.name,
        "balances": balances,
        "total_receivable_cents": total_receivable,
        "total_payable_cents": total_payable,
        "net_cents": total_receivable - total_payable,
    }
