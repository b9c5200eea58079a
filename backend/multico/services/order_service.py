# Overview: Service-layer operations for sales and purchase orders; encapsulates business logic and database work.

"""
Order Service

LIFECYCLE (sales and purchase orders alike):
1. pending: Created; may be partially invoiced/billed
2. invoiced: Non-void invoices (bills) cover the full order total
3. completed: Fully invoiced and every invoice (bill) paid
4. cancelled: Cancelled while pending with nothing invoiced

Status only moves forward. build_* functions flush inside the caller's
transaction; create_* functions are complete units of work with retry.
"""
from __future__ import annotations

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import (
    Company,
    Customer,
    IntercompanyTransaction,
    PurchaseOrder,
    PurchaseOrderItem,
    SalesOrder,
    SalesOrderItem,
    Vendor,
)
from ..models.billing import DOC_STATUS_PAID, DOC_STATUS_VOID
from ..models.orders import (
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_INVOICED,
    ORDER_STATUS_PENDING,
    ORDER_STATUSES,
)
from ..time_utils import days_after, utcnow
from ..validation import (
    MAX_AMOUNT_CENTS,
    ConflictError,
    NotFoundError,
    ValidationError,
    money_from_payload,
    parse_int,
    parse_quantity,
)
from .concurrency import lock_for_update, run_with_retry
from .document_service import next_document_number
from .party_service import get_customer, get_vendor
from .product_service import get_product
from .tenant_service import scoped_query


logger = logging.getLogger(__name__)

# Forward-only ranking used when recomputing status
_STATUS_RANK = {
    ORDER_STATUS_PENDING: 0,
    ORDER_STATUS_INVOICED: 1,
    ORDER_STATUS_COMPLETED: 2,
}


class OrderNotFoundError(NotFoundError):
    """Raised when an order is not found."""
    pass


class OrderError(ConflictError):
    """Raised when an order is in the wrong state for the operation."""
    pass


def normalize_lines(raw_lines, *, company_id: int, price_attr: str) -> list[dict]:
    """
    Validate order lines from a request body.

    Each line: product_id (optional, same company), description, quantity
    (positive integer, default 1), unit_price_cents or unit_price. The unit
    price defaults to the product's `price_attr` when a product is given.
    """
    if raw_lines is None:
        return []
    if not isinstance(raw_lines, list):
        raise ValidationError("items must be a list")

    lines = []
    for idx, raw in enumerate(raw_lines):
        field = f"items[{idx}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{field} must be an object")

        product = None
        product_id = parse_int(raw.get("product_id"), f"{field}.product_id")
        if product_id is not None:
            product = get_product(product_id, company_id)

        quantity = parse_quantity(raw.get("quantity"), f"{field}.quantity")
        unit_price_cents = money_from_payload(raw, "unit_price")
        if unit_price_cents is None:
            if product is None:
                raise ValidationError(f"{field}.unit_price_cents is required")
            unit_price_cents = getattr(product, price_attr)
        amount_cents = quantity * unit_price_cents
        if amount_cents > MAX_AMOUNT_CENTS:
            raise ValidationError(f"{field} amount exceeds maximum allowed amount")

        description = (raw.get("description") or (product.name if product else "") or "").strip()
        if not description:
            raise ValidationError(f"{field}.description is required")

        lines.append({
            "product_id": product.id if product else None,
            "description": description,
            "quantity": quantity,
            "unit_price_cents": unit_price_cents,
            "amount_cents": amount_cents,
        })
    return lines


def mirror_lines(lines) -> list[dict]:
    """
    Copy lines for the counterparty's document.

    Products are company-owned, so the mirror keeps the description and
    prices but drops product_id.
    """
    return [
        {
            "product_id": None,
            "description": line["description"] if isinstance(line, dict) else line.description,
            "quantity": line["quantity"] if isinstance(line, dict) else line.quantity,
            "unit_price_cents": line["unit_price_cents"] if isinstance(line, dict) else line.unit_price_cents,
            "amount_cents": line["amount_cents"] if isinstance(line, dict) else line.amount_cents,
        }
        for line in lines
    ]


def resolve_total(lines: list[dict], total_cents: int | None) -> int:
    """Order total: sum of lines when given (must agree with an explicit total), else the explicit total."""
    if lines:
        line_total = sum(line["amount_cents"] for line in lines)
        if total_cents is not None and total_cents != line_total:
            raise ValidationError("total_cents does not match the sum of line amounts")
        total_cents = line_total
    if total_cents is None:
        raise ValidationError("items or total_cents is required")
    if total_cents <= 0:
        raise ValidationError("Order total must be greater than zero")
    if total_cents > MAX_AMOUNT_CENTS:
        raise ValidationError("Order total exceeds maximum allowed amount")
    return total_cents


def _default_expected_date(order_date: datetime) -> datetime:
    return days_after(order_date, current_app.config.get("DEFAULT_DELIVERY_DAYS", 7))


def _intercompany_link(column, value: int) -> IntercompanyTransaction | None:
    return db.session.query(IntercompanyTransaction).filter(column == value).first()


# =============================================================================
# Sales orders
# =============================================================================

def build_sales_order(
    *,
    company: Company,
    customer: Customer,
    lines: list[dict],
    total_cents: int,
    order_date: datetime | None = None,
    expected_date: datetime | None = None,
    notes: str | None = None,
    reference_number: str | None = None,
) -> SalesOrder:
    """Insert a sales order with its lines. Caller validated lines and total."""
    order_date = order_date or utcnow()
    order = SalesOrder(
        company_id=company.id,
        customer_id=customer.id,
        order_number=next_document_number(company_id=company.id, document_type="SALES_ORDER"),
        order_date=order_date,
        expected_date=expected_date or _default_expected_date(order_date),
        status=ORDER_STATUS_PENDING,
        total_cents=total_cents,
        notes=notes,
        reference_number=reference_number,
    )
    for line in lines:
        order.items.append(SalesOrderItem(**line))
    db.session.add(order)
    db.session.flush()
    return order


def create_sales_order(
    *,
    company: Company,
    customer_id: int,
    items=None,
    total_cents: int | None = None,
    order_date: datetime | None = None,
    expected_date: datetime | None = None,
    notes: str | None = None,
) -> SalesOrder:
    """
    Create a sales order.

    Args:
        company: Selling company (already tenant-validated)
        customer_id: Customer of that company
        items: Optional raw line list (see normalize_lines)
        total_cents: Explicit total when no lines are given

    Returns:
        SalesOrder (flushed, not committed)

    Raises:
        ValidationError: Bad lines or total
        NotFoundError: Customer/product not in this company
    """
    def _op():
        customer = get_customer(customer_id, company.id)
        lines = normalize_lines(items, company_id=company.id, price_attr="sales_price_cents")
        total = resolve_total(lines, total_cents)
        order = build_sales_order(
            company=company,
            customer=customer,
            lines=lines,
            total_cents=total,
            order_date=order_date,
            expected_date=expected_date,
            notes=notes,
        )
        logger.info("Created sales order %s for company %s", order.order_number, company.id)
        return order

    return run_with_retry(_op)


def get_sales_order(order_id: int, tenant_id: int, *, for_update: bool = False) -> SalesOrder:
    query = scoped_query(SalesOrder, tenant_id).filter(SalesOrder.id == order_id)
    if for_update:
        query = lock_for_update(query)
    order = query.first()
    if not order:
        raise OrderNotFoundError("Sales order not found")
    return order


def list_sales_orders(
    company_ids: list[int],
    *,
    status: str | None = None,
    customer_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[SalesOrder], int]:
    query = db.session.query(SalesOrder).filter(SalesOrder.company_id.in_(company_ids))
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        query = query.filter(SalesOrder.status == status)
    if customer_id is not None:
        query = query.filter(SalesOrder.customer_id == customer_id)
    total = query.count()
    orders = query.order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc()).offset(offset).limit(limit).all()
    return orders, total


def cancel_sales_order(order_id: int, tenant_id: int) -> SalesOrder:
    """
    Cancel a pending sales order with nothing invoiced.

    Orders that are one side of an intercompany transaction are cancelled
    through that transaction so both sides stay in step.
    """
    def _op():
        order = get_sales_order(order_id, tenant_id, for_update=True)
        if _intercompany_link(IntercompanyTransaction.source_order_id, order.id):
            raise OrderError("Order belongs to an intercompany transaction; cancel the transaction instead")
        mark_order_cancelled(order)
        return order

    return run_with_retry(_op)


# =============================================================================
# Purchase orders
# =============================================================================

def build_purchase_order(
    *,
    company: Company,
    vendor: Vendor,
    lines: list[dict],
    total_cents: int,
    order_date: datetime | None = None,
    expected_date: datetime | None = None,
    notes: str | None = None,
    reference_number: str | None = None,
) -> PurchaseOrder:
    """Insert a purchase order with its lines. Caller validated lines and total."""
    order_date = order_date or utcnow()
    order = PurchaseOrder(
        company_id=company.id,
        vendor_id=vendor.id,
        order_number=next_document_number(company_id=company.id, document_type="PURCHASE_ORDER"),
        order_date=order_date,
        expected_date=expected_date or _default_expected_date(order_date),
        status=ORDER_STATUS_PENDING,
        total_cents=total_cents,
        notes=notes,
        reference_number=reference_number,
    )
    for line in lines:
        order.items.append(PurchaseOrderItem(**line))
    db.session.add(order)
    db.session.flush()
    return order


def create_purchase_order(
    *,
    company: Company,
    vendor_id: int,
    items=None,
    total_cents: int | None = None,
    order_date: datetime | None = None,
    expected_date: datetime | None = None,
    notes: str | None = None,
) -> PurchaseOrder:
    """Create a purchase order. Mirrors create_sales_order with vendors and purchase prices."""
    def _op():
        vendor = get_vendor(vendor_id, company.id)
        lines = normalize_lines(items, company_id=company.id, price_attr="purchase_price_cents")
        total = resolve_total(lines, total_cents)
        order = build_purchase_order(
            company=company,
            vendor=vendor,
            lines=lines,
            total_cents=total,
            order_date=order_date,
            expected_date=expected_date,
            notes=notes,
        )
        logger.info("Created purchase order %s for company %s", order.order_number, company.id)
        return order

    return run_with_retry(_op)


def get_purchase_order(order_id: int, tenant_id: int, *, for_update: bool = False) -> PurchaseOrder:
    query = scoped_query(PurchaseOrder, tenant_id).filter(PurchaseOrder.id == order_id)
    if for_update:
        query = lock_for_update(query)
    order = query.first()
    if not order:
        raise OrderNotFoundError("Purchase order not found")
    return order


def list_purchase_orders(
    company_ids: list[int],
    *,
    status: str | None = None,
    vendor_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[PurchaseOrder], int]:
    query = db.session.query(PurchaseOrder).filter(PurchaseOrder.company_id.in_(company_ids))
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        query = query.filter(PurchaseOrder.status == status)
    if vendor_id is not None:
        query = query.filter(PurchaseOrder.vendor_id == vendor_id)
    total = query.count()
    orders = query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).offset(offset).limit(limit).all()
    return orders, total


def cancel_purchase_order(order_id: int, tenant_id: int) -> PurchaseOrder:
    def _op():
        order = get_purchase_order(order_id, tenant_id, for_update=True)
        if _intercompany_link(IntercompanyTransaction.target_order_id, order.id):
            raise OrderError("Order belongs to an intercompany transaction; cancel the transaction instead")
        mark_order_cancelled(order)
        return order

    return run_with_retry(_op)


# =============================================================================
# Shared status handling
# =============================================================================

def mark_order_cancelled(order) -> None:
    if order.status != ORDER_STATUS_PENDING:
        raise OrderError(f"Cannot cancel order in {order.status} status")
    documents = order.invoices if isinstance(order, SalesOrder) else order.bills
    if any(doc.status != DOC_STATUS_VOID for doc in documents):
        raise OrderError("Cannot cancel an order that has been invoiced")
    order.status = ORDER_STATUS_CANCELLED
    db.session.flush()
    logger.info("Cancelled order %s", order.order_number)


def refresh_order_status(order) -> str:
    """
    Recompute an order's status from its invoices (sales) or bills (purchase).

    Never moves a status backwards and never touches cancelled orders.
    """
    if order.status == ORDER_STATUS_CANCELLED:
        return order.status

    documents = [
        doc for doc in (order.invoices if isinstance(order, SalesOrder) else order.bills)
        if doc.status != DOC_STATUS_VOID
    ]
    covered = sum(doc.total_cents for doc in documents)

    computed = ORDER_STATUS_PENDING
    if covered >= order.total_cents:
        computed = ORDER_STATUS_INVOICED
        if documents and all(doc.status == DOC_STATUS_PAID for doc in documents):
            computed = ORDER_STATUS_COMPLETED

    if _STATUS_RANK[computed] > _STATUS_RANK.get(order.status, 0):
        logger.info("Order %s: %s -> %s", order.order_number, order.status, computed)
        order.status = computed
        db.session.flush()
    return order.status


def order_summary(model, company_ids: list[int]) -> dict:
    """Count, total and per-status counts for SalesOrder or PurchaseOrder."""
    rows = (
        db.session.query(model.status, func.count(model.id), func.coalesce(func.sum(model.total_cents), 0))
        .filter(model.company_id.in_(company_ids))
        .group_by(model.status)
        .all()
    )
    by_status = {status: 0 for status in ORDER_STATUSES}
    count = 0
    total_cents = 0
    open_cents = 0
    for status, status_count, status_total in rows:
        by_status[status] = status_count
        count += status_count
        if status != ORDER_STATUS_CANCELLED:
            total_cents += int(status_total)
        if status == ORDER_STATUS_PENDING:
            open_cents += int(status_total)
    return {
        "count": count,
        "total_cents": total_cents,
        "pending_cents": open_cents,
        "by_status": by_status,
    }
