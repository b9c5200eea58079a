# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func, or_

from ..extensions import db
from ..models import (
    Bill,
    Company,
    IntercompanyTransaction,
    Invoice,
    Payment,
    PurchaseOrder,
    Receipt,
    SalesOrder,
)
from ..models.billing import DOC_STATUS_OPEN, DOC_STATUS_PARTIAL, DOC_STATUS_VOID
from ..models.intercompany import IC_PAYMENT_PAID, IC_STATUS_INVOICED
from ..models.orders import ORDER_STATUS_PENDING
from ..time_utils import as_naive_utc, start_of_month, to_utc_z, utcnow
from .intercompany_service import get_transaction_by_reference


OPEN_DOC_STATUSES = (DOC_STATUS_OPEN, DOC_STATUS_PARTIAL)


def _sum(column, *filters) -> int:
    value = db.session.query(func.coalesce(func.sum(column), 0)).filter(*filters).scalar()
    return int(value or 0)


def _count(column, *filters) -> int:
    return int(db.session.query(func.count(column)).filter(*filters).scalar() or 0)


# =============================================================================
# AR / AP
# =============================================================================

def ar_ap_summary(company_ids: list[int]) -> dict:
    """
    Receivables vs payables for a set of companies.

    Outstanding is the balance due on non-void documents, never negative.
    """
    invoice_total = _sum(Invoice.total_cents, Invoice.company_id.in_(company_ids), Invoice.status != DOC_STATUS_VOID)
    invoice_paid = _sum(Invoice.amount_paid_cents, Invoice.company_id.in_(company_ids), Invoice.status != DOC_STATUS_VOID)
    bill_total = _sum(Bill.total_cents, Bill.company_id.in_(company_ids), Bill.status != DOC_STATUS_VOID)
    bill_paid = _sum(Bill.amount_paid_cents, Bill.company_id.in_(company_ids), Bill.status != DOC_STATUS_VOID)

    receivable = {
        "invoice_count": _count(Invoice.id, Invoice.company_id.in_(company_ids), Invoice.status != DOC_STATUS_VOID),
        "invoice_total_cents": invoice_total,
        "receipts_total_cents": _sum(Receipt.amount_cents, Receipt.company_id.in_(company_ids)),
        "outstanding_cents": max(0, invoice_total - invoice_paid),
    }
    payable = {
        "bill_count": _count(Bill.id, Bill.company_id.in_(company_ids), Bill.status != DOC_STATUS_VOID),
        "bill_total_cents": bill_total,
        "payments_total_cents": _sum(Payment.amount_cents, Payment.company_id.in_(company_ids)),
        "outstanding_cents": max(0, bill_total - bill_paid),
    }
    return {
        "company_ids": company_ids,
        "accounts_receivable": receivable,
        "accounts_payable": payable,
        "net_position_cents": receivable["outstanding_cents"] - payable["outstanding_cents"],
    }


def _aging(model, number_attr: str, party_attr: str, company_ids: list[int], now: datetime | None) -> dict:
    now = now or utcnow()
    documents = (
        db.session.query(model)
        .filter(model.company_id.in_(company_ids), model.status.in_(OPEN_DOC_STATUSES))
        .order_by(model.due_date, model.id)
        .all()
    )

    current_cents = 0
    overdue_cents = 0
    details = []
    for doc in documents:
        due = as_naive_utc(doc.due_date)
        balance = doc.balance_due_cents
        overdue = due is not None and due < now
        days_overdue = (now - due).days if overdue else 0
        if overdue:
            overdue_cents += balance
        else:
            current_cents += balance
        party = getattr(doc, party_attr)
        details.append({
            "id": doc.id,
            "company_id": doc.company_id,
            "number": getattr(doc, number_attr),
            "party_name": party.name if party else None,
            "due_date": to_utc_z(doc.due_date),
            "total_cents": doc.total_cents,
            "balance_due_cents": balance,
            "status": doc.status,
            "is_overdue": overdue,
            "days_overdue": days_overdue,
            "reference_number": doc.reference_number,
        })

    return {
        "as_of": to_utc_z(now),
        "document_count": len(details),
        "current_cents": current_cents,
        "overdue_cents": overdue_cents,
        "outstanding_cents": current_cents + overdue_cents,
        "documents": details,
    }


def ar_aging(company_ids: list[int], now: datetime | None = None) -> dict:
    return _aging(Invoice, "invoice_number", "customer", company_ids, now)


def ap_aging(company_ids: list[int], now: datetime | None = None) -> dict:
    return _aging(Bill, "bill_number", "vendor", company_ids, now)


# =============================================================================
# Dashboard
# =============================================================================

def dashboard_stats(tenant_id: int, company_ids: list[int]) -> dict:
    return {
        "total_companies": _count(Company.id, Company.tenant_id == tenant_id, Company.is_active.is_(True)),
        "total_sales_orders": _count(SalesOrder.id, SalesOrder.company_id.in_(company_ids)),
        "total_purchase_orders": _count(PurchaseOrder.id, PurchaseOrder.company_id.in_(company_ids)),
        "total_invoices": _count(Invoice.id, Invoice.company_id.in_(company_ids)),
        "total_bills": _count(Bill.id, Bill.company_id.in_(company_ids)),
        "total_intercompany_transactions": _count(
            IntercompanyTransaction.id, IntercompanyTransaction.tenant_id == tenant_id
        ),
    }


def recent_transactions(company_ids: list[int], limit: int = 10) -> list[dict]:
    """Latest orders, invoices, bills and settlements across companies, newest first."""
    sources = (
        ("sales_order", SalesOrder, "order_number", "total_cents", "order_date"),
        ("purchase_order", PurchaseOrder, "order_number", "total_cents", "order_date"),
        ("invoice", Invoice, "invoice_number", "total_cents", "invoice_date"),
        ("bill", Bill, "bill_number", "total_cents", "bill_date"),
        ("receipt", Receipt, "receipt_number", "amount_cents", "receipt_date"),
        ("payment", Payment, "payment_number", "amount_cents", "payment_date"),
    )

    rows = []
    for doc_type, model, number_attr, amount_attr, date_attr in sources:
        docs = (
            db.session.query(model)
            .filter(model.company_id.in_(company_ids))
            .order_by(model.created_at.desc(), model.id.desc())
            .limit(limit)
            .all()
        )
        for doc in docs:
            rows.append({
                "type": doc_type,
                "id": doc.id,
                "company_id": doc.company_id,
                "number": getattr(doc, number_attr),
                "amount_cents": getattr(doc, amount_attr),
                "status": getattr(doc, "status", None),
                "reference_number": doc.reference_number,
                "date": to_utc_z(getattr(doc, date_attr)),
                "_sort": (as_naive_utc(doc.created_at) or datetime.min, doc.id),
            })

    rows.sort(key=lambda r: r["_sort"], reverse=True)
    for row in rows:
        del row["_sort"]
    return rows[:limit]


def pending_actions(tenant_id: int, company_ids: list[int], now: datetime | None = None) -> dict:
    now = now or utcnow()
    return {
        "open_invoices": _count(Invoice.id, Invoice.company_id.in_(company_ids), Invoice.status.in_(OPEN_DOC_STATUSES)),
        "overdue_invoices": _count(
            Invoice.id,
            Invoice.company_id.in_(company_ids),
            Invoice.status.in_(OPEN_DOC_STATUSES),
            Invoice.due_date < now,
        ),
        "open_bills": _count(Bill.id, Bill.company_id.in_(company_ids), Bill.status.in_(OPEN_DOC_STATUSES)),
        "overdue_bills": _count(
            Bill.id,
            Bill.company_id.in_(company_ids),
            Bill.status.in_(OPEN_DOC_STATUSES),
            Bill.due_date < now,
        ),
        "pending_sales_orders": _count(
            SalesOrder.id, SalesOrder.company_id.in_(company_ids), SalesOrder.status == ORDER_STATUS_PENDING
        ),
        "pending_purchase_orders": _count(
            PurchaseOrder.id, PurchaseOrder.company_id.in_(company_ids), PurchaseOrder.status == ORDER_STATUS_PENDING
        ),
        "intercompany_awaiting_settlement": _count(
            IntercompanyTransaction.id,
            IntercompanyTransaction.tenant_id == tenant_id,
            or_(
                IntercompanyTransaction.source_company_id.in_(company_ids),
                IntercompanyTransaction.target_company_id.in_(company_ids),
            ),
            IntercompanyTransaction.status == IC_STATUS_INVOICED,
            IntercompanyTransaction.payment_status != IC_PAYMENT_PAID,
        ),
    }


def cash_flow(company_ids: list[int], days: int = 30, now: datetime | None = None) -> dict:
    """Receipts in vs payments out over the trailing window."""
    now = now or utcnow()
    since = now - timedelta(days=days)
    inflows = _sum(Receipt.amount_cents, Receipt.company_id.in_(company_ids), Receipt.receipt_date >= since)
    outflows = _sum(Payment.amount_cents, Payment.company_id.in_(company_ids), Payment.payment_date >= since)
    return {
        "days": days,
        "since": to_utc_z(since),
        "inflows_cents": inflows,
        "outflows_cents": outflows,
        "net_cents": inflows - outflows,
    }


def pl_monthly(company_ids: list[int], now: datetime | None = None) -> dict:
    """Invoiced revenue vs billed expenses since the start of the current month."""
    month_start = start_of_month(now)
    revenue = _sum(
        Invoice.subtotal_cents,
        Invoice.company_id.in_(company_ids),
        Invoice.status != DOC_STATUS_VOID,
        Invoice.invoice_date >= month_start,
    )
    expenses = _sum(
        Bill.subtotal_cents,
        Bill.company_id.in_(company_ids),
        Bill.status != DOC_STATUS_VOID,
        Bill.bill_date >= month_start,
    )
    return {
        "period_start": to_utc_z(month_start),
        "revenue_cents": revenue,
        "expenses_cents": expenses,
        "profit_cents": revenue - expenses,
    }


# =============================================================================
# Reference lookup
# =============================================================================

def reference_lookup(tenant_id: int, company_ids: list[int], reference: str) -> dict:
    """
    Find every document of the tenant carrying a document number or shared
    reference number.
    """
    reference = (reference or "").strip()

    def _find(model, number_attr: str) -> list[dict]:
        number_col = getattr(model, number_attr)
        docs = (
            db.session.query(model)
            .filter(
                model.company_id.in_(company_ids),
                or_(number_col == reference, model.reference_number == reference),
            )
            .order_by(model.id)
            .all()
        )
        return [doc.to_dict() for doc in docs]

    transaction = get_transaction_by_reference(reference, tenant_id)
    results = {
        "reference": reference,
        "intercompany_transaction": transaction.to_dict() if transaction else None,
        "sales_orders": _find(SalesOrder, "order_number"),
        "purchase_orders": _find(PurchaseOrder, "order_number"),
        "invoices": _find(Invoice, "invoice_number"),
        "bills": _find(Bill, "bill_number"),
        "receipts": _find(Receipt, "receipt_number"),
        "payments": _find(Payment, "payment_number"),
    }
    results["found"] = bool(transaction) or any(
        results[key] for key in ("sales_orders", "purchase_orders", "invoices", "bills", "receipts", "payments")
    )
    return results
