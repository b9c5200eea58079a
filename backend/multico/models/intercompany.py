from __future__ import annotations

from ..extensions import db
from multico.time_utils import to_utc_z


# Transaction status
IC_STATUS_PENDING = "pending"
IC_STATUS_INVOICED = "invoiced"
IC_STATUS_COMPLETED = "completed"
IC_STATUS_CANCELLED = "cancelled"

# Settlement status
IC_PAYMENT_PENDING = "pending"
IC_PAYMENT_PARTIAL = "partial"
IC_PAYMENT_PAID = "paid"

INITIATED_BY_SALES = "sales"
INITIATED_BY_PURCHASE = "purchase"


class IntercompanyTransaction(db.Model):
    """
    One real-world trade between two companies of the same tenant.

    Source is always the selling company and target the buying company,
    whichever side initiated it. Every mirrored document (order pair,
    invoice/bill pair, receipt/payment pairs) carries reference_number.

    LIFECYCLE:
    1. pending: Order pair written
    2. invoiced: Invoice/bill pair written
    3. completed: Invoice settled in full
    4. cancelled: Cancelled while pending
    """
    __tablename__ = "intercompany_transactions"
    __table_args__ = (
        db.Index("ix_ic_tx_tenant_status", "tenant_id", "status"),
        db.Index("ix_ic_tx_source_target", "source_company_id", "target_company_id"),
        db.CheckConstraint("source_company_id <> target_company_id", name="ck_ic_tx_distinct_companies"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    source_company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    target_company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    reference_number = db.Column(db.String(64), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    amount_cents = db.Column(db.BigInteger, nullable=False)
    paid_cents = db.Column(db.BigInteger, nullable=False, default=0)
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    source_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=True)
    target_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True)
    source_invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True)
    target_bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=True)

    initiated_by = db.Column(db.String(16), nullable=False, default=INITIATED_BY_SALES)
    status = db.Column(db.String(16), nullable=False, default=IC_STATUS_PENDING, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default=IC_PAYMENT_PENDING)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    source_company = db.relationship("Company", foreign_keys=[source_company_id])
    target_company = db.relationship("Company", foreign_keys=[target_company_id])
    source_order = db.relationship("SalesOrder", foreign_keys=[source_order_id])
    target_order = db.relationship("PurchaseOrder", foreign_keys=[target_order_id])
    source_invoice = db.relationship("Invoice", foreign_keys=[source_invoice_id])
    target_bill = db.relationship("Bill", foreign_keys=[target_bill_id])
    receipts = db.relationship("Receipt", lazy=True, order_by="Receipt.id")
    payments = db.relationship("Payment", lazy=True, order_by="Payment.id")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_cents(self) -> int:
        """Amount still to settle against the invoice (or the order before invoicing)."""
        basis = self.source_invoice.total_cents if self.source_invoice else self.amount_cents
        return max(0, basis - (self.paid_cents or 0))

    def to_dict(self, include_documents: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "source_company_id": self.source_company_id,
            "source_company_name": self.source_company.name if self.source_company else None,
            "target_company_id": self.target_company_id,
            "target_company_name": self.target_company.name if self.target_company else None,
            "reference_number": self.reference_number,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "paid_cents": self.paid_cents,
            "remaining_cents": self.remaining_cents,
            "transaction_date": to_utc_z(self.transaction_date),
            "source_order_id": self.source_order_id,
            "target_order_id": self.target_order_id,
            "source_invoice_id": self.source_invoice_id,
            "target_bill_id": self.target_bill_id,
            "initiated_by": self.initiated_by,
            "status": self.status,
            "payment_status": self.payment_status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_documents:
            data["source_order"] = self.source_order.to_dict(include_items=True) if self.source_order else None
            data["target_order"] = self.target_order.to_dict(include_items=True) if self.target_order else None
            data["source_invoice"] = self.source_invoice.to_dict() if self.source_invoice else None
            data["target_bill"] = self.target_bill.to_dict() if self.target_bill else None
            data["receipts"] = [r.to_dict() for r in self.receipts]
            data["payments"] = [p.to_dict() for p in self.payments]
        return data
