from __future__ import annotations

from ..extensions import db
from multico.time_utils import to_utc_z


# Invoice / bill status constants
DOC_STATUS_OPEN = "open"
DOC_STATUS_PARTIAL = "partial"
DOC_STATUS_PAID = "paid"
DOC_STATUS_VOID = "void"

PAYMENT_METHODS = ("bank_transfer", "check", "cash", "card", "wire", "other")


class Invoice(db.Model):
    """
    Accounts receivable document issued by a company to a customer.

    LIFECYCLE:
    1. open: Issued, nothing received
    2. partial: Some receipts applied
    3. paid: amount_paid_cents == total_cents
    4. void: Voided before any receipt was applied

    balance_due_cents is derived, never stored.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("company_id", "invoice_number", name="uq_invoices_company_number"),
        db.Index("ix_invoices_company_status_due", "company_id", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=True, index=True)

    invoice_number = db.Column(db.String(64), nullable=False)
    invoice_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=DOC_STATUS_OPEN, index=True)
    subtotal_cents = db.Column(db.BigInteger, nullable=False, default=0)
    tax_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_cents = db.Column(db.BigInteger, nullable=False, default=0)
    amount_paid_cents = db.Column(db.BigInteger, nullable=False, default=0)
    is_partial_invoice = db.Column(db.Boolean, nullable=False, default=False)

    notes = db.Column(db.Text, nullable=True)
    reference_number = db.Column(db.String(64), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    company = db.relationship("Company", backref=db.backref("invoices", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("invoices", lazy=True))
    sales_order = db.relationship("SalesOrder", backref=db.backref("invoices", lazy=True, order_by="Invoice.id"))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def balance_due_cents(self) -> int:
        if self.status == DOC_STATUS_VOID:
            return 0
        return max(0, (self.total_cents or 0) - (self.amount_paid_cents or 0))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "sales_order_id": self.sales_order_id,
            "invoice_number": self.invoice_number,
            "invoice_date": to_utc_z(self.invoice_date),
            "due_date": to_utc_z(self.due_date),
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "balance_due_cents": self.balance_due_cents,
            "is_partial_invoice": self.is_partial_invoice,
            "notes": self.notes,
            "reference_number": self.reference_number,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Bill(db.Model):
    """Accounts payable document received by a company from a vendor."""
    __tablename__ = "bills"
    __table_args__ = (
        db.UniqueConstraint("company_id", "bill_number", name="uq_bills_company_number"),
        db.Index("ix_bills_company_status_due", "company_id", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True, index=True)

    bill_number = db.Column(db.String(64), nullable=False)
    bill_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=DOC_STATUS_OPEN, index=True)
    subtotal_cents = db.Column(db.BigInteger, nullable=False, default=0)
    tax_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_cents = db.Column(db.BigInteger, nullable=False, default=0)
    amount_paid_cents = db.Column(db.BigInteger, nullable=False, default=0)
    is_partial_bill = db.Column(db.Boolean, nullable=False, default=False)

    notes = db.Column(db.Text, nullable=True)
    reference_number = db.Column(db.String(64), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    company = db.relationship("Company", backref=db.backref("bills", lazy=True))
    vendor = db.relationship("Vendor", backref=db.backref("bills", lazy=True))
    purchase_order = db.relationship("PurchaseOrder", backref=db.backref("bills", lazy=True, order_by="Bill.id"))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def balance_due_cents(self) -> int:
        if self.status == DOC_STATUS_VOID:
            return 0
        return max(0, (self.total_cents or 0) - (self.amount_paid_cents or 0))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "purchase_order_id": self.purchase_order_id,
            "bill_number": self.bill_number,
            "bill_date": to_utc_z(self.bill_date),
            "due_date": to_utc_z(self.due_date),
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "balance_due_cents": self.balance_due_cents,
            "is_partial_bill": self.is_partial_bill,
            "notes": self.notes,
            "reference_number": self.reference_number,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Receipt(db.Model):
    """
    Money received against an invoice.

    Immutable once written; corrections are new documents.
    """
    __tablename__ = "receipts"
    __table_args__ = (
        db.UniqueConstraint("company_id", "receipt_number", name="uq_receipts_company_number"),
        db.Index("ix_receipts_company_date", "company_id", "receipt_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=True)
    intercompany_transaction_id = db.Column(
        db.Integer, db.ForeignKey("intercompany_transactions.id"), nullable=True, index=True
    )

    receipt_number = db.Column(db.String(64), nullable=False)
    receipt_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    amount_cents = db.Column(db.BigInteger, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="bank_transfer")
    reference = db.Column(db.String(128), nullable=True)  # cheque number, wire id, ...
    is_partial_payment = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)
    reference_number = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    company = db.relationship("Company", backref=db.backref("receipts", lazy=True))
    customer = db.relationship("Customer")
    invoice = db.relationship("Invoice", backref=db.backref("receipts", lazy=True, order_by="Receipt.id"))
    sales_order = db.relationship("SalesOrder")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice.invoice_number if self.invoice else None,
            "sales_order_id": self.sales_order_id,
            "intercompany_transaction_id": self.intercompany_transaction_id,
            "receipt_number": self.receipt_number,
            "receipt_date": to_utc_z(self.receipt_date),
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "reference": self.reference,
            "is_partial_payment": self.is_partial_payment,
            "notes": self.notes,
            "reference_number": self.reference_number,
            "created_at": to_utc_z(self.created_at),
        }


class Payment(db.Model):
    """
    Money paid against a bill.

    mirror_receipt_id links the payment to the seller's receipt when both
    were written as one intercompany settlement.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.UniqueConstraint("company_id", "payment_number", name="uq_payments_company_number"),
        db.Index("ix_payments_company_date", "company_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True)
    intercompany_transaction_id = db.Column(
        db.Integer, db.ForeignKey("intercompany_transactions.id"), nullable=True, index=True
    )
    mirror_receipt_id = db.Column(db.Integer, db.ForeignKey("receipts.id"), nullable=True, unique=True)

    payment_number = db.Column(db.String(64), nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    amount_cents = db.Column(db.BigInteger, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="bank_transfer")
    reference = db.Column(db.String(128), nullable=True)
    is_partial_payment = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)
    reference_number = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    company = db.relationship("Company", backref=db.backref("payments", lazy=True))
    vendor = db.relationship("Vendor")
    bill = db.relationship("Bill", backref=db.backref("payments", lazy=True, order_by="Payment.id"))
    purchase_order = db.relationship("PurchaseOrder")
    mirror_receipt = db.relationship("Receipt", backref=db.backref("mirror_payment", uselist=False))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "bill_id": self.bill_id,
            "bill_number": self.bill.bill_number if self.bill else None,
            "purchase_order_id": self.purchase_order_id,
            "intercompany_transaction_id": self.intercompany_transaction_id,
            "mirror_receipt_id": self.mirror_receipt_id,
            "payment_number": self.payment_number,
            "payment_date": to_utc_z(self.payment_date),
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "reference": self.reference,
            "is_partial_payment": self.is_partial_payment,
            "notes": self.notes,
            "reference_number": self.reference_number,
            "created_at": to_utc_z(self.created_at),
        }
