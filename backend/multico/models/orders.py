from __future__ import annotations

from ..extensions import db
from multico.time_utils import to_utc_z


# Order status constants (shared by sales and purchase orders)
ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_INVOICED = "invoiced"
ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_CANCELLED = "cancelled"

ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_INVOICED,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_CANCELLED,
)


class SalesOrder(db.Model):
    """
    Customer order raised by the selling company.

    LIFECYCLE:
    1. pending: Created, nothing invoiced yet
    2. invoiced: Fully invoiced (sum of non-void invoices == total)
    3. completed: Every invoice against the order is paid
    4. cancelled: Cancelled while still pending

    reference_number is shared with the mirrored purchase order when the
    order is one side of an intercompany transaction.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.UniqueConstraint("company_id", "order_number", name="uq_sales_orders_company_number"),
        db.Index("ix_sales_orders_company_status_created", "company_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # Human-readable document number (e.g., "SO-001-0001")
    order_number = db.Column(db.String(64), nullable=False)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expected_date = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING, index=True)
    total_cents = db.Column(db.BigInteger, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    reference_number = db.Column(db.String(64), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    company = db.relationship("Company", backref=db.backref("sales_orders", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("sales_orders", lazy=True))
    items = db.relationship(
        "SalesOrderItem",
        backref="sales_order",
        lazy=True,
        order_by="SalesOrderItem.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def invoiced_cents(self) -> int:
        return sum(inv.total_cents for inv in self.invoices if inv.status != "void")

    @property
    def uninvoiced_cents(self) -> int:
        return max(0, self.total_cents - self.invoiced_cents)

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "order_number": self.order_number,
            "order_date": to_utc_z(self.order_date),
            "expected_date": to_utc_z(self.expected_date),
            "status": self.status,
            "total_cents": self.total_cents,
            "invoiced_cents": self.invoiced_cents,
            "notes": self.notes,
            "reference_number": self.reference_number,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SalesOrderItem(db.Model):
    __tablename__ = "sales_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    description = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.BigInteger, nullable=False, default=0)
    amount_cents = db.Column(db.BigInteger, nullable=False, default=0)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sales_order_id": self.sales_order_id,
            "product_id": self.product_id,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "amount_cents": self.amount_cents,
        }


class PurchaseOrder(db.Model):
    """
    Order placed by the buying company with a vendor.

    Same lifecycle as SalesOrder, driven by bills and payments.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("company_id", "order_number", name="uq_purchase_orders_company_number"),
        db.Index("ix_purchase_orders_company_status_created", "company_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)

    order_number = db.Column(db.String(64), nullable=False)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expected_date = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING, index=True)
    total_cents = db.Column(db.BigInteger, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    reference_number = db.Column(db.String(64), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    company = db.relationship("Company", backref=db.backref("purchase_orders", lazy=True))
    vendor = db.relationship("Vendor", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        backref="purchase_order",
        lazy=True,
        order_by="PurchaseOrderItem.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def billed_cents(self) -> int:
        return sum(bill.total_cents for bill in self.bills if bill.status != "void")

    @property
    def unbilled_cents(self) -> int:
        return max(0, self.total_cents - self.billed_cents)

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "order_number": self.order_number,
            "order_date": to_utc_z(self.order_date),
            "expected_date": to_utc_z(self.expected_date),
            "status": self.status,
            "total_cents": self.total_cents,
            "billed_cents": self.billed_cents,
            "notes": self.notes,
            "reference_number": self.reference_number,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    description = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.BigInteger, nullable=False, default=0)
    amount_cents = db.Column(db.BigInteger, nullable=False, default=0)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "amount_cents": self.amount_cents,
        }
