# Overview: Service-layer operations for products; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Company, Product
from ..validation import ConflictError, NotFoundError, ValidationError


class ProductNotFoundError(NotFoundError):
    """Raised when a product is not found."""
    pass


def list_products(company_id: int, *, active_only: bool = True) -> list[Product]:
    query = db.session.query(Product).filter_by(company_id=company_id)
    if active_only:
        query = query.filter_by(is_active=True)
    return query.order_by(Product.code).all()


def get_product(product_id: int, company_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, company_id=company_id).first()
    if not product:
        raise ProductNotFoundError("Product not found")
    return product


def create_product(
    *,
    company: Company,
    code: str,
    name: str,
    description: str | None = None,
    sales_price_cents: int = 0,
    purchase_price_cents: int = 0,
) -> Product:
    """
    Create a product. Codes are stored upper-case and unique per company.

    Raises:
        ValidationError: Missing code or name
        ConflictError: Duplicate code
    """
    code = (code or "").strip().upper()
    name = (name or "").strip()
    if not code:
        raise ValidationError("code is required")
    if not name:
        raise ValidationError("name is required")

    if db.session.query(Product.id).filter_by(company_id=company.id, code=code).first():
        raise ConflictError(f"Product code '{code}' already exists for this company")

    product = Product(
        company_id=company.id,
        code=code,
        name=name,
        description=description,
        sales_price_cents=sales_price_cents or 0,
        purchase_price_cents=purchase_price_cents or 0,
        is_active=True,
    )
    db.session.add(product)
    db.session.flush()
    return product
