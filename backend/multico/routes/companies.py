# Overview: Flask API routes for companies and their customers, vendors and products; parses input and returns JSON responses.

"""
Company Routes

MULTI-TENANT: All routes require X-Tenant-ID. Company ids from the URL are
validated against the tenant; foreign companies answer 404.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_tenant
from ..extensions import db
from ..services import company_service, party_service, product_service
from ..services.concurrency import commit_unit
from ..services.tenant_service import require_company_in_tenant
from ..validation import ConflictError, NotFoundError, ValidationError, money_from_payload, parse_int
from .common import error_response, json_body


companies_bp = Blueprint("companies", __name__, url_prefix="/api/companies")

_SERVICE_ERRORS = (NotFoundError, ConflictError, ValidationError)


@companies_bp.get("")
@require_tenant
def list_companies_route():
    """
    List companies of the current tenant, ordered by name.

    Query parameters:
    - include_inactive: Include deactivated companies (default: false)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    companies = company_service.list_companies(g.tenant_id, include_inactive=include_inactive)
    return jsonify({"items": [c.to_dict() for c in companies], "count": len(companies)})


@companies_bp.post("")
@require_tenant
def create_company_route():
    """
    Create a company (and its default chart of accounts).

    Request body:
    {
        "name": "Acme Manufacturing",   // required
        "code": "ACME-MFG",             // required, unique within tenant
        "company_type": "manufacturer", // optional
        "base_currency": "USD",         // optional
        "tax_id": "...", "address": "...", "phone": "...", "email": "...", "industry": "..."
    }
    """
    try:
        data = json_body()
        company = commit_unit(lambda: company_service.create_company(
            tenant_id=g.tenant_id,
            name=data.get("name"),
            code=data.get("code"),
            company_type=data.get("company_type"),
            tax_id=data.get("tax_id"),
            address=data.get("address"),
            phone=data.get("phone"),
            email=data.get("email"),
            base_currency=data.get("base_currency"),
            industry=data.get("industry"),
        ))
        return jsonify(company.to_dict()), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create company")
        return jsonify({"error": "Failed to create company"}), 500


@companies_bp.get("/<int:company_id>")
@require_tenant
def get_company_route(company_id: int):
    try:
        company = company_service.get_company(company_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    return jsonify(company.to_dict())


@companies_bp.put("/<int:company_id>")
@require_tenant
def update_company_route(company_id: int):
    """Partial update. code is immutable."""
    try:
        data = json_body()
        company = commit_unit(lambda: company_service.update_company(company_id, g.tenant_id, data))
        return jsonify(company.to_dict())
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update company %s", company_id)
        return jsonify({"error": "Failed to update company"}), 500


@companies_bp.delete("/<int:company_id>")
@require_tenant
def deactivate_company_route(company_id: int):
    """Soft-delete: companies with history are deactivated, never removed."""
    try:
        company = commit_unit(lambda: company_service.deactivate_company(company_id, g.tenant_id))
        return jsonify(company.to_dict())
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to deactivate company %s", company_id)
        return jsonify({"error": "Failed to deactivate company"}), 500


# =============================================================================
# Customers / vendors
# =============================================================================

@companies_bp.get("/<int:company_id>/customers")
@require_tenant
def list_customers_route(company_id: int):
    try:
        require_company_in_tenant(company_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    customers = party_service.list_customers(company_id)
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)})


@companies_bp.post("/<int:company_id>/customers")
@require_tenant
def create_customer_route(company_id: int):
    """
    Create a customer.

    Request body: name (required), email, phone, address, tax_id,
    linked_company_id (another company of the tenant).
    """
    try:
        company = require_company_in_tenant(company_id, g.tenant_id)
        data = json_body()
        customer = commit_unit(lambda: party_service.create_customer(
            company=company,
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            address=data.get("address"),
            tax_id=data.get("tax_id"),
            linked_company_id=parse_int(data.get("linked_company_id"), "linked_company_id"),
        ))
        return jsonify(customer.to_dict()), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create customer for company %s", company_id)
        return jsonify({"error": "Failed to create customer"}), 500


@companies_bp.get("/<int:company_id>/vendors")
@require_tenant
def list_vendors_route(company_id: int):
    try:
        require_company_in_tenant(company_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    vendors = party_service.list_vendors(company_id)
    return jsonify({"items": [v.to_dict() for v in vendors], "count": len(vendors)})


@companies_bp.post("/<int:company_id>/vendors")
@require_tenant
def create_vendor_route(company_id: int):
    """Create a vendor. Same body as customers."""
    try:
        company = require_company_in_tenant(company_id, g.tenant_id)
        data = json_body()
        vendor = commit_unit(lambda: party_service.create_vendor(
            company=company,
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            address=data.get("address"),
            tax_id=data.get("tax_id"),
            linked_company_id=parse_int(data.get("linked_company_id"), "linked_company_id"),
        ))
        return jsonify(vendor.to_dict()), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create vendor for company %s", company_id)
        return jsonify({"error": "Failed to create vendor"}), 500


# =============================================================================
# Products
# =============================================================================

@companies_bp.get("/<int:company_id>/products")
@require_tenant
def list_products_route(company_id: int):
    try:
        require_company_in_tenant(company_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    products = product_service.list_products(company_id)
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@companies_bp.post("/<int:company_id>/products")
@require_tenant
def create_product_route(company_id: int):
    """
    Create a product.

    Request body: code, name (required), description,
    sales_price_cents / sales_price, purchase_price_cents / purchase_price.
    """
    try:
        company = require_company_in_tenant(company_id, g.tenant_id)
        data = json_body()
        product = commit_unit(lambda: product_service.create_product(
            company=company,
            code=data.get("code"),
            name=data.get("name"),
            description=data.get("description"),
            sales_price_cents=money_from_payload(data, "sales_price") or 0,
            purchase_price_cents=money_from_payload(data, "purchase_price") or 0,
        ))
        return jsonify(product.to_dict()), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create product for company %s", company_id)
        return jsonify({"error": "Failed to create product"}), 500
