# Overview: Flask API routes for invoices; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_tenant
from ..extensions import db
from ..services import billing_service
from ..services.concurrency import commit_unit
from ..validation import ConflictError, NotFoundError, ValidationError, money_from_payload, parse_int
from .common import arg_int, body_company, body_datetime, company_scope, error_response, json_body, pagination_args, paginated


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")

_SERVICE_ERRORS = (NotFoundError, ConflictError, ValidationError)


@invoices_bp.get("")
@require_tenant
def list_invoices_route():
    """
    List invoices, newest first.

    Query parameters: company_id, status (open | partial | paid | void),
    customer_id, sales_order_id, limit, offset
    """
    try:
        company_ids = company_scope()
        limit, offset = pagination_args()
        invoices, total = billing_service.list_invoices(
            company_ids,
            status=request.args.get("status"),
            customer_id=arg_int("customer_id"),
            sales_order_id=arg_int("sales_order_id"),
            limit=limit,
            offset=offset,
        )
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return paginated(invoices, total, limit, offset)


@invoices_bp.get("/summary")
@require_tenant
def invoice_summary_route():
    try:
        company_ids = company_scope()
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(billing_service.invoice_summary(company_ids))


@invoices_bp.post("")
@require_tenant
def create_invoice_route():
    """
    Create an invoice.

    Request body:
    {
        "company_id": 1,            // required
        "sales_order_id": 7,        // or customer_id for a standalone invoice
        "customer_id": 4,
        "total_cents": 5000,        // default: the order's uninvoiced remainder
        "tax_cents": 0,
        "invoice_date": "...", "due_date": "...", "notes": "..."
    }

    Returns:
        201: Invoice
        400: Invalid request or total above the uninvoiced remainder
        404: Company, customer or order not found
        409: Order not pending, or intercompany
    """
    try:
        data = json_body()
        company = body_company(data)
        invoice = commit_unit(lambda: billing_service.create_invoice(
            company=company,
            tenant_id=g.tenant_id,
            customer_id=parse_int(data.get("customer_id"), "customer_id"),
            sales_order_id=parse_int(data.get("sales_order_id"), "sales_order_id"),
            total_cents=money_from_payload(data, "total"),
            tax_cents=money_from_payload(data, "tax"),
            invoice_date=body_datetime(data, "invoice_date"),
            due_date=body_datetime(data, "due_date"),
            notes=data.get("notes"),
        ))
        return jsonify(invoice.to_dict()), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Failed to create invoice"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_tenant
def get_invoice_route(invoice_id: int):
    try:
        invoice = billing_service.get_invoice(invoice_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    data = invoice.to_dict()
    data["receipts"] = [r.to_dict() for r in invoice.receipts]
    return jsonify(data)


@invoices_bp.post("/<int:invoice_id>/void")
@require_tenant
def void_invoice_route(invoice_id: int):
    try:
        invoice = commit_unit(lambda: billing_service.void_invoice(invoice_id, g.tenant_id))
        return jsonify(invoice.to_dict())
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to void invoice %s", invoice_id)
        return jsonify({"error": "Failed to void invoice"}), 500
