# Overview: Flask API routes for customer receipts; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_tenant
from ..extensions import db
from ..services import settlement_service
from ..services.concurrency import commit_unit
from ..validation import ConflictError, NotFoundError, ValidationError, money_from_payload, parse_int
from .common import arg_int, body_datetime, company_scope, error_response, json_body, pagination_args, paginated


receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")

_SERVICE_ERRORS = (NotFoundError, ConflictError, ValidationError)


@receipts_bp.get("")
@require_tenant
def list_receipts_route():
    """
    List receipts, newest first.

    Query parameters: company_id, invoice_id, customer_id, limit, offset
    """
    try:
        company_ids = company_scope()
        limit, offset = pagination_args()
        receipts, total = settlement_service.list_receipts(
            company_ids,
            invoice_id=arg_int("invoice_id"),
            customer_id=arg_int("customer_id"),
            limit=limit,
            offset=offset,
        )
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return paginated(receipts, total, limit, offset)


@receipts_bp.get("/summary")
@require_tenant
def receipt_summary_route():
    try:
        company_ids = company_scope()
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(settlement_service.receipt_summary(company_ids))


@receipts_bp.post("")
@require_tenant
def create_receipt_route():
    """
    Record a receipt against an invoice.

    Request body:
    {
        "invoice_id": 3,                    // required
        "amount_cents": 2500,               // or "amount": "25.00"; default: balance due
        "payment_method": "bank_transfer",  // default bank_transfer
        "receipt_date": "...", "reference": "...", "notes": "..."
    }

    Returns:
        201: Receipt
        400: Amount not positive or above the balance due
        404: Invoice not found
        409: Invoice void or intercompany
    """
    try:
        data = json_body()
        receipt = commit_unit(lambda: settlement_service.create_receipt(
            tenant_id=g.tenant_id,
            invoice_id=parse_int(data.get("invoice_id"), "invoice_id", required=True),
            amount_cents=money_from_payload(data, "amount"),
            payment_method=data.get("payment_method"),
            receipt_date=body_datetime(data, "receipt_date"),
            reference=data.get("reference"),
            notes=data.get("notes"),
        ))
        return jsonify(receipt.to_dict()), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record receipt")
        return jsonify({"error": "Failed to record receipt"}), 500


@receipts_bp.get("/<int:receipt_id>")
@require_tenant
def get_receipt_route(receipt_id: int):
    try:
        receipt = settlement_service.get_receipt(receipt_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    return jsonify(receipt.to_dict())
