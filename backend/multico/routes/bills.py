# Overview: Flask API routes for bills; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_tenant
from ..extensions import db
from ..services import billing_service
from ..services.concurrency import commit_unit
from ..validation import ConflictError, NotFoundError, ValidationError, money_from_payload, parse_int
from .common import arg_int, body_company, body_datetime, company_scope, error_response, json_body, pagination_args, paginated


bills_bp = Blueprint("bills", __name__, url_prefix="/api/bills")

_SERVICE_ERRORS = (NotFoundError, ConflictError, ValidationError)


@bills_bp.get("")
@require_tenant
def list_bills_route():
    """
    List bills, newest first.

    Query parameters: company_id, status, vendor_id, purchase_order_id, limit, offset
    """
    try:
        company_ids = company_scope()
        limit, offset = pagination_args()
        bills, total = billing_service.list_bills(
            company_ids,
            status=request.args.get("status"),
            vendor_id=arg_int("vendor_id"),
            purchase_order_id=arg_int("purchase_order_id"),
            limit=limit,
            offset=offset,
        )
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return paginated(bills, total, limit, offset)


@bills_bp.get("/summary")
@require_tenant
def bill_summary_route():
    try:
        company_ids = company_scope()
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(billing_service.bill_summary(company_ids))


@bills_bp.post("")
@require_tenant
def create_bill_route():
    """
    Create a bill.

    Request body: company_id, purchase_order_id or vendor_id, total_cents
    (default: the order's unbilled remainder), tax_cents, bill_date,
    due_date, notes.
    """
    try:
        data = json_body()
        company = body_company(data)
        bill = commit_unit(lambda: billing_service.create_bill(
            company=company,
            tenant_id=g.tenant_id,
            vendor_id=parse_int(data.get("vendor_id"), "vendor_id"),
            purchase_order_id=parse_int(data.get("purchase_order_id"), "purchase_order_id"),
            total_cents=money_from_payload(data, "total"),
            tax_cents=money_from_payload(data, "tax"),
            bill_date=body_datetime(data, "bill_date"),
            due_date=body_datetime(data, "due_date"),
            notes=data.get("notes"),
        ))
        return jsonify(bill.to_dict()), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create bill")
        return jsonify({"error": "Failed to create bill"}), 500


@bills_bp.get("/<int:bill_id>")
@require_tenant
def get_bill_route(bill_id: int):
    try:
        bill = billing_service.get_bill(bill_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    data = bill.to_dict()
    data["payments"] = [p.to_dict() for p in bill.payments]
    return jsonify(data)


@bills_bp.post("/<int:bill_id>/void")
@require_tenant
def void_bill_route(bill_id: int):
    try:
        bill = commit_unit(lambda: billing_service.void_bill(bill_id, g.tenant_id))
        return jsonify(bill.to_dict())
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to void bill %s", bill_id)
        return jsonify({"error": "Failed to void bill"}), 500
