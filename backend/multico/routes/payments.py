# Overview: Flask API routes for vendor payments; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify

from ..decorators import require_tenant
from ..extensions import db
from ..services import settlement_service
from ..services.concurrency import commit_unit
from ..validation import ConflictError, NotFoundError, ValidationError, money_from_payload, parse_int
from .common import arg_int, body_datetime, company_scope, error_response, json_body, pagination_args, paginated


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")

_SERVICE_ERRORS = (NotFoundError, ConflictError, ValidationError)


@payments_bp.get("")
@require_tenant
def list_payments_route():
    try:
        company_ids = company_scope()
        limit, offset = pagination_args()
        payments, total = settlement_service.list_payments(
            company_ids,
            bill_id=arg_int("bill_id"),
            vendor_id=arg_int("vendor_id"),
            limit=limit,
            offset=offset,
        )
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return paginated(payments, total, limit, offset)


@payments_bp.get("/summary")
@require_tenant
def payment_summary_route():
    try:
        company_ids = company_scope()
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(settlement_service.payment_summary(company_ids))


@payments_bp.post("")
@require_tenant
def create_payment_route():
    """
    Record a payment against a bill.

    Request body: bill_id (required), amount_cents or amount (default:
    balance due), payment_method, payment_date, reference, notes.
    """
    try:
        data = json_body()
        payment = commit_unit(lambda: settlement_service.create_payment(
            tenant_id=g.tenant_id,
            bill_id=parse_int(data.get("bill_id"), "bill_id", required=True),
            amount_cents=money_from_payload(data, "amount"),
            payment_method=data.get("payment_method"),
            payment_date=body_datetime(data, "payment_date"),
            reference=data.get("reference"),
            notes=data.get("notes"),
        ))
        return jsonify(payment.to_dict()), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Failed to record payment"}), 500


@payments_bp.get("/<int:payment_id>")
@require_tenant
def get_payment_route(payment_id: int):
    try:
        payment = settlement_service.get_payment(payment_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    return jsonify(payment.to_dict())
