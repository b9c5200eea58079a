# Overview: Flask API routes for purchase orders; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_tenant
from ..extensions import db
from ..models import PurchaseOrder
from ..services import order_service
from ..services.concurrency import commit_unit
from ..validation import ConflictError, NotFoundError, ValidationError, money_from_payload, parse_int
from .common import arg_int, body_company, body_datetime, company_scope, error_response, json_body, pagination_args, paginated


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")

_SERVICE_ERRORS = (NotFoundError, ConflictError, ValidationError)


@purchase_orders_bp.get("")
@require_tenant
def list_purchase_orders_route():
    """
    List purchase orders, newest first.

    Query parameters: company_id, status, vendor_id, limit, offset
    """
    try:
        company_ids = company_scope()
        limit, offset = pagination_args()
        orders, total = order_service.list_purchase_orders(
            company_ids,
            status=request.args.get("status"),
            vendor_id=arg_int("vendor_id"),
            limit=limit,
            offset=offset,
        )
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return paginated(orders, total, limit, offset)


@purchase_orders_bp.get("/summary")
@require_tenant
def purchase_order_summary_route():
    try:
        company_ids = company_scope()
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(order_service.order_summary(PurchaseOrder, company_ids))


@purchase_orders_bp.post("")
@require_tenant
def create_purchase_order_route():
    """
    Create a purchase order.

    Request body: as sales orders, with vendor_id instead of customer_id.
    Lines default to the product's purchase price.
    """
    try:
        data = json_body()
        company = body_company(data)
        order = commit_unit(lambda: order_service.create_purchase_order(
            company=company,
            vendor_id=parse_int(data.get("vendor_id"), "vendor_id", required=True),
            items=data.get("items"),
            total_cents=money_from_payload(data, "total"),
            order_date=body_datetime(data, "order_date"),
            expected_date=body_datetime(data, "expected_date"),
            notes=data.get("notes"),
        ))
        return jsonify(order.to_dict(include_items=True)), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Failed to create purchase order"}), 500


@purchase_orders_bp.get("/<int:order_id>")
@require_tenant
def get_purchase_order_route(order_id: int):
    try:
        order = order_service.get_purchase_order(order_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    data = order.to_dict(include_items=True)
    data["bills"] = [bill.to_dict() for bill in order.bills]
    return jsonify(data)


@purchase_orders_bp.post("/<int:order_id>/cancel")
@require_tenant
def cancel_purchase_order_route(order_id: int):
    try:
        order = commit_unit(lambda: order_service.cancel_purchase_order(order_id, g.tenant_id))
        return jsonify(order.to_dict())
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel purchase order %s", order_id)
        return jsonify({"error": "Failed to cancel purchase order"}), 500
