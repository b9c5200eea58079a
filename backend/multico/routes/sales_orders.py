# Overview: Flask API routes for sales orders; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_tenant
from ..extensions import db
from ..models import SalesOrder
from ..services import order_service
from ..services.concurrency import commit_unit
from ..validation import ConflictError, NotFoundError, ValidationError, money_from_payload, parse_int
from .common import arg_int, body_company, body_datetime, company_scope, error_response, json_body, pagination_args, paginated


sales_orders_bp = Blueprint("sales_orders", __name__, url_prefix="/api/sales-orders")

_SERVICE_ERRORS = (NotFoundError, ConflictError, ValidationError)


@sales_orders_bp.get("")
@require_tenant
def list_sales_orders_route():
    """
    List sales orders, newest first.

    Query parameters:
    - company_id: Limit to one company (default: every company of the tenant)
    - status: pending | invoiced | completed | cancelled
    - customer_id
    - limit (1..500, default 100), offset
    """
    try:
        company_ids = company_scope()
        limit, offset = pagination_args()
        orders, total = order_service.list_sales_orders(
            company_ids,
            status=request.args.get("status"),
            customer_id=arg_int("customer_id"),
            limit=limit,
            offset=offset,
        )
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return paginated(orders, total, limit, offset)


@sales_orders_bp.get("/summary")
@require_tenant
def sales_order_summary_route():
    try:
        company_ids = company_scope()
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(order_service.order_summary(SalesOrder, company_ids))


@sales_orders_bp.post("")
@require_tenant
def create_sales_order_route():
    """
    Create a sales order.

    Request body:
    {
        "company_id": 1,                // required
        "customer_id": 4,               // required, customer of that company
        "items": [                      // optional when total_cents given
            {"product_id": 2, "quantity": 3},
            {"description": "Setup", "quantity": 1, "unit_price_cents": 5000}
        ],
        "total_cents": 15000,           // or "total": "150.00"
        "order_date": "2026-03-01", "expected_date": "2026-03-08", "notes": "..."
    }

    Returns:
        201: Order with items
        400: Invalid request
        404: Company/customer/product not found
    """
    try:
        data = json_body()
        company = body_company(data)
        order = commit_unit(lambda: order_service.create_sales_order(
            company=company,
            customer_id=parse_int(data.get("customer_id"), "customer_id", required=True),
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
        current_app.logger.exception("Failed to create sales order")
        return jsonify({"error": "Failed to create sales order"}), 500


@sales_orders_bp.get("/<int:order_id>")
@require_tenant
def get_sales_order_route(order_id: int):
    try:
        order = order_service.get_sales_order(order_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    data = order.to_dict(include_items=True)
    data["invoices"] = [inv.to_dict() for inv in order.invoices]
    return jsonify(data)


@sales_orders_bp.post("/<int:order_id>/cancel")
@require_tenant
def cancel_sales_order_route(order_id: int):
    """
    Cancel a pending sales order.

    Returns:
        200: Cancelled order
        404: Order not found
        409: Order not pending, already invoiced, or intercompany
    """
    try:
        order = commit_unit(lambda: order_service.cancel_sales_order(order_id, g.tenant_id))
        return jsonify(order.to_dict())
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel sales order %s", order_id)
        return jsonify({"error": "Failed to cancel sales order"}), 500
