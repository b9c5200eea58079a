# Overview: Flask API routes for intercompany (mirrored) transactions.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_tenant
from ..extensions import db
from ..services import intercompany_service
from ..services.concurrency import commit_unit
from ..services.tenant_service import require_company_in_tenant
from ..validation import ConflictError, NotFoundError, ValidationError, money_from_payload, parse_int
from .common import arg_int, body_datetime, error_response, json_body, pagination_args, paginated


intercompany_bp = Blueprint("intercompany", __name__)

_SERVICE_ERRORS = (NotFoundError, ConflictError, ValidationError)


def _order_pair_kwargs(data: dict) -> dict:
    return {
        "tenant_id": g.tenant_id,
        "source_company_id": parse_int(data.get("source_company_id"), "source_company_id", required=True),
        "target_company_id": parse_int(data.get("target_company_id"), "target_company_id", required=True),
        "items": data.get("items"),
        "total_cents": money_from_payload(data, "total"),
        "description": data.get("description"),
        "reference_number": data.get("reference_number"),
        "order_date": body_datetime(data, "order_date"),
        "expected_date": body_datetime(data, "expected_date"),
        "notes": data.get("notes"),
    }


@intercompany_bp.post("/api/intercompany/sales-order")
@require_tenant
def create_intercompany_sales_order_route():
    """
    Sell from one company of the tenant to another.

    Writes a sales order in the source company and the mirrored purchase
    order in the target company under one shared reference number.

    Request body:
    {
        "source_company_id": 1,         // required, the seller
        "target_company_id": 2,         // required, the buyer
        "items": [...],                 // optional lines, priced from the seller's products
        "total_cents": 100000,          // or "total"; required without items
        "reference_number": "...",      // optional, generated when absent
        "description": "...", "order_date": "...", "expected_date": "...", "notes": "..."
    }

    Returns:
        201: Transaction with both orders
        400: Same company, bad lines or total
        404: Company outside the tenant
        409: Reference number already used
    """
    try:
        kwargs = _order_pair_kwargs(json_body())
        transaction = commit_unit(lambda: intercompany_service.create_intercompany_sales_order(**kwargs))
        return jsonify(transaction.to_dict(include_documents=True)), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create intercompany sales order")
        return jsonify({"error": "Failed to create intercompany sales order"}), 500


@intercompany_bp.post("/api/intercompany/purchase-order")
@require_tenant
def create_intercompany_purchase_order_route():
    """
    Buy from a sister company. source_company_id is the buyer here; the
    stored transaction still reads seller -> buyer.
    """
    try:
        kwargs = _order_pair_kwargs(json_body())
        transaction = commit_unit(lambda: intercompany_service.create_intercompany_purchase_order(**kwargs))
        return jsonify(transaction.to_dict(include_documents=True)), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create intercompany purchase order")
        return jsonify({"error": "Failed to create intercompany purchase order"}), 500


@intercompany_bp.post("/api/intercompany/invoice")
@require_tenant
def create_intercompany_invoice_route():
    """
    Invoice the seller's order and bill the buyer's order for the same amount.

    Request body: transaction_id or sales_order_id, total_cents (default:
    full order), tax_cents, invoice_date, due_date, notes.
    """
    try:
        data = json_body()
        transaction = commit_unit(lambda: intercompany_service.create_intercompany_invoice(
            tenant_id=g.tenant_id,
            transaction_id=parse_int(data.get("transaction_id"), "transaction_id"),
            sales_order_id=parse_int(data.get("sales_order_id"), "sales_order_id"),
            total_cents=money_from_payload(data, "total"),
            tax_cents=money_from_payload(data, "tax"),
            invoice_date=body_datetime(data, "invoice_date"),
            due_date=body_datetime(data, "due_date"),
            notes=data.get("notes"),
        ))
        return jsonify(transaction.to_dict(include_documents=True)), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create intercompany invoice")
        return jsonify({"error": "Failed to create intercompany invoice"}), 500


@intercompany_bp.post("/api/intercompany/receipt-payment")
@require_tenant
def create_intercompany_receipt_route():
    """
    Settle an invoiced transaction with a receipt and its mirrored payment.

    Request body: transaction_id or invoice_id, amount_cents or amount
    (default: remaining balance), payment_method, date, reference, notes.
    """
    try:
        data = json_body()
        transaction, receipt, payment = commit_unit(lambda: intercompany_service.create_intercompany_receipt(
            tenant_id=g.tenant_id,
            transaction_id=parse_int(data.get("transaction_id"), "transaction_id"),
            invoice_id=parse_int(data.get("invoice_id"), "invoice_id"),
            amount_cents=money_from_payload(data, "amount"),
            payment_method=data.get("payment_method"),
            settlement_date=body_datetime(data, "date"),
            reference=data.get("reference"),
            notes=data.get("notes"),
        ))
        return jsonify({
            "transaction": transaction.to_dict(),
            "receipt": receipt.to_dict(),
            "payment": payment.to_dict(),
        }), 201
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record intercompany settlement")
        return jsonify({"error": "Failed to record intercompany settlement"}), 500


@intercompany_bp.get("/api/intercompany/transactions")
@require_tenant
def list_intercompany_transactions_route():
    """
    List the tenant's intercompany transactions, newest first.

    Query parameters: company_id (either side), status, payment_status, limit, offset
    """
    try:
        company_id = arg_int("company_id")
        if company_id is not None:
            require_company_in_tenant(company_id, g.tenant_id)
        limit, offset = pagination_args()
        rows, total = intercompany_service.list_transactions(
            g.tenant_id,
            company_id=company_id,
            status=request.args.get("status"),
            payment_status=request.args.get("payment_status"),
            limit=limit,
            offset=offset,
        )
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return paginated(rows, total, limit, offset)


@intercompany_bp.get("/api/intercompany/transactions/<int:transaction_id>")
@require_tenant
def get_intercompany_transaction_route(transaction_id: int):
    try:
        transaction = intercompany_service.get_transaction(transaction_id, g.tenant_id)
    except NotFoundError as e:
        return error_response(e)
    return jsonify(transaction.to_dict(include_documents=True))


@intercompany_bp.post("/api/intercompany/transactions/<int:transaction_id>/cancel")
@require_tenant
def cancel_intercompany_transaction_route(transaction_id: int):
    try:
        transaction = commit_unit(lambda: intercompany_service.cancel_intercompany_transaction(transaction_id, g.tenant_id))
        return jsonify(transaction.to_dict(include_documents=True))
    except _SERVICE_ERRORS as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel intercompany transaction %s", transaction_id)
        return jsonify({"error": "Failed to cancel intercompany transaction"}), 500


@intercompany_bp.get("/api/intercompany/receipt-eligible")
@require_tenant
def receipt_eligible_route():
    try:
        company_id = arg_int("company_id")
        if company_id is not None:
            require_company_in_tenant(company_id, g.tenant_id)
    except _SERVICE_ERRORS as e:
        return error_response(e)
    items = intercompany_service.list_receipt_eligible(g.tenant_id, company_id=company_id)
    return jsonify({"items": items, "count": len(items)})


@intercompany_bp.get("/api/intercompany-balances")
@require_tenant
def intercompany_balances_route():
    """Open intercompany receivables and payables of ?company_id=, per counterparty."""
    try:
        company_id = parse_int(request.args.get("company_id"), "company_id", required=True)
        company = require_company_in_tenant(company_id, g.tenant_id)
    except _SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify(intercompany_service.intercompany_balances(g.tenant_id, company))
