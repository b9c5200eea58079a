# Overview: Flask API routes for the chart of accounts; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_tenant
from ..extensions import db
from ..services import account_service
from ..services.concurrency import commit_unit
from ..services.tenant_service import require_company_in_tenant
from ..validation import ConflictError, NotFoundError, ValidationError, parse_int
from .common import body_company, error_response, json_body


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.get("")
@require_tenant
def list_accounts_route():
    """
    List a company's accounts ordered by code.

    Query parameters:
    - company_id: required
    - include_inactive: default false
    """
    try:
        company_id = parse_int(request.args.get("company_id"), "company_id", required=True)
        require_company_in_tenant(company_id, g.tenant_id)
    except (NotFoundError, ValidationError) as e:
        return error_response(e)

    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    accounts = account_service.list_accounts(company_id, active_only=not include_inactive)
    return jsonify({"items": [a.to_dict() for a in accounts], "count": len(accounts)})


@accounts_bp.post("")
@require_tenant
def create_account_route():
    """
    Create an account.

    Request body:
    {
        "company_id": 1,            // required
        "code": "1200",             // required, unique within company
        "name": "Inventory",        // required
        "account_type": "asset",    // required
        "parent_id": 3,             // optional, same company
        "description": "..."
    }
    """
    try:
        data = json_body()
        company = body_company(data)
        account = commit_unit(lambda: account_service.create_account(
            company=company,
            code=data.get("code"),
            name=data.get("name"),
            account_type=data.get("account_type"),
            description=data.get("description"),
            parent_id=parse_int(data.get("parent_id"), "parent_id"),
        ))
        return jsonify(account.to_dict()), 201
    except (NotFoundError, ConflictError, ValidationError) as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create account")
        return jsonify({"error": "Failed to create account"}), 500
