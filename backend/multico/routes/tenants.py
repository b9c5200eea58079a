# Overview: Flask API routes for tenant operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..extensions import db
from ..services import tenant_service
from ..services.concurrency import commit_unit
from ..validation import ConflictError, NotFoundError, ValidationError
from .common import error_response, json_body


tenants_bp = Blueprint("tenants", __name__, url_prefix="/api/tenants")


@tenants_bp.get("")
def list_tenants_route():
    """
    List tenants.

    Query parameters:
    - include_inactive: Include inactive tenants (default: false)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    tenants = tenant_service.list_tenants(active_only=not include_inactive)
    return jsonify({"items": [t.to_dict() for t in tenants], "count": len(tenants)})


@tenants_bp.post("")
def create_tenant_route():
    """
    Create a tenant.

    Request body:
    {
        "name": "Acme Group",       // required
        "subdomain": "acme",        // required, unique
        "plan_type": "standard"     // optional
    }
    """
    try:
        data = json_body()
        tenant = commit_unit(lambda: tenant_service.create_tenant(
            name=data.get("name"),
            subdomain=data.get("subdomain"),
            plan_type=data.get("plan_type") or "standard",
        ))
        return jsonify(tenant.to_dict()), 201
    except (NotFoundError, ConflictError, ValidationError) as e:
        db.session.rollback()
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create tenant")
        return jsonify({"error": "Failed to create tenant"}), 500


@tenants_bp.get("/<int:tenant_id>")
def get_tenant_route(tenant_id: int):
    try:
        tenant = tenant_service.get_active_tenant(tenant_id)
    except NotFoundError as e:
        return error_response(e)
    data = tenant.to_dict()
    data["company_count"] = len(tenant.companies)
    return jsonify(data)
