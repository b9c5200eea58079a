# Overview: Shared request parsing helpers for the API blueprints.

from __future__ import annotations

from flask import g, jsonify, request

from ..services.tenant_service import get_tenant_company_ids, require_company_in_tenant
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    clamp_pagination,
    parse_datetime,
    parse_int,
)


def error_response(exc: Exception):
    """Map a service exception to its JSON error response."""
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    return jsonify({"error": str(exc)}), 400


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def pagination_args() -> tuple[int, int]:
    limit = parse_int(request.args.get("limit"), "limit")
    offset = parse_int(request.args.get("offset"), "offset")
    return clamp_pagination(limit, offset)


def arg_int(name: str) -> int | None:
    return parse_int(request.args.get(name), name)


def company_scope() -> list[int]:
    """
    Company ids a query covers.

    ?company_id= narrows to one tenant-validated company; otherwise every
    company of the request's tenant.
    """
    company_id = arg_int("company_id")
    if company_id is not None:
        require_company_in_tenant(company_id, g.tenant_id)
        return [company_id]
    return sorted(get_tenant_company_ids(g.tenant_id))


def body_company(data: dict):
    """Resolve the tenant-validated company named by company_id in a request body."""
    company_id = parse_int(data.get("company_id"), "company_id", required=True)
    return require_company_in_tenant(company_id, g.tenant_id)


def body_datetime(data: dict, field: str):
    return parse_datetime(data.get(field), field)


def paginated(items, total: int, limit: int, offset: int, **extra):
    payload = {
        "items": [item.to_dict() for item in items],
        "count": total,
        "limit": limit,
        "offset": offset,
    }
    payload.update(extra)
    return jsonify(payload)
