# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import tenant_service
from .services.tenant_service import TenantAccessError

TENANT_HEADER = "X-Tenant-ID"


def require_tenant(f):
    """
    Establish tenant context from the X-Tenant-ID header.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.tenant_id: The tenant ID - REQUIRED for every /api route below it
    - g.tenant: The active Tenant object

    Returns 400 if the header is missing or not an integer, 404 if the
    tenant does not exist or is inactive.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(TENANT_HEADER) or "").strip()
        if not raw:
            return jsonify({"error": f"{TENANT_HEADER} header is required"}), 400
        if not raw.isdigit():
            return jsonify({"error": f"{TENANT_HEADER} must be an integer"}), 400

        try:
            tenant = tenant_service.get_active_tenant(int(raw))
        except TenantAccessError as e:
            return jsonify({"error": str(e)}), 404

        g.tenant_id = tenant.id
        g.tenant = tenant

        return f(*args, **kwargs)

    return decorated_function
