# backend/multico/routes/system.py
"""
System health and version endpoints.

Provides a database health check and version information for deployment
debugging. Neither endpoint needs tenant context.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import AccountType, Company, Tenant
from multico.time_utils import utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        tenant_count = db.session.query(Tenant).count()
        company_count = db.session.query(Company).count()
        account_type_count = db.session.query(AccountType).count()

        elapsed_ms = (time.time() - start_time) * 1000

        if account_type_count == 0:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "Account types not seeded (run: flask system seed-account-types)",
                "details": {"tenants": tenant_count, "companies": company_count},
            }

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "tenants": tenant_count,
                "companies": company_count,
                "account_types": account_type_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: Database healthy (or degraded but operational)
    - 503: Database unreachable
    """
    start_time = time.time()
    database_health = check_database_health()

    http_status = 503 if database_health["status"] == "unhealthy" else 200
    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, database credentials or internal paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
