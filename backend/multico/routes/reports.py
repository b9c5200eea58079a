# Overview: Flask API routes for AR/AP tracking, dashboard figures and reference lookup.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant
from ..services import reporting_service
from ..validation import NotFoundError, ValidationError, parse_int
from .common import company_scope, error_response


reports_bp = Blueprint("reports", __name__)

_QUERY_ERRORS = (NotFoundError, ValidationError)


@reports_bp.get("/api/ar-ap-summary")
@require_tenant
def ar_ap_summary_route():
    try:
        company_ids = company_scope()
    except _QUERY_ERRORS as e:
        return error_response(e)
    return jsonify(reporting_service.ar_ap_summary(company_ids))


@reports_bp.get("/api/reports/ar-tracking")
@require_tenant
def ar_tracking_route():
    """Open invoices split into current and overdue."""
    try:
        company_ids = company_scope()
    except _QUERY_ERRORS as e:
        return error_response(e)
    return jsonify(reporting_service.ar_aging(company_ids))


@reports_bp.get("/api/reports/ap-tracking")
@require_tenant
def ap_tracking_route():
    """Open bills split into current and overdue."""
    try:
        company_ids = company_scope()
    except _QUERY_ERRORS as e:
        return error_response(e)
    return jsonify(reporting_service.ap_aging(company_ids))


@reports_bp.get("/api/dashboard/stats")
@require_tenant
def dashboard_stats_route():
    try:
        company_ids = company_scope()
    except _QUERY_ERRORS as e:
        return error_response(e)
    return jsonify(reporting_service.dashboard_stats(g.tenant_id, company_ids))


@reports_bp.get("/api/dashboard/recent-transactions")
@require_tenant
def recent_transactions_route():
    try:
        company_ids = company_scope()
        limit = parse_int(request.args.get("limit"), "limit") or 10
        if limit < 1 or limit > 100:
            raise ValidationError("limit must be between 1 and 100")
    except _QUERY_ERRORS as e:
        return error_response(e)
    items = reporting_service.recent_transactions(company_ids, limit=limit)
    return jsonify({"items": items, "count": len(items)})


@reports_bp.get("/api/dashboard/pending-actions")
@require_tenant
def pending_actions_route():
    try:
        company_ids = company_scope()
    except _QUERY_ERRORS as e:
        return error_response(e)
    return jsonify(reporting_service.pending_actions(g.tenant_id, company_ids))


@reports_bp.get("/api/dashboard/cash-flow")
@require_tenant
def cash_flow_route():
    """Receipts in vs payments out over ?days= (default 30, max 366)."""
    try:
        company_ids = company_scope()
        days = parse_int(request.args.get("days"), "days")
        if days is None:
            days = 30
        if days < 1 or days > 366:
            raise ValidationError("days must be between 1 and 366")
    except _QUERY_ERRORS as e:
        return error_response(e)
    return jsonify(reporting_service.cash_flow(company_ids, days=days))


@reports_bp.get("/api/dashboard/pl-monthly")
@require_tenant
def pl_monthly_route():
    try:
        company_ids = company_scope()
    except _QUERY_ERRORS as e:
        return error_response(e)
    return jsonify(reporting_service.pl_monthly(company_ids))


@reports_bp.get("/api/reference/<path:reference>")
@require_tenant
def reference_lookup_route(reference: str):
    """
    Every document carrying a document number or shared reference number.

    Returns 404 with the empty result when nothing matches.
    """
    try:
        company_ids = company_scope()
    except _QUERY_ERRORS as e:
        return error_response(e)
    result = reporting_service.reference_lookup(g.tenant_id, company_ids, reference)
    return jsonify(result), (200 if result["found"] else 404)
