"""
Report Blueprint — compliance, daily progress and payroll.

  GET /api/v1/reports/compliance?organization_id=
  GET /api/v1/reports/daily-progress?date=YYYY-MM-DD&project_id=&organization_id=
  GET /api/v1/reports/payroll?year=&month=&project_id=&organization_id=

Each report covers a single organization: the caller's home organization
unless ``organization_id`` names another accessible one.
"""

from datetime import date

from flask import Blueprint, jsonify, request

from siteledger.blueprints import get_scoped_or_404, target_organization_id
from siteledger.core.exceptions import NotFoundError
from siteledger.middleware.permission_required import require_permission
from siteledger.models.project import Project
from siteledger.services.compliance_service import compliance_for_organizations
from siteledger.services.daily_progress_service import daily_progress_for_organizations
from siteledger.services.payroll_service import monthly_payroll
from siteledger.services.permission_service import Permission
from siteledger.utils.errors import E, api_error, register_domain_error_handlers
from siteledger.utils.helpers import parse_date

report_bp = Blueprint("reports", __name__, url_prefix="/api/v1/reports")
register_domain_error_handlers(report_bp)


def _project_filter(org_id):
    project_id = request.args.get("project_id", type=int)
    if project_id:
        project = get_scoped_or_404(Project, project_id)
        if project.organization_id != org_id:
            raise NotFoundError(resource="Project", resource_id=project_id)
    return project_id


@report_bp.route("/compliance", methods=["GET"])
@require_permission(Permission.REPORTS_VIEW)
def compliance():
    org_id = target_organization_id(request.args)
    report = compliance_for_organizations([org_id])
    return jsonify({"organization_id": org_id, **report.to_dict()})


@report_bp.route("/daily-progress", methods=["GET"])
@require_permission(Permission.REPORTS_VIEW)
def daily_progress():
    org_id = target_organization_id(request.args)
    raw = request.args.get("date")
    report_date = parse_date(raw) if raw else date.today()
    if report_date is None:
        return api_error(E.VALIDATION_INVALID, "Invalid date format. Use YYYY-MM-DD.")
    digest = daily_progress_for_organizations(
        [org_id], report_date, project_id=_project_filter(org_id),
    )
    return jsonify({"organization_id": org_id, **digest.to_dict()})


@report_bp.route("/payroll", methods=["GET"])
@require_permission(Permission.REPORTS_VIEW)
def payroll():
    org_id = target_organization_id(request.args)
    today = date.today()
    year = request.args.get("year", today.year, type=int)
    month = request.args.get("month", today.month, type=int)
    if not 1 <= year <= 9999:
        return api_error(E.VALIDATION_INVALID, "year must be between 1 and 9999")
    if not 1 <= month <= 12:
        return api_error(E.VALIDATION_INVALID, "month must be between 1 and 12")
    result = monthly_payroll([org_id], year, month, project_id=_project_filter(org_id))
    return jsonify({"organization_id": org_id, **result})
