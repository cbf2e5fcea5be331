"""
Labour Blueprint — workers, CSV import and attendance.

Endpoints:
    WORKER      /api/v1/workers                      GET, POST
                /api/v1/workers/import-template      GET   (CSV download)
                /api/v1/workers/import/preview       POST  (file upload or {"csv": "..."})
                /api/v1/workers/import               POST
    ATTENDANCE  /api/v1/attendance                   GET, POST (upsert per worker + date)
"""

import logging

from flask import Blueprint, Response, g, jsonify, request

from siteledger.blueprints import get_scoped_or_404, json_body, paginate_query, target_organization_id
from siteledger.core.exceptions import ValidationError
from siteledger.middleware.permission_required import login_required, require_permission
from siteledger.models import db
from siteledger.models.labour import ATTENDANCE_STATUSES, Attendance, Worker
from siteledger.models.project import Project
from siteledger.services import worker_import_service
from siteledger.services.permission_service import Permission
from siteledger.utils.errors import register_domain_error_handlers
from siteledger.utils.helpers import clean_text, db_commit_or_error, parse_date_input, to_number

logger = logging.getLogger(__name__)

labour_bp = Blueprint("labour", __name__, url_prefix="/api/v1")
register_domain_error_handlers(labour_bp)


def _uploaded_csv_text():
    """CSV text from a multipart ``file`` field or a JSON ``csv`` string."""
    upload = request.files.get("file")
    if upload is not None:
        return upload.read().decode("utf-8-sig", errors="replace")
    data = json_body()
    text = data.get("csv")
    if not text or not isinstance(text, str):
        raise ValidationError("No file uploaded", details={"file": "required"})
    return text


# ═══════════════════════════════════════════════════════════════════════════
#  WORKERS
# ═══════════════════════════════════════════════════════════════════════════

@labour_bp.route("/workers", methods=["GET"])
@login_required
def list_workers():
    q = Worker.query_for_orgs(g.access.accessible_organization_ids)
    if request.args.get("active") == "true":
        q = q.filter(Worker.is_active.is_(True))
    workers, total = paginate_query(q.order_by(Worker.name, Worker.id))
    return jsonify({"items": [w.to_dict() for w in workers], "total": total})


@labour_bp.route("/workers", methods=["POST"])
@require_permission(Permission.WORKERS_MANAGE)
def create_worker():
    data = json_body()
    name = clean_text(data.get("name"), "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    worker = Worker(
        organization_id=target_organization_id(data),
        name=name,
        trade=clean_text(data.get("trade"), "trade") or None,
        daily_rate=to_number(data.get("daily_rate")),
        contractor=clean_text(data.get("contractor"), "contractor") or None,
        phone=clean_text(data.get("phone"), "phone") or None,
    )
    db.session.add(worker)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(worker.to_dict()), 201


@labour_bp.route("/workers/import-template", methods=["GET"])
@login_required
def import_template():
    filename = worker_import_service.CSV_TEMPLATE_FILENAME
    return Response(
        worker_import_service.generate_csv_template(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@labour_bp.route("/workers/import/preview", methods=["POST"])
@require_permission(Permission.WORKERS_MANAGE)
def import_preview():
    return jsonify(worker_import_service.preview(_uploaded_csv_text()))


@labour_bp.route("/workers/import", methods=["POST"])
@require_permission(Permission.WORKERS_MANAGE)
def import_workers():
    org_id = target_organization_id(request.form or json_body())
    parsed = worker_import_service.parse_worker_csv(_uploaded_csv_text())
    workers = worker_import_service.bulk_insert_workers(org_id, parsed)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "imported": len(workers),
        "skipped": sum(1 for p in parsed if not p.valid),
        "items": [w.to_dict() for w in workers],
    }), 201


# ═══════════════════════════════════════════════════════════════════════════
#  ATTENDANCE
# ═══════════════════════════════════════════════════════════════════════════

@labour_bp.route("/attendance", methods=["GET"])
@login_required
def list_attendance():
    q = Attendance.query_for_orgs(g.access.accessible_organization_ids)
    project_id = request.args.get("project_id", type=int)
    if project_id:
        q = q.filter_by(project_id=project_id)
    day = request.args.get("date")
    if day:
        try:
            q = q.filter_by(date=parse_date_input(day))
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
    rows, total = paginate_query(q.order_by(Attendance.date.desc(), Attendance.id))
    return jsonify({"items": [a.to_dict() for a in rows], "total": total})


@labour_bp.route("/attendance", methods=["POST"])
@require_permission(Permission.ATTENDANCE_MARK)
def mark_attendance():
    """Mark a worker for a day; re-marking the same day updates the record."""
    data = json_body()
    project = get_scoped_or_404(Project, data.get("project_id"))
    worker = get_scoped_or_404(Worker, data.get("worker_id"))
    if worker.organization_id != project.organization_id:
        raise ValidationError(
            "Worker and project belong to different organizations",
            details={"worker_id": "invalid"},
        )
    try:
        day = parse_date_input(data.get("date"))
    except ValueError as exc:
        raise ValidationError(str(exc), details={"date": "invalid"}) from None
    if day is None:
        raise ValidationError("date is required", details={"date": "required"})
    status = data.get("status", "present")
    if not isinstance(status, str) or status not in ATTENDANCE_STATUSES:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(sorted(ATTENDANCE_STATUSES))}",
            details={"status": "invalid"},
        )

    record = Attendance.query.filter_by(worker_id=worker.id, date=day).first()
    created = record is None
    if created:
        record = Attendance(worker_id=worker.id, date=day)
        db.session.add(record)
    record.organization_id = project.organization_id
    record.project_id = project.id
    record.status = status
    record.overtime_hours = to_number(data.get("overtime_hours")) if status == "overtime" else 0
    record.deduction = to_number(data.get("deduction"))
    record.recorded_by = g.access.user_id

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(record.to_dict()), 201 if created else 200
