"""
Project Blueprint — Project, Task and Issue CRUD.

Endpoints:
    PROJECT  /api/v1/projects            GET, POST
             /api/v1/projects/<id>       GET, PUT, DELETE
    TASK     /api/v1/tasks               GET, POST   (?project_id=&status=)
             /api/v1/tasks/<id>          GET, PUT, DELETE
    ISSUE    /api/v1/issues              GET, POST   (?project_id=&status=&severity=)
             /api/v1/issues/<id>         GET, PUT, DELETE

Every list is filtered to the caller's accessible organizations; a record
outside them is reported as 404.
"""

import logging

from flask import Blueprint, g, jsonify, request

from siteledger.blueprints import (
    get_scoped_or_404,
    json_body,
    optional_int,
    paginate_query,
    target_organization_id,
)
from siteledger.core.exceptions import ValidationError
from siteledger.middleware.permission_required import login_required, require_permission
from siteledger.models import db
from siteledger.models.project import (
    ISSUE_SEVERITIES,
    ISSUE_STATUSES,
    PROJECT_STATUSES,
    TASK_PRIORITIES,
    TASK_STATUSES,
    Issue,
    Project,
    Task,
)
from siteledger.services.permission_service import Permission
from siteledger.utils.errors import register_domain_error_handlers
from siteledger.utils.helpers import clean_text, db_commit_or_error, parse_date_input, to_number

logger = logging.getLogger(__name__)

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1")
register_domain_error_handlers(project_bp)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _choice(data, key, allowed, default=None):
    value = data.get(key, default)
    if value is not None and (not isinstance(value, str) or value not in allowed):
        raise ValidationError(
            f"Invalid {key}. Must be one of: {', '.join(sorted(allowed))}",
            details={key: "invalid"},
        )
    return value


def _date(data, key):
    try:
        return parse_date_input(data.get(key))
    except ValueError as exc:
        raise ValidationError(str(exc), details={key: "invalid"}) from None


def _percent(data, key):
    value = int(to_number(data.get(key)))
    if not 0 <= value <= 100:
        raise ValidationError(f"{key} must be between 0 and 100", details={key: "invalid"})
    return value


def _required_text(data, key):
    value = clean_text(data.get(key), key)
    if not value:
        raise ValidationError(f"{key} is required", details={key: "required"})
    return value


def _scoped(model):
    return model.query_for_orgs(g.access.accessible_organization_ids)


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT CRUD
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/projects", methods=["GET"])
@login_required
def list_projects():
    q = _scoped(Project)
    status = request.args.get("status")
    if status:
        q = q.filter_by(status=status)
    projects, total = paginate_query(q.order_by(Project.created_at.desc(), Project.id.desc()))
    return jsonify({"items": [p.to_dict() for p in projects], "total": total})


@project_bp.route("/projects", methods=["POST"])
@require_permission(Permission.PROJECTS_CREATE)
def create_project():
    data = json_body()
    project = Project(
        organization_id=target_organization_id(data),
        name=_required_text(data, "name"),
        description=clean_text(data.get("description"), "description"),
        status=_choice(data, "status", PROJECT_STATUSES, "planning"),
        budget=to_number(data.get("budget")),
        spent=to_number(data.get("spent")),
        progress=_percent(data, "progress"),
        start_date=_date(data, "start_date"),
        end_date=_date(data, "end_date"),
        client_name=clean_text(data.get("client_name"), "client_name") or None,
        location=clean_text(data.get("location"), "location") or None,
        created_by=g.access.user_id,
    )
    db.session.add(project)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Project %s created in org %s", project.id, project.organization_id)
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
@login_required
def get_project(project_id):
    return jsonify(get_scoped_or_404(Project, project_id).to_dict())


@project_bp.route("/projects/<int:project_id>", methods=["PUT"])
@require_permission(Permission.PROJECTS_EDIT)
def update_project(project_id):
    project = get_scoped_or_404(Project, project_id)
    data = json_body()

    if "name" in data:
        project.name = _required_text(data, "name")
    if "description" in data:
        project.description = clean_text(data["description"], "description")
    for key in ("client_name", "location"):
        if key in data:
            setattr(project, key, clean_text(data[key], key) or None)
    if "status" in data:
        project.status = _choice(data, "status", PROJECT_STATUSES)
    for key in ("budget", "spent"):
        if key in data:
            setattr(project, key, to_number(data[key]))
    if "progress" in data:
        project.progress = _percent(data, "progress")
    for key in ("start_date", "end_date"):
        if key in data:
            setattr(project, key, _date(data, key))

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict())


@project_bp.route("/projects/<int:project_id>", methods=["DELETE"])
@require_permission(Permission.PROJECTS_DELETE)
def delete_project(project_id):
    project = get_scoped_or_404(Project, project_id)
    db.session.delete(project)
    err = db_commit_or_error()
    if err:
        return err
    logger.warning("Project %s deleted by user %s", project_id, g.access.user_id)
    return jsonify({"message": "Project deleted", "id": project_id}), 200


# ═══════════════════════════════════════════════════════════════════════════
#  TASK CRUD
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/tasks", methods=["GET"])
@login_required
def list_tasks():
    q = _scoped(Task)
    project_id = request.args.get("project_id", type=int)
    if project_id:
        q = q.filter_by(project_id=project_id)
    status = request.args.get("status")
    if status:
        q = q.filter_by(status=status)
    tasks, total = paginate_query(q.order_by(Task.due_date.is_(None), Task.due_date, Task.id))
    return jsonify({"items": [t.to_dict() for t in tasks], "total": total})


@project_bp.route("/tasks", methods=["POST"])
@require_permission(Permission.TASKS_CREATE)
def create_task():
    data = json_body()
    project = get_scoped_or_404(Project, data.get("project_id"))
    task = Task(
        organization_id=project.organization_id,
        project_id=project.id,
        title=_required_text(data, "title"),
        description=clean_text(data.get("description"), "description"),
        status=_choice(data, "status", TASK_STATUSES, "not_started"),
        priority=_choice(data, "priority", TASK_PRIORITIES, "medium"),
        progress=_percent(data, "progress"),
        start_date=_date(data, "start_date"),
        due_date=_date(data, "due_date"),
        assigned_to=optional_int(data, "assigned_to"),
    )
    db.session.add(task)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(task.to_dict()), 201


@project_bp.route("/tasks/<int:task_id>", methods=["GET"])
@login_required
def get_task(task_id):
    return jsonify(get_scoped_or_404(Task, task_id).to_dict())


@project_bp.route("/tasks/<int:task_id>", methods=["PUT"])
@require_permission(Permission.TASKS_EDIT)
def update_task(task_id):
    task = get_scoped_or_404(Task, task_id)
    data = json_body()

    if "title" in data:
        task.title = _required_text(data, "title")
    if "description" in data:
        task.description = clean_text(data["description"], "description")
    if "assigned_to" in data:
        task.assigned_to = optional_int(data, "assigned_to")
    if "status" in data:
        task.status = _choice(data, "status", TASK_STATUSES)
    if "priority" in data:
        task.priority = _choice(data, "priority", TASK_PRIORITIES)
    if "progress" in data:
        task.progress = _percent(data, "progress")
    for key in ("start_date", "due_date"):
        if key in data:
            setattr(task, key, _date(data, key))

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(task.to_dict())


@project_bp.route("/tasks/<int:task_id>", methods=["DELETE"])
@require_permission(Permission.TASKS_DELETE)
def delete_task(task_id):
    task = get_scoped_or_404(Task, task_id)
    db.session.delete(task)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Task deleted", "id": task_id}), 200


# ═══════════════════════════════════════════════════════════════════════════
#  ISSUE CRUD
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/issues", methods=["GET"])
@login_required
def list_issues():
    q = _scoped(Issue)
    project_id = request.args.get("project_id", type=int)
    if project_id:
        q = q.filter_by(project_id=project_id)
    for key in ("status", "severity"):
        value = request.args.get(key)
        if value:
            q = q.filter_by(**{key: value})
    issues, total = paginate_query(q.order_by(Issue.created_at.desc(), Issue.id.desc()))
    return jsonify({"items": [i.to_dict() for i in issues], "total": total})


@project_bp.route("/issues", methods=["POST"])
@require_permission(Permission.ISSUES_CREATE)
def create_issue():
    data = json_body()
    project = get_scoped_or_404(Project, data.get("project_id"))
    issue = Issue(
        organization_id=project.organization_id,
        project_id=project.id,
        title=_required_text(data, "title"),
        description=clean_text(data.get("description"), "description"),
        severity=_choice(data, "severity", ISSUE_SEVERITIES, "medium"),
        status=_choice(data, "status", ISSUE_STATUSES, "open"),
        reported_by=g.access.user_id,
    )
    db.session.add(issue)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(issue.to_dict()), 201


@project_bp.route("/issues/<int:issue_id>", methods=["GET"])
@login_required
def get_issue(issue_id):
    return jsonify(get_scoped_or_404(Issue, issue_id).to_dict())


@project_bp.route("/issues/<int:issue_id>", methods=["PUT"])
@require_permission(Permission.ISSUES_EDIT)
def update_issue(issue_id):
    issue = get_scoped_or_404(Issue, issue_id)
    data = json_body()

    if "title" in data:
        issue.title = _required_text(data, "title")
    if "description" in data:
        issue.description = clean_text(data["description"], "description")
    if "severity" in data:
        issue.severity = _choice(data, "severity", ISSUE_SEVERITIES)
    if "status" in data:
        issue.status = _choice(data, "status", ISSUE_STATUSES)

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(issue.to_dict())


@project_bp.route("/issues/<int:issue_id>", methods=["DELETE"])
@require_permission(Permission.ISSUES_DELETE)
def delete_issue(issue_id):
    issue = get_scoped_or_404(Issue, issue_id)
    db.session.delete(issue)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Issue deleted", "id": issue_id}), 200
