"""
Compliance Service — rule-based compliance scorecard.

Pure reduction over record sets that are already scoped to the caller's
organizations. Nothing is persisted; the report is recomputed on demand.

Rules run in a fixed order:
  1. Budget            — zero or more findings (one per over/near-budget project)
  2. Safety            — exactly one finding
  3. Critical issues   — exactly one finding
  4. Overdue tasks     — exactly one finding (empty task list passes)
  5. Checklists        — exactly one finding
  6. Worker contact    — zero or one finding
  7. Project planning  — zero or one finding

score = round_half_up(100 * passes / findings), 0 when there are no findings.

Usage:
    report = run_compliance_checks(projects, tasks, issues, incidents, checklists, workers)
    report.to_dict()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field
from datetime import date
from enum import Enum

from siteledger.utils.helpers import field, parse_date, round_half_up, to_number

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Enums & Data Classes
# ═════════════════════════════════════════════════════════════════════════════

class FindingStatus(str, Enum):
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


class FindingSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Display order: fail → warning → pass
_STATUS_RANK = {FindingStatus.FAIL: 0, FindingStatus.WARNING: 1, FindingStatus.PASS: 2}

THRESHOLDS = {
    "budget_warn_ratio": 0.9,      # spent > 90% of budget → warning
    "overdue_fail_ratio": 0.2,     # > 20% of tasks overdue → fail
}

UNRESOLVED_SAFETY_STATUSES = {"open", "investigating"}


@dataclass
class Finding:
    """One row of the compliance scorecard."""
    id: str
    category: str
    rule: str
    status: FindingStatus
    severity: FindingSeverity
    details: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "rule": self.rule,
            "status": self.status.value,
            "severity": self.severity.value,
            "details": self.details,
        }


@dataclass
class ComplianceReport:
    findings: list[Finding] = dc_field(default_factory=list)

    def _count(self, status: FindingStatus) -> int:
        return sum(1 for f in self.findings if f.status == status)

    @property
    def pass_count(self) -> int:
        return self._count(FindingStatus.PASS)

    @property
    def warning_count(self) -> int:
        return self._count(FindingStatus.WARNING)

    @property
    def fail_count(self) -> int:
        return self._count(FindingStatus.FAIL)

    @property
    def score(self) -> int:
        if not self.findings:
            return 0
        return round_half_up(self.pass_count / len(self.findings) * 100)

    @property
    def sorted_findings(self) -> list[Finding]:
        return sorted(self.findings, key=lambda f: _STATUS_RANK[f.status])

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "pass_count": self.pass_count,
            "warning_count": self.warning_count,
            "fail_count": self.fail_count,
            "total": len(self.findings),
            "findings": [f.to_dict() for f in self.sorted_findings],
        }


# ═════════════════════════════════════════════════════════════════════════════
# Rules
# ═════════════════════════════════════════════════════════════════════════════

def check_budget(projects) -> list[Finding]:
    findings = []
    for p in projects:
        budget = to_number(field(p, "budget"))
        spent = to_number(field(p, "spent"))
        if budget <= 0:
            continue
        name = field(p, "name")
        pid = field(p, "id")
        if spent > budget:
            pct = round_half_up((spent - budget) / budget * 100)
            findings.append(Finding(
                id=f"budget-{pid}", category="Budget",
                rule="Projects must not exceed budget",
                status=FindingStatus.FAIL, severity=FindingSeverity.CRITICAL,
                details=f'"{name}" is over budget by {pct}%',
            ))
        elif spent > budget * THRESHOLDS["budget_warn_ratio"]:
            pct = round_half_up(spent / budget * 100)
            findings.append(Finding(
                id=f"budget-warn-{pid}", category="Budget",
                rule="Budget utilization watch",
                status=FindingStatus.WARNING, severity=FindingSeverity.HIGH,
                details=f'"{name}" is at {pct}% budget utilization',
            ))
    return findings


def check_safety(safety_incidents) -> Finding:
    unresolved = [s for s in safety_incidents if field(s, "status") in UNRESOLVED_SAFETY_STATUSES]
    if unresolved:
        return Finding(
            id="safety-unresolved", category="Safety",
            rule="All safety incidents must be resolved",
            status=FindingStatus.FAIL, severity=FindingSeverity.CRITICAL,
            details=f"{len(unresolved)} unresolved safety incident(s)",
        )
    return Finding(
        id="safety-ok", category="Safety", rule="All safety incidents resolved",
        status=FindingStatus.PASS, severity=FindingSeverity.LOW,
        details="No unresolved safety incidents",
    )


def check_critical_issues(issues) -> Finding:
    critical = [
        i for i in issues
        if field(i, "severity") == "critical" and field(i, "status") != "closed"
    ]
    if critical:
        return Finding(
            id="critical-issues", category="Issues", rule="No unresolved critical issues",
            status=FindingStatus.FAIL, severity=FindingSeverity.CRITICAL,
            details=f"{len(critical)} critical issue(s) still open",
        )
    return Finding(
        id="critical-ok", category="Issues", rule="No unresolved critical issues",
        status=FindingStatus.PASS, severity=FindingSeverity.LOW,
        details="All critical issues resolved",
    )


def is_overdue(task, today: date) -> bool:
    """Due strictly before *today* and not completed. No due date → never overdue."""
    due = parse_date(field(task, "due_date"))
    return due is not None and due < today and field(task, "status") != "completed"


def check_overdue_tasks(tasks, today: date) -> Finding:
    total = len(tasks)
    overdue = [t for t in tasks if is_overdue(t, today)]
    if total and len(overdue) > total * THRESHOLDS["overdue_fail_ratio"]:
        pct = round_half_up(len(overdue) / total * 100)
        return Finding(
            id="overdue-tasks", category="Schedule",
            rule="Less than 20% tasks should be overdue",
            status=FindingStatus.FAIL, severity=FindingSeverity.HIGH,
            details=f"{len(overdue)} of {total} tasks are overdue ({pct}%)",
        )
    if overdue:
        return Finding(
            id="overdue-warn", category="Schedule", rule="Task overdue monitoring",
            status=FindingStatus.WARNING, severity=FindingSeverity.MEDIUM,
            details=f"{len(overdue)} task(s) are past due date",
        )
    return Finding(
        id="schedule-ok", category="Schedule", rule="Tasks on schedule",
        status=FindingStatus.PASS, severity=FindingSeverity.LOW,
        details="No overdue tasks",
    )


def check_checklists(checklists) -> Finding:
    incomplete = [c for c in checklists if field(c, "status") != "completed"]
    if incomplete:
        return Finding(
            id="checklists", category="Quality",
            rule="All checklists should be completed regularly",
            status=FindingStatus.WARNING, severity=FindingSeverity.MEDIUM,
            details=f"{len(incomplete)} incomplete checklist(s)",
        )
    return Finding(
        id="checklists-ok", category="Quality", rule="Checklists up to date",
        status=FindingStatus.PASS, severity=FindingSeverity.LOW,
        details="All checklists completed",
    )


def check_worker_contacts(workers) -> list[Finding]:
    missing = [w for w in workers if field(w, "is_active") and not field(w, "phone")]
    if not missing:
        return []
    return [Finding(
        id="worker-info", category="Compliance",
        rule="All active workers must have contact info",
        status=FindingStatus.WARNING, severity=FindingSeverity.MEDIUM,
        details=f"{len(missing)} active worker(s) missing phone number",
    )]


def check_project_dates(projects) -> list[Finding]:
    no_end = [p for p in projects if field(p, "status") == "active" and not field(p, "end_date")]
    if not no_end:
        return []
    return [Finding(
        id="project-dates", category="Planning",
        rule="Active projects should have end dates",
        status=FindingStatus.WARNING, severity=FindingSeverity.MEDIUM,
        details=f"{len(no_end)} active project(s) without end date",
    )]


def run_compliance_checks(
    projects, tasks, issues, safety_incidents, checklists, workers, *, today=None,
) -> ComplianceReport:
    """Evaluate every rule in order and return the report."""
    today = today or date.today()
    projects, tasks = list(projects or []), list(tasks or [])

    findings: list[Finding] = []
    findings.extend(check_budget(projects))
    findings.append(check_safety(list(safety_incidents or [])))
    findings.append(check_critical_issues(list(issues or [])))
    findings.append(check_overdue_tasks(tasks, today))
    findings.append(check_checklists(list(checklists or [])))
    findings.extend(check_worker_contacts(list(workers or [])))
    findings.extend(check_project_dates(projects))

    report = ComplianceReport(findings=findings)
    logger.debug(
        "Compliance run: %d findings, score=%d", len(findings), report.score,
    )
    return report


def compliance_for_organizations(org_ids, *, today=None) -> ComplianceReport:
    """Fetch each record stream for *org_ids* independently, then reduce."""
    from siteledger.models.labour import Worker
    from siteledger.models.project import Inspection, Issue, Project, SafetyIncident, Task

    return run_compliance_checks(
        Project.query_for_orgs(org_ids).all(),
        Task.query_for_orgs(org_ids).all(),
        Issue.query_for_orgs(org_ids).all(),
        SafetyIncident.query_for_orgs(org_ids).all(),
        Inspection.query_for_orgs(org_ids).all(),
        Worker.query_for_orgs(org_ids).all(),
        today=today,
    )
