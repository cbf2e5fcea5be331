"""
Compliance scorecard rules and scoring.

Inputs are plain dicts here; the rules read model objects the same way.
"""

from datetime import date

import pytest

from siteledger.services.compliance_service import (
    FindingStatus,
    check_budget,
    check_checklists,
    check_critical_issues,
    check_overdue_tasks,
    check_project_dates,
    check_safety,
    check_worker_contacts,
    compliance_for_organizations,
    run_compliance_checks,
)

TODAY = date(2024, 6, 15)


class TestBudget:
    def test_over_budget_fails(self):
        (f,) = check_budget([{"id": 7, "name": "Tower A", "budget": 1000, "spent": 1106}])
        assert f.id == "budget-7"
        assert f.status == FindingStatus.FAIL
        assert f.details == '"Tower A" is over budget by 11%'

    def test_near_budget_warns(self):
        (f,) = check_budget([{"id": 3, "name": "Mall", "budget": 1000, "spent": 912}])
        assert f.id == "budget-warn-3"
        assert f.status == FindingStatus.WARNING
        assert f.details == '"Mall" is at 91% budget utilization'

    @pytest.mark.parametrize("budget,spent", [(1000, 900), (1000, 0), (0, 500), (None, 10)])
    def test_no_finding(self, budget, spent):
        assert check_budget([{"id": 1, "name": "P", "budget": budget, "spent": spent}]) == []


class TestSingleFindingRules:
    def test_safety(self):
        assert check_safety([{"status": "resolved"}]).status == FindingStatus.PASS
        f = check_safety([{"status": "open"}, {"status": "investigating"}, {"status": "closed"}])
        assert f.status == FindingStatus.FAIL
        assert f.details == "2 unresolved safety incident(s)"

    def test_critical_issues(self):
        f = check_critical_issues([
            {"severity": "critical", "status": "open"},
            {"severity": "critical", "status": "closed"},
            {"severity": "high", "status": "open"},
        ])
        assert f.id == "critical-issues"
        assert f.details == "1 critical issue(s) still open"
        assert check_critical_issues([]).id == "critical-ok"

    def test_checklists(self):
        assert check_checklists([]).status == FindingStatus.PASS
        f = check_checklists([{"status": "pending"}, {"status": "completed"}])
        assert f.status == FindingStatus.WARNING
        assert f.details == "1 incomplete checklist(s)"


class TestOverdueTasks:
    def test_empty_task_list_passes(self):
        f = check_overdue_tasks([], TODAY)
        assert f.id == "schedule-ok"
        assert f.status == FindingStatus.PASS

    def test_more_than_twenty_percent_fails(self):
        tasks = [
            {"due_date": "2024-06-14", "status": "in_progress"},
            {"due_date": "2024-06-20", "status": "in_progress"},
            {"due_date": None, "status": "not_started"},
        ]
        f = check_overdue_tasks(tasks, TODAY)
        assert f.status == FindingStatus.FAIL
        assert f.details == "1 of 3 tasks are overdue (33%)"

    def test_twenty_percent_or_less_warns(self):
        tasks = [{"due_date": "2024-06-01", "status": "blocked"}] + [
            {"due_date": "2024-07-01", "status": "in_progress"} for _ in range(4)
        ]
        f = check_overdue_tasks(tasks, TODAY)
        assert f.id == "overdue-warn"
        assert f.details == "1 task(s) are past due date"

    def test_due_today_and_completed_not_overdue(self):
        tasks = [
            {"due_date": TODAY, "status": "in_progress"},
            {"due_date": "2024-01-01", "status": "completed"},
        ]
        assert check_overdue_tasks(tasks, TODAY).status == FindingStatus.PASS


class TestOptionalRules:
    def test_worker_contacts(self):
        workers = [
            {"is_active": True, "phone": ""},
            {"is_active": True, "phone": "98765"},
            {"is_active": False, "phone": None},
        ]
        (f,) = check_worker_contacts(workers)
        assert f.details == "1 active worker(s) missing phone number"
        assert check_worker_contacts([{"is_active": True, "phone": "1"}]) == []

    def test_project_dates(self):
        (f,) = check_project_dates([
            {"status": "active", "end_date": None},
            {"status": "planning", "end_date": None},
        ])
        assert f.id == "project-dates"
        assert check_project_dates([{"status": "active", "end_date": "2025-01-01"}]) == []


class TestReport:
    def test_all_clear_scores_100(self):
        report = run_compliance_checks([], [], [], [], [], [], today=TODAY)
        assert [f.id for f in report.findings] == [
            "safety-ok", "critical-ok", "schedule-ok", "checklists-ok",
        ]
        assert report.score == 100

    def test_score_and_order(self):
        report = run_compliance_checks(
            projects=[{"id": 1, "name": "A", "budget": 100, "spent": 150, "status": "active"}],
            tasks=[],
            issues=[],
            safety_incidents=[{"status": "open"}],
            checklists=[],
            workers=[],
            today=TODAY,
        )
        # budget fail, safety fail, critical pass, schedule pass, checklists pass, dates warn
        assert report.fail_count == 2
        assert report.warning_count == 1
        assert report.pass_count == 3
        assert report.score == 50
        statuses = [f.status for f in report.sorted_findings]
        assert statuses == sorted(statuses, key=["fail", "warning", "pass"].index)
        body = report.to_dict()
        assert body["total"] == 6
        assert body["findings"][0]["id"] == "budget-1"

    def test_score_rounds_half_up(self):
        # 1 pass of 8 findings = 12.5 → 13
        projects = [
            {"id": i, "name": f"P{i}", "budget": 100, "spent": 200, "status": "active",
             "end_date": "2025-01-01"}
            for i in range(1, 5)
        ]
        report = run_compliance_checks(
            projects=projects,
            tasks=[{"due_date": "2024-01-01", "status": "in_progress"}],
            issues=[{"severity": "critical", "status": "open"}],
            safety_incidents=[{"status": "open"}],
            checklists=[],
            workers=[],
            today=TODAY,
        )
        assert len(report.findings) == 8
        assert report.pass_count == 1
        assert report.score == 13

    def test_against_database(self, org_tree, make_project):
        from siteledger.models import db
        from siteledger.models.project import Task

        project = make_project(org_tree.parent, budget=1000, spent=2000)
        db.session.add(Task(
            organization_id=org_tree.parent.id, project_id=project.id,
            title="Late", due_date=date(2024, 1, 1), status="in_progress",
        ))
        make_project(org_tree.other, "Foreign", budget=10, spent=999)
        db.session.commit()

        report = compliance_for_organizations([org_tree.parent.id], today=TODAY)
        ids = {f.id for f in report.findings}
        assert f"budget-{project.id}" in ids
        assert "overdue-tasks" in ids
        assert len([i for i in ids if i.startswith("budget")]) == 1
