"""
Change feed delivery, session hooks and query-cache invalidation.
"""

import pytest

from siteledger.models import db
from siteledger.models.project import Task
from siteledger.services.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeType,
    QueryCache,
    channel_name,
    feed,
)


def _event(org_id=1, table="tasks", event_type=ChangeType.INSERT, **payload):
    return ChangeEvent(table=table, organization_id=org_id, event_type=event_type, payload=payload)


class TestChangeFeed:
    def test_channel_name(self):
        assert channel_name("tasks", 42) == "realtime-tasks-42"
        assert _event(org_id=42).channel == "realtime-tasks-42"

    def test_delivers_to_matching_channel_only(self):
        local = ChangeFeed()
        got = []
        local.subscribe(1, "tasks", got.append)
        local.subscribe(2, "tasks", lambda e: pytest.fail("wrong org"))
        local.subscribe(1, "issues", lambda e: pytest.fail("wrong table"))

        assert local.publish(_event()) == 1
        assert len(got) == 1

    def test_event_type_filter(self):
        local = ChangeFeed()
        got = []
        local.subscribe(1, "tasks", got.append, events={"DELETE"})
        local.publish(_event(event_type=ChangeType.INSERT))
        local.publish(_event(event_type=ChangeType.DELETE))
        assert [e.event_type for e in got] == [ChangeType.DELETE]

    def test_failing_subscriber_does_not_block_others(self):
        local = ChangeFeed()
        got = []

        def boom(_event):
            raise RuntimeError("subscriber bug")

        local.subscribe(1, "tasks", boom)
        local.subscribe(1, "tasks", got.append)
        assert local.publish(_event()) == 1
        assert len(got) == 1

    def test_unsubscribe(self):
        local = ChangeFeed()
        got = []
        sub = local.subscribe(1, "tasks", got.append)
        assert local.subscriber_count(1, "tasks") == 1
        sub.unsubscribe()
        assert local.subscriber_count(1, "tasks") == 0
        assert local.publish(_event()) == 0
        assert got == []


class TestSessionHooks:
    def test_commit_publishes(self, org_tree, make_project):
        project = make_project(org_tree.parent)
        db.session.commit()

        got = []
        feed.subscribe(org_tree.parent.id, "tasks", got.append)
        task = Task(organization_id=org_tree.parent.id, project_id=project.id, title="Hook me")
        db.session.add(task)
        db.session.commit()

        assert len(got) == 1
        assert got[0].event_type == ChangeType.INSERT
        assert got[0].payload["title"] == "Hook me"

        task.status = "in_progress"
        db.session.commit()
        db.session.delete(task)
        db.session.commit()
        assert [e.event_type for e in got] == [ChangeType.INSERT, ChangeType.UPDATE, ChangeType.DELETE]

    def test_rollback_publishes_nothing(self, org_tree, make_project):
        project = make_project(org_tree.parent)
        db.session.commit()

        got = []
        feed.subscribe(org_tree.parent.id, "tasks", got.append)
        db.session.add(Task(organization_id=org_tree.parent.id, project_id=project.id, title="Gone"))
        db.session.flush()
        db.session.rollback()
        assert got == []

    def test_other_org_not_notified(self, org_tree, make_project):
        project = make_project(org_tree.other)
        db.session.commit()
        got = []
        feed.subscribe(org_tree.parent.id, "tasks", got.append)
        db.session.add(Task(organization_id=org_tree.other.id, project_id=project.id, title="Elsewhere"))
        db.session.commit()
        assert got == []


class TestQueryCache:
    def test_invalidation_refetches(self):
        local = ChangeFeed()
        cache = QueryCache()
        calls = []

        def loader():
            calls.append(1)
            return len(calls)

        cache.invalidate_on(local, 1, "tasks", keys=["tasks:1"])
        assert cache.get("tasks:1", loader) == 1
        assert cache.get("tasks:1", loader) == 1
        assert len(calls) == 1

        local.publish(_event())
        assert "tasks:1" not in cache
        assert cache.get("tasks:1", loader) == 2

    def test_close_unsubscribes(self):
        local = ChangeFeed()
        cache = QueryCache()
        cache.invalidate_on(local, 1, "tasks", keys=["k"])
        cache.close()
        assert local.subscriber_count(1, "tasks") == 0

    def test_cache_follows_database_commits(self, org_tree, make_project):
        project = make_project(org_tree.parent)
        db.session.commit()
        org_id = org_tree.parent.id

        cache = QueryCache()
        cache.invalidate_on(feed, org_id, "tasks", keys=["task-count"])

        def count():
            return Task.query_for_org(org_id).count()

        assert cache.get("task-count", count) == 0
        db.session.add(Task(organization_id=org_id, project_id=project.id, title="New"))
        db.session.commit()
        assert cache.get("task-count", count) == 1
        cache.close()
