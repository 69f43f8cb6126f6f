"""
HTTP contract tests for the impact, tasks, jobs, progress and health blueprints.

Every error body carries {"error", "code"} and, for core exceptions, "kind".
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from prioriwise.models import db
from prioriwise.models.job import Job, Task
from prioriwise.models.mapping import JobPIMapping, PIQBOMapping
from prioriwise.models.planning import QBO, ProgressIndicator


OWNER = "owner-api"


# ── Helpers ──────────────────────────────────────────────────────────────────


def _make_job(title="API job", *, impact=0.0):
    job = Job(owner_id=OWNER, title=title, impact=impact, task_ids=[])
    db.session.add(job)
    db.session.commit()
    return job


def _make_task(job, title="API task"):
    task = Task(owner_id=OWNER, job_id=job.id, title=title)
    db.session.add(task)
    db.session.commit()
    return task


def _job_with_tasks(client, *titles):
    job = _make_job()
    tasks = []
    for title in titles:
        task = _make_task(job, title)
        res = client.post(f"/api/v1/tasks/{task.id}/created", json={"owner_id": OWNER, "job_id": job.id})
        assert res.status_code == 200
        tasks.append(task)
    return job, tasks


def _store_down(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("connection refused"))


# ═════════════════════════════════════════════════════════════════════════════
# Impact
# ═════════════════════════════════════════════════════════════════════════════


class TestImpactAPI:

    def test_owner_required(self, client):
        res = client.post("/api/v1/impact/recompute", json={})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_recompute(self, client):
        qbo = QBO(owner_id=OWNER, name="Q", points=50, beginning_value=0, current_value=0, target_value=100)
        pi = ProgressIndicator(owner_id=OWNER, name="P", beginning_value=0, target_value=50)
        job = _make_job()
        db.session.add_all([qbo, pi])
        db.session.flush()
        db.session.add_all([
            PIQBOMapping(owner_id=OWNER, pi_id=pi.id, qbo_id=qbo.id, qbo_impact=20),
            JobPIMapping(owner_id=OWNER, job_id=job.id, pi_id=pi.id, pi_impact_value=25),
        ])
        db.session.commit()

        res = client.post("/api/v1/impact/recompute", json={"owner_id": OWNER})

        assert res.status_code == 200
        body = res.get_json()
        assert body["success"] is True
        assert body["updated_job_count"] == 1
        assert db.session.get(Job, job.id).impact == pytest.approx(5.0)

    def test_store_unavailable(self, client):
        with patch("prioriwise.services.impact_engine.load_owner_snapshot", side_effect=_store_down):
            res = client.post("/api/v1/impact/recompute?owner_id=" + OWNER)

        assert res.status_code == 503
        body = res.get_json()
        assert body["success"] is False
        assert body["error"]["kind"] == "StoreUnavailable"


# ═════════════════════════════════════════════════════════════════════════════
# Task lifecycle
# ═════════════════════════════════════════════════════════════════════════════


class TestTaskHooksAPI:

    def test_completing_other_task_keeps_cursor(self, client):
        job, (t1, t2) = _job_with_tasks(client, "T1", "T2")

        res = client.post(f"/api/v1/tasks/{t2.id}/completed", json={"owner_id": OWNER})

        assert res.status_code == 200
        body = res.get_json()
        assert body["id"] == job.id
        assert body["task_ids"] == [t1.id, t2.id]
        assert body["next_task_id"] == t1.id

    def test_created_requires_job_id(self, client):
        job = _make_job()
        task = _make_task(job)

        res = client.post(f"/api/v1/tasks/{task.id}/created", json={"owner_id": OWNER})

        assert res.status_code == 400

    def test_complete_reopen_delete(self, client):
        _, (t1, t2) = _job_with_tasks(client, "T1", "T2")

        res = client.post(f"/api/v1/tasks/{t1.id}/completed", json={"owner_id": OWNER})
        assert res.get_json()["next_task_id"] == t2.id

        res = client.post(f"/api/v1/tasks/{t1.id}/reopened", json={"owner_id": OWNER})
        assert res.get_json()["next_task_id"] == t2.id

        res = client.post(f"/api/v1/tasks/{t2.id}/deleted", json={"owner_id": OWNER})
        body = res.get_json()
        assert body["task_ids"] == [t1.id]
        assert body["next_task_id"] == t1.id

    def test_unknown_task_is_404(self, client):
        res = client.post("/api/v1/tasks/9999/completed", json={"owner_id": OWNER})

        assert res.status_code == 404
        body = res.get_json()
        assert body["code"] == "ERR_NOT_FOUND"
        assert body["kind"] == "NotFoundError"

    def test_foreign_owner_is_404(self, client):
        _, (t1,) = _job_with_tasks(client, "T1")

        res = client.post(f"/api/v1/tasks/{t1.id}/completed", json={"owner_id": "intruder"})

        assert res.status_code == 404

    def test_store_failure_is_503(self, client):
        _, (t1,) = _job_with_tasks(client, "T1")

        with patch("prioriwise.services.task_sequencing.get_scoped", side_effect=_store_down):
            res = client.post(f"/api/v1/tasks/{t1.id}/completed", json={"owner_id": OWNER})

        assert res.status_code == 503
        assert res.get_json()["kind"] == "StoreUnavailable"


# ═════════════════════════════════════════════════════════════════════════════
# Jobs: next task, order, duplication
# ═════════════════════════════════════════════════════════════════════════════


class TestJobsAPI:

    def test_reorder_moving_next_task_is_422(self, client):
        job, (t1, t2, t3) = _job_with_tasks(client, "T1", "T2", "T3")

        res = client.put(
            f"/api/v1/jobs/{job.id}/tasks/order",
            json={"owner_id": OWNER, "task_ids": [t2.id, t1.id, t3.id]},
        )

        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_SEQUENCING"
        assert body["kind"] == "ValidationError"
        assert body["details"]["next_task_id"] == t1.id
        db.session.expire_all()
        assert db.session.get(Job, job.id).task_ids == [t1.id, t2.id, t3.id]

    def test_reorder_ok(self, client):
        job, (t1, t2, t3) = _job_with_tasks(client, "T1", "T2", "T3")

        res = client.put(
            f"/api/v1/jobs/{job.id}/tasks/order",
            json={"owner_id": OWNER, "task_ids": [t1.id, t3.id, t2.id]},
        )

        assert res.status_code == 200
        assert res.get_json()["task_ids"] == [t1.id, t3.id, t2.id]

    @pytest.mark.parametrize("task_ids", [None, "1,2", [1, "x"], [True]])
    def test_reorder_malformed_body(self, client, task_ids):
        job, _ = _job_with_tasks(client, "T1")

        res = client.put(f"/api/v1/jobs/{job.id}/tasks/order", json={"owner_id": OWNER, "task_ids": task_ids})

        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_set_next_task(self, client):
        job, (_, t2) = _job_with_tasks(client, "T1", "T2")

        res = client.put(f"/api/v1/jobs/{job.id}/next-task", json={"owner_id": OWNER, "task_id": t2.id})
        assert res.status_code == 200
        assert res.get_json()["next_task_id"] == t2.id

        res = client.put(f"/api/v1/jobs/{job.id}/next-task", json={"owner_id": OWNER, "task_id": None})
        assert res.status_code == 200
        assert res.get_json()["next_task_id"] is None

    def test_set_next_task_requires_key(self, client):
        job, _ = _job_with_tasks(client, "T1")

        res = client.put(f"/api/v1/jobs/{job.id}/next-task", json={"owner_id": OWNER})

        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_set_next_task_completed_is_422(self, client):
        job, (_, t2) = _job_with_tasks(client, "T1", "T2")
        client.post(f"/api/v1/tasks/{t2.id}/completed", json={"owner_id": OWNER})

        res = client.put(f"/api/v1/jobs/{job.id}/next-task", json={"owner_id": OWNER, "task_id": t2.id})

        assert res.status_code == 422

    def test_duplicate(self, client):
        job, (t1, t2) = _job_with_tasks(client, "T1", "T2")

        res = client.post(
            f"/api/v1/jobs/{job.id}/duplicate",
            json={"owner_id": OWNER, "overrides": {"title": "Copy"}},
        )

        assert res.status_code == 201
        body = res.get_json()
        assert body["job"]["title"] == "Copy"
        assert body["tasks_copied"] == 2
        assert len(body["job"]["task_ids"]) == 2
        assert body["job"]["next_task_id"] == body["job"]["task_ids"][0]
        assert body["impact"]["success"] is True

    def test_duplicate_rejects_non_object_overrides(self, client):
        job = _make_job()

        res = client.post(f"/api/v1/jobs/{job.id}/duplicate", json={"owner_id": OWNER, "overrides": ["x"]})

        assert res.status_code == 400

    @pytest.mark.parametrize("overrides, field", [
        ({"title": 5}, "title"),
        ({"notes": ["a"]}, "notes"),
        ({"business_function_id": 7}, "business_function_id"),
        ({"due_date": "next friday"}, "due_date"),
        ({"due_date": 20261231}, "due_date"),
    ])
    def test_duplicate_rejects_mistyped_overrides(self, client, overrides, field):
        job = _make_job()

        res = client.post(
            f"/api/v1/jobs/{job.id}/duplicate",
            json={"owner_id": OWNER, "overrides": overrides},
        )

        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert field in body["details"]
        assert Job.query.count() == 1

    def test_duplicate_accepts_day_first_due_date(self, client):
        job = _make_job()

        res = client.post(
            f"/api/v1/jobs/{job.id}/duplicate",
            json={"owner_id": OWNER, "overrides": {"due_date": "31.12.2026"}},
        )

        assert res.status_code == 201
        assert res.get_json()["job"]["due_date"] == "2026-12-31"

    @pytest.mark.parametrize("method, path", [
        ("put", "/api/v1/jobs/{job}/next-task"),
        ("put", "/api/v1/jobs/{job}/tasks/order"),
        ("post", "/api/v1/jobs/{job}/duplicate"),
        ("post", "/api/v1/tasks/{task}/created"),
    ])
    def test_array_body_is_400(self, client, method, path):
        job, (task,) = _job_with_tasks(client, "T1")
        url = path.format(job=job.id, task=task.id) + f"?owner_id={OWNER}"

        res = getattr(client, method)(url, json=[1, 2])

        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_duplicate_unknown_job(self, client):
        res = client.post("/api/v1/jobs/9999/duplicate", json={"owner_id": OWNER})

        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# Progress
# ═════════════════════════════════════════════════════════════════════════════


class TestProgressAPI:

    def test_job_progress(self, client):
        job, (t1, _) = _job_with_tasks(client, "T1", "T2")
        client.post(f"/api/v1/tasks/{t1.id}/completed", json={"owner_id": OWNER})

        res = client.get(f"/api/v1/progress/jobs?owner_id={OWNER}&ids={job.id}&ids=9999")

        assert res.status_code == 200
        assert res.get_json()["data"] == {str(job.id): 50, "9999": 0}

    def test_job_progress_requires_ids(self, client):
        res = client.get(f"/api/v1/progress/jobs?owner_id={OWNER}")
        assert res.status_code == 400

    def test_task_counts(self, client):
        job, _ = _job_with_tasks(client, "T1", "T2")

        res = client.get(f"/api/v1/progress/jobs/{job.id}/task-counts?owner_id={OWNER}")

        assert res.get_json() == {"total": 2, "completed": 0}

    def test_qbos(self, client):
        db.session.add(QBO(owner_id=OWNER, name="Q", points=10, beginning_value=0, current_value=5, target_value=10))
        db.session.commit()

        res = client.get(f"/api/v1/progress/qbos?owner_id={OWNER}")

        body = res.get_json()
        assert body["count"] == 1
        assert body["data"][0]["achieved_outcome"] == 50.0

    def test_top_jobs_and_limit(self, client):
        for i in range(7):
            _make_job(f"J{i}", impact=float(i))

        res = client.get(f"/api/v1/progress/top-jobs?owner_id={OWNER}")
        assert res.get_json()["count"] == 5
        assert res.get_json()["data"][0]["title"] == "J6"

        res = client.get(f"/api/v1/progress/top-jobs?owner_id={OWNER}&limit=2")
        assert [j["title"] for j in res.get_json()["data"]] == ["J6", "J5"]

        res = client.get(f"/api/v1/progress/top-jobs?owner_id={OWNER}&limit=0")
        assert res.status_code == 400

    def test_next_steps(self, client):
        _, (t1, _) = _job_with_tasks(client, "T1", "T2")

        res = client.get(f"/api/v1/progress/next-steps?owner_id={OWNER}")

        body = res.get_json()
        assert body["count"] == 1
        assert body["data"][0]["id"] == t1.id

    def test_unexpected_error_is_500(self, client):
        with patch("prioriwise.services.progress_service.next_steps", side_effect=RuntimeError("boom")):
            res = client.get(f"/api/v1/progress/next-steps?owner_id={OWNER}")

        assert res.status_code == 500
        assert res.get_json()["code"] == "ERR_INTERNAL"


# ═════════════════════════════════════════════════════════════════════════════
# Health & app-level behaviour
# ═════════════════════════════════════════════════════════════════════════════


class TestHealthAndApp:

    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live(self, client):
        res = client.get("/api/v1/health/live")
        body = res.get_json()
        assert res.status_code == 200
        assert body["status"] == "healthy"
        assert body["checks"]["tables"]["missing"] == []
        assert body["checks"]["app"]["testing"] is True

    def test_unknown_route_is_json_404(self, client):
        res = client.get("/api/v1/nope")
        assert res.status_code == 404
        assert res.get_json()["error"] == "Not found"

    def test_request_id_header(self, client):
        res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers
