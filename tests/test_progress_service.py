"""
Tests for prioriwise/services/progress_service.py - read-only reporting.
"""

import pytest

from prioriwise.core.exceptions import NotFoundError
from prioriwise.models import db
from prioriwise.models.job import Job, Task
from prioriwise.models.mapping import JobPIMapping, PIQBOMapping
from prioriwise.models.planning import QBO, ProgressIndicator
from prioriwise.services import progress_service as ps
from prioriwise.services import task_sequencing as seq


OWNER = "owner-a"


def _make_job(title="Job", *, impact=0.0, is_done=False, owner_id=OWNER):
    job = Job(owner_id=owner_id, title=title, impact=impact, is_done=is_done, task_ids=[])
    db.session.add(job)
    db.session.commit()
    return job


def _add_task(job, title="Task", *, completed=False):
    task = Task(owner_id=job.owner_id, job_id=job.id, title=title, completed=completed)
    db.session.add(task)
    db.session.commit()
    seq.on_task_created(task.id, job.id, job.owner_id)
    return task


class TestJobProgress:

    def test_percentage_rounds(self):
        job = _make_job()
        _add_task(job, completed=True)
        _add_task(job)
        _add_task(job)

        assert ps.job_progress([job.id], OWNER) == {job.id: 33}

    def test_deleted_tasks_do_not_count(self):
        job = _make_job()
        _add_task(job, completed=True)
        gone = _add_task(job)
        seq.on_task_deleted(gone.id, OWNER)

        assert ps.job_progress([job.id], OWNER) == {job.id: 100}
        assert ps.job_task_counts(job.id, OWNER) == {"total": 1, "completed": 1}

    def test_unknown_and_empty_jobs_report_zero(self):
        empty = _make_job()
        foreign = _make_job(owner_id="someone-else")

        assert ps.job_progress([empty.id, foreign.id, 9999], OWNER) == {
            empty.id: 0, foreign.id: 0, 9999: 0,
        }

    def test_task_counts_unknown_job(self):
        with pytest.raises(NotFoundError):
            ps.job_task_counts(9999, OWNER)


class TestQBOProgress:

    def _graph(self):
        qbo = QBO(owner_id=OWNER, name="Revenue", points=50,
                  beginning_value=0, current_value=30, target_value=100)
        flat = QBO(owner_id=OWNER, name="Flat", points=10,
                   beginning_value=5, current_value=9, target_value=5)
        pi = ProgressIndicator(owner_id=OWNER, name="Leads", beginning_value=0, target_value=50)
        db.session.add_all([qbo, flat, pi])
        db.session.flush()
        done = _make_job("Done", is_done=True)
        open_ = _make_job("Open")
        db.session.add_all([
            PIQBOMapping(owner_id=OWNER, pi_id=pi.id, qbo_id=qbo.id, qbo_impact=40),
            PIQBOMapping(owner_id=OWNER, pi_id=pi.id, qbo_id=flat.id, qbo_impact=40),
            JobPIMapping(owner_id=OWNER, job_id=done.id, pi_id=pi.id, pi_impact_value=25),
            JobPIMapping(owner_id=OWNER, job_id=open_.id, pi_id=pi.id, pi_impact_value=25),
        ])
        db.session.commit()
        return qbo, flat

    def test_actual_progress(self):
        qbo, flat = self._graph()

        actual = ps.qbo_actual_progress(OWNER)

        assert actual[qbo.id] == pytest.approx(30.0)
        assert actual[flat.id] == 0.0

    def test_expected_progress_counts_done_jobs_only(self):
        qbo, flat = self._graph()

        expected = ps.qbo_expected_progress(OWNER)

        # PI progress 25/50 = 0.5; QBO: 40 * 0.5 / 100 = 20%
        assert expected[qbo.id] == pytest.approx(20.0)
        assert expected[flat.id] == 0.0

    def test_expected_progress_is_clamped(self):
        qbo = QBO(owner_id=OWNER, name="Small", points=5, beginning_value=0, current_value=0, target_value=1)
        pi = ProgressIndicator(owner_id=OWNER, name="Big", beginning_value=0, target_value=1)
        db.session.add_all([qbo, pi])
        db.session.flush()
        job = _make_job(is_done=True)
        db.session.add_all([
            PIQBOMapping(owner_id=OWNER, pi_id=pi.id, qbo_id=qbo.id, qbo_impact=10),
            JobPIMapping(owner_id=OWNER, job_id=job.id, pi_id=pi.id, pi_impact_value=10),
        ])
        db.session.commit()

        assert ps.qbo_expected_progress(OWNER)[qbo.id] == 100.0

    def test_report_shape(self):
        qbo, _ = self._graph()

        report = ps.qbo_progress_report(OWNER)

        assert report[0] == {
            "qbo_id": qbo.id,
            "name": "Revenue",
            "achieved_outcome": pytest.approx(30.0),
            "expected_outcome": pytest.approx(20.0),
        }
        assert len(report) == 2


class TestRanking:

    def test_top_jobs_orders_by_impact_and_skips_done(self):
        low = _make_job("Low", impact=1.0)
        high = _make_job("High", impact=9.0)
        _make_job("Finished", impact=50.0, is_done=True)
        mid = _make_job("Mid", impact=4.0)

        top = ps.top_jobs_by_impact(OWNER, limit=2)

        assert [j["id"] for j in top] == [high.id, mid.id]
        assert low.id not in [j["id"] for j in top]

    def test_next_steps_lists_next_task_per_open_job(self):
        high = _make_job("High", impact=9.0)
        low = _make_job("Low", impact=1.0)
        idle = _make_job("Idle", impact=5.0)
        h1 = _add_task(high, "Call lead")
        l1 = _add_task(low, "Write notes")
        seq.on_task_completed(_add_task(idle, "Done already").id, OWNER)

        steps = ps.next_steps(OWNER)

        assert [s["id"] for s in steps] == [h1.id, l1.id]
        assert steps[0]["job_title"] == "High"
        assert steps[0]["job_impact"] == 9.0
