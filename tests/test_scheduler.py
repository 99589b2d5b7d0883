"""Tests for the coordinator scheduler: assignment, reporting, reclaim and phases.

Verifies:
1. Lowest-index IDLE task is assigned, WAIT when nothing is assignable
2. Reduce tasks are never handed out while mapping
3. The poll completing the last map task receives a reduce assignment
4. Completion reports are idempotent, including late reports after reassignment
5. Leases are reclaimed exactly at the timeout and not earlier
6. Concurrent pollers never receive the same task
7. Invariant violations halt the scheduler
"""
import threading

import pytest

from leasemr.coordinator.models import JobPhase, TaskState
from leasemr.protocol import (
    Phase,
    SchedulerHaltedError,
    TaskKind,
    TaskRef,
    TaskRequest,
    TaskTableInvariantError,
    UnknownTaskError,
)


def poll(scheduler, worker_id=None):
    return scheduler.request_task(TaskRequest.poll(worker_id))


def report(scheduler, response, worker_id=None):
    return scheduler.request_task(TaskRequest.report(response.task_ref, worker_id))


class TestAssignment:

    def test_first_poll_gets_map_zero(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt", "b.txt"], reduce_count=3)
        response = poll(scheduler, "w1")

        assert response.phase == Phase.MAP
        assert response.task_id == 0
        assert response.input_ref == "a.txt"
        assert response.reduce_count == 3
        assert response.map_count == 2
        assert response.attempt == 1

        task = scheduler.table.map_tasks[0]
        assert task.state == TaskState.IN_PROGRESS
        assert task.assigned_worker == "w1"

    def test_assigns_in_index_order_then_waits(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt", "b.txt"], wait_delay=3.0)

        assert [poll(scheduler).task_id for _ in range(2)] == [0, 1]
        response = poll(scheduler)
        assert response.phase == Phase.WAIT
        assert response.retry_after == 3.0
        assert response.task_id == -1
        assert response.input_ref == ""

    def test_lowest_index_after_reclaim(self, make_scheduler, clock):
        scheduler = make_scheduler(files=["a.txt", "b.txt", "c.txt"])
        first = poll(scheduler)
        clock.advance(5)
        poll(scheduler)
        clock.advance(5)

        # Map 0 expired, map 1 did not; map 0 is reassigned before idle map 2.
        response = poll(scheduler)
        assert response.task_id == 0
        assert response.attempt == first.attempt + 1

    def test_no_reduce_while_mapping(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt", "b.txt"])
        first = poll(scheduler)
        poll(scheduler)

        response = report(scheduler, first)
        assert response.phase == Phase.WAIT
        assert all(t.state == TaskState.IDLE for t in scheduler.table.reduce_tasks)
        assert scheduler.table.phase == JobPhase.MAPPING

    def test_last_map_report_gets_reduce_assignment(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt"], reduce_count=2)
        map_task = poll(scheduler)

        response = report(scheduler, map_task)
        assert response.phase == Phase.REDUCE
        assert response.task_id == 0
        assert response.map_count == 1
        assert response.reduce_count == 2
        assert scheduler.table.phase == JobPhase.REDUCING

    def test_full_job_reaches_done(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt", "b.txt"], reduce_count=2)
        assert not scheduler.is_job_done()

        response = poll(scheduler)
        seen = []
        while response.phase != Phase.DONE:
            assert response.phase in (Phase.MAP, Phase.REDUCE)
            seen.append((response.phase, response.task_id))
            response = report(scheduler, response)

        assert seen == [(Phase.MAP, 0), (Phase.MAP, 1), (Phase.REDUCE, 0), (Phase.REDUCE, 1)]
        assert scheduler.is_job_done()
        assert poll(scheduler).phase == Phase.DONE

    def test_snapshot(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt", "b.txt"], reduce_count=3)
        report(scheduler, poll(scheduler))

        status = scheduler.snapshot()
        assert status.phase == "mapping"
        assert status.map_tasks.completed == 1
        assert status.map_tasks.in_progress == 1
        assert status.reduce_tasks.idle == 3
        assert not status.done


class TestCompletionReports:

    def test_duplicate_report_is_noop(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt", "b.txt", "c.txt"])
        first = poll(scheduler)
        assert report(scheduler, first).task_id == 1

        response = report(scheduler, first)
        assert scheduler.table.map_tasks[0].state == TaskState.COMPLETED
        # The duplicate still behaves as a poll.
        assert response.phase == Phase.MAP
        assert response.task_id == 2

    def test_report_for_idle_task_is_noop(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt"])
        ref = TaskRef(task_id=0, kind=TaskKind.MAP)

        scheduler.request_task(TaskRequest.report(ref))
        assert scheduler.table.map_tasks[0].state == TaskState.IN_PROGRESS
        assert scheduler.table.map_tasks[0].attempt == 1

    def test_report_without_attempt_accepted(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt", "b.txt"])
        poll(scheduler)

        scheduler.request_task(TaskRequest.report(TaskRef(task_id=0, kind=TaskKind.MAP)))
        assert scheduler.table.map_tasks[0].state == TaskState.COMPLETED

    def test_stale_report_ignored_while_reassigned(self, make_scheduler, clock):
        scheduler = make_scheduler(files=["a.txt"], timeout=10.0)
        stale = poll(scheduler, "slow")
        clock.advance(10)
        fresh = poll(scheduler, "fast")
        assert fresh.task_id == stale.task_id
        assert fresh.attempt == 2

        report(scheduler, stale, "slow")
        task = scheduler.table.map_tasks[0]
        assert task.state == TaskState.IN_PROGRESS
        assert task.assigned_worker == "fast"

        report(scheduler, fresh, "fast")
        assert task.state == TaskState.COMPLETED

    def test_late_report_after_redo_keeps_completed(self, make_scheduler, clock):
        scheduler = make_scheduler(files=["a.txt", "b.txt"], timeout=10.0)
        slow = poll(scheduler, "slow")
        poll(scheduler, "other")
        clock.advance(11)

        redo = poll(scheduler, "fast")
        assert (redo.phase, redo.task_id) == (Phase.MAP, 0)
        report(scheduler, redo, "fast")

        response = report(scheduler, slow, "slow")
        assert scheduler.table.map_tasks[0].state == TaskState.COMPLETED
        assert response.phase in (Phase.MAP, Phase.WAIT)

    def test_unknown_task_rejected_without_state_change(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt"], reduce_count=1)
        poll(scheduler)

        with pytest.raises(UnknownTaskError):
            scheduler.request_task(TaskRequest.report(TaskRef(task_id=5, kind=TaskKind.REDUCE)))
        assert scheduler.table.map_tasks[0].state == TaskState.IN_PROGRESS
        assert scheduler.fatal_error is None


class TestReclaim:

    def test_not_reclaimed_before_timeout(self, make_scheduler, clock):
        scheduler = make_scheduler(files=["a.txt"], timeout=10.0)
        poll(scheduler)
        clock.advance(9.999)

        assert poll(scheduler).phase == Phase.WAIT
        assert scheduler.table.map_tasks[0].state == TaskState.IN_PROGRESS

    def test_reclaimed_exactly_at_timeout(self, make_scheduler, clock):
        scheduler = make_scheduler(files=["a.txt"], timeout=10.0)
        poll(scheduler, "dead")
        clock.advance(10)

        response = poll(scheduler, "alive")
        assert (response.phase, response.task_id, response.attempt) == (Phase.MAP, 0, 2)
        assert scheduler.table.map_tasks[0].assigned_at == clock.now

    def test_reduce_leases_reclaimed(self, make_scheduler, clock):
        scheduler = make_scheduler(files=["a.txt"], reduce_count=1, timeout=10.0)
        reduce_task = report(scheduler, poll(scheduler))
        assert reduce_task.phase == Phase.REDUCE

        clock.advance(10)
        response = poll(scheduler)
        assert (response.phase, response.task_id, response.attempt) == (Phase.REDUCE, 0, 2)

    def test_timeout_must_be_positive(self, make_scheduler):
        with pytest.raises(ValueError):
            make_scheduler(timeout=0)


class TestConcurrency:

    def test_concurrent_polls_never_share_a_task(self, make_scheduler):
        files = [f"in-{i}.txt" for i in range(20)]
        scheduler = make_scheduler(files=files, reduce_count=4)
        responses = []
        responses_lock = threading.Lock()
        barrier = threading.Barrier(8)

        def worker(worker_id):
            barrier.wait()
            for _ in range(5):
                response = poll(scheduler, worker_id)
                with responses_lock:
                    responses.append(response)

        threads = [threading.Thread(target=worker, args=(f"w{i}",)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assigned = [r.task_id for r in responses if r.phase == Phase.MAP]
        waits = [r for r in responses if r.phase == Phase.WAIT]
        assert sorted(assigned) == list(range(20))
        assert len(waits) == 40 - 20
        assert all(r.phase != Phase.REDUCE for r in responses)


class TestFatalErrors:

    def test_invariant_violation_halts_scheduler(self, make_scheduler, clock):
        scheduler = make_scheduler(files=["a.txt"], reduce_count=2)
        # Corrupt the table: a reduce lease while still mapping.
        scheduler.table.reduce_tasks[0].assign(clock())

        with pytest.raises(TaskTableInvariantError):
            poll(scheduler)
        assert isinstance(scheduler.fatal_error, TaskTableInvariantError)

        with pytest.raises(SchedulerHaltedError):
            poll(scheduler)
