import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from leasemr.coordinator.models import JobPhase, Task, TaskState, TaskTable
from leasemr.coordinator.utils.logger import get_logger
from leasemr.protocol import (
    JobStatus,
    SchedulerHaltedError,
    TaskKind,
    TaskRef,
    TaskRequest,
    TaskResponse,
    TaskTableInvariantError,
    UnknownTaskError,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Scheduler:
    """
    Single source of truth for task assignment.

    Workers poll through `request_task`. Each call reports an optional completion,
    reclaims leases older than the task timeout, and hands out the lowest-index
    IDLE task of the active kind. The whole call runs under one lock over the task
    table, so assignment and completion are linearized and no two pollers ever get
    the same IDLE task. The critical section only scans M + R tasks; it never does
    I/O.

    There is no heartbeat: a worker that does not report before its lease expires
    is presumed dead and its task becomes assignable again.
    """

    def __init__(
        self,
        input_files: Sequence[str],
        reduce_count: int,
        task_timeout: float = 10.0,
        wait_delay: float = 3.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the scheduler with a fresh, entirely IDLE task table.

        Args:
            input_files (Sequence[str]): One map task per file, in order.
            reduce_count (int): Number of reduce buckets R.
            task_timeout (float): Lease timeout in seconds.
            wait_delay (float): Retry delay returned with WAIT instructions.
            clock (Callable[[], datetime]): Wall clock used for lease stamps.
        """
        if task_timeout <= 0:
            raise ValueError("task_timeout must be positive")
        self.table = TaskTable.create(input_files, reduce_count)
        self.task_timeout = timedelta(seconds=task_timeout)
        self.wait_delay = wait_delay
        self.clock = clock
        self.fatal_error: Optional[BaseException] = None
        self._lock = threading.Lock()
        self.logger = get_logger(__name__)
        self.logger.info(
            f"Scheduler created: {self.table.map_count} map tasks, "
            f"{self.table.reduce_count} reduce tasks, timeout {task_timeout}s"
        )

    @classmethod
    def from_settings(cls, input_files: Sequence[str], reduce_count: int, settings) -> "Scheduler":
        return cls(
            input_files,
            reduce_count,
            task_timeout=settings.task_timeout_seconds,
            wait_delay=settings.wait_delay_seconds,
        )

    def request_task(self, request: TaskRequest) -> TaskResponse:
        """
        Answer a worker poll, optionally recording a completion first.

        Args:
            request (TaskRequest): Poll, possibly carrying a completed task ref.

        Returns:
            TaskResponse: An assignment, a WAIT instruction, or DONE.

        Raises:
            UnknownTaskError: If the reported task does not exist.
            SchedulerHaltedError: If a previous call hit an invariant violation.
        """
        with self._lock:
            self._ensure_healthy()
            try:
                now = self.clock()
                if request.task_ref is not None:
                    self._record_completion(request.task_ref, request.worker_id)
                response = self._next_instruction(now, request.worker_id)
                self.table.check_consistency()
                return response
            except TaskTableInvariantError as e:
                self._halt(e)
                raise

    def is_job_done(self) -> bool:
        with self._lock:
            return self.table.phase == JobPhase.DONE

    def snapshot(self) -> JobStatus:
        """Return per-kind task counts and the current phase."""
        with self._lock:
            return JobStatus(
                phase=self.table.phase.value,
                map_count=self.table.map_count,
                reduce_count=self.table.reduce_count,
                map_tasks=self.table.kind_status(TaskKind.MAP),
                reduce_tasks=self.table.kind_status(TaskKind.REDUCE),
                done=self.table.phase == JobPhase.DONE,
            )

    def _ensure_healthy(self):
        if self.fatal_error is not None:
            raise SchedulerHaltedError(f"scheduler halted: {self.fatal_error}")

    def _halt(self, error: BaseException):
        self.fatal_error = error
        self.logger.critical(f"Task table invariant violated, halting scheduler: {error}")

    def _record_completion(self, ref: TaskRef, worker_id: Optional[str]):
        try:
            task = self.table.get_task(ref.kind, ref.task_id)
        except IndexError as e:
            raise UnknownTaskError(str(e)) from e

        if task.state != TaskState.IN_PROGRESS:
            self.logger.info(
                f"Ignoring report for {ref.kind.value} task {ref.task_id} "
                f"from {worker_id or 'worker'}: task is {task.state.value}"
            )
            return
        if ref.attempt is not None and ref.attempt != task.attempt:
            self.logger.info(
                f"Ignoring stale report for {ref.kind.value} task {ref.task_id} "
                f"(attempt {ref.attempt}, current attempt {task.attempt})"
            )
            return

        task.complete()
        self.logger.info(f"{ref.kind.value.capitalize()} task {ref.task_id} completed")

    def _next_instruction(self, now: datetime, worker_id: Optional[str]) -> TaskResponse:
        while self.table.phase != JobPhase.DONE:
            tasks = self.table.tasks_of(self.table.active_kind())
            self._reclaim_expired(tasks, now)

            idle = next((t for t in tasks if t.state == TaskState.IDLE), None)
            if idle is not None:
                return self._assign(idle, now, worker_id)

            if any(t.state == TaskState.IN_PROGRESS for t in tasks):
                return TaskResponse.wait(self.wait_delay)

            phase = self.table.advance_phase()
            self.logger.info(f"Job advanced to phase {phase.value}")

        return TaskResponse.done()

    def _reclaim_expired(self, tasks: List[Task], now: datetime):
        for task in tasks:
            if task.is_expired(now, self.task_timeout):
                self.logger.warning(
                    f"{task.kind.value.capitalize()} task {task.task_id} lease "
                    f"(attempt {task.attempt}, worker {task.assigned_worker}) expired, reclaiming"
                )
                task.reclaim()

    def _assign(self, task: Task, now: datetime, worker_id: Optional[str]) -> TaskResponse:
        if task.kind == TaskKind.REDUCE and self.table.phase == JobPhase.MAPPING:
            raise TaskTableInvariantError("reduce task assigned while mapping")
        task.assign(now, worker_id)
        self.logger.info(
            f"{task.kind.value.capitalize()} task {task.task_id} assigned to "
            f"{worker_id or 'worker'} (attempt {task.attempt})"
        )
        return TaskResponse.assign(
            kind=task.kind,
            task_id=task.task_id,
            input_ref=task.input_ref,
            reduce_count=self.table.reduce_count,
            map_count=self.table.map_count,
            attempt=task.attempt,
        )
