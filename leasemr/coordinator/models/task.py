# Standard library imports for enumeration, timing and type hints
from enum import Enum
from datetime import datetime, timedelta
from typing import Optional

# Third-party imports for data validation
from pydantic import BaseModel

# Internal imports shared with the worker side
from leasemr.protocol import TaskKind, TaskTableInvariantError


class TaskState(str, Enum):
    """
    Enumeration of task lifecycle states.

    Task lifecycle flow:
    IDLE → IN_PROGRESS → COMPLETED
    IN_PROGRESS → IDLE (lease expired, task reclaimed)

    - IDLE: Task is assignable
    - IN_PROGRESS: Task is leased to a worker since `assigned_at`
    - COMPLETED: Task finished; terminal, never reassigned
    """
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Task(BaseModel):
    """
    Data model representing a single Map or Reduce task in the task table.

    The task table only tracks metadata. Task payloads (input contents,
    intermediate pairs, outputs) never pass through the coordinator.
    """

    # === Task Identification ===
    task_id: int                                # Index within its kind, stable for the task's lifetime
    kind: TaskKind                              # MAP or REDUCE

    # === Data Configuration ===
    input_ref: str = ""                         # Source file for MAP tasks, empty for REDUCE tasks

    # === Task State Tracking ===
    state: TaskState = TaskState.IDLE           # Current lifecycle state
    assigned_at: Optional[datetime] = None      # Start of the current lease, None unless IN_PROGRESS
    assigned_worker: Optional[str] = None       # Worker holding the current lease, if it identified itself
    attempt: int = 0                            # Number of leases handed out so far

    def assign(self, now: datetime, worker_id: Optional[str] = None):
        """
        Lease this task to a worker.

        Args:
            now (datetime): Lease start time.
            worker_id (Optional[str]): Identifier of the worker receiving it.

        Raises:
            TaskTableInvariantError: If the task is not IDLE.
        """
        if self.state != TaskState.IDLE:
            raise TaskTableInvariantError(
                f"cannot assign {self.kind.value} task {self.task_id} in state {self.state.value}"
            )
        self.state = TaskState.IN_PROGRESS
        self.assigned_at = now
        self.assigned_worker = worker_id
        self.attempt += 1

    def complete(self):
        """Mark an IN_PROGRESS task as COMPLETED."""
        if self.state != TaskState.IN_PROGRESS:
            raise TaskTableInvariantError(
                f"cannot complete {self.kind.value} task {self.task_id} in state {self.state.value}"
            )
        self.state = TaskState.COMPLETED

    def reclaim(self):
        """Return an expired IN_PROGRESS task to IDLE so it can be reassigned."""
        if self.state != TaskState.IN_PROGRESS:
            raise TaskTableInvariantError(
                f"cannot reclaim {self.kind.value} task {self.task_id} in state {self.state.value}"
            )
        self.state = TaskState.IDLE
        self.assigned_at = None
        self.assigned_worker = None

    def is_expired(self, now: datetime, timeout: timedelta) -> bool:
        """True once an IN_PROGRESS lease is at least `timeout` old."""
        if self.state != TaskState.IN_PROGRESS:
            return False
        if self.assigned_at is None:
            raise TaskTableInvariantError(
                f"{self.kind.value} task {self.task_id} is in progress without a lease start"
            )
        return now - self.assigned_at >= timeout

    @property
    def is_completed(self) -> bool:
        return self.state == TaskState.COMPLETED
