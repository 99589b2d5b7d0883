# Standard library imports for enumeration and type hints
from enum import Enum
from typing import List, Sequence

# Third-party imports for data validation
from pydantic import BaseModel

# Internal imports
from leasemr.protocol import KindStatus, TaskKind, TaskTableInvariantError
from .task import Task, TaskState


class JobPhase(str, Enum):
    """
    Enumeration of job-wide stages, derived from aggregate task state.

    - MAPPING: Some map task is not COMPLETED
    - REDUCING: Every map task is COMPLETED, some reduce task is not
    - DONE: Every reduce task is COMPLETED
    """
    MAPPING = "mapping"
    REDUCING = "reducing"
    DONE = "done"


class TaskTable(BaseModel):
    """
    In-memory record of every map and reduce task of one job.

    The table is pure data. It is owned by a single scheduler and mutated only
    while that scheduler holds its lock. `phase` is stored so the scheduler can
    advance it explicitly, and `derive_phase` recomputes it from task states so
    the two can be checked against each other.
    """

    map_tasks: List[Task]
    reduce_tasks: List[Task]
    phase: JobPhase = JobPhase.MAPPING

    @classmethod
    def create(cls, input_files: Sequence[str], reduce_count: int) -> "TaskTable":
        """
        Build a table with one IDLE map task per input file and `reduce_count`
        IDLE reduce tasks.

        Raises:
            ValueError: If there are no input files or `reduce_count` < 1.
        """
        if not input_files:
            raise ValueError("at least one input file is required")
        if reduce_count < 1:
            raise ValueError("reduce_count must be at least 1")

        map_tasks = [
            Task(task_id=index, kind=TaskKind.MAP, input_ref=str(path))
            for index, path in enumerate(input_files)
        ]
        reduce_tasks = [
            Task(task_id=index, kind=TaskKind.REDUCE) for index in range(reduce_count)
        ]
        return cls(map_tasks=map_tasks, reduce_tasks=reduce_tasks)

    @property
    def map_count(self) -> int:
        return len(self.map_tasks)

    @property
    def reduce_count(self) -> int:
        return len(self.reduce_tasks)

    def tasks_of(self, kind: TaskKind) -> List[Task]:
        return self.map_tasks if kind == TaskKind.MAP else self.reduce_tasks

    def get_task(self, kind: TaskKind, task_id: int) -> Task:
        """
        Look up a task by kind and index.

        Raises:
            IndexError: If `task_id` is out of range for `kind`.
        """
        tasks = self.tasks_of(kind)
        if not 0 <= task_id < len(tasks):
            raise IndexError(f"no {kind.value} task {task_id} (have {len(tasks)})")
        return tasks[task_id]

    def active_kind(self) -> TaskKind:
        """Kind of task the current phase schedules."""
        return TaskKind.MAP if self.phase == JobPhase.MAPPING else TaskKind.REDUCE

    def derive_phase(self) -> JobPhase:
        if not all(task.is_completed for task in self.map_tasks):
            return JobPhase.MAPPING
        if not all(task.is_completed for task in self.reduce_tasks):
            return JobPhase.REDUCING
        return JobPhase.DONE

    def advance_phase(self) -> JobPhase:
        """
        Move to the next phase once every task of the active kind is COMPLETED.

        Raises:
            TaskTableInvariantError: If the job is already DONE or the active kind
                still has unfinished tasks.
        """
        if self.phase == JobPhase.DONE:
            raise TaskTableInvariantError("cannot advance a finished job")
        pending = [t.task_id for t in self.tasks_of(self.active_kind()) if not t.is_completed]
        if pending:
            raise TaskTableInvariantError(
                f"cannot leave {self.phase.value} with unfinished tasks {pending}"
            )
        self.phase = JobPhase.REDUCING if self.phase == JobPhase.MAPPING else JobPhase.DONE
        return self.phase

    def check_consistency(self):
        """Raise TaskTableInvariantError if the stored phase disagrees with task states."""
        derived = self.derive_phase()
        # The stored phase may lag by one step until the next scheduling pass advances it.
        order = [JobPhase.MAPPING, JobPhase.REDUCING, JobPhase.DONE]
        if order.index(self.phase) > order.index(derived):
            raise TaskTableInvariantError(
                f"stored phase {self.phase.value} is ahead of task states ({derived.value})"
            )
        if self.phase == JobPhase.MAPPING and any(
            t.state != TaskState.IDLE for t in self.reduce_tasks
        ):
            raise TaskTableInvariantError("reduce task leased while still mapping")

    def kind_status(self, kind: TaskKind) -> KindStatus:
        tasks = self.tasks_of(kind)
        return KindStatus(
            total=len(tasks),
            idle=sum(1 for t in tasks if t.state == TaskState.IDLE),
            in_progress=sum(1 for t in tasks if t.state == TaskState.IN_PROGRESS),
            completed=sum(1 for t in tasks if t.state == TaskState.COMPLETED),
        )
