# Standard library imports for enumeration and type hints
from enum import Enum
from typing import NamedTuple, Optional

# Third-party imports for data validation
from pydantic import BaseModel, Field, model_validator


class TaskKind(str, Enum):
    """
    Enumeration of MapReduce task kinds.

    - MAP: Tasks that turn one input file into bucketed intermediate pairs
    - REDUCE: Tasks that merge one bucket of every map output into a final file
    """
    MAP = "map"
    REDUCE = "reduce"


class Phase(str, Enum):
    """
    Instruction returned to a polling worker.

    - MAP / REDUCE: an assignment of that kind is attached
    - WAIT: work is outstanding but nothing is assignable yet
    - DONE: the job has finished, the worker may exit
    """
    MAP = "map"
    REDUCE = "reduce"
    WAIT = "wait"
    DONE = "done"


class Intent(str, Enum):
    """Why a worker is calling: a plain poll, or a poll carrying a completion."""
    POLL = "poll"
    REPORT_COMPLETION = "report_completion"


class KeyValue(NamedTuple):
    """Intermediate pair emitted by a map function."""
    key: str
    value: str


class TaskRef(BaseModel):
    """
    Reference to a task a worker claims to have completed.

    `attempt` identifies the lease the worker was handed. When present the
    coordinator ignores the report if the task has since been reassigned.
    """
    task_id: int = Field(..., ge=0, description="Task index within its kind")
    kind: TaskKind = Field(..., description="Kind of the referenced task")
    attempt: Optional[int] = Field(None, ge=1, description="Lease number of the assignment")


class TaskRequest(BaseModel):
    """
    Request payload of the `request_task` call.

    Completion is carried on the next poll rather than through a separate call,
    so a single request both reports and asks for more work.
    """
    intent: Intent = Field(Intent.POLL, description="Plain poll or completion report")
    task_ref: Optional[TaskRef] = Field(None, description="Task being reported as completed")
    worker_id: Optional[str] = Field(None, description="Identifier of the calling worker")

    @model_validator(mode="after")
    def check_intent(self) -> "TaskRequest":
        if self.intent == Intent.REPORT_COMPLETION and self.task_ref is None:
            raise ValueError("report_completion requires a task_ref")
        if self.intent == Intent.POLL and self.task_ref is not None:
            raise ValueError("poll must not carry a task_ref")
        return self

    @classmethod
    def poll(cls, worker_id: Optional[str] = None) -> "TaskRequest":
        return cls(intent=Intent.POLL, worker_id=worker_id)

    @classmethod
    def report(cls, task_ref: TaskRef, worker_id: Optional[str] = None) -> "TaskRequest":
        return cls(intent=Intent.REPORT_COMPLETION, task_ref=task_ref, worker_id=worker_id)


class TaskResponse(BaseModel):
    """
    Response payload of the `request_task` call.

    Fields that are not meaningful for the returned phase hold sentinels
    (-1 for numbers, an empty string for the input reference). A negative
    `retry_after` on WAIT leaves the delay to the worker.
    """
    phase: Phase
    task_id: int = -1
    input_ref: str = ""
    reduce_count: int = -1
    map_count: int = -1
    attempt: int = 0
    retry_after: float = -1.0

    @classmethod
    def assign(
        cls,
        kind: TaskKind,
        task_id: int,
        input_ref: str,
        reduce_count: int,
        map_count: int,
        attempt: int,
    ) -> "TaskResponse":
        return cls(
            phase=Phase(kind.value),
            task_id=task_id,
            input_ref=input_ref,
            reduce_count=reduce_count,
            map_count=map_count,
            attempt=attempt,
        )

    @classmethod
    def wait(cls, retry_after: float) -> "TaskResponse":
        return cls(phase=Phase.WAIT, retry_after=retry_after)

    @classmethod
    def done(cls) -> "TaskResponse":
        return cls(phase=Phase.DONE)

    @property
    def is_assignment(self) -> bool:
        return self.phase in (Phase.MAP, Phase.REDUCE)

    @property
    def task_ref(self) -> Optional[TaskRef]:
        """Reference to echo back once the assignment has been executed."""
        if not self.is_assignment:
            return None
        return TaskRef(task_id=self.task_id, kind=TaskKind(self.phase.value), attempt=self.attempt)


class KindStatus(BaseModel):
    """Per-state task counts for one task kind."""
    total: int
    idle: int
    in_progress: int
    completed: int


class JobStatus(BaseModel):
    """Snapshot of the coordinator's task table, returned by the `status` call."""
    phase: str
    map_count: int
    reduce_count: int
    map_tasks: KindStatus
    reduce_tasks: KindStatus
    done: bool


class JobDoneResponse(BaseModel):
    """Response payload of the `is_job_done` call."""
    done: bool
