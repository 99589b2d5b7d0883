from .errors import (
    AppLoadError,
    CoordinatorUnavailableError,
    LeaseMRError,
    ProtocolError,
    SchedulerHaltedError,
    TaskExecutionError,
    TaskTableInvariantError,
    UnknownTaskError,
)
from .methods import API_PREFIX, COORDINATOR_METHODS, MethodSpec, default_socket_path
from .models import (
    Intent,
    JobDoneResponse,
    JobStatus,
    KeyValue,
    KindStatus,
    Phase,
    TaskKind,
    TaskRef,
    TaskRequest,
    TaskResponse,
)

__all__ = [
    "API_PREFIX",
    "AppLoadError",
    "COORDINATOR_METHODS",
    "CoordinatorUnavailableError",
    "Intent",
    "JobDoneResponse",
    "JobStatus",
    "KeyValue",
    "KindStatus",
    "LeaseMRError",
    "MethodSpec",
    "Phase",
    "ProtocolError",
    "SchedulerHaltedError",
    "TaskExecutionError",
    "TaskKind",
    "TaskRef",
    "TaskRequest",
    "TaskResponse",
    "TaskTableInvariantError",
    "UnknownTaskError",
    "default_socket_path",
]
