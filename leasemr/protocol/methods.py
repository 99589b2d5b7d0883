import os
from typing import Dict, NamedTuple, Optional, Type

from pydantic import BaseModel

from .models import JobDoneResponse, JobStatus, TaskRequest, TaskResponse

API_PREFIX = "/api/v1"


class MethodSpec(NamedTuple):
    """HTTP binding and payload shapes of one coordinator call."""
    verb: str
    path: str
    request_model: Optional[Type[BaseModel]]
    response_model: Type[BaseModel]

    @property
    def url(self) -> str:
        return f"{API_PREFIX}{self.path}"


# Every call a worker or operator can make on the coordinator.
COORDINATOR_METHODS: Dict[str, MethodSpec] = {
    "request_task": MethodSpec("POST", "/tasks/request", TaskRequest, TaskResponse),
    "is_job_done": MethodSpec("GET", "/job/done", None, JobDoneResponse),
    "status": MethodSpec("GET", "/status", None, JobStatus),
}


def default_socket_path() -> str:
    """
    Rendezvous Unix socket shared by the coordinator and its workers.

    Derived from the invoking user so several users on one host do not collide.
    """
    return f"/var/tmp/leasemr-{os.getuid()}"
