import os
import socket
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache

from leasemr.protocol import default_socket_path


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class WorkerSettings(BaseSettings):
    worker_id: str = Field(default_factory=default_worker_id, description="Unique worker id")
    coordinator_host: str = Field("127.0.0.1", description="Coordinator host")
    coordinator_port: int = Field(8000, description="Coordinator port")
    use_unix_socket: bool = Field(False, description="Reach the coordinator over a Unix socket")
    socket_path: Optional[str] = Field(None, description="Unix socket path of the coordinator")
    work_dir: str = Field(".", description="Directory holding intermediate and output files")
    request_timeout: float = Field(30.0, description="Timeout of one coordinator request (seconds)")
    max_retries: int = Field(5, ge=1, description="Attempts per coordinator request")
    backoff_base: float = Field(0.5, ge=0, description="First retry delay (seconds)")
    backoff_max: float = Field(8.0, ge=0, description="Upper bound of the retry delay (seconds)")
    default_wait_seconds: float = Field(3.0, ge=0, description="Sleep on WAIT when no delay is suggested")
    metrics_port: Optional[int] = Field(None, description="Prometheus metrics port, disabled when unset")
    log_level: str = Field("info", description="Logging level")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "LEASEMR_WORKER_"
        extra = "ignore"

    @property
    def coordinator_url(self) -> str:
        if self.use_unix_socket:
            # Host is ignored by the Unix socket transport.
            return "http://coordinator"
        return f"http://{self.coordinator_host}:{self.coordinator_port}"

    @property
    def resolved_socket_path(self) -> Optional[str]:
        if not self.use_unix_socket:
            return None
        return self.socket_path or default_socket_path()


@lru_cache()
def get_settings() -> WorkerSettings:
    return WorkerSettings()
