from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache

from leasemr.protocol import default_socket_path


class CoordinatorSettings(BaseSettings):
    """
    Global configuration class for the leasemr coordinator.

    This class leverages Pydantic BaseSettings to automatically load
    configuration values from environment variables (prefixed with
    `LEASEMR_COORDINATOR_`) or an `.env` file.

    Attributes:
        host (str): Host address the HTTP server binds when using TCP.
        port (int): Port number of the HTTP server when using TCP.
        use_unix_socket (bool): Serve on a Unix socket instead of TCP.
        socket_path (Optional[str]): Unix socket path; defaults to the per-user rendezvous path.
        task_timeout_seconds (float): Age at which an unreported lease is reclaimed.
        wait_delay_seconds (float): Retry delay suggested to workers told to wait.
        done_poll_interval (float): How often the process checks whether the job is done.
        shutdown_grace_seconds (float): How long to keep answering DONE before exiting.
        log_level (str): Logging level for the application (e.g., info, debug, error).
    """
    host: str = Field("127.0.0.1", description="Host for the HTTP server")
    port: int = Field(8000, description="Port for the HTTP server")
    use_unix_socket: bool = Field(False, description="Serve on a Unix socket instead of TCP")
    socket_path: Optional[str] = Field(None, description="Unix socket path")
    task_timeout_seconds: float = Field(10.0, gt=0, description="Lease timeout before reclaim")
    wait_delay_seconds: float = Field(3.0, ge=0, description="Retry delay returned with WAIT")
    done_poll_interval: float = Field(1.0, gt=0, description="Interval of the job-done check")
    shutdown_grace_seconds: float = Field(3.0, ge=0, description="Time to keep serving after DONE")
    log_level: str = Field("info", description="Logging level")

    class Config:
        """
        Configuration for environment variable loading.

        - `env_file`: Path to the environment file to load variables from.
        - `env_file_encoding`: Encoding for the environment file.
        - `env_prefix`: Prefix shared by every coordinator variable.
        """
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "LEASEMR_COORDINATOR_"
        extra = "ignore"

    @property
    def resolved_socket_path(self) -> Optional[str]:
        if not self.use_unix_socket:
            return None
        return self.socket_path or default_socket_path()


@lru_cache()
def get_settings() -> CoordinatorSettings:
    """
    Retrieve a cached instance of the coordinator settings.

    Returns:
        CoordinatorSettings: The global coordinator configuration.
    """
    return CoordinatorSettings()
