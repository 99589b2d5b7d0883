# Standard library imports for async operations
import asyncio
from typing import Optional

# Third-party imports for HTTP client operations
import httpx

# Internal imports for the wire protocol, configuration and logging
from leasemr.protocol import (
    COORDINATOR_METHODS,
    CoordinatorUnavailableError,
    JobDoneResponse,
    ProtocolError,
    TaskRequest,
    TaskResponse,
)
from leasemr.worker.utils.config import WorkerSettings, get_settings
from leasemr.worker.utils.logger import get_logger


class CoordinatorClient:
    """
    HTTP client for worker-to-coordinator calls.

    Every coordinator call is stateless and safe to repeat, so transport errors
    and 5xx answers are retried with exponential backoff. When the retries run
    out the client raises CoordinatorUnavailableError; an unreachable
    coordinator is never reported as a finished job. 4xx answers mean the
    request itself is wrong and raise ProtocolError without retrying.
    """

    def __init__(
        self,
        settings: Optional[WorkerSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client from configuration.

        Args:
            settings: Worker configuration; defaults to the cached settings.
            transport: Explicit httpx transport, used to run against an
                in-process application or a Unix socket.
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self.client: Optional[httpx.AsyncClient] = None
        self._transport = transport

    async def start(self):
        """Open the underlying connection pool."""
        transport = self._transport
        socket_path = self.settings.resolved_socket_path
        if transport is None and socket_path:
            transport = httpx.AsyncHTTPTransport(uds=socket_path)
        self.client = httpx.AsyncClient(
            base_url=self.settings.coordinator_url,
            transport=transport,
            timeout=httpx.Timeout(self.settings.request_timeout),
        )
        self.logger.info(f"Coordinator client initialized for {socket_path or self.settings.coordinator_url}")

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None
            self.logger.info("Coordinator client closed")

    async def __aenter__(self) -> "CoordinatorClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def request_task(self, request: TaskRequest) -> TaskResponse:
        """
        Poll the coordinator, optionally reporting a completed task.

        Raises:
            CoordinatorUnavailableError: If the coordinator stays unreachable.
            ProtocolError: If the coordinator rejects the request.
        """
        method = COORDINATOR_METHODS["request_task"]
        data = await self._call(method.verb, method.url, json=request.model_dump(mode="json"))
        return TaskResponse.model_validate(data)

    async def is_job_done(self) -> bool:
        method = COORDINATOR_METHODS["is_job_done"]
        data = await self._call(method.verb, method.url)
        return JobDoneResponse.model_validate(data).done

    def _backoff(self, attempt: int) -> float:
        return min(self.settings.backoff_base * (2 ** attempt), self.settings.backoff_max)

    async def _call(self, verb: str, url: str, json: Optional[dict] = None) -> dict:
        if not self.client:
            await self.start()

        last_error: Optional[Exception] = None
        for attempt in range(self.settings.max_retries):
            try:
                response = await self.client.request(verb, url, json=json)
            except httpx.TransportError as e:
                last_error = e
                self.logger.warning(f"Coordinator unreachable ({e!r}), attempt {attempt + 1}/{self.settings.max_retries}")
            else:
                if response.status_code < 400:
                    return response.json()
                if response.status_code < 500:
                    raise ProtocolError(f"{verb} {url} rejected with {response.status_code}: {response.text}")
                last_error = httpx.HTTPStatusError(
                    f"Coordinator error {response.status_code}", request=response.request, response=response
                )
                self.logger.warning(
                    f"Coordinator answered {response.status_code}, attempt {attempt + 1}/{self.settings.max_retries}"
                )

            if attempt + 1 < self.settings.max_retries:
                await asyncio.sleep(self._backoff(attempt))

        raise CoordinatorUnavailableError(
            f"Coordinator unavailable after {self.settings.max_retries} attempts: {last_error}"
        ) from last_error
