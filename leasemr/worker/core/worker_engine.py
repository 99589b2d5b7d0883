import asyncio
import time
from typing import Optional

from leasemr.protocol import Phase, TaskRequest, TaskResponse
from leasemr.worker.core.map_processor import MapProcessor
from leasemr.worker.core.reduce_processor import ReduceProcessor
from leasemr.worker.services.app_loader import MapReduceApp
from leasemr.worker.services.coordinator_client import CoordinatorClient
from leasemr.worker.services.data_manager import DataManager
from leasemr.worker.utils.config import WorkerSettings, get_settings
from leasemr.worker.utils.logger import get_logger
from leasemr.worker.utils.metrics import MetricsCollector


class WorkerEngine:
    """
    Poll / execute / report loop of one stateless worker.

    The only state kept between polls is the reference of the task just
    executed, which rides on the next poll as its completion report. A failed
    attempt is abandoned without reporting; the coordinator reclaims the task
    once its lease expires.
    """

    def __init__(
        self,
        client: CoordinatorClient,
        app: MapReduceApp,
        data_manager: Optional[DataManager] = None,
        settings: Optional[WorkerSettings] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.client = client
        self.app = app
        self.settings = settings or get_settings()
        self.data_manager = data_manager or DataManager(self.settings.work_dir)
        self.metrics = metrics or MetricsCollector()
        self.logger = get_logger(__name__)

        self.map_processor = MapProcessor(app, self.data_manager)
        self.reduce_processor = ReduceProcessor(app, self.data_manager)

        self.tasks_completed = 0
        self.tasks_abandoned = 0

    async def run(self) -> int:
        """
        Work until the coordinator answers DONE.

        Returns:
            int: Number of assignments this worker executed and reported.

        Raises:
            CoordinatorUnavailableError: If the coordinator cannot be reached.
            ProtocolError: If the coordinator rejects a request.
        """
        self.data_manager.prepare()
        worker_id = self.settings.worker_id
        self.logger.info(f"Worker {worker_id} starting with application {self.app.name}")

        request = TaskRequest.poll(worker_id)
        while True:
            self.metrics.record_poll()
            response = await self.client.request_task(request)

            if response.phase == Phase.DONE:
                self.logger.info(
                    f"Worker {worker_id} done: {self.tasks_completed} tasks completed, "
                    f"{self.tasks_abandoned} abandoned"
                )
                return self.tasks_completed

            if response.phase == Phase.WAIT:
                delay = response.retry_after
                if delay < 0:
                    delay = self.settings.default_wait_seconds
                self.logger.debug(f"No assignable task, waiting {delay}s")
                await asyncio.sleep(delay)
                request = TaskRequest.poll(worker_id)
                continue

            request = await self._execute(response)

    async def _execute(self, assignment: TaskResponse) -> TaskRequest:
        """
        Run one assignment and build the next request.

        Returns:
            TaskRequest: A completion report on success, a plain poll after an
                abandoned attempt.
        """
        worker_id = self.settings.worker_id
        kind = assignment.phase.value
        started = time.monotonic()
        self.logger.info(f"Executing {kind} task {assignment.task_id} (attempt {assignment.attempt})")

        try:
            if assignment.phase == Phase.MAP:
                await self.map_processor.process(assignment)
            else:
                await self.reduce_processor.process(assignment)
        except Exception as e:
            self.tasks_abandoned += 1
            self.metrics.record_abandoned(kind)
            self.logger.error(
                f"Abandoning {kind} task {assignment.task_id} (attempt {assignment.attempt}): {e!r}"
            )
            return TaskRequest.poll(worker_id)

        self.tasks_completed += 1
        self.metrics.record_completed(kind, time.monotonic() - started)
        return TaskRequest.report(assignment.task_ref, worker_id)
