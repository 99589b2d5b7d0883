# Standard library imports for data structures and type hints
from collections import defaultdict
from pathlib import Path
from typing import Dict, List

# Internal imports for task execution and data management
from leasemr.protocol import KeyValue, TaskExecutionError, TaskResponse
from leasemr.worker.services.app_loader import MapReduceApp
from leasemr.worker.services.data_manager import DataManager
from leasemr.worker.utils.logger import get_logger


class ReduceProcessor:
    """
    Executes one reduce assignment.

    The bucket id equals the reduce task id. The processor reads that bucket
    from every one of the M map tasks, groups all values by key, then calls the
    reduce function once per distinct key in sorted key order. Grouping is
    complete before any reduce call, so a key is never split across calls or
    across output files.
    """

    def __init__(self, app: MapReduceApp, data_manager: DataManager):
        self.app = app
        self.data_manager = data_manager
        self.logger = get_logger(__name__)

    async def process(self, assignment: TaskResponse) -> Path:
        """
        Execute a reduce assignment.

        Args:
            assignment: REDUCE response carrying the bucket id and M

        Returns:
            Path of the published ``mr-out-<reduce_id>`` file

        Raises:
            TaskExecutionError: If the assignment is malformed
            FileNotFoundError: If some map task's bucket is missing
            ValueError: If an intermediate record cannot be decoded
        """
        if assignment.map_count < 1:
            raise TaskExecutionError(f"Malformed reduce assignment: {assignment}")

        grouped = await self._collect(assignment.task_id, assignment.map_count)

        results = [
            KeyValue(key, self.app.run_reduce(key, grouped[key]))
            for key in sorted(grouped)
        ]
        path = await self.data_manager.write_output(assignment.task_id, results)

        self.logger.info(
            f"Reduce task {assignment.task_id}: {len(results)} keys from {assignment.map_count} map outputs"
        )
        return path

    async def _collect(self, bucket: int, map_count: int) -> Dict[str, List[str]]:
        grouped = defaultdict(list)
        total_records = 0
        for map_task_id in range(map_count):
            for kv in await self.data_manager.read_intermediate(map_task_id, bucket):
                grouped[kv.key].append(kv.value)
                total_records += 1
        self.logger.debug(f"Grouped {total_records} records into {len(grouped)} keys")
        return dict(grouped)
