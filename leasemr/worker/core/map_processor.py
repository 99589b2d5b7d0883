# Standard library imports for type hints
from pathlib import Path
from typing import List

# Internal imports for task execution and data management
from leasemr.protocol import TaskExecutionError, TaskResponse
from leasemr.worker.core.partitioning import partition
from leasemr.worker.services.app_loader import MapReduceApp
from leasemr.worker.services.data_manager import DataManager
from leasemr.worker.utils.logger import get_logger


class MapProcessor:
    """
    Executes one map assignment.

    1. Reads the whole input file named by the assignment
    2. Runs the application's map function on it
    3. Partitions the pairs into R buckets by key hash
    4. Publishes every bucket atomically as ``mr-<map_id>-<bucket>``

    Empty buckets are published too, so a reduce task can tell a map task
    that emitted nothing for its bucket from one that never finished.
    """

    def __init__(self, app: MapReduceApp, data_manager: DataManager):
        self.app = app
        self.data_manager = data_manager
        self.logger = get_logger(__name__)

    async def process(self, assignment: TaskResponse) -> List[Path]:
        """
        Execute a map assignment.

        Args:
            assignment: MAP response carrying task id, input file and R

        Returns:
            Paths of the R published intermediate files

        Raises:
            TaskExecutionError: If the assignment is malformed
            OSError: If the input cannot be read or a bucket cannot be written
        """
        if not assignment.input_ref or assignment.reduce_count < 1:
            raise TaskExecutionError(f"Malformed map assignment: {assignment}")

        contents = await self.data_manager.read_input(assignment.input_ref)
        pairs = self.app.run_map(assignment.input_ref, contents)
        buckets = partition(pairs, assignment.reduce_count)

        output_files = []
        for bucket, bucket_pairs in buckets.items():
            path = await self.data_manager.write_intermediate(assignment.task_id, bucket, bucket_pairs)
            output_files.append(path)

        self.logger.info(
            f"Map task {assignment.task_id}: {len(pairs)} pairs from "
            f"{assignment.input_ref} into {len(output_files)} buckets"
        )
        return output_files
