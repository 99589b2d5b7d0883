import json
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

import aiofiles
import aiofiles.os

from leasemr.protocol import KeyValue
from leasemr.worker.utils.logger import get_logger
from leasemr.worker.utils.config import get_settings


def intermediate_name(map_task_id: int, bucket: int) -> str:
    """Name of the artifact holding bucket `bucket` of map task `map_task_id`."""
    return f"mr-{map_task_id}-{bucket}"


def output_name(reduce_task_id: int) -> str:
    """Name of the final artifact of reduce task `reduce_task_id`."""
    return f"mr-out-{reduce_task_id}"


class DataManager:
    """
    File access layer of a worker.

    Artifacts are named only by task ids, so every attempt at the same task
    targets the same final path. Writes go to a private temporary file in the
    same directory and are published with an atomic rename: readers see either
    no file or a complete one, and when two attempts race the last rename wins
    with an equally valid result.
    """

    def __init__(self, work_dir: Optional[str] = None):
        """
        Args:
            work_dir (Optional[str]): Directory for intermediate and output
                artifacts; defaults to the configured `work_dir`.
        """
        self.work_dir = Path(work_dir or get_settings().work_dir)
        self.logger = get_logger(__name__)

    def prepare(self):
        self.work_dir.mkdir(parents=True, exist_ok=True)

    def intermediate_path(self, map_task_id: int, bucket: int) -> Path:
        return self.work_dir / intermediate_name(map_task_id, bucket)

    def output_path(self, reduce_task_id: int) -> Path:
        return self.work_dir / output_name(reduce_task_id)

    async def read_input(self, input_ref: str) -> str:
        """
        Read the whole content of a map input file.

        Relative references are resolved against the current directory, the
        way the coordinator received them. Bytes that are not valid UTF-8 are
        decoded as U+FFFD so any input file can be mapped.
        """
        async with aiofiles.open(input_ref, 'r', encoding='utf-8', errors='replace') as f:
            return await f.read()

    async def write_intermediate(self, map_task_id: int, bucket: int, pairs: Iterable[KeyValue]) -> Path:
        """Persist one bucket of map output as JSON lines."""
        lines = [json.dumps({"key": kv.key, "value": kv.value}) + '\n' for kv in pairs]
        path = self.intermediate_path(map_task_id, bucket)
        await self.write_atomic(path, lines)
        return path

    async def read_intermediate(self, map_task_id: int, bucket: int) -> List[KeyValue]:
        """
        Load one bucket written by a map task.

        Raises:
            FileNotFoundError: If the map task never published this bucket.
            ValueError: If a record is not a JSON object with 'key' and 'value'.
        """
        path = self.intermediate_path(map_task_id, bucket)
        pairs = []
        async with aiofiles.open(path, 'r', encoding='utf-8') as f:
            async for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                    pairs.append(KeyValue(record["key"], record["value"]))
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    raise ValueError(f"Invalid record in {path}: {line!r}") from e
        return pairs

    async def write_output(self, reduce_task_id: int, results: Iterable[KeyValue]) -> Path:
        """Persist reduce results as '<key> <value>' lines."""
        lines = [f"{kv.key} {kv.value}\n" for kv in results]
        path = self.output_path(reduce_task_id)
        await self.write_atomic(path, lines)
        return path

    async def write_atomic(self, path: Path, lines: List[str]):
        """
        Write `lines` to a temporary file next to `path`, then rename it into place.

        On any failure the temporary file is removed and the error propagates;
        `path` is left untouched.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        os.close(fd)
        try:
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.writelines(lines)
                await f.flush()
            await aiofiles.os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise
        self.logger.debug(f"Published {path} ({len(lines)} lines)")
