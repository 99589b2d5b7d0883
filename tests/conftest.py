"""Shared fixtures: a controllable clock, scheduler factory, worker settings and inputs."""
from datetime import datetime, timedelta, timezone

import pytest

from leasemr.coordinator.core.scheduler import Scheduler
from leasemr.worker.utils.config import WorkerSettings


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_scheduler(clock):
    def factory(files=("a.txt", "b.txt"), reduce_count=2, timeout=10.0, wait_delay=3.0):
        return Scheduler(list(files), reduce_count, task_timeout=timeout, wait_delay=wait_delay, clock=clock)
    return factory


@pytest.fixture
def worker_settings(tmp_path):
    return WorkerSettings(
        worker_id="worker-test",
        work_dir=str(tmp_path / "work"),
        max_retries=3,
        backoff_base=0.0,
        backoff_max=0.0,
        default_wait_seconds=0.01,
    )


@pytest.fixture
def word_inputs(tmp_path):
    """The two-file word count scenario: a = 'x y x', b = 'y z'."""
    input_dir = tmp_path / "inputs"
    input_dir.mkdir()
    a = input_dir / "a"
    b = input_dir / "b"
    a.write_text("x y x", encoding="utf-8")
    b.write_text("y z", encoding="utf-8")
    return [str(a), str(b)]
