"""Tests for the coordinator process lifecycle."""
import asyncio

from leasemr.coordinator.main import CoordinatorServer, parse_args
from leasemr.coordinator.utils.config import CoordinatorSettings
from leasemr.protocol import TaskRequest


def fast_settings(**overrides):
    values = {"done_poll_interval": 0.01, "shutdown_grace_seconds": 0.0}
    values.update(overrides)
    return CoordinatorSettings(**values)


def finish_job(scheduler):
    response = scheduler.request_task(TaskRequest.poll())
    while response.is_assignment:
        response = scheduler.request_task(TaskRequest.report(response.task_ref))


class TestCoordinatorServer:

    def test_watch_stops_server_once_done(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt"], reduce_count=1)
        server = CoordinatorServer(scheduler, fast_settings())

        async def scenario():
            watcher = asyncio.create_task(server.watch_job())
            await asyncio.sleep(0.05)
            assert not server.server.should_exit
            finish_job(scheduler)
            await asyncio.wait_for(watcher, timeout=1.0)

        asyncio.run(scenario())
        assert server.server.should_exit

    def test_watch_stops_server_on_fatal_error(self, make_scheduler):
        scheduler = make_scheduler(files=["a.txt"], reduce_count=1)
        scheduler.fatal_error = RuntimeError("corrupted")
        server = CoordinatorServer(scheduler, fast_settings())

        asyncio.run(asyncio.wait_for(server.watch_job(), timeout=1.0))
        assert server.server.should_exit

    def test_unix_socket_config(self, make_scheduler, tmp_path):
        socket_path = str(tmp_path / "coordinator.sock")
        settings = fast_settings(use_unix_socket=True, socket_path=socket_path)
        server = CoordinatorServer(make_scheduler(), settings)

        assert server.server.config.uds == socket_path


class TestArguments:

    def test_parse_inputs_and_reduce_count(self):
        args = parse_args(["a.txt", "b.txt", "--reduce-count", "3"])
        assert args.inputs == ["a.txt", "b.txt"]
        assert args.reduce_count == 3
