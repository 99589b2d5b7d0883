import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
import uvicorn

from leasemr import __version__
from leasemr.coordinator.api.routes import router
from leasemr.coordinator.core.scheduler import Scheduler
from leasemr.coordinator.utils.config import CoordinatorSettings, get_settings
from leasemr.coordinator.utils.logger import get_logger, setup_logger
from leasemr.protocol import API_PREFIX


def create_app(scheduler: Scheduler) -> FastAPI:
    """
    Build the coordinator's FastAPI application around a scheduler.

    Args:
        scheduler (Scheduler): Scheduler owning the job's task table.

    Returns:
        FastAPI: Application exposing the coordinator methods under /api/v1.
    """
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup phase
        logger.info("leasemr coordinator starting up...")
        yield
        # Shutdown phase
        logger.info("leasemr coordinator shutting down...")

    app = FastAPI(title="leasemr coordinator", version=__version__, lifespan=lifespan)
    app.state.scheduler = scheduler
    app.include_router(router, prefix=API_PREFIX)
    return app


class CoordinatorServer:
    """
    Serves one job and stops once it is done.

    The server keeps answering polls for `shutdown_grace_seconds` after the job
    reaches DONE so that waiting workers observe the DONE instruction. A fatal
    scheduler error stops it immediately.
    """

    def __init__(self, scheduler: Scheduler, settings: Optional[CoordinatorSettings] = None):
        self.scheduler = scheduler
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self.app = create_app(scheduler)
        self.server = uvicorn.Server(self._uvicorn_config())

    def _uvicorn_config(self) -> uvicorn.Config:
        socket_path = self.settings.resolved_socket_path
        if socket_path:
            return uvicorn.Config(self.app, uds=socket_path, log_level=self.settings.log_level.lower())
        return uvicorn.Config(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
        )

    async def watch_job(self):
        """Poll the scheduler until the job is done or the scheduler halts."""
        while not self.scheduler.is_job_done():
            if self.scheduler.fatal_error is not None:
                self.logger.critical("Scheduler halted, stopping coordinator")
                self.server.should_exit = True
                return
            await asyncio.sleep(self.settings.done_poll_interval)

        self.logger.info("Job done, draining remaining workers")
        await asyncio.sleep(self.settings.shutdown_grace_seconds)
        self.server.should_exit = True

    async def serve(self) -> int:
        """
        Run the HTTP server and the job watcher together.

        Returns:
            int: Process exit status, 0 once the job is done, 1 on a fatal error.
        """
        await asyncio.gather(self.server.serve(), self.watch_job())
        if self.scheduler.fatal_error is not None:
            return 1
        return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="leasemr coordinator")
    parser.add_argument("inputs", nargs="+", help="Input files, one map task each")
    parser.add_argument("-r", "--reduce-count", type=int, default=10, help="Number of reduce tasks")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    logger = setup_logger(settings.log_level)

    scheduler = Scheduler.from_settings(args.inputs, args.reduce_count, settings)
    logger.info(f"Serving job with {len(args.inputs)} inputs and {args.reduce_count} reduce tasks")
    return asyncio.run(CoordinatorServer(scheduler, settings).serve())


# -------------------------------------------------------------------
# Application entry point
# -------------------------------------------------------------------
if __name__ == "__main__":
    sys.exit(main())
