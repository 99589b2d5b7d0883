import argparse
import asyncio
import sys
from typing import List, Optional

from leasemr.protocol import AppLoadError, CoordinatorUnavailableError, ProtocolError
from leasemr.worker.core.worker_engine import WorkerEngine
from leasemr.worker.services.app_loader import load_app
from leasemr.worker.services.coordinator_client import CoordinatorClient
from leasemr.worker.utils.config import WorkerSettings, get_settings
from leasemr.worker.utils.logger import setup_logger
from leasemr.worker.utils.metrics import MetricsCollector


async def run_worker(app_target: str, settings: WorkerSettings) -> int:
    """Load the application and run the worker loop until DONE."""
    app = load_app(app_target)
    metrics = MetricsCollector(port=settings.metrics_port or 9100)
    if settings.metrics_port:
        metrics.start_server()

    async with CoordinatorClient(settings) as client:
        engine = WorkerEngine(client, app, settings=settings, metrics=metrics)
        return await engine.run()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="leasemr worker")
    parser.add_argument("app", help="Application module (e.g. leasemr.apps.wordcount) or .py file")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    logger = setup_logger(settings.log_level)

    try:
        asyncio.run(run_worker(args.app, settings))
    except AppLoadError as e:
        logger.error(str(e))
        return 2
    except (CoordinatorUnavailableError, ProtocolError) as e:
        logger.error(f"Worker stopping before job completion: {e}")
        return 1
    except OSError as e:
        logger.error(f"Cannot start metrics exporter on port {settings.metrics_port}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
