# FastAPI imports for routing, HTTP handling, and dependency injection
from fastapi import APIRouter, Depends, HTTPException, Request, status

# Wire protocol shared with workers
from leasemr.protocol import (
    COORDINATOR_METHODS,
    JobDoneResponse,
    JobStatus,
    SchedulerHaltedError,
    TaskRequest,
    TaskResponse,
    TaskTableInvariantError,
    UnknownTaskError,
)

# Core business logic components
from leasemr.coordinator.core.scheduler import Scheduler

# Utility imports
from leasemr.coordinator.utils.logger import get_logger

# ===== API Router Configuration =====
router = APIRouter()

logger = get_logger(__name__)


def get_scheduler(request: Request) -> Scheduler:
    """Return the scheduler attached to the running application."""
    return request.app.state.scheduler


# ===== Worker Endpoints =====

@router.post(COORDINATOR_METHODS["request_task"].path, response_model=TaskResponse)
def request_task(task_request: TaskRequest, scheduler: Scheduler = Depends(get_scheduler)):
    """
    Single call used by workers both to ask for work and to report completion.

    The scheduler call is synchronous and short; FastAPI runs it in its
    threadpool and the scheduler's own lock serializes concurrent pollers.

    Args:
        task_request: Poll, optionally carrying a completed task reference

    Returns:
        TaskResponse with an assignment, a WAIT instruction, or DONE

    Raises:
        HTTPException: 404 for an unknown task reference, 503 once the
            scheduler has halted on an invariant violation
    """
    try:
        return scheduler.request_task(task_request)
    except UnknownTaskError as e:
        logger.warning(f"Rejected report from {task_request.worker_id or 'worker'}: {e}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (TaskTableInvariantError, SchedulerHaltedError) as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


# ===== Lifecycle and Monitoring Endpoints =====

@router.get(COORDINATOR_METHODS["is_job_done"].path, response_model=JobDoneResponse)
def is_job_done(scheduler: Scheduler = Depends(get_scheduler)):
    """Report whether every reduce task has completed."""
    return JobDoneResponse(done=scheduler.is_job_done())


@router.get(COORDINATOR_METHODS["status"].path, response_model=JobStatus)
def job_status(scheduler: Scheduler = Depends(get_scheduler)):
    """
    Snapshot of task counts per state for monitoring and debugging.

    Returns:
        JobStatus with the current phase and per-kind counts
    """
    return scheduler.snapshot()


@router.get("/health")
async def health_check():
    """Basic liveness probe."""
    return {"status": "healthy", "service": "leasemr coordinator"}
