class LeaseMRError(Exception):
    """Base class for every error raised by leasemr."""


class TaskTableInvariantError(LeaseMRError):
    """
    Raised when a task transition or phase change would break the task table rules.

    This is a programming error inside the coordinator's critical section. The
    scheduler cannot continue safely after it, so it halts.
    """


class SchedulerHaltedError(LeaseMRError):
    """Raised by every scheduler call after a fatal invariant violation."""


class UnknownTaskError(LeaseMRError):
    """Raised when a completion report names a task id that does not exist."""


class ProtocolError(LeaseMRError):
    """Raised by the worker when the coordinator rejects a request (4xx)."""


class CoordinatorUnavailableError(LeaseMRError):
    """Raised by the worker when the coordinator stays unreachable after retries."""


class AppLoadError(LeaseMRError):
    """Raised when a map/reduce application module cannot be loaded."""


class TaskExecutionError(LeaseMRError):
    """Raised when a worker attempt fails; the attempt is abandoned."""
