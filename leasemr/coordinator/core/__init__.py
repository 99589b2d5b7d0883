from .scheduler import Scheduler, utc_now

__all__ = ["Scheduler", "utc_now"]
