from .task import Task, TaskState
from .job import JobPhase, TaskTable

__all__ = ["JobPhase", "Task", "TaskState", "TaskTable"]
