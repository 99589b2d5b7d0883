from prometheus_client import Counter, Histogram, start_http_server, CollectorRegistry

class MetricsCollector:
    """
    Prometheus metrics of one worker.
    Each instance owns its CollectorRegistry so several workers can share a process.
    """
    def __init__(self, port: int = 9100):
        self.registry = CollectorRegistry()
        self.tasks_completed = Counter('worker_tasks_completed', 'Tasks executed and reported', ['kind'], registry=self.registry)
        self.tasks_abandoned = Counter('worker_tasks_abandoned', 'Attempts abandoned after a failure', ['kind'], registry=self.registry)
        self.polls = Counter('worker_polls', 'Requests sent to the coordinator', registry=self.registry)
        self.task_duration = Histogram('worker_task_duration_seconds', 'Task execution time in seconds', ['kind'], registry=self.registry)
        self._port = port
        self._server_started = False

    def start_server(self):
        """
        Start the Prometheus HTTP exporter (once).

        start_http_server serves from its own daemon thread; a port that cannot
        be bound raises here.
        """
        if not self._server_started:
            start_http_server(self._port, registry=self.registry)
            self._server_started = True

    def record_completed(self, kind: str, duration: float):
        self.tasks_completed.labels(kind=kind).inc()
        self.task_duration.labels(kind=kind).observe(duration)

    def record_abandoned(self, kind: str):
        self.tasks_abandoned.labels(kind=kind).inc()

    def record_poll(self):
        self.polls.inc()

    def get_counter(self, name: str, kind: str) -> float:
        """Current value of a per-kind counter"""
        value = self.registry.get_sample_value(f"worker_{name}_total", {"kind": kind})
        return value or 0.0
