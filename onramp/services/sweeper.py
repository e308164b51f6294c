import logging
import threading

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """Runs ``task`` every ``interval`` seconds on a daemon thread until stopped."""

    def __init__(self, task, interval, name="sweeper"):
        self.task = task
        self.interval = interval
        self.name = name
        self._stop = threading.Event()
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name)
        self._thread.daemon = True
        self._thread.start()
        logger.info("Sweeper started", extra={"sweeper": self.name, "interval": self.interval})
        return self

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self):
        try:
            return self.task()
        except Exception:
            # keep the thread alive; the next tick retries
            logger.exception("Sweep failed", extra={"sweeper": self.name})
            return None

    def _run(self):
        while not self._stop.wait(self.interval):
            self.run_once()
