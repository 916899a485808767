"""Process orchestration: event queue, signal handling and shutdown."""

import queue
import signal
import threading
from typing import Any, Optional

from .logging_config import get_logger, log_function_entry, log_function_exit
from .models import IngressEvent
from .reconciler import Reconciler
from .shutdown import ShutdownCoordinator
from .watcher import IngressWatcher

logger = get_logger(__name__)


class Controller:
    """Runs the reconciler as the single consumer of watcher events.

    The watcher thread only enqueues events. The thread calling
    :meth:`run` dequeues them one at a time, so the record store has a
    single writer. Once a stop is requested the watcher is stopped,
    queued events are discarded, the in-flight event (if any) has
    finished, and only then are all remaining records withdrawn.
    """

    def __init__(self,
                 watcher: IngressWatcher,
                 reconciler: Reconciler,
                 shutdown: ShutdownCoordinator,
                 advertiser: Optional[Any] = None,
                 poll_interval: float = 0.5) -> None:
        self.watcher = watcher
        self.reconciler = reconciler
        self.shutdown = shutdown
        self.advertiser = advertiser
        self.poll_interval = poll_interval
        self.events: "queue.Queue[IngressEvent]" = queue.Queue()
        self._stop = threading.Event()

    def submit(self, event: IngressEvent) -> None:
        self.events.put(event)

    def request_stop(self) -> None:
        """Ask the loop to stop. Safe from signal handlers and other threads."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def install_signal_handlers(self) -> bool:
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread, signal handlers not installed")
            return False
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, self._on_signal)
        return True

    def _on_signal(self, signum: int, frame: Any) -> None:
        logger.info("Received signal, shutting down", signal=signal.Signals(signum).name)
        self.request_stop()

    def run(self) -> int:
        """Process events until stopped, then withdraw every record.

        Returns:
            The number of records unregistered during shutdown.
        """
        log_function_entry(logger, "Controller.run")
        self.install_signal_handlers()
        self.watcher.start(self.submit)
        logger.info("Watching ingresses", namespace=self.watcher.namespace or "*")

        try:
            while not self._stop.is_set():
                try:
                    event = self.events.get(timeout=self.poll_interval)
                except queue.Empty:
                    continue
                self.reconciler.handle(event)
        finally:
            unregistered = self._shutdown()

        log_function_exit(logger, "Controller.run", unregistered=unregistered)
        return unregistered

    def _shutdown(self) -> int:
        self._stop.set()
        self.watcher.stop()
        dropped = self._discard_pending()
        logger.debug("Discarded pending events", count=dropped)
        try:
            return self.shutdown.unregister_all()
        finally:
            if self.advertiser is not None:
                self.advertiser.close()

    def _discard_pending(self) -> int:
        dropped = 0
        while True:
            try:
                self.events.get_nowait()
            except queue.Empty:
                return dropped
            dropped += 1
