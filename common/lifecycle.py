"""
Process lifecycle shared by long-running components.

A single `Lifecycle` is created by the entry point and passed to every
component that runs a loop or a background thread. Signal handlers only call
`shutdown()`; loops poll `stopping` or sleep through `wait()` so they notice
the request promptly.
"""

import logging
import signal
import sys
import threading
import time
from typing import Callable, List

logger = logging.getLogger("lifecycle")


class Lifecycle:
    def __init__(self, name: str = "process"):
        self.name = name
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; returns True when shutdown was requested."""
        return self._stop.wait(seconds)

    def shutdown(self) -> None:
        if not self._stop.is_set():
            logger.info("Shutting down %s...", self.name)
        self._stop.set()

    def spawn(self, target: Callable[[], None], name: str) -> threading.Thread:
        """Run `target` on a daemon thread that `join()` will wait for."""
        thread = threading.Thread(target=target, name=name, daemon=True)
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()
        return thread

    def join(self, timeout: float) -> bool:
        """Wait for spawned threads, sharing one overall timeout. True if all exited."""
        deadline = time.monotonic() + timeout
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(max(0.0, deadline - time.monotonic()))
        leftover = [t.name for t in threads if t.is_alive()]
        if leftover:
            logger.warning("Threads still running after %ss: %s", timeout, ", ".join(leftover))
        return not leftover

    def install_signal_handlers(self, exit_process: bool = False) -> None:
        """
        Route SIGINT/SIGTERM to `shutdown()`. With `exit_process`, also raise
        SystemExit so a blocking server loop (Flask, werkzeug) unwinds.
        """
        def handle(signum, frame):
            self.shutdown()
            if exit_process:
                sys.exit(0)

        signal.signal(signal.SIGINT, handle)
        signal.signal(signal.SIGTERM, handle)
