"""
dispatcher.py

Entry point analyzers report software sightings to. Applies the host-scope
gate and hands accepted observations to the registry on worker threads.
"""

from __future__ import annotations

import queue
import threading
from typing import List, Optional, Tuple

from banner.observation import Connection, Observation
from tracker.registry import SoftwareRegistry
from tracker.scope import HostScope, ScopePolicy
from utils import app_logger, config

_STOP = object()

WorkItem = Tuple[Optional[Connection], Observation]


class SoftwareTracker:
    """
    Non-blocking front door to a SoftwareRegistry.

    Each host is pinned to one worker queue, so observations for the same
    (host, name) are registered in the order ``found`` was called.
    Observations for different hosts carry no ordering guarantee.
    """

    def __init__(
        self,
        registry: SoftwareRegistry,
        scope: Optional[HostScope] = None,
        policy: Optional[ScopePolicy] = None,
        workers: Optional[int] = None,
    ) -> None:
        if scope is None:
            scope = HostScope(config.get("tracking.local_nets", []))
        if policy is None:
            policy = ScopePolicy.from_name(
                config.get("tracking.asset_tracking", "local_hosts")
            )
        if workers is None:
            workers = config.get("tracking.workers", 4)
        if workers < 1:
            raise ValueError("workers must be at least 1")

        self.registry = registry
        self.scope = scope
        self.policy = policy
        self.logger = app_logger
        self._queues: List[queue.Queue] = [queue.Queue() for _ in range(workers)]
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        # Held while reading or writing _closed and while enqueueing.
        self._gate = threading.Lock()
        self._closed = False

    @property
    def running(self) -> bool:
        return bool(self._threads)

    def found(self, connection: Optional[Connection], observation: Observation) -> bool:
        """
        Report a software sighting.

        Returns:
            True if the observation was accepted for registration, False if
            its host is out of scope or the tracker has been stopped.
            Acceptance says nothing about whether the observation is
            eventually logged.
        """
        if not self.scope.in_scope(observation.host, self.policy):
            self.logger.debug(
                f"Out of scope ({self.policy.value}): {observation.host} {observation.name!r}"
            )
            return False

        index = hash(observation.host) % len(self._queues)
        with self._gate:
            if self._closed:
                self.logger.warning(
                    f"Tracker stopped, dropping observation: {observation.host} {observation.name!r}"
                )
                return False
            self._queues[index].put((connection, observation))
        return True

    def _worker(self, work: queue.Queue) -> None:
        while True:
            item = work.get()
            try:
                if item is _STOP:
                    return
                connection, observation = item
                self.registry.register(connection, observation)
            except Exception as e:
                self.logger.error(
                    f"Failed to register software observation: {e}", exc_info=True
                )
            finally:
                work.task_done()

    def start(self) -> None:
        """Start the worker threads and the registry's eviction sweeper."""
        with self._lock:
            if self._threads:
                return

            with self._gate:
                self._closed = False

            for index, work in enumerate(self._queues):
                thread = threading.Thread(
                    target=self._worker,
                    args=(work,),
                    name=f"software-worker-{index}",
                    daemon=True,
                )
                thread.start()
                self._threads.append(thread)

        self.registry.start_sweeper()
        self.logger.info(
            f"Software tracker started: {len(self._queues)} workers, "
            f"policy={self.policy.value}"
        )

    def flush(self) -> None:
        """Block until every observation queued so far has been registered."""
        if not self.running:
            raise RuntimeError("Cannot flush a tracker that has not been started")
        for work in self._queues:
            work.join()

    def stop(self) -> None:
        """
        Register whatever is still queued, then stop the workers and sweeper.
        Later calls to ``found`` are refused until the tracker is started again.
        """
        with self._lock:
            threads, self._threads = self._threads, []

            with self._gate:
                self._closed = True
                if threads:
                    for work in self._queues:
                        work.put(_STOP)

            if not threads:
                return

            for thread in threads:
                thread.join()

        self.registry.stop_sweeper()
        self.logger.info("Software tracker stopped")

    def __enter__(self) -> "SoftwareTracker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
