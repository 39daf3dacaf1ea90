"""
registry.py

Per-host table of the most recently accepted software observations.
Owns the register / update / notify decision and time-based expiry.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, List, Optional, Tuple, Union

from analyzer.diff import ChangeDetector, Verdict
from banner.formatting import format_endpoint, format_observation, format_version
from banner.observation import (
    Connection,
    IPAddress,
    Observation,
    VersionChangeNotice,
    to_address,
)
from logger.storage import SoftwareSink
from utils import app_logger, config

DEFAULT_RETENTION_SECONDS = 24 * 60 * 60


class _HostTable:
    """Software known for one host, keyed by software name."""

    __slots__ = ("software", "last_seen")

    def __init__(self, now: float) -> None:
        self.software: Dict[str, Observation] = {}
        self.last_seen = now


class _Shard:
    __slots__ = ("lock", "hosts")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.hosts: Dict[IPAddress, _HostTable] = {}


class SoftwareRegistry:
    """
    Tracks the current software per (host, name).

    Hosts are spread over a fixed number of shards, each guarded by its own
    lock. Registration, lookups and eviction for a host all run under that
    host's shard lock, so lookup-compare-decide-write never interleaves for
    the same key.

    A host's table is dropped once nothing has been registered for it
    within the retention window. Expiry is checked lazily on access and by
    an optional background sweeper; it never emits a log record or notice.
    """

    def __init__(
        self,
        sink: SoftwareSink,
        detector: Optional[ChangeDetector] = None,
        retention_seconds: Optional[float] = None,
        sweep_interval: Optional[float] = None,
        shards: int = 16,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if shards < 1:
            raise ValueError("shards must be at least 1")

        if detector is None:
            detector = ChangeDetector(
                config.get("tracking.interesting_version_changes", None)
            )
        if retention_seconds is None:
            retention_seconds = config.get("tracking.retention_hours", 24) * 3600
        if sweep_interval is None:
            sweep_interval = config.get("tracking.sweep_interval_seconds", 300)

        self.sink = sink
        self.detector = detector
        self.retention_seconds = float(retention_seconds)
        self.sweep_interval = float(sweep_interval)
        self.logger = app_logger
        self._clock = clock
        self._shards: List[_Shard] = [_Shard() for _ in range(shards)]
        self._sweeper: Optional[threading.Thread] = None
        self._stop_sweeping = threading.Event()

    def _shard_for(self, host: IPAddress) -> _Shard:
        return self._shards[hash(host) % len(self._shards)]

    def _expired(self, table: _HostTable, now: float) -> bool:
        return now - table.last_seen >= self.retention_seconds

    def _live_table(self, shard: _Shard, host: IPAddress, now: float) -> Optional[_HostTable]:
        """Return the host's table, dropping it first if it has expired. Caller holds the lock."""
        table = shard.hosts.get(host)
        if table is not None and self._expired(table, now):
            del shard.hosts[host]
            self.logger.debug(f"Expired software table for {host}")
            return None
        return table

    def register(self, connection: Optional[Connection], observation: Observation) -> Verdict:
        """
        Apply one accepted observation.

        First sightings are logged and stored. For interesting software a
        version change raises a notice, replaces the stored entry and is
        logged. Anything else leaves the stored entry untouched and writes
        nothing.
        """
        host = observation.host
        name = observation.name
        shard = self._shard_for(host)

        with shard.lock:
            now = self._clock()
            table = self._live_table(shard, host, now)
            if table is None:
                table = _HostTable(now)
                shard.hosts[host] = table
            table.last_seen = now

            old = table.software.get(name)
            verdict = self.detector.classify(old, observation)

            if verdict is Verdict.FIRST_SIGHTING:
                self.sink.write_observation(observation)
                table.software[name] = observation
                self.logger.info(
                    f"New software on {host}: {format_observation(observation)}"
                )

            elif verdict is Verdict.VERSION_CHANGE:
                self.sink.raise_notice(self._version_change_notice(connection, old, observation))
                table.software[name] = observation
                self.sink.write_observation(observation)

            elif verdict is Verdict.FORCED:
                table.software[name] = observation
                self.sink.write_observation(observation)

            else:
                self.logger.debug(
                    f"Suppressed repeat sighting on {host}: {format_observation(observation)}"
                )

        return verdict

    def _version_change_notice(
        self,
        connection: Optional[Connection],
        old: Observation,
        new: Observation,
    ) -> VersionChangeNotice:
        if connection is not None:
            endpoint = format_endpoint(new.host, connection)
        else:
            endpoint = str(new.host)

        return VersionChangeNotice(
            connection=connection,
            msg=(
                f"{endpoint} switched from {format_version(old.version)} "
                f"to {format_observation(new)} ({new.software_category.value})"
            ),
            sub=format_observation(new),
            category=new.software_category,
        )

    def lookup(self, host: Union[str, IPAddress], name: str) -> Optional[Observation]:
        """Current observation for (host, name), or None if unknown or expired."""
        return self.host_software(host).get(name)

    def host_software(self, host: Union[str, IPAddress]) -> Dict[str, Observation]:
        """Copy of everything currently known for ``host``."""
        address = to_address(host)
        shard = self._shard_for(address)

        with shard.lock:
            table = self._live_table(shard, address, self._clock())
            return dict(table.software) if table else {}

    def inventory(self) -> List[Observation]:
        """Snapshot of every live entry, ordered by host then name."""
        now = self._clock()
        entries: List[Tuple[Tuple[int, int, str], Observation]] = []

        for shard in self._shards:
            with shard.lock:
                for host, table in shard.hosts.items():
                    if self._expired(table, now):
                        continue
                    for name, observation in table.software.items():
                        entries.append(((host.version, int(host), name), observation))

        entries.sort(key=lambda item: item[0])
        return [observation for _, observation in entries]

    def __len__(self) -> int:
        """Number of hosts with a table, expired or not."""
        return sum(len(shard.hosts) for shard in self._shards)

    def evict_expired(self, now: Optional[float] = None) -> int:
        """
        Drop every host table idle for the retention window.

        Returns:
            Number of hosts evicted.
        """
        if now is None:
            now = self._clock()

        evicted = 0
        for shard in self._shards:
            with shard.lock:
                stale = [
                    host for host, table in shard.hosts.items()
                    if self._expired(table, now)
                ]
                for host in stale:
                    del shard.hosts[host]
                evicted += len(stale)

        if evicted:
            self.logger.debug(f"Evicted software tables for {evicted} idle hosts")
        return evicted

    def _sweep_loop(self) -> None:
        while not self._stop_sweeping.wait(self.sweep_interval):
            try:
                self.evict_expired()
            except Exception as e:
                self.logger.error(f"Eviction sweep failed: {e}", exc_info=True)

    def start_sweeper(self) -> None:
        """Start the background eviction thread if it is not running."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return

        self._stop_sweeping.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="software-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        self.logger.debug(f"Eviction sweeper started (every {self.sweep_interval:.0f}s)")

    def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return

        self._stop_sweeping.set()
        self._sweeper.join()
        self._sweeper = None
