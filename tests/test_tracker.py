"""Tests for tracker.dispatcher - the found() gate and worker dispatch."""
import threading

import pytest

from analyzer import ChangeDetector
from banner import Connection, Observation, StructuredVersion
from tracker import HostScope, ScopePolicy, SoftwareRegistry, SoftwareTracker

LOCAL = "10.0.0.5"
REMOTE = "8.8.4.4"


def observe(name, *version, host=LOCAL):
    return Observation.create(name=name, version=StructuredVersion(*version), host=host)


def make_tracker(sink, policy=ScopePolicy.LOCAL_HOSTS, workers=4):
    registry = SoftwareRegistry(
        sink,
        detector=ChangeDetector({"SSH"}),
        retention_seconds=24 * 3600,
        sweep_interval=3600,
    )
    return SoftwareTracker(
        registry,
        scope=HostScope(["10.0.0.0/8"]),
        policy=policy,
        workers=workers,
    )


@pytest.fixture
def conn():
    return Connection.create("10.0.0.9", LOCAL)


class TestScopeGate:

    @pytest.mark.parametrize("policy,host", [
        (ScopePolicy.LOCAL_HOSTS, REMOTE),
        (ScopePolicy.REMOTE_HOSTS, LOCAL),
        (ScopePolicy.NO_HOSTS, LOCAL),
        (ScopePolicy.NO_HOSTS, REMOTE),
    ])
    def test_out_of_scope_has_no_side_effects(self, sink, conn, policy, host):
        with make_tracker(sink, policy) as tracker:
            assert tracker.found(conn, observe("Apache", 2, host=host)) is False
            tracker.flush()

            assert sink.observations == []
            assert sink.notices == []
            assert len(tracker.registry) == 0

    @pytest.mark.parametrize("policy,host", [
        (ScopePolicy.LOCAL_HOSTS, LOCAL),
        (ScopePolicy.REMOTE_HOSTS, REMOTE),
        (ScopePolicy.ALL_HOSTS, LOCAL),
        (ScopePolicy.ALL_HOSTS, REMOTE),
    ])
    def test_in_scope_is_registered(self, sink, conn, policy, host):
        obs = observe("Apache", 2, host=host)
        with make_tracker(sink, policy) as tracker:
            assert tracker.found(conn, obs) is True
            tracker.flush()

        assert sink.observations == [obs]

    def test_acceptance_does_not_mean_logged(self, sink, conn):
        with make_tracker(sink) as tracker:
            assert tracker.found(conn, observe("Apache", 2))
            assert tracker.found(conn, observe("Apache", 2))

        assert len(sink.observations) == 1


class TestLifecycle:

    def test_found_before_start_is_applied_after(self, sink, conn):
        tracker = make_tracker(sink)
        assert tracker.found(conn, observe("Apache", 2)) is True
        assert sink.observations == []

        tracker.start()
        tracker.stop()

        assert len(sink.observations) == 1

    def test_stop_drains_queue(self, sink, conn):
        tracker = make_tracker(sink, workers=2)
        tracker.start()
        for minor in range(50):
            tracker.found(conn, observe("SSH", 1, minor))
        tracker.stop()

        assert len(sink.observations) == 50
        assert not tracker.running

    def test_found_after_stop_is_refused(self, sink, conn):
        tracker = make_tracker(sink)
        tracker.start()
        tracker.stop()

        assert tracker.found(conn, observe("Apache", 2)) is False
        assert sink.observations == []
        assert len(tracker.registry) == 0

    def test_restart_accepts_again(self, sink, conn):
        tracker = make_tracker(sink)
        tracker.start()
        tracker.stop()
        assert tracker.found(conn, observe("Apache", 2)) is False

        with tracker:
            assert tracker.found(conn, observe("Apache", 2)) is True

        assert len(sink.observations) == 1

    def test_start_and_stop_are_idempotent(self, sink):
        tracker = make_tracker(sink)
        tracker.start()
        tracker.start()
        tracker.stop()
        tracker.stop()

    def test_flush_requires_running_tracker(self, sink):
        with pytest.raises(RuntimeError):
            make_tracker(sink).flush()

    def test_invalid_worker_count(self, sink):
        with pytest.raises(ValueError):
            make_tracker(sink, workers=0)

    def test_defaults_come_from_config(self, sink):
        tracker = SoftwareTracker(SoftwareRegistry(sink))
        assert tracker.policy is ScopePolicy.LOCAL_HOSTS
        assert tracker.scope.in_scope("192.168.3.3", ScopePolicy.LOCAL_HOSTS)


class TestOrdering:

    def test_same_key_applied_in_call_order(self, sink, conn):
        versions = [observe("SSH", 1, minor) for minor in range(20)]

        with make_tracker(sink) as tracker:
            for obs in versions:
                tracker.found(conn, obs)

        assert sink.observations == versions
        assert len(sink.notices) == 19
        assert tracker.registry.lookup(LOCAL, "SSH") is versions[-1]

    def test_concurrent_first_sightings_logged_once(self, sink):
        obs = observe("Apache", 2, 4, 10)
        barrier = threading.Barrier(8)

        with make_tracker(sink) as tracker:
            def report():
                barrier.wait()
                for _ in range(25):
                    tracker.found(None, obs)

            threads = [threading.Thread(target=report) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert sink.observations == [obs]

    def test_many_hosts_each_logged_once(self, sink):
        hosts = [f"10.1.0.{i}" for i in range(1, 41)]

        with make_tracker(sink, workers=3) as tracker:
            for host in hosts:
                tracker.found(None, observe("nginx", 1, 18, host=host))
                tracker.found(None, observe("nginx", 1, 18, host=host))

        assert sorted(str(o.host) for o in sink.observations) == sorted(hosts)


class TestWorkerErrors:

    def test_sink_error_does_not_kill_worker(self, failing_sink, conn):
        with make_tracker(failing_sink, workers=1) as tracker:
            assert tracker.found(conn, observe("Apache", 2)) is True
            assert tracker.found(conn, observe("nginx", 1)) is True
            tracker.flush()

        assert [o.name for o in failing_sink.observations] == ["nginx"]
