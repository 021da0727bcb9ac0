"""Tests for the health monitor."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from proofpad.health import HealthMonitor, HealthState


class FakeTimer:
    def __init__(self, interval, function, args=None):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.cancelled = False

    def start(self):
        pass

    def cancel(self):
        self.cancelled = True


class ProbeSequence:
    def __init__(self, *answers):
        self.answers = list(answers)

    def __call__(self):
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


def make_monitor(probe, interval_ms=30000):
    timers = []
    changes = []

    def timer_factory(interval, function, args=None):
        timer = FakeTimer(interval, function, args)
        timers.append(timer)
        return timer

    monitor = HealthMonitor(probe, on_change=changes.append,
                            interval_ms=interval_ms, timer_factory=timer_factory)
    return monitor, timers, changes


def test_initial_state_unknown():
    monitor, _, changes = make_monitor(ProbeSequence(True))
    assert monitor.state is HealthState.UNKNOWN
    assert not monitor.online
    assert changes == []


def test_probe_exception_means_offline():
    monitor, _, changes = make_monitor(ProbeSequence(OSError("no route")))
    assert monitor.probe() is HealthState.OFFLINE
    assert changes == [HealthState.OFFLINE]


def test_only_transitions_notify():
    monitor, _, changes = make_monitor(ProbeSequence(True, True, False, False, True))
    for _ in range(5):
        monitor.probe()
    assert changes == [HealthState.ONLINE, HealthState.OFFLINE, HealthState.ONLINE]
    assert monitor.online


def test_start_probes_immediately_then_periodically():
    monitor, timers, changes = make_monitor(ProbeSequence(True, False))
    monitor.start()
    assert monitor.running
    assert timers[0].interval == 0
    assert timers[0].daemon

    timers[0].function()
    assert changes == [HealthState.ONLINE]
    assert timers[1].interval == 30.0

    timers[1].function()
    assert changes == [HealthState.ONLINE, HealthState.OFFLINE]
    assert len(timers) == 3


def test_start_twice_arms_once():
    monitor, timers, _ = make_monitor(ProbeSequence(True))
    monitor.start()
    monitor.start()
    assert len(timers) == 1


def test_stop_cancels_timer():
    monitor, timers, changes = make_monitor(ProbeSequence(True))
    monitor.start()
    monitor.stop()
    assert timers[0].cancelled
    assert not monitor.running
    # a tick that raced with stop does nothing
    timers[0].function()
    assert changes == []


def test_zero_interval_probes_once():
    monitor, timers, changes = make_monitor(ProbeSequence(False), interval_ms=0)
    monitor.start()
    timers[0].function()
    assert changes == [HealthState.OFFLINE]
    assert len(timers) == 1
