"""Editor session tests — edits, results, apply and mode switches."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from proofpad.config import Config
from proofpad.health import HealthState
from proofpad.matches import Match, MatchSource
from proofpad.scheduler import AnalysisStatus
from proofpad.session import EditorSession


class FakeTimer:
    def __init__(self, interval, function, args=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.daemon = False
        self.cancelled = False
        self.fired = False

    def start(self):
        pass

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled and not self.fired:
            self.fired = True
            self.function(*self.args)


class MockClient:
    """Answers every check with the matches registered for that text."""
    def __init__(self):
        self.answers = {}
        self.calls = []
        self.reachable = True

    def check(self, text, language="auto", cancel=None):
        self.calls.append(text)
        return self.answers.get(text, [])

    def probe(self):
        return self.reachable


class MockChecker:
    def __init__(self):
        self.calls = []

    def check(self, text, language="auto"):
        self.calls.append(text)
        return [Match(0, 4, "local", rule_id="LOCAL")]


class Harness:
    def __init__(self, tmp_path, text="", **settings):
        config = Config(path=tmp_path / "config.json", environ={})
        for key, value in settings.items():
            config._data[key] = value
        self.timers = []
        self.jobs = []
        self.client = MockClient()
        self.checker = MockChecker()
        self.session = EditorSession(
            config, client=self.client, checker=self.checker, text=text,
            timer_factory=self._timer, runner=self._runner,
        )
        self.events = 0
        self.session.add_listener(self._on_event)

    def _timer(self, interval, function, args=None):
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer

    def _runner(self, fn, *args):
        self.jobs.append((fn, args))

    def _on_event(self, session):
        self.events += 1

    def settle(self):
        """Fire the live debounce timer and run every queued job."""
        for timer in list(self.timers):
            timer.fire()
        jobs, self.jobs = self.jobs, []
        for fn, args in jobs:
            fn(*args)


HAS = Match(offset=2, length=3, message="Agreement", issue_type="grammar",
            replacements=("have",))
PEN = Match(offset=8, length=3, message="Check", issue_type="style")


def test_result_lands_and_selects_first(tmp_path):
    h = Harness(tmp_path)
    h.client.answers["I has a pen."] = [HAS, PEN]
    h.session.set_text("I has a pen.")
    assert h.session.status is AnalysisStatus.IDLE
    h.settle()

    assert h.session.status is AnalysisStatus.DONE
    assert h.session.matches.source is MatchSource.SERVICE
    assert list(h.session.matches) == [HAS, PEN]
    assert h.session.selected_index == 0
    assert h.events >= 2


def test_edit_clears_matches(tmp_path):
    h = Harness(tmp_path)
    h.client.answers["I has a pen."] = [HAS]
    h.session.set_text("I has a pen.")
    h.settle()
    assert len(h.session.matches) == 1

    assert h.session.set_text("I has a pen!") is True
    assert len(h.session.matches) == 0
    assert h.session.selected_index is None
    assert h.session.set_text("I has a pen!") is False


def test_stale_result_never_lands(tmp_path):
    h = Harness(tmp_path)
    h.client.answers["first text"] = [Match(0, 5, "old")]
    h.session.set_text("first text")
    h.timers[-1].fire()
    pending = h.jobs.pop()

    h.session.set_text("second text")
    fn, args = pending
    fn(*args)
    assert len(h.session.matches) == 0

    h.settle()
    assert h.client.calls == ["first text", "second text"]
    assert h.session.status is AnalysisStatus.DONE
    assert len(h.session.matches) == 0


def test_apply_rebases_and_rechecks(tmp_path):
    h = Harness(tmp_path)
    h.client.answers["I has a pen."] = [HAS, PEN]
    h.session.set_text("I has a pen.")
    h.settle()
    timers_before = len(h.timers)

    assert h.session.apply_selected("have") is True
    assert h.session.text == "I have a pen."
    assert h.session.matches.source is MatchSource.APPLIED
    assert [m.offset for m in h.session.matches] == [9]
    assert h.session.selected_index is None
    assert len(h.timers) == timers_before + 1


def test_apply_stale_match_is_ignored(tmp_path):
    h = Harness(tmp_path)
    h.client.answers["I has a pen."] = [HAS]
    h.session.set_text("I has a pen.")
    h.settle()
    old = h.session.matches[0]
    h.session.set_text("I has a pen. Really.")

    assert h.session.apply(old, "have") is False
    assert h.session.text == "I has a pen. Really."
    assert h.session.apply_selected("have") is False


def test_failure_shows_local_matches(tmp_path):
    h = Harness(tmp_path)

    def broken(text, language="auto", cancel=None):
        from proofpad.api_client import ServiceUnavailable
        raise ServiceUnavailable("LanguageTool error 502")

    h.session._scheduler._analyze = broken
    h.session.set_text("This are bad.")
    h.settle()

    snap = h.session.snapshot()
    assert snap.status is AnalysisStatus.FAILED
    assert snap.matches.source is MatchSource.FALLBACK
    assert len(snap.matches) == 1
    assert snap.status_message.startswith("Review failed")


def test_health_change_reevaluates(tmp_path):
    h = Harness(tmp_path, text="This are bad.")
    h.client.reachable = False
    h.session.monitor.probe()

    assert h.session.monitor.state is HealthState.OFFLINE
    assert h.session.status is AnalysisStatus.OFFLINE
    assert h.checker.calls == ["This are bad."]
    assert h.client.calls == []
    assert "Offline" in h.session.snapshot().status_message

    h.client.reachable = True
    h.session.monitor.probe()
    assert h.session.status is AnalysisStatus.CHECKING
    h.settle()
    assert h.client.calls == ["This are bad."]
    assert h.session.status is AnalysisStatus.DONE


def test_select_at_positions(tmp_path):
    h = Harness(tmp_path)
    h.client.answers["I has a pen."] = [HAS, PEN]
    h.session.set_text("I has a pen.")
    h.settle()

    assert h.session.select_at(9) is True
    assert h.session.selected_index == 1
    # plain text leaves the selection alone
    assert h.session.select_at(0) is False
    assert h.session.selected_index == 1
    h.session.clear_selection()
    assert h.session.selected_match is None


def test_selection_policy_none(tmp_path):
    h = Harness(tmp_path, selection_policy="none")
    h.client.answers["I has a pen."] = [HAS]
    h.session.set_text("I has a pen.")
    h.settle()
    assert h.session.selected_index is None
    assert h.session.select(0) is True
    assert h.session.snapshot().selected_match is HAS


def test_snapshot_segments_round_trip(tmp_path):
    h = Harness(tmp_path)
    h.client.answers["I has a pen."] = [HAS, PEN]
    h.session.set_text("I has a pen.")
    h.settle()
    snap = h.session.snapshot()
    assert "".join(s.text for s in snap.segments) == snap.text
    assert snap.stats.words == 4
    assert snap.status_message == "2 found"


def test_set_language_reissues(tmp_path):
    h = Harness(tmp_path, text="Das ist gut.")
    h.session.set_language("de-DE")
    assert h.session.language == "de-DE"
    assert len(h.jobs) == 1


def test_missing_server_url_runs_on_local_rules(tmp_path):
    config = Config(path=tmp_path / "config.json", environ={})
    config.override("api_base_url", "")
    timers, jobs = [], []

    def timer_factory(interval, function, args=None):
        timer = FakeTimer(interval, function, args)
        timers.append(timer)
        return timer

    checker = MockChecker()
    session = EditorSession(config, checker=checker, timer_factory=timer_factory,
                            runner=lambda fn, *args: jobs.append((fn, args)))
    assert session.scheduler.offline
    assert session.client.probe() is False

    session.set_text("This are bad.")
    timers[-1].fire()
    assert jobs == []
    assert session.status is AnalysisStatus.OFFLINE
    assert checker.calls == ["This are bad."]
    assert len(session.matches) == 1

    session.monitor.probe()
    assert session.monitor.state is HealthState.OFFLINE
    assert session.status is AnalysisStatus.OFFLINE


def test_update_timing_applies_to_next_window(tmp_path):
    h = Harness(tmp_path)
    h.session.update_timing(debounce_ms=900, health_interval_ms=0)
    assert h.session.monitor.interval_ms == 0
    h.session.set_text("This are bad.")
    assert h.timers[-1].interval == 0.9
