"""Editor session — owns the buffer, the match set and the selection.

Everything that changes those three goes through this class under one
lock; the scheduler, health monitor and UI only ever call in here.
Lock order is always session → scheduler.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, List

from proofpad.annotator import Segment, annotate, segment_at
from proofpad.api_client import ConfigError, LanguageToolClient, ServiceUnavailable
from proofpad.applicator import apply_to_match_set
from proofpad.buffer import TextBuffer, TextStats
from proofpad.config import Config
from proofpad.fallback import LocalChecker
from proofpad.health import HealthMonitor, HealthState
from proofpad.matches import Match, MatchSet, MatchSource
from proofpad.scheduler import AnalysisResult, AnalysisStatus, RequestScheduler
from proofpad.selection import SelectionController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    """Consistent read-only view for rendering."""

    text: str
    generation: int
    matches: MatchSet
    selected_index: Optional[int]
    status: AnalysisStatus
    error: str
    health: HealthState
    language: str
    segments: tuple
    stats: TextStats

    @property
    def selected_match(self) -> Optional[Match]:
        if self.selected_index is None:
            return None
        return self.matches[self.selected_index]

    @property
    def status_message(self) -> str:
        """Passive status line; failures never block editing."""
        if self.status is AnalysisStatus.CHECKING:
            return "Analyzing…"
        if self.status is AnalysisStatus.FAILED:
            return f"Review failed: {self.error or 'unable to review your text right now'}"
        if self.status is AnalysisStatus.OFFLINE:
            return f"Offline — {len(self.matches)} local suggestion(s)"
        if self.status is AnalysisStatus.DONE:
            return f"{len(self.matches)} found" if len(self.matches) else "All clear"
        return ""


class UnconfiguredClient:
    """Stands in for the client when no server is configured."""

    def __init__(self, reason: str):
        self.reason = reason

    def check(self, text, language="auto", cancel=None):
        raise ServiceUnavailable(self.reason)

    def probe(self) -> bool:
        return False


class EditorSession:
    """The annotation-and-correction engine behind one editor."""

    def __init__(self, config: Config, client=None, checker=None, text: str = "",
                 timer_factory=threading.Timer, runner=None):
        self.config = config
        self._lock = threading.RLock()
        self._buffer = TextBuffer(text)
        self._matches = MatchSet(generation=self._buffer.generation)
        self._selection = SelectionController(config.selection_policy)
        self._status = AnalysisStatus.IDLE
        self._error = ""
        self._listeners: List[Callable[["EditorSession"], None]] = []

        if client is None:
            try:
                client = LanguageToolClient(
                    config.api_base_url,
                    timeout_ms=config.request_timeout_ms,
                    username=config.lt_username,
                    api_key=config.lt_api_key,
                )
            except ConfigError as e:
                logger.warning("Language service disabled, local rules only: %s", e)
                client = UnconfiguredClient(str(e))
        if checker is None:
            checker = LocalChecker(spelling=config.fallback_spelling)
        self._client = client
        self._checker = checker

        extra = {"runner": runner} if runner is not None else {}
        self._scheduler = RequestScheduler(
            analyze=client.check,
            fallback=checker.check,
            on_result=self._on_result,
            on_checking=self._on_checking,
            debounce_ms=config.debounce_ms,
            min_length=config.min_text_length,
            language=config.language,
            timer_factory=timer_factory,
            **extra,
        )
        self._monitor = HealthMonitor(
            client.probe,
            on_change=self._on_health_change,
            interval_ms=config.health_interval_ms,
            timer_factory=timer_factory,
        )
        if isinstance(client, UnconfiguredClient):
            self._scheduler.set_offline(True)

    # --- lifecycle --------------------------------------------------------

    @property
    def scheduler(self) -> RequestScheduler:
        return self._scheduler

    @property
    def monitor(self) -> HealthMonitor:
        return self._monitor

    @property
    def client(self):
        return self._client

    def start(self):
        self._monitor.start()
        with self._lock:
            text = self._buffer.text
            if text:
                self._scheduler.analyze_now(text)
        logger.info("Session started (%s)", self._scheduler.language)

    def stop(self):
        self._monitor.stop()
        self._scheduler.close()
        logger.info("Session stopped")

    def add_listener(self, callback: Callable[["EditorSession"], None]):
        """``callback(session)`` runs after every state change, on any thread."""
        self._listeners.append(callback)

    def remove_listener(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self):
        for cb in list(self._listeners):
            try:
                cb(self)
            except Exception as e:
                logger.error("Session listener failed: %s", e)

    # --- read side --------------------------------------------------------

    @property
    def text(self) -> str:
        return self._buffer.text

    @property
    def generation(self) -> int:
        return self._buffer.generation

    @property
    def matches(self) -> MatchSet:
        return self._matches

    @property
    def status(self) -> AnalysisStatus:
        return self._status

    @property
    def error(self) -> str:
        return self._error

    @property
    def selected_index(self) -> Optional[int]:
        return self._selection.index

    @property
    def selected_match(self) -> Optional[Match]:
        with self._lock:
            index = self._selection.index
            return None if index is None else self._matches[index]

    @property
    def language(self) -> str:
        return self._scheduler.language

    def segments(self) -> List[Segment]:
        with self._lock:
            return annotate(self._buffer.text, self._matches.matches, self._selection.index)

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                text=self._buffer.text,
                generation=self._buffer.generation,
                matches=self._matches,
                selected_index=self._selection.index,
                status=self._status,
                error=self._error,
                health=self._monitor.state,
                language=self._scheduler.language,
                segments=tuple(annotate(self._buffer.text, self._matches.matches,
                                        self._selection.index)),
                stats=self._buffer.stats(),
            )

    # --- edits ------------------------------------------------------------

    def set_text(self, text: str) -> bool:
        """User edit. Clears the now-misaligned matches and schedules a check."""
        with self._lock:
            if not self._buffer.set_text(text):
                return False
            self._matches = MatchSet(generation=self._buffer.generation)
            self._selection.reset(0)
            self._status = AnalysisStatus.IDLE
            self._error = ""
            self._scheduler.schedule(text)
        self._notify()
        return True

    def set_language(self, language: str):
        with self._lock:
            self._scheduler.language = language
            self._scheduler.analyze_now(self._buffer.text)
        self._notify()

    def refresh(self):
        """Re-check the current text right away (e.g. a retry button)."""
        with self._lock:
            self._scheduler.analyze_now(self._buffer.text)

    def update_timing(self, debounce_ms: Optional[int] = None,
                      health_interval_ms: Optional[int] = None):
        """Apply new timings; they take effect from the next window or probe."""
        if debounce_ms is not None:
            self._scheduler.debounce_ms = debounce_ms
        if health_interval_ms is not None:
            self._monitor.interval_ms = health_interval_ms
        logger.debug("Timing updated: debounce %sms, health %sms",
                     self._scheduler.debounce_ms, self._monitor.interval_ms)

    def apply(self, match: Match, replacement: str, reschedule: bool = True) -> bool:
        """Replace ``match`` with ``replacement``.

        Returns False (and changes nothing) for a match that is not part
        of the current set. The remaining matches are rebased onto the
        new text and the selection is cleared.
        """
        with self._lock:
            result = apply_to_match_set(self._buffer.text, self._matches, match, replacement)
            if not result.applied:
                return False
            changed = self._buffer.set_text(result.text)
            self._matches = MatchSet(
                generation=self._buffer.generation,
                matches=result.matches,
                source=MatchSource.APPLIED,
            )
            self._selection.reset(len(result.matches), recover=False)
            logger.debug("Applied %r at %d, %d match(es) left",
                         replacement, match.offset, len(result.matches))
            if changed and reschedule:
                self._scheduler.schedule(result.text)
        self._notify()
        return True

    def apply_selected(self, replacement: str, reschedule: bool = True) -> bool:
        match = self.selected_match
        if match is None:
            logger.debug("Ignored stale action: nothing selected")
            return False
        return self.apply(match, replacement, reschedule=reschedule)

    # --- selection --------------------------------------------------------

    def select(self, index: Optional[int]) -> bool:
        with self._lock:
            changed = self._selection.select(index)
        if changed:
            self._notify()
        return changed

    def select_from_segment(self, match_index: Optional[int]) -> bool:
        with self._lock:
            changed = self._selection.select_from_segment(match_index)
        if changed:
            self._notify()
        return changed

    def select_at(self, position: int) -> bool:
        """Click at buffer ``position``; plain text leaves the selection alone."""
        with self._lock:
            seg = segment_at(self.segments(), position)
            match_index = seg.match_index if seg is not None else None
            changed = self._selection.select_from_segment(match_index)
        if changed:
            self._notify()
        return changed

    def clear_selection(self):
        with self._lock:
            changed = self._selection.index is not None
            self._selection.clear()
        if changed:
            self._notify()

    # --- scheduler / monitor callbacks -------------------------------------

    def _on_checking(self, seq: int, text: str):
        with self._lock:
            if not self._scheduler.is_current(seq) or text != self._buffer.text:
                return
            self._status = AnalysisStatus.CHECKING
            self._error = ""
        self._notify()

    def _on_result(self, result: AnalysisResult):
        with self._lock:
            if not self._scheduler.is_current(result.seq):
                logger.debug("Discarding superseded result #%d", result.seq)
                return
            if result.text != self._buffer.text:
                logger.debug("Discarding result #%d for an older generation", result.seq)
                return
            if result.status in (AnalysisStatus.OFFLINE, AnalysisStatus.FAILED):
                source = MatchSource.FALLBACK
            else:
                source = MatchSource.SERVICE
            self._matches = MatchSet(
                generation=self._buffer.generation,
                matches=tuple(result.matches),
                source=source,
            )
            self._selection.reset(len(self._matches))
            self._status = result.status
            self._error = result.error
        self._notify()

    def _on_health_change(self, state: HealthState):
        offline = state is HealthState.OFFLINE
        with self._lock:
            if self._scheduler.set_offline(offline):
                self._scheduler.analyze_now(self._buffer.text)
        self._notify()
