"""Request scheduler — debounces edits and keeps one analysis in flight.

Every issued request gets a sequence number. Only the result carrying the
current number is published; anything older is dropped no matter when it
arrives, so correctness never depends on the transport honouring a cancel.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from proofpad.api_client import AnalysisError, CancelToken, RequestCancelled

logger = logging.getLogger(__name__)


class AnalysisStatus(Enum):
    IDLE = "idle"           # nothing to check (empty/short input)
    CHECKING = "checking"
    DONE = "done"           # service answered, possibly with no matches
    OFFLINE = "offline"     # service marked offline, local rules used
    FAILED = "failed"       # request failed, local rules substituted


@dataclass(frozen=True)
class AnalysisResult:
    seq: int
    text: str
    status: AnalysisStatus
    matches: tuple = ()
    error: str = ""


def _spawn(fn, *args):
    thread = threading.Thread(target=fn, args=args, daemon=True)
    thread.start()


class RequestScheduler:
    """Debounced, cancellable analysis requests.

    ``analyze(text, language, cancel)`` is the network call, ``fallback(text,
    language)`` the local heuristic. ``on_result`` and ``on_checking`` are
    never called while the scheduler holds its own lock.
    """

    def __init__(self, analyze: Callable, fallback: Callable,
                 on_result: Callable[[AnalysisResult], None],
                 on_checking: Optional[Callable[[int, str], None]] = None,
                 debounce_ms: int = 600, min_length: int = 3,
                 language: str = "auto",
                 timer_factory=threading.Timer, runner=_spawn):
        self._analyze = analyze
        self._fallback = fallback
        self._on_result = on_result
        self._on_checking = on_checking
        self.debounce_ms = debounce_ms
        self.min_length = min_length
        self._timer_factory = timer_factory
        self._runner = runner

        self._lock = threading.Lock()
        self._language = language
        self._offline = False
        self._seq = 0
        self._token: Optional[CancelToken] = None
        self._timer = None
        self._debounce_id = 0
        self._closed = False

    # --- state ------------------------------------------------------------

    @property
    def language(self) -> str:
        return self._language

    @language.setter
    def language(self, value: str):
        with self._lock:
            self._language = value or "auto"

    @property
    def offline(self) -> bool:
        return self._offline

    def set_offline(self, offline: bool) -> bool:
        """Switch between service and local mode. Returns True if it changed."""
        with self._lock:
            changed = self._offline != offline
            self._offline = offline
        if changed:
            logger.info("Analysis mode: %s", "offline (local rules)" if offline else "online")
        return changed

    @property
    def seq(self) -> int:
        return self._seq

    def is_current(self, seq: int) -> bool:
        with self._lock:
            return seq == self._seq

    @property
    def pending(self) -> bool:
        """True while a debounce timer is armed."""
        return self._timer is not None

    # --- scheduling -------------------------------------------------------

    def schedule(self, text: str):
        """Called on every buffer change; restarts the debounce window."""
        with self._lock:
            if self._closed:
                return
            self._cancel_timer_locked()
            # Whatever is in flight was computed for older text
            self._invalidate_locked()
            debounce_id = self._debounce_id
            timer = self._timer_factory(self.debounce_ms / 1000.0,
                                        self._on_debounce, args=(debounce_id, text))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def analyze_now(self, text: str):
        """Skip the debounce and issue right away."""
        with self._lock:
            self._cancel_timer_locked()
        self._issue(text)

    def cancel(self):
        """Drop the pending timer and anything in flight."""
        with self._lock:
            self._cancel_timer_locked()
            self._invalidate_locked()

    def close(self):
        with self._lock:
            self._closed = True
            self._cancel_timer_locked()
            self._invalidate_locked()

    def _cancel_timer_locked(self):
        # Retires a timer that already fired but has not issued yet
        self._debounce_id += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _invalidate_locked(self):
        self._seq += 1
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def _on_debounce(self, debounce_id: int, text: str):
        """Timer thread: the debounce window settled."""
        self._issue(text, debounce_id)

    def _issue(self, text: str, debounce_id: Optional[int] = None):
        """Issue one analysis. From a timer, only if its window is still current."""
        with self._lock:
            if self._closed:
                return
            if debounce_id is not None:
                # schedule/cancel can land between the timer firing and here
                if debounce_id != self._debounce_id:
                    logger.debug("Skipping superseded debounce window")
                    return
                self._timer = None
            self._invalidate_locked()
            seq = self._seq
            language = self._language
            offline = self._offline
            token = None
            if len(text.strip()) >= self.min_length and not offline:
                token = CancelToken()
                self._token = token

        if len(text.strip()) < self.min_length:
            self._publish(AnalysisResult(seq, text, AnalysisStatus.IDLE))
            return

        if offline:
            matches = self._run_fallback(text, language)
            self._publish(AnalysisResult(seq, text, AnalysisStatus.OFFLINE, matches))
            return

        logger.debug("Issuing analysis #%d (%d chars, %s)", seq, len(text), language)
        if self._on_checking is not None:
            self._on_checking(seq, text)
        self._runner(self._run, seq, text, language, token)

    def _run(self, seq: int, text: str, language: str, token: CancelToken):
        """Worker thread: one network analysis."""
        try:
            matches = tuple(self._analyze(text, language, token))
        except RequestCancelled:
            logger.debug("Analysis #%d cancelled", seq)
            return
        except AnalysisError as e:
            logger.warning("Analysis failed, using local rules: %s", e)
            self._publish_failure(seq, text, language, str(e))
            return
        except Exception as e:
            logger.error("Analysis error: %s", e)
            self._publish_failure(seq, text, language, "Unable to review your text right now")
            return

        if token.cancelled:
            logger.debug("Analysis #%d finished after cancel, dropping", seq)
            return
        self._publish(AnalysisResult(seq, text, AnalysisStatus.DONE, matches))

    def _publish_failure(self, seq: int, text: str, language: str, error: str):
        if not self.is_current(seq):
            return
        matches = self._run_fallback(text, language)
        self._publish(AnalysisResult(seq, text, AnalysisStatus.FAILED, matches, error))

    def _run_fallback(self, text: str, language: str) -> tuple:
        try:
            return tuple(self._fallback(text, language))
        except Exception as e:
            logger.error("Local rules failed: %s", e)
            return ()

    def _publish(self, result: AnalysisResult):
        with self._lock:
            current = result.seq == self._seq
            if current:
                self._token = None
        if not current:
            logger.debug("Dropping stale result #%d", result.seq)
            return
        self._on_result(result)
