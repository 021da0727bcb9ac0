"""Health monitor — tracks whether the analysis service is reachable."""
import logging
import threading
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class HealthState(Enum):
    UNKNOWN = "unknown"
    ONLINE = "online"
    OFFLINE = "offline"


class HealthMonitor:
    """Runs ``probe`` at start and then every ``interval_ms``.

    ``probe`` returns truthy when the service is reachable; any exception
    counts as offline. ``on_change(state)`` fires on every transition.
    """

    def __init__(self, probe: Callable[[], bool],
                 on_change: Optional[Callable[[HealthState], None]] = None,
                 interval_ms: int = 30000, timer_factory=threading.Timer):
        self._probe = probe
        self._on_change = on_change
        self.interval_ms = interval_ms
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._state = HealthState.UNKNOWN
        self._timer = None
        self._running = False

    @property
    def state(self) -> HealthState:
        return self._state

    @property
    def online(self) -> bool:
        return self._state is HealthState.ONLINE

    @property
    def running(self) -> bool:
        return self._running

    def probe(self) -> HealthState:
        """Probe now, update the state and notify on a transition."""
        try:
            ok = bool(self._probe())
        except Exception as e:
            logger.debug("Health probe raised: %s", e)
            ok = False
        new_state = HealthState.ONLINE if ok else HealthState.OFFLINE

        with self._lock:
            previous = self._state
            self._state = new_state

        if new_state is not previous:
            logger.info("Language service is %s", new_state.value)
            if self._on_change is not None:
                self._on_change(new_state)
        return new_state

    def start(self):
        """Start probing. The first probe runs right away on the timer thread."""
        if self._running:
            return
        self._running = True
        self._arm(0)

    def stop(self):
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _arm(self, delay_ms: Optional[int] = None):
        delay_ms = self.interval_ms if delay_ms is None else delay_ms
        with self._lock:
            if not self._running or delay_ms < 0:
                return
            timer = self._timer_factory(delay_ms / 1000.0, self._tick)
            timer.daemon = True
            self._timer = timer
        timer.start()

    def _tick(self):
        """Timer thread: periodic probe, then re-arm."""
        if not self._running:
            return
        self.probe()
        # interval 0 means probe once at start only
        if self.interval_ms > 0:
            self._arm()
