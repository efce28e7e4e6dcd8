"""Restartable interval timer used for auto-refresh."""

import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Timer(Protocol):
    def stop(self) -> Any: ...


# (interval_seconds, callback) -> timer handle; Textual's App.set_interval fits
TimerFactory = Callable[[float, Callable[[], None]], Timer]


class RefreshScheduler:
    """Owns at most one repeating timer at a time."""

    def __init__(self, timer_factory: TimerFactory, on_tick: Callable[[], None]):
        self._timer_factory = timer_factory
        self._on_tick = on_tick
        self._timer: Optional[Timer] = None
        self.interval = 0
        self.enabled = True

    @property
    def is_active(self) -> bool:
        return self._timer is not None

    def start(self, interval: Optional[int] = None) -> bool:
        """Start (or restart) the timer. Returns False when nothing was started."""
        if interval is not None:
            self.interval = interval
        if not self.enabled or self.interval <= 0:
            return False
        self.stop()
        self._timer = self._timer_factory(self.interval, self._tick)
        logger.debug(f"Auto-refresh timer started ({self.interval}s)")
        return True

    def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer = None

    def restart(self) -> bool:
        return self.start()

    def _tick(self) -> None:
        self._on_tick()
