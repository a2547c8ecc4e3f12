"""Coalesce bursts of file changes into a single restart.

A change arms the scheduler.  It then waits until ``quiet_period`` seconds
have passed since the most recent change.  The check at the end of each
wait and the reset of the ``fresh`` bit happen under the same lock that
``ChangeSignal.mark`` takes, so a change arriving right as the window
closes is either seen by that check (and the timer rearms) or recorded
after it (and arms the next window).  It is never lost.
"""
import logging
import threading
import time

from typing import Callable, Optional


LOGGER = logging.getLogger(__name__)

QUIET_PERIOD = 1.0


class ChangeSignal:
    """The pending/fresh flag pair shared by the classifier and scheduler.

    ``pending`` means a relevant change happened since the last restart.
    ``fresh`` means one happened since the scheduler last checked.
    ``fresh`` is never set while ``pending`` is clear.
    """
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._cond = threading.Condition()
        self._pending = False
        self._fresh = False
        self._last_change = 0.0
        self._closed = False

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._pending

    @property
    def fresh(self) -> bool:
        with self._cond:
            return self._fresh

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def mark(self) -> None:
        with self._cond:
            self._pending = True
            self._fresh = True
            self._last_change = self._clock()
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def wait_until_quiet(self, quiet_period: float) -> bool:
        """Block until a pending change has been quiet for ``quiet_period``.

        Returns True exactly once per quiesced burst, clearing ``pending``.
        Returns False as soon as the signal is closed.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._pending or self._closed)
            while not self._closed:
                self._fresh = False
                remaining = self._last_change + quiet_period - self._clock()
                if remaining > 0:
                    self._cond.wait_for(lambda: self._closed,
                                        timeout=remaining)
                if self._closed:
                    break
                if self._fresh:
                    # Ties go to rearming: a later restart beats an early one.
                    LOGGER.debug("Change during quiet period, rearming.")
                    continue
                self._pending = False
                return True
            return False


class DebounceScheduler:
    def __init__(self, change_signal: ChangeSignal,
                 on_fire: Callable[[], object],
                 quiet_period: float = QUIET_PERIOD) -> None:
        self._change_signal = change_signal
        self._on_fire = on_fire
        self._quiet_period = quiet_period
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run,
                                        name='hotwatch-debounce')
        self._thread.daemon = True
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._change_signal.close()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while self._change_signal.wait_until_quiet(self._quiet_period):
            self._on_fire()
        LOGGER.debug("Debounce scheduler stopped.")
