import logging
import threading
from typing import Callable, Optional

from xapi_constants import DEFAULT_QUIET_PERIOD


class Debouncer:
    """
    Trailing-edge debounce around an action.

    Every trigger() restarts the quiet period; the action runs once the
    period passes without another trigger. Runs are serialized: a run that
    is already in progress is never cancelled, and a later run waits for it
    to finish before starting.

    Example:
        debouncer = Debouncer(reconciler.run, quiet_period=2.0)
        debouncer.trigger()
        debouncer.trigger()  # reconciler.run is called once, 2s from here
    """

    def __init__(self, action: Callable[[], None], quiet_period: float = DEFAULT_QUIET_PERIOD, name: Optional[str] = None):
        """
        Args:
            action: Callable invoked with no arguments; it reads fresh state itself
            quiet_period: Seconds without a trigger before the action runs
            name: Name used for logging, defaults to the action's name
        """
        self.action = action
        self.quiet_period = quiet_period
        self.name = name or getattr(action, '__name__', 'action')
        self.logger = logging.getLogger(f'Debouncer({self.name})')

        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._closed = False

    @property
    def pending(self) -> bool:
        """True while a run is scheduled but has not started"""
        with self._lock:
            return self._timer is not None

    def trigger(self) -> None:
        """Schedule a run after the quiet period, replacing any pending one"""
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.quiet_period, self._fire)
            timer.daemon = True
            # Timer passes no reference to itself, bind it for the staleness check
            timer.args = (timer,)
            self._timer = timer
            timer.start()
        self.logger.debug(f"Triggered, running in {self.quiet_period}s unless triggered again")

    def cancel(self) -> None:
        """Drop the pending run, if any. A run already in progress completes."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def close(self) -> None:
        """Cancel the pending run and refuse all later runs, including fired ones still waiting to start"""
        with self._lock:
            self._closed = True
        self.cancel()

    def run_now(self) -> None:
        """Run the action immediately, serialized with debounced runs"""
        self._run()

    def _fire(self, timer: threading.Timer) -> None:
        with self._lock:
            # Replaced between expiry and acquiring the lock
            if self._timer is not timer:
                return
            self._timer = None
        self._run()

    def _run(self) -> None:
        with self._run_lock:
            if self._closed:
                return
            try:
                self.action()
            except Exception as e:
                self.logger.error(f"Error in '{self.name}': {e}")
