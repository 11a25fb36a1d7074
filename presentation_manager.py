import logging
import threading
from typing import Optional

from actions import PresentationActions
from debouncer import Debouncer
from event_router import EventRouter
from presentation_config import PresentationConfig
from reconciler import Reconciler
from signal_collector import SignalCollector
from xapi_comms import XAPIComms, XAPIError


class PresentationManager:
    """
    Top-level manager for presentation priority.

    Wires the collector, actions, reconciler, debouncer and event router
    around a transport and manages their lifecycle.
    """

    def __init__(self, comms: XAPIComms, config: PresentationConfig):
        """
        Initialize the presentation manager.

        Args:
            comms: XAPIComms instance (RealXAPIComms or MockXAPIComms)
            config: Presentation settings
        """
        self.logger = logging.getLogger('PresentationManager')
        self.comms = comms
        self.config = config

        self.collector = SignalCollector(comms)
        self.actions = PresentationActions(comms, config.alert, config.settle_delay)
        self.reconciler = Reconciler(self.collector, self.actions, config)
        self.debouncer = Debouncer(self.reconciler.run, config.quiet_period, name='reconcile')
        self.router = EventRouter(self.debouncer)

        self._startup_timer: Optional[threading.Timer] = None
        self._running = False

    def start(self) -> bool:
        """Connect to the device and schedule activation once the device has been up long enough"""
        self.logger.info("Starting presentation manager")

        if not self.comms.init(self.router.on_presentation_change, self.router.on_signal_change):
            self.logger.error("Failed to initialize device connection")
            return False

        self._running = True

        try:
            uptime = self.comms.get_uptime()
        except XAPIError as e:
            self.logger.warning(f"Could not read device uptime, activating now: {e}")
            uptime = self.config.min_uptime

        remaining = self.config.min_uptime - uptime
        if remaining > 0:
            self.logger.info(f"Device uptime {uptime}s, waiting {remaining}s before activating")
            self._startup_timer = threading.Timer(remaining, self._activate)
            self._startup_timer.daemon = True
            self._startup_timer.start()
        else:
            self._activate()

        self.logger.info("Presentation manager started")
        return True

    def stop(self) -> None:
        """Stop the presentation manager and clean up resources"""
        self.logger.info("Stopping presentation manager")
        self._running = False

        if self._startup_timer is not None:
            self._startup_timer.cancel()
            self._startup_timer = None

        self.router.disable()
        self.debouncer.close()
        self.comms.close()

        self.logger.info("Presentation manager stopped")

    def check_now(self) -> None:
        """Run a reconciliation pass immediately, bypassing the quiet period"""
        self.debouncer.run_now()

    def _activate(self) -> None:
        if not self._running:
            return
        # Route feedback before the startup pass so changes during it schedule a follow-up
        self.router.enable()
        self.logger.info("Checking presentation state on startup")
        self.check_now()
