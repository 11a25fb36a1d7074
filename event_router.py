import logging
from typing import List

from debouncer import Debouncer
from xapi_comms import PresentationInstance
from xapi_constants import SignalState


class EventRouter:
    """
    Routes device feedback into the debounced reconciliation trigger.

    Feedback is ignored until enable() is called, so nothing is acted on
    before the startup check has run.
    """

    # Intermediate state while the connector negotiates a format
    IGNORED_SIGNAL_STATES = frozenset({SignalState.DETECTING_FORMAT.value})

    def __init__(self, debouncer: Debouncer):
        self.logger = logging.getLogger('EventRouter')
        self.debouncer = debouncer
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True
        self.logger.info("Routing presentation and signal feedback")

    def disable(self) -> None:
        self._enabled = False

    def on_presentation_change(self, instances: List[PresentationInstance]) -> None:
        """Any change to the local presentation instances triggers a check"""
        if not self._enabled:
            return
        self.logger.debug(f"Presentation change: {instances}")
        self.debouncer.trigger()

    def on_signal_change(self, connector_id: str, state: str) -> None:
        """Connector signal changes trigger a check unless empty or transient"""
        if not self._enabled or not state:
            return
        self.logger.debug(f"Connector {connector_id} SignalState change: {state}")
        if state in self.IGNORED_SIGNAL_STATES:
            return
        self.debouncer.trigger()
