"""
Signal Collector - Reads presentation and connector state from the device

Both sets are recomputed from a fresh query on every call.
"""

import logging
from typing import Iterable, Set

from xapi_comms import XAPIComms
from xapi_constants import SignalState


class SignalCollector:
    """Normalizes device status into sets of Source Identifiers"""

    def __init__(self, comms: XAPIComms):
        self.logger = logging.getLogger('SignalCollector')
        self.comms = comms

    def collect_active_presentations(self) -> Set[int]:
        """
        Query active presentation instances.

        Returns:
            Source Identifiers of all local presentation instances
        """
        instances = self.comms.get_presentation_instances()
        return self._to_source_ids(instance.source for instance in instances)

    def collect_signaled_connectors(self) -> Set[int]:
        """
        Query video input connectors.

        Returns:
            Identifiers of connectors whose signal state is exactly "OK"
        """
        connectors = self.comms.get_video_connectors()
        return self._to_source_ids(
            connector.connector_id
            for connector in connectors
            if connector.signal_state == SignalState.OK.value
        )

    def _to_source_ids(self, values: Iterable[str]) -> Set[int]:
        source_ids = set()
        for value in values:
            try:
                source_ids.add(int(value))
            except (TypeError, ValueError):
                self.logger.warning(f"Ignoring non-numeric source identifier: {value!r}")
        return source_ids
