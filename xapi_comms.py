import logging
import threading
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple, Union

import requests

from xapi_constants import DEFAULT_HTTP_TIMEOUT, DEFAULT_POLL_INTERVAL, StatusPath


class XAPIError(Exception):
    """A status query or command against the device failed"""


class PresentationInstance(NamedTuple):
    """One entry of Conference/Presentation/LocalInstance"""
    instance_id: str
    source: str


class VideoConnector(NamedTuple):
    """One entry of Video/Input/Connector"""
    connector_id: str
    signal_state: str


PresentationCallback = Callable[[List[PresentationInstance]], None]
SignalCallback = Callable[[str, str], None]


class XCommand:
    """Represents an xAPI command to be transmitted"""

    def __init__(self, path: Union[str, Tuple[str, ...]], params: Optional[Dict[str, Union[int, str]]] = None):
        """
        Create an XCommand.

        Args:
            path: Command path, either "Presentation Stop" or ("Presentation", "Stop")
            params: Command arguments, in the order they should be sent
        """
        if isinstance(path, str):
            path = tuple(path.split())
        if not path:
            raise ValueError("Empty xCommand path")

        self.path = path
        self.params = dict(params or {})

    @classmethod
    def build(cls, path: str, **params) -> 'XCommand':
        """
        Create an XCommand from a space separated path and keyword arguments.

        Example:
            XCommand.build("Presentation Start", PresentationSource=2)
        """
        return cls(path, params)

    def to_xml(self) -> bytes:
        """Render the command as a putxml request body"""
        root = ET.Element("Command")
        node = root
        for part in self.path:
            node = ET.SubElement(node, part)
        for name, value in self.params.items():
            ET.SubElement(node, name).text = str(value)
        return ET.tostring(root)

    def __eq__(self, other):
        if not isinstance(other, XCommand):
            return NotImplemented
        return self.path == other.path and self.params == other.params

    def __repr__(self):
        return f"XCommand({str(self)!r})"

    def __str__(self):
        """Return the command as typed on the device shell"""
        parts = ["xCommand", *self.path]
        for name, value in self.params.items():
            if isinstance(value, str):
                parts.append(f'{name}: "{value}"')
            else:
                parts.append(f"{name}: {value}")
        return " ".join(parts)


class XAPIComms(ABC):
    """Abstract interface for talking to the device xAPI"""

    @abstractmethod
    def init(self, on_presentation_change: PresentationCallback, on_signal_change: SignalCallback) -> bool:
        pass

    @abstractmethod
    def get_presentation_instances(self) -> List[PresentationInstance]:
        pass

    @abstractmethod
    def get_video_connectors(self) -> List[VideoConnector]:
        pass

    @abstractmethod
    def get_uptime(self) -> int:
        pass

    @abstractmethod
    def transmit(self, command: XCommand) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class RealXAPIComms(XAPIComms):
    """
    xAPI communication over the device HTTP API.

    Status is read with getxml, commands are sent with putxml. The HTTP API
    has no push channel, so feedback is produced by a polling thread that
    compares consecutive status snapshots.
    """

    def __init__(self, host: str, username: str = "admin", password: str = "",
                 verify_tls: bool = False, timeout: float = DEFAULT_HTTP_TIMEOUT,
                 poll_interval: float = DEFAULT_POLL_INTERVAL):
        self.logger = logging.getLogger('RealXAPIComms')
        self._base_url = host if host.startswith(("http://", "https://")) else f"https://{host}"
        self._timeout = timeout
        self._poll_interval = poll_interval

        self._session = requests.Session()
        self._session.auth = (username, password)
        self._session.verify = verify_tls

        self._on_presentation_change: Optional[PresentationCallback] = None
        self._on_signal_change: Optional[SignalCallback] = None
        self._last_presentations: Optional[List[PresentationInstance]] = None
        self._last_signals: Dict[str, str] = {}

        self._stop_event = threading.Event()
        self._polling_thread: Optional[threading.Thread] = None

    def init(self, on_presentation_change: PresentationCallback, on_signal_change: SignalCallback) -> bool:
        """Connect to the device and start feedback polling"""
        self._on_presentation_change = on_presentation_change
        self._on_signal_change = on_signal_change

        try:
            self._poll_once()
        except XAPIError as e:
            self.logger.error(f"Failed to reach device at {self._base_url}: {e}")
            return False

        self.logger.info(f"Connected to device at {self._base_url}")
        self._stop_event.clear()
        self._polling_thread = threading.Thread(target=self._polling_loop, name="xapi-feedback", daemon=True)
        self._polling_thread.start()
        return True

    def get_presentation_instances(self) -> List[PresentationInstance]:
        root = self._get_status(StatusPath.PRESENTATION_LOCAL_INSTANCE)
        return [
            PresentationInstance(node.get("item", ""), (node.findtext("Source") or "").strip())
            for node in root.iter("LocalInstance")
        ]

    def get_video_connectors(self) -> List[VideoConnector]:
        root = self._get_status(StatusPath.VIDEO_INPUT_CONNECTOR)
        return [
            VideoConnector(node.get("item", ""), (node.findtext("SignalState") or "").strip())
            for node in root.iter("Connector")
        ]

    def get_uptime(self) -> int:
        root = self._get_status(StatusPath.SYSTEM_UNIT_UPTIME)
        uptime = root.find(".//Uptime")
        if uptime is None or uptime.text is None:
            raise XAPIError("Uptime missing from status response")
        try:
            return int(uptime.text.strip())
        except ValueError:
            raise XAPIError(f"Invalid uptime value: {uptime.text!r}")

    def transmit(self, command: XCommand) -> None:
        """Send a command with putxml, raising XAPIError if the device rejects it"""
        self.logger.debug(f"TX: {command}")
        root = self._request("POST", "/putxml", data=command.to_xml(),
                             headers={"Content-Type": "text/xml"})

        for node in root.iter():
            if node.get("status") == "Error":
                reason = node.findtext(".//Reason") or node.findtext(".//Description") or "unknown reason"
                raise XAPIError(f"{command} failed: {reason.strip()}")

    def close(self) -> None:
        """Stop feedback polling and close the HTTP session"""
        self._stop_event.set()
        if self._polling_thread is not None and self._polling_thread is not threading.current_thread():
            self._polling_thread.join(timeout=5)
        self._polling_thread = None
        self._session.close()
        self.logger.info("Device connection closed")

    def _get_status(self, location: str) -> ET.Element:
        return self._request("GET", "/getxml", params={"location": location})

    def _request(self, method: str, path: str, **kwargs) -> ET.Element:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            raise XAPIError(f"{method} {path} failed: {e}") from e

        try:
            return ET.fromstring(response.content)
        except ET.ParseError as e:
            raise XAPIError(f"Unparsable response from {path}: {e}") from e

    def _polling_loop(self) -> None:
        self.logger.info(f"Feedback polling started (interval: {self._poll_interval}s)")
        while not self._stop_event.wait(self._poll_interval):
            try:
                self._poll_once()
            except XAPIError as e:
                self.logger.warning(f"Feedback poll failed: {e}")

    def _poll_once(self) -> None:
        """Fetch both status lists and report what changed since the last poll"""
        presentations = self.get_presentation_instances()
        signals = {c.connector_id: c.signal_state for c in self.get_video_connectors()}

        # First snapshot is the baseline
        if self._last_presentations is None:
            self._last_presentations = presentations
            self._last_signals = signals
            return

        presentations_changed = presentations != self._last_presentations
        changed_signals = [
            (connector_id, signals.get(connector_id, ""))
            for connector_id in sorted(set(signals) | set(self._last_signals))
            if signals.get(connector_id) != self._last_signals.get(connector_id)
        ]
        self._last_presentations = presentations
        self._last_signals = signals

        if presentations_changed and self._on_presentation_change:
            self._on_presentation_change(presentations)
        if self._on_signal_change:
            for connector_id, state in changed_signals:
                self._on_signal_change(connector_id, state)


class MockXAPIComms(XAPIComms):
    """
    Mock xAPI communication for testing.

    Serves scripted status, records transmitted commands as strings and
    applies presentation start/stop to its own state like the device would.
    """

    def __init__(self):
        self.logger = logging.getLogger('MockXAPIComms')
        self._on_presentation_change: Optional[PresentationCallback] = None
        self._on_signal_change: Optional[SignalCallback] = None
        self._initialized = False
        self.presentation_instances: List[PresentationInstance] = []
        self.connectors: List[VideoConnector] = []
        self.uptime = 3600
        self.transmitted_commands: List[str] = []
        self.failing_commands = set()
        self.query_error: Optional[XAPIError] = None

    def init(self, on_presentation_change: PresentationCallback, on_signal_change: SignalCallback) -> bool:
        """Initialize mock xAPI"""
        self._on_presentation_change = on_presentation_change
        self._on_signal_change = on_signal_change
        self._initialized = True
        self.logger.info("Mock xAPI initialized")
        return True

    def set_presentations(self, *sources: int) -> None:
        """Replace the active presentation instances, one per source"""
        self.presentation_instances = [
            PresentationInstance(str(index), str(source)) for index, source in enumerate(sources, start=1)
        ]

    def set_signals(self, signals: Dict[int, str]) -> None:
        """Replace the connector list, e.g. {2: "OK", 3: "NotFound"}"""
        self.connectors = [VideoConnector(str(cid), state) for cid, state in signals.items()]

    def get_presentation_instances(self) -> List[PresentationInstance]:
        if self.query_error is not None:
            raise self.query_error
        return list(self.presentation_instances)

    def get_video_connectors(self) -> List[VideoConnector]:
        if self.query_error is not None:
            raise self.query_error
        return list(self.connectors)

    def get_uptime(self) -> int:
        return self.uptime

    def transmit(self, command: XCommand) -> None:
        """Record transmitted command and apply it to the mock state"""
        if not self._initialized:
            raise XAPIError("Mock xAPI not initialized")

        cmd_string = str(command)
        if " ".join(command.path) in self.failing_commands:
            raise XAPIError(f"{cmd_string} failed: scripted failure")

        self.transmitted_commands.append(cmd_string)
        self.logger.debug(f"Mock TX: {cmd_string}")

        if command.path == ("Presentation", "Stop"):
            source = str(command.params.get("PresentationSource"))
            self.presentation_instances = [i for i in self.presentation_instances if i.source != source]
        elif command.path == ("Presentation", "Start"):
            source = str(command.params.get("PresentationSource"))
            next_id = str(max((int(i.instance_id) for i in self.presentation_instances), default=0) + 1)
            self.presentation_instances.append(PresentationInstance(next_id, source))

    def close(self) -> None:
        """Close mock xAPI"""
        self._initialized = False
        self.logger.info("Mock xAPI closed")

    def simulate_presentation_change(self) -> None:
        """Simulate LocalInstance feedback carrying the current list"""
        if self._on_presentation_change:
            self._on_presentation_change(list(self.presentation_instances))

    def simulate_signal_change(self, connector_id: str, state: str) -> None:
        """Simulate SignalState feedback for one connector"""
        if self._on_signal_change:
            self._on_signal_change(connector_id, state)