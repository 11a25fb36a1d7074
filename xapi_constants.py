from enum import Enum


class SignalState(str, Enum):
    """Video input connector signal states"""
    OK = "OK"
    DETECTING_FORMAT = "DetectingFormat"
    UNSTABLE = "Unstable"
    UNSUPPORTED = "Unsupported"
    NOT_FOUND = "NotFound"


class StatusPath:
    """xAPI status locations"""
    PRESENTATION_LOCAL_INSTANCE = "/Status/Conference/Presentation/LocalInstance"
    VIDEO_INPUT_CONNECTOR = "/Status/Video/Input/Connector"
    SYSTEM_UNIT_UPTIME = "/Status/SystemUnit/Uptime"


# Timings in seconds
DEFAULT_QUIET_PERIOD = 2.0
DEFAULT_SETTLE_DELAY = 0.2
DEFAULT_MIN_UPTIME = 60
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_HTTP_TIMEOUT = 5.0
