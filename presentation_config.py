"""
Configuration - Static settings loaded once at process start
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import yaml

from xapi_constants import (
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_MIN_UPTIME,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_QUIET_PERIOD,
    DEFAULT_SETTLE_DELAY,
)


class ConfigError(Exception):
    """Configuration file missing or invalid"""


@dataclass(frozen=True)
class DeviceConfig:
    host: str = ""
    username: str = "admin"
    password: str = ""
    verify_tls: bool = False
    timeout: float = DEFAULT_HTTP_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL


@dataclass(frozen=True)
class AlertConfig:
    """Alert shown on the device when a presentation was replaced"""
    show_alert: bool = True
    duration: int = 30
    title: str = "Auto Share Macro"
    text: str = "Unplug cable to restore previous presentation"


@dataclass(frozen=True)
class PresentationConfig:
    """
    Reconciliation settings.

    Attributes:
        priority_order: Source Identifiers, highest priority first
        no_signal_halfwake: Enter half-wake when no configured source has signal
        quiet_period: Debounce quiet period in seconds
        settle_delay: Pause between dependent device commands in seconds
        min_uptime: Seconds since boot before the first check runs
    """
    priority_order: Tuple[int, ...] = (2, 3)
    no_signal_halfwake: bool = True
    quiet_period: float = DEFAULT_QUIET_PERIOD
    settle_delay: float = DEFAULT_SETTLE_DELAY
    min_uptime: int = DEFAULT_MIN_UPTIME
    alert: AlertConfig = field(default_factory=AlertConfig)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass(frozen=True)
class DaemonConfig:
    device: DeviceConfig = field(default_factory=DeviceConfig)
    presentation: PresentationConfig = field(default_factory=PresentationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: str = "config.yaml") -> DaemonConfig:
    """
    Load configuration from a YAML file.

    Raises:
        ConfigError: If the file is missing, unparsable or has invalid values
    """
    try:
        with open(config_path, 'r') as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Configuration file '{config_path}' not found")
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing configuration file: {e}")

    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration file '{config_path}' must contain a mapping")
    return parse_config(raw)


def _as_bool(section: Dict[str, Any], key: str, default: bool) -> bool:
    """Read a YAML boolean; quoted strings such as "false" are rejected"""
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}")
    return value


def parse_config(raw: Dict[str, Any]) -> DaemonConfig:
    """Build a DaemonConfig from an already parsed mapping"""
    device = raw.get('device') or {}
    presentation = raw.get('presentation') or {}
    alert = raw.get('alert') or {}
    log_config = raw.get('logging') or {}

    try:
        alert_config = AlertConfig(
            show_alert=_as_bool(alert, 'show_alert', True),
            duration=int(alert.get('duration', 30)),
            title=str(alert.get('title', AlertConfig.title)),
            text=str(alert.get('text', AlertConfig.text)),
        )
        presentation_config = PresentationConfig(
            priority_order=tuple(int(s) for s in presentation.get('source_order', [2, 3]) or []),
            no_signal_halfwake=_as_bool(presentation, 'no_signal_auto_halfwake', True),
            quiet_period=float(presentation.get('quiet_period', DEFAULT_QUIET_PERIOD)),
            settle_delay=float(presentation.get('settle_delay', DEFAULT_SETTLE_DELAY)),
            min_uptime=int(presentation.get('min_uptime', DEFAULT_MIN_UPTIME)),
            alert=alert_config,
        )
        device_config = DeviceConfig(
            host=str(device.get('host', '')),
            username=str(device.get('username', 'admin')),
            password=str(device.get('password', '') or ''),
            verify_tls=_as_bool(device, 'verify_tls', False),
            timeout=float(device.get('timeout', DEFAULT_HTTP_TIMEOUT)),
            poll_interval=float(device.get('poll_interval', DEFAULT_POLL_INTERVAL)),
        )
        logging_config = LoggingConfig(
            level=str(log_config.get('level', 'INFO')).upper(),
            format=str(log_config.get('format', LoggingConfig.format)),
            file=log_config.get('file'),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}")

    return DaemonConfig(device=device_config, presentation=presentation_config, logging=logging_config)
