#!/usr/bin/env python3
"""
Presentation Priority Daemon - Keeps one presentation source active on a video device

Watches presentation and input signal state and switches to the highest
priority source that has signal.
"""
import logging
import signal
import sys

from presentation_config import ConfigError, DaemonConfig, LoggingConfig, load_config
from presentation_manager import PresentationManager
from xapi_comms import RealXAPIComms


def setup_logging(log_config: LoggingConfig):
    level = getattr(logging, log_config.level, logging.INFO)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_config.file:
        handlers.append(logging.FileHandler(log_config.file))

    logging.basicConfig(
        level=level,
        format=log_config.format,
        handlers=handlers
    )


def build_comms(config: DaemonConfig) -> RealXAPIComms:
    device = config.device
    return RealXAPIComms(
        host=device.host,
        username=device.username,
        password=device.password,
        verify_tls=device.verify_tls,
        timeout=device.timeout,
        poll_interval=device.poll_interval,
    )


def main():
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.yaml"

    try:
        config = load_config(config_path)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.logging)
    logger = logging.getLogger('PresentationDaemon')

    if not config.device.host:
        logger.error("No device host configured (device.host)")
        sys.exit(1)

    logger.info("Starting Presentation Priority Daemon")

    daemon = PresentationManager(build_comms(config), config.presentation)

    # Setup signal handlers for graceful shutdown
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        daemon.stop()
        logger.info("Presentation Priority Daemon stopped")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if not daemon.start():
        logger.error("Failed to start daemon")
        sys.exit(1)

    logger.info("Presentation Priority Daemon running, waiting for events...")

    # Feedback polling and timers run on background threads
    signal.pause()


if __name__ == "__main__":
    main()
