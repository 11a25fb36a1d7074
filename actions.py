"""
Presentation Actions - Outbound device commands for a reconciliation pass

Each method blocks until the device has accepted the command. Failures
raise XAPIError and are left to the caller, so a failed stop prevents
the start that would have followed it.
"""

import logging
import time

from presentation_config import AlertConfig
from xapi_comms import XAPIComms, XCommand
from xapi_constants import DEFAULT_SETTLE_DELAY


class PresentationActions:
    """Sequences stop/start/alert/half-wake commands with settle delays"""

    def __init__(self, comms: XAPIComms, alert: AlertConfig, settle_delay: float = DEFAULT_SETTLE_DELAY):
        """
        Args:
            comms: Device transport
            alert: Alert shown after a presentation was replaced
            settle_delay: Seconds to wait between dependent commands
        """
        self.logger = logging.getLogger('PresentationActions')
        self.comms = comms
        self.alert = alert
        self.settle_delay = settle_delay

    def settle(self) -> None:
        time.sleep(self.settle_delay)

    def stop_presentation(self, source: int) -> None:
        """
        Stop the presentation of one source, then wait the settle delay.

        Sends: xCommand Presentation Stop PresentationSource: <source>
        """
        self.logger.info(f"Stopping presentation source {source}")
        self.comms.transmit(XCommand.build("Presentation Stop", PresentationSource=source))
        self.settle()

    def start_presentation(self, source: int) -> None:
        """
        Wait the settle delay, then start presenting a source.

        Sends: xCommand Presentation Start PresentationSource: <source>
        """
        self.settle()
        self.logger.info(f"Starting presentation source {source}")
        self.comms.transmit(XCommand.build("Presentation Start", PresentationSource=source))

    def show_alert(self) -> bool:
        """
        Display the configured alert, if alerts are enabled.

        Returns:
            True if the alert was sent
        """
        if not self.alert.show_alert:
            return False

        self.logger.info(f"Displaying alert '{self.alert.title}'")
        self.comms.transmit(XCommand.build(
            "UserInterface Message Alert Display",
            Duration=self.alert.duration,
            Title=self.alert.title,
            Text=self.alert.text,
        ))
        return True

    def enter_halfwake(self) -> None:
        """Sends: xCommand Standby Halfwake"""
        self.logger.info("Entering half-wake")
        self.comms.transmit(XCommand.build("Standby Halfwake"))
