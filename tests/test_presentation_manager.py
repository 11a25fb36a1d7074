import threading
import time
from unittest.mock import Mock, patch

import pytest

from presentation_config import AlertConfig, PresentationConfig
from presentation_manager import PresentationManager
from xapi_comms import MockXAPIComms, XAPIError, XCommand


START_2 = "xCommand Presentation Start PresentationSource: 2"
START_3 = "xCommand Presentation Start PresentationSource: 3"
STOP_3 = "xCommand Presentation Stop PresentationSource: 3"

QUIET = 0.2


@pytest.fixture
def config():
    return PresentationConfig(
        priority_order=(2, 3),
        no_signal_halfwake=True,
        quiet_period=QUIET,
        settle_delay=0,
        min_uptime=60,
        alert=AlertConfig(show_alert=False),
    )


class TestPresentationManager:
    """Test PresentationManager"""

    def test_initialization(self, config):
        """Test that PresentationManager wires its components"""
        mock = MockXAPIComms()
        manager = PresentationManager(mock, config)

        assert manager.comms is mock
        assert manager.reconciler.config is config
        assert manager.debouncer.quiet_period == QUIET
        assert manager.router.debouncer is manager.debouncer
        assert manager.router.enabled is False

    def test_start_runs_initial_check(self, config):
        """Test that start() checks state immediately when the device has been up long enough"""
        mock = MockXAPIComms()
        mock.set_presentations(3)
        mock.set_signals({2: "OK", 3: "OK"})
        manager = PresentationManager(mock, config)

        assert manager.start() is True

        assert mock.transmitted_commands == [STOP_3, START_2]
        assert manager.router.enabled is True
        manager.stop()

    def test_start_waits_for_uptime(self, config):
        """Test that activation is deferred until the device reaches the minimum uptime"""
        mock = MockXAPIComms()
        mock.uptime = 15
        mock.set_signals({2: "OK"})
        manager = PresentationManager(mock, config)

        with patch('presentation_manager.threading.Timer') as timer:
            assert manager.start() is True

        timer.assert_called_once_with(45, manager._activate)
        timer.return_value.start.assert_called_once()
        assert mock.transmitted_commands == []
        assert manager.router.enabled is False

        # Feedback before activation is ignored
        mock.simulate_signal_change("2", "OK")
        assert manager.debouncer.pending is False

        manager._activate()
        assert mock.transmitted_commands == [START_2]
        assert manager.router.enabled is True
        manager.stop()

    def test_uptime_failure_activates_immediately(self, config):
        """Test that an unreadable uptime does not block startup"""
        mock = MockXAPIComms()
        mock.get_uptime = Mock(side_effect=XAPIError("timeout"))
        mock.set_signals({2: "OK"})
        manager = PresentationManager(mock, config)

        assert manager.start() is True
        assert mock.transmitted_commands == [START_2]
        manager.stop()

    def test_start_without_comms_fails_gracefully(self, config):
        """Test that start() handles init failure gracefully"""
        mock = MockXAPIComms()
        mock.init = lambda on_presentation_change, on_signal_change: False
        manager = PresentationManager(mock, config)

        assert manager.start() is False

    def test_feedback_triggers_debounced_pass(self, config):
        """Test that a signal burst results in one pass reflecting the latest state"""
        mock = MockXAPIComms()
        mock.set_signals({3: "OK"})
        manager = PresentationManager(mock, config)
        manager.start()
        assert mock.transmitted_commands == ["xCommand Presentation Start PresentationSource: 3"]
        mock.transmitted_commands.clear()

        # Source 2 negotiates, then comes up
        mock.simulate_signal_change("2", "DetectingFormat")
        assert manager.debouncer.pending is False
        mock.simulate_signal_change("2", "Unstable")
        mock.set_signals({2: "OK", 3: "OK"})
        mock.simulate_signal_change("2", "OK")
        mock.simulate_presentation_change()

        time.sleep(QUIET * 3)

        assert mock.transmitted_commands == [STOP_3, START_2]
        manager.stop()

    def test_failed_pass_recovers_on_next_event(self, config):
        """Test that a failed pass is retried by the next event"""
        mock = MockXAPIComms()
        manager = PresentationManager(mock, config)
        manager.start()

        mock.set_signals({2: "OK"})
        mock.failing_commands.add("Presentation Start")
        mock.simulate_signal_change("2", "OK")
        time.sleep(QUIET * 3)
        assert START_2 not in mock.transmitted_commands

        mock.failing_commands.clear()
        mock.simulate_signal_change("2", "OK")
        time.sleep(QUIET * 3)
        assert START_2 in mock.transmitted_commands
        manager.stop()

    def test_stop_cleans_up(self, config):
        """Test that stop() cancels pending work and closes the transport"""
        mock = MockXAPIComms()
        mock.set_signals({2: "OK"})
        manager = PresentationManager(mock, config)
        manager.start()
        mock.transmitted_commands.clear()

        mock.simulate_presentation_change()
        assert manager.debouncer.pending is True

        manager.stop()
        time.sleep(QUIET * 2)

        assert manager.debouncer.pending is False
        assert manager.router.enabled is False
        assert mock.transmitted_commands == []
        with pytest.raises(XAPIError):
            mock.transmit(XCommand.build("Standby Halfwake"))

    def test_stop_before_activation(self, config):
        """Test that a deferred activation is cancelled by stop()"""
        mock = MockXAPIComms()
        mock.uptime = 0
        manager = PresentationManager(mock, config)

        with patch('presentation_manager.threading.Timer') as timer:
            manager.start()
            manager.stop()

        timer.return_value.cancel.assert_called_once()
        manager._activate()
        assert mock.transmitted_commands == []

    def test_feedback_during_startup_check_schedules_pass(self, config):
        """Test that a signal change while the startup pass runs is acted on afterwards"""
        mock = MockXAPIComms()
        mock.set_signals({3: "OK"})
        original_transmit = mock.transmit

        def transmit(command):
            original_transmit(command)
            # Source 2 comes up while source 3 is being started
            if str(command) == START_3:
                mock.set_signals({2: "OK", 3: "OK"})
                mock.simulate_signal_change("2", "OK")

        mock.transmit = transmit
        manager = PresentationManager(mock, config)

        assert manager.start() is True
        assert manager.debouncer.pending is True

        time.sleep(QUIET * 4)

        assert mock.transmitted_commands == [START_3, STOP_3, START_2]
        manager.stop()

    def test_stop_skips_pass_waiting_behind_running_pass(self, config):
        """Test that a fired pass still waiting for the running one never runs after stop()"""
        mock = MockXAPIComms()
        manager = PresentationManager(mock, config)
        manager.start()
        mock.transmitted_commands.clear()

        started = threading.Event()
        release = threading.Event()
        original_run = manager.reconciler.run

        def slow_run():
            started.set()
            release.wait(2)
            return original_run()

        manager.debouncer.action = slow_run
        mock.set_signals({2: "OK"})
        mock.simulate_signal_change("2", "OK")
        assert started.wait(2)

        # Second pass fires and queues behind the first
        started.clear()
        mock.simulate_signal_change("2", "OK")
        time.sleep(QUIET * 2)

        manager.stop()
        release.set()
        time.sleep(QUIET * 2)

        assert started.is_set() is False
