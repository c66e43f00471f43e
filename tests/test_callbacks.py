"""Tests for droplet_impact.callbacks — callback protocol and implementations."""

import logging

from droplet_impact.callbacks import (
    LoggingCallback,
    NullCallback,
    SimulationCallback,
)
from droplet_impact.logging_setup import (
    LOG_FILENAME,
    configure_simulation_logging,
    teardown_simulation_logging,
)


class TestNullCallback:
    def test_implements_protocol(self):
        assert isinstance(NullCallback(), SimulationCallback)

    def test_on_status_does_nothing(self):
        cb = NullCallback()
        cb.on_status("running")  # should not raise

    def test_on_metric_does_nothing(self):
        cb = NullCallback()
        cb.on_metric("cell_count", 42)

    def test_on_file_does_nothing(self):
        cb = NullCallback()
        cb.on_file("interface", "/tmp/interface_1.txt")


class TestLoggingCallback:
    def test_implements_protocol(self):
        assert isinstance(LoggingCallback(), SimulationCallback)

    def test_on_status_logs(self, caplog):
        cb = LoggingCallback()
        with caplog.at_level(logging.INFO):
            cb.on_status("initialising")
        assert "initialising" in caplog.text

    def test_on_metric_logs(self, caplog):
        cb = LoggingCallback()
        with caplog.at_level(logging.INFO):
            cb.on_metric("cell_count", 1024)
        assert "cell_count" in caplog.text
        assert "1024" in caplog.text

    def test_on_file_logs_at_debug(self, caplog):
        cb = LoggingCallback()
        with caplog.at_level(logging.INFO):
            cb.on_file("interface", "/tmp/interface_1.txt")
        assert "interface_1.txt" not in caplog.text
        with caplog.at_level(logging.DEBUG):
            cb.on_file("interface", "/tmp/interface_1.txt")
        assert "interface" in caplog.text
        assert "/tmp/interface_1.txt" in caplog.text

    def test_custom_logger(self):
        custom = logging.getLogger("test_custom")
        cb = LoggingCallback(logger_instance=custom)
        assert cb._logger is custom


class TestLoggingCallbackIntegration:
    """LoggingCallback + configure_simulation_logging integration."""

    def test_callback_messages_appear_in_log_file(self, tmp_path):
        sim_logger = configure_simulation_logging(str(tmp_path), console_level=None)
        try:
            cb = LoggingCallback(logger_instance=sim_logger)
            cb.on_status("running")
            cb.on_metric("max_time", 0.8)
            cb.on_file("plate_output", "plate_output_1.txt")  # DEBUG, below file level

            contents = (tmp_path / LOG_FILENAME).read_text()
            assert "running" in contents
            assert "max_time" in contents
            assert "0.8" in contents
            assert "plate_output_1.txt" not in contents
        finally:
            teardown_simulation_logging()
