"""
Tests for the rate-limited logging helper.
"""
import threading
from unittest.mock import MagicMock

from contractflow_sdk._rate_limited_log import rate_limited_log, reset_rate_limits


def test_identical_messages_are_suppressed():
    mock_logger = MagicMock()

    assert rate_limited_log("Node down", level="warning", logger_instance=mock_logger)
    assert not rate_limited_log("Node down", level="warning", logger_instance=mock_logger)
    mock_logger.warning.assert_called_once_with("Node down")

    # Different level and different message go through
    assert rate_limited_log("Node down", level="error", logger_instance=mock_logger)
    mock_logger.error.assert_called_once_with("Node down")
    assert rate_limited_log("Node up", level="warning", logger_instance=mock_logger)


def test_unknown_level_falls_back_to_warning():
    mock_logger = MagicMock(spec=["warning"])
    rate_limited_log("odd", level="loud", logger_instance=mock_logger)
    mock_logger.warning.assert_called_once_with("odd")


def test_reset_forgets_messages():
    mock_logger = MagicMock()
    rate_limited_log("again", logger_instance=mock_logger)
    reset_rate_limits()
    rate_limited_log("again", logger_instance=mock_logger)
    assert mock_logger.warning.call_count == 2


def test_concurrent_callers_log_once():
    mock_logger = MagicMock()
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        results.append(rate_limited_log("race", logger_instance=mock_logger))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    mock_logger.warning.assert_called_once_with("race")
