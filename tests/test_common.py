"""Tests for common.py - durations and cancellable waits."""

import sys
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest

from common import parse_duration, poll_until, sleep_or_cancel
from errors import ConfigError, OperationCancelled


class TestParseDuration:
    @pytest.mark.parametrize('text,expected', [
        ('5s', 5.0),
        ('250ms', 0.25),
        ('2m', 120.0),
        ('1h30m', 5400.0),
        ('1m30s', 90.0),
        ('10', 10.0),
        (3, 3.0),
    ])
    def test_valid(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize('text', ['', 'soon', '5x', '5s later'])
    def test_invalid(self, text):
        with pytest.raises(ConfigError):
            parse_duration(text)


class TestPollUntil:
    def test_checks_before_waiting(self):
        """A check that passes immediately returns without sleeping."""
        calls = []
        assert poll_until(lambda: calls.append(1) or True, timeout=10, interval=10)
        assert calls == [1]

    def test_polls_until_true(self):
        results = iter([False, False, True])
        assert poll_until(lambda: next(results), timeout=5, interval=0.01)

    def test_times_out(self):
        calls = []
        assert not poll_until(lambda: calls.append(1) and False, timeout=0.05, interval=0.01)
        assert len(calls) >= 2

    def test_cancel_stops_polling(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(OperationCancelled):
            poll_until(lambda: False, timeout=5, interval=1, cancel=cancel)

    def test_check_errors_propagate(self):
        def check():
            raise ValueError('boom')
        with pytest.raises(ValueError):
            poll_until(check, timeout=1, interval=0.01)


class TestSleepOrCancel:
    def test_cancelled_wait(self):
        cancel = threading.Event()
        threading.Timer(0.05, cancel.set).start()
        with pytest.raises(OperationCancelled):
            sleep_or_cancel(5, cancel)

    def test_zero_sleep_checks_cancel(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(OperationCancelled):
            sleep_or_cancel(0, cancel)
