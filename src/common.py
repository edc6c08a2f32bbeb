"""Common utilities shared by workflow steps and cluster drivers.

Durations in recipes use the "1m30s" notation; waits go through
sleep_or_cancel/poll_until so that a caller's cancellation event is
observed between ticks.
"""

import logging
import re
import threading
import time
from typing import Callable, Optional, Union

from errors import ConfigError, OperationCancelled

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h)')
_UNIT_SECONDS = {'ms': 0.001, 's': 1.0, 'm': 60.0, 'h': 3600.0}


def parse_duration(value: Union[str, int, float]) -> float:
    """Parse a duration into seconds.

    Accepts numbers (seconds), bare digit strings, and unit strings such as
    "5s", "250ms", "2m" or "1h30m".

    Raises:
        ConfigError: If the string is not a valid duration
    """
    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip()
    if not text:
        raise ConfigError("empty duration")
    if re.fullmatch(r'\d+(\.\d+)?', text):
        return float(text)
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ConfigError(f"invalid duration: {value!r}")
    return total


def check_cancelled(cancel: Optional[threading.Event]) -> None:
    """Raise OperationCancelled if the event has been set."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelled()


def sleep_or_cancel(seconds: float, cancel: Optional[threading.Event]) -> None:
    """Sleep for the given time, waking early if cancelled.

    Raises:
        OperationCancelled: If the event is set before or during the wait
    """
    if seconds <= 0:
        check_cancelled(cancel)
        return
    if cancel is None:
        time.sleep(seconds)
        return
    if cancel.wait(seconds):
        raise OperationCancelled()


def poll_until(
    check: Callable[[], bool],
    timeout: float,
    interval: float,
    cancel: Optional[threading.Event] = None,
) -> bool:
    """Evaluate check now, then every interval until it passes or time runs out.

    The first evaluation happens before any wait. Errors raised by check
    propagate immediately.

    Returns:
        True if check passed, False if the timeout elapsed first.

    Raises:
        OperationCancelled: If the cancellation event fires while waiting
    """
    deadline = time.monotonic() + timeout
    while True:
        check_cancelled(cancel)
        if check():
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        sleep_or_cancel(min(interval, remaining), cancel)
