"""Shared pytest fixtures for valet tests."""

import sys
import threading
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from commands import Command  # noqa: E402
from render import DirectoryRegistry, InputParams  # noqa: E402


class FakeStream:
    """Stand-in for StreamHandler; records stop() calls."""

    def __init__(self, command):
        self.command = command
        self.lines = []
        self.stopped = False

    def wait(self, cancel=None):
        return None

    def stop(self):
        self.stopped = True


class FakeRunner:
    """Runner that records commands and answers from canned results.

    on(prefix, *results) registers results for commands whose log line
    starts with prefix. Results are consumed in order and the last one
    repeats. A result may be a string, an exception (raised) or a callable
    taking the Command.

    Requests are answered from self.responses the same way.
    """

    def __init__(self):
        self.calls = []
        self.requests = []
        self.responses = []
        self.streams = []
        self._results = []
        self._lock = threading.Lock()

    def on(self, prefix, *results):
        self._results.append((prefix, list(results)))
        return self

    def _respond(self, command):
        with self._lock:
            self.calls.append(command)
            line = command.log_line()
            for prefix, results in self._results:
                if line.startswith(prefix):
                    result = results.pop(0) if len(results) > 1 else results[0]
                    break
            else:
                result = ''
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            return result(command)
        return result

    def run(self, command, cancel=None):
        self._respond(command)

    def output(self, command, cancel=None):
        return self._respond(command)

    def stream(self, command, cancel=None):
        self._respond(command)
        handler = FakeStream(command)
        with self._lock:
            self.streams.append(handler)
        return handler

    def request(self, request, cancel=None):
        with self._lock:
            self.requests.append(request)
            response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, BaseException):
            raise response
        return response

    def lines(self):
        """Log lines of every recorded command, in order."""
        return [c.log_line() for c in self.calls if isinstance(c, Command)]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def params(runner, tmp_path):
    """InputParams using the fake runner, with the default registry rooted at tmp_path."""
    return InputParams(runner=runner, registries={'default': DirectoryRegistry(str(tmp_path))})


def namespace_yaml(command):
    """Fake `kubectl create namespace NAME --dry-run -o yaml` output."""
    name = command.args[2]
    return f"apiVersion: v1\nkind: Namespace\nmetadata:\n  name: {name}\n"
