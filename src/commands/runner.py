"""Execution of Command values and raw HTTP requests.

CommandRunner holds no state, so one instance can be shared by every
workflow branch. All blocking operations accept an optional cancellation
event; a cancelled child process is killed and OperationCancelled raised.
"""

import logging
import os
import subprocess
import threading
from typing import Optional, Protocol, runtime_checkable

import requests
import urllib3

from commands.command import Command
from errors import CommandError, OperationCancelled, RequestError

# Curl checks routinely hit ingresses with self-signed certificates
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

logger = logging.getLogger(__name__)

WAIT_SLICE = 0.25
DEFAULT_REQUEST_TIMEOUT = 1.0


@runtime_checkable
class Runner(Protocol):
    """Injectable executor for commands and HTTP requests."""

    def run(self, command: Command, cancel: Optional[threading.Event] = None) -> None:
        """Run the command, discarding its output."""
        ...

    def output(self, command: Command, cancel: Optional[threading.Event] = None) -> str:
        """Run the command and return combined stdout and stderr."""
        ...

    def stream(self, command: Command, cancel: Optional[threading.Event] = None) -> 'StreamHandler':
        """Start a long-running command whose output is logged line by line."""
        ...

    def request(self, request: requests.Request,
                cancel: Optional[threading.Event] = None) -> tuple[str, int]:
        """Send an HTTP request and return (body, status_code)."""
        ...


class StreamHandler:
    """Handle on a streamed process.

    Output lines are logged as they arrive. wait() blocks until exit and
    raises CommandError on a non-zero code; stop() terminates the process.
    """

    def __init__(self, command: Command, process: subprocess.Popen):
        self.command = command
        self.process = process
        self.lines: list[str] = []
        self._reader = threading.Thread(target=self._pump, daemon=True)
        self._reader.start()

    def _pump(self) -> None:
        for line in self.process.stdout:
            line = line.rstrip('\n')
            self.lines.append(line)
            logger.info(f"[{self.command.name}] {line}")

    def wait(self, cancel: Optional[threading.Event] = None) -> None:
        _wait_process(self.process, self.command, cancel)
        self._reader.join(timeout=5)
        if self.process.returncode != 0:
            raise CommandError(self.command.log_line(), self.process.returncode, '\n'.join(self.lines))

    def stop(self) -> None:
        if self.process.poll() is None:
            self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()


def _wait_process(process: subprocess.Popen, command: Command,
                  cancel: Optional[threading.Event]) -> None:
    """Wait for process exit in short slices so cancellation is noticed."""
    while True:
        if cancel is not None and cancel.is_set():
            process.kill()
            process.wait()
            raise OperationCancelled(f"cancelled: {command.log_line()}")
        try:
            process.wait(timeout=WAIT_SLICE)
            return
        except subprocess.TimeoutExpired:
            continue


class CommandRunner:
    """Runner backed by subprocess and requests."""

    def __init__(self, request_timeout: float = DEFAULT_REQUEST_TIMEOUT, verify_tls: bool = False):
        self.request_timeout = request_timeout
        self.verify_tls = verify_tls

    def _environ(self, command: Command) -> Optional[dict]:
        overrides = command.env_overrides()
        if not overrides:
            return None
        env = dict(os.environ)
        env.update(overrides)
        return env

    def _spawn(self, command: Command) -> subprocess.Popen:
        logger.info(f"Running {command.log_line()}")
        try:
            return subprocess.Popen(
                command.argv,
                stdin=subprocess.PIPE if command.stdin is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                env=self._environ(command),
            )
        except OSError as e:
            raise CommandError(command.log_line(), 127, str(e)) from e

    def output(self, command: Command, cancel: Optional[threading.Event] = None) -> str:
        process = self._spawn(command)
        out = ''
        stdin = command.stdin
        while True:
            if cancel is not None and cancel.is_set():
                process.kill()
                process.communicate()
                raise OperationCancelled(f"cancelled: {command.log_line()}")
            try:
                out, _ = process.communicate(input=stdin, timeout=WAIT_SLICE)
                break
            except subprocess.TimeoutExpired:
                # input may only be handed over on the first call
                stdin = None
                continue
        out = out or ''
        if process.returncode != 0:
            if command.swallow_errors:
                logger.debug(f"Ignoring failure of {command.log_line()}: {out.strip()}")
            else:
                logger.error(f"Command failed: {command.log_line()}")
            raise CommandError(command.log_line(), process.returncode, out)
        return out

    def run(self, command: Command, cancel: Optional[threading.Event] = None) -> None:
        self.output(command, cancel)

    def stream(self, command: Command, cancel: Optional[threading.Event] = None) -> StreamHandler:
        process = self._spawn(command)
        if command.stdin is not None:
            process.stdin.write(command.stdin)
            process.stdin.close()
        return StreamHandler(command, process)

    def request(self, request: requests.Request,
                cancel: Optional[threading.Event] = None) -> tuple[str, int]:
        if cancel is not None and cancel.is_set():
            raise OperationCancelled(f"cancelled: {request.method} {request.url}")
        logger.info(f"Sending {request.method} {request.url}")
        with requests.Session() as session:
            try:
                resp = session.send(
                    session.prepare_request(request),
                    timeout=self.request_timeout,
                    verify=self.verify_tls,
                )
            except requests.exceptions.RequestException as e:
                raise RequestError(f"{request.method} {request.url} failed: {e}") from e
        return resp.text, resp.status_code
