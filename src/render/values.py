"""Value resolution with indirection prefixes.

A stored value is either a literal or carries one prefix that is resolved
lazily every time the value is read:

- key:NAME       alias to another value (chains resolve transitively)
- template:TEXT  strict Jinja2 template over the other values
- env:NAME       operating system environment variable
- cmd:COMMAND    trimmed output of an external command
- file:PATH      contents of PATH, after PATH is template-expanded

Aliases and templates that lead back to a value already being resolved
raise ValueCycleError instead of recursing forever.
"""

import logging
import os
import shlex
import threading
from pathlib import Path
from typing import Optional

import jinja2
from jinja2 import meta

from commands import Command, CommandRunner
from errors import LoadFileError, TemplateRenderError, ValueCycleError, ValueNotFoundError

logger = logging.getLogger(__name__)

KEY_PREFIX = 'key:'
TEMPLATE_PREFIX = 'template:'
ENV_PREFIX = 'env:'
CMD_PREFIX = 'cmd:'
FILE_PREFIX = 'file:'

_environment = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


class Values(dict):
    """String-to-string store whose reads follow indirection prefixes."""

    def contains_key(self, key: str) -> bool:
        return key in self

    def merged(self, other: Optional[dict]) -> 'Values':
        """Return a copy with other's keys added; existing keys win."""
        result = Values(self)
        for key, value in (other or {}).items():
            if key not in result:
                result[key] = value
        return result

    def get_value(self, key: str, runner=None, cancel: Optional[threading.Event] = None) -> str:
        """Resolve key to its final string.

        Raises:
            ValueNotFoundError: If key (or an aliased key) is not present
            ValueCycleError: If key:/template: indirection loops
            TemplateRenderError: If a template: value fails to render
        """
        return self._resolve(key, [], runner, cancel)

    def render_template(self, text: str, runner=None,
                        cancel: Optional[threading.Event] = None) -> str:
        """Expand text as a strict template against these values.

        Only placeholders the template references are resolved, so cmd:
        values are not executed unless they are used.
        """
        return self._render(text, [], runner, cancel)

    def _resolve(self, key: str, chain: list, runner, cancel) -> str:
        if key in chain:
            raise ValueCycleError(chain + [key])
        if key not in self:
            raise ValueNotFoundError(key)
        raw = self[key]
        chain = chain + [key]
        if raw.startswith(KEY_PREFIX):
            return self._resolve(raw[len(KEY_PREFIX):], chain, runner, cancel)
        if raw.startswith(TEMPLATE_PREFIX):
            return self._render(raw[len(TEMPLATE_PREFIX):], chain, runner, cancel)
        if raw.startswith(ENV_PREFIX):
            return os.environ.get(raw[len(ENV_PREFIX):], '')
        if raw.startswith(CMD_PREFIX):
            return _run_value_command(raw[len(CMD_PREFIX):], runner, cancel)
        if raw.startswith(FILE_PREFIX):
            path = self._render(raw[len(FILE_PREFIX):], chain, runner, cancel)
            return _read_value_file(path)
        return raw

    def _render(self, text: str, chain: list, runner, cancel) -> str:
        try:
            template = _environment.from_string(text)
            names = meta.find_undeclared_variables(_environment.parse(text))
        except jinja2.TemplateSyntaxError as e:
            raise TemplateRenderError(f"invalid template {text!r}: {e}") from e
        context = {}
        for name in sorted(names):
            if name in self:
                context[name] = self._resolve(name, chain, runner, cancel)
        try:
            return template.render(context)
        except jinja2.TemplateError as e:
            raise TemplateRenderError(f"error rendering template {text!r}: {e}") from e


def _run_value_command(command_line: str, runner, cancel) -> str:
    argv = shlex.split(command_line)
    if not argv:
        raise TemplateRenderError("empty cmd: value")
    runner = runner or CommandRunner()
    logger.debug(f"Resolving value from command: {command_line}")
    return runner.output(Command(name=argv[0], args=tuple(argv[1:])), cancel).strip()


def _read_value_file(path: str) -> str:
    file_path = Path(os.path.expandvars(path)).expanduser()
    try:
        return file_path.read_text()
    except OSError as e:
        raise LoadFileError(f"unable to read value file {file_path}: {e}") from e
