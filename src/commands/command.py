"""Immutable external command values and the base fluent builder."""

from dataclasses import dataclass, replace
from typing import Optional

REDACTED = 'REDACTED'
EMPTY = 'EMPTY'


@dataclass(frozen=True)
class Command:
    """One external tool invocation: program, argv and optional stdin.

    Redactions map a literal argument to the text shown in its place on the
    log line; the real argument is always what the process receives.
    """
    name: str
    args: tuple = ()
    stdin: Optional[str] = None
    env: tuple = ()
    redactions: tuple = ()
    swallow_errors: bool = False

    @property
    def argv(self) -> list[str]:
        return [self.name, *self.args]

    def env_overrides(self) -> dict:
        return dict(self.env)

    def log_line(self) -> str:
        """Human-readable command line with redactions applied."""
        redactions = dict(self.redactions)
        parts = [self.name]
        for arg in self.args:
            if arg == '':
                parts.append(EMPTY)
            elif arg in redactions:
                parts.append(redactions[arg] or REDACTED)
            else:
                parts.append(arg)
        return ' '.join(parts)

    def __str__(self) -> str:
        return self.log_line()


@dataclass(frozen=True)
class CommandBuilder:
    """Base fluent builder; every method returns a new builder.

    Tool-specific subclasses add named helpers on top of with_args.
    """
    name: str = ''
    args: tuple = ()
    stdin: Optional[str] = None
    env: tuple = ()
    redactions: tuple = ()
    swallow_errors: bool = False

    def with_args(self, *args: str):
        return replace(self, args=self.args + tuple(str(a) for a in args))

    def with_stdin(self, stdin: str):
        return replace(self, stdin=stdin)

    def with_env(self, name: str, value: str):
        return replace(self, env=self.env + ((name, value),))

    def redact(self, unredacted: str, redacted: str = REDACTED):
        return replace(self, redactions=self.redactions + ((unredacted, redacted),))

    def swallow_error_log(self):
        return replace(self, swallow_errors=True)

    def cmd(self) -> Command:
        return Command(
            name=self.name,
            args=self.args,
            stdin=self.stdin,
            env=self.env,
            redactions=self.redactions,
            swallow_errors=self.swallow_errors,
        )
