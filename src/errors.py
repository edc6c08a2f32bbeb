"""Error types raised by the orchestration engine.

Every failure surfaced to a caller derives from ValetError so the CLI can
report it uniformly. Subclasses carry the structured details (key names,
exit codes, captured output) that the message is built from.
"""


class ValetError(Exception):
    """Base class for all engine errors."""


class ConfigError(ValetError):
    """Configuration error (bad YAML, unknown keys, invalid union)."""


class ValueNotFoundError(ValetError):
    def __init__(self, key: str):
        super().__init__(f"value not found: {key}")
        self.key = key


class ValueCycleError(ValetError):
    """A key:/template: indirection chain refers back to itself."""

    def __init__(self, chain: list[str]):
        super().__init__(f"cycle detected resolving values: {' -> '.join(chain)}")
        self.chain = chain


class TemplateRenderError(ValetError):
    """Template failed to parse or referenced a missing value."""


class RequiredValueNotProvidedError(ValetError):
    def __init__(self, key: str):
        super().__init__(f"required value not provided: {key}")
        self.key = key


class CommandError(ValetError):
    """External command exited non-zero.

    The message includes the captured combined stdout/stderr so that the
    deepest error text is what a user sees.
    """

    def __init__(self, command: str, returncode: int, output: str = ''):
        message = f"command error: {command} exited with code {returncode}"
        if output.strip():
            message = f"{message}: {output.strip()}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.output = output


class RequestError(ValetError):
    """HTTP request could not be completed."""


class ConditionNotMetError(ValetError):
    """Condition did not reach the expected value before the timeout."""


class UnexpectedStatusCodeError(ValetError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"unexpected status code: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class UnexpectedResponseBodyError(ValetError):
    def __init__(self, body: str):
        super().__init__(f"unexpected response body: {body}")
        self.body = body


class DnsMappingError(ValetError):
    """DNS entry could not be created or updated."""


class ArtifactNotFoundError(ValetError):
    """Requested release asset does not exist."""


class LoadFileError(ValetError):
    """File could not be loaded from a registry."""


class ClusterOperationTimeoutError(ValetError):
    """Long-running cluster operation did not finish in time."""


class OperationCancelled(ValetError):
    """Caller cancelled the operation while it was waiting."""

    def __init__(self, message: str = 'operation cancelled'):
        super().__init__(message)
