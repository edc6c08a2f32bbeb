"""Condition step: wait until a jsonpath on a live object reads a value."""

import logging
from dataclasses import dataclass

from common import parse_duration, poll_until
from config import reject_unknown
from errors import ConditionNotMetError, ConfigError
from render import InputParams, bound_field

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = '120s'
DEFAULT_INTERVAL = '5s'


@dataclass
class Condition:
    type: str = ''
    name: str = bound_field(template=True)
    namespace: str = bound_field(template=True)
    jsonpath: str = ''
    value: str = bound_field(template=True)
    timeout: str = bound_field(default=DEFAULT_TIMEOUT, template=True)
    interval: str = bound_field(default=DEFAULT_INTERVAL, template=True)

    @classmethod
    def from_dict(cls, data: dict) -> 'Condition':
        reject_unknown(data, ('type', 'name', 'namespace', 'jsonpath', 'value', 'timeout', 'interval'), 'condition')
        return cls(**{k: '' if v is None else str(v) for k, v in data.items()})

    def condition_cmd(self, params: InputParams):
        return params.commands.kubectl().get(self.type).with_name(self.name) \
            .namespace(self.namespace).jsonpath(self.jsonpath).cmd()

    def _met(self, params: InputParams) -> bool:
        out = params.get_runner().output(self.condition_cmd(params), params.cancel)
        if out.strip() == self.value:
            logger.info("Condition met")
            return True
        logger.debug(f"Condition not met yet: {out.strip()!r} != {self.value!r}")
        return False

    def ensure(self, params: InputParams) -> None:
        """Check now, then poll every interval until timeout.

        Raises:
            ConditionNotMetError: If no check matched before the timeout
            CommandError: If the inspection command fails
            OperationCancelled: If params.cancel fires while waiting
        """
        cond = params.render_fields(self)
        if not cond.type or not cond.name:
            raise ConfigError("condition requires type and name")
        timeout = parse_duration(cond.timeout)
        interval = parse_duration(cond.interval)
        logger.info(f"Waiting on condition: {cond.type} {cond.namespace}.{cond.name} path {cond.jsonpath} "
                    f"matches {cond.value} (timeout: {cond.timeout})")
        if not poll_until(lambda: cond._met(params), timeout, interval, params.cancel):
            raise ConditionNotMetError(
                f"condition not met: {cond.type} {cond.namespace}.{cond.name} {cond.jsonpath} "
                f"!= {cond.value} after {cond.timeout}")

    def teardown(self, params: InputParams) -> None:
        logger.debug("Skipping teardown for condition")
