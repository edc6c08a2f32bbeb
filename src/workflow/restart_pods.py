"""Restart pods in a namespace and wait for them to come back."""

import logging
from dataclasses import dataclass, field

from config import reject_unknown, string_list
from errors import ConfigError
from render import InputParams, bound_field

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = '300s'


@dataclass
class RestartPods:
    namespace: str = bound_field(key='Namespace', template=True)
    labels: list = field(default_factory=list)
    timeout: str = bound_field(default=DEFAULT_TIMEOUT)

    @classmethod
    def from_dict(cls, data: dict) -> 'RestartPods':
        reject_unknown(data, ('namespace', 'labels', 'timeout'), 'restartPods')
        return cls(
            namespace=str(data.get('namespace', '')),
            labels=string_list(data.get('labels'), 'restartPods.labels'),
            timeout=str(data.get('timeout', '')),
        )

    def _select(self, builder):
        if not self.labels:
            return builder.with_args('--all')
        for label in self.labels:
            builder = builder.selector(label)
        return builder

    def ensure(self, params: InputParams) -> None:
        restart = params.render_fields(self)
        if not restart.namespace:
            raise ConfigError("restartPods requires a namespace")
        logger.info(f"Restarting pods in namespace {restart.namespace}")
        runner = params.get_runner()
        kubectl = params.commands.kubectl()
        delete = restart._select(kubectl.delete('pod').namespace(restart.namespace))
        runner.run(delete.cmd(), params.cancel)
        wait = restart._select(
            kubectl.with_args('wait', '--for=condition=Ready', 'pod', f'--timeout={restart.timeout}')
            .namespace(restart.namespace))
        runner.run(wait.cmd(), params.cancel)
        logger.info("Done restarting pods")

    def teardown(self, params: InputParams) -> None:
        logger.debug("Skipping teardown for restartPods")
