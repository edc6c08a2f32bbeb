"""Top-level workflow config: an optional cluster plus the steps run on it."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from cluster import Cluster
from config import parse_yaml, reject_unknown, string_list, string_map
from errors import ConfigError
from render import DEFAULT_REGISTRY, InputParams
from resources.base import optional
from workflow.workflow import Workflow, steps_from_list

logger = logging.getLogger(__name__)


@dataclass
class Config:
    cluster: Optional[Cluster] = None
    steps: list = field(default_factory=list)
    cleanup_steps: list = field(default_factory=list)
    flags: list = field(default_factory=list)
    values: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        reject_unknown(data, ('cluster', 'steps', 'cleanupSteps', 'flags', 'values'), 'config')
        return cls(
            cluster=optional(Cluster, data.get('cluster'), 'cluster'),
            steps=steps_from_list(data.get('steps'), 'steps'),
            cleanup_steps=steps_from_list(data.get('cleanupSteps'), 'cleanupSteps'),
            flags=string_list(data.get('flags'), 'flags'),
            values=string_map(data.get('values'), 'values'),
        )

    def _prepare(self, params: InputParams) -> tuple[Workflow, InputParams]:
        params = params.merge_values(self.values).merge_flags(self.flags)
        workflow = Workflow(steps=self.steps, cleanup_steps=self.cleanup_steps)
        return workflow.filtered(params.flags), params

    def ensure(self, params: InputParams) -> None:
        """Ensure the cluster (if any), then run the workflow against it."""
        workflow, params = self._prepare(params)
        if self.cluster is not None:
            self.cluster.ensure(params)
            params = self.cluster.bind(params)
        workflow.ensure(params)

    def teardown(self, params: InputParams) -> None:
        """Destroy the cluster if one is defined, else tear down the steps."""
        workflow, params = self._prepare(params)
        if self.cluster is not None:
            self.cluster.teardown(params)
            return
        workflow.teardown(params)

    def set_context(self, params: InputParams) -> None:
        if self.cluster is None:
            raise ConfigError("no cluster defined")
        _, params = self._prepare(params)
        self.cluster.set_context(params)


def load_config(path: str, registry: str = DEFAULT_REGISTRY,
                params: Optional[InputParams] = None) -> Config:
    params = params or InputParams()
    return Config.from_dict(parse_yaml(params.load_file(registry, path), path))
