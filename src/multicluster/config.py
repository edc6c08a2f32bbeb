"""Multi-cluster orchestration: one cluster-bound workflow per branch.

Branches run one after another, or concurrently when runInParallel is set.
Every branch gets its own deep copy of the input. A failing branch does not
stop its siblings; once all branches have finished, the first failure (in
completion order) is raised.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional

from config import parse_yaml, reject_unknown, string_list, string_map
from errors import ConfigError
from render import DEFAULT_REGISTRY, InputParams, bound_field
from workflow.config import Config, load_config

logger = logging.getLogger(__name__)


@dataclass
class ClusterWorkflowRef:
    """Reference to a cluster-bound workflow file (a workflow Config)."""
    registry: str = bound_field(default=DEFAULT_REGISTRY)
    path: str = bound_field(template=True)
    values: dict = field(default_factory=dict)
    flags: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'ClusterWorkflowRef':
        reject_unknown(data, ('registry', 'path', 'values', 'flags'), 'cluster workflow ref')
        return cls(
            registry=str(data.get('registry', '')),
            path=str(data.get('path', '')),
            values=string_map(data.get('values'), 'clusters.values'),
            flags=string_list(data.get('flags'), 'clusters.flags'),
        )

    def _resolve(self, params: InputParams) -> tuple[Config, InputParams]:
        params = params.merge_values(self.values).merge_flags(self.flags)
        ref = params.render_fields(self)
        if not ref.path:
            raise ConfigError("cluster workflow ref requires a path")
        logger.info(f"Loading cluster workflow {ref.path}")
        return load_config(ref.path, ref.registry, params), params

    def describe(self) -> str:
        return self.path

    def ensure(self, params: InputParams) -> None:
        config, params = self._resolve(params)
        config.ensure(params)

    def teardown(self, params: InputParams) -> None:
        config, params = self._resolve(params)
        config.teardown(params)


@dataclass
class MultiClusterConfig:
    clusters: list = field(default_factory=list)
    values: dict = field(default_factory=dict)
    flags: list = field(default_factory=list)
    run_in_parallel: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'MultiClusterConfig':
        reject_unknown(data, ('clusters', 'values', 'flags', 'runInParallel'), 'multi-cluster config')
        clusters = data.get('clusters') or []
        if not isinstance(clusters, list):
            raise ConfigError("clusters must be a list")
        run_in_parallel = data.get('runInParallel', False)
        if not isinstance(run_in_parallel, bool):
            raise ConfigError("runInParallel must be true or false")
        return cls(
            clusters=[ClusterWorkflowRef.from_dict(c or {}) for c in clusters],
            values=string_map(data.get('values'), 'values'),
            flags=string_list(data.get('flags'), 'flags'),
            run_in_parallel=run_in_parallel,
        )

    def ensure(self, params: InputParams) -> None:
        self._run('ensure', params)

    def teardown(self, params: InputParams) -> None:
        self._run('teardown', params)

    def _run(self, operation: str, params: InputParams) -> None:
        params = params.merge_values(self.values).merge_flags(self.flags)
        if not self.run_in_parallel:
            for ref in self.clusters:
                getattr(ref, operation)(params.deep_copy())
            return
        self._run_parallel(operation, params)

    def _run_parallel(self, operation: str, params: InputParams) -> None:
        """One task per branch; wait for all, then raise the first failure."""
        if not self.clusters:
            return
        logger.info(f"Running {operation} on {len(self.clusters)} cluster(s) in parallel")
        first_error: Optional[BaseException] = None
        with ThreadPoolExecutor(max_workers=len(self.clusters)) as pool:
            futures = {
                pool.submit(getattr(ref, operation), params.deep_copy()): ref
                for ref in self.clusters
            }
            try:
                for future in as_completed(futures):
                    ref = futures[future]
                    error = future.exception()
                    if error is None:
                        logger.info(f"Cluster workflow {ref.describe()} finished")
                        continue
                    logger.error(f"Cluster workflow {ref.describe()} failed: {error}")
                    if first_error is None:
                        first_error = error
            except BaseException:
                # branches share the event through deep_copy; leaving the pool waits on them
                params.cancel.set()
                raise
        if first_error is not None:
            raise first_error


def load_multicluster_config(path: str, registry: str = DEFAULT_REGISTRY,
                             params: Optional[InputParams] = None) -> MultiClusterConfig:
    params = params or InputParams()
    return MultiClusterConfig.from_dict(parse_yaml(params.load_file(registry, path), path))
