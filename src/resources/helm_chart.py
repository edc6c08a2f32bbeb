"""HelmChart resource: a chart rendered with `helm template` and applied with kubectl."""

import logging
import os
import tempfile
from dataclasses import dataclass, field

from config import reject_unknown, string_list, string_map
from errors import ConfigError, ValueNotFoundError
from render import DEFAULT_REGISTRY, InputParams, bound_field
from resources.base import RenderedResource, parse_objects

logger = logging.getLogger(__name__)


@dataclass
class HelmChart(RenderedResource):
    """Chart fetched from a repository URL and rendered client-side.

    Values files and set-file contents are loaded through the registry and
    handed to helm as temporary files, removed once rendering finishes.
    """
    registry: str = bound_field(default=DEFAULT_REGISTRY)
    repo_url: str = bound_field(template=True)
    chart_name: str = ''
    release_name: str = ''
    version: str = bound_field(key='Version')
    namespace: str = bound_field(key='Namespace')
    set: list = field(default_factory=list)
    set_env: dict = field(default_factory=dict)
    values_files: list = field(default_factory=list)
    files: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'HelmChart':
        reject_unknown(data, (
            'registry', 'repoUrl', 'chartName', 'releaseName', 'version', 'namespace',
            'set', 'setEnv', 'valuesFiles', 'files',
        ), 'helmChart')
        chart = cls(
            registry=str(data.get('registry', '')),
            repo_url=str(data.get('repoUrl', '')),
            chart_name=str(data.get('chartName', '')),
            release_name=str(data.get('releaseName', '')),
            version=str(data.get('version', '')),
            namespace=str(data.get('namespace', '')),
            set=string_list(data.get('set'), 'helmChart.set'),
            set_env=string_map(data.get('setEnv'), 'helmChart.setEnv'),
            values_files=string_list(data.get('valuesFiles'), 'helmChart.valuesFiles'),
            files=string_map(data.get('files'), 'helmChart.files'),
        )
        for assignment in chart.set:
            if '=' not in assignment:
                raise ConfigError(f"Invalid set format (must be A=B): {assignment}")
        return chart

    def describe(self) -> str:
        return f"helm chart {self.chart_name} {self.version}".rstrip()

    def _write_temp(self, contents: str, to_cleanup: list) -> str:
        fd, path = tempfile.mkstemp(prefix='valet-helm-', suffix='.yaml')
        to_cleanup.append(path)
        with os.fdopen(fd, 'w') as f:
            f.write(contents)
        return path

    def objects(self, params: InputParams) -> list[dict]:
        if not self.chart_name or not self.repo_url:
            raise ConfigError("helmChart requires repoUrl and chartName")
        helm = params.commands.helm().template(self.release_name or self.chart_name, self.chart_name) \
            .repo(self.repo_url).version(self.version).namespace(self.namespace)
        for assignment in self.set:
            helm = helm.set(assignment)
        for key, env_var in sorted(self.set_env.items()):
            if env_var not in os.environ:
                raise ValueNotFoundError(f"environment variable {env_var}")
            assignment = f"{key}={os.environ[env_var]}"
            helm = helm.set(assignment).redact(assignment, f"{key}=REDACTED")
        to_cleanup: list = []
        try:
            for key, path in sorted(self.files.items()):
                local = self._write_temp(params.load_file(self.registry, path), to_cleanup)
                helm = helm.set_file(f"{key}={local}")
            for path in self.values_files:
                helm = helm.values_file(self._write_temp(params.load_file(self.registry, path), to_cleanup))
            logger.info(f"Rendering {self.describe()}")
            out = params.get_runner().output(helm.cmd(), params.cancel)
        finally:
            for path in to_cleanup:
                os.unlink(path)
        return parse_objects(out, self.describe())
