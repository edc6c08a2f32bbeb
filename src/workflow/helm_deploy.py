"""Helm release deployment step (`helm upgrade --install`)."""

import logging
from dataclasses import dataclass, field

from config import reject_unknown, string_list, string_map
from errors import CommandError, ConfigError
from render import InputParams, Values, bound_field
from render.registry import expand_path

logger = logging.getLogger(__name__)

RELEASE_NOT_FOUND = 'not found'


@dataclass
class HelmDeploy:
    """Install or upgrade a release and wait for it to become ready.

    set values may use the same prefixes as any other value (env:, cmd:,
    template: ...) and are resolved before being passed to --set.
    """
    release_name: str = bound_field(template=True)
    release_uri: str = bound_field(template=True)
    namespace: str = bound_field(key='Namespace', template=True)
    values_files: list = field(default_factory=list)
    set: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'HelmDeploy':
        reject_unknown(data, ('releaseName', 'releaseUri', 'namespace', 'valuesFiles', 'set'), 'helm3Deploy')
        return cls(
            release_name=str(data.get('releaseName', '')),
            release_uri=str(data.get('releaseUri', '')),
            namespace=str(data.get('namespace', '')),
            values_files=string_list(data.get('valuesFiles'), 'helm3Deploy.valuesFiles'),
            set=string_map(data.get('set'), 'helm3Deploy.set'),
        )

    def _rendered(self, params: InputParams) -> 'HelmDeploy':
        deploy = params.render_fields(self)
        if not deploy.release_name:
            raise ConfigError("helm3Deploy requires releaseName")
        return deploy

    def ensure(self, params: InputParams) -> None:
        deploy = self._rendered(params)
        if not deploy.release_uri:
            raise ConfigError("helm3Deploy requires releaseUri")
        logger.info(f"Running helm install to namespace {deploy.namespace} for release "
                    f"{deploy.release_name} with uri {deploy.release_uri}")
        helm = params.commands.helm().upgrade_install(deploy.release_name, deploy.release_uri) \
            .namespace(deploy.namespace).create_namespace()
        for path in deploy.values_files:
            helm = helm.values_file(expand_path(params.render_template(path)))
        extra = Values(deploy.set)
        runner = params.get_runner()
        for key in sorted(extra):
            helm = helm.set(f"{key}={extra.get_value(key, runner, params.cancel)}")
        params.get_runner().run(helm.wait().cmd(), params.cancel)

    def teardown(self, params: InputParams) -> None:
        deploy = self._rendered(params)
        logger.info(f"Running helm uninstall on release {deploy.release_name} in namespace {deploy.namespace}")
        cmd = params.commands.helm().uninstall(deploy.release_name).namespace(deploy.namespace).cmd()
        try:
            params.get_runner().run(cmd, params.cancel)
        except CommandError as e:
            if RELEASE_NOT_FOUND not in e.output:
                raise
            logger.info(f"Release {deploy.release_name} not found, nothing to uninstall")
