"""Applications: ordered resources with required values and defaults.

An Application installs its resources front to back and tears them down
back to front, so dependents are removed before what they depend on.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from config import parse_yaml, reject_unknown, string_list, string_map
from errors import ConfigError
from render import DEFAULT_REGISTRY, InputParams, bound_field
from resources.base import optional, set_metadata, single_variant
from resources.helm_chart import HelmChart
from resources.manifest import Manifest, Manifests
from resources.namespace import Namespace
from resources.patch import Patch
from resources.remote_file import RemoteFile
from resources.secret import Secret
from resources.template import Template

logger = logging.getLogger(__name__)

INSTALLATION_STEP_LABEL = 'valet.solo.io/installation_step'


@dataclass
class Resource:
    """Tagged union over the resource kinds; exactly one must be set.

    values fill gaps in the caller's values for this resource only; flags
    list the flags that must be active for the resource to be included.
    """
    namespace: Optional[Namespace] = None
    helm_chart: Optional[HelmChart] = None
    secret: Optional[Secret] = None
    manifest: Optional[Manifest] = None
    manifests: Optional[Manifests] = None
    template: Optional[Template] = None
    patch: Optional[Patch] = None
    remote_file: Optional[RemoteFile] = None
    application: Optional['ApplicationRef'] = None
    values: dict = field(default_factory=dict)
    flags: list = field(default_factory=list)

    VARIANTS = (
        'namespace', 'helm_chart', 'secret', 'manifest', 'manifests',
        'template', 'patch', 'remote_file', 'application',
    )

    def __post_init__(self):
        single_variant(self, self.VARIANTS, 'resource')

    @classmethod
    def from_dict(cls, data: dict) -> 'Resource':
        reject_unknown(data, (
            'namespace', 'helmChart', 'secret', 'manifest', 'manifests', 'template',
            'patch', 'remoteFile', 'application', 'values', 'flags',
        ), 'resource')
        return cls(
            namespace=optional(Namespace, data.get('namespace'), 'namespace'),
            helm_chart=optional(HelmChart, data.get('helmChart'), 'helmChart'),
            secret=optional(Secret, data.get('secret'), 'secret'),
            manifest=optional(Manifest, data.get('manifest'), 'manifest'),
            manifests=optional(Manifests, data.get('manifests'), 'manifests'),
            template=optional(Template, data.get('template'), 'template'),
            patch=optional(Patch, data.get('patch'), 'patch'),
            remote_file=optional(RemoteFile, data.get('remoteFile'), 'remoteFile'),
            application=optional(ApplicationRef, data.get('application'), 'application'),
            values=string_map(data.get('values'), 'resource.values'),
            flags=string_list(data.get('flags'), 'resource.flags'),
        )

    @property
    def variant(self):
        return getattr(self, single_variant(self, self.VARIANTS, 'resource'))

    def ensure(self, params: InputParams) -> None:
        self.variant.ensure(params.merge_values(self.values))

    def teardown(self, params: InputParams) -> None:
        self.variant.teardown(params.merge_values(self.values))

    def render(self, params: InputParams) -> list[dict]:
        return self.variant.render(params.merge_values(self.values))


@dataclass
class Application:
    name: str = ''
    resources: list = field(default_factory=list)
    required_values: list = field(default_factory=list)
    values: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Application':
        reject_unknown(data, ('name', 'resources', 'requiredValues', 'values'), 'application')
        resources = data.get('resources') or []
        if not isinstance(resources, list):
            raise ConfigError("application.resources must be a list")
        return cls(
            name=str(data.get('name', '')),
            resources=[Resource.from_dict(r or {}) for r in resources],
            required_values=string_list(data.get('requiredValues'), 'application.requiredValues'),
            values=string_map(data.get('values'), 'application.values'),
        )

    def filtered(self, flags: list) -> 'Application':
        """Copy without the resources whose required flags are not all active."""
        kept = [r for r in self.resources if all(f in flags for f in r.flags)]
        return replace(self, resources=kept)

    def _prepare(self, params: InputParams) -> InputParams:
        params = params.merge_values(self.values)
        params.check_required_values(self.required_values)
        return params

    def ensure(self, params: InputParams) -> None:
        params = self._prepare(params)
        logger.info(f"Ensuring application {self.name} ({len(self.resources)} resources)")
        for resource in self.resources:
            resource.ensure(params)

    def teardown(self, params: InputParams) -> None:
        params = self._prepare(params)
        logger.info(f"Tearing down application {self.name}")
        for resource in reversed(self.resources):
            resource.teardown(params)

    def render(self, params: InputParams) -> list[dict]:
        """Render every non-patch resource, labelled with its install position.

        The installation-step label is added only here, for documentation and
        dry runs; ensure applies the objects without it, so render output
        differs from what ensure applies by that label.
        """
        params = self._prepare(params)
        rendered = []
        for i, resource in enumerate(self.resources):
            if resource.patch is not None:
                continue
            for obj in resource.render(params):
                rendered.append(set_metadata(obj, labels={INSTALLATION_STEP_LABEL: f"valet.{self.name}.{i}"}))
        return rendered


@dataclass
class ApplicationRef:
    """Reference to an application file in a registry."""
    registry: str = bound_field(default=DEFAULT_REGISTRY)
    path: str = bound_field(template=True)
    values: dict = field(default_factory=dict)
    flags: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'ApplicationRef':
        reject_unknown(data, ('registry', 'path', 'values', 'flags'), 'application ref')
        return cls(
            registry=str(data.get('registry', '')),
            path=str(data.get('path', '')),
            values=string_map(data.get('values'), 'application.values'),
            flags=string_list(data.get('flags'), 'application.flags'),
        )

    def _resolve(self, params: InputParams) -> tuple[Application, InputParams]:
        params = params.merge_values(self.values).merge_flags(self.flags)
        ref = params.render_fields(self)
        if not ref.path:
            raise ConfigError("application ref requires a path")
        source = ref.path if ref.registry == DEFAULT_REGISTRY else f"{ref.registry}:{ref.path}"
        app = Application.from_dict(parse_yaml(params.load_file(ref.registry, ref.path), source))
        # relative paths inside the application resolve against its registry
        params = params.with_registry(DEFAULT_REGISTRY, params.get_registry(ref.registry))
        return app.filtered(params.flags), params

    def load(self, params: InputParams) -> Application:
        return self._resolve(params)[0]

    def ensure(self, params: InputParams) -> None:
        app, params = self._resolve(params)
        app.ensure(params)

    def teardown(self, params: InputParams) -> None:
        app, params = self._resolve(params)
        app.teardown(params)

    def render(self, params: InputParams) -> list[dict]:
        app, params = self._resolve(params)
        return app.render(params)


def load_application(path: str, registry: str = DEFAULT_REGISTRY,
                     params: Optional[InputParams] = None) -> Application:
    """Load an application file without flag filtering."""
    params = params or InputParams()
    return Application.from_dict(parse_yaml(params.load_file(registry, path), path))
