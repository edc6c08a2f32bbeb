"""Patch: template-expanded patch document applied to a live object."""

import logging
from dataclasses import dataclass, field

from config import reject_unknown, string_map
from errors import ConfigError, ValetError
from render import DEFAULT_REGISTRY, InputParams, bound_field

logger = logging.getLogger(__name__)

PATCH_TYPES = ('json', 'merge', 'strategic')


@dataclass
class Patch:
    registry: str = bound_field(default=DEFAULT_REGISTRY)
    path: str = bound_field(template=True)
    patch_type: str = bound_field(default='strategic')
    name: str = bound_field(template=True)
    namespace: str = bound_field(template=True)
    kube_type: str = ''
    values: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Patch':
        reject_unknown(data, ('registry', 'path', 'patchType', 'name', 'namespace', 'kubeType', 'values'), 'patch')
        patch = cls(
            registry=str(data.get('registry', '')),
            path=str(data.get('path', '')),
            patch_type=str(data.get('patchType', '')),
            name=str(data.get('name', '')),
            namespace=str(data.get('namespace', '')),
            kube_type=str(data.get('kubeType', '')),
            values=string_map(data.get('values'), 'patch.values'),
        )
        if patch.patch_type and patch.patch_type not in PATCH_TYPES:
            raise ConfigError(f"patchType must be one of {', '.join(PATCH_TYPES)}: {patch.patch_type}")
        return patch

    def patch_text(self, params: InputParams) -> str:
        """Load and expand the patch document.

        Raises:
            ValetError: "unable to load patch" wrapping the load or render failure
        """
        try:
            contents = params.load_file(self.registry, self.path)
            return params.render_template(contents)
        except ValetError as e:
            raise ValetError(f"unable to load patch: {e}") from e

    def ensure(self, params: InputParams) -> None:
        params = params.merge_values(self.values)
        patch = params.render_fields(self)
        if not patch.kube_type or not patch.name:
            raise ConfigError("patch requires kubeType and name")
        logger.info(f"Patching {patch.kube_type} {patch.namespace}.{patch.name} from {patch.path} ({patch.patch_type})")
        text = patch.patch_text(params)
        cmd = params.commands.kubectl().patch(patch.kube_type, patch.name, patch.patch_type, text) \
            .namespace(patch.namespace).cmd()
        params.get_runner().run(cmd, params.cancel)

    def teardown(self, params: InputParams) -> None:
        logger.info(f"Skipping teardown for patch of {self.kube_type} {self.name}")

    def render(self, params: InputParams) -> list[dict]:
        return []
