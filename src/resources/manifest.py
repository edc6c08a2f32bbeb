"""Manifest resources: plain YAML loaded from a registry."""

from dataclasses import dataclass, field

from config import reject_unknown, string_list
from errors import ConfigError
from render import DEFAULT_REGISTRY, InputParams, bound_field
from resources.base import RenderedResource, parse_objects


def _location(registry: str, path: str) -> str:
    if registry and registry != DEFAULT_REGISTRY:
        return f"{registry}:{path}"
    return path


@dataclass
class Manifest(RenderedResource):
    registry: str = bound_field(default=DEFAULT_REGISTRY)
    path: str = bound_field(key='Path', template=True)

    @classmethod
    def from_dict(cls, data: dict) -> 'Manifest':
        reject_unknown(data, ('registry', 'path'), 'manifest')
        return cls(registry=str(data.get('registry', '')), path=str(data.get('path', '')))

    def describe(self) -> str:
        return f"manifest {_location(self.registry, self.path)}"

    def objects(self, params: InputParams) -> list[dict]:
        if not self.path:
            raise ConfigError("manifest path is required")
        return parse_objects(params.load_file(self.registry, self.path), self.describe())


@dataclass
class Manifests(RenderedResource):
    """Several manifest paths from one registry, applied as one unit."""
    registry: str = bound_field(default=DEFAULT_REGISTRY)
    paths: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'Manifests':
        reject_unknown(data, ('registry', 'paths'), 'manifests')
        return cls(registry=str(data.get('registry', '')), paths=string_list(data.get('paths'), 'manifests.paths'))

    def describe(self) -> str:
        return f"{len(self.paths)} manifest(s) from registry {self.registry}"

    def objects(self, params: InputParams) -> list[dict]:
        objects = []
        for path in self.paths:
            objects.extend(Manifest(registry=self.registry, path=path).render(params))
        return objects
