"""Namespace resource."""

from dataclasses import dataclass, field

from config import reject_unknown, string_map
from errors import ConfigError
from render import InputParams, bound_field
from resources.base import RenderedResource, parse_objects, set_metadata


@dataclass
class Namespace(RenderedResource):
    """Namespace with optional labels and annotations.

    The object is rendered with `kubectl create namespace --dry-run` and
    then applied, so ensuring an existing namespace is a no-op update.
    """
    name: str = bound_field(key='Namespace', template=True)
    labels: dict = field(default_factory=dict)
    annotations: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Namespace':
        reject_unknown(data, ('name', 'labels', 'annotations'), 'namespace')
        return cls(
            name=str(data.get('name', '')),
            labels=string_map(data.get('labels'), 'namespace.labels'),
            annotations=string_map(data.get('annotations'), 'namespace.annotations'),
        )

    def describe(self) -> str:
        return f"namespace {self.name}"

    def objects(self, params: InputParams) -> list[dict]:
        if not self.name:
            raise ConfigError("namespace name is required")
        cmd = params.commands.kubectl().create('namespace').with_name(self.name).dry_run().out_yaml().cmd()
        objects = parse_objects(params.get_runner().output(cmd, params.cancel), self.describe())
        for obj in objects:
            set_metadata(obj, self.labels, self.annotations)
        return objects
