"""Template resource: a manifest template expanded against the current values."""

from dataclasses import dataclass, field

from config import reject_unknown, string_map
from errors import ConfigError
from render import DEFAULT_REGISTRY, InputParams, bound_field
from resources.base import RenderedResource, parse_objects


@dataclass
class Template(RenderedResource):
    """Manifest template; its own values fill gaps in the caller's values."""
    registry: str = bound_field(default=DEFAULT_REGISTRY)
    path: str = bound_field(template=True)
    values: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Template':
        reject_unknown(data, ('registry', 'path', 'values'), 'template')
        return cls(
            registry=str(data.get('registry', '')),
            path=str(data.get('path', '')),
            values=string_map(data.get('values'), 'template.values'),
        )

    def describe(self) -> str:
        return f"template {self.path}"

    def objects(self, params: InputParams) -> list[dict]:
        if not self.path:
            raise ConfigError("template path is required")
        contents = params.load_file(self.registry, self.path)
        return parse_objects(params.render_template(contents), self.describe())

    def render(self, params: InputParams) -> list[dict]:
        return super().render(params.merge_values(self.values))

    def ensure(self, params: InputParams) -> None:
        super().ensure(params.merge_values(self.values))

    def teardown(self, params: InputParams) -> None:
        super().teardown(params.merge_values(self.values))
