"""Shared plumbing for resources: union validation and apply/delete of
rendered Kubernetes objects."""

import logging
from typing import Optional, Protocol, runtime_checkable

import yaml

from errors import ConfigError
from render import InputParams

logger = logging.getLogger(__name__)


@runtime_checkable
class Resource(Protocol):
    """Unit of desired state."""

    def ensure(self, params: InputParams) -> None:
        ...

    def teardown(self, params: InputParams) -> None:
        ...

    def render(self, params: InputParams) -> list[dict]:
        ...


def single_variant(obj, variants: tuple, kind: str) -> str:
    """Return the name of the one populated variant attribute.

    Raises:
        ConfigError: If none or more than one variant is set
    """
    populated = [name for name in variants if getattr(obj, name) is not None]
    if len(populated) != 1:
        found = ', '.join(populated) if populated else 'none'
        raise ConfigError(f"{kind} must set exactly one of {', '.join(variants)} (found: {found})")
    return populated[0]


def optional(cls, data, kind: str):
    """Build cls from a mapping, passing None through."""
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ConfigError(f"{kind} must be a mapping, got {type(data).__name__}")
    return cls.from_dict(data)


def parse_objects(text: str, source: str) -> list[dict]:
    """Split a multi-document YAML manifest into object dicts."""
    try:
        return [doc for doc in yaml.safe_load_all(text) if doc]
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {source}: {e}") from e


def to_manifest(objects: list[dict]) -> str:
    """Serialize objects to the manifest text handed to kubectl."""
    return yaml.safe_dump_all(objects, default_flow_style=False, sort_keys=False)


def apply_objects(params: InputParams, objects: list[dict], description: str = '') -> None:
    if not objects:
        logger.info(f"Nothing to apply for {description}")
        return
    logger.info(f"Applying {len(objects)} object(s) for {description}")
    cmd = params.commands.kubectl().apply_stdin(to_manifest(objects)).cmd()
    params.get_runner().run(cmd, params.cancel)


def delete_objects(params: InputParams, objects: list[dict], description: str = '') -> None:
    if not objects:
        return
    logger.info(f"Deleting {len(objects)} object(s) for {description}")
    cmd = params.commands.kubectl().delete_stdin(to_manifest(objects)).ignore_not_found().cmd()
    params.get_runner().run(cmd, params.cancel)


class RenderedResource:
    """Mixin for variants whose ensure/teardown apply/delete their render output.

    Subclasses implement objects(), which runs on the field-rendered copy.
    """

    def describe(self) -> str:
        return type(self).__name__.lower()

    def objects(self, params: InputParams) -> list[dict]:
        raise NotImplementedError

    def render(self, params: InputParams) -> list[dict]:
        return params.render_fields(self).objects(params)

    def ensure(self, params: InputParams) -> None:
        rendered = params.render_fields(self)
        logger.info(f"Ensuring {rendered.describe()}")
        apply_objects(params, rendered.objects(params), rendered.describe())

    def teardown(self, params: InputParams) -> None:
        rendered = params.render_fields(self)
        logger.info(f"Tearing down {rendered.describe()}")
        delete_objects(params, rendered.objects(params), rendered.describe())


def set_metadata(obj: dict, labels: Optional[dict] = None, annotations: Optional[dict] = None) -> dict:
    """Merge labels/annotations into an object's metadata in place."""
    metadata = obj.setdefault('metadata', {}) or {}
    obj['metadata'] = metadata
    if labels:
        metadata['labels'] = {**(metadata.get('labels') or {}), **labels}
    if annotations:
        metadata['annotations'] = {**(metadata.get('annotations') or {}), **annotations}
    return obj
