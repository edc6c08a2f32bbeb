"""Field binding descriptors and the renderer that evaluates them.

Configuration dataclasses declare how each field is filled with
bound_field(). At render time every bound field is resolved with this
precedence:

1. the literal value from the recipe (template-expanded if template=True)
2. the value stored under the binding key
3. the binding default

Nested dataclass fields are rendered recursively. Rendering returns a new
object; the loaded configuration is never mutated.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any

from errors import ConfigError

logger = logging.getLogger(__name__)

BINDING = 'valet_binding'


@dataclass(frozen=True)
class Binding:
    key: str = ''
    default: Any = None
    template: bool = False


def bound_field(*, key: str = '', default: Any = None, template: bool = False, empty: Any = ''):
    """Declare a dataclass field populated by render_fields.

    Args:
        key: Value key looked up when the recipe leaves the field empty
        default: Used when neither the recipe nor the key provides a value
        template: Expand the recipe's literal as a template
        empty: The unset value for the field (e.g. 0 for ints)
    """
    return dataclasses.field(
        default=empty,
        metadata={BINDING: Binding(key=key, default=default, template=template)},
    )


def _is_empty(value: Any) -> bool:
    return value is None or value == '' or value == 0


def _coerce(value: Any, like: Any, key: str) -> Any:
    if isinstance(like, bool) and isinstance(value, str):
        return value.lower() in ('1', 'true', 'yes')
    if isinstance(like, int) and isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got {value!r}") from None
    return value


def render_fields(obj, values, runner=None, cancel=None):
    """Return a copy of obj with every bound field resolved.

    Args:
        obj: A configuration dataclass instance
        values: render.values.Values to resolve keys and templates against
        runner: Runner used by cmd: values
        cancel: Cancellation event passed to any command run

    Raises:
        ValueNotFoundError, ValueCycleError, TemplateRenderError
    """
    if obj is None or not dataclasses.is_dataclass(obj):
        return obj
    changes = {}
    for f in dataclasses.fields(obj):
        if not f.init:
            continue
        current = getattr(obj, f.name)
        binding = f.metadata.get(BINDING)
        if binding is not None:
            value = current
            if binding.template and isinstance(value, str) and value:
                value = values.render_template(value, runner, cancel)
            if _is_empty(value) and binding.key and values.contains_key(binding.key):
                value = _coerce(values.get_value(binding.key, runner, cancel), f.default, binding.key)
                logger.debug(f"{type(obj).__name__}.{f.name} bound from key {binding.key}")
            if _is_empty(value) and binding.default is not None:
                value = binding.default
            if value is not current:
                changes[f.name] = value
        elif dataclasses.is_dataclass(current) and not isinstance(current, type):
            rendered = render_fields(current, values, runner, cancel)
            if rendered is not current:
                changes[f.name] = rendered
    if not changes:
        return obj
    return dataclasses.replace(obj, **changes)
