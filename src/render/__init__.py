"""Value resolution, field binding and file registries."""

from render.fields import Binding, bound_field, render_fields
from render.input import InputParams
from render.registry import DEFAULT_REGISTRY, DirectoryRegistry, Registry
from render.values import Values

__all__ = [
    'Binding',
    'DEFAULT_REGISTRY',
    'DirectoryRegistry',
    'InputParams',
    'Registry',
    'Values',
    'bound_field',
    'render_fields',
]
