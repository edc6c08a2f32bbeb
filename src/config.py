"""Global configuration and YAML loading helpers.

Configuration sources:
- ~/.valet/global.yaml: user-wide defaults (override dir with VALET_CONFIG_DIR)
  - env: default values, lowest precedence
  - registries: named directory registries
- recipe files: workflow, application and multi-cluster YAML documents

Recipe documents are strictly loaded: every object kind lists the keys it
accepts and anything else is rejected with ConfigError.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import yaml

from errors import ConfigError

logger = logging.getLogger(__name__)

GLOBAL_CONFIG_FILE = 'global.yaml'


def get_config_dir() -> Path:
    """Return the user config directory (~/.valet unless overridden)."""
    override = os.environ.get('VALET_CONFIG_DIR')
    if override:
        return Path(override)
    return Path.home() / '.valet'


def parse_yaml(text: str, source: str = '<string>') -> dict:
    """Parse a YAML document that must be a mapping.

    An empty document yields an empty dict.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {source}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{source} must contain a mapping, got {type(data).__name__}")
    return data


def reject_unknown(data: dict, allowed: Iterable[str], kind: str) -> None:
    """Raise ConfigError if data holds keys outside allowed."""
    if not isinstance(data, dict):
        raise ConfigError(f"{kind} must be a mapping, got {type(data).__name__}")
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ConfigError(f"Unknown field(s) in {kind}: {', '.join(unknown)}")


def string_map(data: Optional[dict], kind: str) -> dict:
    """Coerce a YAML mapping of scalars into a str -> str dict."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{kind} must be a mapping, got {type(data).__name__}")
    result = {}
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            raise ConfigError(f"{kind}.{key} must be a scalar")
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        result[str(key)] = '' if value is None else str(value)
    return result


def string_list(data, kind: str) -> list:
    """Coerce a YAML list of scalars into a list of str."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise ConfigError(f"{kind} must be a list, got {type(data).__name__}")
    return [str(item) for item in data]


def int_value(data, kind: str) -> int:
    """Coerce an optional YAML scalar to int; missing or empty is 0."""
    if data is None or data == '':
        return 0
    try:
        return int(data)
    except (TypeError, ValueError):
        raise ConfigError(f"{kind} must be an integer, got {data!r}") from None


@dataclass
class GlobalConfig:
    """User-wide defaults loaded from global.yaml."""
    env: dict = field(default_factory=dict)
    registries: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'GlobalConfig':
        reject_unknown(data, ('env', 'registries'), 'global config')
        registries = {}
        for name, spec in (data.get('registries') or {}).items():
            reject_unknown(spec or {}, ('directory',), f"registry '{name}'")
            registries[str(name)] = str((spec or {}).get('directory', ''))
        return cls(env=string_map(data.get('env'), 'env'), registries=registries)

    @classmethod
    def load(cls, config_dir: Optional[Path] = None) -> 'GlobalConfig':
        """Load global.yaml, returning empty defaults if it does not exist."""
        path = (config_dir or get_config_dir()) / GLOBAL_CONFIG_FILE
        if not path.exists():
            logger.debug(f"No global config at {path}")
            return cls()
        logger.debug(f"Loading global config from {path}")
        return cls.from_dict(parse_yaml(path.read_text(), str(path)))

    def to_dict(self) -> dict:
        return {
            'env': dict(self.env),
            'registries': {name: {'directory': d} for name, d in self.registries.items()},
        }

    def save(self, config_dir: Optional[Path] = None) -> Path:
        """Write the config back to global.yaml, creating the directory."""
        config_dir = config_dir or get_config_dir()
        config_dir.mkdir(parents=True, exist_ok=True)
        path = config_dir / GLOBAL_CONFIG_FILE
        path.write_text(yaml.safe_dump(self.to_dict(), default_flow_style=False))
        return path
