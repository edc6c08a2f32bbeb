"""InputParams: the values, flags and collaborators threaded through a run.

InputParams is treated as immutable. merge_values, merge_flags and the
with_* helpers return new copies, so concurrent workflow branches can each
hold their own snapshot without locking.
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from clients import KubectlIngressClient, Route53DnsClient, UrlArtifactDownloader
from commands import CommandFactory, CommandRunner, Runner
from errors import ConfigError, RequiredValueNotProvidedError
from render.fields import render_fields
from render.registry import DEFAULT_REGISTRY, DirectoryRegistry, Registry
from render.values import Values

logger = logging.getLogger(__name__)


@dataclass
class InputParams:
    """Values, flags, registries and collaborators for one invocation.

    Collaborators left as None fall back to the CLI-backed defaults when
    first requested.
    """
    values: Values = field(default_factory=Values)
    flags: list = field(default_factory=list)
    registries: dict = field(default_factory=dict)
    runner: Optional[Runner] = None
    ingress_client: Any = None
    dns_client: Any = None
    artifact_downloader: Any = None
    cluster_driver_factory: Optional[Callable] = None
    cancel: threading.Event = field(default_factory=threading.Event)
    kube_config: str = ''
    local_paths: dict = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.values, Values):
            self.values = Values(self.values or {})

    def deep_copy(self) -> 'InputParams':
        """Copy values, flags and registries; share the collaborators."""
        return dataclasses.replace(
            self,
            values=Values(self.values),
            flags=list(self.flags),
            registries=dict(self.registries),
            local_paths=dict(self.local_paths),
        )

    def merge_values(self, values: Optional[dict]) -> 'InputParams':
        """Return a copy with values added; keys already present win."""
        output = self.deep_copy()
        output.values = self.values.merged(values)
        return output

    def merge_flags(self, flags: Optional[list]) -> 'InputParams':
        output = self.deep_copy()
        for flag in flags or []:
            if flag not in output.flags:
                output.flags.append(flag)
        return output

    def with_registry(self, name: str, registry: Registry) -> 'InputParams':
        output = self.deep_copy()
        output.registries[name] = registry
        return output

    def with_kube_config(self, kube_config: str) -> 'InputParams':
        output = self.deep_copy()
        output.kube_config = kube_config
        return output

    def has_flags(self, required: Optional[list]) -> bool:
        """True if every required flag is active."""
        return all(flag in self.flags for flag in required or [])

    def get_runner(self) -> Runner:
        if self.runner is None:
            return CommandRunner()
        return self.runner

    @property
    def commands(self) -> CommandFactory:
        return CommandFactory(kube_config=self.kube_config, local_paths=dict(self.local_paths))

    def get_registry(self, name: str) -> Registry:
        if name in self.registries:
            return self.registries[name]
        if name == DEFAULT_REGISTRY:
            return DirectoryRegistry()
        raise ConfigError(f"Unknown registry {name}")

    def get_ingress_client(self):
        if self.ingress_client is None:
            return KubectlIngressClient(self.get_runner(), self.commands, self.cancel)
        return self.ingress_client

    def get_dns_client(self):
        if self.dns_client is None:
            return Route53DnsClient()
        return self.dns_client

    def get_artifact_downloader(self):
        if self.artifact_downloader is None:
            return UrlArtifactDownloader()
        return self.artifact_downloader

    def get_value(self, key: str) -> str:
        return self.values.get_value(key, self.get_runner(), self.cancel)

    def render_template(self, text: str) -> str:
        return self.values.render_template(text, self.get_runner(), self.cancel)

    def render_fields(self, obj):
        return render_fields(obj, self.values, self.get_runner(), self.cancel)

    def load_file(self, registry_name: str, path: str) -> str:
        """Template-expand path and load it from the named registry."""
        registry = self.get_registry(registry_name or DEFAULT_REGISTRY)
        return registry.load_file(self.render_template(path))

    def check_required_values(self, required: Optional[list]) -> None:
        """Raise RequiredValueNotProvidedError for the first missing key."""
        for key in required or []:
            if not self.values.contains_key(key):
                raise RequiredValueNotProvidedError(key)
