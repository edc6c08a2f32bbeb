"""External tool invocation: command values, builders and the runner.

CommandFactory hands out per-tool builders. When the factory is bound to a
kubeconfig path every command it builds carries KUBECONFIG in its
environment, which is how a cluster's credentials follow a workflow.
"""

from dataclasses import dataclass, field

from commands.command import Command, CommandBuilder, EMPTY, REDACTED
from commands.eksctl import Eksctl
from commands.gcloud import Gcloud
from commands.helm import Helm
from commands.kind import Kind
from commands.kubectl import Kubectl
from commands.minikube import Minikube
from commands.runner import CommandRunner, Runner, StreamHandler


@dataclass(frozen=True)
class CommandFactory:
    """Builds tool commands bound to a kubeconfig and local binary paths."""
    kube_config: str = ''
    local_paths: dict = field(default_factory=dict)

    def _new(self, builder_cls):
        builder = builder_cls()
        local = self.local_paths.get(builder.name)
        if local:
            builder = builder_cls(name=local)
        if self.kube_config:
            builder = builder.with_env('KUBECONFIG', self.kube_config)
        return builder

    def kubectl(self) -> Kubectl:
        return self._new(Kubectl)

    def helm(self) -> Helm:
        return self._new(Helm)

    def gcloud(self) -> Gcloud:
        return self._new(Gcloud)

    def minikube(self) -> Minikube:
        return self._new(Minikube)

    def eksctl(self) -> Eksctl:
        return self._new(Eksctl)

    def kind(self) -> Kind:
        return self._new(Kind)


__all__ = [
    'Command',
    'CommandBuilder',
    'CommandFactory',
    'CommandRunner',
    'EMPTY',
    'Eksctl',
    'Gcloud',
    'Helm',
    'Kind',
    'Kubectl',
    'Minikube',
    'REDACTED',
    'Runner',
    'StreamHandler',
]
