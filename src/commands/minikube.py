"""minikube command builder."""

from dataclasses import dataclass

from commands.command import CommandBuilder


@dataclass(frozen=True)
class Minikube(CommandBuilder):
    name: str = 'minikube'

    def status(self) -> 'Minikube':
        return self.with_args('status')

    def start(self) -> 'Minikube':
        return self.with_args('start')

    def delete(self) -> 'Minikube':
        return self.with_args('delete')

    def ip(self) -> 'Minikube':
        return self.with_args('ip')

    def cpus(self, cpus: int) -> 'Minikube':
        return self.with_args(f'--cpus={cpus}')

    def memory(self, mb: int) -> 'Minikube':
        return self.with_args(f'--memory={mb}')

    def vm_driver(self, driver: str) -> 'Minikube':
        if not driver:
            return self
        return self.with_args(f'--vm-driver={driver}')

    def kube_version(self, version: str) -> 'Minikube':
        if not version:
            return self
        return self.with_args(f'--kubernetes-version={version}')
