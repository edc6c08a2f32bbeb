"""eksctl command builder."""

from dataclasses import dataclass

from commands.command import CommandBuilder


@dataclass(frozen=True)
class Eksctl(CommandBuilder):
    name: str = 'eksctl'

    def get_cluster(self) -> 'Eksctl':
        return self.with_args('get', 'cluster')

    def create_cluster(self, name: str) -> 'Eksctl':
        return self.with_args('create', 'cluster', f'--name={name}')

    def delete_cluster(self, name: str) -> 'Eksctl':
        return self.with_args('delete', 'cluster', f'--name={name}')

    def write_kubeconfig(self, name: str) -> 'Eksctl':
        return self.with_args('utils', 'write-kubeconfig', f'--cluster={name}')

    def region(self, region: str) -> 'Eksctl':
        if not region:
            return self
        return self.with_args(f'--region={region}')

    def cluster_name(self, name: str) -> 'Eksctl':
        if not name:
            return self
        return self.with_args(f'--name={name}')
