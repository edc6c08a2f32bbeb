"""kind command builder."""

from dataclasses import dataclass

from commands.command import CommandBuilder


@dataclass(frozen=True)
class Kind(CommandBuilder):
    name: str = 'kind'

    def get_clusters(self) -> 'Kind':
        return self.with_args('get', 'clusters')

    def create_cluster(self, name: str) -> 'Kind':
        return self.with_args('create', 'cluster', f'--name={name}')

    def delete_cluster(self, name: str) -> 'Kind':
        return self.with_args('delete', 'cluster', f'--name={name}')
