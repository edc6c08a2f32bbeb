"""helm command builder."""

from dataclasses import dataclass

from commands.command import CommandBuilder


@dataclass(frozen=True)
class Helm(CommandBuilder):
    name: str = 'helm'

    def template(self, release: str, chart: str) -> 'Helm':
        return self.with_args('template', release, chart)

    def upgrade_install(self, release: str, chart: str) -> 'Helm':
        return self.with_args('upgrade', '--install', release, chart)

    def uninstall(self, release: str) -> 'Helm':
        return self.with_args('uninstall', release)

    def repo(self, repo_url: str) -> 'Helm':
        return self.with_args('--repo', repo_url)

    def version(self, version: str) -> 'Helm':
        if not version:
            return self
        return self.with_args('--version', version)

    def namespace(self, namespace: str) -> 'Helm':
        if not namespace:
            return self
        return self.with_args('--namespace', namespace)

    def create_namespace(self) -> 'Helm':
        return self.with_args('--create-namespace')

    def set(self, assignment: str) -> 'Helm':
        return self.with_args('--set', assignment)

    def values_file(self, path: str) -> 'Helm':
        return self.with_args('--values', path)

    def wait(self) -> 'Helm':
        return self.with_args('--wait')

    def set_file(self, assignment: str) -> 'Helm':
        return self.with_args('--set-file', assignment)
