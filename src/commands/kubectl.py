"""kubectl command builder."""

from dataclasses import dataclass

from commands.command import CommandBuilder


@dataclass(frozen=True)
class Kubectl(CommandBuilder):
    name: str = 'kubectl'

    def with_name(self, name: str) -> 'Kubectl':
        return self.with_args(name)

    def namespace(self, namespace: str) -> 'Kubectl':
        if not namespace:
            return self
        return self.with_args('-n', namespace)

    def create(self, kind: str) -> 'Kubectl':
        return self.with_args('create', kind)

    def get(self, kind: str) -> 'Kubectl':
        return self.with_args('get', kind)

    def delete(self, kind: str) -> 'Kubectl':
        return self.with_args('delete', kind)

    def dry_run(self) -> 'Kubectl':
        return self.with_args('--dry-run=client')

    def out_yaml(self) -> 'Kubectl':
        return self.with_args('-o', 'yaml')

    def out_json(self) -> 'Kubectl':
        return self.with_args('-o', 'json')

    def jsonpath(self, path: str) -> 'Kubectl':
        return self.with_args(f'-o=jsonpath={path}')

    def ignore_not_found(self) -> 'Kubectl':
        return self.with_args('--ignore-not-found')

    def apply_stdin(self, manifest: str) -> 'Kubectl':
        return self.with_args('apply', '-f', '-').with_stdin(manifest)

    def delete_stdin(self, manifest: str) -> 'Kubectl':
        return self.with_args('delete', '-f', '-').with_stdin(manifest)

    def patch(self, kind: str, name: str, patch_type: str, patch: str) -> 'Kubectl':
        return self.with_args('patch', kind, name, '--type', patch_type, '--patch', patch)

    def use_context(self, context: str) -> 'Kubectl':
        return self.with_args('config', 'use-context', context)

    def port_forward(self, target: str, ports: str) -> 'Kubectl':
        return self.with_args('port-forward', target, ports)

    def selector(self, selector: str) -> 'Kubectl':
        if not selector:
            return self
        return self.with_args('-l', selector)
