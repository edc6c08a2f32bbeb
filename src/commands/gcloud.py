"""gcloud command builder."""

from dataclasses import dataclass

from commands.command import CommandBuilder


@dataclass(frozen=True)
class Gcloud(CommandBuilder):
    name: str = 'gcloud'

    def clusters(self, action: str, name: str) -> 'Gcloud':
        return self.with_args('container', 'clusters', action, name)

    def get_credentials(self, name: str) -> 'Gcloud':
        return self.clusters('get-credentials', name)

    def operation(self, operation: str) -> 'Gcloud':
        return self.with_args('container', 'operations', 'describe', operation)

    def project(self, project: str) -> 'Gcloud':
        if not project:
            return self
        return self.with_args(f'--project={project}')

    def zone(self, zone: str) -> 'Gcloud':
        if not zone:
            return self
        return self.with_args(f'--zone={zone}')

    def async_(self) -> 'Gcloud':
        return self.with_args('--async')

    def quiet(self) -> 'Gcloud':
        return self.with_args('--quiet')

    def format(self, fmt: str) -> 'Gcloud':
        return self.with_args(f'--format={fmt}')

    def kms_decrypt(self, ciphertext_file: str, plaintext_file: str, keyring: str, key: str) -> 'Gcloud':
        return self.with_args(
            'kms', 'decrypt',
            f'--ciphertext-file={ciphertext_file}',
            f'--plaintext-file={plaintext_file}',
            f'--keyring={keyring}',
            f'--key={key}',
            '--location=global',
        )
