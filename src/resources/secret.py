"""Secret resource built from files, environment variables or KMS-encrypted files."""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional

from config import reject_unknown
from errors import ConfigError, ValetError, ValueNotFoundError
from render import InputParams, bound_field
from render.registry import expand_path
from resources.base import RenderedResource, optional, parse_objects

logger = logging.getLogger(__name__)

ENCRYPTED_SUFFIX = '.enc'


@dataclass
class GcloudKmsEncryptedFile:
    ciphertext_file: str = ''
    gcloud_project: str = ''
    keyring: str = ''
    key: str = ''

    @classmethod
    def from_dict(cls, data: dict) -> 'GcloudKmsEncryptedFile':
        reject_unknown(data, ('ciphertextFile', 'gcloudProject', 'keyring', 'key'), 'gcloudKmsEncryptedFile')
        entry = cls(
            ciphertext_file=str(data.get('ciphertextFile', '')),
            gcloud_project=str(data.get('gcloudProject', '')),
            keyring=str(data.get('keyring', '')),
            key=str(data.get('key', '')),
        )
        if not entry.ciphertext_file.endswith(ENCRYPTED_SUFFIX):
            raise ConfigError(f"Ciphertext files must end with '{ENCRYPTED_SUFFIX}': {entry.ciphertext_file}")
        return entry


@dataclass
class SecretValue:
    """One secret entry; exactly one source must be set."""
    env_var: str = ''
    file: str = ''
    gcloud_kms_encrypted_file: Optional[GcloudKmsEncryptedFile] = None

    @classmethod
    def from_dict(cls, data: dict, name: str = '') -> 'SecretValue':
        reject_unknown(data, ('envVar', 'file', 'gcloudKmsEncryptedFile'), f"secret entry '{name}'")
        value = cls(
            env_var=str(data.get('envVar', '')),
            file=str(data.get('file', '')),
            gcloud_kms_encrypted_file=optional(
                GcloudKmsEncryptedFile, data.get('gcloudKmsEncryptedFile'), 'gcloudKmsEncryptedFile'),
        )
        sources = [s for s in (value.env_var, value.file, value.gcloud_kms_encrypted_file) if s]
        if len(sources) != 1:
            raise ConfigError(f"secret entry '{name}' must set exactly one of envVar, file, gcloudKmsEncryptedFile")
        return value


@dataclass
class Secret(RenderedResource):
    """Opaque secret rendered with `kubectl create secret generic --dry-run`.

    Environment variable contents are passed as --from-literal and redacted
    from the logged command line. KMS-encrypted files are decrypted into a
    temporary file that is removed once the secret has been rendered.
    """
    name: str = ''
    namespace: str = bound_field(key='Namespace', template=True)
    entries: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Secret':
        reject_unknown(data, ('name', 'namespace', 'entries'), 'secret')
        entries = {
            str(k): SecretValue.from_dict(v or {}, str(k))
            for k, v in (data.get('entries') or {}).items()
        }
        return cls(name=str(data.get('name', '')), namespace=str(data.get('namespace', '')), entries=entries)

    def describe(self) -> str:
        return f"secret {self.namespace}.{self.name}"

    def _decrypt(self, params: InputParams, kms: GcloudKmsEncryptedFile, to_cleanup: list) -> str:
        """Decrypt into a temp file registered in to_cleanup before gcloud runs."""
        fd, plaintext = tempfile.mkstemp(prefix='valet-secret-')
        os.close(fd)
        to_cleanup.append(plaintext)
        cmd = params.commands.gcloud().kms_decrypt(
            expand_path(kms.ciphertext_file), plaintext, kms.keyring, kms.key,
        ).project(kms.gcloud_project).cmd()
        try:
            params.get_runner().run(cmd, params.cancel)
        except ValetError as e:
            raise ValetError(f"unable to decrypt file {kms.ciphertext_file}: {e}") from e
        return plaintext

    def objects(self, params: InputParams) -> list[dict]:
        if not self.name:
            raise ConfigError("secret name is required")
        logger.info(f"Rendering {self.describe()} with {len(self.entries)} entries")
        builder = params.commands.kubectl().create('secret').with_args('generic').with_name(self.name)
        builder = builder.namespace(self.namespace)
        to_cleanup = []
        try:
            for key, value in sorted(self.entries.items()):
                if value.file:
                    builder = builder.with_args(f"--from-file={key}={expand_path(value.file)}")
                elif value.env_var:
                    if value.env_var not in os.environ:
                        raise ValueNotFoundError(f"environment variable {value.env_var}")
                    literal = f"--from-literal={key}={os.environ[value.env_var]}"
                    builder = builder.with_args(literal).redact(literal, f"--from-literal={key}=REDACTED")
                else:
                    plaintext = self._decrypt(params, value.gcloud_kms_encrypted_file, to_cleanup)
                    builder = builder.with_args(f"--from-file={key}={plaintext}")
            out = params.get_runner().output(builder.dry_run().out_yaml().cmd(), params.cancel)
        finally:
            for path in to_cleanup:
                if os.path.exists(path):
                    os.unlink(path)
        return parse_objects(out, self.describe())

    def teardown(self, params: InputParams) -> None:
        secret = params.render_fields(self)
        logger.info(f"Tearing down {secret.describe()}")
        cmd = params.commands.kubectl().delete('secret').with_name(secret.name) \
            .namespace(secret.namespace).ignore_not_found().cmd()
        params.get_runner().run(cmd, params.cancel)
