"""Deployable resources sharing the ensure/teardown/render contract."""

from resources.application import (
    INSTALLATION_STEP_LABEL,
    Application,
    ApplicationRef,
    Resource,
    load_application,
)
from resources.base import apply_objects, delete_objects, to_manifest
from resources.helm_chart import HelmChart
from resources.manifest import Manifest, Manifests
from resources.namespace import Namespace
from resources.patch import Patch
from resources.remote_file import RemoteFile
from resources.secret import GcloudKmsEncryptedFile, Secret, SecretValue
from resources.template import Template

__all__ = [
    'Application',
    'ApplicationRef',
    'GcloudKmsEncryptedFile',
    'HelmChart',
    'INSTALLATION_STEP_LABEL',
    'Manifest',
    'Manifests',
    'Namespace',
    'Patch',
    'RemoteFile',
    'Resource',
    'Secret',
    'SecretValue',
    'Template',
    'apply_objects',
    'delete_objects',
    'load_application',
    'to_manifest',
]
