"""Tests for resource variants: namespace, secret, manifests, templates, helm charts, patches."""

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest
import yaml

from conftest import namespace_yaml
from errors import CommandError, ConfigError, ValetError, ValueNotFoundError
from render import Values
from resources import (
    GcloudKmsEncryptedFile,
    HelmChart,
    Manifest,
    Manifests,
    Namespace,
    Patch,
    RemoteFile,
    Resource,
    Secret,
    SecretValue,
    Template,
    to_manifest,
)

SECRET_YAML = """apiVersion: v1
kind: Secret
metadata:
  name: creds
  namespace: ns
data:
  token: czNjcmV0
"""

CHART_YAML = """apiVersion: v1
kind: ServiceAccount
metadata:
  name: gloo
---
apiVersion: apps/v1
kind: Deployment
metadata:
  name: gloo
"""


def _arg_value(command, prefix):
    return next(a[len(prefix):] for a in command.args if a.startswith(prefix))


class TestNamespace:
    def test_dry_run_then_apply(self, runner, params):
        runner.on('kubectl create namespace', namespace_yaml)
        Namespace(name='gloo-system', labels={'istio-injection': 'enabled'}).ensure(params)

        assert runner.lines() == [
            'kubectl create namespace gloo-system --dry-run=client -o yaml',
            'kubectl apply -f -',
        ]
        applied = yaml.safe_load(runner.calls[1].stdin)
        assert applied['metadata']['name'] == 'gloo-system'
        assert applied['metadata']['labels'] == {'istio-injection': 'enabled'}

    def test_name_from_key(self, runner, params):
        runner.on('kubectl create namespace', namespace_yaml)
        Namespace().ensure(params.merge_values({'Namespace': 'from-values'}))
        assert runner.lines()[0].startswith('kubectl create namespace from-values')

    def test_name_is_templated(self, runner, params):
        runner.on('kubectl create namespace', namespace_yaml)
        Namespace(name='{{ Team }}-apps').ensure(params.merge_values({'Team': 'pets'}))
        assert runner.lines()[0] == 'kubectl create namespace pets-apps --dry-run=client -o yaml'

    def test_render_matches_what_ensure_applies(self, runner, params):
        runner.on('kubectl create namespace', namespace_yaml)
        ns = Namespace(name='demo', annotations={'owner': 'valet'})
        rendered = to_manifest(ns.render(params))
        ns.ensure(params)
        assert runner.calls[-1].stdin == rendered

    def test_teardown_ignores_not_found(self, runner, params):
        runner.on('kubectl create namespace', namespace_yaml)
        Namespace(name='demo').teardown(params)
        assert runner.lines()[-1] == 'kubectl delete -f - --ignore-not-found'

    def test_requires_name(self, params):
        with pytest.raises(ConfigError):
            Namespace().ensure(params)


class TestSecret:
    def test_env_literal_is_redacted_in_log(self, runner, params, monkeypatch):
        monkeypatch.setenv('VALET_TEST_TOKEN', 's3cret')
        runner.on('kubectl create secret', SECRET_YAML)
        Secret(name='creds', namespace='ns', entries={'token': SecretValue(env_var='VALET_TEST_TOKEN')}).ensure(params)

        create = runner.calls[0]
        assert '--from-literal=token=s3cret' in create.argv
        assert 's3cret' not in create.log_line()
        assert '--from-literal=token=REDACTED' in create.log_line()
        assert runner.lines()[1] == 'kubectl apply -f -'

    def test_file_entry(self, runner, params, tmp_path):
        runner.on('kubectl create secret', SECRET_YAML)
        Secret(name='creds', namespace='ns', entries={'license': SecretValue(file=str(tmp_path / 'lic'))}).ensure(params)
        assert f'--from-file=license={tmp_path / "lic"}' in runner.calls[0].argv

    def test_missing_env_var(self, params, monkeypatch):
        monkeypatch.delenv('VALET_TEST_MISSING', raising=False)
        secret = Secret(name='creds', namespace='ns', entries={'t': SecretValue(env_var='VALET_TEST_MISSING')})
        with pytest.raises(ValueNotFoundError):
            secret.ensure(params)

    def test_kms_plaintext_removed_after_success(self, runner, params):
        runner.on('gcloud kms decrypt', '')
        runner.on('kubectl create secret', SECRET_YAML)
        kms = GcloudKmsEncryptedFile(ciphertext_file='/secrets/license.enc', gcloud_project='p', keyring='r', key='k')
        Secret(name='creds', namespace='ns', entries={'license': SecretValue(gcloud_kms_encrypted_file=kms)}).ensure(params)

        plaintext = _arg_value(runner.calls[0], '--plaintext-file=')
        assert f'--from-file=license={plaintext}' in runner.calls[1].argv
        assert not os.path.exists(plaintext)

    def test_kms_plaintext_removed_after_failure(self, runner, params):
        runner.on('gcloud kms decrypt', CommandError('gcloud kms decrypt', 1, 'permission denied'))
        kms = GcloudKmsEncryptedFile(ciphertext_file='/secrets/license.enc', keyring='r', key='k')
        secret = Secret(name='creds', namespace='ns', entries={'license': SecretValue(gcloud_kms_encrypted_file=kms)})
        with pytest.raises(ValetError, match='unable to decrypt'):
            secret.ensure(params)
        assert not os.path.exists(_arg_value(runner.calls[0], '--plaintext-file='))

    def test_kms_plaintext_removed_when_render_fails(self, runner, params):
        runner.on('gcloud kms decrypt', '')
        runner.on('kubectl create secret', CommandError('kubectl create secret', 1, 'forbidden'))
        kms = GcloudKmsEncryptedFile(ciphertext_file='/secrets/license.enc', keyring='r', key='k')
        secret = Secret(name='creds', namespace='ns', entries={'license': SecretValue(gcloud_kms_encrypted_file=kms)})
        with pytest.raises(CommandError):
            secret.ensure(params)
        assert not os.path.exists(_arg_value(runner.calls[0], '--plaintext-file='))

    def test_kms_plaintext_removed_when_interrupted(self, runner, params):
        runner.on('gcloud kms decrypt', KeyboardInterrupt())
        kms = GcloudKmsEncryptedFile(ciphertext_file='/secrets/license.enc', keyring='r', key='k')
        secret = Secret(name='creds', namespace='ns', entries={'license': SecretValue(gcloud_kms_encrypted_file=kms)})
        with pytest.raises(KeyboardInterrupt):
            secret.ensure(params)
        assert not os.path.exists(_arg_value(runner.calls[0], '--plaintext-file='))

    def test_namespace_is_templated(self, runner, params):
        runner.on('kubectl create secret', SECRET_YAML)
        Secret(name='creds', namespace='{{ Team }}-system').ensure(params.merge_values({'Team': 'pets'}))
        assert runner.lines()[0] == 'kubectl create secret generic creds -n pets-system --dry-run=client -o yaml'

    def test_ciphertext_must_end_in_enc(self):
        with pytest.raises(ConfigError, match='.enc'):
            GcloudKmsEncryptedFile.from_dict({'ciphertextFile': 'license.txt'})

    def test_entry_needs_exactly_one_source(self):
        with pytest.raises(ConfigError):
            SecretValue.from_dict({'envVar': 'A', 'file': 'b'}, 'x')
        with pytest.raises(ConfigError):
            SecretValue.from_dict({}, 'x')

    def test_teardown_deletes_by_name(self, runner, params):
        Secret(name='creds', namespace='ns').teardown(params)
        assert runner.lines() == ['kubectl delete secret creds -n ns --ignore-not-found']


class TestManifest:
    def test_applies_all_documents(self, runner, params, tmp_path):
        (tmp_path / 'petstore.yaml').write_text(CHART_YAML)
        Manifest(path='petstore.yaml').ensure(params)
        applied = list(yaml.safe_load_all(runner.calls[0].stdin))
        assert [o['kind'] for o in applied] == ['ServiceAccount', 'Deployment']

    def test_path_is_templated(self, runner, params, tmp_path):
        (tmp_path / 'petstore-v2.yaml').write_text(CHART_YAML)
        Manifest(path='petstore-{{ Version }}.yaml').ensure(params.merge_values({'Version': 'v2'}))
        assert runner.lines() == ['kubectl apply -f -']

    def test_missing_file(self, params):
        with pytest.raises(ValetError, match='unable to read'):
            Manifest(path='missing.yaml').ensure(params)

    def test_manifests_in_order(self, runner, params, tmp_path):
        (tmp_path / 'a.yaml').write_text('kind: A\n')
        (tmp_path / 'b.yaml').write_text('kind: B\n')
        objects = Manifests(paths=['b.yaml', 'a.yaml']).render(params)
        assert [o['kind'] for o in objects] == ['B', 'A']


class TestTemplate:
    def test_own_values_fill_gaps(self, runner, params, tmp_path):
        (tmp_path / 'cm.yaml').write_text('kind: ConfigMap\ndata:\n  greeting: {{ Greeting }}\n  user: {{ User }}\n')
        template = Template(path='cm.yaml', values={'Greeting': 'hello', 'User': 'default-user'})
        objects = template.render(params.merge_values({'User': 'caller'}))
        assert objects[0]['data'] == {'greeting': 'hello', 'user': 'caller'}

    def test_missing_placeholder_fails(self, params, tmp_path):
        (tmp_path / 'cm.yaml').write_text('kind: ConfigMap\nmetadata:\n  name: {{ Missing }}\n')
        with pytest.raises(ValetError):
            Template(path='cm.yaml').ensure(params)


class TestHelmChart:
    def test_template_command(self, runner, params, tmp_path):
        (tmp_path / 'values.yaml').write_text('replicas: 2\n')
        runner.on('helm template', CHART_YAML)
        chart = HelmChart(
            repo_url='https://storage.googleapis.com/solo-public-helm',
            chart_name='gloo',
            namespace='gloo-system',
            set=['crds.create=true'],
            values_files=['values.yaml'],
        )
        chart.ensure(params.merge_values({'Version': '1.3.0'}))

        helm = runner.calls[0]
        assert helm.argv[:10] == [
            'helm', 'template', 'gloo', 'gloo',
            '--repo', 'https://storage.googleapis.com/solo-public-helm',
            '--version', '1.3.0',
            '--namespace', 'gloo-system',
        ]
        assert '--set' in helm.argv and 'crds.create=true' in helm.argv
        values_path = helm.argv[helm.argv.index('--values') + 1]
        assert not os.path.exists(values_path)
        assert runner.lines()[1] == 'kubectl apply -f -'

    def test_set_env_is_redacted(self, runner, params, monkeypatch):
        monkeypatch.setenv('VALET_TEST_LICENSE', 'lic-123')
        runner.on('helm template', CHART_YAML)
        HelmChart(repo_url='https://charts', chart_name='gloo-ee', set_env={'license_key': 'VALET_TEST_LICENSE'}) \
            .render(params)
        assert 'license_key=lic-123' in runner.calls[0].argv
        assert 'license_key=REDACTED' in runner.calls[0].log_line()

    def test_invalid_set(self):
        with pytest.raises(ConfigError, match='A=B'):
            HelmChart.from_dict({'repoUrl': 'u', 'chartName': 'c', 'set': ['novalue']})


class TestPatch:
    def test_applies_expanded_patch(self, runner, params, tmp_path):
        (tmp_path / 'replicas.json').write_text('{"spec": {"replicas": {{ Replicas }}}}')
        patch = Patch(path='replicas.json', name='gateway-proxy', namespace='gloo-system',
                      kube_type='deployment', values={'Replicas': '2'})
        patch.ensure(params)
        assert runner.calls[0].argv == [
            'kubectl', 'patch', 'deployment', 'gateway-proxy',
            '--type', 'strategic', '--patch', '{"spec": {"replicas": 2}}',
            '-n', 'gloo-system',
        ]

    def test_load_failure_is_wrapped(self, params):
        patch = Patch(path='missing.json', name='x', kube_type='deployment')
        with pytest.raises(ValetError, match='^unable to load patch: '):
            patch.ensure(params)

    def test_invalid_type(self):
        with pytest.raises(ConfigError):
            Patch.from_dict({'path': 'p', 'patchType': 'yaml'})

    def test_teardown_is_noop(self, runner, params):
        Patch(path='p', name='x', kube_type='deployment').teardown(params)
        assert runner.calls == []


class TestRemoteFile:
    def test_uses_injected_downloader(self, params):
        downloader = MagicMock()
        params.artifact_downloader = downloader
        RemoteFile(remote_path='https://example.com/glooctl-{{ Version }}', local_path='/tmp/glooctl') \
            .ensure(params.merge_values({'Version': 'v1.3.0'}))
        downloader.download.assert_called_once_with('https://example.com/glooctl-v1.3.0', '/tmp/glooctl')


class TestResourceUnion:
    def test_requires_a_variant(self):
        with pytest.raises(ConfigError, match='exactly one'):
            Resource()

    def test_rejects_two_variants(self):
        with pytest.raises(ConfigError, match='found: namespace, manifest'):
            Resource(namespace=Namespace(name='a'), manifest=Manifest(path='b'))

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match='helmchart'):
            Resource.from_dict({'helmchart': {}})

    def test_from_dict(self):
        resource = Resource.from_dict({'namespace': {'name': 'gloo'}, 'values': {'A': 1}, 'flags': ['x']})
        assert resource.variant == Namespace(name='gloo')
        assert resource.values == {'A': '1'}
        assert resource.flags == ['x']

    def test_resource_values_do_not_override_caller(self, runner, params):
        runner.on('kubectl create namespace', namespace_yaml)
        resource = Resource(namespace=Namespace(), values={'Namespace': 'resource-default'})
        resource.ensure(params.merge_values({'Namespace': 'caller'}))
        assert runner.lines()[0].startswith('kubectl create namespace caller')
        assert params.values == Values()
