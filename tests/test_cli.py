"""Tests for cli.py - argument handling and command dispatch."""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import pytest
import yaml

from cli import _parse_pairs, build_params, load_document, main
from config import GlobalConfig
from errors import ConfigError
from multicluster import MultiClusterConfig
from workflow import Config


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    path = tmp_path / 'valet-config'
    monkeypatch.setenv('VALET_CONFIG_DIR', str(path))
    return path


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / 'work'
    path.mkdir()
    return path


def _args(**kwargs):
    defaults = dict(value=None, flag=None, registry=None)
    defaults.update(kwargs)
    return argparse.Namespace(**defaults)


class TestParsePairs:
    def test_pairs(self):
        assert _parse_pairs(['A=1', 'B=x=y', 'A=2'], '--value') == {'A': '2', 'B': 'x=y'}

    def test_empty_value_allowed(self):
        assert _parse_pairs(['A='], '--value') == {'A': ''}

    def test_missing_separator(self):
        with pytest.raises(ConfigError, match='--value'):
            _parse_pairs(['A'], '--value')

    def test_none(self):
        assert _parse_pairs(None, '--flag') == {}


class TestBuildParams:
    def test_cli_values_win_over_global_env(self):
        global_config = GlobalConfig(env={'Domain': 'global.example.com', 'Project': 'p1'})
        params = build_params(_args(value=['Domain=cli.example.com']), global_config)
        assert params.get_value('Domain') == 'cli.example.com'
        assert params.get_value('Project') == 'p1'

    def test_flags_and_registries(self, tmp_path):
        global_config = GlobalConfig(registries={'gloo': '/srv/gloo', 'local': '/srv/local'})
        params = build_params(
            _args(flag=['enterprise'], registry=[f'local={tmp_path}']), global_config)
        assert params.flags == ['enterprise']
        assert params.get_registry('gloo').working_directory == '/srv/gloo'
        assert params.get_registry('local').working_directory == str(tmp_path)


class TestLoadDocument:
    def test_detects_multicluster(self, params, tmp_path):
        (tmp_path / 'multi.yaml').write_text("clusters:\n- path: a.yaml\n")
        assert isinstance(load_document(params, 'default', 'multi.yaml'), MultiClusterConfig)

    def test_defaults_to_workflow_config(self, params, tmp_path):
        (tmp_path / 'config.yaml').write_text("steps: []\n")
        assert isinstance(load_document(params, 'default', 'config.yaml'), Config)


class TestMain:
    def test_no_args_prints_usage(self, capsys):
        assert main([]) == 1
        assert 'Usage: valet' in capsys.readouterr().out

    def test_help(self, capsys):
        assert main(['--help']) == 0
        assert 'set-context' in capsys.readouterr().out

    def test_unknown_command(self, capsys):
        assert main(['deploy']) == 1
        assert "Unknown command 'deploy'" in capsys.readouterr().err

    def test_missing_file_reports_error(self, config_dir, workdir, capsys):
        assert main(['ensure', '-f', 'missing.yaml', '--registry', f'default={workdir}']) == 1
        assert 'Error: unable to read' in capsys.readouterr().err

    def test_file_option_required(self, config_dir):
        with pytest.raises(SystemExit):
            main(['ensure'])

    def test_bad_value_option(self, config_dir, capsys):
        assert main(['ensure', '-f', 'x.yaml', '--value', 'NoEquals']) == 1
        assert 'Expected KEY=VALUE' in capsys.readouterr().err

    def test_ensure_empty_workflow(self, config_dir, workdir):
        (workdir / 'config.yaml').write_text("steps: []\n")
        assert main(['ensure', '-f', 'config.yaml', '--registry', f'default={workdir}']) == 0

    def test_set_context_rejects_multicluster(self, config_dir, workdir, capsys):
        (workdir / 'multi.yaml').write_text("clusters: []\n")
        assert main(['set-context', '-f', 'multi.yaml', '--registry', f'default={workdir}']) == 1
        assert 'set-context requires' in capsys.readouterr().err

    def test_render_prints_labelled_manifest(self, config_dir, workdir, capsys):
        (workdir / 'svc.yaml').write_text(
            "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: '{{ Name }}'\n")
        (workdir / 'app.yaml').write_text(
            "name: demo\n"
            "resources:\n"
            "- template:\n"
            "    path: svc.yaml\n"
        )
        code = main(['render', '-f', 'app.yaml', '--registry', f'default={workdir}', '--value', 'Name=settings'])
        assert code == 0
        [obj] = list(yaml.safe_load_all(capsys.readouterr().out))
        assert obj['metadata']['name'] == 'settings'
        assert obj['metadata']['labels'] == {'valet.solo.io/installation_step': 'valet.demo.0'}


class TestConfigCommand:
    def test_set_env_then_show(self, config_dir, capsys):
        assert main(['config', 'set-env', 'Domain=example.com']) == 0
        assert main(['config', 'set-registry', 'gloo=/srv/gloo']) == 0
        loaded = GlobalConfig.load(config_dir)
        assert loaded.env == {'Domain': 'example.com'}
        assert loaded.registries == {'gloo': '/srv/gloo'}

        capsys.readouterr()
        assert main(['config', 'show']) == 0
        assert yaml.safe_load(capsys.readouterr().out)['env'] == {'Domain': 'example.com'}

    def test_set_env_requires_pair(self, config_dir):
        with pytest.raises(SystemExit):
            main(['config', 'set-env'])
