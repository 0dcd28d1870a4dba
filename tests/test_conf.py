from datetime import timedelta

import pytest

from readiness.scanner import conf
from readiness.scanner.exceptions import InvalidConfiguration
from readiness.scanner.models import Severity


def test_defaults():
    config = conf.from_dict({})
    assert config.log_level == 'info'
    assert config.workers == 5
    assert config.image_name_replacement == ''
    assert config.area_labels == 'area'
    assert config.teams_labels == 'team'
    assert config.filter_labels == ''
    assert config.severity == Severity.HIGH
    assert config.scan_image_timeout == timedelta(minutes = 5)
    assert config.kubeconfig is None
    assert config.kube_context is None


@pytest.mark.parametrize('workers', [0, -3])
def test_non_positive_workers_are_rejected(workers):
    with pytest.raises(InvalidConfiguration):
        conf.from_dict({'workers': workers})


def test_severity_is_case_insensitive():
    assert conf.from_dict({'severity': 'medium'}).severity == Severity.MEDIUM


def test_unknown_severity_is_rejected():
    with pytest.raises(InvalidConfiguration):
        conf.from_dict({'severity': 'SEVERE'})


def test_log_level():
    assert conf.from_dict({'log_level': 'DEBUG'}).log_level == 'debug'
    with pytest.raises(InvalidConfiguration):
        conf.from_dict({'log_level': 'verbose'})


def test_timeout_in_seconds():
    assert conf.from_dict({'scan_image_timeout': 90}).scan_image_timeout == timedelta(seconds = 90)


@pytest.mark.parametrize('timeout', [0, -1])
def test_non_positive_timeout_is_rejected(timeout):
    with pytest.raises(InvalidConfiguration):
        conf.from_dict({'scan_image_timeout': timeout})


def test_unknown_settings_are_rejected():
    with pytest.raises(InvalidConfiguration) as excinfo:
        conf.from_dict({'wokers': 2})
    assert 'wokers' in str(excinfo.value)


def test_malformed_replacement_is_accepted():
    # Resolution failures are reported per image at scan time
    assert conf.from_dict({'image_name_replacement': 'a|b,c'}).image_name_replacement == 'a|b,c'


def test_config_is_immutable():
    config = conf.from_dict({})
    with pytest.raises(Exception):
        config.workers = 10


def test_from_file(tmp_path):
    config_file = tmp_path / 'scanner.yaml'
    config_file.write_text(
        'workers: 3\n'
        'image_name_replacement: "docker.io|mirror.local"\n'
        'severity: critical\n'
        'filter_labels: scan=enabled\n'
    )
    config = conf.from_file(str(config_file))
    assert config.workers == 3
    assert config.image_name_replacement == 'docker.io|mirror.local'
    assert config.severity == Severity.CRITICAL
    assert config.filter_labels == 'scan=enabled'


def test_from_file_with_overrides(tmp_path):
    config_file = tmp_path / 'scanner.yaml'
    config_file.write_text('workers: 3\narea_labels: org\n')
    config = conf.from_file(str(config_file), workers = 8)
    assert config.workers == 8
    assert config.area_labels == 'org'


def test_empty_file_uses_defaults(tmp_path):
    config_file = tmp_path / 'scanner.yaml'
    config_file.write_text('')
    assert conf.from_file(str(config_file)).workers == 5


def test_missing_file(tmp_path):
    with pytest.raises(InvalidConfiguration):
        conf.from_file(str(tmp_path / 'missing.yaml'))


def test_invalid_yaml(tmp_path):
    config_file = tmp_path / 'scanner.yaml'
    config_file.write_text('workers: [3\n')
    with pytest.raises(InvalidConfiguration):
        conf.from_file(str(config_file))


def test_file_must_contain_a_mapping(tmp_path):
    config_file = tmp_path / 'scanner.yaml'
    config_file.write_text('- workers\n- 3\n')
    with pytest.raises(InvalidConfiguration, match = 'mapping'):
        conf.from_file(str(config_file))


def test_from_env_file(tmp_path, monkeypatch):
    config_file = tmp_path / 'scanner.yaml'
    config_file.write_text('workers: 7\n')
    monkeypatch.setenv(conf.CONFIG_ENV_VAR, str(config_file))
    assert conf.from_env_file().workers == 7
    assert conf.from_env_file(workers = 2).workers == 2


def test_from_env_file_without_file(monkeypatch):
    monkeypatch.delenv(conf.CONFIG_ENV_VAR, raising = False)
    config = conf.from_env_file(teams_labels = 'squad')
    assert config.teams_labels == 'squad'
    assert config.workers == 5


def test_from_env_file_default_file(tmp_path, monkeypatch):
    monkeypatch.delenv(conf.CONFIG_ENV_VAR, raising = False)
    config_file = tmp_path / 'scanner.yaml'
    config_file.write_text('workers: 4\n')
    assert conf.from_env_file(default_file = str(config_file)).workers == 4
