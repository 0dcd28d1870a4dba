"""
Settings for the image scanner.
"""

import os
from datetime import timedelta
from typing import Optional

import yaml

from pydantic import BaseModel, ConfigDict, ValidationError, conint, field_validator

from .exceptions import InvalidConfiguration
from .models import Severity


#: The log levels that can be configured
LOG_LEVELS = ('debug', 'info', 'warning', 'error', 'critical')

#: The environment variable that can point at a configuration file
CONFIG_ENV_VAR = 'READINESS_SCANNER_CONFIG'


class ScanConfig(BaseModel):
    """
    Model defining the settings for a scan run.
    """
    model_config = ConfigDict(frozen = True, extra = 'forbid')

    #: The log level for the process
    log_level: str = 'info'
    #: The number of images to scan concurrently
    workers: conint(ge = 1) = 5
    #: Rules for rewriting image names before scanning, e.g. to use a registry mirror
    #: The format is "match|replacement,match|replacement"
    image_name_replacement: str = ''
    #: The label holding the area that owns a workload
    area_labels: str = 'area'
    #: The label holding the team that owns a workload
    teams_labels: str = 'team'
    #: Label selector for the namespaces to scan, empty for all namespaces
    filter_labels: str = ''
    #: The minimum severity of the vulnerabilities to report
    severity: Severity = Severity.HIGH
    #: The timeout for scanning a single image
    scan_image_timeout: timedelta = timedelta(minutes = 5)
    #: The kubeconfig file to use, defaults to the in-cluster config or ~/.kube/config
    kubeconfig: Optional[str] = None
    #: The kubeconfig context to use
    kube_context: Optional[str] = None

    @field_validator('log_level', mode = 'before')
    @classmethod
    def check_log_level(cls, v):
        v = str(v).lower()
        if v not in LOG_LEVELS:
            raise ValueError(f'not a valid log level (available: {", ".join(LOG_LEVELS)})')
        return v

    @field_validator('severity', mode = 'before')
    @classmethod
    def upper_severity(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator('scan_image_timeout')
    @classmethod
    def check_timeout(cls, v):
        if v.total_seconds() <= 0:
            raise ValueError('timeout must be positive')
        return v


def from_dict(config):
    """
    Build a settings object from a dictionary, raising ``InvalidConfiguration`` if invalid.
    """
    try:
        return ScanConfig(**config)
    except ValidationError as exc:
        raise InvalidConfiguration(str(exc)) from exc


def from_file(config_file, **overrides):
    """
    Build a settings object from a YAML file, with the given overrides applied on top.
    """
    try:
        with open(config_file) as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise InvalidConfiguration(f'unable to read {config_file}: {exc}') from exc
    if not isinstance(config, dict):
        raise InvalidConfiguration(f'{config_file} must contain a mapping')
    return from_dict(dict(config, **overrides))


def from_env_file(var_name = CONFIG_ENV_VAR, default_file = None, **overrides):
    """
    Build a settings object from a config file specified by an environment variable.

    If neither the variable nor a default file is given, only the overrides are used.
    """
    config_file = os.environ.get(var_name, default_file)
    if config_file:
        return from_file(config_file, **overrides)
    return from_dict(overrides)
