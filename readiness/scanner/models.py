"""
Module containing the models for scan results and their summaries.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator
from pydantic.dataclasses import dataclass


logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """
    Enum of the severity levels reported by the scan engine, most severe first.
    """
    CRITICAL = 'CRITICAL'
    HIGH = 'HIGH'
    MEDIUM = 'MEDIUM'
    LOW = 'LOW'
    UNKNOWN = 'UNKNOWN'

    @property
    def weight(self):
        return SEVERITY_WEIGHTS[self]

    @classmethod
    def at_least(cls, minimum):
        """
        Return the severities that are at least as severe as the given minimum.

        UNKNOWN is only included when it is the minimum itself.
        """
        minimum = cls(minimum)
        if minimum == cls.UNKNOWN:
            return list(cls)
        return [s for s in cls if s != cls.UNKNOWN and s.weight >= minimum.weight]


#: The weight of each severity in the severity score
#: Each level is 100 times the level below, so a single finding outweighs up to 99
#: findings of the next level down (100 of them tie)
SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 100000000,
    Severity.HIGH: 1000000,
    Severity.MEDIUM: 10000,
    Severity.LOW: 100,
    Severity.UNKNOWN: 1,
}


def parse_severity(value, source = None):
    """
    Convert a severity string from the scan engine into a ``Severity``.

    Strings that are not one of the known levels are counted as UNKNOWN and logged.
    """
    try:
        return Severity((value or '').strip().upper())
    except ValueError:
        logger.warning(f'Unrecognised severity "{value}" for {source or "finding"}, counting as UNKNOWN')
        return Severity.UNKNOWN


@dataclass(frozen = True)
class ContainerRef:
    """
    Model representing a container running in the cluster.
    """
    #: The namespace of the pod
    namespace: constr(min_length = 1)
    #: The name of the pod
    pod_name: constr(min_length = 1)
    #: The name of the container within the pod
    name: constr(min_length = 1)
    #: The image reference the container was started from
    image: constr(min_length = 1)
    #: The namespace labels overlaid with the pod labels
    labels: Dict[str, str] = Field(default_factory = dict)


class TrivyModel(BaseModel):
    """
    Base class for models parsed from the scan engine output, which uses PascalCase keys.
    """
    model_config = ConfigDict(frozen = True, populate_by_name = True)


class Layer(TrivyModel):
    """
    Model for the image layer that introduced a vulnerability.
    """
    diff_id: Optional[str] = Field(None, alias = 'DiffID')
    digest: Optional[str] = Field(None, alias = 'Digest')


class Vulnerability(TrivyModel):
    """
    Model for a single vulnerability finding.
    """
    vulnerability_id: str = Field('', alias = 'VulnerabilityID')
    pkg_name: str = Field('', alias = 'PkgName')
    installed_version: str = Field('', alias = 'InstalledVersion')
    fixed_version: Optional[str] = Field(None, alias = 'FixedVersion')
    #: The severity exactly as reported by the engine
    severity: str = Field(Severity.UNKNOWN.value, alias = 'Severity')
    severity_source: Optional[str] = Field(None, alias = 'SeveritySource')
    title: Optional[str] = Field(None, alias = 'Title')
    description: Optional[str] = Field(None, alias = 'Description')
    references: List[str] = Field(default_factory = list, alias = 'References')
    layer: Optional[Layer] = Field(None, alias = 'Layer')

    @field_validator('references', mode = 'before')
    @classmethod
    def null_references(cls, v):
        return v or []


class ScanTarget(TrivyModel):
    """
    Model for the findings for one target in an image, e.g. the OS packages or a lock file.
    """
    target: str = Field('', alias = 'Target')
    type: str = Field('', alias = 'Type')
    vulnerabilities: List[Vulnerability] = Field(default_factory = list, alias = 'Vulnerabilities')

    @field_validator('vulnerabilities', mode = 'before')
    @classmethod
    def null_vulnerabilities(cls, v):
        # The engine reports targets with no findings as null
        return v or []


class VulnerabilitySummary(BaseModel):
    """
    Model for the summary of the vulnerabilities found in an image.
    """
    model_config = ConfigDict(frozen = True)

    #: The number of containers using the image
    container_count: int
    #: The sum of the counts weighted by severity
    severity_score: int
    #: The number of findings for every severity level
    total_vulnerability_by_severity: Dict[Severity, int]


def summarize(results, containers):
    """
    Build the vulnerability summary for the given scan targets and containers.
    """
    counts = {severity: 0 for severity in Severity}
    for target in results:
        for vulnerability in target.vulnerabilities:
            severity = parse_severity(vulnerability.severity, vulnerability.vulnerability_id)
            counts[severity] += 1
    return VulnerabilitySummary(
        container_count = len(containers),
        severity_score = sum(count * severity.weight for severity, count in counts.items()),
        total_vulnerability_by_severity = counts
    )


class ScannedImage(BaseModel):
    """
    Model for the result of scanning one image.

    The vulnerability summary is always derived from the results and containers when the
    model is constructed.
    """
    model_config = ConfigDict(frozen = True)

    #: The image name after name resolution
    image_name: constr(min_length = 1)
    #: The containers using the image, as discovered in the cluster
    containers: List[ContainerRef]
    #: The findings for each scan target
    results: List[ScanTarget] = Field(default_factory = list)
    #: The error message if the image could not be scanned
    scan_error: Optional[str] = None
    #: The summary of the findings
    vulnerability_summary: VulnerabilitySummary = Field(None, validate_default = True)

    @field_validator('vulnerability_summary', mode = 'before')
    @classmethod
    def build_vulnerability_summary(cls, v, info):
        return summarize(info.data.get('results', []), info.data.get('containers', []))

    @property
    def scanned(self):
        """
        True if the scan engine produced results for the image.
        """
        return self.scan_error is None
