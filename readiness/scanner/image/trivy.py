"""
Module providing a client for the Trivy vulnerability scanner.
"""

import logging
from typing import List, Optional

from pydantic import Field, ValidationError, field_validator

from ..exceptions import ComplianceScanFailed, DatabaseDownloadFailed, ImageScanFailed
from ..models import ScanTarget, Severity, TrivyModel
from ..process import run_command


logger = logging.getLogger(__name__)


#: The extra time allowed for Trivy to exit after its own timeout before it is killed
KILL_GRACE_SECONDS = 30


class TrivyOutput(TrivyModel):
    """
    Model for the JSON output of an image scan.
    """
    results: List[ScanTarget] = Field(default_factory = list, alias = 'Results')

    @field_validator('results', mode = 'before')
    @classmethod
    def null_results(cls, v):
        return v or []


class MisconfSummary(TrivyModel):
    """
    Model for the counts of checks for a compliance target.
    """
    successes: int = Field(0, alias = 'Successes')
    failures: int = Field(0, alias = 'Failures')
    exceptions: int = Field(0, alias = 'Exceptions')


class Misconfiguration(TrivyModel):
    """
    Model for a single failed or passed compliance check.
    """
    id: str = Field('', alias = 'ID')
    avd_id: Optional[str] = Field(None, alias = 'AVDID')
    type: Optional[str] = Field(None, alias = 'Type')
    title: Optional[str] = Field(None, alias = 'Title')
    description: Optional[str] = Field(None, alias = 'Description')
    message: Optional[str] = Field(None, alias = 'Message')
    namespace: Optional[str] = Field(None, alias = 'Namespace')
    resolution: Optional[str] = Field(None, alias = 'Resolution')
    severity: str = Field(Severity.UNKNOWN.value, alias = 'Severity')
    primary_url: Optional[str] = Field(None, alias = 'PrimaryURL')
    status: Optional[str] = Field(None, alias = 'Status')


class ComplianceTarget(TrivyModel):
    """
    Model for the results of a compliance control against one resource.
    """
    target: str = Field('', alias = 'Target')
    class_: Optional[str] = Field(None, alias = 'Class')
    type: Optional[str] = Field(None, alias = 'Type')
    misconf_summary: MisconfSummary = Field(default_factory = MisconfSummary, alias = 'MisconfSummary')
    misconfigurations: List[Misconfiguration] = Field(default_factory = list, alias = 'Misconfigurations')

    @field_validator('misconfigurations', mode = 'before')
    @classmethod
    def null_misconfigurations(cls, v):
        return v or []


class ComplianceControl(TrivyModel):
    """
    Model for a single control in a compliance benchmark.
    """
    id: str = Field('', alias = 'ID')
    name: str = Field('', alias = 'Name')
    description: Optional[str] = Field(None, alias = 'Description')
    severity: str = Field(Severity.UNKNOWN.value, alias = 'Severity')
    results: List[ComplianceTarget] = Field(default_factory = list, alias = 'Results')
    default_status: Optional[str] = Field(None, alias = 'DefaultStatus')

    @field_validator('results', mode = 'before')
    @classmethod
    def null_results(cls, v):
        return v or []

    @property
    def failures(self):
        return sum(target.misconf_summary.failures for target in self.results)

    @property
    def successes(self):
        return sum(target.misconf_summary.successes for target in self.results)


class ComplianceOutput(TrivyModel):
    """
    Model for the JSON output of a compliance benchmark scan.
    """
    id: str = Field('', alias = 'ID')
    title: str = Field('', alias = 'Title')
    description: Optional[str] = Field(None, alias = 'Description')
    version: Optional[str] = Field(None, alias = 'Version')
    related_resources: List[str] = Field(default_factory = list, alias = 'RelatedResources')
    results: List[ComplianceControl] = Field(default_factory = list, alias = 'Results')

    @field_validator('related_resources', 'results', mode = 'before')
    @classmethod
    def null_lists(cls, v):
        return v or []


class TrivyClient:
    """
    Client that runs the Trivy command line.
    """
    def __init__(self, severity = Severity.HIGH, timeout = 300, executable = 'trivy'):
        #: The minimum severity of the findings to report
        self.severity = Severity(severity)
        #: The timeout for a single image scan, in seconds
        self.timeout = timeout
        self.executable = executable

    @property
    def severity_filter(self):
        """
        The value for the ``--severity`` option, i.e. the minimum severity and those above it.
        """
        return ','.join(s.value for s in Severity.at_least(self.severity))

    def image_scan_command(self, name):
        return [
            self.executable,
            'image',
            '--skip-db-update',
            '--quiet',
            '--format', 'json',
            '--severity', self.severity_filter,
            '--timeout', f'{int(self.timeout)}s',
            name,
        ]

    async def download_database(self, kind):
        """
        Make sure the vulnerability database for the given kind of scan is present and current.
        """
        logger.info(f'Downloading vulnerability database for {kind} scans')
        result = await run_command(self.executable, kind, '--download-db-only')
        if not result.success:
            raise DatabaseDownloadFailed(f'{kind} database: {result.error_output}')

    async def scan_image(self, name):
        """
        Scan the given image and return the list of scan targets with their findings.
        """
        result = await run_command(
            *self.image_scan_command(name),
            timeout = self.timeout + KILL_GRACE_SECONDS
        )
        if not result.success:
            raise ImageScanFailed(f'{name}: {result.error_output}')
        try:
            return TrivyOutput.model_validate_json(result.stdout).results
        except ValidationError as exc:
            raise ImageScanFailed(f'{name}: unable to parse scan output') from exc

    async def cis_scan(self, benchmark):
        """
        Run the given compliance benchmark against the cluster and return the parsed output.
        """
        result = await run_command(
            self.executable,
            'k8s',
            '--compliance', benchmark,
            '--report', 'all',
            '--format', 'json'
        )
        if not result.success:
            raise ComplianceScanFailed(f'benchmark "{benchmark}": {result.error_output}')
        try:
            return ComplianceOutput.model_validate_json(result.stdout)
        except ValidationError as exc:
            raise ComplianceScanFailed(f'benchmark "{benchmark}": unable to parse scan output') from exc
