"""
Module containing the report models and the generator that aggregates scan results by owner.
"""

import logging
from typing import Dict, List, Optional

from sortedcontainers import SortedKeyList

from pydantic import BaseModel, ConfigDict

from .models import ScannedImage, Severity, parse_severity


logger = logging.getLogger(__name__)


#: The owner used when a container does not have the ownership label
UNKNOWN_OWNER = 'unknown'


class OwnerSummary(BaseModel):
    """
    Model for the combined summary of the images belonging to an owner.
    """
    model_config = ConfigDict(frozen = True)

    #: The number of distinct images
    image_count: int
    #: The number of images that could not be scanned
    failed_scan_count: int
    #: The number of containers belonging to the owner
    container_count: int
    #: The sum of the severity scores of the images
    severity_score: int
    #: The number of findings for every severity level
    total_vulnerability_by_severity: Dict[Severity, int]


class TeamReport(BaseModel):
    """
    Model for the images owned by a team, most severe first.
    """
    name: str
    summary: OwnerSummary
    images: List[ScannedImage]


class AreaReport(BaseModel):
    """
    Model for the teams in an area, most severe first.
    """
    name: str
    summary: OwnerSummary
    teams: List[TeamReport]


class VulnerabilityReport(BaseModel):
    """
    Model for the cluster-wide vulnerability report.
    """
    #: The label used to find the area of a container
    area_label_name: str
    #: The label used to find the team of a container
    team_label_name: str
    summary: OwnerSummary
    areas: List[AreaReport]


class ControlReport(BaseModel):
    """
    Model for the outcome of a single compliance control.
    """
    id: str
    name: str
    severity: Severity
    #: PASS, FAIL or the default status of a control with no automated checks
    status: str
    successes: int
    failures: int


class ComplianceSummary(BaseModel):
    """
    Model for the totals of a compliance report.
    """
    passed: int
    failed: int
    #: The number of failed controls for every severity level
    failed_by_severity: Dict[Severity, int]
    #: The failed controls weighted by severity
    severity_score: int


class ComplianceReport(BaseModel):
    """
    Model for a compliance benchmark report.
    """
    benchmark: str
    id: str
    title: str
    version: Optional[str] = None
    summary: ComplianceSummary
    #: The controls, failed controls first and most severe first
    controls: List[ControlReport]


def summarize_owner(entries):
    """
    Combine the summaries for a list of ``(image, containers)`` pairs.
    """
    counts = {severity: 0 for severity in Severity}
    for image, _ in entries:
        for severity, count in image.vulnerability_summary.total_vulnerability_by_severity.items():
            counts[severity] += count
    return OwnerSummary(
        image_count = len(entries),
        failed_scan_count = sum(1 for image, _ in entries if not image.scanned),
        container_count = sum(len(containers) for _, containers in entries),
        severity_score = sum(image.vulnerability_summary.severity_score for image, _ in entries),
        total_vulnerability_by_severity = counts
    )


def most_severe_first(report):
    return (-report.summary.severity_score, report.name)


class ReportGenerator:
    """
    Generates reports grouped by the area and team labels of the containers.
    """
    def __init__(self, area_label_name, team_label_name):
        self.area_label_name = area_label_name
        self.team_label_name = team_label_name

    def owner_of(self, container):
        """
        Return the ``(area, team)`` that owns the given container.
        """
        return (
            container.labels.get(self.area_label_name) or UNKNOWN_OWNER,
            container.labels.get(self.team_label_name) or UNKNOWN_OWNER
        )

    def generate_vulnerability_report(self, scanned_images):
        """
        Return a vulnerability report for the given scanned images.

        An image is reported under every area and team that owns one of its containers.
        """
        scanned_images = list(scanned_images or [])
        # Map area -> team -> image index -> containers
        # The index is used because several image groups can resolve to the same name
        ownership = {}
        for index, image in enumerate(scanned_images):
            for container in image.containers:
                area, team = self.owner_of(container)
                teams = ownership.setdefault(area, {})
                teams.setdefault(team, {}).setdefault(index, []).append(container)
        areas = SortedKeyList(key = most_severe_first)
        for area, teams in ownership.items():
            team_reports = SortedKeyList(key = most_severe_first)
            area_images = {}
            for team, images in teams.items():
                entries = [(scanned_images[index], containers) for index, containers in images.items()]
                team_reports.add(
                    TeamReport(
                        name = team,
                        summary = summarize_owner(entries),
                        images = list(SortedKeyList(
                            (image for image, _ in entries),
                            key = lambda i: (-i.vulnerability_summary.severity_score, i.image_name)
                        ))
                    )
                )
                for index, containers in images.items():
                    area_images.setdefault(index, []).extend(containers)
            areas.add(
                AreaReport(
                    name = area,
                    summary = summarize_owner([
                        (scanned_images[index], containers)
                        for index, containers in area_images.items()
                    ]),
                    teams = list(team_reports)
                )
            )
        logger.info(f'Generated report for {len(scanned_images)} images in {len(areas)} areas')
        return VulnerabilityReport(
            area_label_name = self.area_label_name,
            team_label_name = self.team_label_name,
            summary = summarize_owner([(image, image.containers) for image in scanned_images]),
            areas = list(areas)
        )

    def generate_compliance_report(self, benchmark, output):
        """
        Return a compliance report for the output of a compliance benchmark scan.
        """
        controls = SortedKeyList(
            key = lambda c: (c.status != 'FAIL', -c.severity.weight, c.id)
        )
        for control in output.results:
            if control.failures:
                status = 'FAIL'
            elif not control.results:
                # Controls without automated checks report their default status
                status = control.default_status or 'PASS'
            else:
                status = 'PASS'
            controls.add(
                ControlReport(
                    id = control.id,
                    name = control.name,
                    severity = parse_severity(control.severity, control.id),
                    status = status,
                    successes = control.successes,
                    failures = control.failures
                )
            )
        failed_by_severity = {severity: 0 for severity in Severity}
        for control in controls:
            if control.status == 'FAIL':
                failed_by_severity[control.severity] += 1
        failed = sum(failed_by_severity.values())
        return ComplianceReport(
            benchmark = benchmark,
            id = output.id,
            title = output.title,
            version = output.version,
            summary = ComplianceSummary(
                passed = sum(1 for control in controls if control.status == 'PASS'),
                failed = failed,
                failed_by_severity = failed_by_severity,
                severity_score = sum(
                    count * severity.weight
                    for severity, count in failed_by_severity.items()
                )
            ),
            controls = list(controls)
        )
