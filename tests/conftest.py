import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Make the readiness namespace package importable without installing it
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from readiness.scanner.models import ContainerRef, ScanTarget, Vulnerability


@pytest.fixture
def make_container():
    def make(image, name = 'app', namespace = 'default', pod_name = None, **labels):
        return ContainerRef(
            namespace = namespace,
            pod_name = pod_name or f'{name}-pod',
            name = name,
            image = image,
            labels = labels
        )
    return make


@pytest.fixture
def make_results():
    def make(*severities, target = 'alpine:3.19 (alpine 3.19.1)'):
        return [
            ScanTarget(
                target = target,
                type = 'alpine',
                vulnerabilities = [
                    Vulnerability(
                        vulnerability_id = f'CVE-2024-{index:04d}',
                        pkg_name = 'openssl',
                        installed_version = '3.1.4-r0',
                        severity = severity
                    )
                    for index, severity in enumerate(severities)
                ]
            )
        ]
    return make


@pytest.fixture
def docker_client():
    client = AsyncMock()
    client.pull_image.return_value = None
    client.rmi_image.return_value = None
    return client


@pytest.fixture
def trivy_client():
    client = AsyncMock()
    client.download_database.return_value = None
    client.scan_image.return_value = []
    return client
