"""
Module containing the scanner that orchestrates the scanning of the images in a cluster.
"""

import asyncio
import logging

from .exceptions import (
    ComplianceScanFailed,
    DatabaseDownloadFailed,
    ImageNameFormatError,
    ReportGenerationFailed
)
from .image.docker import DockerClient
from .image.names import group_containers_by_image, resolve_image_name
from .image.trivy import TrivyClient
from .models import ScannedImage
from .pool import WorkerPool
from .report import ReportGenerator
from .util import reraise_as


logger = logging.getLogger(__name__)


class Scanner:
    """
    Scans the images used by the containers in a cluster for vulnerabilities.

    The collaborators default to the Docker and Trivy command line clients and a report
    generator using the configured ownership labels.
    """
    def __init__(self, config,
                       kubernetes_client,
                       docker_client = None,
                       trivy_client = None,
                       report_generator = None):
        self.config = config
        self.kubernetes_client = kubernetes_client
        self.docker_client = docker_client or DockerClient()
        self.trivy_client = trivy_client or TrivyClient(
            config.severity,
            config.scan_image_timeout.total_seconds()
        )
        self.report_generator = report_generator or ReportGenerator(
            config.area_labels,
            config.teams_labels
        )

    async def scan_images(self):
        """
        Scan all the images used in the cluster and return a vulnerability report.
        """
        logger.info('Running scanner')
        containers = await self.kubernetes_client.get_containers_in_namespaces(
            self.config.filter_labels
        )
        scanned_images = await self.scan_image_groups(group_containers_by_image(containers))
        logger.info('Generating vulnerability report')
        return self.generate_report(
            f'vulnerability report for {len(scanned_images)} images',
            self.report_generator.generate_vulnerability_report,
            scanned_images
        )

    @reraise_as(DatabaseDownloadFailed, 'failed to download {0} database')
    async def download_database(self, kind):
        await self.trivy_client.download_database(kind)

    async def scan_image_groups(self, images):
        """
        Scan each image in the given image -> containers mapping and return the results.

        The results are in the order the scans completed. Only a failure to download the
        vulnerability database is fatal. Any other failure is logged and the image is
        still included in the results.
        """
        # The database is shared by all the scans, so it must be ready before they start
        await self.download_database('image')
        scanned_images = []
        lock = asyncio.Lock()

        async def scan_and_collect(image_name, original_name, containers):
            try:
                scanned_image = await self.scan_image(image_name, containers)
            except Exception as exc:
                # Every image group must be reported, even if building its result failed
                logger.exception(f'Error processing image {image_name}')
                scanned_image = ScannedImage(
                    image_name = original_name,
                    containers = containers,
                    scan_error = f'error processing image {image_name}: {exc}'
                )
            async with lock:
                scanned_images.append(scanned_image)

        logger.info(f'Scanning {len(images)} images with {self.config.workers} workers')
        async with WorkerPool(self.config.workers) as pool:
            for image_name, containers in images.items():
                try:
                    resolved_image_name = resolve_image_name(
                        image_name,
                        self.config.image_name_replacement
                    )
                except ImageNameFormatError as exc:
                    logger.error(
                        f'Image name replacement failed, image_name: {image_name}, '
                        f'image_name_replacement: {self.config.image_name_replacement}, '
                        f'error: {exc}'
                    )
                    resolved_image_name = exc.image_name
                pool.submit(scan_and_collect, resolved_image_name, image_name, containers)
        return scanned_images

    async def scan_image(self, image_name, containers):
        """
        Pull, scan and remove a single image and return the result.

        This never raises for a failure of the image, a scan failure is recorded on the
        returned image instead.
        """
        logger.info(f'Worker processing image: {image_name}')
        # The engine cannot fetch images from some registries, so pull the image first
        try:
            await self.docker_client.pull_image(image_name)
        except Exception as exc:
            logger.error(f'Error executing docker pull for image {image_name}: {exc}')
        results = []
        scan_error = None
        try:
            results = await self.trivy_client.scan_image(image_name)
        except Exception as exc:
            scan_error = f'error executing trivy for image {image_name}: {exc}'
            logger.error(scan_error)
        # Remove the image again to bound the disk space used by a run
        try:
            await self.docker_client.rmi_image(image_name)
        except Exception as exc:
            logger.error(f'Error executing docker rmi for image {image_name}: {exc}')
        return ScannedImage(
            image_name = image_name,
            containers = containers,
            results = results,
            scan_error = scan_error
        )

    @reraise_as(ComplianceScanFailed, 'benchmark "{0}"')
    async def cis_scan(self, benchmark):
        """
        Run the given compliance benchmark against the cluster and return a compliance report.
        """
        logger.info(f'Running {benchmark} security benchmark')
        output = await self.trivy_client.cis_scan(benchmark)
        logger.info(f'Generating {benchmark} security benchmark report')
        return self.generate_report(
            f'{benchmark} compliance report',
            self.report_generator.generate_compliance_report,
            benchmark,
            output
        )

    def generate_report(self, description, generate, *args):
        try:
            return generate(*args)
        except Exception as exc:
            raise ReportGenerationFailed(f'{description}: {exc}') from exc
