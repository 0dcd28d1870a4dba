"""
Command line entry point for the image scanner.
"""

import argparse
import asyncio
import logging
import sys

from . import conf
from .exceptions import ReadinessError
from .k8s import KubernetesClient
from .models import Severity
from .scanner import Scanner


logger = logging.getLogger(__name__)


#: The command line options that override settings from the configuration file
CONFIG_OPTIONS = (
    'log_level',
    'workers',
    'image_name_replacement',
    'area_labels',
    'teams_labels',
    'filter_labels',
    'severity',
    'scan_image_timeout',
    'kubeconfig',
    'kube_context',
)


def create_parser():
    """
    Create the argument parser.
    """
    parser = argparse.ArgumentParser(
        prog = 'readiness-scan',
        description = 'Scan the images running in a Kubernetes cluster for vulnerabilities.'
    )
    parser.add_argument(
        '--config',
        help = f'YAML configuration file (defaults to ${conf.CONFIG_ENV_VAR} if set)'
    )
    parser.add_argument('--log-level', choices = conf.LOG_LEVELS, type = str.lower)
    parser.add_argument('--workers', type = int, help = 'number of images to scan concurrently')
    parser.add_argument(
        '--image-name-replacement',
        help = 'rewrite rules for image names, e.g. "docker.io|mirror.local,quay.io|mirror.local"'
    )
    parser.add_argument('--area-labels', help = 'label holding the area that owns a workload')
    parser.add_argument('--teams-labels', help = 'label holding the team that owns a workload')
    parser.add_argument('--filter-labels', help = 'label selector for the namespaces to scan')
    parser.add_argument(
        '--severity',
        choices = [s.value for s in Severity],
        type = str.upper,
        help = 'minimum severity of the vulnerabilities to report'
    )
    parser.add_argument(
        '--scan-image-timeout',
        type = float,
        help = 'timeout in seconds for scanning a single image'
    )
    parser.add_argument('--kubeconfig', help = 'kubeconfig file to use')
    parser.add_argument('--context', dest = 'kube_context', help = 'kubeconfig context to use')
    parser.add_argument('-o', '--output', help = 'file to write the JSON report to (default: stdout)')
    subparsers = parser.add_subparsers(dest = 'command')
    subparsers.add_parser('scan', help = 'scan the images used by the running containers')
    cis_parser = subparsers.add_parser('cis-scan', help = 'run a compliance benchmark on the cluster')
    cis_parser.add_argument('benchmark', help = 'the benchmark to run, e.g. k8s-cis')
    return parser


def setup_logging(level):
    logging.basicConfig(
        level = getattr(logging, level.upper()),
        format = '%(asctime)s %(levelname)s [%(name)s] %(message)s',
        stream = sys.stderr,
        force = True
    )


def load_config(args):
    """
    Build the settings from the configuration file and the command line options.
    """
    overrides = {
        option: getattr(args, option)
        for option in CONFIG_OPTIONS
        if getattr(args, option) is not None
    }
    if args.config:
        return conf.from_file(args.config, **overrides)
    return conf.from_env_file(**overrides)


def write_report(report, output):
    content = report.model_dump_json(indent = 2)
    if output:
        with open(output, 'w') as f:
            f.write(content)
        logger.info(f'Report written to {output}')
    else:
        sys.stdout.write(content + '\n')


def main(argv = None):
    """
    Run the command line and return the exit status.
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1
    setup_logging('info')
    try:
        config = load_config(args)
        setup_logging(config.log_level)
        scanner = Scanner(config, KubernetesClient(config.kubeconfig, config.kube_context))
        if args.command == 'cis-scan':
            report = asyncio.run(scanner.cis_scan(args.benchmark))
        else:
            report = asyncio.run(scanner.scan_images())
    except ReadinessError as exc:
        logger.error(str(exc))
        return exc.code
    except KeyboardInterrupt:
        logger.error('Operation cancelled by user')
        return 130
    write_report(report, args.output)
    return 0
