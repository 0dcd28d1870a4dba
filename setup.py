#!/usr/bin/env python3

import os
from setuptools import setup, find_namespace_packages


here = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(here, 'README.md')) as f:
    README = f.read()


if __name__ == "__main__":
    setup(
        name = 'production-readiness',
        version = '0.1.0',
        description = 'Tool for scanning the images running in a Kubernetes cluster for vulnerabilities.',
        long_description = README,
        long_description_content_type = 'text/markdown',
        classifiers = [
            "Programming Language :: Python",
            "Programming Language :: Python :: 3",
        ],
        keywords = 'container kubernetes image scan security vulnerability trivy compliance',
        packages = find_namespace_packages(include = ['readiness.*']),
        include_package_data = True,
        zip_safe = False,
        python_requires = '>=3.8',
        install_requires = [
            'wrapt',
            'pydantic>=2',
            'sortedcontainers',
            'kubernetes_asyncio',
            'pyyaml',
        ],
        extras_require = {
            'test': [
                'pytest',
                'pytest-asyncio',
            ],
        },
        entry_points = {
            'console_scripts': [
                'readiness-scan = readiness.scanner.cli:main',
            ],
        }
    )
