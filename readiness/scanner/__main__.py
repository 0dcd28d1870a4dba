"""
Allows the scanner to be run with ``python -m readiness.scanner``.
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
