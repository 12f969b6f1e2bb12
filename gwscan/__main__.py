"""
Entry point for running gwscan as a module: python -m gwscan
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
