"""
Main entry point for running the package as a module.

Usage:
    python -m gallerybuild config
    python -m gallerybuild build [--force] [--worker 8]
    python -m gallerybuild report
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
