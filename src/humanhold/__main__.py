"""
Package entry point.

Allows running: python -m humanhold <command>
"""

import sys

from .cli import main

if __name__ == '__main__':
    sys.exit(main())
