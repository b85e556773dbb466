"""
Entry point for ``python -m mini_fetch``.
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
