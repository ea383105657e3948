"""Entry point for running infradraw as a module: python -m infradraw"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
