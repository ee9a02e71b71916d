"""`python -m wslconverge`: same command surface as the `wslconverge` script."""

import sys

from wslconverge.cli import run

if __name__ == "__main__":
    sys.exit(run(sys.argv[1:]))
