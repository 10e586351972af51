"""Entry point for python -m noorsync execution.

This module allows running noor-sync as a module:
    python -m noorsync status
    python -m noorsync sync
    python -m noorsync --help
"""

from noorsync.cli import run

if __name__ == "__main__":
    run()
