"""Entry point for ``python -m webdisk`` and the ``webdisk`` script."""

import sys

import eventlet

# Patch stdlib for cooperative I/O in the server
eventlet.monkey_patch()

from webdisk.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
