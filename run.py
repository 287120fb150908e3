#!/usr/bin/env python3
"""Entry point for the webdisk application."""

import sys

import eventlet

# Patch stdlib for eventlet's green sockets
eventlet.monkey_patch()

from webdisk.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
