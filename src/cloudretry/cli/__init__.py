"""
CLI layer for cloudretry.

Terminal transport only: argument parsing, coloured output and tables.
Schedules and settings come from :mod:`cloudretry.execution` and
:mod:`cloudretry.core.config`.

Entry point::

    cloudretry --help
"""

from cloudretry.cli.app import app

__all__ = ["app"]
