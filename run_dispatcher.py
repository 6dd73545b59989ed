#!/usr/bin/env python
"""Script to run the notification dispatcher loop in-process."""

import os
import sys

from django.core.management import execute_from_command_line


def main():
    """Start the recurring dispatch loop.

    Extra command-line arguments are forwarded to the ``run_dispatcher``
    management command (for example ``--once`` or ``--interval 30``).
    """
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "notification_scheduler.settings")
    execute_from_command_line([sys.argv[0], "run_dispatcher", *sys.argv[1:]])


if __name__ == "__main__":
    main()
