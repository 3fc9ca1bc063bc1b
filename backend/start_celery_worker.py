#!/usr/bin/env python3
"""Start the Celery worker that applies deferred product view counts."""

import sys
import warnings

# Containers commonly run the worker as root
warnings.filterwarnings('ignore', category=UserWarning, message='.*superuser privileges.*')
warnings.filterwarnings('ignore', category=RuntimeWarning, message='.*superuser privileges.*')

from catalog.core.config import get_settings  # noqa: E402
from catalog.core.logging import configure_logging  # noqa: E402
from catalog.workers.celery_app import VIEWS_QUEUE, celery_app  # noqa: E402

if __name__ == '__main__':
    configure_logging(get_settings().log_level)
    celery_app.worker_main(
        argv=[
            'worker',
            '--loglevel=info',
            f'--queues={VIEWS_QUEUE}',
            '--pool=solo',
            '--without-mingle',
            '--without-gossip',
        ] + sys.argv[1:]
    )
