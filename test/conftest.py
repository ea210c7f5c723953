"""
Test Configuration

Environment variables must be set before application modules are imported,
because settings and the loguru sinks are configured at import time.
"""

import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)
    os.environ.setdefault('NOTIFICATION_QUEUE_BACKEND', 'memory')
    os.environ.setdefault('REDIS_DB', '15')


# Call immediately to set env vars before any imports
_early_setup_test_environment()
