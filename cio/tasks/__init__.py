"""
Background tasks for cio.
"""

# Ensure Celery registers task modules on worker startup.
from cio.tasks import sync  # noqa: F401
