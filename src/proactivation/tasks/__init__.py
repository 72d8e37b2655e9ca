"""Background task processing."""

from proactivation.tasks.maintenance import store_keepalive
from proactivation.tasks.queue import get_queue_settings, queue

__all__ = ["get_queue_settings", "queue", "store_keepalive"]
