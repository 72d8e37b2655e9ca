"""SAQ queue configuration for background tasks."""

from saq import CronJob, Queue

from proactivation.config import settings

# Main task queue
queue = Queue.from_url(settings.redis_url)


def get_queue_settings() -> dict:
    """Get SAQ queue settings for the worker."""
    # Import here to avoid circular imports
    from proactivation.tasks.maintenance import store_keepalive

    return {
        "queue": queue,
        "functions": [store_keepalive],
        "cron_jobs": [CronJob(store_keepalive, cron="0 * * * *")],
        "concurrency": 1,
        "startup": startup,
        "shutdown": shutdown,
    }


async def startup(ctx: dict) -> None:
    """Open the key-value store once for all tasks in this worker."""
    from proactivation.services.store import get_store

    ctx["store"] = get_store()


async def shutdown(ctx: dict) -> None:
    """Close the key-value store."""
    store = ctx.pop("store", None)
    if store is not None:
        await store.close()
