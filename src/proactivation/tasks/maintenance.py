"""Maintenance background tasks for the key-value store."""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from proactivation.models.token import now_ms
from proactivation.services.store import KeyValueStore, get_store

logger = logging.getLogger(__name__)

# Timeout for maintenance tasks (1 minute)
MAINTENANCE_TIMEOUT_SECONDS = 60

KEEPALIVE_PREFIX = "keepalive:"
KEEPALIVE_TTL_SECONDS = 3600
KEEPALIVE_RETAIN = 10


async def store_keepalive(
    ctx: dict[str, Any],
    retain: int = KEEPALIVE_RETAIN,
) -> dict[str, Any]:
    """Write and read back a marker so idle hosted stores stay active.

    Also prunes old markers, keeping the ``retain`` most recent.

    Args:
        ctx: SAQ context; uses ctx["store"] when the worker opened one
        retain: Number of keepalive markers to keep

    Returns:
        Dict with keepalive results
    """
    store: KeyValueStore | None = ctx.get("store")
    owns_store = store is None
    if store is None:
        store = get_store()

    timestamp = datetime.now(UTC).isoformat()
    key = f"{KEEPALIVE_PREFIX}{now_ms()}"

    try:
        await store.set(
            key,
            json.dumps({"timestamp": timestamp, "purpose": "keepalive"}),
            ttl_seconds=KEEPALIVE_TTL_SECONDS,
        )
        if await store.get(key) is None:
            raise RuntimeError(f"Keepalive marker {key} could not be read back")

        # Keys embed a millisecond timestamp, so numeric order is age order
        all_keys = await store.keys(f"{KEEPALIVE_PREFIX}*")
        ordered = sorted(all_keys, key=_marker_time)
        stale = ordered[:-retain] if retain > 0 else ordered
        if stale:
            await store.delete(*stale)

        logger.info(f"Store keepalive successful at {timestamp}, pruned {len(stale)} markers")
        return {
            "success": True,
            "timestamp": timestamp,
            "keysProcessed": len(all_keys),
            "keysDeleted": len(stale),
        }

    except Exception as e:
        logger.exception(f"Store keepalive failed: {e}")
        return {"success": False, "timestamp": timestamp, "error": str(e)}

    finally:
        if owns_store:
            await store.close()


def _marker_time(key: str) -> int:
    try:
        return int(key.removeprefix(KEEPALIVE_PREFIX))
    except ValueError:
        return 0


# Set SAQ job timeout
store_keepalive.timeout = MAINTENANCE_TIMEOUT_SECONDS  # type: ignore[attr-defined]
