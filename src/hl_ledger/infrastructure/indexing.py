"""Expense indexing publisher.

The similarity-search worker consumes index requests from a Redis list.
Publishing happens after commit, outside the household lock; the caller
logs and drops failures.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as aioredis

from config.settings import settings
from src.hl_common.redis_client import get_redis

logger = logging.getLogger(__name__)


class RedisExpenseIndexer:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        queue_key: str | None = None,
    ) -> None:
        self._redis_factory = redis_factory
        self._queue_key = queue_key or settings.INDEXING_QUEUE_KEY

    async def enqueue(
        self,
        expense_id: str,
        household_id: str,
        description: str,
        metadata: dict[str, Any],
    ) -> None:
        payload = json.dumps(
            {
                "expense_id": expense_id,
                "household_id": household_id,
                "description": description,
                "metadata": metadata,
            },
            sort_keys=True,
        )
        redis = await self._redis_factory()
        await redis.rpush(self._queue_key, payload)
        logger.debug("Queued expense %s for indexing on %s", expense_id, self._queue_key)


class NullExpenseIndexer:
    """Used when INDEXING_ENABLED is off."""

    async def enqueue(
        self,
        expense_id: str,
        household_id: str,
        description: str,
        metadata: dict[str, Any],
    ) -> None:
        return None


def build_indexer() -> RedisExpenseIndexer | NullExpenseIndexer:
    if settings.INDEXING_ENABLED:
        return RedisExpenseIndexer()
    return NullExpenseIndexer()
