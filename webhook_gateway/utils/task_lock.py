"""Per-task lease for payment reconciliation.

Two notifications for the same task arriving at nearly the same time can
both pass the "already SUCCESS" check before either write lands. When
enabled, the lease makes the second one back off (the caller answers with a
5xx so the provider redelivers later).

Backends:
- Redis: ``SET key token NX PX ttl``; released with a compare-and-delete
  script so an expired lease never deletes another holder's key.
- In-memory: a set of held task ids. Only serializes within one process.

If Redis is configured but unreachable, the lease falls back to in-memory.
"""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from webhook_gateway.config import TASK_LOCK_SETTINGS
from webhook_gateway.utils import get_logger

logger = get_logger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class TaskLeaseUnavailableError(Exception):
    """Another request currently holds the lease for this task."""

    def __init__(self, task_id: str):
        super().__init__(f"lease for task {task_id} is held by another request")
        self.task_id = task_id


class TaskLease:
    def __init__(
        self,
        enabled: Optional[bool] = None,
        use_redis: Optional[bool] = None,
        redis_client: Optional[aioredis.Redis] = None,
    ) -> None:
        self.enabled = bool(TASK_LOCK_SETTINGS["enabled"] if enabled is None else enabled)
        self._use_redis = bool(TASK_LOCK_SETTINGS["use_redis"] if use_redis is None else use_redis)
        self._ttl_ms = int(TASK_LOCK_SETTINGS["ttl_ms"])  # type: ignore[arg-type]
        self._prefix = str(TASK_LOCK_SETTINGS["key_prefix"])
        self._held: set[str] = set()
        self._redis: Optional[aioredis.Redis] = redis_client
        if self.enabled and self._use_redis and self._redis is None:
            timeout = float(TASK_LOCK_SETTINGS["socket_timeout_seconds"])  # type: ignore[arg-type]
            self._redis = aioredis.from_url(
                str(TASK_LOCK_SETTINGS["redis_url"]),
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )

    @property
    def backend(self) -> str:
        if not self.enabled:
            return "disabled"
        return "redis" if self._use_redis and self._redis is not None else "memory"

    async def _acquire_redis(self, client: aioredis.Redis, task_id: str) -> Optional[str]:
        """Returns the lease token, or None when Redis could not be reached."""
        token = uuid.uuid4().hex
        try:
            acquired = await client.set(self._prefix + task_id, token, nx=True, px=self._ttl_ms)
        except RedisError as e:
            logger.warning("Task lease redis unavailable, using in-memory lease", task_id=task_id, error=str(e))
            return None
        if not acquired:
            raise TaskLeaseUnavailableError(task_id)
        return token

    async def _release_redis(self, client: aioredis.Redis, task_id: str, token: str) -> None:
        try:
            await client.eval(_RELEASE_SCRIPT, 1, self._prefix + task_id, token)
        except RedisError as e:
            # The TTL reclaims the key.
            logger.warning("Task lease release failed", task_id=task_id, error=str(e))

    @asynccontextmanager
    async def hold(self, task_id: str) -> AsyncIterator[None]:
        """Hold the lease for ``task_id`` for the duration of the block.

        Raises:
            TaskLeaseUnavailableError: if the task is already leased.
        """
        if not self.enabled:
            yield
            return

        client = self._redis if self._use_redis else None
        token: Optional[str] = None
        if client is not None:
            token = await self._acquire_redis(client, task_id)

        if client is not None and token is not None:
            try:
                yield
            finally:
                await self._release_redis(client, task_id, token)
            return

        if task_id in self._held:
            raise TaskLeaseUnavailableError(task_id)
        self._held.add(task_id)
        try:
            yield
        finally:
            self._held.discard(task_id)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()


__all__ = ["TaskLease", "TaskLeaseUnavailableError"]
