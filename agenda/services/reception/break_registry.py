# agenda/services/reception/break_registry.py
"""
Staff-set "on break" flags.

Breaks are session state for the front desk, not part of the appointment or
employee records. Each flag expires after a TTL unless cleared earlier.
"""
from functools import lru_cache
from typing import Dict, Protocol, Set, Tuple
from uuid import UUID
import logging
import time

from agenda.config.redis import RedisKeys, get_redis
from agenda.config.settings import get_settings

logger = logging.getLogger(__name__)


class BreakRegistry(Protocol):
    async def start_break(self, business_id: UUID, employee_id: UUID, ttl_seconds: int) -> None:
        ...

    async def end_break(self, business_id: UUID, employee_id: UUID) -> None:
        ...

    async def employees_on_break(self, business_id: UUID) -> Set[UUID]:
        ...


class RedisBreakRegistry:
    """Shared between API workers; the key TTL does the expiry."""

    async def start_break(self, business_id: UUID, employee_id: UUID, ttl_seconds: int) -> None:
        redis_client = await get_redis()
        key = RedisKeys.EMPLOYEE_BREAK.format(business_id=business_id, employee_id=employee_id)
        await redis_client.setex(key, ttl_seconds, "1")

    async def end_break(self, business_id: UUID, employee_id: UUID) -> None:
        redis_client = await get_redis()
        key = RedisKeys.EMPLOYEE_BREAK.format(business_id=business_id, employee_id=employee_id)
        await redis_client.delete(key)

    async def employees_on_break(self, business_id: UUID) -> Set[UUID]:
        redis_client = await get_redis()
        pattern = RedisKeys.EMPLOYEE_BREAK_SCAN.format(business_id=business_id)
        employee_ids = set()
        async for key in redis_client.scan_iter(match=pattern):
            # business:{business_id}:employee:{employee_id}:break
            employee_ids.add(UUID(key.split(":")[3]))
        return employee_ids


class InMemoryBreakRegistry:
    """Single-process registry; flags vanish on restart."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._expires_at: Dict[Tuple[UUID, UUID], float] = {}

    async def start_break(self, business_id: UUID, employee_id: UUID, ttl_seconds: int) -> None:
        self._expires_at[(business_id, employee_id)] = self._clock() + ttl_seconds

    async def end_break(self, business_id: UUID, employee_id: UUID) -> None:
        self._expires_at.pop((business_id, employee_id), None)

    async def employees_on_break(self, business_id: UUID) -> Set[UUID]:
        now = self._clock()
        for key in [key for key, expires in self._expires_at.items() if expires <= now]:
            del self._expires_at[key]
        return {employee_id for (biz_id, employee_id) in self._expires_at if biz_id == business_id}


@lru_cache()
def _build_registry(backend: str) -> BreakRegistry:
    if backend == "memory":
        logger.info("Using in-memory break registry")
        return InMemoryBreakRegistry()
    if backend != "redis":
        logger.warning(f"Unknown BREAK_BACKEND '{backend}', using redis")
    return RedisBreakRegistry()


def get_break_registry() -> BreakRegistry:
    """FastAPI dependency returning the configured registry"""
    return _build_registry(get_settings().BREAK_BACKEND)
