"""
Queues that hand itinerary job ids from the API to the worker.

The database stays the source of truth for job state. A job id that never
reaches the queue is still picked up by the worker's database sweep, so a
queue outage delays jobs without losing them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)

HEALTH_CHECK_SECONDS = 30


class JobQueue(Protocol):
    def enqueue(self, job_id: str) -> bool:
        """Returns False when the id could not be queued."""
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        ...


@dataclass
class InMemoryJobQueue:
    """FIFO list for tests and local runs."""

    items: list[str] = field(default_factory=list)

    def enqueue(self, job_id: str) -> bool:
        self.items.append(job_id)
        return True

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        return self.items.pop(0) if self.items else None

    def reset(self) -> None:
        self.items.clear()


@dataclass
class RedisJobQueue:
    """Redis list: the API pushes on the right, workers pop from the left."""

    url: str
    queue_key: str = "remvana:itinerary-jobs"

    def __post_init__(self):
        self.client = self._connect()

    def _connect(self) -> redis.Redis:
        return redis.Redis.from_url(
            self.url,
            decode_responses=True,
            health_check_interval=HEALTH_CHECK_SECONDS,
        )

    def enqueue(self, job_id: str) -> bool:
        try:
            self.client.rpush(self.queue_key, job_id)
        except redis_exceptions.ConnectionError as e:
            logger.warning("Could not queue job %s, worker sweep will claim it: %s", job_id, e)
            self.client = self._connect()
            return False
        return True

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        try:
            if not block:
                return self.client.lpop(self.queue_key)
            popped = self.client.blpop([self.queue_key], timeout=timeout or 0)
        except redis_exceptions.ConnectionError:
            # Idle connections get dropped by managed Redis.
            logger.warning("Redis connection lost, reconnecting")
            self.client = self._connect()
            return None
        return popped[1] if popped else None
