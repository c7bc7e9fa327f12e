"""Redis backend implementing IDelayStore.

Layout:
    {prefix}:delayed        sorted set, member = entry id, score = release_at (ms)
    {prefix}:entry:{id}     JSON payload of the delayed entry

A release is claimed with ZREM inside a transaction: only the caller whose
ZREM removed the member owns the entry, so concurrent releasers never hand
out the same entry twice.
"""

from __future__ import annotations

from typing import Callable, Optional

import redis
import structlog

from pollflow.core.exceptions import DelayStoreError
from pollflow.models.pipeline import DelayedEntry, epoch_millis
from pollflow.models.submission import Submission


class RedisDelayStore:
    """Durable IDelayStore backed by a Redis sorted set."""

    durable = True

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key_prefix: str = "pollflow",
                 clock: Callable[[], int] = epoch_millis) -> None:
        self._host = host
        self._port = port
        self._db = db
        self._prefix = key_prefix
        self._clock = clock
        self.logger = structlog.get_logger("pollflow.persistence.redis")
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    @property
    def _zkey(self) -> str:
        return f"{self._prefix}:delayed"

    def _entry_key(self, entry_id: str) -> str:
        return f"{self._prefix}:entry:{entry_id}"

    def schedule(
        self, submission: Submission, attempt: int, delay: int, *, journey_id: str
    ) -> DelayedEntry:
        entry = DelayedEntry(
            journey_id=journey_id,
            submission=submission,
            attempt=attempt,
            release_at=self._clock() + max(delay, 0),
        )
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.set(self._entry_key(entry.entry_id), entry.to_payload())
            pipe.zadd(self._zkey, {entry.entry_id: entry.release_at})
            pipe.execute()
        except Exception as exc:
            raise DelayStoreError(
                f"Redis schedule failed for submission={submission.submission_id!r}: {exc}"
            ) from exc
        return entry

    def release_due(self, now: Optional[int] = None, limit: int = 100) -> list[DelayedEntry]:
        """Claim and return due entries.

        Each claim runs ZREM, GET and DEL in one MULTI transaction; the
        transaction whose ZREM removed the member owns the payload. If a claim
        fails after others succeeded, the entries already claimed are returned
        and the rest of the batch stays in the store.
        """
        now = self._clock() if now is None else now
        try:
            due = self._client.zrangebyscore(
                self._zkey, "-inf", now, start=0, num=limit, withscores=True,
            )
        except Exception as exc:
            raise DelayStoreError(f"Redis release failed: {exc}") from exc

        released: list[DelayedEntry] = []
        for entry_id, score in due:
            try:
                pipe = self._client.pipeline(transaction=True)
                pipe.zrem(self._zkey, entry_id)
                pipe.get(self._entry_key(entry_id))
                pipe.delete(self._entry_key(entry_id))
                removed, raw, _ = pipe.execute()
            except Exception as exc:
                if not released:
                    raise DelayStoreError(f"Redis claim failed for {entry_id!r}: {exc}") from exc
                self.logger.warning(
                    "claim failed, returning partial batch",
                    entry_id=entry_id, claimed=len(released), error=str(exc),
                )
                break
            if removed != 1:
                continue  # claimed by another releaser
            released.append(
                DelayedEntry.from_payload(raw, entry_id=entry_id, release_at=int(score))
            )
        return released

    def next_release_at(self) -> Optional[int]:
        try:
            head = self._client.zrange(self._zkey, 0, 0, withscores=True)
        except Exception as exc:
            raise DelayStoreError(f"Redis ZRANGE failed: {exc}") from exc
        return int(head[0][1]) if head else None

    def pending(self) -> int:
        try:
            return int(self._client.zcard(self._zkey))
        except Exception as exc:
            raise DelayStoreError(f"Redis ZCARD failed: {exc}") from exc
