"""Pluggable delay store backends behind the IDelayStore Protocol."""

from __future__ import annotations

from pollflow.core.config import AppSettings
from pollflow.core.protocols import IDelayStore
from pollflow.persistence.dynamodb_backend import DynamoDBDelayStore
from pollflow.persistence.memory_backend import MemoryDelayStore
from pollflow.persistence.redis_backend import RedisDelayStore


def create_delay_store(settings: AppSettings | None = None) -> IDelayStore:
    """Create the delay store selected by ``settings.delay_store.backend``."""
    if settings is None:
        settings = AppSettings()

    backend = settings.delay_store.backend
    if backend == "redis":
        return RedisDelayStore(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
            key_prefix=settings.redis.key_prefix,
        )
    if backend == "dynamodb":
        return DynamoDBDelayStore(
            table_name=settings.dynamodb.table_name,
            table_suffix=settings.dynamodb.table_suffix,
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
        )
    return MemoryDelayStore()
