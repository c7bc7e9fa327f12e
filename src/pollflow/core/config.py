"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic_settings import BaseSettings


class PipelineConfig(BaseSettings):
    """Poll/delay loop configuration."""

    model_config = {"env_prefix": "POLLFLOW_PIPELINE_"}

    max_attempts: int = 10
    poll_interval: float = 0.5  # seconds between delay-store sweeps when idle
    batch_size: int = 100
    schedule_retries: int = 5
    backoff_initial: float = 0.1
    backoff_max: float = 5.0
    tombstone_limit: int = 10_000  # finished journeys remembered to drop late duplicates


class ReadinessConfig(BaseSettings):
    """Readiness checker selection."""

    model_config = {"env_prefix": "POLLFLOW_READINESS_"}

    checker: Literal["random", "always", "never", "http"] = "random"
    probability: float = 1 / 6
    seed: Optional[int] = None
    http_base_url: str = "http://localhost:8080"
    http_timeout: float = 5.0


class DelayStoreConfig(BaseSettings):
    """Delay store backend selection."""

    model_config = {"env_prefix": "POLLFLOW_DELAY_STORE_"}

    backend: Literal["memory", "redis", "dynamodb"] = "memory"


class RedisConfig(BaseSettings):
    """Redis delay store configuration."""

    model_config = {"env_prefix": "POLLFLOW_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = "pollflow"


class DynamoDBConfig(BaseSettings):
    """DynamoDB delay store configuration."""

    model_config = {"env_prefix": "POLLFLOW_DYNAMO_"}

    table_name: str = "pollflow-delayed-entries"
    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "POLLFLOW_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    pipeline: PipelineConfig = PipelineConfig()
    readiness: ReadinessConfig = ReadinessConfig()
    delay_store: DelayStoreConfig = DelayStoreConfig()
    redis: RedisConfig = RedisConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
