"""Wire the pipeline together from application settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pollflow.core.config import AppSettings, ReadinessConfig
from pollflow.core.protocols import (
    IDelayStore,
    IReadinessChecker,
    ITerminalHandler,
    ITransitionListener,
)
from pollflow.orchestration.handlers import LoggingReadyHandler, LoggingTimeoutHandler
from pollflow.orchestration.poller import DelayPoller
from pollflow.orchestration.router import PipelineRouter
from pollflow.persistence import create_delay_store
from pollflow.readiness.http_checker import HttpReadinessChecker
from pollflow.readiness.random_checker import RandomReadinessChecker
from pollflow.readiness.static import StaticReadinessChecker


@dataclass
class Pipeline:
    store: IDelayStore
    router: PipelineRouter
    poller: DelayPoller


def create_checker(config: ReadinessConfig | None = None) -> IReadinessChecker:
    """Create the readiness checker selected by ``config.checker``."""
    if config is None:
        config = ReadinessConfig()
    if config.checker == "always":
        return StaticReadinessChecker(ready=True)
    if config.checker == "never":
        return StaticReadinessChecker(ready=False)
    if config.checker == "http":
        return HttpReadinessChecker(config.http_base_url, timeout=config.http_timeout)
    return RandomReadinessChecker(probability=config.probability, seed=config.seed)


def build_pipeline(
    settings: AppSettings | None = None,
    *,
    store: Optional[IDelayStore] = None,
    checker: Optional[IReadinessChecker] = None,
    ready_handler: Optional[ITerminalHandler] = None,
    timeout_handler: Optional[ITerminalHandler] = None,
    listener: Optional[ITransitionListener] = None,
) -> Pipeline:
    """Build store, router and poller. Explicit arguments override settings."""
    if settings is None:
        settings = AppSettings()
    store = store if store is not None else create_delay_store(settings)
    cfg = settings.pipeline

    router = PipelineRouter(
        checker=checker if checker is not None else create_checker(settings.readiness),
        store=store,
        ready_handler=ready_handler or LoggingReadyHandler(),
        timeout_handler=timeout_handler or LoggingTimeoutHandler(),
        max_attempts=cfg.max_attempts,
        listener=listener,
        schedule_retries=cfg.schedule_retries,
        backoff_initial=cfg.backoff_initial,
        backoff_max=cfg.backoff_max,
        tombstone_limit=cfg.tombstone_limit,
    )
    poller = DelayPoller(
        store, router, poll_interval=cfg.poll_interval, batch_size=cfg.batch_size,
    )
    return Pipeline(store=store, router=router, poller=poller)
