"""PipelineRouter — the poll/delay/timeout state machine.

    SUBMITTED -> POLLING -> READY                       (terminal)
                        -> NOT_READY_PENDING_DELAY -> POLLING   (attempt <= max)
                                                   -> TIMED_OUT (attempt > max, terminal)

The attempt counter travels with the delayed entry as typed state. It is
incremented exactly once per release, before the ceiling check.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Optional

import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from pollflow.core.exceptions import (
    DelayStoreError,
    DelayStoreUnavailableError,
    InvariantViolationError,
)
from pollflow.core.protocols import (
    IDelayStore,
    IReadinessChecker,
    ITerminalHandler,
    ITransitionListener,
)
from pollflow.models.pipeline import DelayedEntry, JourneyState, Transition, new_id
from pollflow.models.submission import Submission
from pollflow.readiness.guard import GuardedReadinessChecker

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_TOMBSTONE_LIMIT = 10_000


def _validated_attempt(entry: DelayedEntry) -> int:
    attempt = entry.attempt
    if not isinstance(attempt, int) or isinstance(attempt, bool) or attempt < 0:
        raise InvariantViolationError(entry.entry_id, attempt)
    return attempt


class PipelineRouter:
    """Sequences Submit -> Poll -> (Ready | Delay -> Poll ... -> Timeout).

    Usage::

        router = PipelineRouter(
            checker=RandomReadinessChecker(),
            store=MemoryDelayStore(),
            ready_handler=LoggingReadyHandler(),
            timeout_handler=LoggingTimeoutHandler(),
        )
        journey_id = router.submit(Submission(submission_id="A", delay=100))
        # ... later, for every entry the delay store releases:
        router.on_release(entry)
    """

    def __init__(
        self,
        *,
        checker: IReadinessChecker,
        store: IDelayStore,
        ready_handler: ITerminalHandler,
        timeout_handler: ITerminalHandler,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        listener: Optional[ITransitionListener] = None,
        schedule_retries: int = 5,
        backoff_initial: float = 0.1,
        backoff_max: float = 5.0,
        tombstone_limit: int = DEFAULT_TOMBSTONE_LIMIT,
    ) -> None:
        if max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {max_attempts}")
        if not isinstance(checker, GuardedReadinessChecker):
            checker = GuardedReadinessChecker(checker)
        self._checker = checker
        self._store = store
        self._ready_handler = ready_handler
        self._timeout_handler = timeout_handler
        self._listener = listener
        self.max_attempts = max_attempts
        self._schedule_retries = max(1, schedule_retries)
        self._backoff_initial = backoff_initial
        self._backoff_max = backoff_max

        # Highest attempt counter seen per live journey; makes duplicate
        # releases advance the counter instead of replaying it.
        self._last_seen: dict[str, int] = {}
        # Terminal state of recently finished journeys, oldest first. Late
        # duplicates of an already released entry are dropped against it.
        self._finished: OrderedDict[str, JourneyState] = OrderedDict()
        self._tombstone_limit = max(1, tombstone_limit)
        self._lock = threading.Lock()
        self.logger = structlog.get_logger("pollflow.router")

    @property
    def store(self) -> IDelayStore:
        return self._store

    def live_journeys(self) -> int:
        with self._lock:
            return len(self._last_seen)

    def finished_state(self, journey_id: str) -> Optional[JourneyState]:
        """Terminal state of a recently finished journey, or None."""
        with self._lock:
            return self._finished.get(journey_id)

    # ── Entry points ──────────────────────────────

    def submit(self, submission: Submission) -> str:
        """Start a new journey for ``submission`` and poll it once.

        Returns the journey id. Raises DelayStoreUnavailableError when the
        first not-ready result cannot be scheduled.
        """
        submission = submission.reset_status()
        journey_id = new_id()
        self._transition(journey_id, submission, JourneyState.SUBMITTED, JourneyState.POLLING, 0)
        self._poll(journey_id, submission, 0)
        return journey_id

    def on_release(self, entry: DelayedEntry) -> JourneyState:
        """Decide what happens to an entry the delay store released.

        Returns the state the journey is left in by this call.
        """
        log = self.logger.bind(
            journey_id=entry.journey_id,
            submission_id=entry.submission.submission_id,
            entry_id=entry.entry_id,
        )
        finished = self.finished_state(entry.journey_id)
        if finished is not None:
            log.warning("release for finished journey ignored", state=str(finished))
            return finished

        try:
            stored_attempt = _validated_attempt(entry)
        except InvariantViolationError as exc:
            log.critical("attempt counter invariant violated, routing to timeout", error=str(exc))
            self._finish(
                entry.journey_id, entry.submission,
                JourneyState.NOT_READY_PENDING_DELAY, JourneyState.TIMED_OUT, None,
            )
            return JourneyState.TIMED_OUT

        with self._lock:
            floor = max(stored_attempt, self._last_seen.get(entry.journey_id, stored_attempt))
            attempt = floor + 1
            self._last_seen[entry.journey_id] = attempt

        if attempt > self.max_attempts:
            log.info("attempt ceiling exceeded", attempt=attempt, max_attempts=self.max_attempts)
            self._finish(
                entry.journey_id, entry.submission,
                JourneyState.NOT_READY_PENDING_DELAY, JourneyState.TIMED_OUT, attempt,
            )
            return JourneyState.TIMED_OUT

        self._transition(
            entry.journey_id, entry.submission,
            JourneyState.NOT_READY_PENDING_DELAY, JourneyState.POLLING, attempt,
        )
        return self._poll(entry.journey_id, entry.submission, attempt)

    # ── Internals ─────────────────────────────────

    def _poll(self, journey_id: str, submission: Submission, attempt: int) -> JourneyState:
        checked = self._checker.check(submission)
        self.logger.debug(
            "polled submission",
            journey_id=journey_id,
            submission_id=checked.submission_id,
            attempt=attempt,
            status=str(checked.status),
        )

        if checked.is_ready:
            self._finish(journey_id, checked, JourneyState.POLLING, JourneyState.READY, attempt)
            return JourneyState.READY

        self._transition(
            journey_id, checked, JourneyState.POLLING, JourneyState.NOT_READY_PENDING_DELAY, attempt,
        )
        with self._lock:
            self._last_seen[journey_id] = max(attempt, self._last_seen.get(journey_id, attempt))
        self._schedule(journey_id, checked, attempt)
        return JourneyState.NOT_READY_PENDING_DELAY

    def _schedule(self, journey_id: str, submission: Submission, attempt: int) -> DelayedEntry:
        log = self.logger.bind(
            journey_id=journey_id, submission_id=submission.submission_id, attempt=attempt,
        )

        def _before_sleep(state) -> None:
            log.warning(
                "delay store schedule failed, retrying",
                try_number=state.attempt_number,
                error=str(state.outcome.exception()),
            )

        retrying = Retrying(
            reraise=True,
            stop=stop_after_attempt(self._schedule_retries),
            wait=wait_exponential(multiplier=self._backoff_initial, max=self._backoff_max),
            retry=retry_if_exception_type(DelayStoreError),
            before_sleep=_before_sleep,
        )
        try:
            entry = retrying(
                self._store.schedule, submission, attempt, submission.delay, journey_id=journey_id,
            )
        except DelayStoreError as exc:
            log.error("delay store unavailable, journey cannot continue", error=str(exc))
            self._forget(journey_id)
            raise DelayStoreUnavailableError(
                submission.submission_id, journey_id, self._schedule_retries,
            ) from exc

        log.debug("scheduled delayed entry", entry_id=entry.entry_id, release_at=entry.release_at)
        return entry

    def _finish(
        self,
        journey_id: str,
        submission: Submission,
        source: JourneyState,
        target: JourneyState,
        attempt: Optional[int],
    ) -> None:
        # The transition is committed before the handler runs.
        self._transition(journey_id, submission, source, target, attempt)
        self._forget(journey_id)
        with self._lock:
            self._finished[journey_id] = target
            while len(self._finished) > self._tombstone_limit:
                self._finished.popitem(last=False)
        handler = self._ready_handler if target == JourneyState.READY else self._timeout_handler
        try:
            handler.handle(submission, journey_id, attempt)
        except Exception:
            self.logger.exception(
                "terminal handler failed",
                journey_id=journey_id,
                submission_id=submission.submission_id,
                state=str(target),
            )

    def _forget(self, journey_id: str) -> None:
        with self._lock:
            self._last_seen.pop(journey_id, None)

    def _transition(
        self,
        journey_id: str,
        submission: Submission,
        source: JourneyState,
        target: JourneyState,
        attempt: Optional[int],
    ) -> None:
        transition = Transition(
            journey_id=journey_id,
            submission_id=submission.submission_id,
            source=source,
            target=target,
            attempt=attempt,
        )
        self.logger.debug(
            "journey transition",
            journey_id=journey_id,
            submission_id=submission.submission_id,
            source=str(source),
            target=str(target),
            attempt=attempt,
        )
        if self._listener is None:
            return
        try:
            self._listener.on_transition(transition)
        except Exception:
            self.logger.exception(
                "transition listener failed",
                journey_id=journey_id,
                submission_id=submission.submission_id,
                target=str(target),
            )
