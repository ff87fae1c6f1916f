"""Task poller for asynchronous image generation.

Processing flow:
    1. Derive the attempt budget: `timeout_minutes * POLL_ATTEMPTS_PER_MINUTE`.
    2. Read the task status.
    3. SUCCEED -> return a `PollResult`; FAILED -> raise immediately.
    4. PENDING/RUNNING -> sleep the current interval, count the attempt and
       grow the interval (x1.3, capped at 15s).
    5. Budget exhausted -> raise a poll-timeout error naming the task id.

Budget semantics:
    The stopping condition is the attempt count, not wall-clock time. Because
    the interval grows past the 5s cadence the budget assumes, the real wait
    before giving up exceeds `timeout_minutes`.

State ownership:
    Attempt counter and `BackoffState` are local to one `poll` call. Pollers for
    different tasks share nothing.

Error handling strategy:
    - Remote FAILED -> `TASK_FAILED` with the service-supplied message.
    - Budget exhausted -> `POLL_TIMEOUT` (the task may still run remotely).
    - Status-read failures propagate unchanged; nothing is retried here.
"""

import logging
import math
import time
from dataclasses import dataclass, replace

from modelscope_node.client.config import (
    ERROR_MESSAGES,
    POLL_ATTEMPTS_PER_MINUTE,
    POLL_DEFAULT_INTERVAL_MS,
    POLL_INTERVAL_MULTIPLIER,
    POLL_MAX_INTERVAL_MS,
)
from modelscope_node.client.errors import ErrorKind, ModelScopeError
from modelscope_node.client.types import TaskState, TaskStatus

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class BackoffState:
    """Current poll interval; `advance` returns the next state."""

    interval_ms: int = POLL_DEFAULT_INTERVAL_MS
    max_interval_ms: int = POLL_MAX_INTERVAL_MS
    multiplier: float = POLL_INTERVAL_MULTIPLIER

    def advance(self) -> "BackoffState":
        grown = round_half_up(self.interval_ms * self.multiplier)
        return replace(self, interval_ms=min(self.max_interval_ms, grown))


@dataclass(frozen=True)
class PollAttempt:
    """Telemetry for one status read."""

    index: int
    interval_ms: int
    elapsed_seconds: float


@dataclass
class PollResult:
    """Terminal success observation plus loop statistics."""

    status: TaskStatus
    attempts: int
    elapsed_seconds: float
    history: list[PollAttempt]

    @property
    def attempts_used(self) -> int:
        return self.attempts + 1


def max_attempts_for(timeout_minutes) -> int:
    return int(timeout_minutes * POLL_ATTEMPTS_PER_MINUTE)


class TaskPoller:
    """Drive one submitted task to a terminal state.

    Args:
        client: Object exposing `get_task_status(task_id) -> TaskStatus`.
        timeout_minutes: Caller budget, converted to an attempt count.
        sleep: Blocking sleep taking seconds.
        clock: Monotonic clock returning seconds.
        started_at: Clock value the elapsed time is measured from; defaults to
            the first `poll` call.
    """

    def __init__(self, client, timeout_minutes, sleep=time.sleep, clock=time.monotonic, started_at=None):
        self.client = client
        self.timeout_minutes = timeout_minutes
        self.max_attempts = max_attempts_for(timeout_minutes)
        self.sleep = sleep
        self.clock = clock
        self.started_at = started_at

    def poll(self, task_id) -> PollResult:
        started_at = self.clock() if self.started_at is None else self.started_at
        backoff = BackoffState()
        history = []
        attempts = 0
        interval_before = 0

        while attempts < self.max_attempts:
            status = self.client.get_task_status(task_id)

            elapsed = self.clock() - started_at
            history.append(PollAttempt(attempts, interval_before, elapsed))
            progress = round(attempts / self.max_attempts * 100)

            logger.info(
                "Image generation progress: %s%% - status: %s (attempt %s/%s, elapsed: %ss)",
                progress, status.task_status, attempts + 1, self.max_attempts, round(elapsed),
            )

            state = status.state

            if state is TaskState.SUCCEED:
                return PollResult(status, attempts, elapsed, history)

            if state is TaskState.FAILED:
                raise ModelScopeError(
                    f"Image generation failed: {status.error_message or ERROR_MESSAGES['INTERNAL_ERROR']}",
                    kind=ErrorKind.TASK_FAILED,
                )

            if state is TaskState.RUNNING:
                logger.info("Task running... progress: %s%%, elapsed: %ss", progress, round(elapsed))
            elif state is TaskState.PENDING:
                logger.info("Task queued... progress: %s%%, elapsed: %ss", progress, round(elapsed))
            else:
                logger.warning("Unknown task status %r for task %s", status.task_status, task_id)

            self.sleep(backoff.interval_ms / 1000)
            attempts += 1
            interval_before = backoff.interval_ms
            backoff = backoff.advance()

        elapsed = round(self.clock() - started_at)
        raise ModelScopeError(
            f"{ERROR_MESSAGES['TASK_TIMEOUT']} ({self.timeout_minutes} minutes, "
            f"task ID: {task_id}, elapsed: {elapsed}s)",
            kind=ErrorKind.POLL_TIMEOUT,
        )
