"""Job polling controller — drives one asynchronous generation request.

States:
  idle -> submitting -> polling -> completed | failed | timed_out | cancelled

Submission failure goes straight to ``failed``.  While polling, each cycle
sleeps for the backoff interval of the current attempt, then queries the job
service and classifies the response.  Transport errors are retried up to a
consecutive-error budget; "not found"-style errors are never retried.
Cancellation is cooperative: the flag is checked after every suspension point
and any response arriving after it is discarded.

Terminal outcomes live on the controller's ``PollState``; the controller
does not raise for job-level failures.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from src.macompare.config import PollingSettings, settings
from src.macompare.polling.schedule import (
    is_invalid_job_error,
    is_valid_job_id_format,
    loading_message,
    polling_interval,
    should_stop_polling,
    waiting_progress,
)

logger = logging.getLogger(__name__)

Phase = Literal[
    "idle", "submitting", "polling", "completed", "failed", "timed_out", "cancelled",
]

JobStatus = Literal["pending", "running", "completed", "failed", "cancelled"]

TERMINAL_PHASES: frozenset[str] = frozenset(
    {"completed", "failed", "timed_out", "cancelled"},
)

_STATUS_ALIASES: dict[str, JobStatus] = {
    "pending": "pending",
    "queued": "pending",
    "created": "pending",
    "running": "running",
    "processing": "running",
    "in_progress": "running",
    "completed": "completed",
    "complete": "completed",
    "succeeded": "completed",
    "success": "completed",
    "failed": "failed",
    "error": "failed",
    "cancelled": "cancelled",
    "canceled": "cancelled",
}

PARSE_FAILURE_MESSAGE = "Failed to parse AI response"
GENERIC_FAILURE_MESSAGE = "Plan generation failed"


class JobServiceError(Exception):
    """Transport or HTTP failure talking to the job service."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PollResponse(BaseModel):
    status: str
    result: Any = None
    message: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class JobService(Protocol):
    async def submit(self, parameters: dict[str, Any]) -> str: ...

    async def poll(self, job_id: str) -> PollResponse: ...


ResultParser = Callable[[Any, dict[str, Any]], Any]
Sleeper = Callable[[float], Awaitable[None]]


class PollState(BaseModel):
    phase: Phase = "idle"
    job_id: str | None = None
    status: JobStatus | None = None
    poll_count: int = 0
    consecutive_errors: int = 0
    logs: list[str] = Field(default_factory=list)
    result: Any = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def progress(self) -> float:
        if self.phase == "completed":
            return 100.0
        return waiting_progress(self.poll_count)


def normalize_status(raw: str | None) -> JobStatus | None:
    if not raw:
        return None
    return _STATUS_ALIASES.get(raw.strip().lower())


def _describe_error(exc: BaseException) -> str:
    if isinstance(exc, JobServiceError):
        return str(exc) or "Job service error"
    if isinstance(exc, asyncio.TimeoutError):
        return "Request timed out"
    return f"Unexpected {type(exc).__name__}"


class JobPollingController:
    """Owns the state of exactly one generation request."""

    def __init__(
        self,
        service: JobService,
        parser: ResultParser,
        *,
        config: PollingSettings | None = None,
        sleep: Sleeper = asyncio.sleep,
        on_update: Callable[[PollState], None] | None = None,
    ) -> None:
        self._service = service
        self._parser = parser
        self._config = config or settings.polling
        self._sleep = sleep
        self._on_update = on_update
        self._state = PollState()
        self._cancel_requested = False
        self._task: asyncio.Task[PollState] | None = None

    # -- observation --------------------------------------------------------

    @property
    def state(self) -> PollState:
        return self._state.model_copy(deep=True)

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    # -- control ------------------------------------------------------------

    def start(
        self, parameters: dict[str, Any], context: dict[str, Any] | None = None,
    ) -> asyncio.Task[PollState]:
        """Schedule ``run`` as a task on the running loop."""
        self._task = asyncio.ensure_future(self.run(parameters, context))
        return self._task

    def cancel(self) -> None:
        """Stop the request.  A no-op once the job reached a terminal phase."""
        if not self._mark_cancelled():
            return
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _mark_cancelled(self) -> bool:
        if self._state.is_terminal:
            return False
        self._cancel_requested = True
        self._finish("cancelled")
        self._log("Generation cancelled.")
        return True

    async def run(
        self, parameters: dict[str, Any], context: dict[str, Any] | None = None,
    ) -> PollState:
        if self._cancel_requested:
            return self.state
        if self._state.phase != "idle":
            raise RuntimeError("JobPollingController can only run once")
        try:
            await self._run(parameters, context or {})
        except asyncio.CancelledError:
            if not self._cancel_requested:
                # Cancelled from outside: record it, then let it propagate.
                self._mark_cancelled()
                raise
        return self.state

    # -- loop ---------------------------------------------------------------

    async def _run(self, parameters: dict[str, Any], context: dict[str, Any]) -> None:
        cfg = self._config
        self._transition("submitting")
        self._log("Starting generation...")

        try:
            job_id = await asyncio.wait_for(
                self._service.submit(parameters), timeout=cfg.submit_timeout,
            )
        except Exception as exc:
            if self._cancel_requested:
                return
            message = _describe_error(exc)
            logger.error("Job submission failed: %s", message)
            self._finish("failed", error=message)
            return

        if self._cancel_requested:
            return
        if not is_valid_job_id_format(job_id):
            logger.error("Job service returned an unusable job id: %r", job_id)
            self._finish("failed", error="Failed to create generation job")
            return

        self._state.job_id = job_id
        self._log(f"Job created (ID: {job_id[:8]}...)")
        self._log("Waiting for AI agent to process...")
        self._transition("polling")

        for attempt in range(1, cfg.max_polls + 1):
            await self._sleep(polling_interval(attempt, cfg))
            if self._cancel_requested:
                return

            try:
                response = await asyncio.wait_for(
                    self._service.poll(job_id), timeout=cfg.request_timeout,
                )
            except Exception as exc:
                if self._cancel_requested:
                    return
                self._state.poll_count = attempt
                if self._handle_transport_error(exc):
                    return
                continue

            if self._cancel_requested:
                logger.debug("Discarding poll response for %s after cancel", job_id)
                return

            self._state.poll_count = attempt
            self._state.consecutive_errors = 0
            if self._classify(response, context):
                return

        logger.warning("Job %s timed out after %d polls", job_id, cfg.max_polls)
        self._finish(
            "timed_out",
            error=f"Generation timed out after {cfg.max_polls} status checks. Please try again.",
        )

    def _handle_transport_error(self, exc: BaseException) -> bool:
        """Returns True when the error ended polling."""
        cfg = self._config
        message = _describe_error(exc)
        self._state.consecutive_errors += 1
        count = self._state.consecutive_errors

        # Classify on the raw text too; only ``message`` reaches the state.
        detail = f"{message} {exc}"
        if should_stop_polling(detail, count, cfg):
            if is_invalid_job_error(detail):
                logger.error("Job %s is not retrievable: %s", self._state.job_id, message)
                self._finish("failed", error=message)
            else:
                logger.error(
                    "Polling gave up after %d consecutive errors: %s", count, message,
                )
                self._finish(
                    "failed",
                    error=f"Polling failed after {count} consecutive errors: {message}",
                )
            return True

        logger.warning(
            "Transient poll error for %s (%d/%d): %s",
            self._state.job_id, count, cfg.max_consecutive_errors, message,
        )
        self._log(f"Connection issue, retrying ({count}/{cfg.max_consecutive_errors})...")
        return False

    def _classify(self, response: PollResponse, context: dict[str, Any]) -> bool:
        """Apply one poll response.  Returns True when it was terminal."""
        status = normalize_status(response.status)
        self._state.status = status
        if response.metadata:
            self._state.metadata = dict(response.metadata)

        if status == "completed":
            try:
                parsed = self._parser(response.result, {**context, **response.metadata})
            except Exception as exc:
                logger.error("Result parser raised %s", type(exc).__name__)
                parsed = None
            if parsed is None:
                logger.error(
                    "Unparseable result for job %s (result type: %s)",
                    self._state.job_id, type(response.result).__name__,
                )
                self._finish("failed", error=PARSE_FAILURE_MESSAGE)
                return True
            self._state.result = parsed
            self._finish("completed")
            self._log("Generation complete!")
            return True

        if status in ("failed", "cancelled"):
            self._finish("failed", error=response.error or GENERIC_FAILURE_MESSAGE)
            return True

        text = response.message or loading_message(self._state.poll_count)
        self._log(f"{text} (check {self._state.poll_count}/{self._config.max_polls})")
        return False

    # -- state helpers ------------------------------------------------------

    def _transition(self, phase: Phase) -> None:
        if self._state.is_terminal:
            return
        logger.info("Job %s: %s -> %s", self._state.job_id, self._state.phase, phase)
        self._state.phase = phase
        self._notify()

    def _finish(self, phase: Phase, error: str | None = None) -> None:
        if self._state.is_terminal:
            return
        if error is not None:
            self._state.error = error
            self._log(f"Error: {error}")
        self._transition(phase)

    def _log(self, line: str) -> None:
        self._state.logs.append(line)
        self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self.state)
