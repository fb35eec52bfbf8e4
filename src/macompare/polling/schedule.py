"""Pure scheduling helpers for job polling.

Backoff interval, cosmetic progress estimate, staged loading messages and
error classification are all plain functions of the attempt / poll count,
so the polling loop can be tested without wall-clock waits.
"""

from __future__ import annotations

import re

from src.macompare.config import PollingSettings, settings

MAX_WAITING_PROGRESS = 85.0

LOADING_MESSAGES: list[str] = [
    "Checking for existing plan...",
    "Initializing analysis...",
    "Gathering company information...",
    "Analyzing your website...",
    "Identifying marketing opportunities...",
    "Building your customized plan...",
    "Crafting program recommendations...",
    "Finalizing your marketing strategy...",
    "Almost there...",
    "This is taking longer than usual...",
]

# (last poll count covered, message index)
_MESSAGE_STAGES: list[tuple[int, int]] = [
    (0, 0), (1, 1), (4, 2), (7, 3), (10, 4), (14, 5), (18, 6), (22, 7), (30, 8),
]

_PERMANENT_ERROR_PATTERNS = [
    "404",
    "not found",
    "invalid conversation",
    "invalid job",
    "does not exist",
]

_JOB_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{8,}$")


def polling_interval(attempt: int, config: PollingSettings | None = None) -> float:
    """Delay in seconds before the given 1-based attempt.

    Non-decreasing step function; never resets within one job.
    """
    cfg = config or settings.polling
    for last_attempt, delay in cfg.interval_steps:
        if attempt <= last_attempt:
            return delay
    return cfg.final_interval


def waiting_progress(poll_count: int) -> float:
    """Cosmetic completion estimate in percent, capped below 100.

    +2 per poll for polls 1-10, +1 for 11-30, +0.5 for 31-60, +0.2 beyond.
    """
    if poll_count <= 0:
        return 0.0
    progress = min(poll_count, 10) * 2.0
    if poll_count > 10:
        progress += min(poll_count - 10, 20) * 1.0
    if poll_count > 30:
        progress += min(poll_count - 30, 30) * 0.5
    if poll_count > 60:
        progress += (poll_count - 60) * 0.2
    return min(progress, MAX_WAITING_PROGRESS)


def loading_message(poll_count: int) -> str:
    for last_count, idx in _MESSAGE_STAGES:
        if poll_count <= last_count:
            return LOADING_MESSAGES[idx]
    return LOADING_MESSAGES[-1]


def is_valid_job_id_format(job_id: str | None) -> bool:
    return bool(job_id) and _JOB_ID_RE.match(job_id) is not None


def is_invalid_job_error(message: str) -> bool:
    """True for errors that will never succeed on retry (unknown job)."""
    lowered = message.lower()
    return any(p in lowered for p in _PERMANENT_ERROR_PATTERNS)


def should_stop_polling(
    message: str,
    consecutive_errors: int,
    config: PollingSettings | None = None,
) -> bool:
    cfg = config or settings.polling
    if is_invalid_job_error(message):
        return True
    return consecutive_errors >= cfg.max_consecutive_errors
