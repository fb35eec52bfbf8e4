"""Unit tests for polling schedule helpers — intervals, progress, error classes."""

import pytest

from src.macompare.config import PollingSettings
from src.macompare.polling.schedule import (
    LOADING_MESSAGES,
    MAX_WAITING_PROGRESS,
    is_invalid_job_error,
    is_valid_job_id_format,
    loading_message,
    polling_interval,
    should_stop_polling,
    waiting_progress,
)


class TestPollingInterval:
    def test_steps(self):
        assert polling_interval(1) == 5.0
        assert polling_interval(10) == 5.0
        assert polling_interval(11) == 10.0
        assert polling_interval(20) == 10.0
        assert polling_interval(21) == 15.0
        assert polling_interval(30) == 15.0
        assert polling_interval(31) == 20.0
        assert polling_interval(500) == 20.0

    def test_non_decreasing(self):
        delays = [polling_interval(n) for n in range(1, 100)]
        assert delays == sorted(delays)

    def test_custom_schedule(self):
        cfg = PollingSettings(interval_steps=[(2, 0.5)], final_interval=1.0)
        assert [polling_interval(n, cfg) for n in (1, 2, 3)] == [0.5, 0.5, 1.0]


class TestWaitingProgress:
    def test_phases(self):
        assert waiting_progress(0) == 0.0
        assert waiting_progress(1) == 2.0
        assert waiting_progress(10) == 20.0
        assert waiting_progress(11) == 21.0
        assert waiting_progress(30) == 40.0
        assert waiting_progress(31) == 40.5
        assert waiting_progress(60) == 55.0
        assert waiting_progress(61) == pytest.approx(55.2)

    def test_capped(self):
        assert waiting_progress(10_000) == MAX_WAITING_PROGRESS

    def test_monotonic(self):
        values = [waiting_progress(n) for n in range(0, 300)]
        assert values == sorted(values)


class TestLoadingMessage:
    def test_stages(self):
        assert loading_message(0) == "Checking for existing plan..."
        assert loading_message(1) == "Initializing analysis..."
        assert loading_message(3) == "Gathering company information..."
        assert loading_message(30) == "Almost there..."
        assert loading_message(31) == LOADING_MESSAGES[-1]


class TestErrorClassification:
    def test_job_id_format(self):
        assert is_valid_job_id_format("job_1234-abcd")
        assert not is_valid_job_id_format("short")
        assert not is_valid_job_id_format("has space 123")
        assert not is_valid_job_id_format(None)

    def test_invalid_job_errors(self):
        assert is_invalid_job_error("Plan not found (404)")
        assert is_invalid_job_error("Conversation does not exist")
        assert is_invalid_job_error("Invalid job id")
        assert not is_invalid_job_error("AI service error (503)")
        assert not is_invalid_job_error("Request timed out")

    def test_should_stop(self):
        assert not should_stop_polling("AI service error (503)", 2)
        assert should_stop_polling("AI service error (503)", 3)
        assert should_stop_polling("Plan not found (404)", 1)
