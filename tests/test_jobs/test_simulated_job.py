"""Tests for the SimulatedBuildJob handler and the handler registry."""

import pytest

from jobs.registry import get_job_handler
from jobs.simulated import SimulatedBuildJob
from models.enums import JobKind


def test_build_completes_with_result():
    beats = []
    result = SimulatedBuildJob(JobKind.URL).run(
        {"duration": 0.01, "app_name": "Shop"}, lambda: beats.append(1)
    )

    assert result["kind"] == "url"
    assert result["artifact"] == "Shop.apk"
    assert beats == [1]


def test_heartbeat_once_per_step():
    beats = []
    SimulatedBuildJob(JobKind.ZIP).run({"duration": 0.03, "steps": 3}, lambda: beats.append(1))
    assert len(beats) == 3


def test_guaranteed_failure():
    """fail_probability=1.0 should always raise, before any heartbeat."""
    beats = []
    with pytest.raises(RuntimeError, match="Simulated build failure"):
        SimulatedBuildJob(JobKind.URL).run(
            {"duration": 0.01, "fail_probability": 1.0}, lambda: beats.append(1)
        )
    assert beats == []


def test_registry_has_handler_for_every_kind():
    assert get_job_handler(JobKind.URL).kind == JobKind.URL
    assert get_job_handler("zip").kind == JobKind.ZIP


def test_registry_rejects_unknown_kind():
    with pytest.raises(ValueError, match="Unknown job kind"):
        get_job_handler("apk-from-thin-air")
