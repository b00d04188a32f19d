"""Pytest configuration and fixtures."""

import json
import logging
from pathlib import Path

import pytest

from iteration_tests.config import ReporterConfig


@pytest.fixture(autouse=True)
def cleanup_loggers():
    """Clean up iteration_tests loggers after each test to prevent name collisions."""
    yield

    loggers_to_remove = [
        name
        for name in logging.Logger.manager.loggerDict.keys()
        if name.startswith("iteration_tests")
    ]

    for name in loggers_to_remove:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        del logging.Logger.manager.loggerDict[name]


@pytest.fixture
def config(tmp_path) -> ReporterConfig:
    return ReporterConfig(base_dir=str(tmp_path))


def run_events(
    collection: str, iterations: list[tuple[str, list[tuple[str, str, bool]]]]
) -> list[dict]:
    """Build the raw runner events of a whole run.

    Each iteration is (id, [(request, assertion, passed), ...]).
    """
    events: list[dict] = [{"event": "start", "collection": collection}]
    for iteration_id, assertions in iterations:
        events.append({"event": "beforeIteration"})
        events.append({"event": "console", "messages": ["iterationId", iteration_id]})
        for request, assertion, passed in assertions:
            events.append(
                {
                    "event": "assertion",
                    "err": None,
                    "error": None if passed else {"message": "failed"},
                    "item": {"name": request},
                    "assertion": assertion,
                }
            )
        events.append({"event": "iteration"})
    events.append({"event": "done"})
    return events


@pytest.fixture
def quiz_events() -> list[dict]:
    return run_events(
        "Quiz",
        [
            ("idA", [("Login", "status 200", True), ("Login", "has token", False)]),
            ("idB", [("Login", "status 200", True), ("Login", "has token", True)]),
        ],
    )


def write_jsonl(path: Path, events: list[dict]) -> Path:
    path.write_text("".join(json.dumps(e) + "\n" for e in events))
    return path
