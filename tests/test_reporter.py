from __future__ import annotations

import json

import pytest

from iteration_tests.errors import (
    ColumnCountMismatchError,
    DuplicateIterationIdError,
    MissingIterationIdError,
    ReporterStateError,
)
from iteration_tests.events import ConsoleMessage, parse_event
from iteration_tests.reporter import IterationReporter
from tests.conftest import run_events


def _run(reporter: IterationReporter, raw_events: list[dict]):
    return reporter.run(parse_event(e) for e in raw_events)


def test_quiz_run_produces_both_reports(config, quiz_events):
    paths = _run(IterationReporter(config), quiz_events)

    assert paths is not None
    assert paths.json_report == config.json_report_path("Quiz")
    assert paths.tsv_report == config.tsv_report_path("Quiz")
    assert json.loads(paths.json_report.read_text()) == {
        "collection": "Quiz",
        "iterations": [
            {
                "id": "idA",
                "assertions": [
                    {"result": 1, "request": "Login", "assertion": "status 200"},
                    {"result": 0, "request": "Login", "assertion": "has token"},
                ],
            },
            {
                "id": "idB",
                "assertions": [
                    {"result": 1, "request": "Login", "assertion": "status 200"},
                    {"result": 1, "request": "Login", "assertion": "has token"},
                ],
            },
        ],
    }
    assert paths.tsv_report.read_text() == (
        "Report for collection\tQuiz\n"
        "Requests\tLogin\t\t\n"
        "Groups / assertions\tstatus 200\thas token\t\n"
        "idA\t1\t0\t\n"
        "idB\t1\t1\t\n"
    )


@pytest.mark.parametrize("n_iterations, n_assertions", [(0, 3), (1, 1), (4, 3)])
def test_every_iteration_recorded_with_all_assertions(
    config, n_iterations, n_assertions
):
    iterations = [
        (f"row-{i}", [("Req", f"check {j}", (i + j) % 2 == 0) for j in range(n_assertions)])
        for i in range(n_iterations)
    ]
    paths = _run(IterationReporter(config), run_events("Suite", iterations))

    data = json.loads(paths.json_report.read_text())
    assert len(data["iterations"]) == n_iterations
    for i, record in enumerate(data["iterations"]):
        assert record["id"] == f"row-{i}"
        assert [a["assertion"] for a in record["assertions"]] == [
            f"check {j}" for j in range(n_assertions)
        ]
    assert len(paths.tsv_report.read_text().splitlines()) == (
        1 if n_iterations == 0 else 3 + n_iterations
    )


def test_buffer_reset_between_iterations(config):
    reporter = IterationReporter(config)
    reporter.on_start("Quiz")
    reporter.on_before_iteration()
    reporter.on_console(ConsoleMessage(messages=["iterationId", "idA"]))
    reporter.on_assertion("Login", "status 200", failed=False)
    reporter.on_iteration()
    reporter.on_before_iteration()
    assert len(reporter.accumulator) == 0


def test_json_report_grows_during_run(config):
    reporter = IterationReporter(config)
    reporter.on_start("Quiz")
    path = config.json_report_path("Quiz")
    reporter.on_before_iteration()
    reporter.on_console(ConsoleMessage(messages=["iterationId", "idA"]))
    assert '"id": "idA"' in path.read_text()
    assert not config.tsv_report_path("Quiz").exists()


def test_console_output_without_marker_ignored(config):
    events = run_events("Quiz", [("idA", [("Login", "status 200", True)])])
    events.insert(2, {"event": "console", "messages": ["debug", "response body"]})
    paths = _run(IterationReporter(config), events)
    assert json.loads(paths.json_report.read_text())["iterations"][0]["id"] == "idA"


def test_custom_marker_from_config(tmp_path):
    from iteration_tests.config import ReporterConfig

    config = ReporterConfig(base_dir=str(tmp_path), marker="ROW")
    events = run_events("Quiz", [("idA", [("Login", "status 200", True)])])
    events[2] = {"event": "console", "messages": ["ROW", "first"]}
    paths = _run(IterationReporter(config), events)
    assert json.loads(paths.json_report.read_text())["iterations"][0]["id"] == "first"


def test_iteration_without_marker_is_fatal(config):
    events = run_events("Quiz", [("idA", [("Login", "status 200", True)])])
    del events[2]  # the console marker

    with pytest.raises(MissingIterationIdError, match="no iteration id"):
        _run(IterationReporter(config), events)
    assert not config.tsv_report_path("Quiz").exists()


def test_null_marker_value_is_missing_id(config):
    events = run_events(
        "Quiz",
        [
            ("idA", [("Login", "status 200", True)]),
            ("idB", [("Login", "status 200", True)]),
        ],
    )
    # second iteration's data row has no ID column
    events[6] = {"event": "console", "messages": ["iterationId", None]}

    with pytest.raises(MissingIterationIdError, match="#2"):
        _run(IterationReporter(config), events)
    assert '"None"' not in config.json_report_path("Quiz").read_text()


def test_numeric_marker_value_written_as_string(config):
    events = run_events("Quiz", [("idA", [("Login", "status 200", True)])])
    events[2] = {"event": "console", "messages": ["iterationId", 7]}
    paths = _run(IterationReporter(config), events)
    assert json.loads(paths.json_report.read_text())["iterations"][0]["id"] == "7"


def test_second_marker_in_iteration_is_fatal(config):
    events = run_events("Quiz", [("idA", [("Login", "status 200", True)])])
    events.insert(3, {"event": "console", "messages": ["iterationId", "idZ"]})

    with pytest.raises(DuplicateIterationIdError, match="idZ"):
        _run(IterationReporter(config), events)


def test_assertion_count_mismatch_aborts_table(config):
    events = run_events(
        "Quiz",
        [
            ("it1", [("A", "a1", True), ("A", "a2", True), ("B", "b1", False)]),
            ("it2", [("A", "a1", True), ("A", "a2", True)]),
        ],
    )
    with pytest.raises(ColumnCountMismatchError, match="it2"):
        _run(IterationReporter(config), events)

    # the JSON report is complete, only the table is refused
    data = json.loads(config.json_report_path("Quiz").read_text())
    assert len(data["iterations"]) == 2
    assert not config.tsv_report_path("Quiz").exists()


def test_mismatching_rerun_removes_earlier_table(config, quiz_events):
    _run(IterationReporter(config), quiz_events)
    assert config.tsv_report_path("Quiz").exists()

    events = run_events(
        "Quiz",
        [
            ("idA", [("Login", "status 200", True), ("Login", "has token", True)]),
            ("idB", [("Login", "status 200", True)]),
        ],
    )
    with pytest.raises(ColumnCountMismatchError, match="idB"):
        _run(IterationReporter(config), events)

    assert not config.tsv_report_path("Quiz").exists()


def test_events_before_start_rejected(config):
    reporter = IterationReporter(config)
    with pytest.raises(ReporterStateError, match="start"):
        reporter.on_before_iteration()


def test_second_start_rejected(config):
    reporter = IterationReporter(config)
    reporter.on_start("Quiz")
    with pytest.raises(ReporterStateError, match="already started"):
        reporter.on_start("Quiz")


def test_run_without_done_returns_none_and_leaves_report_open(config, quiz_events):
    paths = _run(IterationReporter(config), quiz_events[:-1])
    assert paths is None
    assert config.json_report_path("Quiz").read_text().endswith("\n},")
    assert not config.tsv_report_path("Quiz").exists()
