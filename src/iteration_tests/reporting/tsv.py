from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from iteration_tests.config import ReporterConfig
from iteration_tests.errors import ColumnCountMismatchError, ReportFormatError
from iteration_tests.models import AssertionResult, Iteration, StructuredReport
from iteration_tests.writer import repair_trailing_separator, write_text_atomic

TITLE_LABEL = "Report for collection"
REQUESTS_LABEL = "Requests"
ASSERTIONS_LABEL = "Groups / assertions"


def _parse_assertion(path: Path, iteration_id: str, raw: Any) -> AssertionResult:
    if not isinstance(raw, dict):
        raise ReportFormatError(
            path, f"iteration {iteration_id}: assertion entry is not an object"
        )
    try:
        result = raw["result"]
        request = raw["request"]
        assertion = raw["assertion"]
    except KeyError as e:
        raise ReportFormatError(
            path, f"iteration {iteration_id}: assertion entry lacks {e.args[0]!r}"
        ) from e
    if type(result) is not int or result not in (0, 1):
        raise ReportFormatError(
            path, f"iteration {iteration_id}: result must be 0 or 1, got {result!r}"
        )
    return AssertionResult(
        request=str(request), assertion=str(assertion), result=int(result)
    )


def load_report(path: Path, repair: bool = True) -> StructuredReport:
    """Read a finished JSON report, repairing a dangling separator first."""
    if repair:
        repair_trailing_separator(path)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ReportFormatError(
            path, f"not valid JSON at line {e.lineno}, column {e.colno}: {e.msg}"
        ) from e

    if not isinstance(data, dict) or "collection" not in data:
        raise ReportFormatError(path, "missing 'collection'")
    raw_iterations = data.get("iterations")
    if not isinstance(raw_iterations, list):
        raise ReportFormatError(path, "'iterations' must be a list")

    iterations: list[Iteration] = []
    for index, raw in enumerate(raw_iterations, start=1):
        if not isinstance(raw, dict) or "id" not in raw:
            raise ReportFormatError(path, f"iteration #{index} has no 'id'")
        iteration_id = str(raw["id"])
        raw_assertions = raw.get("assertions")
        if not isinstance(raw_assertions, list):
            raise ReportFormatError(
                path, f"iteration {iteration_id}: 'assertions' must be a list"
            )
        iterations.append(
            Iteration(
                id=iteration_id,
                assertions=[
                    _parse_assertion(path, iteration_id, a) for a in raw_assertions
                ],
            )
        )

    return StructuredReport(collection=str(data["collection"]), iterations=iterations)


def build_table(
    report: StructuredReport,
    separator: str = "\t",
    logger: logging.Logger | None = None,
) -> list[str]:
    """Flatten report into TSV lines: one row per iteration, one column per assertion.

    Header rows come from the first iteration only. Every later iteration must
    carry as many assertions, otherwise ColumnCountMismatchError is raised and
    no line is returned.
    """
    logger = logger or logging.getLogger("iteration_tests")
    lines = [f"{TITLE_LABEL}{separator}{report.collection}"]
    if not report.iterations:
        return lines

    first = report.iterations[0]
    request_line = REQUESTS_LABEL + separator
    assertion_line = ASSERTIONS_LABEL + separator
    previous_request: str | None = None
    for a in first.assertions:
        # consecutive columns of one request are grouped under a single label
        request_line += ("" if a.request == previous_request else a.request) + separator
        assertion_line += a.assertion + separator
        previous_request = a.request
    lines.append(request_line)
    lines.append(assertion_line)
    expected = len(first.assertions)

    for iteration in report.iterations:
        count = len(iteration.assertions)
        if count != expected:
            raise ColumnCountMismatchError(iteration.id, count, expected)
        lines.append(
            iteration.id
            + separator
            + "".join(f"{a.result}{separator}" for a in iteration.assertions)
        )
        logger.info(f"Iteration {iteration.id}: {count} assertions.")

    return lines


def write_tsv(
    report: StructuredReport,
    path: Path,
    separator: str = "\t",
    logger: logging.Logger | None = None,
) -> Path:
    lines = build_table(report, separator=separator, logger=logger)
    write_text_atomic(path, "\n".join(lines) + "\n")
    return path


def generate_tsv(
    json_path: Path,
    config: ReporterConfig,
    tsv_path: Path | None = None,
    logger: logging.Logger | None = None,
) -> Path:
    """Transpose the JSON report at json_path into a TSV table, return the TSV path.

    The table lands next to the JSON report unless tsv_path is given.
    """
    logger = logger or logging.getLogger("iteration_tests")
    report = load_report(json_path)
    if tsv_path is None:
        tsv_path = json_path.parent / f"{report.collection}{config.tsv_suffix}"
    try:
        write_tsv(report, tsv_path, separator=config.separator, logger=logger)
    except ColumnCountMismatchError:
        # a table left by an earlier run no longer matches the JSON report
        tsv_path.unlink(missing_ok=True)
        raise
    logger.info(f"Wrote to file {tsv_path.name}")
    return tsv_path
