"""Streaming writer for the structured (JSON) iteration report.

Each completed iteration is appended to the report file as soon as it is
known, so a long run can be followed by opening the file. Every record is
followed by a separator, including the last one, which leaves a dangling
comma in front of the closing brackets; :func:`repair_trailing_separator`
removes it once the run is over.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path

from iteration_tests.errors import (
    DuplicateIterationIdError,
    MissingIterationIdError,
    ReporterStateError,
)
from iteration_tests.models import AssertionResult

RECORD_SEPARATOR = ","
CLOSING_SUFFIX = "\n]\n}"
DANGLING_TAIL = RECORD_SEPARATOR + CLOSING_SUFFIX


class WriterState(str, Enum):
    NOT_STARTED = "not-started"
    OPEN = "open"
    AWAITING_ID = "awaiting-id"
    ACCUMULATING = "accumulating"
    FLUSHED = "flushed"
    FINALIZING = "finalizing"
    CLOSED = "closed"


def write_text_atomic(path: Path, text: str) -> None:
    """Replace path with text so readers never observe a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        encoding="utf-8",
        newline="",
        delete=False,
    ) as handle:
        tmp_path = Path(handle.name)
        handle.write(text)

    try:
        os.replace(tmp_path, path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise


def repair_trailing_separator(path: Path) -> bool:
    """Drop the separator left after the last iteration record.

    The file is only rewritten when it ends exactly with a separator followed
    by the closing suffix; anything else is left alone. Returns True if the
    file changed. Running it again on a repaired file is a no-op.
    """
    contents = path.read_text(encoding="utf-8")
    if not contents.endswith(DANGLING_TAIL):
        return False
    write_text_atomic(path, contents[: -len(DANGLING_TAIL)] + CLOSING_SUFFIX)
    return True


class StreamingReportWriter:
    """Appends iteration records to the JSON report as the run progresses."""

    def __init__(self, path: Path, logger: logging.Logger | None = None) -> None:
        self.path = path
        self.logger = logger or logging.getLogger("iteration_tests")
        self.state = WriterState.NOT_STARTED
        self.current_id: str | None = None
        self.iterations_written = 0

    def _expect(self, action: str, *allowed: WriterState) -> None:
        if self.state not in allowed:
            expected = ", ".join(s.value for s in allowed)
            raise ReporterStateError(
                f"Cannot {action} while the report writer is {self.state.value} "
                f"(expected: {expected}); report: {self.path}"
            )

    def _append(self, text: str) -> None:
        with self.path.open("a", encoding="utf-8", newline="") as f:
            f.write(text)

    def start(self, collection: str) -> None:
        self._expect("start the report", WriterState.NOT_STARTED)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        preamble = (
            "{\n\"collection\": "
            + json.dumps(collection, ensure_ascii=False)
            + ",\n\"iterations\": ["
        )
        with self.path.open("w", encoding="utf-8", newline="") as f:
            f.write(preamble)
        self.state = WriterState.OPEN
        self.logger.debug(f"Started report for collection {collection!r}: {self.path}")

    def begin_iteration(self) -> None:
        self._expect("begin an iteration", WriterState.OPEN, WriterState.FLUSHED)
        self.current_id = None
        self.state = WriterState.AWAITING_ID

    def open_iteration(self, iteration_id: str | None) -> None:
        if self.state is WriterState.ACCUMULATING:
            assert self.current_id is not None
            raise DuplicateIterationIdError(
                self.current_id, str(iteration_id), self.path
            )
        self._expect("open an iteration record", WriterState.AWAITING_ID)
        if iteration_id is None:
            raise MissingIterationIdError(
                f"Iteration #{self.iterations_written + 1} logged a null iteration id; "
                f"check the id column of its data row; report: {self.path}"
            )
        self._append(
            "\n{\n\t\"id\": "
            + json.dumps(iteration_id, ensure_ascii=False)
            + ",\n\t\"assertions\": "
        )
        self.current_id = iteration_id
        self.state = WriterState.ACCUMULATING
        self.logger.debug(f"Iteration {iteration_id!r} opened")

    def flush_iteration(self, assertions: list[AssertionResult]) -> None:
        if self.state is WriterState.AWAITING_ID:
            raise MissingIterationIdError(
                f"Iteration #{self.iterations_written + 1} completed with "
                f"{len(assertions)} assertion(s) but no iteration id was logged; "
                f"nothing was written for it to {self.path}"
            )
        self._expect("write iteration results", WriterState.ACCUMULATING)
        records = json.dumps([a.to_dict() for a in assertions], ensure_ascii=False)
        self._append(records + "\n}" + RECORD_SEPARATOR)
        self.iterations_written += 1
        self.state = WriterState.FLUSHED
        self.logger.debug(
            f"Iteration {self.current_id!r} written with {len(assertions)} assertion(s)"
        )

    def finish(self) -> bool:
        """Close the iteration list and repair the document. Returns whether a repair was needed."""
        if self.state in (WriterState.AWAITING_ID, WriterState.ACCUMULATING):
            label = self.current_id or f"#{self.iterations_written + 1}"
            raise ReporterStateError(
                f"Run completed while iteration {label} was still open; "
                f"report: {self.path}"
            )
        self._expect("finish the report", WriterState.OPEN, WriterState.FLUSHED)
        self._append(CLOSING_SUFFIX)
        self.state = WriterState.FINALIZING
        repaired = repair_trailing_separator(self.path)
        self.state = WriterState.CLOSED
        self.logger.debug(
            f"Report closed after {self.iterations_written} iteration(s): {self.path}"
        )
        return repaired
