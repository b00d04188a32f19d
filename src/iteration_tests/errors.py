"""Exceptions raised while building iteration reports."""

from __future__ import annotations

from pathlib import Path


class ReporterError(Exception):
    """Base class for every error raised by the reporter."""


class ReporterStateError(ReporterError):
    """An event arrived in a state that does not accept it."""


class MissingIterationIdError(ReporterError):
    """An iteration completed without any iteration id marker."""


class DuplicateIterationIdError(ReporterError):
    """A second iteration id marker arrived within one iteration."""

    def __init__(self, current_id: str, new_id: str, path: Path | None = None):
        self.current_id = current_id
        self.new_id = new_id
        where = f" (report: {path})" if path is not None else ""
        super().__init__(
            f"Iteration {current_id!r} received a second iteration id {new_id!r}; "
            f"log the iteration id only once per iteration{where}"
        )


class ColumnCountMismatchError(ReporterError):
    def __init__(self, iteration_id: str, actual: int, expected: int):
        self.iteration_id = iteration_id
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Iteration {iteration_id} does not have the same number of assertions "
            f"({actual}) as the previous ones ({expected})."
        )


class ReportFormatError(ReporterError):
    def __init__(self, path: Path, detail: str):
        self.path = path
        super().__init__(f"Invalid iteration report {path}: {detail}")


class EventFormatError(ReporterError):
    def __init__(self, line_number: int, detail: str):
        self.line_number = line_number
        super().__init__(f"Invalid event on line {line_number}: {detail}")
