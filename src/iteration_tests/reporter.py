from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

from iteration_tests.accumulator import AssertionAccumulator
from iteration_tests.config import ReporterConfig
from iteration_tests.correlator import IterationCorrelator
from iteration_tests.errors import ReporterStateError
from iteration_tests.events import (
    ConsoleMessage,
    Event,
    IterationIdentified,
)
from iteration_tests.reporting.tsv import generate_tsv
from iteration_tests.writer import StreamingReportWriter


@dataclass(frozen=True)
class ReportPaths:
    json_report: Path
    tsv_report: Path


class IterationReporter:
    """Builds the JSON and TSV iteration reports from runner lifecycle events.

    One instance serves exactly one run. The runner drives it through the
    ``on_*`` callbacks, or through :meth:`dispatch` with parsed events; each
    callback finishes its file write before returning.
    """

    def __init__(
        self,
        config: ReporterConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config or ReporterConfig()
        self.logger = logger or logging.getLogger("iteration_tests")
        self.correlator = IterationCorrelator(marker=self.config.marker)
        self.accumulator = AssertionAccumulator()
        self.writer: StreamingReportWriter | None = None
        self.collection: str | None = None
        self._handlers: dict[str, Callable[[Any], Any]] = {
            "start": lambda e: self.on_start(e.collection),
            "beforeIteration": lambda e: self.on_before_iteration(),
            "console": lambda e: self.on_console(e),
            "assertion": lambda e: self.on_assertion(
                e.item.name, e.assertion, failed=e.failed
            ),
            "iteration": lambda e: self.on_iteration(),
            "done": lambda e: self.on_done(),
        }

    def _require_writer(self) -> StreamingReportWriter:
        if self.writer is None:
            raise ReporterStateError("Received a run event before the 'start' event")
        return self.writer

    def on_start(self, collection: str) -> None:
        if self.writer is not None:
            raise ReporterStateError(
                f"Run already started for collection {self.collection!r}"
            )
        self.collection = collection
        self.writer = StreamingReportWriter(
            self.config.json_report_path(collection), logger=self.logger
        )
        self.writer.start(collection)
        self.logger.info(f"Collection {collection!r} started")

    def on_before_iteration(self) -> None:
        self._require_writer().begin_iteration()
        self.accumulator.reset()

    def on_console(self, message: ConsoleMessage) -> None:
        identified = self.correlator.correlate(message)
        if identified is not None:
            self.on_iteration_identified(identified)

    def on_iteration_identified(self, event: IterationIdentified) -> None:
        self._require_writer().open_iteration(event.iteration_id)

    def on_assertion(self, request: str, assertion: str, failed: bool) -> None:
        self._require_writer()
        result = self.accumulator.add(request, assertion, failed=failed)
        self.logger.debug(
            f"  {'PASS' if result.passed else 'FAIL'}  {request} / {assertion}"
        )

    def on_iteration(self) -> None:
        self._require_writer().flush_iteration(self.accumulator.results())

    def on_done(self) -> ReportPaths:
        writer = self._require_writer()
        if writer.finish():
            self.logger.debug("Removed trailing separator after the last iteration")
        assert self.collection is not None
        tsv_path = generate_tsv(
            writer.path,
            self.config,
            tsv_path=self.config.tsv_report_path(self.collection),
            logger=self.logger,
        )
        return ReportPaths(json_report=writer.path, tsv_report=tsv_path)

    def dispatch(self, event: Event) -> ReportPaths | None:
        return self._handlers[event.event](event)

    def run(self, events: Iterable[Event]) -> ReportPaths | None:
        """Feed every event to the reporter; returns the report paths once 'done' arrives."""
        paths = None
        for event in events:
            result = self.dispatch(event)
            if result is not None:
                paths = result
        return paths

