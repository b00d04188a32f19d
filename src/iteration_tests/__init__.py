"""Iteration-by-iteration test reports for newman collection runs."""

from iteration_tests.config import ReporterConfig, load_config
from iteration_tests.reporter import IterationReporter, ReportPaths

__all__ = ["IterationReporter", "ReportPaths", "ReporterConfig", "load_config"]
