from __future__ import annotations

from pathlib import Path
import sys

import typer

app = typer.Typer(
    name="iteration-tests",
    help="Build per-iteration JSON and TSV test reports from newman runs",
)

CONSOLE_SNIPPET = 'console.log("{marker}", pm.iterationData.get("ID"));'


def _load_config(config: str | None):
    from iteration_tests.config import load_config

    if config is None:
        return load_config()
    config_path = Path(config)
    if not config_path.exists():
        typer.echo(f"Error: config file not found: {config}", err=True)
        raise typer.Exit(1)
    try:
        return load_config(config_path)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def run(
    events: str = typer.Argument(help="JSON-lines file of runner events ('-' for stdin)"),
    config: str | None = typer.Option(None, help="Path to reporter YAML config"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output to terminal"
    ),
):
    """Build both reports from a stream of runner events."""
    from iteration_tests.errors import ReporterError
    from iteration_tests.events import read_events
    from iteration_tests.reporter import IterationReporter
    from iteration_tests.verbose import close_logger, setup_logger

    reporter_config = _load_config(config)

    if events != "-" and not Path(events).exists():
        typer.echo(f"Error: events file not found: {events}", err=True)
        raise typer.Exit(1)

    debug_file = reporter_config.output_dir / "debug.log"
    logger = setup_logger(debug_file, verbose=verbose, logger_name="iteration_tests")
    reporter = IterationReporter(config=reporter_config, logger=logger)

    try:
        if events == "-":
            paths = reporter.run(read_events(sys.stdin))
        else:
            with open(events, encoding="utf-8") as f:
                paths = reporter.run(read_events(f))
    except (ReporterError, ValueError) as e:
        logger.error(str(e))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        close_logger(logger)

    if paths is None:
        # without 'done' the JSON report stays open-ended and no table exists
        typer.echo(
            "Error: event stream ended before the run completed; "
            "the JSON report is incomplete and no TSV report was written.",
            err=True,
        )
        raise typer.Exit(1)

    typer.echo(f"JSON report: {paths.json_report}")
    typer.echo(f"TSV report: {paths.tsv_report}")
    if not verbose:
        typer.echo(f"Debug log: {debug_file}")


@app.command()
def tabulate(
    report: str = typer.Argument(help="Path to a JSON iteration report"),
    config: str | None = typer.Option(None, help="Path to reporter YAML config"),
    out: str | None = typer.Option(
        None, help="Output path for the TSV report (defaults to next to the JSON report)"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output to terminal"
    ),
):
    """Regenerate the TSV report from an existing JSON report."""
    from iteration_tests.errors import ReporterError
    from iteration_tests.reporting.tsv import generate_tsv
    from iteration_tests.verbose import close_logger, setup_logger

    reporter_config = _load_config(config)
    report_path = Path(report)
    if not report_path.exists():
        typer.echo(f"Error: report not found: {report}", err=True)
        raise typer.Exit(1)

    logger = setup_logger(
        report_path.parent / "debug.log", verbose=verbose, logger_name="iteration_tests"
    )
    try:
        tsv_path = generate_tsv(
            report_path,
            reporter_config,
            tsv_path=Path(out) if out is not None else None,
            logger=logger,
        )
    except (ReporterError, ValueError) as e:
        logger.error(str(e))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        close_logger(logger)

    typer.echo(f"TSV report: {tsv_path}")


@app.command()
def repair(
    report: str = typer.Argument(help="Path to a JSON iteration report"),
):
    """Remove the separator dangling after the last iteration of a JSON report."""
    from iteration_tests.writer import repair_trailing_separator

    report_path = Path(report)
    if not report_path.exists():
        typer.echo(f"Error: report not found: {report}", err=True)
        raise typer.Exit(1)

    if repair_trailing_separator(report_path):
        typer.echo(f"Repaired: {report_path}")
    else:
        typer.echo(f"Nothing to repair: {report_path}")


@app.command()
def init(
    dir: str = typer.Option(".", "--dir", help="Directory to write the config in"),
):
    """Write an example reporter config with the default settings."""
    from iteration_tests.config import DEFAULT_CONFIG_FILENAME, ReporterConfig

    project_dir = Path(dir)
    project_dir.mkdir(parents=True, exist_ok=True)

    defaults = ReporterConfig()
    config_path = project_dir / DEFAULT_CONFIG_FILENAME
    if config_path.exists():
        typer.echo(f"{DEFAULT_CONFIG_FILENAME} already exists in {dir}, skipping.")
    else:
        config_path.write_text(f"""\
# Reports are written to <base_dir>/<report_dir>/<collection name><suffix>
base_dir: "{defaults.base_dir}"
report_dir: "{defaults.report_dir}"
json_suffix: "{defaults.json_suffix}"
tsv_suffix: "{defaults.tsv_suffix}"
# First console.log argument announcing the iteration id
marker: "{defaults.marker}"
# TSV field separator
separator: "\\t"
""")
        typer.echo(f"Wrote config: {config_path}")

    typer.echo("Log the iteration id once per iteration, e.g. in the first pre-request script:")
    typer.echo(f"  {CONSOLE_SNIPPET.format(marker=defaults.marker)}")
