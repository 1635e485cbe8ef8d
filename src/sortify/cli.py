"""Command line interface for the Sortify project."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any, Callable, Sequence

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from sortify.config import (
    ConfigError,
    ConfigManager,
    SortifyConfig,
    merge_dotted,
    resolve_with_precedence,
)
from sortify.ingestion import BatchReport, IngestionPipeline, MediaScanner
from sortify.ingestion.pipeline import CONFLICT_POLICIES
from sortify.logging_setup import configure_logging
from sortify.organization import PLACEMENT_MODES

console = Console()

_STATUS_STYLES = {
    "renamed": "green",
    "skipped-duplicate": "cyan",
    "skipped-noop": "cyan",
    "skipped-symlink": "yellow",
    "skipped-conflict": "yellow",
    "failed-analysis": "red",
    "failed-io": "red",
}


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands.

    Args:
        command: Command name to include in the summary.
        root: Target root path relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _emit_failures(report: BatchReport, *, quiet: bool, summary_only: bool) -> None:
    """Emit the failure list honoring quiet/summary preferences."""
    failures = report.failures()
    if not failures:
        return

    _emit_message(
        "[red]Errors encountered:[/red]",
        mode="error",
        quiet=quiet,
        summary_only=summary_only,
    )
    for result in failures:
        _emit_message(
            f"  - {result.source}: {result.message}",
            mode="error",
            quiet=quiet,
            summary_only=summary_only,
        )


def _build_results_table(report: BatchReport, output_root: Path) -> Table:
    table = Table(title="Placement results")
    table.add_column("Source", overflow="fold")
    table.add_column("Status")
    table.add_column("Destination / note", overflow="fold")
    for result in report.results:
        style = _STATUS_STYLES.get(result.status, "white")
        if result.destination is not None:
            try:
                detail = result.destination.relative_to(output_root).as_posix()
            except ValueError:
                detail = str(result.destination)
        else:
            detail = result.message or "-"
        table.add_row(str(result.source), f"[{style}]{result.status}[/{style}]", detail)
    return table


def _placement_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options shared by the ``files`` and ``batch`` commands."""
    options = [
        click.option(
            "-o",
            "--output-dir",
            type=click.Path(file_okay=False, path_type=Path),
            help="Root of the organized output tree.",
        ),
        click.option(
            "-m",
            "--mode",
            type=click.Choice(PLACEMENT_MODES),
            help="Move, copy, or symlink files into place.",
        ),
        click.option(
            "-w",
            "--workers",
            type=click.IntRange(min=1),
            help="Number of worker threads.",
        ),
        click.option(
            "--allow-mtime-fallback/--no-mtime-fallback",
            default=None,
            help="Use the file modification time when no capture timestamp exists.",
        ),
        click.option(
            "--on-conflict",
            type=click.Choice(CONFLICT_POLICIES),
            help="Policy for existing destinations with different content.",
        ),
        click.option("--json", "json_output", is_flag=True, help="Emit the report as JSON."),
        click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines."),
        click.option("--quiet", is_flag=True, help="Suppress non-error output."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _collect_overrides(
    *,
    output_dir: Path | None,
    mode: str | None,
    workers: int | None,
    allow_mtime_fallback: bool | None,
    on_conflict: str | None,
    limit: int | None = None,
) -> dict[str, Any]:
    candidates = {
        "organization.output_dir": str(output_dir) if output_dir is not None else None,
        "organization.mode": mode,
        "organization.on_conflict": on_conflict,
        "processing.workers": workers,
        "processing.allow_mtime_fallback": allow_mtime_fallback,
        "discovery.limit": limit,
    }
    return {key: value for key, value in candidates.items() if value is not None}


def _run_ingestion(
    ctx: click.Context,
    *,
    command: str,
    collect: Callable[[SortifyConfig], Sequence[Path]],
    overrides: dict[str, Any],
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Load configuration, run the pipeline, and render the report.

    Args:
        ctx: Click context used for parameter source inspection.
        command: Display name for summary lines.
        collect: Callable returning the input files for the resolved config.
        overrides: Dotted CLI overrides applied above file and environment.
        json_output: If True, emit the report as JSON.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.
    """

    try:
        manager = ConfigManager()
        manager.ensure_exists()
        config = manager.load(cli_overrides=overrides)
        configure_logging(config.logging, (ctx.obj or {}).get("verbosity", 0))

        explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
        explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

        quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
        summary_only = summary_mode if explicit_summary else config.cli.summary_default

        if json_output:
            if explicit_quiet and quiet_enabled:
                raise click.ClickException("--json cannot be combined with --quiet.")
            if explicit_summary and summary_only:
                raise click.ClickException("--json cannot be combined with --summary.")
            quiet_enabled = False
            summary_only = False

        if quiet_enabled and summary_only:
            raise click.ClickException(
                "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
            )

        pipeline = IngestionPipeline.from_config(config)
        inputs = list(collect(config))
        if not inputs:
            if json_output:
                console.print_json(data={"counts": BatchReport().counts(), "results": []})
            else:
                _emit_message(
                    "[yellow]No media files found.[/yellow]",
                    mode="warning",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
            return

        output_root = Path(config.organization.output_dir).expanduser()
        _emit_message(
            f"[cyan]Processing {len(inputs)} files with {pipeline.workers} workers "
            f"({pipeline.mode} mode).[/cyan]",
            mode="detail",
            quiet=quiet_enabled or json_output,
            summary_only=summary_only,
        )
        report = pipeline.run(inputs, output_root)
        output_root = output_root.resolve()
        counts = report.counts()

        if json_output:
            console.print_json(
                data={
                    "context": {
                        "output_dir": output_root.as_posix(),
                        "mode": pipeline.mode,
                        "on_conflict": pipeline.on_conflict,
                        "workers": pipeline.workers,
                    },
                    "counts": counts,
                    "results": [result.model_dump(mode="json") for result in report.results],
                }
            )
            return

        _emit_message(
            _build_results_table(report, output_root),
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        _emit_failures(report, quiet=quiet_enabled, summary_only=summary_only)
        _emit_message(
            _format_summary_line(command, output_root, counts),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
    except Exception as exc:
        _handle_cli_error(
            f"Unexpected error while organizing media: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="sortify")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug).")
@click.pass_context
def cli(ctx: click.Context, verbose: int) -> None:
    """Sortify renames photos and videos by capture time into dated folders."""
    ctx.ensure_object(dict)
    ctx.obj["verbosity"] = verbose


@cli.command("files")
@click.argument("files", nargs=-1, required=True, type=click.Path(path_type=Path))
@_placement_options
@click.pass_context
def files_command(
    ctx: click.Context,
    files: tuple[Path, ...],
    output_dir: Path | None,
    mode: str | None,
    workers: int | None,
    allow_mtime_fallback: bool | None,
    on_conflict: str | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Organize the given media FILES.

    Missing or unreadable files are reported as failures without stopping
    the rest of the run.
    """

    _run_ingestion(
        ctx,
        command="Ingestion",
        collect=lambda _config: list(files),
        overrides=_collect_overrides(
            output_dir=output_dir,
            mode=mode,
            workers=workers,
            allow_mtime_fallback=allow_mtime_fallback,
            on_conflict=on_conflict,
        ),
        json_output=json_output,
        summary_mode=summary_mode,
        quiet=quiet,
    )


@cli.command("batch")
@click.argument("dirs", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--limit",
    type=click.IntRange(min=0),
    help="Process at most this many discovered files (0 for no limit).",
)
@_placement_options
@click.pass_context
def batch_command(
    ctx: click.Context,
    dirs: tuple[Path, ...],
    limit: int | None,
    output_dir: Path | None,
    mode: str | None,
    workers: int | None,
    allow_mtime_fallback: bool | None,
    on_conflict: str | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Discover media files under DIRS and organize them."""

    def _discover(config: SortifyConfig) -> list[Path]:
        discovery = config.discovery
        scanner = MediaScanner(
            recursive=discovery.recursive,
            include_hidden=discovery.include_hidden,
            extensions=discovery.extensions,
            limit=discovery.limit,
        )
        return scanner.scan(dirs)

    _run_ingestion(
        ctx,
        command="Batch",
        collect=_discover,
        overrides=_collect_overrides(
            output_dir=output_dir,
            mode=mode,
            workers=workers,
            allow_mtime_fallback=allow_mtime_fallback,
            on_conflict=on_conflict,
            limit=limit,
        ),
        json_output=json_output,
        summary_mode=summary_mode,
        quiet=quiet,
    )


@cli.group()
def config() -> None:
    """Manage Sortify configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        config = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(config.model_dump(mode="python"), sort_keys=False)
    console.print(f"[dim]# {manager.config_path}[/dim]")
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = merge_dotted(manager.load_file_overrides(), key, parsed_value)
        resolve_with_precedence(defaults=SortifyConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    # The timestamp header line always changes; only report real edits.
    meaningful = [
        line
        for line in diff
        if line.startswith(("+", "-"))
        and not line.startswith(("+++", "---", "+# Last updated", "-# Last updated"))
    ]
    if not meaningful:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key.strip()}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=SortifyConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
