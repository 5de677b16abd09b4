"""Command line interface for filepulse."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax

from filepulse.config import ConfigError, ConfigManager, FilePulseConfig, resolve_with_precedence
from filepulse.engine import DEFAULT_WINDOW, ActivityAnalyzer
from filepulse.errors import DiscoveryError, MountTimeoutError, UnmountError, WarningLog
from filepulse.log import configure_logging
from filepulse.models import TrackingKind
from filepulse.mount import SnapshotMountManager
from filepulse.process import CommandRunner
from filepulse.report import Report, build_report, render_report

console = Console()

_TRACKING_CHOICES = [kind.value for kind in TrackingKind]


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)

    raise click.ClickException(message) from original


def _load_config(cli_overrides: dict[str, Any] | None = None) -> FilePulseConfig:
    manager = ConfigManager()
    try:
        return manager.load(cli_overrides=cli_overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign ``value`` at the dotted ``path`` inside ``target``.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _filter_report(report: Report, tracking: tuple[str, ...]) -> Report:
    wanted = {TrackingKind(value) for value in tracking}
    kept = [record for record in report.records() if record.tracking in wanted]
    return build_report(
        kept,
        warnings=report.warnings,
        root=report.metadata.root,
        time_window=report.metadata.time_window,
        generated_at=report.metadata.generated_at,
        discovery_available=report.discovery_available,
    )


def _mount_manager(config: FilePulseConfig) -> SnapshotMountManager:
    return SnapshotMountManager(
        config.paths,
        config.backup,
        config.terminal,
        runner=CommandRunner(),
        warnings=WarningLog(),
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="filepulse")
def cli() -> None:
    """Report recently modified files grouped by hour, with change statistics."""


@cli.command()
@click.argument(
    "path",
    required=False,
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=str),
)
@click.option(
    "-w",
    "--window",
    default=DEFAULT_WINDOW,
    show_default=True,
    help="Change window understood by fd, e.g. 2h, 3d, 1week.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "summary", "json"]),
    default="table",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--tracking",
    multiple=True,
    type=click.Choice(_TRACKING_CHOICES, case_sensitive=False),
    help="Only show files with this tracking kind (repeatable).",
)
@click.option("--workers", type=click.IntRange(min=1), help="Number of files analyzed in parallel.")
@click.option("--no-snapshot", is_flag=True, help="Skip the backup snapshot comparison.")
@click.option("--quiet", is_flag=True, help="Hide the warnings list.")
@click.option("-v", "--verbose", count=True, help="Log progress (-v) or debug output (-vv).")
@click.pass_context
def changes(
    ctx: click.Context,
    path: str,
    window: str,
    output_format: str,
    tracking: tuple[str, ...],
    workers: int | None,
    no_snapshot: bool,
    quiet: bool,
    verbose: int,
) -> None:
    """Show files under PATH modified within the change window.

    Args:
        ctx: Click context used to set the exit status.
        path: Directory to search.
        window: Change window passed to the file search.
        output_format: One of ``table``, ``summary`` or ``json``.
        tracking: Tracking kinds to keep; all when empty.
        workers: Worker pool size override.
        no_snapshot: Disable the snapshot comparison for untracked files.
        quiet: Hide the warnings list.
        verbose: Verbosity counter raising the log level.
    """
    json_output = output_format == "json"
    overrides: dict[str, Any] = {}
    if workers is not None:
        overrides["analysis.workers"] = workers
    if no_snapshot:
        overrides["analysis.snapshot_enabled"] = False
    if verbose:
        overrides["logging.level"] = "DEBUG" if verbose > 1 else "INFO"

    try:
        config = ConfigManager().load(cli_overrides=overrides)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    configure_logging(config.logging)

    try:
        report = ActivityAnalyzer(config).run(Path(path), window)
    except DiscoveryError as exc:
        _handle_cli_error(str(exc), code="discovery_error", json_output=json_output, original=exc)
        return

    if tracking:
        report = _filter_report(report, tracking)
    if quiet:
        report = report.model_copy(update={"warnings": []})

    render_report(
        report,
        console,
        output_format=output_format,  # type: ignore[arg-type]
        time_format=config.display.time_format,
    )
    if not report.discovery_available:
        ctx.exit(1)


@cli.command()
@click.option("--timeout", type=click.IntRange(min=1), help="Seconds to wait for the mount.")
def mount(timeout: int | None) -> None:
    """Mount the latest backup snapshot and leave it mounted."""
    overrides = {"backup.mount_timeout": timeout} if timeout is not None else None
    config = _load_config(overrides)
    configure_logging(config.logging)

    manager = _mount_manager(config)
    try:
        snapshot_root = manager.mount()
    except MountTimeoutError as exc:
        raise click.ClickException(str(exc)) from exc
    except KeyboardInterrupt:
        manager.cleanup()
        raise

    console.print(f"[green]Snapshot mounted at {manager.mount_point}.[/green]")
    if snapshot_root.is_dir():
        console.print(f"Home directory snapshot: {snapshot_root}")
    else:
        console.print(f"[yellow]No home directory snapshot found at {snapshot_root}.[/yellow]")
    console.print("Run `filepulse unmount` when finished.")


@cli.command()
def unmount() -> None:
    """Release a snapshot mounted with ``filepulse mount``."""
    config = _load_config()
    configure_logging(config.logging)

    manager = _mount_manager(config)
    if not manager.is_populated():
        console.print(f"[yellow]Nothing mounted at {manager.mount_point}.[/yellow]")
        return
    try:
        manager.unmount(strict=True)
    except UnmountError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[green]Unmounted {manager.mount_point}.[/green]")


@cli.group()
def config() -> None:
    """Manage filepulse configuration files and overrides."""


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
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
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
    try:
        manager.ensure_exists()
        file_data = manager.load_file_overrides()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'backup.mount_timeout'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=FilePulseConfig(), file_overrides=file_data)
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
    # The timestamp line always changes; only report real edits.
    if not any(
        line.startswith(("+", "-")) and not line.startswith(("+++", "---", "+# Last", "-# Last"))
        for line in diff
    ):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Entry point used by the console script."""
    cli()


__all__ = ["cli", "main"]
