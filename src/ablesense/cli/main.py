"""
Ablesense CLI

Command-line interface for indexing Able workspaces, inspecting symbol
tables, resolving completions, and running the language server.

Usage::

    ablesense index ./project                 # Scan and report modules
    ablesense symbols app.abl                 # Symbols of one file
    ablesense complete app.abl 12 5           # Completions at line 12, col 5
    ablesense serve                           # Language server over stdio
    ablesense watch ./project                 # Rescan on file changes
"""

import logging
import os
import sys
import time
from dataclasses import replace
from pathlib import Path

import click

from ablesense.core.config import AblesenseConfig
from ablesense.exceptions import AblesenseError


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(config: AblesenseConfig, verbose: bool) -> None:
    """Set up logging for the CLI session (always on stderr)."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format=config.log_format, stream=sys.stderr)
    # watchdog is chatty at debug level
    logging.getLogger("watchdog").setLevel(logging.WARNING)


def _build_config(ctx: click.Context) -> AblesenseConfig:
    opts = ctx.obj
    config = AblesenseConfig.from_env()
    overrides = {}
    if opts.get("paths"):
        overrides["stdlib_paths"] = tuple(opts["paths"])
    if opts.get("no_env_path"):
        overrides["use_env_path"] = False
    if overrides:
        config = replace(config, **overrides)
    try:
        config.validate()
    except AblesenseError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    return config


def _client(ctx: click.Context):
    from ablesense.client import Ablesense
    return Ablesense(config=_build_config(ctx))


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="ablesense")
@click.option(
    "-p", "--path", "paths",
    multiple=True,
    help="Extra search directory (repeatable; overrides $ABLESENSE_STDLIB_PATHS).",
)
@click.option(
    "--no-env-path", is_flag=True,
    help="Ignore the $ABLEPATH search path list.",
)
@click.pass_context
def cli(ctx: click.Context, paths: tuple, no_env_path: bool):
    """Ablesense — static completion index for Able source files."""
    ctx.ensure_object(dict)
    ctx.obj["paths"] = paths
    ctx.obj["no_env_path"] = no_env_path


# ---------------------------------------------------------------------------
# ablesense index
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("workspace", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--progress/--no-progress", default=False, help="Show a progress bar.")
@click.option("-f", "--format", "fmt", type=click.Choice(["console", "json"]),
              default="console", help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def index(ctx: click.Context, workspace: str, progress: bool, fmt: str, verbose: bool):
    """Scan WORKSPACE and every search root, then report what was indexed."""
    client = _client(ctx)
    _configure_logging(client.config, verbose)
    t0 = time.perf_counter()

    try:
        result = client.index(Path(workspace).resolve(), show_progress=progress)
    except AblesenseError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    elapsed = time.perf_counter() - t0

    if fmt == "json":
        import json
        data = result.to_dict()
        data["module_names"] = sorted(client.index_.module_names())
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("─" * 50)
    click.echo("  ABLESENSE — Index Statistics")
    click.echo("─" * 50)
    for root in result.roots:
        click.echo(f"  Root : {root}")
    click.echo()
    click.echo(f"  Files scanned    {result.files_scanned:>8,}")
    click.echo(f"  Files indexed    {result.files_indexed:>8,}")
    if result.files_skipped:
        click.echo(f"  Files skipped    {result.files_skipped:>8,}  (no module name)")
    if result.errors:
        click.echo(f"  Errors           {result.errors:>8,}")
    click.echo(f"  Modules          {result.modules:>8,}")
    click.echo(f"  Completed in {elapsed:.3f} seconds")
    click.echo("─" * 50)


# ---------------------------------------------------------------------------
# ablesense symbols
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("-w", "--workspace", type=click.Path(exists=True, file_okay=False),
              default=None, help="Workspace root used to name the module.")
@click.option("-f", "--format", "fmt", type=click.Choice(["console", "json"]),
              default="console", help="Output format.")
@click.pass_context
def symbols(ctx: click.Context, file: str, workspace: str | None, fmt: str):
    """Print the symbol table extracted from FILE."""
    from ablesense.core.completion import ResultFormatter

    client = _client(ctx)
    if workspace:
        client.index_.configure(workspace_root=Path(workspace).resolve())
    module_name = client.index_.compute_module_name(os.path.abspath(file))

    try:
        table = client.symbols(file)
    except (OSError, UnicodeDecodeError) as exc:
        click.echo(f"Error: cannot read {file}: {exc}", err=True)
        raise SystemExit(1)
    click.echo(ResultFormatter.format_symbols(table, module_name, fmt=fmt))


# ---------------------------------------------------------------------------
# ablesense complete
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=click.IntRange(min=0))
@click.argument("column", type=click.IntRange(min=0))
@click.option("-w", "--workspace", type=click.Path(exists=True, file_okay=False),
              default=None, help="Workspace root (default: the file's directory).")
@click.option("-f", "--format", "fmt", type=click.Choice(["console", "json"]),
              default="console", help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def complete(ctx: click.Context, file: str, line: int, column: int,
             workspace: str | None, fmt: str, verbose: bool):
    """Resolve completions in FILE at zero-based LINE and COLUMN."""
    from ablesense.core.completion import ResultFormatter

    client = _client(ctx)
    _configure_logging(client.config, verbose)
    t0 = time.perf_counter()

    root = Path(workspace).resolve() if workspace else Path(file).resolve().parent
    try:
        client.index(root)
        candidates = client.complete_at(Path(file).resolve(), line, column)
    except AblesenseError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    except (OSError, UnicodeDecodeError) as exc:
        click.echo(f"Error: cannot read {file}: {exc}", err=True)
        raise SystemExit(1)

    if fmt == "json":
        click.echo(ResultFormatter.format_json(candidates))
    else:
        click.echo(ResultFormatter.format_console(
            candidates, elapsed_time=time.perf_counter() - t0,
        ))


# ---------------------------------------------------------------------------
# ablesense serve
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--tcp", is_flag=True, help="Listen on TCP instead of stdio.")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", type=int, default=2087, show_default=True)
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def serve(ctx: click.Context, tcp: bool, host: str, port: int, verbose: bool):
    """Start the Able language server."""
    config = _build_config(ctx)
    _configure_logging(config, verbose)
    from ablesense.lsp.server import create_server

    server = create_server(config)
    if tcp:
        server.start_tcp(host, port)
    else:
        server.start_io()


# ---------------------------------------------------------------------------
# ablesense watch
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("workspace", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--interval", type=float, default=30.0, show_default=True,
              help="Minimum seconds between rescans.")
@click.option("--debounce", type=float, default=1.0, show_default=True,
              help="Seconds to wait after the last change.")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def watch(ctx: click.Context, workspace: str, interval: float, debounce: float,
          verbose: bool):
    """Index WORKSPACE, then rescan whenever Able sources change."""
    from ablesense.core.autoreindex import start_auto_reindex

    client = _client(ctx)
    _configure_logging(client.config, verbose)
    result = client.index(Path(workspace).resolve())
    click.echo(f"  Indexed {result.modules} modules. Watching for changes (Ctrl+C to stop).")

    reindexer = start_auto_reindex(client, interval_seconds=interval,
                                   debounce_seconds=debounce)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\n  Stopped.")
    finally:
        reindexer.stop()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
