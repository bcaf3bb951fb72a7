# copycontext/cli.py
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from loguru import logger

from .services.logging import setup_logging
from .services.storage import JsonStateStore
from .config.loader import get_config
from .config.schema import AppConfig
from .core.errors import CopyContextError
from .core.host import FileSystemHost
from .core.models import OpenDocument, SnapshotResult
from .core.snapshot import SnapshotAssembler
from .core.tracker import RelevanceTracker, TrackingRegistry
from . import __version__

app = typer.Typer(help="copycontext - copy a bounded project snapshot (structure + relevant files) for LLM prompts.")

def version_callback(value: bool):
    if value:
        print(f"copycontext version: {__version__}")
        raise typer.Exit()

@app.callback()
def main_options(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log one level more detail than the configured log_level."),
    version: Optional[bool] = typer.Option(None, "--version", callback=version_callback, is_eager=True, help="Show version and exit."),
):
    """ Main callback to set up logging """
    setup_logging(verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["VERBOSE"] = verbose

RootOption = typer.Option(Path("."), "--root", "-r", help="Project root directory.", exists=True, file_okay=False, dir_okay=True, resolve_path=True)

def _services(config: AppConfig, host: Optional[FileSystemHost] = None) -> Tuple[FileSystemHost, RelevanceTracker]:
    host = host or FileSystemHost()
    registry = TrackingRegistry(JsonStateStore())
    return host, RelevanceTracker(registry, host, config)

def _config_with_overrides(max_chars: Optional[int], max_files: Optional[int],
                           mode: Optional[str], depth: Optional[int]) -> AppConfig:
    config = get_config()
    overrides = {k: v for k, v in {
        "max_chars": max_chars, "max_files": max_files, "structure_mode": mode, "tree_depth": depth,
    }.items() if v is not None}
    if not overrides:
        return config
    logger.debug(f"CLI config overrides: {overrides}")
    return AppConfig.model_validate({**config.model_dump(), **overrides})

def _resolve_option_path(root: Path, path: Path) -> Path:
    """Relative document options are taken from the project root, not the working directory."""
    resolved = (path if path.is_absolute() else root / path).resolve()
    try:
        resolved.relative_to(root)
    except ValueError:
        logger.warning(f"{path} is outside {root}; it will not be tracked or included.")
    return resolved

def _report(result: SnapshotResult) -> None:
    summary = f"Snapshot: {len(result.included_labels)}/{result.total_candidate_count} files, {len(result.final_text)} chars (~{result.token_count} tokens)"
    if result.effective_limit:
        summary += f", limit {result.effective_limit}"
    typer.echo(summary, err=True)
    if result.truncated:
        cut = ", ".join(result.truncated_labels) or "structure"
        typer.echo(f"Truncated to fit the limit: {cut}", err=True)
    for entry in result.skipped_entries:
        typer.echo(f"Skipped {entry}", err=True)

@app.command("copy")
def copy_snapshot(
    root: Path = RootOption,
    active: Optional[Path] = typer.Option(None, "--active", "-a", help="The active document (always included)."),
    open_files: Optional[List[Path]] = typer.Option(None, "--open", help="Other open documents (language metadata, unsaved fallback)."),
    history: Optional[List[Path]] = typer.Option(None, "--history", help="Recently activated documents, oldest first."),
    max_chars: Optional[int] = typer.Option(None, "--max-chars", help="Override the character budget (0 disables it)."),
    max_files: Optional[int] = typer.Option(None, "--max-files", help="Override the maximum number of file sections."),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Structure mode: full or smart."),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", help="Override the structure depth."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the snapshot to this file instead of stdout.", resolve_path=True),
):
    """
    Builds a snapshot of the project and prints it (or writes it to --output).
    """
    try:
        config = _config_with_overrides(max_chars, max_files, mode, depth)
    except ValueError as e:
        logger.error(f"Invalid option: {e}")
        raise typer.Exit(code=2)

    open_paths = [_resolve_option_path(root, p) for p in (open_files or [])]
    active_path = _resolve_option_path(root, active) if active else None
    documents = [OpenDocument(path=str(p)) for p in open_paths]
    if active_path:
        documents.insert(0, OpenDocument(path=str(active_path), is_active=True))
    host, tracker = _services(config, FileSystemHost(open_documents=documents))

    for path in history or []:
        tracker.record_activation(root, str(_resolve_option_path(root, path)))
    if active_path:
        tracker.record_activation(root, str(active_path))

    assembler = SnapshotAssembler(host, tracker, config)
    try:
        result = assembler.build(root)
    except CopyContextError as e:
        logger.error(f"Snapshot failed: {e}")
        raise typer.Exit(code=1)

    if output:
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(result.final_text, encoding='utf-8')
            logger.success(f"Snapshot written to: {output}")
        except OSError as e:
            logger.error(f"Error writing output file: {e}")
            raise typer.Exit(code=1)
    else:
        typer.echo(result.final_text, nl=False)
    _report(result)

@app.command("pin")
def pin(
    path: Path = typer.Argument(..., help="File or directory to pin or unpin.", exists=True, resolve_path=True),
    root: Path = RootOption,
):
    """
    Toggles a file or directory pin. Pinned items are always included.
    """
    _, tracker = _services(get_config())
    try:
        result = tracker.toggle_pin(root, str(path), is_dir=path.is_dir())
    except CopyContextError as e:
        logger.error(str(e))
        raise typer.Exit(code=1)
    kind = "directory" if result.is_dir else "file"
    action = "Pinned" if result.pinned else "Unpinned"
    typer.echo(f"{action} {kind} {result.path} ({result.count} tracked)")

@app.command("pins")
def list_pins(root: Path = RootOption):
    """
    Lists pinned files and directories for the project.
    """
    _, tracker = _services(get_config())
    files, directories = tracker.tracked_items(root)
    if not files and not directories:
        typer.echo("No pinned items.")
        return
    for path in files:
        typer.echo(f"file  {path}")
    for path, captured in directories.items():
        typer.echo(f"dir   {path}/ ({len(captured)} files)")

@app.command("clear")
def clear_pins(root: Path = RootOption):
    """
    Removes every pin for the project.
    """
    _, tracker = _services(get_config())
    removed = tracker.clear_pins(root)
    typer.echo(f"Cleared {removed} pinned items.")

if __name__ == "__main__":
    app()
