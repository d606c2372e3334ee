"""CLI interface for opengamesync."""

import asyncio
import logging
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

import click
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from . import __version__
from .api import HttpBackend
from .backend import BackendFile, BackendSyncManager, RemoteBackend
from .backends import LocalDirectoryBackend
from .config import config
from .engine import SyncManager, SyncResult
from .exceptions import SyncError, SyncTransferError
from .files import SyncFile
from .output import OutputFormatter
from .scanner import DirectoryScanner
from .utils import format_size

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
R = TypeVar("R")


def remote_options(func: F) -> F:
    """Add the options selecting the remote store."""
    func = click.option(
        "--remote-dir",
        type=click.Path(file_okay=False, path_type=Path),
        help="Use a local directory as the remote store",
    )(func)
    func = click.option("--game", "-g", help="Game identifier on the HTTP store")(func)
    return func


def _make_backend(
    ctx: Any, game: Optional[str], remote_dir: Optional[Path]
) -> RemoteBackend:
    """Create the backend selected on the command line."""
    out: OutputFormatter = ctx.obj["out"]

    if bool(game) == bool(remote_dir):
        out.error("Specify exactly one of --game or --remote-dir")
        ctx.exit(1)

    try:
        if remote_dir is not None:
            return LocalDirectoryBackend(remote_dir)
        return HttpBackend(
            game=game or "",
            api_key=ctx.obj["api_key"],
            api_url=ctx.obj["api_url"],
        )
    except SyncError as e:
        out.error(str(e))
        ctx.exit(1)


def _run(ctx: Any, coro: Coroutine[Any, Any, R]) -> R:
    """Run a coroutine, reporting sync errors and exiting on failure."""
    out: OutputFormatter = ctx.obj["out"]
    try:
        return asyncio.run(coro)
    except SyncTransferError as e:
        out.error(f"{len(e.failures)} file(s) failed to sync")
        for file, exc in e.failures:
            out.error(f"  {file.relative_path}: {exc}")
        ctx.exit(1)
    except SyncError as e:
        out.error(str(e))
        ctx.exit(1)


def _make_progress(out: OutputFormatter) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        transient=True,
        disable=out.quiet or out.json_output,
    )


def _print_result(out: OutputFormatter, result: SyncResult) -> None:
    if out.json_output:
        out.output_json(
            {
                "direction": result.direction.value,
                "files": result.files,
                "bytes": result.bytes_transferred,
                "elapsed": round(result.elapsed, 3),
            }
        )
        return
    out.success(
        f"Synced {result.files} file(s), {format_size(result.bytes_transferred)} "
        f"in {result.elapsed:.2f}s"
    )


def _max_concurrency(ctx: Any, workers: Optional[int]) -> Optional[int]:
    if workers is not None:
        if workers < 1:
            ctx.obj["out"].error("--workers must be at least 1")
            ctx.exit(1)
        return workers
    try:
        return config.max_concurrency
    except SyncError as e:
        ctx.obj["out"].error(str(e))
        ctx.exit(1)
    return None


@click.group()
@click.option(
    "--api-key", "-k", envvar="OPENGAMESYNC_API_KEY", help="Save store API key"
)
@click.option("--api-url", envvar="OPENGAMESYNC_API_URL", help="Save store API URL")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: Any,
    api_key: Optional[str],
    api_url: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """OpenGameSync - Synchronize game save directories with a remote store."""
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["api_url"] = api_url
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("opengamesync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--api-key",
    "-k",
    prompt="Enter your save store API key",
    help="Save store API key",
)
@click.option("--api-url", help="Save store API URL")
@click.pass_context
def init(ctx: Any, api_key: str, api_url: Optional[str]) -> None:
    """Store credentials in ~/.config/opengamesync/config."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        config.save_api_key(api_key)
        if api_url:
            config.save_api_url(api_url)
    except OSError as e:
        out.error(f"Initialization failed: {e}")
        ctx.exit(1)

    out.print_summary(
        "Initialization Complete",
        [
            ("Config file", str(config.get_config_path())),
            ("API URL", config.api_url),
        ],
    )


@main.command()
@click.argument("local_dir", type=click.Path(file_okay=False, path_type=Path))
@remote_options
@click.option("--remote", "-r", "show_remote", is_flag=True, help="List remote files")
@click.option("--ignore", "-i", multiple=True, help="Glob pattern to ignore")
@click.option(
    "--exclude-dot-files", is_flag=True, help="Skip files and folders starting with ."
)
@click.pass_context
def ls(
    ctx: Any,
    local_dir: Path,
    game: Optional[str],
    remote_dir: Optional[Path],
    show_remote: bool,
    ignore: tuple[str, ...],
    exclude_dot_files: bool,
) -> None:
    """List the local (default) or remote file set of LOCAL_DIR."""
    out: OutputFormatter = ctx.obj["out"]

    if show_remote:
        backend = _make_backend(ctx, game, remote_dir)
        manager = BackendSyncManager(local_dir, backend)

        async def fetch() -> tuple[BackendFile, ...]:
            async with backend:
                return await manager.fetch_remote()

        files = _run(ctx, fetch())
        title = f"Remote files on {backend.name}"
    else:
        local_manager: SyncManager[SyncFile] = SyncManager(
            local_dir, scanner=DirectoryScanner(list(ignore), exclude_dot_files)
        )
        try:
            files = local_manager.fetch_local()
        except SyncError as e:
            out.error(str(e))
            ctx.exit(1)
        title = f"Local files in {local_manager.root}"

    if out.json_output:
        out.output_json([f.relative_path for f in files])
        return
    if not files:
        out.info("No files found")
        return
    out.print_table(title, ["Path"], [[f.relative_path] for f in files])


@main.command()
@click.argument(
    "local_dir", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@remote_options
@click.option(
    "--workers",
    "-j",
    type=int,
    default=None,
    help="Maximum number of parallel transfers (default: unbounded)",
)
@click.option("--ignore", "-i", multiple=True, help="Glob pattern to ignore")
@click.option(
    "--exclude-dot-files", is_flag=True, help="Skip files and folders starting with ."
)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def push(
    ctx: Any,
    local_dir: Path,
    game: Optional[str],
    remote_dir: Optional[Path],
    workers: Optional[int],
    ignore: tuple[str, ...],
    exclude_dot_files: bool,
    yes: bool,
) -> None:
    """Replace the remote store with the files of LOCAL_DIR.

    Every remote file is deleted before the upload, including files that
    do not exist locally.

    Examples:
        opengamesync push ~/.local/share/mygame --game mygame
        opengamesync push ./saves --remote-dir /mnt/usb/saves -j 4
    """
    out: OutputFormatter = ctx.obj["out"]
    max_concurrency = _max_concurrency(ctx, workers)
    backend = _make_backend(ctx, game, remote_dir)

    with _make_progress(out) as progress:
        task = progress.add_task("Uploading...", total=None)
        manager = BackendSyncManager(
            local_dir,
            backend,
            max_concurrency=max_concurrency,
            scanner=DirectoryScanner(list(ignore), exclude_dot_files),
            progress_callback=lambda _file: progress.advance(task),
        )
        try:
            files = manager.fetch_local()
        except SyncError as e:
            out.error(str(e))
            ctx.exit(1)
        progress.update(task, total=len(files))

        if not yes:
            progress.stop()
            click.confirm(
                f"Replace all files on {backend.name} with "
                f"{len(files)} local file(s)?",
                abort=True,
            )
            progress.start()

        async def upload() -> SyncResult:
            async with backend:
                return await manager.sync_to_remote()

        result = _run(ctx, upload())

    _print_result(out, result)


@main.command()
@click.argument("local_dir", type=click.Path(file_okay=False, path_type=Path))
@remote_options
@click.option(
    "--workers",
    "-j",
    type=int,
    default=None,
    help="Maximum number of parallel transfers (default: unbounded)",
)
@click.pass_context
def pull(
    ctx: Any,
    local_dir: Path,
    game: Optional[str],
    remote_dir: Optional[Path],
    workers: Optional[int],
) -> None:
    """Download every remote file into LOCAL_DIR.

    Local files with the same path are overwritten, other local files are
    left alone.

    Examples:
        opengamesync pull ~/.local/share/mygame --game mygame
        opengamesync pull ./saves --remote-dir /mnt/usb/saves
    """
    out: OutputFormatter = ctx.obj["out"]
    max_concurrency = _max_concurrency(ctx, workers)
    backend = _make_backend(ctx, game, remote_dir)

    with _make_progress(out) as progress:
        task = progress.add_task("Downloading...", total=None)
        manager = BackendSyncManager(
            local_dir,
            backend,
            max_concurrency=max_concurrency,
            progress_callback=lambda _file: progress.advance(task),
        )

        async def download() -> SyncResult:
            async with backend:
                files = await manager.fetch_remote()
                progress.update(task, total=len(files))
                return await manager.sync_to_local()

        result = _run(ctx, download())

    _print_result(out, result)
