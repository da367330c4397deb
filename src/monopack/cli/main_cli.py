"""
Top-level CLI: pack the workspaces of the current project into local archives.
"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from monopack.core.config import DEFAULT_TARGET_DIR, CONCURRENCY_LIMIT
from monopack.pipelines.pack_pipeline import PackOptions, pack_workspace

main_app = typer.Typer(help="Pack monorepo workspaces into archives that reference each other locally.")
console = Console(stderr=True)


def _terminate(signum, frame):
    # Unwind like an interrupt so the scratch directory is removed
    raise SystemExit(1)


@main_app.command()
def pack(
    target: Path = typer.Option(Path(DEFAULT_TARGET_DIR), "--target", help="Directory the archives are written to"),
    no_version: bool = typer.Option(False, "--no-version", help="Leave the version out of archive filenames"),
    absolute: bool = typer.Option(False, "--absolute", help="Reference sibling archives by absolute path"),
    root: Optional[Path] = typer.Option(None, "--root", help="Workspace root (defaults to the current directory)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
):
    """Pack every publishable workspace and link their archives together."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s - %(message)s",
    )
    options = PackOptions(
        target_dir=target,
        no_version=no_version,
        absolute=absolute,
        concurrency=CONCURRENCY_LIMIT,
    )
    try:
        asyncio.run(pack_workspace(root or Path.cwd(), options))
    except KeyboardInterrupt:
        console.print("[bold red]Error:[/bold red] Interrupted")
        raise typer.Exit(code=1)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1)
    raise typer.Exit(code=0)


def main():
    signal.signal(signal.SIGTERM, _terminate)
    main_app()


if __name__ == "__main__":
    main()
