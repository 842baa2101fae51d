"""CLI: Typer app wired to the file tools and the MCP server."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from sandbox_fs.application import FileTools, build_file_tools
from sandbox_fs.config import SandboxFsConfig, load_config
from sandbox_fs.domain import Distribution, EditOperation, SandboxFsError
from sandbox_fs.infrastructure.backend import build_backend
from sandbox_fs.infrastructure.backend.wsl import format_distributions, list_distributions

app = typer.Typer(help="sandbox-fs: sandboxed file operations over a shell backend (local sh or WSL).")

# stderr only: stdout carries the MCP stdio protocol under `serve`.
err_console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _effective_config(
    directories: List[str],
    backend: Optional[str],
    distro: Optional[str],
    timeout: Optional[float],
) -> SandboxFsConfig:
    """Config file / env first, command-line values on top."""
    data = load_config().model_dump()
    if directories:
        data["allowed_directories"] = list(directories)
    if backend:
        data["backend"]["kind"] = backend
    if distro:
        data["backend"]["distro"] = distro
        if not backend:
            data["backend"]["kind"] = "wsl"
    if timeout is not None:
        data["backend"]["timeout_s"] = timeout
    try:
        return SandboxFsConfig.model_validate(data)
    except ValidationError as e:
        err_console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        raise typer.Exit(1)


async def _bootstrap(config: SandboxFsConfig) -> Tuple[FileTools, Optional[Distribution]]:
    backend, distro = await build_backend(config.backend)
    tools = await build_file_tools(config, backend)
    return tools, distro


def _tools_or_exit(config: SandboxFsConfig) -> Tuple[FileTools, Optional[Distribution]]:
    try:
        return asyncio.run(_bootstrap(config))
    except SandboxFsError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


def _run_or_exit(coro):
    try:
        return asyncio.run(coro)
    except (SandboxFsError, ValueError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


_ROOT_OPTION = typer.Option([], "--root", "-r", help="Sandbox root (repeatable). Overrides allowed_directories from config.")
_BACKEND_OPTION = typer.Option(None, "--backend", help="Backend kind: local | wsl.")
_DISTRO_OPTION = typer.Option(None, "--distro", help="WSL distribution (implies --backend wsl).")
_TIMEOUT_OPTION = typer.Option(None, "--timeout", help="Per-command backend timeout in seconds.")
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging to stderr.")


@app.command()
def serve(
    directories: List[str] = typer.Argument(None, help="Allowed directories (sandbox roots)."),
    backend: Optional[str] = _BACKEND_OPTION,
    distro: Optional[str] = _DISTRO_OPTION,
    timeout: Optional[float] = _TIMEOUT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Run the MCP filesystem server on stdio."""
    from sandbox_fs.interfaces.mcp_server import build_server

    _setup_logging(verbose)
    config = _effective_config(directories or [], backend, distro, timeout)
    tools, active = _tools_or_exit(config)
    err_console.print("Secure MCP filesystem server running on stdio")
    if active is not None:
        err_console.print(f"Using WSL distribution: {active.name}")
    err_console.print(f"Allowed directories: {', '.join(tools.roots)}")
    build_server(tools, active_distro=active.name if active else None).run("stdio")


@app.command("read-part")
def read_part(
    path: str = typer.Argument(..., help="File to read."),
    part: int = typer.Argument(1, min=1, help="Part number (1-based)."),
    root: List[str] = _ROOT_OPTION,
    backend: Optional[str] = _BACKEND_OPTION,
    distro: Optional[str] = _DISTRO_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Print one line-aligned part of a large file."""
    _setup_logging(verbose)
    tools, _ = _tools_or_exit(_effective_config(root, backend, distro, None))
    sys.stdout.write(_run_or_exit(tools.read_file_by_parts(path, part)))


@app.command()
def edit(
    path: str = typer.Argument(..., help="File to edit."),
    edits_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help='JSON list of {"oldText": ..., "newText": ...} objects.'
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the diff without writing."),
    root: List[str] = _ROOT_OPTION,
    backend: Optional[str] = _BACKEND_OPTION,
    distro: Optional[str] = _DISTRO_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Apply edits from a JSON file and print the diff."""
    _setup_logging(verbose)
    try:
        raw = json.loads(edits_file.read_text(encoding="utf-8"))
        operations = [EditOperation(old_text=e["oldText"], new_text=e["newText"]) for e in raw]
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        err_console.print(f"[red]Invalid edits file {edits_file}: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    tools, _ = _tools_or_exit(_effective_config(root, backend, distro, None))
    fenced = _run_or_exit(tools.edit_file(path, operations, dry_run=dry_run))
    diff = fenced.strip().split("\n", 1)[1].rsplit("\n", 1)[0]
    Console().print(Syntax(diff, "diff", theme="monokai"))
    if dry_run:
        rprint("[dim]Dry run: nothing written.[/dim]")


@app.command()
def resolve(
    path: str = typer.Argument(..., help="Path to check."),
    root: List[str] = _ROOT_OPTION,
    backend: Optional[str] = _BACKEND_OPTION,
    distro: Optional[str] = _DISTRO_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Print the canonical in-sandbox form of PATH, or why it is refused."""
    _setup_logging(verbose)
    tools, _ = _tools_or_exit(_effective_config(root, backend, distro, None))
    typer.echo(_run_or_exit(tools.resolver.resolve(path)))


@app.command()
def distros(verbose: bool = _VERBOSE_OPTION) -> None:
    """List WSL distributions (Windows hosts only)."""
    _setup_logging(verbose)
    found = _run_or_exit(list_distributions())
    active = load_config().backend.distro
    rprint(format_distributions(found, active))


if __name__ == "__main__":
    app()
