"""MCP stdio server: registers the file tools with FastMCP.

Tool names and argument names match the common MCP filesystem server so
existing agent prompts keep working (``edits`` items use ``oldText`` /
``newText``).  Core errors become ``ToolError`` so the client receives an
error result and the server keeps running.
"""

from __future__ import annotations

import logging
from typing import Awaitable, List, Optional, TypeVar

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import BaseModel, ConfigDict, Field

from sandbox_fs import __version__
from sandbox_fs.application import FileTools
from sandbox_fs.domain import EditOperation, SandboxFsError
from sandbox_fs.infrastructure.backend.wsl import format_distributions, list_distributions

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EditRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_text: str = Field(..., alias="oldText", description="Text to search for - must match exactly")
    new_text: str = Field(..., alias="newText", description="Text to replace with")

    def to_operation(self) -> EditOperation:
        return EditOperation(old_text=self.old_text, new_text=self.new_text)


async def guard(awaitable: Awaitable[T]) -> T:
    """Await a tool body, converting core errors into ``ToolError``."""
    try:
        return await awaitable
    except (SandboxFsError, ValueError) as e:
        logger.info("tool error: %s", e)
        raise ToolError(str(e)) from e


def build_server(tools: FileTools, active_distro: Optional[str] = None) -> FastMCP:
    """Create the FastMCP server. ``active_distro`` enables ``list_wsl_distributions``."""
    server = FastMCP("sandbox-fs", instructions=f"Sandboxed filesystem server {__version__}")

    @server.tool()
    async def read_file(path: str) -> str:
        """Read the complete contents of a file. Only works within allowed directories."""
        return await guard(tools.read_file(path))

    @server.tool()
    async def read_file_by_parts(path: str, part_number: int = Field(..., ge=1)) -> str:
        """Read a file in parts of approximately 95,000 characters.

        Part 1 reads the first 95,000 characters. Later parts start and end on
        line breaks when possible, so adjacent parts may overlap slightly. If
        the part starts past the end of the file, an error gives the file size.
        """
        return await guard(tools.read_file_by_parts(path, part_number))

    @server.tool()
    async def read_multiple_files(paths: List[str]) -> str:
        """Read several files at once. A failed read is reported inline and does not stop the others."""
        return await guard(tools.read_multiple_files(paths))

    @server.tool()
    async def write_file(path: str, content: str) -> str:
        """Create a new file or completely overwrite an existing file."""
        return await guard(tools.write_file(path, content))

    @server.tool()
    async def edit_file(path: str, edits: List[EditRequest], dryRun: bool = False) -> str:  # noqa: N803
        """Make line-based edits to a text file and return a git-style diff.

        Each edit replaces an exact text sequence; if none is found, a block of
        lines matching after trimming whitespace is replaced instead, keeping
        its indentation. With dryRun the diff is returned and nothing is written.
        """
        operations = [e.to_operation() for e in edits]
        return await guard(tools.edit_file(path, operations, dry_run=dryRun))

    @server.tool()
    async def create_directory(path: str) -> str:
        """Create a directory, including missing parents. Succeeds if it already exists."""
        return await guard(tools.create_directory(path))

    @server.tool()
    async def list_directory(path: str) -> str:
        """List a directory; entries are prefixed with [DIR] or [FILE]."""
        return await guard(tools.list_directory(path))

    @server.tool()
    async def directory_tree(path: str) -> str:
        """Recursive JSON tree of files and directories (name, type, children)."""
        return await guard(tools.directory_tree(path))

    @server.tool()
    async def move_file(source: str, destination: str) -> str:
        """Move or rename a file or directory. Fails if the destination exists."""
        return await guard(tools.move_file(source, destination))

    @server.tool()
    async def search_files_by_name(path: str, pattern: str, excludePatterns: Optional[List[str]] = None) -> str:  # noqa: N803
        """Recursively find files whose path matches the regular expression pattern (case-insensitive)."""
        return await guard(tools.search_files(path, pattern, excludePatterns or []))

    @server.tool()
    async def get_file_info(path: str) -> str:
        """Size, timestamps, type and permissions of a file or directory."""
        return await guard(tools.get_file_info(path))

    @server.tool()
    async def list_allowed_directories() -> str:
        """The directories this server may access."""
        return tools.list_allowed_directories()

    if active_distro:
        @server.tool()
        async def list_wsl_distributions() -> str:
            """List WSL distributions and show which one is in use."""
            return format_distributions(await guard(list_distributions()), active_distro)

    return server
