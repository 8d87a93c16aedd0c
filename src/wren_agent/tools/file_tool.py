"""
File Operations Tools - Read, write, list and search project files.

All paths are confined to the workspace the agents were started in.
"""

import fnmatch
import logging
import re
from pathlib import Path

from .base import Tool, ToolParameter, ToolResult

logger = logging.getLogger(__name__)

MAX_LISTED_FILES = 200
MAX_SEARCH_RESULTS = 50
SKIPPED_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build"}


class FileManager:
    """Manages file operations within a workspace directory."""

    def __init__(self, workspace_dir: str | Path):
        self.workspace_dir = Path(workspace_dir).expanduser().resolve()
        self.workspace_dir.mkdir(parents=True, exist_ok=True)

        self.blocked_paths = {
            ".ssh", ".gnupg", ".aws", ".gcloud", "credentials", ".env",
        }

    def _is_safe_path(self, path: Path) -> bool:
        """Check if a path is inside the workspace and not a secret."""
        resolved = path.resolve()

        if not resolved.is_relative_to(self.workspace_dir):
            logger.warning("Path outside workspace: %s", path)
            return False

        parts = {part.lower() for part in resolved.relative_to(self.workspace_dir).parts}
        if parts & self.blocked_paths:
            logger.warning("Blocked path pattern: %s", path)
            return False

        return True

    def _normalize_path(self, path: str) -> Path:
        """Normalize a path relative to the workspace."""
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self.workspace_dir / p
        return p

    def _checked(self, path: str) -> Path:
        file_path = self._normalize_path(path)
        if not self._is_safe_path(file_path):
            raise PermissionError(f"Access denied: {path}")
        return file_path

    def _walk(self, root: Path):
        for file_path in root.rglob("*"):
            if any(part in SKIPPED_DIRS for part in file_path.relative_to(root).parts):
                continue
            if file_path.is_file():
                yield file_path

    def read_file(self, path: str, offset: int = 0, max_lines: int | None = None) -> str:
        """Read a file's contents, optionally a window of lines."""
        file_path = self._checked(path)

        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if not file_path.is_file():
            raise IsADirectoryError(f"Path is a directory: {path}")

        content = file_path.read_text(encoding="utf-8", errors="replace")

        if offset or max_lines:
            lines = content.split("\n")
            end = offset + max_lines if max_lines else len(lines)
            window = lines[offset:end]
            content = "\n".join(window)
            remaining = len(lines) - end
            if remaining > 0:
                content += f"\n\n... (truncated, {remaining} more lines)"

        return content

    def write_file(self, path: str, content: str, append: bool = False) -> str:
        """Write content to a file, creating parent directories."""
        file_path = self._checked(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        mode = "a" if append else "w"
        with open(file_path, mode, encoding="utf-8") as f:
            f.write(content)

        action = "Appended to" if append else "Wrote"
        return f"{action} {len(content)} characters to {file_path.relative_to(self.workspace_dir)}"

    def list_files(self, path: str = ".", pattern: str = "*", recursive: bool = False) -> list[str]:
        """List files in a directory."""
        dir_path = self._checked(path)

        if not dir_path.exists():
            raise FileNotFoundError(f"Directory not found: {path}")
        if not dir_path.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {path}")

        if recursive:
            files = [
                str(p.relative_to(dir_path))
                for p in self._walk(dir_path)
                if fnmatch.fnmatch(p.name, pattern)
            ]
        else:
            files = [p.name for p in dir_path.glob(pattern) if p.is_file()]

        return sorted(files)

    def search_files(self, pattern: str, path: str = ".", content_search: bool = False) -> list[dict]:
        """Search for files by name (glob) or content (regex)."""
        dir_path = self._checked(path)

        if not dir_path.exists():
            raise FileNotFoundError(f"Directory not found: {path}")

        regex = re.compile(pattern, re.IGNORECASE) if content_search else None
        results = []

        for file_path in self._walk(dir_path):
            if not self._is_safe_path(file_path):
                continue

            relative = str(file_path.relative_to(dir_path))

            if regex is None:
                if fnmatch.fnmatch(file_path.name.lower(), pattern.lower()):
                    results.append({"file": relative, "size": file_path.stat().st_size})
                continue

            try:
                lines = file_path.read_text(encoding="utf-8").split("\n")
            except (UnicodeDecodeError, PermissionError):
                continue

            for number, line in enumerate(lines, start=1):
                if regex.search(line):
                    results.append({"file": relative, "line": number, "text": line.strip()[:120]})

        return results


def create_file_tools(manager: FileManager, writable: bool = True) -> list[Tool]:
    """Create file operation tools bound to ``manager``.

    Read-only agents get ``writable=False`` and therefore no write_file tool.
    """

    async def read_file_handler(path: str, offset: int = 0, max_lines: int = 400) -> ToolResult:
        try:
            content = manager.read_file(path, offset, max_lines)
            return ToolResult(success=True, output=f"File: {path}\n```\n{content}\n```")
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=str(e))

    async def write_file_handler(path: str, content: str, append: bool = False) -> ToolResult:
        try:
            return ToolResult(success=True, output=manager.write_file(path, content, append))
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=str(e))

    async def list_files_handler(path: str = ".", pattern: str = "*", recursive: bool = False) -> ToolResult:
        try:
            files = manager.list_files(path, pattern, recursive)
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=str(e))

        if not files:
            return ToolResult(success=True, output="No files found.", data=[])

        output = f"Files in {path}:\n" + "\n".join(f"- {f}" for f in files[:MAX_LISTED_FILES])
        if len(files) > MAX_LISTED_FILES:
            output += f"\n\n... and {len(files) - MAX_LISTED_FILES} more files"
        return ToolResult(success=True, output=output, data=files)

    async def search_files_handler(pattern: str, path: str = ".", search_content: bool = False) -> ToolResult:
        try:
            results = manager.search_files(pattern, path, search_content)
        except re.error as e:
            return ToolResult(success=False, error=f"Invalid pattern: {e}")
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=str(e))

        if not results:
            return ToolResult(success=True, output="No matches found.", data=[])

        output_lines = [f"Search results ({len(results)} matches):"]
        for r in results[:MAX_SEARCH_RESULTS]:
            if "line" in r:
                output_lines.append(f"{r['file']}:{r['line']}: {r['text']}")
            else:
                output_lines.append(f"{r['file']} ({r['size']} bytes)")
        if len(results) > MAX_SEARCH_RESULTS:
            output_lines.append(f"\n... and {len(results) - MAX_SEARCH_RESULTS} more matches")

        return ToolResult(success=True, output="\n".join(output_lines), data=results)

    tools = [
        Tool(
            name="read_file",
            description="Read the contents of a file in the project.",
            parameters=[
                ToolParameter(
                    name="path",
                    param_type="string",
                    description="Path to the file (relative to the project root or absolute)",
                    required=True,
                ),
                ToolParameter(
                    name="offset",
                    param_type="integer",
                    description="First line to read, 0-based (default: 0)",
                    required=False,
                ),
                ToolParameter(
                    name="max_lines",
                    param_type="integer",
                    description="Maximum lines to read (default: 400)",
                    required=False,
                ),
            ],
            handler=read_file_handler,
        ),
        Tool(
            name="list_files",
            description="List files in a project directory.",
            parameters=[
                ToolParameter(
                    name="path",
                    param_type="string",
                    description="Directory path (default: project root)",
                    required=False,
                ),
                ToolParameter(
                    name="pattern",
                    param_type="string",
                    description="Glob pattern to filter file names (default: *)",
                    required=False,
                ),
                ToolParameter(
                    name="recursive",
                    param_type="boolean",
                    description="Search recursively (default: false)",
                    required=False,
                ),
            ],
            handler=list_files_handler,
        ),
        Tool(
            name="search_files",
            description="Search project files by name pattern (glob) or content (regex, like grep).",
            parameters=[
                ToolParameter(
                    name="pattern",
                    param_type="string",
                    description="Glob for names, regex for content",
                    required=True,
                ),
                ToolParameter(
                    name="path",
                    param_type="string",
                    description="Directory to search in (default: project root)",
                    required=False,
                ),
                ToolParameter(
                    name="search_content",
                    param_type="boolean",
                    description="Search file contents instead of names (default: false)",
                    required=False,
                ),
            ],
            handler=search_files_handler,
        ),
    ]

    if writable:
        tools.append(Tool(
            name="write_file",
            description="Write content to a file in the project, creating directories as needed.",
            parameters=[
                ToolParameter(
                    name="path",
                    param_type="string",
                    description="Path to the file",
                    required=True,
                ),
                ToolParameter(
                    name="content",
                    param_type="string",
                    description="Content to write",
                    required=True,
                ),
                ToolParameter(
                    name="append",
                    param_type="boolean",
                    description="Append to the file instead of overwriting (default: false)",
                    required=False,
                ),
            ],
            handler=write_file_handler,
        ))

    return tools
