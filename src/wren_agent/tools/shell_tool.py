"""
Shell Command Tool - Controlled execution of build, lint and test commands.

Commands run inside the workspace with an allowlist, a blocklist of
destructive patterns, a timeout and output truncation.
"""

import asyncio
import logging
import os
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from .base import Tool, ToolParameter, ToolResult

logger = logging.getLogger(__name__)


@dataclass
class ShellConfig:
    """Configuration for shell command execution."""

    workspace_dir: str = "."
    enabled: bool = True
    timeout_seconds: int = 120
    max_output_lines: int = 200
    max_output_chars: int = 20000

    allowed_commands: set[str] = field(default_factory=lambda: {
        "ls", "pwd", "cat", "head", "tail", "wc", "grep", "find", "which",
        "echo", "env", "diff", "sort", "uniq", "cut", "sed", "awk", "jq",
        "mkdir", "touch", "cp", "mv", "rm",
        "git", "make",
        "python", "python3", "pip", "pytest", "uv", "ruff", "mypy", "tox",
        "node", "npm", "npx", "yarn", "pnpm", "tsc",
        "go", "cargo", "rustc", "mvn", "gradle",
    })

    blocked_patterns: list[str] = field(default_factory=lambda: [
        r"rm\s+-rf\s+/",
        r"rm\s+-rf\s+~",
        r">\s*/dev/",
        r"mkfs",
        r"dd\s+if=",
        r":\(\)\s*\{\s*:\|:&\s*\};:",
        r"chmod\s+777",
        r"curl.*\|\s*sh",
        r"wget.*\|\s*sh",
        r"\bsudo\b",
        r"`.*`",
        r"\$\(.*\)",
    ])


class ShellExecutor:
    """Executes shell commands with safety controls."""

    def __init__(self, config: ShellConfig | None = None):
        self.config = config or ShellConfig()
        self.workspace = Path(self.config.workspace_dir).expanduser().resolve()
        self.workspace.mkdir(parents=True, exist_ok=True)

    def is_command_allowed(self, command: str) -> tuple[bool, str]:
        """Check if a command is allowed to execute."""
        if not self.config.enabled:
            return False, "Shell execution is disabled"

        for pattern in self.config.blocked_patterns:
            if re.search(pattern, command, re.IGNORECASE):
                return False, "Command contains blocked pattern"

        try:
            segments = re.split(r"&&|\|\||;|\|", command)
            for segment in segments:
                parts = shlex.split(segment)
                if not parts:
                    continue
                base_command = Path(parts[0]).name
                if base_command not in self.config.allowed_commands:
                    return False, f"Command '{base_command}' is not in the allowlist"
        except ValueError as e:
            return False, f"Invalid command syntax: {e}"

        if not command.strip():
            return False, "Empty command"

        return True, "OK"

    async def execute(self, command: str, working_dir: str | None = None) -> tuple[int, str, str]:
        """
        Execute a shell command.

        Returns:
            Tuple of (return_code, stdout, stderr)
        """
        allowed, reason = self.is_command_allowed(command)
        if not allowed:
            return -1, "", f"Command blocked: {reason}"

        cwd = self.workspace
        if working_dir:
            candidate = Path(working_dir)
            if not candidate.is_absolute():
                candidate = self.workspace / candidate
            candidate = candidate.resolve()
            if candidate.is_relative_to(self.workspace) and candidate.is_dir():
                cwd = candidate

        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
            env=os.environ.copy(),
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return -1, "", f"Command timed out after {self.config.timeout_seconds} seconds"

        stdout_str = self._truncate_output(stdout.decode("utf-8", errors="replace"))
        stderr_str = self._truncate_output(stderr.decode("utf-8", errors="replace"))

        return process.returncode if process.returncode is not None else -1, stdout_str, stderr_str

    def _truncate_output(self, output: str) -> str:
        """Truncate output to configured limits, keeping the tail."""
        lines = output.split("\n")

        if len(lines) > self.config.max_output_lines:
            dropped = len(lines) - self.config.max_output_lines
            output = f"... ({dropped} lines truncated)\n" + "\n".join(lines[-self.config.max_output_lines:])

        if len(output) > self.config.max_output_chars:
            output = "... (truncated)\n" + output[-self.config.max_output_chars:]

        return output


def create_shell_tools(executor: ShellExecutor) -> list[Tool]:
    """Create shell-related tools bound to ``executor``."""

    async def run_command_handler(command: str, working_dir: str = "") -> ToolResult:
        try:
            return_code, stdout, stderr = await executor.execute(command, working_dir or None)
        except OSError as e:
            logger.error("Error executing command: %s", e)
            return ToolResult(success=False, error=str(e))

        output_parts = []
        if stdout:
            output_parts.append(f"Output:\n```\n{stdout}\n```")
        if stderr:
            output_parts.append(f"Errors:\n```\n{stderr}\n```")
        output_parts.append(f"Exit code: {return_code}")

        text = "\n\n".join(output_parts)
        data = {"return_code": return_code}
        if return_code == 0:
            return ToolResult(success=True, output=text, data=data)
        return ToolResult(success=False, error=text, data=data)

    return [
        Tool(
            name="run_command",
            description=(
                "Execute a shell command in the project (build, lint, test, git). "
                "Only allowlisted commands are permitted."
            ),
            parameters=[
                ToolParameter(
                    name="command",
                    param_type="string",
                    description="The shell command to execute",
                    required=True,
                ),
                ToolParameter(
                    name="working_dir",
                    param_type="string",
                    description="Working directory inside the project (default: project root)",
                    required=False,
                ),
            ],
            handler=run_command_handler,
        ),
    ]
