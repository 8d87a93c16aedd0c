"""
Tools module for agent capabilities.
"""

from .base import Tool, ToolHandler, ToolParameter, ToolResult
from .registry import ToolRegistry
from .file_tool import FileManager, create_file_tools
from .shell_tool import ShellConfig, ShellExecutor, create_shell_tools

__all__ = [
    "ToolHandler",
    "Tool",
    "ToolParameter",
    "ToolResult",
    "ToolRegistry",
    "FileManager",
    "create_file_tools",
    "ShellConfig",
    "ShellExecutor",
    "create_shell_tools",
]
