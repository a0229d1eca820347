from __future__ import annotations

from .registry import ToolRegistry

from .builtin_tools.file_read import ReadFileTool
from .builtin_tools.file_write import WriteFileTool
from .builtin_tools.listdir import ListFilesTool
from .builtin_tools.file_delete import DeleteFileTool
from .builtin_tools.file_move import CopyFileTool, MoveFileTool
from .builtin_tools.file_info import FileInfoTool
from .builtin_tools.file_mkdir import CreateDirectoryTool
from .builtin_tools.grep_tool import GrepTool
from .builtin_tools.cmd_tool import RunCmdTool
from .builtin_tools.git_tools import GitDiffTool, GitLogTool, GitStatusTool
from .builtin_tools.memory_tools import MemoryAddTool, MemorySearchTool, RecallTool, RememberTool
from .builtin_tools.task_tools import ReminderAddTool, ReminderListTool, TaskAddTool, TaskDoneTool, TaskListTool
from .builtin_tools.calc_tool import CalculateTool
from .builtin_tools.time_tool import GetTimeTool
from .builtin_tools.weather_tool import GetWeatherTool
from .builtin_tools.webfetch_tool import ReadUrlTool
from .builtin_tools.delegate_tools import delegate_tools


def register_builtin_tools(registry: ToolRegistry) -> None:
    registry.register(ReadFileTool())
    registry.register(WriteFileTool())
    registry.register(ListFilesTool())
    registry.register(DeleteFileTool())
    registry.register(MoveFileTool())
    registry.register(CopyFileTool())
    registry.register(FileInfoTool())
    registry.register(CreateDirectoryTool())
    registry.register(GrepTool())
    registry.register(RunCmdTool())
    registry.register(GitStatusTool())
    registry.register(GitDiffTool())
    registry.register(GitLogTool())
    registry.register(RememberTool())
    registry.register(RecallTool())
    registry.register(MemoryAddTool())
    registry.register(MemorySearchTool())
    registry.register(TaskAddTool())
    registry.register(TaskListTool())
    registry.register(TaskDoneTool())
    registry.register(ReminderAddTool())
    registry.register(ReminderListTool())
    registry.register(CalculateTool())
    registry.register(GetTimeTool())
    registry.register(GetWeatherTool())
    registry.register(ReadUrlTool())
    for tool in delegate_tools():
        registry.register(tool)


def build_registry() -> ToolRegistry:
    registry = ToolRegistry()
    register_builtin_tools(registry)
    return registry
