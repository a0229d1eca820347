from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..tools.context import DEFAULT_MAX_READ_SIZE, DEFAULT_MAX_WRITE_SIZE


@dataclass
class AgentConfig:
    name: str
    description: str = ""
    system_prompt: str = ""
    tools: list[str] | None = None
    model: str | None = None

    @staticmethod
    def from_obj(name: str, obj: Any) -> "AgentConfig | None":
        if not isinstance(obj, dict):
            return None
        desc = obj.get("description", "")
        sp = obj.get("system_prompt", "")
        tools = obj.get("tools")
        model = obj.get("model")
        if not isinstance(desc, str) or not isinstance(sp, str):
            return None
        if tools is not None:
            if not isinstance(tools, list):
                return None
            tools = [t.strip() for t in tools if isinstance(t, str) and t.strip()]
        if model is not None and not isinstance(model, str):
            return None
        return AgentConfig(name=name, description=desc, system_prompt=sp, tools=tools, model=model)


@dataclass
class AssistantConfig:
    """Behavior config loaded from JSON (global < project < explicit)."""

    default_agent: str = "supervisor"
    data_dir: Path | None = None
    memory_limit: int = 1000
    max_read_size: int = DEFAULT_MAX_READ_SIZE
    max_write_size: int = DEFAULT_MAX_WRITE_SIZE
    command_timeout: float | None = None
    auto_dispatch: bool = True
    enforce_actions: bool = True
    tool_format: str = "standard"
    permissions_path: Path | None = None
    agents: dict[str, AgentConfig] = field(default_factory=dict)

    loaded_from: Path | None = None
