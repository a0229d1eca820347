from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AgentProfile:
    name: str
    description: str
    system_prompt: str = ""
    # None means every registered tool.
    tools: tuple[str, ...] | None = None
    model: str | None = None

    def allows(self, tool_name: str) -> bool:
        return self.tools is None or tool_name in self.tools
