from __future__ import annotations

from dataclasses import dataclass

from ..config.models import AssistantConfig
from .models import AgentProfile

DEFAULT_AGENT = "supervisor"

_TOOL_RULES = (
    "Strictly adhere to the tool schemas for arguments. "
    "Do not say \"I will...\" or \"Let me...\" without making the tool call."
)


def _default_agents() -> list[AgentProfile]:
    return [
        AgentProfile(
            name="system",
            description="Direct CLI access with all tools.",
            system_prompt="You are a helpful assistant with access to all system tools. " + _TOOL_RULES,
            tools=None,
        ),
        AgentProfile(
            name="supervisor",
            description="Triage and delegation agent.",
            system_prompt=(
                "You are the Supervisor. Handle requests directly when a tool fits "
                "(tasks, memory, math, time, weather, web pages) and delegate multi-step "
                "file or code work to the coder, task reorganization to the organizer. " + _TOOL_RULES
            ),
            tools=(
                "delegate_to_coder",
                "delegate_to_organizer",
                "delegate_to_assistant",
                "calculate",
                "get_time",
                "get_weather",
                "task_list",
                "task_add",
                "task_done",
                "remember",
                "recall",
                "read_url",
            ),
        ),
        AgentProfile(
            name="coder",
            description="Software engineer; handles code, files, commands and git.",
            system_prompt=(
                "You are the Coder. Use list_files and grep to explore before editing, run_cmd for "
                "commands and git_status/git_diff/git_log for version control. Be concise. " + _TOOL_RULES
            ),
            tools=(
                "read_file",
                "write_file",
                "list_files",
                "delete_file",
                "move_file",
                "copy_file",
                "file_info",
                "create_directory",
                "grep",
                "run_cmd",
                "git_status",
                "git_diff",
                "git_log",
                "read_url",
            ),
        ),
        AgentProfile(
            name="organizer",
            description="Tasks, reminders and long-term memory.",
            system_prompt=(
                "You are the Organizer. You manage the user's tasks and long-term memory. "
                "Use task_add/task_list for todos and remember/recall for memory. " + _TOOL_RULES
            ),
            tools=(
                "task_add",
                "task_list",
                "task_done",
                "remember",
                "recall",
                "memory_search",
                "reminder_add",
            ),
        ),
        AgentProfile(
            name="assistant",
            description="General assistant with memory and tasks (limited functionality).",
            system_prompt="You are a polite personal assistant. You can help with memory and tasks. " + _TOOL_RULES,
            tools=("remember", "recall", "task_add", "task_list", "read_url"),
        ),
    ]


@dataclass
class AgentRegistry:
    _agents: dict[str, AgentProfile]
    default_agent: str = DEFAULT_AGENT

    @staticmethod
    def from_defaults(config: AssistantConfig | None = None) -> "AgentRegistry":
        agents = {a.name: a for a in _default_agents()}
        default_agent = DEFAULT_AGENT

        if config is not None:
            if config.default_agent:
                default_agent = config.default_agent
            # merge custom agents from config; unset fields keep the built-in values
            for name, ac in config.agents.items():
                base = agents.get(name)
                agents[name] = AgentProfile(
                    name=name,
                    description=ac.description or (base.description if base else f"Custom agent: {name}"),
                    system_prompt=ac.system_prompt or (base.system_prompt if base else ""),
                    tools=tuple(ac.tools) if ac.tools is not None else (base.tools if base else ()),
                    model=ac.model or (base.model if base else None),
                )

        return AgentRegistry(_agents=agents, default_agent=default_agent)

    def names(self) -> list[str]:
        return sorted(self._agents.keys())

    def get(self, name: str | None) -> AgentProfile:
        if name and name in self._agents:
            return self._agents[name]
        # fallback
        return self._agents.get(self.default_agent, self._agents[DEFAULT_AGENT])
