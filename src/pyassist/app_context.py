from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from platformdirs import user_data_dir

from .agents.models import AgentProfile
from .agents.registry import AgentRegistry
from .config.loader import APP_NAME, load_assistant_config
from .config.models import AssistantConfig
from .dispatch.dispatcher import IntentDispatcher
from .events.store import EventStore
from .llm.base import CompletionProvider
from .llm.factory import resolve_provider
from .session.store import SessionStore
from .tools.builtin import register_builtin_tools
from .tools.context import ExecutorContext, Limits
from .tools.executor import ToolExecutor
from .tools.permissions import load_permissions
from .tools.registry import ToolRegistry


@dataclass
class AppContext:
    cwd: Path
    config: AssistantConfig
    provider: CompletionProvider | None
    tools: ToolRegistry
    executor: ToolExecutor
    dispatcher: IntentDispatcher
    agents: AgentRegistry
    agent: AgentProfile
    session: SessionStore
    events: EventStore | None = None
    trace: bool = False
    stream: bool = False
    config_path: Optional[Path] = None

    def agent_tool_specs(self):
        return [s for s in self.tools.list_specs() if self.agent.allows(s.name)]

    @staticmethod
    def from_env(
        cwd: Path,
        session_id: str | None = None,
        provider: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        agent_name: str | None = None,
        behavior_config: Path | None = None,
        permissions_path: Path | None = None,
        data_dir: Path | None = None,
        trace: bool = False,
        stream: bool = False,
        config_path: Optional[Path] = None,
    ) -> "AppContext":
        cwd = Path(cwd).expanduser().resolve()
        if config_path:
            config_path = config_path.expanduser().resolve()

        config = load_assistant_config(cwd=cwd, explicit_path=behavior_config)
        root = Path(data_dir or config.data_dir or user_data_dir(APP_NAME)).expanduser()

        agents = AgentRegistry.from_defaults(config)
        agent = agents.get(agent_name or config.default_agent)

        provider_client = resolve_provider(
            provider=provider,
            model=model,
            base_url=base_url,
            api_key=api_key,
            yaml_path=config_path,
        )
        if provider_client is not None and agent.model and not model:
            provider_client.model = agent.model

        tools = ToolRegistry()
        register_builtin_tools(tools)

        permissions = load_permissions(cwd, permissions_path or config.permissions_path)
        exec_ctx = ExecutorContext.build(
            cwd,
            permissions,
            root,
            limits=Limits(max_read_size=config.max_read_size, max_write_size=config.max_write_size),
            memory_limit=config.memory_limit,
            command_timeout=config.command_timeout,
        )

        session = SessionStore.open(session_id=session_id, root=root)
        events = EventStore.open(session.session_id, root=root)

        if provider_client is not None and hasattr(provider_client, "on_retry"):
            def _on_retry(attempt: int, delay_ms: int, err: BaseException) -> None:
                events.append("llm.retry", {"attempt": attempt, "delay_ms": delay_ms, "error": str(err)[:500]})

            provider_client.on_retry = _on_retry

        return AppContext(
            cwd=cwd,
            config=config,
            provider=provider_client,
            tools=tools,
            executor=ToolExecutor(tools, exec_ctx, events=events, trace=trace),
            dispatcher=IntentDispatcher(
                tools, auto_dispatch=config.auto_dispatch, enforce_actions=config.enforce_actions
            ),
            agents=agents,
            agent=agent,
            session=session,
            events=events,
            trace=trace,
            stream=stream,
            config_path=config_path,
        )
