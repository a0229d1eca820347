from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

from ..agents.models import AgentProfile
from ..tools.base import ToolCall
from ..tools.registry import ToolRegistry
from .intents import DEFAULT_INTENTS, IntentPattern, announces_action

DispatchAction = Literal["pass_through", "auto_dispatch", "enforced_dispatch"]


@dataclass
class DispatchDecision:
    action: DispatchAction
    tool_call: ToolCall | None = None
    debug: dict[str, Any] = field(default_factory=dict)
    # Set when a command parser recognized the input but could not build a call.
    error: str | None = None

    @staticmethod
    def pass_through(**debug: Any) -> "DispatchDecision":
        return DispatchDecision(action="pass_through", debug=dict(debug))


@dataclass
class _Candidate:
    intent: IntentPattern
    call: ToolCall


@dataclass
class IntentDispatcher:
    """Deterministic text-to-tool routing.

    Holds no per-request state. Candidates are kept only when their args pass
    the tool's schema and the agent may use the tool; the highest priority
    wins and a tie between different tools at that priority passes through.
    """

    registry: ToolRegistry
    intents: Sequence[IntentPattern] = DEFAULT_INTENTS
    auto_dispatch: bool = True
    enforce_actions: bool = True

    def __post_init__(self) -> None:
        self.intents = tuple(sorted(self.intents, key=lambda p: p.priority, reverse=True))

    def _is_valid(self, call: ToolCall, agent: AgentProfile) -> bool:
        return agent.allows(call.tool_name) and self.registry.validate(call.tool_name, call.args) is None

    def classify(self, text: str, agent: AgentProfile) -> DispatchDecision:
        """Run the catalogue over text; auto_dispatch on a unique best match."""
        s = (text or "").strip()
        if not s:
            return DispatchDecision.pass_through(reason="empty")

        best: list[_Candidate] = []
        for intent in self.intents:
            if best and intent.priority < best[0].intent.priority:
                break
            parsed = intent.match(s)
            if parsed is None:
                continue
            if parsed.error is not None:
                if not best:
                    return DispatchDecision(
                        action="pass_through", error=parsed.error, debug={"intent": intent.name}
                    )
                continue
            call = ToolCall(tool_name=parsed.tool_name or "", args=parsed.args)
            if self._is_valid(call, agent):
                best.append(_Candidate(intent, call))

        if not best:
            return DispatchDecision.pass_through(reason="no_match")
        tools = {c.call.tool_name for c in best}
        if len(tools) > 1:
            return DispatchDecision.pass_through(
                reason="ambiguous", candidates=sorted(tools), priority=best[0].intent.priority
            )
        chosen = best[0]
        return DispatchDecision(
            action="auto_dispatch",
            tool_call=chosen.call,
            debug={"intent": chosen.intent.name, "priority": chosen.intent.priority, "skipped_llm": True},
        )

    def analyze(self, text: str, agent: AgentProfile, history: Sequence[dict[str, Any]] = ()) -> DispatchDecision:
        if not self.auto_dispatch:
            return DispatchDecision.pass_through(reason="auto_dispatch_disabled")
        return self.classify(text, agent)

    def enforce_action(self, model_reply: str, original_input: str, agent: AgentProfile) -> DispatchDecision | None:
        """Recover a tool call when the model announced an action in prose.

        Only the original input is classified; the reply text is never mined
        for arguments.
        """
        if not self.enforce_actions or not announces_action(model_reply):
            return None
        decision = self.classify(original_input, agent)
        if decision.action != "auto_dispatch" or decision.tool_call is None:
            return None
        debug = dict(decision.debug)
        debug.pop("skipped_llm", None)
        debug["enforce_reason"] = f"model said {model_reply[:40]!r} without calling a tool"
        return DispatchDecision(action="enforced_dispatch", tool_call=decision.tool_call, debug=debug)
