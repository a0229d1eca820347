from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Literal

Role = Literal["system", "user", "assistant", "tool"]

ROLES = ("system", "user", "assistant", "tool")


@dataclass
class Message:
    role: Role
    content: str
    # tool messages: which tool produced the result
    name: str | None = None

    @staticmethod
    def from_obj(obj: Any) -> "Message | None":
        if not isinstance(obj, dict):
            return None
        role = obj.get("role")
        content = obj.get("content")
        name = obj.get("name")
        if role not in ROLES or not isinstance(content, str):
            return None
        return Message(role=role, content=content, name=name if isinstance(name, str) else None)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name:
            d["name"] = self.name
        return d

    def to_openai(self) -> dict[str, Any]:
        # Tool results are replayed as assistant text; the compact tool-call
        # protocol carries no call ids to pair them with.
        if self.role == "tool":
            return {"role": "assistant", "content": f"[tool {self.name or '?'} result] {self.content}"}
        return {"role": self.role, "content": self.content}
