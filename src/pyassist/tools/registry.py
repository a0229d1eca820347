from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from .base import Tool, ToolSpec
from .contract import ErrorCode, ToolError, make_error


def _format_validation_error(tool_name: str, err) -> str:
    loc = ".".join(str(p) for p in err.absolute_path)
    where = f" at '{loc}'" if loc else ""
    return f"Invalid arguments for '{tool_name}'{where}: {err.message}"


@dataclass
class ToolRegistry:
    _tools: Dict[str, Tool] = None  # type: ignore
    _validators: Dict[str, Draft202012Validator] = None  # type: ignore

    def __post_init__(self):
        if self._tools is None:
            self._tools = {}
        if self._validators is None:
            self._validators = {}

    def register(self, tool: Tool) -> None:
        name = tool.spec.name
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        Draft202012Validator.check_schema(tool.spec.parameters)
        self._tools[name] = tool
        self._validators[name] = Draft202012Validator(tool.spec.parameters)

    def get(self, name: str) -> Tool:
        if name not in self._tools:
            raise KeyError(f"Unknown tool: {name}")
        return self._tools[name]

    def get_optional(self, name: str) -> Optional[Tool]:
        """Return a tool if registered, otherwise None."""
        return self._tools.get(name)

    def names(self) -> list[str]:
        return sorted(self._tools.keys())

    def list_specs(self, *, include_stubs: bool = False) -> list[ToolSpec]:
        return [t.spec for t in self._tools.values() if include_stubs or t.spec.status != "stub"]

    def validate(self, name: str, args: Any) -> ToolError | None:
        """Check args against the tool's JSON schema.

        Returns None when valid, UNKNOWN_TOOL for unregistered names and
        VALIDATION_ERROR with the most relevant schema error otherwise.
        """
        validator = self._validators.get(name)
        if validator is None:
            return make_error(ErrorCode.UNKNOWN_TOOL, f"Unknown tool: {name}")
        if not isinstance(args, dict):
            return make_error(ErrorCode.VALIDATION_ERROR, f"Arguments for '{name}' must be an object.")
        err = best_match(validator.iter_errors(args))
        if err is None:
            return None
        return make_error(ErrorCode.VALIDATION_ERROR, _format_validation_error(name, err))
