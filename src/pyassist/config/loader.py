from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir
from rich.console import Console

from .models import AgentConfig, AssistantConfig

APP_NAME = "pyassist"

err_console = Console(stderr=True)


def _candidate_paths(cwd: Path) -> list[Path]:
    # project-level (higher priority)
    return [
        cwd / ".pyassist.json",
        cwd / "pyassist.json",
    ]


def _global_candidate_paths() -> list[Path]:
    return [Path(user_config_dir(APP_NAME)) / "pyassist.json"]


def _load_json(p: Path) -> dict[str, Any] | None:
    try:
        obj = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        err_console.print(f"[yellow]Warning[/yellow]: ignoring config file {p}: {e}")
        return None
    if isinstance(obj, dict):
        return obj
    err_console.print(f"[yellow]Warning[/yellow]: ignoring config file {p}: not a JSON object")
    return None


def _merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge_dicts(out[k], v)  # type: ignore
        else:
            out[k] = v
    return out


def _positive_int(v: Any) -> int | None:
    if isinstance(v, int) and not isinstance(v, bool) and v > 0:
        return v
    return None


def load_assistant_config(*, cwd: Path, explicit_path: Path | None = None) -> AssistantConfig:
    """Load behavior config.

    Merge order: global < project < explicit_path.
    """
    merged: dict[str, Any] = {}
    loaded_from: Path | None = None

    for p in _global_candidate_paths():
        if p.is_file():
            obj = _load_json(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from = p

    for p in _candidate_paths(cwd):
        if p.is_file():
            obj = _load_json(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from = p
                break  # first match wins for project-level

    if explicit_path is not None:
        p = explicit_path.expanduser().resolve()
        if p.is_file():
            obj = _load_json(p)
            if obj is not None:
                merged = _merge_dicts(merged, obj)
                loaded_from = p
        else:
            err_console.print(f"[yellow]Warning[/yellow]: config file not found: {p}")

    cfg = AssistantConfig()
    cfg.loaded_from = loaded_from
    base = loaded_from.parent if loaded_from is not None else cwd

    da = merged.get("default_agent")
    if isinstance(da, str) and da.strip():
        cfg.default_agent = da.strip()

    dd = merged.get("data_dir")
    if isinstance(dd, str) and dd.strip():
        cfg.data_dir = (base / Path(dd).expanduser()).resolve()

    pp = merged.get("permissions_path")
    if isinstance(pp, str) and pp.strip():
        cfg.permissions_path = (base / Path(pp).expanduser()).resolve()

    for key in ("memory_limit", "max_read_size", "max_write_size"):
        v = _positive_int(merged.get(key))
        if v is not None:
            setattr(cfg, key, v)

    ct = merged.get("command_timeout")
    if isinstance(ct, (int, float)) and not isinstance(ct, bool) and ct > 0:
        cfg.command_timeout = float(ct)

    for key in ("auto_dispatch", "enforce_actions"):
        v = merged.get(key)
        if isinstance(v, bool):
            setattr(cfg, key, v)

    tf = merged.get("tool_format")
    if tf in ("standard", "compact"):
        cfg.tool_format = tf

    agents = merged.get("agents", {})
    if isinstance(agents, dict):
        for name, obj in agents.items():
            if not isinstance(name, str):
                continue
            ac = AgentConfig.from_obj(name, obj)
            if ac is not None:
                cfg.agents[name] = ac

    return cfg
