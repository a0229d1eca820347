from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import yaml

from .openai_compat import OpenAICompatProvider


_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")

BASE_URL_KEY = "ASSISTANT_BASE_URL"
MODEL_KEY = "ASSISTANT_MODEL"
API_KEY_KEY = "ASSISTANT_API_KEY"


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    base_url: str
    model: str
    api_key: str


class ProviderRegistry:
    def __init__(self) -> None:
        self._items: Dict[str, ProviderConfig] = {}

    def add(self, cfg: ProviderConfig) -> None:
        key = cfg.name.strip().lower()
        if not key:
            raise ValueError("Provider name cannot be empty.")
        self._items[key] = cfg

    def get(self, name: str) -> ProviderConfig:
        key = (name or "").strip().lower()
        if not key:
            raise ValueError("Missing --provider.")
        if key not in self._items:
            known = ", ".join(sorted(self._items.keys())) or "(none)"
            raise ValueError(f"Unknown provider '{name}'. Known providers: {known}")
        return self._items[key]

    def names(self) -> list[str]:
        return sorted(self._items.keys())


def _expand_env_placeholders(s: str) -> str:
    def repl(m: re.Match) -> str:
        var = m.group(1)
        val = os.getenv(var)
        if not val:
            raise ValueError(f"Placeholder '${{{var}}}' not found in environment or is empty.")
        return val

    return _ENV_PATTERN.sub(repl, s)


def load_provider_registry(yaml_path: str | Path) -> ProviderRegistry:
    """Read a `providers:` mapping of name -> {ASSISTANT_BASE_URL, ASSISTANT_MODEL, ASSISTANT_API_KEY}."""
    p = Path(yaml_path).expanduser().resolve()
    if not p.exists():
        raise FileNotFoundError(f"Config YAML not found: {p}")

    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    providers = data.get("providers") if isinstance(data, dict) else None
    if not isinstance(providers, dict) or not providers:
        raise ValueError("YAML must contain a non-empty 'providers:' mapping.")

    reg = ProviderRegistry()

    for name, cfg in providers.items():
        if not isinstance(cfg, dict):
            raise ValueError(f"providers.{name} must be a mapping/dict.")

        values = {k: str(cfg.get(k) or "").strip() for k in (BASE_URL_KEY, MODEL_KEY, API_KEY_KEY)}
        missing = [k for k, v in values.items() if not v]
        if missing:
            raise ValueError(f"providers.{name} missing required field(s): {', '.join(missing)}")

        values = {k: _expand_env_placeholders(v) for k, v in values.items()}
        if not values[API_KEY_KEY]:
            raise ValueError(f"providers.{name} api_key resolved to empty string.")

        reg.add(
            ProviderConfig(
                name=str(name),
                base_url=values[BASE_URL_KEY],
                model=values[MODEL_KEY],
                api_key=values[API_KEY_KEY],
            )
        )

    return reg


def resolve_provider(
    provider: Optional[str],
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    yaml_path: Optional[Path] = None,
) -> OpenAICompatProvider | None:
    """
    Build the completion provider, or None when nothing is configured.

    Priority:
      - explicit overrides (model/base_url/api_key)
      - YAML (by provider name)
      - ASSISTANT_* environment variables
    """
    cfg: ProviderConfig | None = None
    if provider:
        path = (yaml_path or Path("pyassist.yaml")).expanduser().resolve()
        cfg = load_provider_registry(path).get(provider)

    final_model = model or (cfg.model if cfg else None) or os.getenv(MODEL_KEY)
    final_base_url = base_url or (cfg.base_url if cfg else None) or os.getenv(BASE_URL_KEY)
    final_api_key = api_key or (cfg.api_key if cfg else None) or os.getenv(API_KEY_KEY)

    if not (final_model or final_base_url or final_api_key):
        return None
    if not final_model or not final_base_url or not final_api_key:
        raise RuntimeError(
            f"Incomplete provider config: need {MODEL_KEY}, {BASE_URL_KEY} and {API_KEY_KEY} "
            "(or a --provider entry in pyassist.yaml)."
        )

    return OpenAICompatProvider(
        model=final_model,
        base_url=final_base_url,
        api_key=final_api_key,
        provider_name=cfg.name if cfg else "env",
    )
