from __future__ import annotations

import os
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable


@dataclass
class StatCache:
    """LRU cache of os.stat results with a short TTL.

    Missing paths are cached too (as None). Handlers that create, remove or
    rename a path must call invalidate() for it afterwards.
    """

    max_size: int = 100
    ttl: float = 5.0
    clock: Callable[[], float] = time.monotonic
    _entries: "OrderedDict[str, tuple[os.stat_result | None, float]]" = field(default_factory=OrderedDict)
    _hits: int = 0
    _misses: int = 0

    def get(self, path: Path | str) -> os.stat_result | None:
        key = str(path)
        now = self.clock()
        cached = self._entries.get(key)
        if cached is not None:
            st, stored_at = cached
            if now - stored_at < self.ttl:
                self._entries.move_to_end(key)
                self._hits += 1
                return st
            del self._entries[key]

        self._misses += 1
        try:
            st = os.stat(key)
        except OSError:
            st = None
        self._entries[key] = (st, now)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
        return st

    def invalidate(self, path: Path | str) -> None:
        self._entries.pop(str(path), None)

    def mkdir(self, path: Path) -> list[Path]:
        """mkdir -p that also drops cached misses for every directory it creates."""
        created: list[Path] = []
        cur = Path(path)
        while not cur.exists() and cur != cur.parent:
            created.append(cur)
            cur = cur.parent
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        finally:
            for d in created:
                self.invalidate(d)
        return created[::-1]

    def invalidate_dir(self, path: Path | str) -> None:
        prefix = str(path).rstrip(os.sep) + os.sep
        for key in [k for k in self._entries if k == str(path) or k.startswith(prefix)]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> dict[str, int]:
        return {"size": len(self._entries), "hits": self._hits, "misses": self._misses, "max_size": self.max_size}
