from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple


@dataclass(frozen=True)
class ElementInfo:
    z: int
    symbol: str
    name: str


def _default_path() -> Path:
    return Path(__file__).resolve().parent / "elements.json"


@lru_cache(maxsize=None)
def load_elements(path: Optional[Path] = None) -> Tuple[ElementInfo, ...]:
    """Read the periodic table definitions, ordered by atomic number.

    Raises ValueError when the table is not contiguous from Z=1, since
    fusion prerequisites assume Z-1 always exists.
    """
    if path is None:
        path = _default_path()
    raw = json.loads(path.read_text(encoding="utf-8"))
    entries = sorted(
        (ElementInfo(z=int(e["z"]), symbol=e["symbol"], name=e["name"]) for e in raw.get("elements", [])),
        key=lambda info: info.z,
    )
    for expected, info in enumerate(entries, start=1):
        if info.z != expected:
            raise ValueError(f"element table is not contiguous at Z={expected} (found Z={info.z})")
    return tuple(entries)
