from __future__ import annotations
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Iterable, List, Union
import yaml


class FrontendError(Exception):
    """A translation unit could not be read or parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


@dataclass
class FunctionDeclared:
    name: str
    file: str = ""
    line: int = 0
    user_code: bool = True
    static: bool = False


@dataclass
class CallObserved:
    caller: str
    callee: str | None      # None: no direct callee resolvable
    hint: str | None = None  # variable/expression naming the callee, if any
    file: str = ""
    line: int = 0
    column: int = 0


Event = Union[FunctionDeclared, CallObserved]


def event_to_dict(ev: Event) -> dict:
    d = asdict(ev)
    d["type"] = "function" if isinstance(ev, FunctionDeclared) else "call"
    return d


def event_from_dict(d: dict) -> Event | None:
    kind = (d.get("type") or "").strip().lower()
    if kind == "function":
        return FunctionDeclared(
            name=str(d.get("name") or ""),
            file=str(d.get("file") or ""),
            line=int(d.get("line") or 0),
            user_code=bool(d.get("user_code", True)),
            static=bool(d.get("static", False)),
        )
    if kind == "call":
        callee = d.get("callee")
        return CallObserved(
            caller=str(d.get("caller") or ""),
            callee=None if callee is None else str(callee),
            hint=d.get("hint"),
            file=str(d.get("file") or ""),
            line=int(d.get("line") or 0),
            column=int(d.get("column") or 0),
        )
    # unknown record types are skipped, not fatal
    return None


def load_events(path: str) -> List[Event]:
    """Read an event file (YAML, or JSON which YAML also accepts)."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    raw = data.get("events", []) if isinstance(data, dict) else data
    out: List[Event] = []
    for d in raw or []:
        if not isinstance(d, dict):
            continue
        ev = event_from_dict(d)
        if ev is not None:
            out.append(ev)
    return out


def dump_events(events: Iterable[Event]) -> str:
    return yaml.safe_dump({"events": [event_to_dict(e) for e in events]}, sort_keys=False)
