from __future__ import annotations
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Tuple
from .classifier import is_indirect, indirect_hint, indirect_label
from .frontend.events import CallObserved, Event, FunctionDeclared
from .graph import AnalysisOptions, GraphBuilder, foreign_callers

SCHEMA = """
CREATE TABLE IF NOT EXISTS functions(
  usr TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  file TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS calls(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  caller_usr TEXT NOT NULL,
  callee_usr TEXT NOT NULL,
  callee_name TEXT NOT NULL,
  file TEXT,
  line INTEGER,
  col INTEGER
);
CREATE INDEX IF NOT EXISTS idx_call_caller ON calls(caller_usr);
CREATE INDEX IF NOT EXISTS idx_call_callee ON calls(callee_usr);
"""


class StoreError(Exception):
    """Open/prepare/step failure in the model store. Never retried."""


@dataclass
class FunctionRow:
    usr: str
    name: str
    file: str


@dataclass
class CallRow:
    caller_usr: str
    callee_usr: str
    callee_name: str
    file: str = ""
    line: int = 0
    col: int = 0


@dataclass
class StoredModel:
    functions: List[FunctionRow] = field(default_factory=list)
    calls: List[CallRow] = field(default_factory=list)


def symbol_id(name: str, file: str = "", static: bool = False) -> str:
    """USR-like id: file-scoped for static functions, global otherwise."""
    if static and file:
        return f"c:{file}@F@{name}"
    return f"c:@F@{name}"


def rows_from_events(events: Iterable[Event], with_hint: bool = True) -> Tuple[List[FunctionRow], List[CallRow]]:
    """
    Turn front-end events into store rows. Only user-code definitions become
    function rows. Calls are deduplicated by (caller, callee, file, line, col),
    so repeated indexing of one call site does not double it.
    """
    funcs: List[FunctionRow] = []
    local: Dict[tuple[str, str], str] = {}  # (file, name) -> usr of a static definition
    events = list(events)
    foreign = foreign_callers(events)
    for ev in events:
        if isinstance(ev, FunctionDeclared) and ev.name:
            if not ev.user_code:
                continue
            usr = symbol_id(ev.name, ev.file, ev.static)
            if ev.static:
                local[(ev.file, ev.name)] = usr
            funcs.append(FunctionRow(usr=usr, name=ev.name, file=ev.file))

    calls: List[CallRow] = []
    seen: set[tuple] = set()
    for ev in events:
        if not isinstance(ev, CallObserved) or not ev.caller or ev.callee == "":
            continue
        if ev.caller in foreign:
            continue
        caller_usr = local.get((ev.file, ev.caller)) or symbol_id(ev.caller)
        if ev.callee is None:
            name = indirect_label(ev.hint, with_hint)
            callee_usr = name
        else:
            name = ev.callee
            callee_usr = local.get((ev.file, name)) or symbol_id(name)
        key = (caller_usr, callee_usr, ev.file, ev.line, ev.column)
        if key in seen:
            continue
        seen.add(key)
        calls.append(CallRow(caller_usr, callee_usr, name, ev.file, ev.line, ev.column))
    return funcs, calls


class SqliteStore:
    def __init__(self, path: str):
        self.path = path
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(path)
            self.conn.executescript(SCHEMA)
            self.conn.commit()
        except (OSError, sqlite3.Error) as ex:
            raise StoreError(f"cannot open store {path}: {ex}") from ex

    def __enter__(self) -> "SqliteStore":
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.conn.close()

    def insert_functions(self, funcs: Iterable[FunctionRow]) -> int:
        """Idempotent: keyed by usr, the first definition wins."""
        try:
            with self.conn:
                cur = self.conn.executemany(
                    "INSERT OR IGNORE INTO functions(usr, name, file) VALUES (?, ?, ?)",
                    [(f.usr, f.name, f.file) for f in funcs],
                )
            return cur.rowcount
        except sqlite3.Error as ex:
            raise StoreError(f"insert_functions failed: {ex}") from ex

    def insert_calls(self, calls: Iterable[CallRow]) -> int:
        """Append-only; callers deduplicate before inserting."""
        try:
            with self.conn:
                cur = self.conn.executemany(
                    "INSERT INTO calls(caller_usr, callee_usr, callee_name, file, line, col) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    [(c.caller_usr, c.callee_usr, c.callee_name, c.file, c.line, c.col) for c in calls],
                )
            return cur.rowcount
        except sqlite3.Error as ex:
            raise StoreError(f"insert_calls failed: {ex}") from ex

    def load_all(self) -> StoredModel:
        try:
            funcs = [FunctionRow(*r) for r in self.conn.execute(
                "SELECT usr, name, file FROM functions ORDER BY rowid ASC")]
            calls = [CallRow(*r) for r in self.conn.execute(
                "SELECT caller_usr, callee_usr, callee_name, file, line, col FROM calls ORDER BY id ASC")]
        except sqlite3.Error as ex:
            raise StoreError(f"load_all failed: {ex}") from ex
        return StoredModel(functions=funcs, calls=calls)


def _name_of(usr: str) -> str:
    # "c:@F@name" / "c:file@F@name" -> name
    return usr.rsplit("@F@", 1)[-1] if "@F@" in usr else usr


def replay(model: StoredModel, options: AnalysisOptions | None = None) -> GraphBuilder:
    """Rebuild the call graph and call order of a stored model, calls in insertion order."""
    g = GraphBuilder(options=options or AnalysisOptions())
    names = {f.usr: f.name for f in model.functions}
    for f in model.functions:
        g.observe_function(f.name)
    for c in model.calls:
        caller = names.get(c.caller_usr) or _name_of(c.caller_usr)
        if is_indirect(c.callee_name):
            g.observe_call(caller, indirect_label(indirect_hint(c.callee_name), g.options.indirect_label_with_hint))
        else:
            g.observe_call(caller, c.callee_name)
    return g
