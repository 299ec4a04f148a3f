from __future__ import annotations
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS runs(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  started_at TEXT NOT NULL,
  finished_at TEXT,
  cmd TEXT NOT NULL,
  config_hash TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS events(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  run_id INTEGER NOT NULL,
  ts TEXT NOT NULL,
  level TEXT NOT NULL,
  msg TEXT NOT NULL,
  FOREIGN KEY(run_id) REFERENCES runs(id)
);
CREATE TABLE IF NOT EXISTS file_results(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  run_id INTEGER NOT NULL,
  path TEXT NOT NULL,
  status TEXT NOT NULL,
  functions INTEGER,
  calls INTEGER,
  error TEXT,
  FOREIGN KEY(run_id) REFERENCES runs(id)
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat()


@dataclass
class Run:
    id: int


class RunLogger:
    def __init__(self, path: str, echo: bool = False):
        self.path = path
        self.echo = echo
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(path)
        self.conn.executescript(SCHEMA)
        self.conn.commit()
        self._run_id: int | None = None

    @property
    def run_id(self) -> int | None:
        return self._run_id

    def start(self, cmd: str, config_hash: str) -> Run:
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO runs(started_at, cmd, config_hash) VALUES (?, ?, ?)",
            (_now(), cmd, config_hash),
        )
        self.conn.commit()
        self._run_id = cur.lastrowid
        return Run(id=self._run_id)

    def log(self, level: str, msg: str):
        assert self._run_id is not None
        ts = _now()
        self.conn.execute(
            "INSERT INTO events(run_id, ts, level, msg) VALUES (?, ?, ?, ?)",
            (self._run_id, ts, level.upper(), msg),
        )
        self.conn.commit()
        if self.echo:
            print(f"[{ts}] {level.upper():5s} {msg}")

    def log_file(self, *, path: str, status: str, functions: int = 0, calls: int = 0,
                 error: str | None = None):
        """One row per translation unit; failures do not abort the run."""
        assert self._run_id is not None
        self.conn.execute(
            "INSERT INTO file_results(run_id, path, status, functions, calls, error) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (self._run_id, path, status, int(functions), int(calls), (error or "")[:1000] or None),
        )
        self.conn.commit()

    def finish(self):
        if self._run_id is not None:
            ts = _now()
            self.conn.execute(
                "UPDATE runs SET finished_at=? WHERE id=?",
                (ts, self._run_id),
            )
            self.conn.commit()
            if self.echo:
                print(f"[{ts}] FINISH run_id={self._run_id}")
        self.conn.close()
