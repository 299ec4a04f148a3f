from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List
from .frontend import Event, FrontendError, FunctionDeclared, CallObserved, Macro, parse_c, collect_macros
from .utils import is_source_file, rel_path

HEADER_EXT = {".h", ".hh", ".hpp", ".hxx"}

FRONTENDS: Dict[str, Callable] = {}
for ext in [".c", ".cc", ".cpp", ".cxx", ".h", ".hh", ".hpp", ".hxx"]:
    FRONTENDS[ext] = parse_c


@dataclass
class FileResult:
    path: str
    status: str  # ok | fail
    functions: int = 0
    calls: int = 0
    error: str | None = None


@dataclass
class ScanResult:
    events: List[Event] = field(default_factory=list)
    files: List[FileResult] = field(default_factory=list)

    @property
    def failures(self) -> List[FileResult]:
        return [f for f in self.files if f.status != "ok"]


class Scanner:
    def __init__(self, include_ext: list[str], user_ext: list[str] | None = None):
        self.include_ext = set(e.lower() for e in include_ext)
        self.user_ext = [e.lower() for e in (user_ext or [".c", ".cc", ".cpp", ".cxx"])]

    def _files(self, paths: Iterable[str]) -> List[tuple[Path, Path]]:
        """(root, file) pairs; folders are walked, files are taken as given."""
        out: List[tuple[Path, Path]] = []
        for raw in paths:
            p = Path(raw).resolve()
            if p.is_dir():
                for f in sorted(p.rglob("*")):
                    if f.is_file() and is_source_file(f, self.include_ext):
                        out.append((p, f))
            else:
                # a missing path is reported as a per-file failure by scan()
                out.append((p.parent, p))
        return out

    def _read(self, f: Path) -> str:
        try:
            return f.read_text(encoding="utf-8", errors="ignore")
        except OSError as ex:
            raise FrontendError(f.as_posix(), f"unreadable: {ex.strerror or ex}")

    def scan(self, paths: Iterable[str], logger=None) -> ScanResult:
        files = self._files(paths)

        # headers first: their function-like macros apply to every unit
        macros: Dict[str, Macro] = {}
        for _, f in files:
            if f.suffix.lower() in HEADER_EXT and f.is_file():
                try:
                    macros.update(collect_macros(self._read(f)))
                except FrontendError:
                    continue  # reported when the header itself is parsed

        res = ScanResult()
        for root, f in files:
            rel = rel_path(root, f)
            parser = FRONTENDS.get(f.suffix.lower())
            if not parser:
                continue
            try:
                events = parser(rel, self._read(f), self.user_ext, macros)
            except FrontendError as ex:
                res.files.append(FileResult(path=rel, status="fail", error=ex.reason))
                if logger:
                    logger.log("WARN", f"[FAIL] {rel} : {ex.reason}")
                continue
            res.events.extend(events)
            fr = FileResult(
                path=rel,
                status="ok",
                functions=sum(1 for e in events if isinstance(e, FunctionDeclared)),
                calls=sum(1 for e in events if isinstance(e, CallObserved)),
            )
            res.files.append(fr)
            if logger:
                logger.log("INFO", f"[OK] {rel} (functions={fr.functions}, calls={fr.calls})")
        return res
