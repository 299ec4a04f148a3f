from __future__ import annotations
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List
import hashlib
import io
import yaml
from .graph import AnalysisOptions
from .sequence import clamp_depth, DEFAULT_DEPTH

DEFAULT_CONFIG = "config.example.yaml"
TRUE_WORDS = {"on", "true", "yes", "1"}


def _flag(value) -> bool:
    # quoted YAML values arrive as strings: "off" must stay off
    if isinstance(value, str):
        return value.strip().lower() in TRUE_WORDS
    return bool(value)


@dataclass
class AnalysisCfg:
    include_stdlib_leaves: bool = False
    indirect_label_with_hint: bool = False
    sequence_max_depth: int = DEFAULT_DEPTH
    sequence_root: str = ""  # empty: "main" if present, else first node

    def __post_init__(self):
        self.include_stdlib_leaves = _flag(self.include_stdlib_leaves)
        self.indirect_label_with_hint = _flag(self.indirect_label_with_hint)
        self.sequence_max_depth = clamp_depth(self.sequence_max_depth)
        root = self.sequence_root
        self.sequence_root = "" if root is None else str(root).strip()

    def options(self) -> AnalysisOptions:
        return AnalysisOptions(
            include_stdlib_leaves=_flag(self.include_stdlib_leaves),
            indirect_label_with_hint=_flag(self.indirect_label_with_hint),
        )


@dataclass
class OutputCfg:
    # json | puml | both
    emit: str = "both"
    out_dir: str = "./out"


@dataclass
class ParsingCfg:
    include_ext: List[str] = field(
        default_factory=lambda: [".c", ".cc", ".cpp", ".cxx", ".h", ".hpp"]
    )
    # only definitions in these files count as user code
    user_ext: List[str] = field(default_factory=lambda: [".c", ".cc", ".cpp", ".cxx"])


@dataclass
class RuntimeCfg:
    sqlite_path: str = "./out/runlog.sqlite"
    store_path: str = "./out/callseq.db"


def _section(cls, src: dict | None):
    # unknown keys are ignored so older configs keep loading
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in (src or {}).items() if k in known})


@dataclass
class Config:
    analysis: AnalysisCfg = field(default_factory=AnalysisCfg)
    output: OutputCfg = field(default_factory=OutputCfg)
    parsing: ParsingCfg = field(default_factory=ParsingCfg)
    runtime: RuntimeCfg = field(default_factory=RuntimeCfg)

    @staticmethod
    def load(path: str | None) -> "Config":
        if not path or (path == DEFAULT_CONFIG and not Path(path).exists()):
            return Config()
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return Config(
            analysis=_section(AnalysisCfg, data.get("analysis")),
            output=_section(OutputCfg, data.get("output")),
            parsing=_section(ParsingCfg, data.get("parsing")),
            runtime=_section(RuntimeCfg, data.get("runtime")),
        )

    def hash(self) -> str:
        buf = io.StringIO()
        yaml.safe_dump(
            {
                "analysis": self.analysis.__dict__,
                "output": self.output.__dict__,
                "parsing": self.parsing.__dict__,
                "runtime": self.runtime.__dict__,
            },
            buf,
            sort_keys=True,
        )
        return hashlib.sha256(buf.getvalue().encode()).hexdigest()[:12]
