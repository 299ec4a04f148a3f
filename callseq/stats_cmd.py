from __future__ import annotations
from collections import Counter, defaultdict
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
import json
import sqlite3
from .classifier import classify, USER, SYSTEM, INDIRECT
from .metrics import load_graph_doc


@dataclass
class GraphStats:
    nodes: int
    edges: int
    user_nodes: int
    system_nodes: int
    indirect_nodes: int
    leaf_callers: int       # callers with no recorded callees
    self_recursive: list    # nodes calling themselves
    top_callers: list # list[[src, outdeg]]
    top_callees: list # list[[dst, indeg]]
    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


def summarize_graph(graph_file: str) -> GraphStats:
    data = load_graph_doc(graph_file)
    cg = data.get("callGraph", {}) or {}
    nodes = set(cg)
    for dsts in cg.values():
        nodes.update(dsts or [])
    edges = [(src, dst) for src, dsts in cg.items() for dst in (dsts or [])]
    kinds = Counter(classify(n) for n in nodes)
    out_deg = Counter(src for src, _ in edges)
    in_deg = Counter(dst for _, dst in edges)
    return GraphStats(
        nodes=len(nodes),
        edges=len(edges),
        user_nodes=kinds.get(USER, 0),
        system_nodes=kinds.get(SYSTEM, 0),
        indirect_nodes=kinds.get(INDIRECT, 0),
        leaf_callers=sum(1 for dsts in cg.values() if not dsts),
        self_recursive=sorted(src for src, dst in edges if src == dst),
        top_callers=[[k, v] for k, v in out_deg.most_common(5)],
        top_callees=[[k, v] for k, v in in_deg.most_common(5)],
    )


@dataclass
class RunAgg:
    by_cmd: dict # {cmd: {count, mean_sec, p50_sec, p95_sec}}
    failed_files: int = 0
    def to_json(self) -> str:
        return json.dumps({"by_cmd": self.by_cmd, "failed_files": self.failed_files}, indent=2)


def summarize_runs(sqlite_path: str) -> RunAgg:
    p = Path(sqlite_path)
    if not p.exists():
        return RunAgg(by_cmd={})
    conn = sqlite3.connect(str(p))
    try:
        buckets: dict[str, list[float]] = defaultdict(list)
        for cmd, start_s, end_s in conn.execute("SELECT cmd, started_at, finished_at FROM runs"):
            if not (start_s and end_s):
                continue
            try:
                dur = (datetime.fromisoformat(end_s) - datetime.fromisoformat(start_s)).total_seconds()
            except ValueError:
                continue
            buckets[cmd].append(max(0.0, dur))
        failed = conn.execute("SELECT COUNT(*) FROM file_results WHERE status != 'ok'").fetchone()[0]
    finally:
        conn.close()
    def pct(xs: list[float], p: float) -> float:
        if not xs: return 0.0
        xs = sorted(xs)
        i = int(round((p / 100.0) * (len(xs) - 1)))
        return xs[i]
    out: dict[str, dict] = {}
    for cmd, xs in buckets.items():
        if not xs: continue
        mean = sum(xs) / len(xs)
        out[cmd] = {"count": len(xs), "mean_sec": round(mean, 3),
                    "p50_sec": round(pct(xs, 50), 3),
                    "p95_sec": round(pct(xs, 95), 3)}
    return RunAgg(by_cmd=out, failed_files=int(failed))


def print_graph_stats(gs: GraphStats):
    print(f"Nodes: {gs.nodes}")
    print(f"  User: {gs.user_nodes}")
    print(f"  System: {gs.system_nodes}")
    print(f"  Indirect: {gs.indirect_nodes}")
    print(f"Edges: {gs.edges}")
    print(f"Leaf callers: {gs.leaf_callers}")
    if gs.self_recursive:
        print("Self-recursive: " + ", ".join(gs.self_recursive))
    if gs.top_callers:
        print("Top callers (out-degree):")
        for n, d in gs.top_callers:
            print(f"  - {n}: {d}")
    if gs.top_callees:
        print("Top callees (in-degree):")
        for n, d in gs.top_callees:
            print(f"  - {n}: {d}")


def print_run_stats(ra: RunAgg):
    if not ra.by_cmd:
        print("No completed runs found.")
        return
    print("Run durations by command:")
    for cmd, m in ra.by_cmd.items():
        print(f"  {cmd}: count={m['count']} mean={m['mean_sec']}s p50={m['p50_sec']}s p95={m['p95_sec']}s")
    print(f"Failed files: {ra.failed_files}")
