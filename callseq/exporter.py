from __future__ import annotations
import json
from pathlib import Path
from .graph import GraphBuilder
from .ids import IdTable
from .render import render_sequence_puml, render_callgraph_puml
from .sequence import Trace

ARTIFACTS = (
    "callgraph.json",
    "callgraph.yaml",
    "callgraph.dot",
    "callgraph.puml",
    "callorder.json",
    "sequence.puml",
    "trace.json",
)


def write_artifacts(
    *,
    out_dir: Path,
    graph: GraphBuilder,
    trace: Trace,
    ids: IdTable | None = None,
    failures: list[dict] | None = None,
    logger=None,
) -> list[Path]:
    """
    Serialize one finished analysis run. The graph and trace are only read;
    every renderer of the run shares one IdTable so participants keep the
    same ids across diagrams.
    failures: per-file front-end failures, written to run_report.json when present.
    """
    ids = ids or IdTable()
    out_dir.mkdir(parents=True, exist_ok=True)
    files = {
        "callgraph.json": graph.to_json() + "\n",
        "callgraph.yaml": graph.to_yaml(),
        "callgraph.dot": graph.to_dot() + "\n",
        "callgraph.puml": render_callgraph_puml(graph, ids),
        "callorder.json": json.dumps({"callOrder": graph.order_dict()}, indent=2) + "\n",
        "sequence.puml": render_sequence_puml(graph, trace, ids),
        "trace.json": trace.to_json() + "\n",
    }
    written = []
    for name in ARTIFACTS:
        p = out_dir / name
        p.write_text(files[name], encoding="utf-8")
        written.append(p)

    if failures:
        p = out_dir / "run_report.json"
        p.write_text(json.dumps({"failures": failures[:50]}, indent=2), encoding="utf-8")
        written.append(p)

    if logger:
        if not trace.found:
            logger.log("WARN", f"root not found: {trace.root}")
        logger.log("INFO", f"Artifacts: {out_dir/'callgraph.json'} ; {out_dir/'sequence.puml'}")
    return written
