from __future__ import annotations
from typing import Callable, Dict
from .graph import GraphBuilder
from .ids import IdTable
from .sequence import Trace, CALL, INDIRECT_CALL, ENTER, LEAVE

TITLE = "callseq sequence"


def render_json(graph: GraphBuilder, trace: Trace, ids: IdTable) -> str:
    return graph.to_json() + "\n"


def render_sequence_puml(graph: GraphBuilder, trace: Trace, ids: IdTable) -> str:
    lines = [
        "@startuml",
        "hide footbox",
        "skinparam sequenceMessageAlign center",
        f"title {TITLE} (root: {trace.root}, depth: {trace.max_depth})",
        "",
    ]
    for n in sorted(graph.nodes):
        lines.append(f'participant "{n}" as {ids(n)}')
    lines.append("")

    if not trace.found:
        lines.append(f"' root not found: {trace.root}")
        lines.append("@enduml")
        return "\n".join(lines) + "\n"

    for s in trace.steps:
        if s.kind == CALL:
            lines.append(f"{ids(s.caller)} -> {ids(s.callee)} : call")
        elif s.kind == INDIRECT_CALL:
            lines.append(f"{ids(s.caller)} ..> {ids(s.callee)} : indirect call")
        elif s.kind == ENTER:
            lines.append(f"activate {ids(s.caller)}")
        elif s.kind == LEAVE:
            lines.append(f"deactivate {ids(s.caller)}")
    lines.append("@enduml")
    return "\n".join(lines) + "\n"


def render_callgraph_puml(graph: GraphBuilder, ids: IdTable) -> str:
    lines = ["@startuml", "skinparam linetype ortho", "hide empty members", ""]
    for n in sorted(graph.nodes):
        lines.append(f'rectangle "{n}" as {ids(n)}')
    lines.append("")
    for src, dst in graph.edges():
        lines.append(f"{ids(src)} --> {ids(dst)} : calls")
    lines.append("@enduml")
    return "\n".join(lines) + "\n"


def render_both(graph: GraphBuilder, trace: Trace, ids: IdTable) -> str:
    return render_json(graph, trace, ids) + "\n" + render_sequence_puml(graph, trace, ids)


RENDERERS: Dict[str, Callable[[GraphBuilder, Trace, IdTable], str]] = {
    "json": render_json,
    "puml": render_sequence_puml,
    "both": render_both,
}


def render(emit: str, graph: GraphBuilder, trace: Trace, ids: IdTable | None = None) -> str:
    # unknown emit values fall back to json
    fn = RENDERERS.get((emit or "").lower(), render_json)
    return fn(graph, trace, ids or IdTable())
