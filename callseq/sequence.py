from __future__ import annotations
import json
from dataclasses import dataclass, field, asdict
from typing import Iterable, Iterator, List
from .classifier import is_indirect, is_system_name
from .graph import GraphBuilder

DEFAULT_ROOT = "main"
DEFAULT_DEPTH = 5

# step kinds
CALL = "call"
INDIRECT_CALL = "indirect"
ENTER = "enter"
LEAVE = "leave"


@dataclass
class Step:
    kind: str
    caller: str
    callee: str = ""

    @property
    def is_message(self) -> bool:
        return self.kind in (CALL, INDIRECT_CALL)


@dataclass
class Trace:
    root: str
    requested_root: str | None
    max_depth: int
    found: bool
    steps: List[Step] = field(default_factory=list)

    @property
    def messages(self) -> List[Step]:
        return [s for s in self.steps if s.is_message]

    def to_dict(self) -> dict:
        return {
            "root": self.root,
            "requestedRoot": self.requested_root,
            "maxDepth": self.max_depth,
            "found": self.found,
            "steps": [asdict(s) for s in self.steps],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


@dataclass
class _Frame:
    node: str
    depth: int
    calls: Iterator[str]


def clamp_depth(value) -> int:
    try:
        depth = int(value)
    except (TypeError, ValueError):
        return 1
    return depth if depth >= 1 else 1


def pick_root(nodes: Iterable[str], requested: str | None = None) -> str:
    """Explicit root if given; else "main" if known; else the first node in sorted order."""
    if requested:
        return requested
    ordered = sorted(nodes)
    if DEFAULT_ROOT in ordered:
        return DEFAULT_ROOT
    return ordered[0] if ordered else DEFAULT_ROOT


def expandable(graph: GraphBuilder, name: str) -> bool:
    if is_indirect(name) or is_system_name(name):
        return False
    return name in graph.call_order


def synthesize(graph: GraphBuilder, root: str | None = None, max_depth=DEFAULT_DEPTH) -> Trace:
    """
    Depth-first walk of call_order from root. Every call-site entry yields a
    message; a callee is entered only while depth remains, when it is
    expandable, and when it is not already on the active path.
    """
    depth = clamp_depth(max_depth)
    start = pick_root(graph.nodes, root)
    trace = Trace(root=start, requested_root=root or None, max_depth=depth,
                  found=start in graph.nodes)
    if not trace.found:
        return trace

    steps = trace.steps
    steps.append(Step(ENTER, start))
    path = {start}
    stack = [_Frame(start, depth, iter(graph.call_order.get(start, ())))]
    while stack:
        frame = stack[-1]
        callee = next(frame.calls, None)
        if callee is None:
            stack.pop()
            path.discard(frame.node)
            steps.append(Step(LEAVE, frame.node))
            continue

        kind = INDIRECT_CALL if is_indirect(callee) else CALL
        steps.append(Step(kind, frame.node, callee))

        if frame.depth <= 1 or callee in path or not expandable(graph, callee):
            continue
        steps.append(Step(ENTER, callee))
        path.add(callee)
        stack.append(_Frame(callee, frame.depth - 1, iter(graph.call_order[callee])))

    return trace
