from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set
from .classifier import classify, indirect_label, SYSTEM, INDIRECT
from .frontend.events import CallObserved, Event, FunctionDeclared


@dataclass
class AnalysisOptions:
    include_stdlib_leaves: bool = False
    indirect_label_with_hint: bool = False


@dataclass
class GraphBuilder:
    """
    Folds function/call observations of one analysis run into:
      - nodes:      every known node name
      - call_graph: caller -> set of distinct callees
      - call_order: caller -> callees in call-site order, duplicates kept
    All three only grow; they are read-only once ingestion is done.
    Not safe for concurrent mutation; use one builder per translation unit
    when parallelizing.
    """
    options: AnalysisOptions = field(default_factory=AnalysisOptions)
    nodes: Set[str] = field(default_factory=set)
    call_graph: Dict[str, Set[str]] = field(default_factory=dict)
    call_order: Dict[str, List[str]] = field(default_factory=dict)
    # callers declared only by non-user code, and names with a user definition
    _foreign: Set[str] = field(default_factory=set, repr=False)
    _user_declared: Set[str] = field(default_factory=set, repr=False)

    def _ensure_node(self, name: str):
        self.nodes.add(name)
        self.call_graph.setdefault(name, set())
        self.call_order.setdefault(name, [])

    def _record(self, caller: str, callee: str):
        self._ensure_node(callee)
        self.call_graph[caller].add(callee)
        self.call_order[caller].append(callee)

    # --- core contract ---

    def observe_function(self, name: str):
        if not name:
            return
        self._ensure_node(name)

    def observe_call(self, caller: str, callee: str | None, hint: str | None = None):
        """
        Record one call site. callee=None means the front end could not
        resolve a direct target; an indirect label is synthesized from hint.
        """
        if not caller or callee == "":
            return
        self._ensure_node(caller)

        if callee is None:
            self._record(caller, indirect_label(hint, self.options.indirect_label_with_hint))
            return

        if classify(callee) == SYSTEM and not self.options.include_stdlib_leaves:
            return
        self._record(caller, callee)

    # --- front-end collaborator contract ---

    def declare_function(self, name: str, user_code: bool = True):
        """A name is foreign while it has a non-user declaration and no user one."""
        if not name:
            return
        if not user_code:
            if name not in self._user_declared:
                self._foreign.add(name)
            return
        self._user_declared.add(name)
        self._foreign.discard(name)
        self.observe_function(name)

    def observe_call_site(self, caller: str, callee: str | None, hint: str | None = None):
        if caller in self._foreign:
            return
        self.observe_call(caller, callee, hint)

    def ingest(self, events: Iterable[Event]) -> "GraphBuilder":
        """Declarations first, then call sites in stream order."""
        events = list(events)
        for ev in events:
            if isinstance(ev, FunctionDeclared):
                self.declare_function(ev.name, ev.user_code)
        for ev in events:
            if isinstance(ev, CallObserved):
                self.observe_call_site(ev.caller, ev.callee, ev.hint)
        return self

    # --- export ---

    def edges(self) -> List[tuple[str, str]]:
        return [(src, dst) for src in sorted(self.call_graph) for dst in sorted(self.call_graph[src])]

    def to_dict(self) -> Dict[str, List[str]]:
        """Caller -> sorted distinct callees; stable across runs."""
        return {src: sorted(dsts) for src, dsts in sorted(self.call_graph.items())}

    def order_dict(self) -> Dict[str, List[str]]:
        return {src: list(seq) for src, seq in sorted(self.call_order.items())}

    def to_json(self) -> str:
        return json.dumps({"callGraph": self.to_dict()}, indent=2)

    def to_yaml(self) -> str:
        import yaml
        data = {
            "nodes": sorted(self.nodes),
            "edges": [{"src": s, "dst": d, "kind": classify(d)} for s, d in self.edges()],
            "order": self.order_dict(),
        }
        return yaml.safe_dump(data, sort_keys=False)

    def to_dot(self) -> str:
        def color(dst: str) -> str:
            kind = classify(dst)
            if kind == INDIRECT:
                return "orange"
            return "blue" if kind == SYSTEM else "black"
        lines = ["digraph CallGraph {", "  rankdir=LR;"]
        for n in sorted(self.nodes):
            lines.append(f'  "{n}";')
        for src, dst in self.edges():
            style = ', style="dashed"' if classify(dst) == INDIRECT else ""
            lines.append(f'  "{src}" -> "{dst}" [color="{color(dst)}"{style}];')
        lines.append("}")
        return "\n".join(lines)


def foreign_callers(events: Iterable[Event]) -> Set[str]:
    """Names defined only in non-user code; their call sites are not recorded."""
    user, other = set(), set()
    for ev in events:
        if isinstance(ev, FunctionDeclared) and ev.name:
            (user if ev.user_code else other).add(ev.name)
    return other - user


def from_call_order(order: Dict[str, List[str]], options: AnalysisOptions | None = None) -> GraphBuilder:
    """Rebuild a builder from an exported {caller: [callees...]} order table."""
    g = GraphBuilder(options=options or AnalysisOptions(include_stdlib_leaves=True))
    for caller, callees in order.items():
        g.observe_function(caller)
        for callee in callees or []:
            g.observe_call(caller, callee)
    return g
