from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Set, Tuple
import yaml


def _edges_of(obj: Dict[str, Any]) -> Tuple[Set[str], Set[Tuple[str, str]]]:
    """
    Accept a {"callGraph": {caller: [callees]}} document (or the bare mapping)
    and return its node and edge sets.
    """
    cg = obj.get("callGraph", obj) if isinstance(obj, dict) else {}
    nodes: Set[str] = set()
    edges: Set[Tuple[str, str]] = set()
    for src, dsts in (cg or {}).items():
        nodes.add(src)
        for dst in dsts or []:
            nodes.add(dst)
            edges.add((src, dst))
    return nodes, edges


def _prf(pred: Set, truth: Set):
    tp = len(pred & truth)
    p = 0.0 if not pred else tp/len(pred)
    r = 0.0 if not truth else tp/len(truth)
    f1 = 0.0 if (p+r)==0 else 2*p*r/(p+r)
    return p,r,f1


@dataclass
class Scores:
    precision_nodes: float; recall_nodes: float; f1_nodes: float
    precision_edges: float; recall_edges: float; f1_edges: float
    exact: int


def score_pair(pred: Dict[str, Any], truth: Dict[str, Any]) -> Scores:
    pn_set, pe_set = _edges_of(pred)
    tn_set, te_set = _edges_of(truth)
    pn, rn, fn = _prf(pn_set, tn_set)
    pe, re, fe = _prf(pe_set, te_set)
    exact = 1 if (pn_set == tn_set and pe_set == te_set) else 0
    return Scores(pn, rn, fn, pe, re, fe, exact)


def load_graph_doc(path: str) -> Dict[str, Any]:
    # JSON documents load as YAML too
    return yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
