import json
import unittest

import yaml

from callseq.frontend import CallObserved, FunctionDeclared
from callseq.graph import AnalysisOptions, GraphBuilder, foreign_callers, from_call_order


class TestGraphBuilder(unittest.TestCase):
    def test_observe_function_is_idempotent(self):
        once = GraphBuilder()
        once.observe_function("main")
        twice = GraphBuilder()
        twice.observe_function("main")
        twice.observe_function("main")
        self.assertEqual(once.nodes, twice.nodes)
        self.assertEqual(once.call_graph, twice.call_graph)
        self.assertEqual(once.call_order, twice.call_order)
        self.assertEqual(twice.call_order, {"main": []})

    def test_order_keeps_duplicates_graph_does_not(self):
        g = GraphBuilder()
        for callee in ["a", "b", "a"]:
            g.observe_call("caller", callee)
        self.assertEqual(g.call_order["caller"], ["a", "b", "a"])
        self.assertEqual(g.call_graph["caller"], {"a", "b"})
        self.assertEqual(g.nodes, {"caller", "a", "b"})

    def test_stdlib_dropped_when_off(self):
        g = GraphBuilder()
        g.observe_call("main", "malloc")
        self.assertNotIn("malloc", g.nodes)
        self.assertNotIn("malloc", g.call_graph)
        self.assertEqual(g.call_order["main"], [])

    def test_stdlib_recorded_when_on(self):
        g = GraphBuilder(options=AnalysisOptions(include_stdlib_leaves=True))
        g.observe_call("main", "malloc")
        g.observe_call("main", "malloc")
        self.assertIn("malloc", g.nodes)
        self.assertEqual(g.call_graph["main"], {"malloc"})
        self.assertEqual(g.call_order["main"], ["malloc", "malloc"])

    def test_unresolved_callee_becomes_indirect(self):
        g = GraphBuilder()
        g.observe_call("main", None, hint="fp")
        self.assertEqual(g.call_order["main"], ["(indirect)"])

        named = GraphBuilder(options=AnalysisOptions(indirect_label_with_hint=True))
        named.observe_call("main", None, hint="fp")
        named.observe_call("main", None)
        self.assertEqual(named.call_order["main"], ["(indirect:fp)", "(indirect)"])

    def test_empty_names_are_dropped(self):
        g = GraphBuilder()
        g.observe_function("")
        g.observe_call("", "x")
        g.observe_call("main", "")
        self.assertEqual(g.nodes, {"main"})
        self.assertEqual(g.call_order, {"main": []})

    def test_calls_from_non_user_declarations_are_ignored(self):
        g = GraphBuilder().ingest([
            FunctionDeclared("inline_helper", file="x.h", user_code=False),
            CallObserved("inline_helper", "other"),
            FunctionDeclared("main", file="main.c"),
            CallObserved("main", "inline_helper"),
        ])
        self.assertEqual(g.call_order, {"main": ["inline_helper"], "inline_helper": []})
        self.assertNotIn("other", g.nodes)

    def test_user_definition_wins_over_earlier_foreign_one(self):
        g = GraphBuilder().ingest([
            FunctionDeclared("f", file="x.h", user_code=False),
            FunctionDeclared("f", file="f.c"),
            CallObserved("f", "g"),
        ])
        self.assertEqual(g.call_order["f"], ["g"])

    def test_header_definition_ignored_in_any_order(self):
        unit = [
            FunctionDeclared("main", file="main.c"),
            CallObserved("main", "inl", file="main.c"),
        ]
        header = [
            FunctionDeclared("inl", file="inl.h", user_code=False),
            CallObserved("inl", "x", file="inl.h"),
        ]
        c_first = GraphBuilder().ingest(unit + header)
        h_first = GraphBuilder().ingest(header + unit)
        self.assertEqual(c_first.order_dict(), h_first.order_dict())
        self.assertEqual(c_first.order_dict(), {"inl": [], "main": ["inl"]})

    def test_callee_seen_before_its_header_declaration(self):
        g = GraphBuilder()
        g.observe_call_site("main", "inl")
        g.declare_function("inl", user_code=False)
        g.observe_call_site("inl", "x")
        self.assertEqual(g.order_dict(), {"inl": [], "main": ["inl"]})

    def test_foreign_callers(self):
        events = [
            FunctionDeclared("a", file="a.h", user_code=False),
            FunctionDeclared("b", file="b.h", user_code=False),
            FunctionDeclared("b", file="b.c"),
        ]
        self.assertEqual(foreign_callers(events), {"a"})

    def test_end_to_end_graph(self):
        g = GraphBuilder().ingest([
            FunctionDeclared("main"),
            FunctionDeclared("helper"),
            CallObserved("main", "helper"),
            CallObserved("helper", "malloc"),
        ])
        self.assertEqual(g.to_dict(), {"helper": [], "main": ["helper"]})

    def test_export_is_deterministic(self):
        def build():
            g = GraphBuilder()
            for caller, callee in [("main", "zeta"), ("main", "alpha"), ("alpha", "beta"), ("main", "alpha")]:
                g.observe_call(caller, callee)
            return g
        a, b = build(), build()
        self.assertEqual(a.to_json(), b.to_json())
        self.assertEqual(a.to_dot(), b.to_dot())
        self.assertEqual(a.edges(), [("alpha", "beta"), ("main", "alpha"), ("main", "zeta")])
        self.assertEqual(json.loads(a.to_json())["callGraph"]["main"], ["alpha", "zeta"])

    def test_yaml_and_dot_mark_edge_kinds(self):
        g = GraphBuilder(options=AnalysisOptions(include_stdlib_leaves=True))
        g.observe_call("main", "printf")
        g.observe_call("main", None)
        doc = yaml.safe_load(g.to_yaml())
        kinds = {(e["src"], e["dst"]): e["kind"] for e in doc["edges"]}
        self.assertEqual(kinds, {("main", "(indirect)"): "indirect", ("main", "printf"): "system"})
        self.assertEqual(doc["order"]["main"], ["printf", "(indirect)"])
        dot = g.to_dot()
        self.assertIn('"main" -> "(indirect)" [color="orange", style="dashed"];', dot)
        self.assertIn('"main" -> "printf" [color="blue"];', dot)

    def test_from_call_order(self):
        g = from_call_order({"main": ["a", "printf", "a"], "a": []})
        self.assertEqual(g.call_order["main"], ["a", "printf", "a"])
        self.assertEqual(g.nodes, {"main", "a", "printf"})


if __name__ == "__main__":
    unittest.main()
