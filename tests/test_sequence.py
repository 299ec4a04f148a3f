import json
import unittest

from callseq.frontend import CallObserved, FunctionDeclared
from callseq.graph import AnalysisOptions, GraphBuilder, from_call_order
from callseq.sequence import (
    CALL,
    ENTER,
    INDIRECT_CALL,
    LEAVE,
    Step,
    clamp_depth,
    pick_root,
    synthesize,
)


def pairs(trace):
    return [(s.caller, s.callee) for s in trace.messages]


class TestSynthesize(unittest.TestCase):
    def test_mutual_recursion_terminates(self):
        g = from_call_order({"A": ["B"], "B": ["A"]})
        t = synthesize(g, "A", 5)
        self.assertEqual(pairs(t), [("A", "B"), ("B", "A")])
        self.assertEqual(t.steps, [
            Step(ENTER, "A"),
            Step(CALL, "A", "B"),
            Step(ENTER, "B"),
            Step(CALL, "B", "A"),
            Step(LEAVE, "B"),
            Step(LEAVE, "A"),
        ])

    def test_self_recursion_emits_once(self):
        g = from_call_order({"f": ["f", "g"], "g": []})
        t = synthesize(g, "f", 10)
        self.assertEqual(pairs(t), [("f", "f"), ("f", "g")])

    def test_depth_zero_same_as_one(self):
        g = from_call_order({"main": ["a", "b"], "a": ["c"], "b": [], "c": []})
        zero, one = synthesize(g, "main", 0), synthesize(g, "main", 1)
        self.assertEqual(zero.steps, one.steps)
        self.assertEqual(zero.max_depth, 1)
        self.assertEqual(pairs(one), [("main", "a"), ("main", "b")])
        self.assertEqual([s.kind for s in one.steps if not s.is_message], [ENTER, LEAVE])

    def test_depth_bounds_descent(self):
        g = from_call_order({"main": ["a"], "a": ["b"], "b": ["c"], "c": ["d"], "d": []})
        self.assertEqual(pairs(synthesize(g, "main", 2)), [("main", "a"), ("a", "b")])
        self.assertEqual(len(synthesize(g, "main", 4).messages), 4)
        self.assertEqual(len(synthesize(g, "main", 9).messages), 4)

    def test_root_not_found(self):
        g = from_call_order({"main": ["a"]})
        t = synthesize(g, "nonexistent", 5)
        self.assertFalse(t.found)
        self.assertEqual(t.steps, [])
        self.assertEqual(t.root, "nonexistent")
        self.assertEqual(t.requested_root, "nonexistent")

    def test_empty_model_uses_main_placeholder(self):
        t = synthesize(GraphBuilder(), None, 5)
        self.assertFalse(t.found)
        self.assertEqual(t.root, "main")
        self.assertIsNone(t.requested_root)

    def test_guard_is_path_local(self):
        g = from_call_order({"main": ["a", "b"], "a": ["shared"], "b": ["shared"], "shared": ["leaf"]})
        t = synthesize(g, "main", 5)
        self.assertEqual(pairs(t), [
            ("main", "a"), ("a", "shared"), ("shared", "leaf"),
            ("main", "b"), ("b", "shared"), ("shared", "leaf"),
        ])

    def test_indirect_and_system_are_leaves(self):
        g = from_call_order({"main": ["(indirect)", "printf", "a"], "a": [],
                             "(indirect)": ["x"], "printf": ["y"]})
        t = synthesize(g, "main", 5)
        self.assertEqual([s.kind for s in t.messages], [INDIRECT_CALL, CALL, CALL])
        entered = [s.caller for s in t.steps if s.kind == ENTER]
        self.assertEqual(entered, ["main", "a"])

    def test_callee_without_own_order_is_not_entered(self):
        g = GraphBuilder()
        g.observe_call("main", "external")
        g.call_order.pop("external")
        t = synthesize(g, "main", 5)
        self.assertEqual(pairs(t), [("main", "external")])
        self.assertEqual([s.caller for s in t.steps if s.kind == ENTER], ["main"])

    def test_end_to_end_scenario(self):
        g = GraphBuilder().ingest([
            FunctionDeclared("main"),
            FunctionDeclared("helper"),
            CallObserved("main", "helper"),
            CallObserved("helper", "malloc"),
        ])
        t = synthesize(g, "main", 2)
        self.assertEqual(pairs(t), [("main", "helper")])
        self.assertEqual(t.steps, [
            Step(ENTER, "main"),
            Step(CALL, "main", "helper"),
            Step(ENTER, "helper"),
            Step(LEAVE, "helper"),
            Step(LEAVE, "main"),
        ])

    def test_walk_follows_call_site_order(self):
        g = GraphBuilder()
        for callee in ["zeta", "alpha", "zeta"]:
            g.observe_call("main", callee)
        self.assertEqual([c for _, c in pairs(synthesize(g, "main", 1))], ["zeta", "alpha", "zeta"])

    def test_indirect_with_hint_is_indirect_message(self):
        g = GraphBuilder(options=AnalysisOptions(indirect_label_with_hint=True))
        g.observe_call("main", None, hint="cb")
        t = synthesize(g, "main", 3)
        self.assertEqual(t.messages, [Step(INDIRECT_CALL, "main", "(indirect:cb)")])

    def test_trace_json(self):
        g = from_call_order({"main": ["a"]})
        doc = json.loads(synthesize(g, None, 3).to_json())
        self.assertEqual(doc["root"], "main")
        self.assertEqual(doc["maxDepth"], 3)
        self.assertTrue(doc["found"])
        self.assertEqual(doc["steps"][1], {"kind": "call", "caller": "main", "callee": "a"})


class TestRootAndDepth(unittest.TestCase):
    def test_clamp_depth(self):
        self.assertEqual(clamp_depth(0), 1)
        self.assertEqual(clamp_depth(-3), 1)
        self.assertEqual(clamp_depth("7"), 7)
        self.assertEqual(clamp_depth("x"), 1)
        self.assertEqual(clamp_depth(None), 1)

    def test_pick_root(self):
        self.assertEqual(pick_root({"b", "main", "a"}), "main")
        self.assertEqual(pick_root({"b", "a"}), "a")
        self.assertEqual(pick_root(set()), "main")
        self.assertEqual(pick_root({"main"}, "other"), "other")


if __name__ == "__main__":
    unittest.main()
