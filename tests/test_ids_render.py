import json
import unittest

from callseq.graph import AnalysisOptions, GraphBuilder, from_call_order
from callseq.ids import IdTable, sanitize
from callseq.render import render, render_callgraph_puml, render_sequence_puml
from callseq.sequence import synthesize


class TestIds(unittest.TestCase):
    def test_sanitize(self):
        self.assertEqual(sanitize("main"), "main")
        self.assertEqual(sanitize("a.b"), "a_b")
        self.assertEqual(sanitize("(indirect:fp)"), "_indirect_fp_")
        self.assertEqual(sanitize("9lives"), "_9lives")
        self.assertEqual(sanitize(""), "_")

    def test_collisions_in_first_seen_order(self):
        ids = IdTable()
        self.assertEqual(ids("a.b"), "a_b")
        self.assertEqual(ids("a+b"), "a_b_1")
        self.assertEqual(ids("a-b"), "a_b_2")
        self.assertEqual(ids("a.b"), "a_b")
        self.assertEqual(ids("a+b"), "a_b_1")
        self.assertEqual(len(ids), 3)

    def test_literal_name_holding_a_counter_id(self):
        ids = IdTable()
        self.assertEqual(ids("a_b_1"), "a_b_1")
        self.assertEqual(ids("a_b"), "a_b")
        self.assertEqual(ids("a.b"), "a_b_2")

    def test_tables_are_independent(self):
        first, second = IdTable(), IdTable()
        first("a.b")
        self.assertEqual(second("a+b"), "a_b")


class TestRender(unittest.TestCase):
    def setUp(self):
        self.g = GraphBuilder()
        self.g.observe_call("main", "helper")
        self.g.observe_call("main", None, hint="fp")
        self.g.observe_call("helper", "main")

    def test_sequence_puml(self):
        text = render_sequence_puml(self.g, synthesize(self.g, None, 5), IdTable())
        lines = text.splitlines()
        self.assertEqual(lines[0], "@startuml")
        self.assertEqual(lines[-1], "@enduml")
        self.assertIn("title callseq sequence (root: main, depth: 5)", lines)
        self.assertIn('participant "(indirect)" as _indirect_', lines)
        body = lines[lines.index("activate main"):-1]
        self.assertEqual(body, [
            "activate main",
            "main -> helper : call",
            "activate helper",
            "helper -> main : call",
            "deactivate helper",
            "main ..> _indirect_ : indirect call",
            "deactivate main",
        ])

    def test_sequence_puml_root_not_found(self):
        text = render_sequence_puml(self.g, synthesize(self.g, "nope", 5), IdTable())
        self.assertIn("' root not found: nope", text)
        self.assertNotIn("activate", text)

    def test_callgraph_puml(self):
        text = render_callgraph_puml(self.g, IdTable())
        self.assertIn('rectangle "(indirect)" as _indirect_', text)
        self.assertIn("main --> helper : calls", text)
        self.assertIn("main --> _indirect_ : calls", text)

    def test_ids_shared_between_diagrams(self):
        g = from_call_order({"a.b": ["a+b"], "a+b": []})
        ids = IdTable()
        seq = render_sequence_puml(g, synthesize(g, "a.b", 5), ids)
        graph = render_callgraph_puml(g, ids)
        # sorted participants: "a+b" is seen first
        self.assertIn('participant "a+b" as a_b', seq)
        self.assertIn('rectangle "a.b" as a_b_1', graph)
        self.assertIn("a_b_1 --> a_b : calls", graph)

    def test_render_emit(self):
        t = synthesize(self.g, None, 5)
        self.assertEqual(json.loads(render("json", self.g, t))["callGraph"]["main"], ["(indirect)", "helper"])
        self.assertTrue(render("puml", self.g, t).startswith("@startuml"))
        both = render("both", self.g, t)
        self.assertTrue(both.startswith("{"))
        self.assertIn("@startuml", both)
        self.assertEqual(render("xml", self.g, t), render("json", self.g, t))

    def test_hint_labels_render(self):
        g = GraphBuilder(options=AnalysisOptions(indirect_label_with_hint=True))
        g.observe_call("main", None, hint="cb")
        text = render_sequence_puml(g, synthesize(g, None, 2), IdTable())
        self.assertIn("main ..> _indirect_cb_ : indirect call", text)


if __name__ == "__main__":
    unittest.main()
