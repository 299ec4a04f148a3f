import json
import tempfile
import unittest
from pathlib import Path

from callseq.exporter import ARTIFACTS, write_artifacts
from callseq.graph import from_call_order
from callseq.metrics import score_pair
from callseq.sequence import synthesize
from callseq.stats_cmd import summarize_graph


class TestExporter(unittest.TestCase):
    def test_writes_all_artifacts(self):
        g = from_call_order({"main": ["a", "(indirect)", "a"], "a": ["main"]})
        t = synthesize(g, None, 3)
        with tempfile.TemporaryDirectory() as td:
            out = Path(td) / "out"
            written = write_artifacts(out_dir=out, graph=g, trace=t)
            self.assertEqual([p.name for p in written], list(ARTIFACTS))
            cg = json.loads((out / "callgraph.json").read_text(encoding="utf-8"))
            self.assertEqual(cg, {"callGraph": {"(indirect)": [], "a": ["main"], "main": ["(indirect)", "a"]}})
            order = json.loads((out / "callorder.json").read_text(encoding="utf-8"))
            self.assertEqual(order["callOrder"]["main"], ["a", "(indirect)", "a"])
            trace = json.loads((out / "trace.json").read_text(encoding="utf-8"))
            self.assertEqual(trace["root"], "main")
            self.assertIn("main ..> _indirect_ : indirect call", (out / "sequence.puml").read_text(encoding="utf-8"))
            self.assertFalse((out / "run_report.json").exists())

    def test_failures_report(self):
        g = from_call_order({"main": []})
        with tempfile.TemporaryDirectory() as td:
            written = write_artifacts(out_dir=Path(td), graph=g, trace=synthesize(g),
                                      failures=[{"path": "bad.c", "status": "fail", "error": "x"}])
            self.assertEqual(written[-1].name, "run_report.json")
            report = json.loads(written[-1].read_text(encoding="utf-8"))
            self.assertEqual(report["failures"][0]["path"], "bad.c")


class TestMetricsAndStats(unittest.TestCase):
    def test_score_pair(self):
        truth = {"callGraph": {"main": ["a", "b"], "a": [], "b": []}}
        self.assertEqual(score_pair(truth, truth).exact, 1)
        pred = {"callGraph": {"main": ["a", "c"], "a": [], "c": []}}
        s = score_pair(pred, truth)
        self.assertEqual(s.exact, 0)
        self.assertAlmostEqual(s.precision_edges, 0.5)
        self.assertAlmostEqual(s.recall_edges, 0.5)
        self.assertAlmostEqual(s.f1_nodes, 2 / 3)

    def test_score_empty(self):
        s = score_pair({}, {"main": []})
        self.assertEqual(s.f1_edges, 0.0)
        self.assertEqual(s.recall_nodes, 0.0)

    def test_summarize_graph(self):
        doc = {"callGraph": {"main": ["(indirect)", "f", "printf"], "f": ["f"], "(indirect)": [], "printf": []}}
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "callgraph.json"
            p.write_text(json.dumps(doc), encoding="utf-8")
            gs = summarize_graph(str(p))
        self.assertEqual((gs.nodes, gs.edges), (4, 4))
        self.assertEqual((gs.user_nodes, gs.system_nodes, gs.indirect_nodes), (2, 1, 1))
        self.assertEqual(gs.leaf_callers, 2)
        self.assertEqual(gs.self_recursive, ["f"])
        self.assertEqual(gs.top_callers[0], ["main", 3])


if __name__ == "__main__":
    unittest.main()
