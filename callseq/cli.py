from __future__ import annotations
import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from .config import Config, DEFAULT_CONFIG
from .exporter import write_artifacts
from .frontend import dump_events, load_events
from .graph import GraphBuilder
from .ids import IdTable
from .logging_db import RunLogger
from .metrics import load_graph_doc, score_pair
from .render import render, render_callgraph_puml, render_sequence_puml
from .scanner import Scanner, ScanResult
from .sequence import clamp_depth, synthesize
from .stats_cmd import summarize_graph, summarize_runs, print_graph_stats, print_run_stats
from .store import SqliteStore, StoreError, replay, rows_from_events


def _load_config(args) -> Config:
    """Config file first, then command-line overrides."""
    cfg = Config.load(getattr(args, "config", DEFAULT_CONFIG))
    a = cfg.analysis
    if getattr(args, "stdlib_leaf", None):
        a.include_stdlib_leaves = args.stdlib_leaf == "on"
    if getattr(args, "indirect_label", None):
        a.indirect_label_with_hint = args.indirect_label == "var"
    if getattr(args, "seq_depth", None) is not None:
        a.sequence_max_depth = clamp_depth(args.seq_depth)
    if getattr(args, "seq_root", None) is not None:
        a.sequence_root = args.seq_root.strip()
    if getattr(args, "emit", None):
        cfg.output.emit = args.emit
    if getattr(args, "out", None):
        cfg.output.out_dir = args.out
    if getattr(args, "db", None):
        cfg.runtime.store_path = args.db
    return cfg


def _logger(cfg: Config, args, cmd: str) -> RunLogger:
    logger = RunLogger(cfg.runtime.sqlite_path, echo=getattr(args, "verbose", False))
    logger.start(cmd=cmd, config_hash=cfg.hash())
    return logger


def _record_files(logger: RunLogger, res: ScanResult):
    for f in res.files:
        logger.log_file(path=f.path, status=f.status, functions=f.functions,
                        calls=f.calls, error=f.error)


def _finish_analysis(cfg: Config, args, logger: RunLogger, g: GraphBuilder, failures: list[dict]):
    a = cfg.analysis
    trace = synthesize(g, a.sequence_root or None, a.sequence_max_depth)
    ids = IdTable()
    write_artifacts(out_dir=Path(cfg.output.out_dir), graph=g, trace=trace, ids=ids,
                    failures=failures, logger=logger)
    logger.log("INFO", f"nodes={len(g.nodes)} edges={len(g.edges())} "
                       f"root={trace.root} messages={len(trace.messages)}")
    if getattr(args, "stdout", False):
        sys.stdout.write(render(cfg.output.emit, g, trace, ids))


def cmd_analyze(args):
    cfg = _load_config(args)
    logger = _logger(cfg, args, "analyze")
    try:
        scanner = Scanner(cfg.parsing.include_ext, cfg.parsing.user_ext)
        res = scanner.scan(args.paths, logger=logger)
        _record_files(logger, res)
        if args.dump_events:
            Path(args.dump_events).parent.mkdir(parents=True, exist_ok=True)
            Path(args.dump_events).write_text(dump_events(res.events), encoding="utf-8")
            logger.log("INFO", f"Wrote {len(res.events)} events to {args.dump_events}")
        g = GraphBuilder(options=cfg.analysis.options()).ingest(res.events)
        _finish_analysis(cfg, args, logger, g, [asdict(f) for f in res.failures])
    finally:
        logger.finish()


def cmd_replay(args):
    cfg = _load_config(args)
    logger = _logger(cfg, args, "replay")
    try:
        events = load_events(args.events)
        logger.log("INFO", f"Loaded {len(events)} events from {args.events}")
        g = GraphBuilder(options=cfg.analysis.options()).ingest(events)
        _finish_analysis(cfg, args, logger, g, [])
    finally:
        logger.finish()


def cmd_index(args):
    cfg = _load_config(args)
    logger = _logger(cfg, args, "index")
    try:
        scanner = Scanner(cfg.parsing.include_ext, cfg.parsing.user_ext)
        res = scanner.scan(args.paths, logger=logger)
        _record_files(logger, res)
        funcs, calls = rows_from_events(res.events)
        try:
            with SqliteStore(cfg.runtime.store_path) as store:
                store.insert_functions(funcs)
                store.insert_calls(calls)
        except StoreError as ex:
            logger.log("ERROR", str(ex))
            raise SystemExit(f"error: {ex}")
        logger.log("INFO", f"Indexing finished. DB = {cfg.runtime.store_path} "
                           f"(functions={len(funcs)}, calls={len(calls)}, failed={len(res.failures)})")
    finally:
        logger.finish()


def cmd_diagram(args):
    cfg = _load_config(args)
    logger = _logger(cfg, args, f"diagram-{args.kind}")
    try:
        try:
            with SqliteStore(cfg.runtime.store_path) as store:
                model = store.load_all()
        except StoreError as ex:
            logger.log("ERROR", str(ex))
            raise SystemExit(f"error: {ex}")
        g = replay(model, cfg.analysis.options())
        ids = IdTable()
        if args.kind == "callgraph":
            text = render_callgraph_puml(g, ids)
        else:
            a = cfg.analysis
            trace = synthesize(g, a.sequence_root or None, a.sequence_max_depth)
            if not trace.found:
                logger.log("WARN", f"root not found: {trace.root}")
            text = render_sequence_puml(g, trace, ids)
        if args.output:
            Path(args.output).parent.mkdir(parents=True, exist_ok=True)
            Path(args.output).write_text(text, encoding="utf-8")
            logger.log("INFO", f"Wrote {args.output}")
        else:
            sys.stdout.write(text)
    finally:
        logger.finish()


def cmd_stats_graph(args):
    gs = summarize_graph(args.graph_file)
    if args.json:
        print(gs.to_json())
    else:
        print_graph_stats(gs)


def cmd_stats_runs(args):
    cfg = Config.load(args.config)
    ra = summarize_runs(cfg.runtime.sqlite_path)
    if args.json:
        print(ra.to_json())
    else:
        print_run_stats(ra)


def cmd_score(args):
    s = score_pair(load_graph_doc(args.pred), load_graph_doc(args.truth))
    print(json.dumps(s.__dict__, indent=2))


def _analysis_flags(p: argparse.ArgumentParser):
    p.add_argument("--config", default=DEFAULT_CONFIG, help="Config file")
    p.add_argument("--stdlib-leaf", choices=["on", "off"],
                   help="on: keep stdlib calls as leaf nodes, off: drop them")
    p.add_argument("--indirect-label", choices=["plain", "var"],
                   help="plain: '(indirect)', var: '(indirect:<expr>)'")
    p.add_argument("--seq-depth", type=int, help="Max sequence expansion depth (>=1)")
    p.add_argument("--seq-root", help="Sequence root function (default: main, else first function)")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="callseq")
    p.add_argument("--verbose", action="store_true", help="Echo progress logs to the console")
    sub = p.add_subparsers(dest="cmd", required=True)

    # Analyze sources
    pa = sub.add_parser("analyze", help="Build call graph + sequence trace from sources")
    pa.add_argument("paths", nargs="+", help="Source files or folders")
    pa.add_argument("--out", help="Output directory")
    pa.add_argument("--emit", choices=["json", "puml", "both"], help="Format printed with --stdout")
    pa.add_argument("--stdout", action="store_true", help="Also print the --emit output")
    pa.add_argument("--dump-events", help="Also write the scanned events (input for replay)")
    _analysis_flags(pa)
    pa.set_defaults(func=cmd_analyze)

    # Replay an event file
    pr = sub.add_parser("replay", help="Build call graph + sequence trace from an event file")
    pr.add_argument("events", help="Event file (YAML or JSON)")
    pr.add_argument("--out", help="Output directory")
    pr.add_argument("--emit", choices=["json", "puml", "both"], help="Format printed with --stdout")
    pr.add_argument("--stdout", action="store_true", help="Also print the --emit output")
    _analysis_flags(pr)
    pr.set_defaults(func=cmd_replay)

    # Index into the model store
    pi = sub.add_parser("index", help="Persist functions and calls into SQLite")
    pi.add_argument("paths", nargs="+", help="Source files or folders")
    pi.add_argument("--db", help="Model database (default: runtime.store_path)")
    pi.add_argument("--config", default=DEFAULT_CONFIG, help="Config file")
    pi.set_defaults(func=cmd_index)

    # Diagrams from the model store
    pd = sub.add_parser("diagram", help="Render a diagram from the model database")
    pd.add_argument("kind", choices=["callgraph", "sequence"])
    pd.add_argument("--db", help="Model database (default: runtime.store_path)")
    pd.add_argument("--root", dest="seq_root", help="Sequence root function")
    pd.add_argument("--output", "-o", help="Output .puml file (default: stdout)")
    pd.add_argument("--config", default=DEFAULT_CONFIG, help="Config file")
    pd.add_argument("--stdlib-leaf", choices=["on", "off"])
    pd.add_argument("--indirect-label", choices=["plain", "var"])
    pd.add_argument("--seq-depth", type=int)
    pd.set_defaults(func=cmd_diagram)

    # stats parent
    pstats = sub.add_parser("stats", help="Show statistics for a call graph or for logged runs")
    ssub = pstats.add_subparsers(dest="target", required=True)

    pg = ssub.add_parser("graph", help="Summarize a callgraph.json")
    pg.add_argument("graph_file", help="Path to callgraph.json")
    pg.add_argument("--json", action="store_true", help="Output JSON")
    pg.set_defaults(func=cmd_stats_graph)

    prs = ssub.add_parser("runs", help="Summarize run durations from SQLite")
    prs.add_argument("--config", default=DEFAULT_CONFIG, help="Config file (for sqlite path)")
    prs.add_argument("--json", action="store_true", help="Output JSON")
    prs.set_defaults(func=cmd_stats_runs)

    # Score command
    pscr = sub.add_parser("score", help="Score a callgraph.json against a truth graph")
    pscr.add_argument("--pred", required=True, help="Path to callgraph.json")
    pscr.add_argument("--truth", required=True, help="Path to truth.json")
    pscr.set_defaults(func=cmd_score)
    return p


def main(argv: list[str] | None = None):
    args = build_parser().parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
