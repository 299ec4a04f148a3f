#!/usr/bin/env python3
import argparse, json
from pathlib import Path
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from callseq.graph import from_call_order
from callseq.sequence import synthesize, ENTER, INDIRECT_CALL

"""
Usage:
  python tools/depth_sweep.py --order out/callorder.json --out-dir out/sweep --max-depth 8
Replays an exported call order at each depth and tabulates trace size.
"""


def load_order(p: Path) -> dict:
    data = json.loads(p.read_text(encoding="utf-8"))
    return data.get("callOrder", data) if isinstance(data, dict) else {}


def sweep(order: dict, depths, root: str | None = None) -> pd.DataFrame:
    g = from_call_order(order)
    rows = []
    for d in depths:
        t = synthesize(g, root, d)
        rows.append({
            "depth": t.max_depth,
            "root": t.root,
            "found": t.found,
            "messages": len(t.messages),
            "indirect": sum(1 for s in t.messages if s.kind == INDIRECT_CALL),
            "activations": sum(1 for s in t.steps if s.kind == ENTER),
        })
    return pd.DataFrame.from_records(rows)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--order", required=True, help="callorder.json from an analyze run")
    ap.add_argument("--out-dir", required=True)
    ap.add_argument("--max-depth", type=int, default=8)
    ap.add_argument("--root", default=None)
    args = ap.parse_args()

    out_dir = Path(args.out_dir); out_dir.mkdir(parents=True, exist_ok=True)
    order = load_order(Path(args.order))
    if not order:
        raise SystemExit("empty call order")

    df = sweep(order, range(1, max(1, args.max_depth) + 1), args.root)
    df.to_csv(out_dir/"depth_sweep.csv", index=False)

    root = df["root"].iloc[0]
    md_lines = [f"# Trace size by depth (root: {root})\n",
                "| depth | messages | indirect | activations |",
                "|:--|:--:|:--:|:--:|"]
    for _, row in df.iterrows():
        md_lines.append(f"| {row['depth']} | {row['messages']} | {row['indirect']} | {row['activations']} |")
    (out_dir/"depth_sweep.md").write_text("\n".join(md_lines) + "\n", encoding="utf-8")

    plt.figure()
    plt.plot(df["depth"], df["messages"], marker="o", label="messages")
    plt.plot(df["depth"], df["activations"], marker="s", label="activations")
    plt.xlabel("sequence depth")
    plt.ylabel("count")
    plt.title(f"Trace size vs depth ({root})")
    plt.legend()
    plt.grid(True, linestyle=":")
    plt.tight_layout()
    plt.savefig(out_dir/"depth_sweep.png", dpi=150)
    print(f"wrote {out_dir/'depth_sweep.csv'}")


if __name__ == "__main__":
    main()
