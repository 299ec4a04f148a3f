#!/usr/bin/env python3
import argparse, random, json, hashlib
from pathlib import Path

"""
Usage:
  python tools/generate_samples.py --out data/samples --count 20 --seed 13
Each sample gets src/*.c, include/*.h, truth.json ({"callGraph": ...} for the
default analysis settings: stdlib leaves off, plain indirect labels) and meta.json.
"""

VERBS = ["load", "parse", "check", "merge", "emit", "sync", "stage", "scan", "pack", "flush"]
NOUNS = ["cfg", "frame", "queue", "table", "block", "entry", "buffer", "token"]
STDLIB = ["printf", "malloc", "free", "memcpy", "strlen", "puts"]


def fn_name(rnd: random.Random, used: set) -> str:
    while True:
        n = f"{rnd.choice(VERBS)}_{rnd.choice(NOUNS)}"
        if n not in used:
            used.add(n)
            return n


def c_func(name: str, calls: list[str], static: bool = False, ret: str = "int") -> str:
    body = "".join(f"    {c};\n" for c in calls)
    prefix = "static " if static else ""
    return f"{prefix}{ret} {name}(int x)\n{{\n{body}    return x;\n}}\n"


def stdlib_call(rnd: random.Random) -> tuple[str, str]:
    s = rnd.choice(STDLIB)
    args = {"printf": '"%d\\n", x', "malloc": "16", "free": "0", "memcpy": "0, 0, 0",
            "strlen": '"abc"', "puts": '"ok"'}[s]
    return s, f"{s}({args})"


class Project:
    def __init__(self):
        self.funcs: list[tuple[str, list[str], bool]] = []  # (name, call lines, static)
        self.truth: dict[str, set] = {}
        self.feats: set[str] = set()

    def add(self, name: str, calls: list[tuple[str | None, str]], static: bool = False):
        """calls: (truth callee or None when dropped, C call expression)"""
        self.funcs.append((name, [expr for _, expr in calls], static))
        self.truth.setdefault(name, set())
        for callee, _ in calls:
            if callee is None:
                continue
            self.truth[name].add(callee)
            self.truth.setdefault(callee, set())


def mk_linear(p: Project, rnd: random.Random, used: set) -> str:
    a, b = fn_name(rnd, used), fn_name(rnd, used)
    p.add(b, [])
    p.add(a, [(b, f"{b}(x + 1)")])
    p.feats.add("chain")
    return a


def mk_fanout(p: Project, rnd: random.Random, used: set) -> str:
    head = fn_name(rnd, used)
    kids = [fn_name(rnd, used) for _ in range(rnd.randint(2, 4))]
    for k in kids:
        p.add(k, [])
    calls = [(k, f"{k}(x)") for k in kids]
    # a repeated call site: order keeps it, the graph does not
    calls.append((kids[0], f"{kids[0]}(x - 1)"))
    p.add(head, calls)
    p.feats.add("fan-out")
    return head


def mk_recursion(p: Project, rnd: random.Random, used: set) -> str:
    if rnd.random() < 0.5:
        f = fn_name(rnd, used)
        p.add(f, [(f, f"{f}(x - 1)")])
        p.feats.add("self-recursion")
        return f
    a, b = fn_name(rnd, used), fn_name(rnd, used)
    p.add(a, [(b, f"{b}(x - 1)")])
    p.add(b, [(a, f"{a}(x - 1)")])
    p.feats.add("mutual-recursion")
    return a


def mk_fnptr(p: Project, rnd: random.Random, used: set) -> str:
    target, user = fn_name(rnd, used), fn_name(rnd, used)
    p.add(target, [])
    p.funcs.append((user, [f"int (*fp)(int) = {target}", "fp(x)", "(*fp)(x)"], False))
    p.truth.setdefault(user, set()).add("(indirect)")
    p.truth.setdefault("(indirect)", set())
    p.feats.add("function-pointer")
    return user


def mk_stdlib(p: Project, rnd: random.Random, used: set) -> str:
    f = fn_name(rnd, used)
    helper = fn_name(rnd, used)
    p.add(helper, [], static=True)
    s, expr = stdlib_call(rnd)
    p.add(f, [(None, expr), (helper, f"{helper}(x)")])
    p.feats.add("stdlib")
    return f


MAKERS = [mk_linear, mk_fanout, mk_recursion, mk_fnptr, mk_stdlib]


def mk_project(rnd: random.Random, parts: int = 3) -> Project:
    p = Project()
    used: set = {"main"}
    heads = [rnd.choice(MAKERS)(p, rnd, used) for _ in range(parts)]
    p.add("main", [(h, f"{h}({i})") for i, h in enumerate(heads)])
    return p


def render_c(p: Project) -> dict[str, str]:
    """One translation unit plus a header of prototypes."""
    protos = "".join(f"int {n}(int x);\n" for n, _, static in p.funcs if not static)
    header = f"#ifndef SAMPLE_H\n#define SAMPLE_H\n\n{protos}\n#endif\n"
    statics = "".join(f"static int {n}(int x);\n" for n, _, static in p.funcs if static)
    src = ["#include <stdio.h>", "#include <stdlib.h>", "#include <string.h>",
           '#include "sample.h"', "", statics]
    for name, calls, static in p.funcs:
        src.append(c_func(name, calls, static))
    return {"include/sample.h": header, "src/sample.c": "\n".join(src)}


def truth_doc(p: Project) -> dict:
    return {"callGraph": {k: sorted(v) for k, v in sorted(p.truth.items())}}


def write(root: Path, rel: str, content: str):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def mk_sample(root: Path, rnd: random.Random, seen_hashes: set, parts: int) -> Project:
    for _ in range(4):
        p = mk_project(rnd, parts)
        files = render_c(p)
        h = hashlib.sha256("||".join(files[k] for k in sorted(files)).encode("utf-8")).hexdigest()
        if h not in seen_hashes:
            break
    seen_hashes.add(h)
    for rel, content in files.items():
        write(root, rel, content)
    write(root, "truth.json", json.dumps(truth_doc(p), indent=2) + "\n")
    write(root, "meta.json", json.dumps({"features": sorted(p.feats), "parts": parts}, indent=2) + "\n")
    return p


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", default="data/samples")
    ap.add_argument("--count", type=int, required=True)
    ap.add_argument("--seed", type=int, default=13)
    ap.add_argument("--parts", type=int, default=3, help="patterns called from main")
    args = ap.parse_args()
    rnd = random.Random(args.seed)
    base = Path(args.out)
    seen = set()
    for i in range(1, args.count + 1):
        mk_sample(base / f"{i:03d}", rnd, seen, args.parts)
    print(f"wrote {args.count} samples under {base}")


if __name__ == "__main__":
    main()
