from __future__ import annotations
import re
from pathlib import Path

# Preprocessor directives, including backslash-continued lines.
PREPROC_RE = re.compile(r"^[ \t]*#(?:[^\n\\]|\\.)*", re.MULTILINE | re.DOTALL)


def canon(p: str) -> str:
    if not isinstance(p, str):
        return p
    p = p.replace("\\", "/")
    p = re.sub(r"^\./", "", p)      # drop leading ./ once
    p = p.replace("/./", "/")       # collapse /./
    while "//" in p:
        p = p.replace("//", "/")    # collapse //
    return p


def rel_path(root: Path, p: Path) -> str:
    try:
        out = p.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        out = p.as_posix()
    return canon(out)


def is_source_file(path: Path, include_ext: set[str]) -> bool:
    return path.suffix.lower() in include_ext


def _blank(s: str) -> str:
    # keep newlines so line numbers survive
    return "".join("\n" if c == "\n" else " " for c in s)


def mask_c_source(text: str, keep_preproc: bool = False) -> str:
    """
    Blank out comments, string/char literals and (unless keep_preproc)
    preprocessor lines, keeping every offset and line number intact.
    """
    out = []
    i, n = 0, len(text)
    while i < n:
        c = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if c == "/" and nxt == "/":
            j = text.find("\n", i)
            j = n if j == -1 else j
            out.append(_blank(text[i:j]))
            i = j
        elif c == "/" and nxt == "*":
            j = text.find("*/", i + 2)
            j = n if j == -1 else j + 2
            out.append(_blank(text[i:j]))
            i = j
        elif c in ("\"", "'"):
            j = i + 1
            while j < n and text[j] != c and text[j] != "\n":
                j += 2 if text[j] == "\\" else 1
            j = min(j + 1, n)
            out.append(c + _blank(text[i + 1:j - 1]) + (text[j - 1] if j - 1 > i else ""))
            i = j
        else:
            out.append(c)
            i += 1
    masked = "".join(out)
    if keep_preproc:
        return masked
    return PREPROC_RE.sub(lambda m: _blank(m.group(0)), masked)


def line_col(text: str, offset: int) -> tuple[int, int]:
    line = text.count("\n", 0, offset) + 1
    col = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, col
