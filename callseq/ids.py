from __future__ import annotations
import re
from typing import Dict, Set

FILLER = "_"
_NON_ALNUM = re.compile(r"[^0-9A-Za-z]")


def sanitize(name: str) -> str:
    """Renderer-safe base id: non-alphanumerics -> '_', no leading digit."""
    ident = _NON_ALNUM.sub(FILLER, name or "")
    if not ident:
        return FILLER
    if ident[0].isdigit():
        ident = FILLER + ident
    return ident


class IdTable:
    """
    Name -> identifier table for one analysis run. Distinct names that share a
    sanitized base get "<base>_<n>" in first-seen order; a name keeps the id it
    was first given.
    """

    def __init__(self):
        self._by_name: Dict[str, str] = {}
        self._next: Dict[str, int] = {}
        self._taken: Set[str] = set()

    def __call__(self, name: str) -> str:
        return self.ident(name)

    def __len__(self) -> int:
        return len(self._by_name)

    def ident(self, name: str) -> str:
        got = self._by_name.get(name)
        if got is not None:
            return got
        base = sanitize(name)
        n = self._next.get(base, 0)
        cand = base if n == 0 else f"{base}_{n}"
        # a literal name may already occupy "<base>_<n>"
        while cand in self._taken:
            n += 1
            cand = f"{base}_{n}"
        self._next[base] = n + 1
        self._taken.add(cand)
        self._by_name[name] = cand
        return cand
