from __future__ import annotations

# Node classes. Classification is never stored; it is recomputed from the name.
USER = "user"
SYSTEM = "system"
INDIRECT = "indirect"

INDIRECT_MARKER = "(indirect"
INDIRECT_LABEL = "(indirect)"

# Toolchain / runtime / builtin markers (case-sensitive prefixes).
SYSTEM_PREFIXES = (
    "__",
    "_mingw",
    "__builtin",
    "__imp_",
    "_chkstk",
    "__security",
    "__acrt",
)

# Well-known C standard library symbols treated as leaves.
STDLIB_NAMES = frozenset({
    # I/O
    "printf", "fprintf", "sprintf", "snprintf", "puts", "putchar",
    "fopen", "fclose", "fread", "fwrite", "fflush",
    # memory
    "malloc", "calloc", "realloc", "free",
    "memcpy", "memset", "memcmp",
    # strings
    "strlen", "strcpy", "strncpy", "strcmp", "strncmp", "strcat", "strncat",
    # process termination
    "exit", "abort", "assert",
})


def is_indirect(name: str) -> bool:
    return name.startswith(INDIRECT_MARKER)


def is_system_name(name: str) -> bool:
    if name.startswith(SYSTEM_PREFIXES):
        return True
    return name in STDLIB_NAMES


def classify(name: str) -> str:
    """Map a callee name to USER, SYSTEM or INDIRECT."""
    if is_indirect(name):
        return INDIRECT
    if is_system_name(name):
        return SYSTEM
    return USER


def indirect_label(hint: str | None = None, with_hint: bool = False) -> str:
    """
    Synthetic node name for a call whose target is not a named declaration.
    The hint form "(indirect:<hint>)" is used only when requested and when the
    hint is a usable token; anything else falls back to "(indirect)".
    """
    if not with_hint:
        return INDIRECT_LABEL
    hint = (hint or "").strip()
    if not hint:
        return INDIRECT_LABEL
    return f"{INDIRECT_MARKER}:{hint})"


def indirect_hint(name: str) -> str | None:
    if not is_indirect(name) or not name.startswith(INDIRECT_MARKER + ":"):
        return None
    return name[len(INDIRECT_MARKER) + 1:].rstrip(")") or None
