from __future__ import annotations
import re
from pathlib import PurePosixPath
from dataclasses import dataclass
from typing import Dict, Iterable, List, Set, Tuple
from .events import CallObserved, Event, FrontendError, FunctionDeclared
from ..utils import mask_c_source, line_col

USER_EXT = (".c", ".cc", ".cpp", ".cxx")

# Words followed by "(" that are never call sites.
KEYWORDS = {
    "if", "for", "while", "switch", "return", "sizeof", "alignof", "_Alignof",
    "_Generic", "_Static_assert", "static_assert", "defined", "typeof",
    "__typeof__", "decltype", "__attribute__", "__declspec", "__asm__", "asm",
    "catch", "operator", "new", "delete", "throw", "noexcept",
}
TYPE_WORDS = {
    "void", "char", "short", "int", "long", "float", "double", "signed",
    "unsigned", "bool", "_Bool", "const", "volatile", "struct", "union", "enum",
}
# Identifiers that may directly precede a call expression.
CALL_CONTEXT = {"return", "else", "do", "case", "throw", "co_return", "co_await"}

# "name(params) [qualifiers]" at the end of a top-level segment preceding "{"
FUNC_HEAD_RE = re.compile(
    r"(?P<name>[A-Za-z_~][\w:~]*)\s*\((?P<params>(?:[^()]|\((?:[^()]|\([^()]*\))*\))*)\)"
    r"\s*(?:(?:const|noexcept|override|final)\s*)*$"
)
TRANSPARENT_RE = re.compile(r"(?:\bextern\s*\"\s*\"|\bnamespace(?:\s+[\w:]+)?)\s*$")
STATIC_RE = re.compile(r"\bstatic\b")
FP_DECL_RE = re.compile(r"\(\s*\*\s*([A-Za-z_]\w*)\s*\)\s*\(")
DEFINE_RE = re.compile(
    r"^[ \t]*#[ \t]*define[ \t]+(?P<name>[A-Za-z_]\w*)\((?P<args>[^)]*)\)(?P<body>(?:[^\n\\]|\\.)*)",
    re.MULTILINE | re.DOTALL,
)
CALL_RE = re.compile(
    r"""
    (?P<deref>\(\s*\*\s*(?P<dname>[A-Za-z_]\w*)\s*\)\s*\()
    |(?P<member>(?:->|\.)\s*(?P<mname>[A-Za-z_]\w*)\s*\()
    |(?P<index>\]\s*\()
    |(?P<name>\b[A-Za-z_]\w*)(?=\s*\()
    """,
    re.VERBOSE,
)
PREV_WORD_RE = re.compile(r"([A-Za-z_]\w*)\s*$")
# "unsigned long", "struct node": identifiers only, nothing else
SPECIFIERS_RE = re.compile(r"(?:[A-Za-z_]\w*\s+)*[A-Za-z_]\w*")
STATEMENT_SPLIT_RE = re.compile(r"[;{}]")

# Generic hint for callee expressions richer than a (dereferenced) name.
EXPR_HINT = "expr"


def is_user_file(path: str, user_ext: Iterable[str] = USER_EXT) -> bool:
    return PurePosixPath(path).suffix.lower() in {e.lower() for e in user_ext}


@dataclass(frozen=True)
class Macro:
    params: Tuple[str, ...]
    body: str


def collect_macros(text: str) -> Dict[str, Macro]:
    """Function-like macros: name -> parameters and replacement text."""
    masked = mask_c_source(text, keep_preproc=True)
    out: Dict[str, Macro] = {}
    for m in DEFINE_RE.finditer(masked):
        params = tuple(p.strip() for p in m.group("args").split(",") if p.strip())
        out[m.group("name")] = Macro(params, m.group("body").replace("\\\n", " "))
    return out


def _match_brace(text: str, start: int) -> int:
    depth = 0
    for i in range(start, len(text)):
        c = text[i]
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _definitions(path: str, masked: str):
    """Yield (name, name_offset, params, head, body_start, body_end) for each function body."""
    i, n = 0, len(masked)
    seg_start = 0
    open_scopes = 0  # extern "C" { / namespace x { blocks we walk into
    while i < n:
        c = masked[i]
        if c == ";":
            seg_start = i + 1
        elif c == "}":
            if open_scopes == 0:
                line, _ = line_col(masked, i)
                raise FrontendError(path, f"unbalanced '}}' at line {line}")
            open_scopes -= 1
            seg_start = i + 1
        elif c == "{":
            head = masked[seg_start:i]
            if TRANSPARENT_RE.search(head):
                open_scopes += 1
                seg_start = i + 1
                i += 1
                continue
            close = _match_brace(masked, i)
            if close == -1:
                line, _ = line_col(masked, i)
                raise FrontendError(path, f"unterminated block opened at line {line}")
            m = FUNC_HEAD_RE.search(head.rstrip())
            if m and "=" not in head:
                name = m.group("name").split("::")[-1]
                if name and name not in KEYWORDS:
                    yield name, seg_start + m.start("name"), m.group("params"), head, i, close
            i = close + 1
            seg_start = i
            continue
        i += 1
    if open_scopes:
        raise FrontendError(path, "unterminated extern/namespace block")


def _prev_word(text: str, end: int) -> str | None:
    m = PREV_WORD_RE.search(text, max(0, end - 64), end)
    return m.group(1) if m else None


def _is_declaration(text: str, start: int, pointer_ok: bool = False) -> bool:
    """A name( preceded by a type word declares a function, it does not call one."""
    before = text[max(0, start - 64):start].rstrip()
    if pointer_ok and before.endswith("*"):
        # char *(*fp)(int) declares; a * (*fp)(2) multiplies
        spec = STATEMENT_SPLIT_RE.split(before)[-1].rstrip("* \t\n").strip()
        if not SPECIFIERS_RE.fullmatch(spec):
            return False
        return not any(w in CALL_CONTEXT or w in KEYWORDS for w in spec.split())
    if not before:
        return False
    word = _prev_word(before, len(before))
    if word is not None and before.endswith(word):
        return word not in CALL_CONTEXT and word not in KEYWORDS
    return False


class _BodyScanner:
    def __init__(self, path: str, caller: str, text: str, fps: Set[str], macros: Dict[str, Macro]):
        self.path = path
        self.caller = caller
        self.text = text  # whole masked file; offsets stay file-relative
        self.fps = fps
        self.macros = macros
        self.events: List[Event] = []

    def _emit(self, offset: int, callee: str | None, hint: str | None = None):
        line, col = line_col(self.text, offset)
        self.events.append(CallObserved(
            caller=self.caller, callee=callee, hint=hint,
            file=self.path, line=line, column=col,
        ))

    def scan(self, start: int, end: int):
        for m in CALL_RE.finditer(self.text, start, end):
            if m.group("deref"):
                if _is_declaration(self.text, m.start(), pointer_ok=True):
                    self.fps.add(m.group("dname"))
                    continue
                self._emit(m.start(), None, m.group("dname"))
            elif m.group("member"):
                self._emit(m.start("mname"), None, EXPR_HINT)
            elif m.group("index"):
                self._emit(m.start(), None, EXPR_HINT)
            else:
                self._name(m.group("name"), m.start("name"))

    def _name(self, name: str, offset: int, expanding: tuple = ()):
        if name in KEYWORDS or name in TYPE_WORDS:
            return
        if not expanding and _is_declaration(self.text, offset):
            return
        if name in self.fps:
            self._emit(offset, None, name)
            return
        macro = self.macros.get(name)
        if macro is not None and name not in expanding:
            # a function-like macro contributes the calls in its replacement
            # text; a macro never re-expands inside itself, and a call through
            # one of its parameters names no function
            for m in CALL_RE.finditer(macro.body):
                if m.group("name") and m.group("name") not in macro.params:
                    self._name(m.group("name"), offset, expanding + (name,))
            return
        self._emit(offset, name)


def parse_c(path: str, text: str, user_ext: Iterable[str] = USER_EXT,
            macros: Dict[str, Macro] | None = None) -> List[Event]:
    """
    Best-effort C/C++ front end. Emits one FunctionDeclared per function body
    and, in textual order, one CallObserved per call expression in that body.
    Calls hidden behind object-like macros or typedef'd function pointers are
    not recognized.
    """
    masked = mask_c_source(text)
    known_macros = dict(macros or {})
    known_macros.update(collect_macros(text))
    user = is_user_file(path, user_ext)

    events: List[Event] = []
    for name, offset, params, head, body_start, body_end in _definitions(path, masked):
        line, _ = line_col(masked, offset)
        events.append(FunctionDeclared(
            name=name, file=path, line=line, user_code=user,
            static=bool(STATIC_RE.search(head)),
        ))
        fps = set(FP_DECL_RE.findall(params))
        body = _BodyScanner(path, name, masked, fps, known_macros)
        body.scan(body_start + 1, body_end)
        events.extend(body.events)
    return events
