from .events import (
    CallObserved,
    Event,
    FrontendError,
    FunctionDeclared,
    dump_events,
    load_events,
)
from .c_source import Macro, parse_c, collect_macros

__all__ = [
    "CallObserved",
    "Event",
    "FrontendError",
    "FunctionDeclared",
    "dump_events",
    "load_events",
    "parse_c",
    "collect_macros",
    "Macro",
]
