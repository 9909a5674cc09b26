"""Expression decompiler and width-aware layout engine."""

from .decompiler import DecompileError, Decompiler, decompile_module, decompile_node
from .layout import Layout, Value
from .naming import AccessTracker, NullAccessTracker
from .options import DecompileOptions

__all__ = [
    "DecompileError",
    "Decompiler",
    "decompile_module",
    "decompile_node",
    "Layout",
    "Value",
    "AccessTracker",
    "NullAccessTracker",
    "DecompileOptions",
]
