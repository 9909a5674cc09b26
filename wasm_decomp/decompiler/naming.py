"""Name generation and the memory-access naming interface."""

from __future__ import annotations

from typing import Protocol

from ..ir.ast_nodes import Node

TEMP_VAR_PREFIX = "t"


def temp_var_name(index: int) -> str:
    """Name of a flushed temporary, unique within one function."""
    return f"{TEMP_VAR_PREFIX}{index}"


def index_to_alpha_name(index: int) -> str:
    """Alphabetic parameter name: 0 -> a, 25 -> z, 26 -> ab, ...

    The fastest-changing letter comes first.
    """
    s = ""
    while True:
        s += chr(ord("a") + index % 26)
        index //= 26
        if index <= 0:
            break
    return s


class AccessTracker(Protocol):
    """Supplies symbolic names for memory accesses within one function."""

    def track(self, root: Node) -> None:
        """Analyse a function body before it is rendered."""

    def gen_access(self, offset: int, addr: Node) -> str:
        """Field/array access text for a load or store, or ``""``."""

    def gen_struct(self, name: str) -> str:
        """Struct type name for a local used as a base pointer, or ``""``."""

    def clear(self) -> None:
        """Forget everything learned about the current function."""


class NullAccessTracker:
    """Tracker that never names anything: raw offsets everywhere."""

    def track(self, root: Node) -> None:
        pass

    def gen_access(self, offset: int, addr: Node) -> str:
        return ""

    def gen_struct(self, name: str) -> str:
        return ""

    def clear(self) -> None:
        pass
