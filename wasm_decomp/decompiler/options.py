"""Formatting options for decompiled output."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DecompileOptions:
    """Layout parameters threaded through a decompilation.

    indent_amount: spaces per nesting level.
    target_width:  column limit before an expression is wrapped.
    """

    indent_amount: int = 2
    target_width: int = 70

    def __post_init__(self) -> None:
        if self.indent_amount < 0:
            raise ValueError(f"indent_amount must be >= 0, got {self.indent_amount}")
        if self.target_width <= 0:
            raise ValueError(f"target_width must be > 0, got {self.target_width}")
