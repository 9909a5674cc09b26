"""Width-aware line layout for decompiled expressions.

Every rendered sub-expression is a Value: a short list of lines plus a
flag saying whether it is an operator expression that must be
parenthesized before being used as an operand. Parents combine child
Values with the primitives on Layout, which decide between single-line
and multi-line forms based on the child widths and the target width.

Combining is destructive: child lines are spliced into the parent. A
Value handed to a primitive belongs to that primitive afterwards and must
not be used again by the caller.
"""

from __future__ import annotations

from collections.abc import Sequence

from .options import DecompileOptions


class Value:
    """Rendered lines of one (sub)expression or statement group."""

    __slots__ = ("lines", "needs_bracketing")

    def __init__(self, lines: list[str] | None = None, needs_bracketing: bool = False):
        self.lines: list[str] = lines if lines is not None else []
        self.needs_bracketing = needs_bracketing

    @property
    def width(self) -> int:
        return max((len(line) for line in self.lines), default=0)

    @property
    def is_multiline(self) -> bool:
        return len(self.lines) > 1

    def take_lines(self) -> list[str]:
        """Detach and return the line list, leaving this Value empty."""
        lines = self.lines
        self.lines = []
        return lines

    def text(self) -> str:
        return "\n".join(self.lines)

    def __repr__(self) -> str:
        flag = " needs_bracketing" if self.needs_bracketing else ""
        return f"<Value {self.lines!r}{flag}>"


class Layout:
    """Layout primitives bound to one set of DecompileOptions."""

    def __init__(self, options: DecompileOptions | None = None):
        options = options or DecompileOptions()
        self.indent_amount = options.indent_amount
        self.target_width = options.target_width

    def indent_value(self, val: Value, amount: int, first_line_prefix: str = "") -> None:
        """Indent all lines of ``val`` in place.

        A non-empty ``first_line_prefix`` replaces the indentation of the
        first line.
        """
        indent = " " * amount
        lines = val.lines
        for i, line in enumerate(lines):
            lead = first_line_prefix if i == 0 and first_line_prefix else indent
            lines[i] = lead + line

    def wrap_child(self, child: Value, prefix: str, postfix: str) -> Value:
        """Attach ``prefix`` and ``postfix`` around a single child."""
        lines = child.lines
        if not lines:
            lines.append("")
        width = len(prefix) + len(postfix) + child.width
        short_affixes = len(prefix) <= self.indent_amount and len(postfix) <= self.indent_amount
        if width < self.target_width or short_affixes:
            if len(lines) == 1:
                lines[0] = prefix + lines[0] + postfix
            else:
                # Prefix on the first line, the rest aligned under it.
                self.indent_value(child, len(prefix), prefix)
                lines[-1] += postfix
        else:
            # Prefix on its own line.
            self.indent_value(child, self.indent_amount)
            lines.insert(0, prefix)
            lines[-1] += postfix
        child.needs_bracketing = False
        return child

    def bracket_if_needed(self, val: Value) -> Value:
        if val.needs_bracketing:
            self.wrap_child(val, "(", ")")
            val.needs_bracketing = False
        return val

    def wrap_binary(self, left: Value, right: Value, infix: str, indent_right: bool = False) -> Value:
        """Join two operands with ``infix``. The result is an operator expression."""
        self.bracket_if_needed(left)
        self.bracket_if_needed(right)
        width = len(infix) + left.width + right.width
        if width < self.target_width and len(left.lines) == 1 and len(right.lines) == 1:
            return Value([left.lines[0] + infix + right.lines[0]], True)
        lines = left.take_lines()
        if not lines:
            lines.append("")
        lines[-1] += infix
        if indent_right:
            self.indent_value(right, self.indent_amount)
        lines.extend(right.take_lines())
        return Value(lines, True)

    def wrap_nary(self, args: Sequence[Value], prefix: str, postfix: str) -> Value:
        """Render an argument list as ``prefix arg, arg, ... postfix``."""
        total_width = 0
        max_width = 0
        multiline = False
        for child in args:
            w = child.width
            max_width = max(max_width, w)
            total_width += w
            multiline = multiline or child.is_multiline
        if not multiline and (
            total_width + len(prefix) + len(postfix) < self.target_width or not args
        ):
            joined = ", ".join(child.lines[0] if child.lines else "" for child in args)
            return Value([prefix + joined + postfix])

        # One argument per line, either aligned after the prefix or, when
        # the widest argument would not fit that way, under a prefix line.
        align_with_prefix = max_width + len(prefix) < self.target_width
        lines: list[str] = []
        last = len(args) - 1
        for i, child in enumerate(args):
            if align_with_prefix:
                self.indent_value(child, len(prefix), prefix if i == 0 else "")
            else:
                self.indent_value(child, self.indent_amount)
            if i < last and child.lines:
                child.lines[-1] += ","
            lines.extend(child.take_lines())
        if not align_with_prefix:
            lines.insert(0, prefix)
        lines[-1] += postfix
        return Value(lines)

    def block(self, body: Value, label: str, keyword: str) -> Value:
        """Wrap a statement body in ``keyword label { ... }``."""
        self.indent_value(body, self.indent_amount)
        header = f"{keyword} {label} {{" if label else f"{keyword} {{"
        body.lines.insert(0, header)
        body.lines.append("}")
        body.needs_bracketing = False
        return body
