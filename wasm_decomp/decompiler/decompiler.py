"""Node-tree decompiler for WebAssembly modules.

Renders the node trees produced by the AST-construction pass as readable
pseudo-source, then assembles the module-level declarations around them.

Approach:
- Walk each tree post-order, turning every node into a layout Value
- Combine child Values with the Layout primitives, which decide between
  single-line and wrapped forms against the target width
- Mark operator expressions for bracketing and parenthesize them only
  when they end up as operands
"""

from __future__ import annotations

import logging
import struct

from ..ir.ast_nodes import (
    BlockExpr,
    ConstExpr,
    Expr,
    ExprType,
    IfExpr,
    LabelType,
    MemoryExpr,
    Node,
    NodeType,
    OpcodeExpr,
    VarExpr,
)
from ..ir.module import ExternalKind, Func, Module, ModuleContext
from ..ir.types import ValueType
from .layout import Layout, Value
from .naming import AccessTracker, NullAccessTracker, index_to_alpha_name, temp_var_name
from .options import DecompileOptions

log = logging.getLogger(__name__)


class DecompileError(Exception):
    """An internal invariant of the node tree or the decompiler was violated."""


def float_to_string(d: float) -> str:
    """Fixed-point rendering with redundant trailing zeros removed."""
    s = "%f" % d
    while len(s) > 2 and s[-1] == "0" and s[-2] != ".":
        s = s[:-1]
    return s


def _to_signed(value: int, bits: int) -> int:
    mask = (1 << bits) - 1
    value &= mask
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _to_f32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        raise DecompileError(f"f32 constant {value!r} is out of range") from None


def quote_data(data: bytes) -> str:
    """Quote a data segment: printable ASCII as-is, everything else as \\hh."""
    out = ['"']
    for c in data:
        if 0x20 <= c <= 0x7E:
            out.append(chr(c))
        else:
            out.append(f"\\{c:02x}")
    out.append('"')
    return "".join(out)


class Decompiler:
    """Decompile a Module (or a single node tree) into pseudo-source text."""

    def __init__(
        self,
        module: Module | None = None,
        options: DecompileOptions | None = None,
        tracker: AccessTracker | None = None,
    ):
        self.module = module or Module()
        self.options = options or DecompileOptions()
        self.layout = Layout(self.options)
        self.tracker: AccessTracker = tracker if tracker is not None else NullAccessTracker()
        self.mc = ModuleContext(self.module)

    # -- Module assembly ------------------------------------------------------

    def decompile(self) -> str:
        """Decompile the entire module to text."""
        sections = [
            self._decompile_memories(),
            self._decompile_globals(),
            self._decompile_tables(),
            self._decompile_data(),
        ]
        s = "".join(sections)
        for index, func in enumerate(self.module.funcs):
            s += self.decompile_function(func, index)
        return s

    def _check_import_export(self, kind: ExternalKind, index: int, name: str) -> tuple[str, bool]:
        """Return the ``export ``/``import `` prefix and whether it is an import."""
        is_import = self.mc.is_import(kind, index)
        export = self.mc.get_export(name)
        prefix = ""
        if export is not None and export.kind is kind:
            prefix += "export "
        if is_import:
            prefix += "import "
        return prefix, is_import

    def _decompile_memories(self) -> str:
        s = ""
        for index, mem in enumerate(self.module.memories):
            prefix, is_import = self._check_import_export(ExternalKind.MEMORY, index, mem.name)
            s += f"{prefix}memory {mem.name}"
            if not is_import:
                s += f"(initial: {mem.initial}, max: {mem.max})"
            s += ";\n"
        if self.module.memories:
            s += "\n"
        log.debug("Memories: %d", len(self.module.memories))
        return s

    def _decompile_globals(self) -> str:
        s = ""
        for index, glob in enumerate(self.module.globals):
            prefix, is_import = self._check_import_export(ExternalKind.GLOBAL, index, glob.name)
            s += f"{prefix}global {glob.name}:{glob.type.decomp_name}"
            if not is_import:
                s += f" = {self.init_exp(glob.init)}"
            s += ";\n"
        if self.module.globals:
            s += "\n"
        log.debug("Globals: %d", len(self.module.globals))
        return s

    def _decompile_tables(self) -> str:
        s = ""
        for index, table in enumerate(self.module.tables):
            prefix, is_import = self._check_import_export(ExternalKind.TABLE, index, table.name)
            s += f"{prefix}table {table.name}:{table.elem_type.decomp_name}"
            if not is_import:
                s += f"(min: {table.initial}, max: {table.max})"
            s += ";\n"
        if self.module.tables:
            s += "\n"
        log.debug("Tables: %d", len(self.module.tables))
        return s

    def _decompile_data(self) -> str:
        s = ""
        for seg in self.module.data_segments:
            s += f"data {seg.name}(offset: {self.init_exp(seg.offset)}) = {quote_data(seg.data)};\n"
        if self.module.data_segments:
            s += "\n"
        log.debug("Data segments: %d", len(self.module.data_segments))
        return s

    def init_exp(self, exprs: list[Node]) -> str:
        """Render a constant initializer expression, which must fit on one line."""
        if not exprs:
            raise DecompileError("empty initializer expression")
        if len(exprs) != 1:
            raise DecompileError(f"initializer reduced to {len(exprs)} expressions, expected 1")
        val = self.decompile_expr(exprs[0])
        if len(val.lines) != 1:
            raise DecompileError("initializer expression did not render to a single line")
        return val.lines[0]

    def decompile_function(self, func: Func, index: int = 0) -> str:
        """Decompile one function: signature plus body, followed by a blank line."""
        log.debug("Decompiling function '%s' (index %d)", func.name, index)
        self.mc.begin_func(func)
        try:
            prefix, is_import = self._check_import_export(ExternalKind.FUNC, index, func.name)
            root: Node | None = None
            if not is_import:
                root = self._function_root(func)
                self.tracker.track(root)

            params = ", ".join(
                self.local_decl(index_to_alpha_name(i), t) for i, t in enumerate(func.params)
            )
            s = f"{prefix}function {func.name}({params})"
            if len(func.results) == 1:
                s += f":{func.results[0].decomp_name}"
            elif func.results:
                s += ":(" + ", ".join(t.decomp_name for t in func.results) + ")"

            if root is None:
                s += ";"
            else:
                val = self.decompile_expr(root)
                self.layout.indent_value(val, self.options.indent_amount)
                s += " {\n"
                for line in val.lines:
                    s += line + "\n"
                s += "}"
            s += "\n\n"
            return s
        finally:
            self.mc.end_func()
            self.tracker.clear()

    def _function_root(self, func: Func) -> Node:
        if not func.body:
            raise DecompileError(f"function '{func.name}' has no body expression")
        if len(func.body) != 1:
            raise DecompileError(
                f"function '{func.name}' reduced to {len(func.body)} root expressions, expected 1"
            )
        return func.body[0]

    # -- References -----------------------------------------------------------

    def local_decl(self, name: str, var_type: ValueType) -> str:
        struct_name = self.tracker.gen_struct(name)
        return f"{name}:{struct_name or var_type.decomp_name}"

    def _load_store(self, val: Value, addr: Node, mem: MemoryExpr) -> None:
        """Append the access suffix for a load/store to its address value."""
        self.layout.bracket_if_needed(val)
        if not val.lines:
            raise DecompileError("memory access without an address expression")
        access = self.tracker.gen_access(mem.offset, addr)
        if access:
            val.lines[-1] += "." + access
            return
        opcode = mem.opcode
        mtype = opcode.memory_type
        type_name = mtype.decomp_name if mtype is not None else opcode.name
        suffix = f"[{mem.offset}]:{type_name}"
        if not opcode.is_naturally_aligned(mem.align):
            suffix += f"@{mem.align}"
        val.lines[-1] += suffix

    # -- Expressions ----------------------------------------------------------

    def decompile_expr(self, n: Node) -> Value:
        """Render a node tree into a layout Value."""
        args = [self.decompile_expr(c) for c in n.children]
        ntype = n.ntype

        if ntype is NodeType.EXPR:
            return self._decompile_op(n, args)

        elif ntype is NodeType.FLUSH_TO_VARS:
            names = ", ".join(temp_var_name(n.var_start + i) for i in range(n.var_count))
            return self.layout.wrap_nary(args, f"let {names} = ", "")

        elif ntype is NodeType.FLUSHED_VAR:
            return Value([temp_var_name(n.var_start)])

        elif ntype is NodeType.STATEMENTS:
            lines: list[str] = []
            for val in args:
                stat = val.take_lines()
                if not stat:
                    continue
                if not stat[-1].endswith("}"):
                    stat[-1] += ";"
                lines.extend(stat)
            return Value(lines)

        elif ntype is NodeType.END_RETURN:
            return self._return(args)

        elif ntype is NodeType.DECL:
            return Value([f"var {self._decl_of(n)}"])

        elif ntype is NodeType.DECL_INIT:
            (init,) = self._operands(n, args, 1)
            return self.layout.wrap_child(init, f"var {self._decl_of(n)} = ", "")

        raise DecompileError(f"cannot decompile {ntype.name} node")

    def _decompile_op(self, n: Node, args: list[Value]) -> Value:
        etype = n.etype
        layout = self.layout

        if etype is None:
            raise DecompileError("expression node without an expression type")

        elif etype is ExprType.CONST:
            return Value([self._const(self._payload(n, ConstExpr))])

        elif etype in (ExprType.LOCAL_GET, ExprType.GLOBAL_GET):
            return Value([self._payload(n, VarExpr).var])

        elif etype in (ExprType.LOCAL_SET, ExprType.GLOBAL_SET):
            (value,) = self._operands(n, args, 1)
            return self._set(value, self._payload(n, VarExpr).var)

        elif etype is ExprType.LOCAL_TEE:
            name = self._payload(n, VarExpr).var
            if not args:
                return Value([name])
            return self._set(args[0], name)

        elif etype in (ExprType.BINARY, ExprType.COMPARE):
            left, right = self._operands(n, args, 2)
            token = self._payload(n, OpcodeExpr).opcode.token
            return layout.wrap_binary(left, right, f" {token} ", False)

        elif etype is ExprType.UNARY:
            (operand,) = self._operands(n, args, 1)
            token = self._payload(n, OpcodeExpr).opcode.token
            return layout.wrap_child(operand, f"{token}(", ")")

        elif etype is ExprType.LOAD:
            mem = self._payload(n, MemoryExpr)
            (addr,) = self._operands(n, args, 1)
            self._load_store(addr, n.children[0], mem)
            return addr

        elif etype is ExprType.STORE:
            mem = self._payload(n, MemoryExpr)
            addr, value = self._operands(n, args, 2)
            self._load_store(addr, n.children[0], mem)
            return layout.wrap_binary(addr, value, " = ", True)

        elif etype is ExprType.IF:
            return self._if(n, args)

        elif etype is ExprType.BLOCK:
            (body,) = self._operands(n, args, 1)
            return layout.block(body, self._payload(n, BlockExpr).label, "block")

        elif etype is ExprType.LOOP:
            (body,) = self._operands(n, args, 1)
            return layout.block(body, self._payload(n, BlockExpr).label, "loop")

        elif etype is ExprType.BR:
            label = self._payload(n, VarExpr).var
            return Value([f"{self._jump_keyword(n)} {label}"])

        elif etype is ExprType.BR_IF:
            (cond,) = self._operands(n, args, 1)
            label = self._payload(n, VarExpr).var
            return layout.wrap_child(cond, "if (", f") {self._jump_keyword(n)} {label}")

        elif etype is ExprType.RETURN:
            return self._return(args)

        elif etype is ExprType.DROP:
            # Discarded results are common enough that the drop itself
            # is not shown.
            (value,) = self._operands(n, args, 1)
            return value

        # Everything else renders as a call-like form.
        if etype is ExprType.CALL:
            name = self._payload(n, VarExpr).var
        elif etype is ExprType.CONVERT:
            name = self._payload(n, OpcodeExpr).opcode.token
        else:
            name = etype.value
        return layout.wrap_nary(args, f"{name}(", ")")

    # -- Helper methods -------------------------------------------------------

    def _payload(self, n: Node, cls: type[Expr]):
        if not isinstance(n.expr, cls):
            raise DecompileError(f"{n!r} is missing its {cls.__name__} payload")
        return n.expr

    def _operands(self, n: Node, args: list[Value], count: int) -> list[Value]:
        if len(args) < count:
            raise DecompileError(f"{n!r} needs {count} operand(s), has {len(args)}")
        return args[:count]

    def _decl_of(self, n: Node) -> str:
        if n.var_type is None:
            func = self.mc.current_func
            where = f" in function '{func.name}'" if func is not None else ""
            raise DecompileError(f"declaration of '{n.var_name}'{where} has no type")
        return self.local_decl(n.var_name, n.var_type)

    def _set(self, value: Value, name: str) -> Value:
        val = self.layout.wrap_child(value, f"{name} = ", "")
        # An assignment used as an operand must stay parenthesized.
        val.needs_bracketing = True
        return val

    def _return(self, args: list[Value]) -> Value:
        if not args:
            return Value(["return"])
        return self.layout.wrap_nary(args, "return ", "")

    def _jump_keyword(self, n: Node) -> str:
        return "continue" if n.label_type is LabelType.LOOP else "break"

    def _const(self, c: ConstExpr) -> str:
        t = c.type
        if t is ValueType.I32:
            return str(_to_signed(int(c.value), 32))
        elif t is ValueType.I64:
            return f"{_to_signed(int(c.value), 64)}L"
        elif t is ValueType.F32:
            return float_to_string(_to_f32(float(c.value))) + "f"
        elif t is ValueType.F64:
            return float_to_string(float(c.value))
        elif t is ValueType.V128:
            return "V128"
        raise DecompileError(f"constant of type {t.value} cannot be rendered")

    def _if(self, n: Node, args: list[Value]) -> Value:
        has_else = self._payload(n, IfExpr).has_else
        cond, then = self._operands(n, args, 2)
        otherwise: Value | None = None
        if has_else:
            otherwise = self._operands(n, args, 3)[2]

        multiline = cond.is_multiline or then.is_multiline
        width = cond.width + then.width
        if otherwise is not None:
            width += otherwise.width
            multiline = multiline or otherwise.is_multiline
        multiline = multiline or width > self.options.target_width

        if not multiline:
            s = f"if ({_first(cond)}) {_braced(then)}"
            if otherwise is not None:
                s += f" else {_braced(otherwise)}"
            return Value([s])

        lines = cond.take_lines() or [""]
        lines[0] = "if (" + lines[0]
        lines[-1] += ") {"
        self.layout.indent_value(then, self.options.indent_amount)
        lines.extend(then.take_lines())
        if otherwise is not None:
            lines.append("} else {")
            self.layout.indent_value(otherwise, self.options.indent_amount)
            lines.extend(otherwise.take_lines())
        lines.append("}")
        return Value(lines)


def _first(val: Value) -> str:
    return val.lines[0] if val.lines else ""


def _braced(val: Value) -> str:
    line = _first(val)
    return f"{{ {line} }}" if line else "{}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decompile_module(
    module: Module,
    options: DecompileOptions | None = None,
    tracker: AccessTracker | None = None,
) -> str:
    """Decompile a Module to pseudo-source text."""
    return Decompiler(module, options, tracker).decompile()


def decompile_node(
    root: Node,
    options: DecompileOptions | None = None,
    tracker: AccessTracker | None = None,
) -> str:
    """Render a single node tree (e.g. one function body) without indentation."""
    d = Decompiler(options=options, tracker=tracker)
    d.tracker.track(root)
    try:
        return d.decompile_expr(root).text()
    finally:
        d.tracker.clear()
