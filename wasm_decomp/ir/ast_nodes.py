"""Node tree definitions for the WebAssembly decompiler.

A function body arrives as a tree of Nodes built by the AST-construction
pass: every instruction's operands have been folded into its children,
stack values crossing control-flow joins have been flushed into numbered
temporaries, and local declarations have been placed. The decompiler only
renders this tree; it never reshapes it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .opcodes import Opcode, get_opcode
from .types import ValueType


class NodeType(Enum):
    """Structural kind of a node. Values double as JSON tags."""

    UNINITIALIZED = "uninitialized"
    FLUSH_TO_VARS = "flush"
    FLUSHED_VAR = "flushed"
    STATEMENTS = "statements"
    END_RETURN = "return"
    DECL = "decl"
    DECL_INIT = "decl_init"
    EXPR = "expr"


class ExprType(Enum):
    """Instruction category of an EXPR node.

    Values are the display names used when an expression has no dedicated
    rendering and falls back to ``Name(args)``.
    """

    CONST = "Const"
    LOCAL_GET = "LocalGet"
    LOCAL_SET = "LocalSet"
    LOCAL_TEE = "LocalTee"
    GLOBAL_GET = "GlobalGet"
    GLOBAL_SET = "GlobalSet"
    UNARY = "Unary"
    BINARY = "Binary"
    COMPARE = "Compare"
    CONVERT = "Convert"
    LOAD = "Load"
    STORE = "Store"
    BLOCK = "Block"
    LOOP = "Loop"
    IF = "If"
    BR = "Br"
    BR_IF = "BrIf"
    BR_TABLE = "BrTable"
    RETURN = "Return"
    DROP = "Drop"
    CALL = "Call"
    CALL_INDIRECT = "CallIndirect"
    SELECT = "Select"
    MEMORY_SIZE = "MemorySize"
    MEMORY_GROW = "MemoryGrow"
    NOP = "Nop"
    UNREACHABLE = "Unreachable"


class LabelType(Enum):
    """What kind of construct a branch label belongs to."""

    FUNC = "func"
    BLOCK = "block"
    LOOP = "loop"
    IF = "if"


# ---------------------------------------------------------------------------
# Expression payloads
# ---------------------------------------------------------------------------


@dataclass
class Expr:
    """Payload without operands beyond the node's children."""


@dataclass
class ConstExpr(Expr):
    type: ValueType = ValueType.I32
    value: int | float = 0


@dataclass
class VarExpr(Expr):
    """Variable, callee or branch-target reference."""

    var: str = ""


@dataclass
class OpcodeExpr(Expr):
    opcode: Opcode = field(default_factory=lambda: get_opcode("i32.add"))


@dataclass
class MemoryExpr(Expr):
    opcode: Opcode = field(default_factory=lambda: get_opcode("i32.load"))
    offset: int = 0
    align: int | None = None  # bytes; None = natural


@dataclass
class BlockExpr(Expr):
    label: str = ""


@dataclass
class IfExpr(Expr):
    label: str = ""
    has_else: bool = False


# ---------------------------------------------------------------------------
# Node
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Node:
    """One element of a function body tree.

    Nodes compare by identity so they can key the access tracker.
    """

    ntype: NodeType = NodeType.UNINITIALIZED
    etype: ExprType | None = None
    expr: Expr | None = None
    children: list[Node] = field(default_factory=list)

    # FLUSH_TO_VARS / FLUSHED_VAR
    var_start: int = 0
    var_count: int = 0

    # DECL / DECL_INIT
    var_name: str = ""
    var_type: ValueType | None = None

    # BR / BR_IF: kind of the construct being exited
    label_type: LabelType | None = None

    def __repr__(self) -> str:
        kind = self.etype.name if self.ntype is NodeType.EXPR and self.etype else self.ntype.name
        return f"<Node {kind} children={len(self.children)}>"


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def expr_node(etype: ExprType, payload: Expr | None = None, *children: Node) -> Node:
    return Node(NodeType.EXPR, etype, payload if payload is not None else Expr(), list(children))


def statements(*children: Node) -> Node:
    return Node(NodeType.STATEMENTS, children=list(children))


def flush_to_vars(start: int, count: int, *children: Node) -> Node:
    return Node(NodeType.FLUSH_TO_VARS, children=list(children), var_start=start, var_count=count)


def flushed_var(index: int) -> Node:
    return Node(NodeType.FLUSHED_VAR, var_start=index, var_count=1)


def end_return(*children: Node) -> Node:
    return Node(NodeType.END_RETURN, children=list(children))


def decl(name: str, var_type: ValueType) -> Node:
    return Node(NodeType.DECL, var_name=name, var_type=var_type)


def decl_init(name: str, var_type: ValueType, init: Node) -> Node:
    return Node(NodeType.DECL_INIT, children=[init], var_name=name, var_type=var_type)


def const(var_type: ValueType, value: int | float) -> Node:
    return expr_node(ExprType.CONST, ConstExpr(var_type, value))


def local_get(name: str) -> Node:
    return expr_node(ExprType.LOCAL_GET, VarExpr(name))


def local_set(name: str, value: Node) -> Node:
    return expr_node(ExprType.LOCAL_SET, VarExpr(name), value)


def local_tee(name: str, value: Node | None = None) -> Node:
    if value is None:
        return expr_node(ExprType.LOCAL_TEE, VarExpr(name))
    return expr_node(ExprType.LOCAL_TEE, VarExpr(name), value)


def global_get(name: str) -> Node:
    return expr_node(ExprType.GLOBAL_GET, VarExpr(name))


def global_set(name: str, value: Node) -> Node:
    return expr_node(ExprType.GLOBAL_SET, VarExpr(name), value)


def unary(opcode: str, operand: Node) -> Node:
    return expr_node(ExprType.UNARY, OpcodeExpr(get_opcode(opcode)), operand)


def binary(opcode: str, left: Node, right: Node) -> Node:
    return expr_node(ExprType.BINARY, OpcodeExpr(get_opcode(opcode)), left, right)


def compare(opcode: str, left: Node, right: Node) -> Node:
    return expr_node(ExprType.COMPARE, OpcodeExpr(get_opcode(opcode)), left, right)


def convert(opcode: str, operand: Node) -> Node:
    return expr_node(ExprType.CONVERT, OpcodeExpr(get_opcode(opcode)), operand)


def load(opcode: str, addr: Node, offset: int = 0, align: int | None = None) -> Node:
    return expr_node(ExprType.LOAD, MemoryExpr(get_opcode(opcode), offset, align), addr)


def store(opcode: str, addr: Node, value: Node, offset: int = 0, align: int | None = None) -> Node:
    return expr_node(ExprType.STORE, MemoryExpr(get_opcode(opcode), offset, align), addr, value)


def call(name: str, *args: Node) -> Node:
    return expr_node(ExprType.CALL, VarExpr(name), *args)


def block(label: str, body: Node) -> Node:
    return expr_node(ExprType.BLOCK, BlockExpr(label), body)


def loop(label: str, body: Node) -> Node:
    return expr_node(ExprType.LOOP, BlockExpr(label), body)


def if_(cond: Node, then_body: Node, else_body: Node | None = None, label: str = "") -> Node:
    if else_body is None:
        return expr_node(ExprType.IF, IfExpr(label, False), cond, then_body)
    return expr_node(ExprType.IF, IfExpr(label, True), cond, then_body, else_body)


def br(label: str, target: LabelType = LabelType.BLOCK) -> Node:
    node = expr_node(ExprType.BR, VarExpr(label))
    node.label_type = target
    return node


def br_if(label: str, cond: Node, target: LabelType = LabelType.BLOCK) -> Node:
    node = expr_node(ExprType.BR_IF, VarExpr(label), cond)
    node.label_type = target
    return node


def return_(*values: Node) -> Node:
    return expr_node(ExprType.RETURN, Expr(), *values)


def drop(value: Node) -> Node:
    return expr_node(ExprType.DROP, Expr(), value)
