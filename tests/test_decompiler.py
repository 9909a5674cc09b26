"""Tests for the expression decompiler."""

from __future__ import annotations

import pytest

from wasm_decomp.decompiler import DecompileError, DecompileOptions, decompile_node
from wasm_decomp.ir.ast_nodes import (
    Expr,
    ExprType,
    LabelType,
    Node,
    NodeType,
    OpcodeExpr,
    binary,
    block,
    br,
    br_if,
    call,
    compare,
    const,
    convert,
    decl,
    decl_init,
    drop,
    end_return,
    expr_node,
    flush_to_vars,
    flushed_var,
    global_get,
    global_set,
    if_,
    load,
    local_get,
    local_set,
    local_tee,
    loop,
    return_,
    statements,
    store,
    unary,
)
from wasm_decomp.ir.opcodes import get_opcode
from wasm_decomp.ir.types import ValueType

I32 = ValueType.I32


def render(node: Node, **opts) -> list[str]:
    return decompile_node(node, DecompileOptions(**opts)).split("\n")


class FieldTracker:
    """Names offset 4 as ``count`` and local ``p`` as a ``Point``."""

    def track(self, root: Node) -> None:
        pass

    def gen_access(self, offset: int, addr: Node) -> str:
        return "count" if offset == 4 else ""

    def gen_struct(self, name: str) -> str:
        return "Point" if name == "p" else ""

    def clear(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Examples
# ---------------------------------------------------------------------------


def test_binary_add_of_constants() -> None:
    assert render(binary("i32.add", const(I32, 1), const(I32, 2))) == ["1 + 2"]


def test_call_without_arguments() -> None:
    assert render(call("foo")) == ["foo()"]


def test_long_call_wraps_one_argument_per_line() -> None:
    node = call(
        "compute",
        local_get("first_argument_value"),
        local_get("second_argument_value"),
        local_get("third_argument_value"),
    )
    lines = render(node)
    assert lines == [
        "compute(first_argument_value,",
        "        second_argument_value,",
        "        third_argument_value)",
    ]
    assert all(len(line) <= 70 for line in lines)


def test_if_else_on_one_line() -> None:
    node = if_(local_get("c"), statements(call("a")), statements(call("b")))
    assert render(node) == ["if (c) { a(); } else { b(); }"]


def test_if_else_with_multiline_branch() -> None:
    node = if_(
        local_get("c"),
        statements(call("a"), call("b")),
        statements(call("c")),
    )
    assert render(node) == [
        "if (c) {",
        "  a();",
        "  b();",
        "} else {",
        "  c();",
        "}",
    ]


def test_drop_emits_only_the_call() -> None:
    node = statements(drop(call("foo", const(I32, 1))))
    lines = render(node)
    assert lines == ["foo(1);"]
    assert not any("drop" in line.lower() for line in lines)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "vtype, value, expected",
    [
        (ValueType.I32, 7, "7"),
        (ValueType.I32, -5, "-5"),
        (ValueType.I32, 0xFFFFFFFF, "-1"),
        (ValueType.I64, 5, "5L"),
        (ValueType.I64, 0xFFFFFFFFFFFFFFFF, "-1L"),
        (ValueType.F32, 1.5, "1.5f"),
        (ValueType.F32, 0.1, "0.1f"),
        (ValueType.F64, 0.1, "0.1"),
        (ValueType.F64, 2.0, "2.0"),
        (ValueType.F64, 0.0, "0.0"),
        (ValueType.V128, 0, "V128"),
    ],
)
def test_constants(vtype: ValueType, value, expected: str) -> None:
    assert render(const(vtype, value)) == [expected]


def test_unrenderable_constant_type() -> None:
    with pytest.raises(DecompileError):
        decompile_node(const(ValueType.FUNCREF, 0))


def test_out_of_range_f32_constant() -> None:
    with pytest.raises(DecompileError, match="out of range"):
        decompile_node(const(ValueType.F32, 1e39))


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------


def test_local_and_global_set() -> None:
    assert render(local_set("x", const(I32, 1))) == ["x = 1"]
    node = global_set("g", binary("i32.add", global_get("g"), const(I32, 1)))
    assert render(node) == ["g = g + 1"]


def test_tee_without_value_is_a_read() -> None:
    assert render(local_tee("x")) == ["x"]


def test_tee_as_operand_is_bracketed() -> None:
    node = binary("i32.add", local_tee("x", const(I32, 1)), const(I32, 2))
    assert render(node) == ["(x = 1) + 2"]


def test_long_assignment_puts_value_on_next_line() -> None:
    node = statements(local_set("a_really_long_name", local_get("value_of_something")))
    assert render(node, target_width=20) == ["a_really_long_name = ", "  value_of_something;"]


def test_declarations() -> None:
    assert render(decl("x", I32)) == ["var x:int"]
    node = decl_init("y", ValueType.F64, const(ValueType.F64, 1.5))
    assert render(node) == ["var y:double = 1.5"]


def test_declaration_uses_struct_name() -> None:
    text = decompile_node(decl("p", I32), tracker=FieldTracker())
    assert text == "var p:Point"


# ---------------------------------------------------------------------------
# Operators and bracketing
# ---------------------------------------------------------------------------


def test_nested_binary_operands_are_bracketed() -> None:
    left = binary("i32.mul", binary("i32.add", local_get("a"), local_get("b")), local_get("c"))
    assert render(left) == ["(a + b) * c"]
    right = binary("i32.add", local_get("a"), binary("i32.mul", local_get("b"), local_get("c")))
    assert render(right) == ["a + (b * c)"]


def test_compare_token() -> None:
    assert render(compare("i32.lt_s", local_get("a"), local_get("b"))) == ["a < b"]


def test_operator_without_symbol_uses_opcode_name() -> None:
    node = binary("i32.rotl", local_get("a"), const(I32, 3))
    assert render(node) == ["a i32_rotl 3"]


def test_unary_wrapping_clears_bracketing() -> None:
    inner = unary("i32.clz", binary("i32.add", local_get("a"), local_get("b")))
    assert render(inner) == ["i32_clz(a + b)"]
    outer = binary("i32.add", unary("i32.clz", local_get("a")), local_get("c"))
    assert render(outer) == ["i32_clz(a) + c"]


def test_convert_uses_opcode_token() -> None:
    assert render(convert("i64.extend_i32_u", local_get("a"))) == ["i64_extend_i32_u(a)"]


def test_other_expressions_render_as_calls() -> None:
    node = expr_node(ExprType.SELECT, Expr(), local_get("a"), local_get("b"), local_get("c"))
    assert render(node) == ["Select(a, b, c)"]
    assert render(expr_node(ExprType.MEMORY_SIZE)) == ["MemorySize()"]


# ---------------------------------------------------------------------------
# Memory access
# ---------------------------------------------------------------------------


def test_load_suffixes() -> None:
    assert render(load("i32.load", local_get("p"), offset=8)) == ["p[8]:int"]
    assert render(load("i32.load8_u", local_get("p"), align=1)) == ["p[0]:ubyte"]
    assert render(load("i32.load", local_get("p"), offset=4, align=1)) == ["p[4]:int@1"]


def test_load_brackets_operator_address() -> None:
    node = load("i64.load", binary("i32.add", local_get("p"), const(I32, 4)))
    assert render(node) == ["(p + 4)[0]:long"]


def test_store() -> None:
    node = statements(store("i32.store", local_get("p"), const(I32, 5), offset=4))
    assert render(node) == ["p[4]:int = 5;"]
    node = store("i64.store16", local_get("p"), local_get("x"))
    assert render(node) == ["p[0]:short = x"]


def test_long_store_indents_value() -> None:
    node = store("i32.store", local_get("pointer_var"), local_get("some_long_value"))
    assert render(node, target_width=20) == ["pointer_var[0]:int = ", "  some_long_value"]


def test_access_names_from_tracker() -> None:
    tracker = FieldTracker()
    text = decompile_node(load("i32.load", local_get("p"), offset=4), tracker=tracker)
    assert text == "p.count"
    text = decompile_node(load("i32.load", local_get("p"), offset=8), tracker=tracker)
    assert text == "p[8]:int"


# ---------------------------------------------------------------------------
# Statements, temporaries, control flow
# ---------------------------------------------------------------------------


def test_flush_and_references() -> None:
    node = statements(
        flush_to_vars(0, 2, call("f"), call("g")),
        binary("i32.add", flushed_var(0), flushed_var(1)),
    )
    assert render(node) == ["let t0, t1 = f(), g();", "t0 + t1;"]


def test_flush_names_are_contiguous_from_start() -> None:
    node = flush_to_vars(3, 3, const(I32, 1), const(I32, 2), const(I32, 3))
    assert render(node) == ["let t3, t4, t5 = 1, 2, 3"]
    assert render(flushed_var(4)) == ["t4"]


def test_returns() -> None:
    assert render(end_return()) == ["return"]
    assert render(end_return(const(I32, 1))) == ["return 1"]
    assert render(return_(local_get("a"), local_get("b"))) == ["return a, b"]
    assert render(return_()) == ["return"]


def test_block_and_break() -> None:
    node = block("B0", statements(br("B0")))
    assert render(node) == ["block B0 {", "  break B0;", "}"]


def test_loop_and_conditional_continue() -> None:
    node = loop("L0", statements(br_if("L0", local_get("c"), LabelType.LOOP)))
    assert render(node) == ["loop L0 {", "  if (c) continue L0;", "}"]


def test_conditional_break() -> None:
    node = br_if("B1", compare("i32.eq", local_get("a"), const(I32, 0)))
    assert render(node) == ["if (a == 0) break B1"]


def test_statement_termination() -> None:
    node = statements(
        local_set("x", const(I32, 0)),
        loop("L0", statements(local_set("x", binary("i32.add", local_get("x"), const(I32, 1))))),
        call("f"),
    )
    lines = render(node)
    assert lines == [
        "x = 0;",
        "loop L0 {",
        "  x = x + 1;",
        "}",
        "f();",
    ]
    for line in lines:
        assert line.endswith(";") or line.endswith("{") or line.endswith("}")


def test_if_without_else() -> None:
    node = if_(local_get("c"), statements(br("B0")))
    assert render(node) == ["if (c) { break B0; }"]


def test_if_too_wide_goes_multiline() -> None:
    node = if_(
        local_get("cond"),
        statements(call("do_something")),
        statements(call("other_thing")),
    )
    assert render(node, target_width=20) == [
        "if (cond) {",
        "  do_something();",
        "} else {",
        "  other_thing();",
        "}",
    ]


def test_if_with_empty_branch() -> None:
    node = if_(local_get("c"), statements(), statements(call("f")))
    assert render(node) == ["if (c) {} else { f(); }"]


def test_wide_binary_respects_target_width() -> None:
    node = binary("i32.add", local_get("a" * 20), local_get("b" * 20))
    lines = render(node, target_width=30)
    assert lines == ["a" * 20 + " + ", "b" * 20]
    assert all(len(line) <= 30 for line in lines)


# ---------------------------------------------------------------------------
# Invariant violations
# ---------------------------------------------------------------------------


def test_uninitialized_node_is_fatal() -> None:
    with pytest.raises(DecompileError):
        decompile_node(Node())


def test_expression_without_type_is_fatal() -> None:
    with pytest.raises(DecompileError):
        decompile_node(Node(NodeType.EXPR))


def test_missing_operand_is_fatal() -> None:
    node = expr_node(ExprType.BINARY, OpcodeExpr(get_opcode("i32.add")), const(I32, 1))
    with pytest.raises(DecompileError):
        decompile_node(node)


def test_missing_payload_is_fatal() -> None:
    with pytest.raises(DecompileError):
        decompile_node(expr_node(ExprType.LOCAL_GET, Expr()))
