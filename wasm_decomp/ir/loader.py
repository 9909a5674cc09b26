"""JSON loader for modules and node trees.

The decompiler consumes node trees that an external pass has already
built from validated bytecode. This loader reads that hand-off in a JSON
encoding so trees can be stored as fixtures and fed to the CLI.

Node objects::

    {"node": "expr", "expr": "binary", "opcode": "i32.add", "children": [...]}
    {"node": "expr", "expr": "const", "type": "i64", "value": 5}
    {"node": "expr", "expr": "local_get", "name": "a"}
    {"node": "expr", "expr": "load", "opcode": "i32.load8_u", "offset": 4, "align": 1, ...}
    {"node": "expr", "expr": "loop", "label": "L0", "children": [<statements>]}
    {"node": "expr", "expr": "br_if", "name": "L0", "target": "loop", ...}
    {"node": "statements", "children": [...]}
    {"node": "flush", "start": 0, "count": 2, "children": [...]}
    {"node": "flushed", "index": 1}
    {"node": "return", "children": [...]}
    {"node": "decl", "name": "x", "type": "i32"}
    {"node": "decl_init", "name": "x", "type": "i32", "children": [<init>]}

``"node"`` defaults to ``"expr"`` when an ``"expr"`` key is present.

Module objects hold ``memories``, ``globals``, ``tables``, ``data``,
``functions`` and ``exports`` arrays; see :func:`load_module`.
"""

from __future__ import annotations

import json
import logging
import struct
from pathlib import Path
from typing import Any

from .ast_nodes import (
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
from .module import DataSegment, Export, ExternalKind, Func, Global, Memory, Module, Table
from .opcodes import get_opcode
from .types import ValueType, parse_value_type

log = logging.getLogger(__name__)


class LoaderError(Exception):
    pass


_VAR_EXPRS = {
    ExprType.LOCAL_GET,
    ExprType.LOCAL_SET,
    ExprType.LOCAL_TEE,
    ExprType.GLOBAL_GET,
    ExprType.GLOBAL_SET,
    ExprType.CALL,
    ExprType.BR,
    ExprType.BR_IF,
}
_OPCODE_EXPRS = {ExprType.UNARY, ExprType.BINARY, ExprType.COMPARE, ExprType.CONVERT}
_MEMORY_EXPRS = {ExprType.LOAD, ExprType.STORE}
_BLOCK_EXPRS = {ExprType.BLOCK, ExprType.LOOP}


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


def load_node(data: Any) -> Node:
    """Build a Node tree from its JSON object form."""
    if not isinstance(data, dict):
        raise LoaderError(f"node must be an object, got {type(data).__name__}")

    tag = data.get("node", "expr" if "expr" in data else None)
    try:
        ntype = NodeType(tag)
    except ValueError:
        raise LoaderError(f"unknown node kind {tag!r}") from None

    children = [load_node(c) for c in _require_list(data, "children", default=[])]
    node = Node(ntype, children=children)

    if ntype is NodeType.EXPR:
        node.etype, node.expr = _load_expr(data, children)
        if node.etype in (ExprType.BR, ExprType.BR_IF):
            node.label_type = _label_type(data.get("target", "block"))
    elif ntype is NodeType.FLUSH_TO_VARS:
        node.var_start = _require_int(data, "start")
        node.var_count = _require_int(data, "count")
    elif ntype is NodeType.FLUSHED_VAR:
        node.var_start = _require_int(data, "index")
        node.var_count = 1
    elif ntype in (NodeType.DECL, NodeType.DECL_INIT):
        node.var_name = _require_str(data, "name")
        node.var_type = _value_type(_require_str(data, "type"))
    elif ntype is NodeType.UNINITIALIZED:
        raise LoaderError("uninitialized nodes cannot be loaded")

    return node


def _load_expr(data: dict, children: list[Node]) -> tuple[ExprType, Expr]:
    key = _require_str(data, "expr")
    try:
        etype = ExprType[key.upper()]
    except KeyError:
        raise LoaderError(f"unknown expression kind {key!r}") from None

    if etype is ExprType.CONST:
        vtype = _value_type(data.get("type", "i32"))
        raw = data.get("value", 0)
        try:
            if vtype in (ValueType.F32, ValueType.F64):
                value: int | float = float(raw)
                if vtype is ValueType.F32:
                    struct.pack("<f", value)
            elif vtype is ValueType.V128:
                value = 0
            else:
                value = int(raw)
        except (TypeError, ValueError, OverflowError):
            raise LoaderError(f"bad {vtype.value} constant {raw!r}") from None
        return etype, ConstExpr(vtype, value)

    if etype in _VAR_EXPRS:
        return etype, VarExpr(_require_str(data, "name"))

    if etype in _OPCODE_EXPRS:
        return etype, OpcodeExpr(_opcode(data))

    if etype in _MEMORY_EXPRS:
        opcode = _opcode(data)
        if opcode.memory_type is None:
            raise LoaderError(f"{opcode.name} is not a memory access")
        align = data.get("align")
        if align is not None and not isinstance(align, int):
            raise LoaderError(f"align must be an integer, got {align!r}")
        return etype, MemoryExpr(opcode, _optional_int(data, "offset"), align)

    if etype in _BLOCK_EXPRS:
        return etype, BlockExpr(data.get("label", ""))

    if etype is ExprType.IF:
        has_else = data.get("has_else", len(children) > 2)
        return etype, IfExpr(data.get("label", ""), bool(has_else))

    return etype, Expr()


# ---------------------------------------------------------------------------
# Module
# ---------------------------------------------------------------------------


def load_module(data: Any) -> Module:
    """Build a Module from its JSON object form.

    Keys (all optional)::

        memories:  [{name, initial, max, imported}]
        globals:   [{name, type, init, imported}]
        tables:    [{name, type, min, max, imported}]
        data:      [{name, offset, data | hex}]
        functions: [{name, params, results, body, imported}]
        exports:   [{name, kind, index}]

    ``init``, ``offset`` and ``body`` are a node object or a list of them
    (the residual expression stack).
    """
    if not isinstance(data, dict):
        raise LoaderError("module must be a JSON object")

    module = Module()

    for m in _objects(data, "memories"):
        module.memories.append(
            Memory(
                name=_require_str(m, "name"),
                initial=_optional_int(m, "initial"),
                max=_optional_int(m, "max"),
                imported=bool(m.get("imported", False)),
            )
        )

    for g in _objects(data, "globals"):
        imported = bool(g.get("imported", False))
        module.globals.append(
            Global(
                name=_require_str(g, "name"),
                type=_value_type(g.get("type", "i32")),
                init=[] if imported else _load_stack(g.get("init")),
                imported=imported,
            )
        )

    for t in _objects(data, "tables"):
        module.tables.append(
            Table(
                name=_require_str(t, "name"),
                elem_type=_value_type(t.get("type", "funcref")),
                initial=_optional_int(t, "min"),
                max=_optional_int(t, "max"),
                imported=bool(t.get("imported", False)),
            )
        )

    for d in _objects(data, "data"):
        module.data_segments.append(
            DataSegment(
                name=_require_str(d, "name"),
                offset=_load_stack(d.get("offset")),
                data=_segment_bytes(d),
            )
        )

    for f in _objects(data, "functions"):
        imported = bool(f.get("imported", False))
        module.funcs.append(
            Func(
                name=_require_str(f, "name"),
                params=[_value_type(p) for p in f.get("params", [])],
                results=[_value_type(r) for r in f.get("results", [])],
                body=[] if imported else _load_stack(f.get("body")),
                imported=imported,
            )
        )

    for e in _objects(data, "exports"):
        try:
            kind = ExternalKind(e.get("kind", "func"))
        except ValueError:
            raise LoaderError(f"unknown export kind {e.get('kind')!r}") from None
        module.exports.append(Export(_require_str(e, "name"), kind, _optional_int(e, "index")))

    log.debug(
        "Loaded module: %d memories, %d globals, %d tables, %d data, %d functions",
        len(module.memories),
        len(module.globals),
        len(module.tables),
        len(module.data_segments),
        len(module.funcs),
    )
    return module


def load_json_file(path: str | Path) -> Any:
    """Read a JSON document, wrapping decode failures in LoaderError."""
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise LoaderError(f"{path}: cannot read: {e}") from e
    except UnicodeDecodeError as e:
        raise LoaderError(f"{path}: not UTF-8 text: {e}") from e
    except json.JSONDecodeError as e:
        raise LoaderError(f"{path}: invalid JSON: {e}") from e


def load_module_file(path: str | Path) -> Module:
    return load_module(load_json_file(path))


def load_node_file(path: str | Path) -> Node:
    return load_node(load_json_file(path))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_stack(value: Any) -> list[Node]:
    if value is None:
        return []
    if isinstance(value, list):
        return [load_node(v) for v in value]
    return [load_node(value)]


def _segment_bytes(d: dict) -> bytes:
    if "hex" in d:
        try:
            return bytes.fromhex(d["hex"])
        except (TypeError, ValueError):
            raise LoaderError(f"data segment {d.get('name')!r}: bad hex string") from None
    text = d.get("data", "")
    if not isinstance(text, str):
        raise LoaderError(f"data segment {d.get('name')!r}: data must be a string")
    try:
        return text.encode("latin-1")
    except UnicodeEncodeError:
        log.warning("Data segment %r has non latin-1 text, encoding as UTF-8", d.get("name"))
        return text.encode("utf-8")


def _opcode(data: dict):
    name = _require_str(data, "opcode")
    try:
        return get_opcode(name)
    except ValueError as e:
        raise LoaderError(str(e)) from None


def _value_type(name: Any) -> ValueType:
    if not isinstance(name, str):
        raise LoaderError(f"value type must be a string, got {name!r}")
    try:
        return parse_value_type(name)
    except ValueError as e:
        raise LoaderError(str(e)) from None


def _label_type(name: Any) -> LabelType:
    try:
        return LabelType(name)
    except ValueError:
        raise LoaderError(f"unknown branch target kind {name!r}") from None


def _require_str(data: Any, key: str) -> str:
    if not isinstance(data, dict) or not isinstance(data.get(key), str):
        raise LoaderError(f"missing or non-string {key!r} in {data!r}")
    return data[key]


def _require_int(data: dict, key: str) -> int:
    value = data.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise LoaderError(f"missing or non-integer {key!r} in {data!r}")
    return value


def _optional_int(data: dict, key: str, default: int = 0) -> int:
    if key not in data:
        return default
    return _require_int(data, key)


def _require_list(data: dict, key: str, default: list | None = None) -> list:
    value = data.get(key, default)
    if not isinstance(value, list):
        raise LoaderError(f"{key!r} must be a list")
    return value


def _objects(data: dict, key: str) -> list[dict]:
    items = _require_list(data, key, default=[])
    for item in items:
        if not isinstance(item, dict):
            raise LoaderError(f"entries of {key!r} must be objects, got {item!r}")
    return items
