"""WebAssembly opcode table for the decompiler.

Only the properties the decompiler needs are recorded: the text-format
name, the operator token used in decompiled output, and for memory
instructions the access width and the type that is read or written.
"""

from __future__ import annotations

from dataclasses import dataclass

from .types import ValueType


@dataclass(frozen=True)
class Opcode:
    """A single opcode entry."""

    name: str  # text-format name, e.g. "i32.add"
    decomp: str = ""  # operator token; falls back to the name
    memory_size: int = 0  # bytes accessed by loads/stores
    memory_type: ValueType | None = None

    @property
    def token(self) -> str:
        """Token for decompiled output, with dots turned into underscores."""
        return (self.decomp or self.name).replace(".", "_")

    def is_naturally_aligned(self, align: int | None) -> bool:
        # None means the instruction used the default (natural) alignment
        return align is None or align == self.memory_size


OPCODES: dict[str, Opcode] = {}


def _add(name: str, decomp: str = "", memory_size: int = 0, memory_type: ValueType | None = None) -> None:
    OPCODES[name] = Opcode(name, decomp, memory_size, memory_type)


# ---------------------------------------------------------------------------
# Numeric operators
# ---------------------------------------------------------------------------

_INT_BINARY: dict[str, str] = {
    "add": "+",
    "sub": "-",
    "mul": "*",
    "div_s": "/",
    "div_u": "/",
    "rem_s": "%",
    "rem_u": "%",
    "and": "&",
    "or": "|",
    "xor": "^",
    "shl": "<<",
    "shr_s": ">>",
    "shr_u": ">>",
    "rotl": "",
    "rotr": "",
}

_INT_COMPARE: dict[str, str] = {
    "eq": "==",
    "ne": "!=",
    "lt_s": "<",
    "lt_u": "<",
    "gt_s": ">",
    "gt_u": ">",
    "le_s": "<=",
    "le_u": "<=",
    "ge_s": ">=",
    "ge_u": ">=",
}

_INT_UNARY: dict[str, str] = {
    "eqz": "eqz",
    "clz": "",
    "ctz": "",
    "popcnt": "",
    "extend8_s": "",
    "extend16_s": "",
}

_FLOAT_BINARY: dict[str, str] = {
    "add": "+",
    "sub": "-",
    "mul": "*",
    "div": "/",
    "min": "",
    "max": "",
    "copysign": "",
}

_FLOAT_COMPARE: dict[str, str] = {
    "eq": "==",
    "ne": "!=",
    "lt": "<",
    "gt": ">",
    "le": "<=",
    "ge": ">=",
}

_FLOAT_UNARY: dict[str, str] = {
    "abs": "",
    "neg": "-",
    "ceil": "",
    "floor": "",
    "trunc": "",
    "nearest": "",
    "sqrt": "",
}

for _prefix in ("i32", "i64"):
    for _table in (_INT_BINARY, _INT_COMPARE, _INT_UNARY):
        for _op, _decomp in _table.items():
            _add(f"{_prefix}.{_op}", _decomp)
_add("i64.extend32_s")

for _prefix in ("f32", "f64"):
    for _table in (_FLOAT_BINARY, _FLOAT_COMPARE, _FLOAT_UNARY):
        for _op, _decomp in _table.items():
            _add(f"{_prefix}.{_op}", _decomp)


# ---------------------------------------------------------------------------
# Conversions (always rendered as name(...))
# ---------------------------------------------------------------------------

for _name in (
    "i32.wrap_i64",
    "i32.trunc_f32_s",
    "i32.trunc_f32_u",
    "i32.trunc_f64_s",
    "i32.trunc_f64_u",
    "i64.extend_i32_s",
    "i64.extend_i32_u",
    "i64.trunc_f32_s",
    "i64.trunc_f32_u",
    "i64.trunc_f64_s",
    "i64.trunc_f64_u",
    "f32.convert_i32_s",
    "f32.convert_i32_u",
    "f32.convert_i64_s",
    "f32.convert_i64_u",
    "f32.demote_f64",
    "f64.convert_i32_s",
    "f64.convert_i32_u",
    "f64.convert_i64_s",
    "f64.convert_i64_u",
    "f64.promote_f32",
    "i32.reinterpret_f32",
    "i64.reinterpret_f64",
    "f32.reinterpret_i32",
    "f64.reinterpret_i64",
    "i32.trunc_sat_f32_s",
    "i32.trunc_sat_f32_u",
    "i32.trunc_sat_f64_s",
    "i32.trunc_sat_f64_u",
    "i64.trunc_sat_f32_s",
    "i64.trunc_sat_f32_u",
    "i64.trunc_sat_f64_s",
    "i64.trunc_sat_f64_u",
):
    _add(_name)


# ---------------------------------------------------------------------------
# Memory access
# ---------------------------------------------------------------------------

# name -> (bytes accessed, memory type)
_MEMORY_OPS: dict[str, tuple[int, ValueType]] = {
    "i32.load": (4, ValueType.I32),
    "i64.load": (8, ValueType.I64),
    "f32.load": (4, ValueType.F32),
    "f64.load": (8, ValueType.F64),
    "v128.load": (16, ValueType.V128),
    "i32.load8_s": (1, ValueType.I8),
    "i32.load8_u": (1, ValueType.I8U),
    "i32.load16_s": (2, ValueType.I16),
    "i32.load16_u": (2, ValueType.I16U),
    "i64.load8_s": (1, ValueType.I8),
    "i64.load8_u": (1, ValueType.I8U),
    "i64.load16_s": (2, ValueType.I16),
    "i64.load16_u": (2, ValueType.I16U),
    "i64.load32_s": (4, ValueType.I32),
    "i64.load32_u": (4, ValueType.I32U),
    "i32.store": (4, ValueType.I32),
    "i64.store": (8, ValueType.I64),
    "f32.store": (4, ValueType.F32),
    "f64.store": (8, ValueType.F64),
    "v128.store": (16, ValueType.V128),
    "i32.store8": (1, ValueType.I8),
    "i32.store16": (2, ValueType.I16),
    "i64.store8": (1, ValueType.I8),
    "i64.store16": (2, ValueType.I16),
    "i64.store32": (4, ValueType.I32),
}

for _name, (_size, _mtype) in _MEMORY_OPS.items():
    _add(_name, memory_size=_size, memory_type=_mtype)


def get_opcode(name: str) -> Opcode:
    """Return the table entry for a text-format opcode name."""
    try:
        return OPCODES[name]
    except KeyError:
        raise ValueError(f"unknown opcode {name!r}") from None
