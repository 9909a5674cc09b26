"""WebAssembly value types and their decompiled type names."""

from __future__ import annotations

from enum import Enum


class ValueType(Enum):
    """Value and memory types as they appear in decompiled output.

    The value of each member is its text-format name (``i32``, ``f64``...).
    Narrow and unsigned members only occur as memory access types of
    ``load8_u`` / ``store16`` style instructions.
    """

    I8 = "i8"
    I8U = "i8_u"
    I16 = "i16"
    I16U = "i16_u"
    I32 = "i32"
    I32U = "i32_u"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"
    V128 = "v128"
    FUNC = "func"
    FUNCREF = "funcref"
    ANYREF = "anyref"
    VOID = "void"

    @property
    def decomp_name(self) -> str:
        return DECOMP_TYPE_NAMES[self]


DECOMP_TYPE_NAMES: dict[ValueType, str] = {
    ValueType.I8: "byte",
    ValueType.I8U: "ubyte",
    ValueType.I16: "short",
    ValueType.I16U: "ushort",
    ValueType.I32: "int",
    ValueType.I32U: "uint",
    ValueType.I64: "long",
    ValueType.F32: "float",
    ValueType.F64: "double",
    ValueType.V128: "simd",
    ValueType.FUNC: "func",
    ValueType.FUNCREF: "funcref",
    ValueType.ANYREF: "anyref",
    ValueType.VOID: "void",
}


def parse_value_type(name: str) -> ValueType:
    """Look up a ValueType by its text-format name (``"i32"``, ``"f64"``...)."""
    try:
        return ValueType(name)
    except ValueError:
        raise ValueError(f"unknown value type {name!r}") from None
