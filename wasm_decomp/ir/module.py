"""In-memory model of a validated module, as handed to the decompiler.

Function bodies, global initializers and data-segment offsets are stored
as residual expression stacks: the list of root nodes left over after the
AST-construction pass. A well-formed stack holds exactly one node.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .ast_nodes import Node
from .types import ValueType

log = logging.getLogger(__name__)


class ExternalKind(Enum):
    FUNC = "func"
    TABLE = "table"
    MEMORY = "memory"
    GLOBAL = "global"


@dataclass
class Export:
    name: str
    kind: ExternalKind
    index: int = 0


@dataclass
class Memory:
    name: str
    initial: int = 0  # pages
    max: int = 0
    imported: bool = False


@dataclass
class Global:
    name: str
    type: ValueType = ValueType.I32
    init: list[Node] = field(default_factory=list)
    imported: bool = False


@dataclass
class Table:
    name: str
    elem_type: ValueType = ValueType.FUNCREF
    initial: int = 0
    max: int = 0
    imported: bool = False


@dataclass
class DataSegment:
    name: str
    offset: list[Node] = field(default_factory=list)
    data: bytes = b""


@dataclass
class Func:
    name: str
    params: list[ValueType] = field(default_factory=list)
    results: list[ValueType] = field(default_factory=list)
    body: list[Node] = field(default_factory=list)
    imported: bool = False


@dataclass
class Module:
    memories: list[Memory] = field(default_factory=list)
    globals: list[Global] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    data_segments: list[DataSegment] = field(default_factory=list)
    funcs: list[Func] = field(default_factory=list)
    exports: list[Export] = field(default_factory=list)


class ModuleContext:
    """Import/export queries and current-function state for one module."""

    def __init__(self, module: Module):
        self.module = module
        self.current_func: Func | None = None

    def _entities(self, kind: ExternalKind) -> list:
        if kind is ExternalKind.FUNC:
            return self.module.funcs
        if kind is ExternalKind.TABLE:
            return self.module.tables
        if kind is ExternalKind.MEMORY:
            return self.module.memories
        return self.module.globals

    def is_import(self, kind: ExternalKind, index: int) -> bool:
        entities = self._entities(kind)
        if 0 <= index < len(entities):
            return entities[index].imported
        return False

    def get_export(self, name: str) -> Export | None:
        for export in self.module.exports:
            if export.name == name:
                return export
        return None

    def begin_func(self, func: Func) -> None:
        self.current_func = func

    def end_func(self) -> None:
        log.debug("Finished function '%s'", self.current_func.name if self.current_func else "?")
        self.current_func = None
