"""Module model, node trees, type and opcode tables, and the JSON loader."""

from .ast_nodes import ExprType, LabelType, Node, NodeType
from .loader import LoaderError, load_module, load_module_file, load_node, load_node_file
from .module import DataSegment, Export, ExternalKind, Func, Global, Memory, Module, Table
from .opcodes import Opcode, get_opcode
from .types import ValueType

__all__ = [
    "ExprType",
    "LabelType",
    "Node",
    "NodeType",
    "LoaderError",
    "load_module",
    "load_module_file",
    "load_node",
    "load_node_file",
    "DataSegment",
    "Export",
    "ExternalKind",
    "Func",
    "Global",
    "Memory",
    "Module",
    "Table",
    "Opcode",
    "get_opcode",
    "ValueType",
]
