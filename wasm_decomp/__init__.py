"""Decompile WebAssembly node trees into readable pseudo-source."""

__version__ = "0.1.0"
