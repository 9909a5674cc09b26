"""CLI entry point for wasm-decomp.

Usage:
    wasm-decomp decompile <module.json>        Decompile a whole module
    wasm-decomp decompile <module.json> -o F   Write the result to F
    wasm-decomp render <node.json>             Render a single node tree
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .decompiler import DecompileError, DecompileOptions
from .ir.loader import LoaderError

log = logging.getLogger(__name__)


def _options(width: int, indent: int) -> DecompileOptions:
    try:
        return DecompileOptions(indent_amount=indent, target_width=width)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _layout_options(func):
    func = click.option(
        "--width",
        type=int,
        default=DecompileOptions.target_width,
        show_default=True,
        help="Target line width before expressions are wrapped",
    )(func)
    func = click.option(
        "--indent",
        type=int,
        default=DecompileOptions.indent_amount,
        show_default=True,
        help="Spaces per nesting level",
    )(func)
    return func


@click.group()
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Decompile WebAssembly node trees into readable pseudo-source."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(name)s %(levelname)s: %(message)s",
    )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None)
@_layout_options
def decompile(file: str, output: str | None, width: int, indent: int) -> None:
    """Decompile a module described in JSON."""
    from .decompiler import decompile_module
    from .ir.loader import load_module_file

    options = _options(width, indent)
    try:
        module = load_module_file(file)
        source = decompile_module(module, options)
    except (LoaderError, DecompileError) as e:
        click.echo(f"Failed {file}: {e}", err=True)
        sys.exit(1)

    if output:
        Path(output).write_text(source, encoding="utf-8")
        click.echo(f"Decompiled {len(module.funcs)} functions to {output}")
    else:
        click.echo(source, nl=False)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@_layout_options
def render(file: str, width: int, indent: int) -> None:
    """Render a single node tree (one function body) described in JSON."""
    from .decompiler import decompile_node
    from .ir.loader import load_node_file

    options = _options(width, indent)
    try:
        root = load_node_file(file)
        text = decompile_node(root, options)
    except (LoaderError, DecompileError) as e:
        click.echo(f"Failed {file}: {e}", err=True)
        sys.exit(1)

    log.debug("Rendered %d lines", text.count("\n") + 1 if text else 0)
    click.echo(text)


if __name__ == "__main__":
    main()
