"""Help and usage rendering for the command tree."""

from __future__ import annotations

import re
import sys
from typing import TYPE_CHECKING

from .ansi import BOLD, colorize, should_colorize
from .commands.models import CommandNode, NodeKind
from .commands.tree import command_path, get_path, get_subcommands

if TYPE_CHECKING:
    from .config_spec import ConfigSpec
    from .engine import Engine

__all__ = ["get_command_help", "get_global_parameters", "get_usage", "get_usage_line"]

_HEADING = re.compile(r"^## (.+)$", re.MULTILINE)
_INDENT = "  "


def get_usage_line(node: CommandNode, prefix: str = "") -> str:
    """Return the one line usage of a node.

    E.g. "usage: pycommander cache flush [--group=<name>]"
    """
    synopsis = node.synopsis if node.kind == NodeKind.LEAF else "<command>"
    return f"{prefix}{' '.join(get_path(node))} {synopsis}".rstrip()


def get_usage(node: CommandNode, engine: Engine) -> str:
    """Return the usage text displayed when a node is invoked without a subcommand.

    Args:
        node: The node
        engine: The running engine (disabled commands are left out)

    Returns:
        The usage text
    """
    if node.kind == NodeKind.LEAF:
        return get_usage_line(node, "usage: ")

    lines = []
    for child in get_subcommands(node).values():
        if engine.is_command_disabled(child):
            continue
        lines.append(get_usage_line(child, "   or: " if lines else "usage: "))

    name = command_path(node)
    if not lines:
        return f"The namespace {name} does not contain any usable commands in the current context."
    help_path = f"{name} <command>" if name else "<command>"
    lines.append("")
    lines.append(f"See '{engine.bin_name} help {help_path}' for more information on a specific command.")
    return "\n".join(lines)


def get_global_parameters(spec: ConfigSpec) -> list[tuple[str, str]]:
    """Return the ``(synopsis, description)`` pairs of visible runtime parameters."""
    params = []
    for entry in spec:
        if not entry.is_runtime or entry.deprecated or entry.hidden:
            continue
        synopsis = f"--[no-]{entry.name}" if entry.runtime is True else f"--{entry.name}{entry.runtime}"
        params.append((synopsis, entry.desc))
    return params


def _heading(title: str) -> str:
    return colorize(title, BOLD) if should_colorize(sys.stdout) else title


def _indent(text: str, prefix: str = _INDENT) -> str:
    return "\n".join(f"{prefix}{line}" if line.strip() else "" for line in text.split("\n"))


def _format_longdesc(longdesc: str) -> str:
    # sidecar fences are noise in help output
    text = "\n".join(line for line in longdesc.split("\n") if line.strip() != "---")
    parts = _HEADING.split(text)
    sections = []
    if parts[0].strip():
        sections.append(_indent(parts[0].strip()))
    for title, body in zip(parts[1::2], parts[2::2], strict=True):
        body = _indent(body.strip("\n"))
        sections.append(f"{_heading(title.upper())}\n\n{body}")
    return "\n\n".join(sections)


def get_command_help(node: CommandNode, engine: Engine) -> str:
    """Return the full help page of a node.

    Args:
        node: Root, container or leaf node
        engine: The running engine

    Returns:
        The help text
    """
    engine.log.debug(f"Rendering help for '{command_path(node) or engine.bin_name}'", "help")
    name = " ".join(get_path(node))
    sections = [f"{_heading('NAME')}\n\n{_indent(name)}"]
    if node.shortdesc:
        sections.append(f"{_heading('DESCRIPTION')}\n\n{_indent(node.shortdesc)}")
    sections.append(f"{_heading('SYNOPSIS')}\n\n{_indent(get_usage_line(node))}")

    if node.kind != NodeKind.LEAF:
        children = [
            (child_name, child.shortdesc)
            for child_name, child in get_subcommands(node).items()
            if not engine.is_command_disabled(child)
        ]
        if children:
            width = max(len(child_name) for child_name, _ in children)
            listing = "\n".join(f"{child_name.ljust(width)}  {desc}".rstrip() for child_name, desc in children)
            sections.append(f"{_heading('SUBCOMMANDS')}\n\n{_indent(listing)}")

    if node.longdesc:
        sections.append(_format_longdesc(node.longdesc))

    params = get_global_parameters(engine.spec)
    if params:
        listing = "\n\n".join(f"{synopsis}\n{_INDENT * 2}{desc}" for synopsis, desc in params)
        sections.append(f"{_heading('GLOBAL PARAMETERS')}\n\n{_indent(listing)}")

    return "\n\n".join(sections)
