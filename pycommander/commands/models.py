"""Data models for the command tree."""

from __future__ import annotations

import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .docblock import DocBlock

__all__ = ["CommandNode", "Flavour", "Handler", "LazyLoader", "NodeKind", "ParamKind", "ParameterSpec"]

Handler = Callable[[list[str], dict[str, Any]], Any]


class ParamKind(StrEnum):
    """Kind of a synopsis token."""

    POSITIONAL = "positional"
    ASSOC = "assoc"
    FLAG = "flag"
    GENERIC = "generic"
    UNKNOWN = "unknown"


class Flavour(StrEnum):
    """Whether a parameter is mandatory, optional or repeating."""

    MANDATORY = "mandatory"
    OPTIONAL = "optional"
    REPEATING = "repeating"


class NodeKind(StrEnum):
    """Kind of a command tree node."""

    ROOT = "root"
    COMPOSITE = "composite"
    NAMESPACE = "namespace"
    LEAF = "leaf"


@dataclass
class ParameterSpec:
    """One parsed synopsis token."""

    kind: ParamKind
    token: str  # raw token, kept for diagnostics
    name: str | None = None  # e.g. "format" for [--format=<table|json>]
    value: str | None = None  # raw alternatives, e.g. "table|json"
    optional: bool = False
    repeating: bool = False
    value_optional: bool = False  # --name[=<value>]

    @property
    def flavour(self) -> Flavour:
        """Return the parameter flavour."""
        if self.repeating:
            return Flavour.REPEATING
        if self.optional:
            return Flavour.OPTIONAL
        return Flavour.MANDATORY

    @property
    def alternatives(self) -> list[str]:
        """Return the literal values listed in `value` (``a|b|c``)."""
        if not self.value or "|" not in self.value:
            return []
        return self.value.split("|")


class LazyLoader(Protocol):
    """Host callbacks populating the root node on demand."""

    def ensure(self, command: str) -> None:
        """Make sure the top-level `command` is registered, if it exists."""

    def ensure_all(self) -> None:
        """Make sure every top-level command is registered."""


@dataclass(eq=False)
class CommandNode:  # pylint: disable=too-many-instance-attributes
    """A node in the command tree.

    Root, Composite and Namespace nodes only group children and display
    usage when invoked; Leaf nodes carry the handler.
    """

    name: str
    kind: NodeKind
    shortdesc: str = ""
    longdesc: str = ""
    synopsis: str = ""
    alias: str = ""  # leaves only
    when: str = ""
    signature: str = ""  # reflected from the provider, informative only
    handler: Handler | None = None
    docblock: DocBlock | None = None
    loader: LazyLoader | None = None  # root only
    children: dict[str, CommandNode] = field(default_factory=dict)
    _parent: weakref.ReferenceType[CommandNode] | None = field(default=None, repr=False)

    @property
    def parent(self) -> CommandNode | None:
        """Return the parent node (not owned)."""
        if self._parent is None:
            return None
        return self._parent()

    @parent.setter
    def parent(self, node: CommandNode | None) -> None:
        self._parent = weakref.ref(node) if node is not None else None

    def can_have_subcommands(self) -> bool:
        """Return True unless this is a leaf."""
        return self.kind != NodeKind.LEAF

    def add_subcommand(self, name: str, command: CommandNode) -> None:
        """Attach `command` as child `name`, replacing any previous one."""
        command.parent = self
        self.children[name] = command

    def remove_subcommand(self, name: str) -> None:
        """Detach child `name` if present."""
        self.children.pop(name, None)
