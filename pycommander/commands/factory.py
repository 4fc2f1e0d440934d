"""Build command tree nodes from providers."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from functools import partial
from typing import Any

from ..logging_setup import LogSink
from ..models import RegistrationError
from .docblock import DocBlock, SourceReader, get_doc
from .models import CommandNode, Handler, NodeKind
from .providers import (
    ClassProvider,
    CommandNamespace,
    CommandProvider,
    FunctionProvider,
    MethodProvider,
    ObjectProvider,
    is_invokable_class,
)

__all__ = ["command_name", "create"]


class _LazyInstance:
    """Instantiate a class the first time one of its commands runs."""

    def __init__(self, cls: type) -> None:
        self.cls = cls
        self._instance: Any = None

    def get(self) -> Any:
        if self._instance is None:
            self._instance = self.cls()
        return self._instance


def _call_method(holder: _LazyInstance, name: str, args: list[str], assoc_args: dict[str, Any]) -> Any:
    return getattr(holder.get(), name)(args, assoc_args)


def command_name(identifier: str) -> str:
    """Return the command name derived from a Python identifier.

    E.g. "delete_all" -> "delete-all"
    """
    return identifier.strip("_").replace("_", "-")


def _signature(fn: Callable[..., Any]) -> str:
    try:
        return str(inspect.signature(fn))
    except (TypeError, ValueError):
        return ""


def _leaf(name: str | None, parent: CommandNode | None, handler: Handler, docblock: DocBlock, default_name: str) -> CommandNode:
    node = CommandNode(
        name=name or docblock.get_tag("subcommand") or command_name(default_name),
        kind=NodeKind.LEAF,
        shortdesc=docblock.shortdesc,
        longdesc=docblock.longdesc,
        synopsis=docblock.synopsis,
        alias=docblock.get_tag("alias"),
        when=docblock.get_tag("when"),
        handler=handler,
        docblock=docblock,
    )
    node.parent = parent
    return node


def _public_methods(cls: type) -> list[str]:
    """Names of public instance methods, static and class methods excluded."""
    names = []
    for attr_name in dir(cls):
        if attr_name.startswith("_"):
            continue
        attr = inspect.getattr_static(cls, attr_name)
        if isinstance(attr, staticmethod | classmethod):
            continue
        if inspect.isfunction(attr):
            names.append(attr_name)
    return names


def _composite(
    name: str | None,
    parent: CommandNode | None,
    cls: type,
    resolve: Callable[[str], Handler],
    reader: SourceReader | None,
) -> CommandNode:
    docblock = DocBlock(get_doc(cls, reader))
    node = CommandNode(
        name=name or command_name(cls.__name__.lower()),
        kind=NodeKind.COMPOSITE,
        shortdesc=docblock.shortdesc,
        longdesc=docblock.longdesc,
        when=docblock.get_tag("when"),
        docblock=docblock,
    )
    node.parent = parent
    for method_name in _public_methods(cls):
        method = getattr(cls, method_name)
        child = _leaf(None, node, resolve(method_name), DocBlock(get_doc(method, reader)), method_name)
        child.signature = _signature(method)
        if child.name in node.children:
            msg = f"Duplicate subcommand '{child.name}' in '{node.name}'."
            raise RegistrationError(msg)
        node.add_subcommand(child.name, child)
    return node


def create(
    name: str | None,
    provider: CommandProvider,
    parent: CommandNode | None = None,
    reader: SourceReader | None = None,
    log: LogSink | None = None,
) -> CommandNode:
    """Create the node for a provider.

    Args:
        name: Command name, derived from the provider when empty
        provider: A classified provider
        parent: The node it will be attached to
        reader: Source reader used when docstrings were stripped
        log: Logging sink

    Returns:
        A Leaf, Composite or Namespace node
    """
    if log:
        log.debug(f"Adding command: {name}", "commandfactory")

    if isinstance(provider, FunctionProvider):
        fn = provider.fn
        node = _leaf(name, parent, fn, DocBlock(get_doc(fn, reader)), getattr(fn, "__name__", "command"))
        node.signature = _signature(fn)
        return node

    if isinstance(provider, MethodProvider):
        receiver = provider.receiver
        method = getattr(receiver, provider.name)
        if inspect.isclass(receiver) and inspect.isfunction(inspect.getattr_static(receiver, provider.name)):
            handler: Handler = partial(_call_method, _LazyInstance(receiver), provider.name)
        else:
            handler = method
        node = _leaf(name, parent, handler, DocBlock(get_doc(method, reader)), provider.name)
        node.signature = _signature(method)
        return node

    if isinstance(provider, ClassProvider):
        cls = provider.cls
        if issubclass(cls, CommandNamespace):
            docblock = DocBlock(get_doc(cls, reader))
            node = CommandNode(
                name=name or command_name(cls.__name__.lower()),
                kind=NodeKind.NAMESPACE,
                shortdesc=docblock.shortdesc,
                longdesc=docblock.longdesc,
                docblock=docblock,
            )
            node.parent = parent
            return node
        holder = _LazyInstance(cls)
        if is_invokable_class(cls):
            docblock = DocBlock(get_doc(cls.__call__, reader) or get_doc(cls, reader))
            node = _leaf(name, parent, partial(_call_method, holder, "__call__"), docblock, cls.__name__.lower())
            node.signature = _signature(cls.__call__)
            return node
        return _composite(name, parent, cls, lambda method_name: partial(_call_method, holder, method_name), reader)

    assert isinstance(provider, ObjectProvider)
    instance = provider.instance
    cls = type(instance)
    if is_invokable_class(cls):
        docblock = DocBlock(get_doc(cls.__call__, reader) or get_doc(cls, reader))
        node = _leaf(name, parent, instance, docblock, cls.__name__.lower())
        node.signature = _signature(instance)
        return node
    return _composite(name, parent, cls, lambda method_name: getattr(instance, method_name), reader)
