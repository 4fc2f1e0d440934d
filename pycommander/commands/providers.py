"""Command providers: what can be registered as a command."""

from __future__ import annotations

import importlib
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

__all__ = [
    "ClassProvider",
    "CommandNamespace",
    "CommandProvider",
    "FunctionProvider",
    "MethodProvider",
    "ObjectProvider",
    "classify",
    "is_invokable_class",
]


class CommandNamespace:
    """Base class for namespace providers.

    A namespace only documents a command path (its docstring gives the short
    and long descriptions); real commands are registered under it later.
    """


@dataclass(frozen=True)
class FunctionProvider:
    """A plain function, lambda or other callable."""

    fn: Callable[..., Any]


@dataclass(frozen=True)
class MethodProvider:
    """A method looked up by name on a receiver (instance or class)."""

    receiver: Any
    name: str


@dataclass(frozen=True)
class ClassProvider:
    """A class, instantiated when one of its commands runs."""

    cls: type


@dataclass(frozen=True)
class ObjectProvider:
    """An already built instance."""

    instance: Any


CommandProvider = FunctionProvider | MethodProvider | ClassProvider | ObjectProvider

_PROVIDER_TYPES = (FunctionProvider, MethodProvider, ClassProvider, ObjectProvider)
_REJECTED_TYPES = (str, bytes, int, float, bool, list, dict, set, type(None))


def is_invokable_class(cls: type) -> bool:
    """Return True if instances of `cls` define ``__call__``."""
    return any("__call__" in vars(base) for base in cls.__mro__ if base is not object)


def _import_target(reference: str) -> Any:
    module_name, _, attribute = reference.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
        for part in attribute.split("."):
            target = getattr(target, part)
    except (ImportError, AttributeError):
        return None
    return target


def classify(provider: Any) -> CommandProvider | None:
    """Turn whatever was passed at registration into a provider.

    Accepted values are functions, bound methods, ``(receiver, "method")``
    pairs, classes, instances and ``"module:attribute"`` references.

    Args:
        provider: The value to classify

    Returns:
        The provider, or None if nothing can be registered from it
    """
    if isinstance(provider, _PROVIDER_TYPES):
        return provider
    if isinstance(provider, str) and ":" in provider:
        target = _import_target(provider)
        return None if target is None else classify(target)
    if isinstance(provider, tuple):
        if len(provider) == 2 and isinstance(provider[1], str) and callable(getattr(provider[0], provider[1], None)):
            return MethodProvider(provider[0], provider[1])
        return None
    if inspect.isclass(provider):
        return ClassProvider(provider)
    if inspect.ismethod(provider):
        return MethodProvider(provider.__self__, provider.__name__)
    if inspect.isfunction(provider) or inspect.isbuiltin(provider):
        return FunctionProvider(provider)
    if isinstance(provider, _REJECTED_TYPES):
        return None
    return ObjectProvider(provider)
