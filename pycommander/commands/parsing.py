"""Synopsis parsing and rendering."""

from __future__ import annotations

import re
from typing import Any

from .models import ParameterSpec, ParamKind

__all__ = ["parse_synopsis", "render_synopsis", "split_synopsis"]

_P_NAME = r"[A-Za-z0-9_-]+"
_P_VALUE = r"[A-Za-z0-9_|,.:-]+"

_OPTIONAL_PATTERN = re.compile(r"^\[(.+)\]$")
_REPEATING_PATTERN = re.compile(r"^(.+)\.\.\.$")
_GENERIC_PATTERN = re.compile(rf"^--<field>=<({_P_VALUE})>$")
_POSITIONAL_PATTERN = re.compile(rf"^<({_P_VALUE})>$")
_OPTION_PATTERN = re.compile(rf"^--(?:\[no-\])?({_P_NAME})")
_VALUE_PATTERN = re.compile(rf"^=<({_P_VALUE})>$")
_OPTIONAL_VALUE_PATTERN = re.compile(rf"^\[=<({_P_VALUE})>\]$")

_RENDER_ORDER = (ParamKind.POSITIONAL, ParamKind.ASSOC, ParamKind.GENERIC, ParamKind.FLAG)


def split_synopsis(synopsis: str) -> list[str]:
    """Split a synopsis into its whitespace separated tokens.

    Args:
        synopsis: The synopsis text

    Returns:
        Non-empty tokens, in order
    """
    return synopsis.split()


def _classify(token: str) -> ParameterSpec:
    spec = ParameterSpec(kind=ParamKind.UNKNOWN, token=token)
    body = token

    match = _OPTIONAL_PATTERN.match(body)
    if match:
        spec.optional = True
        body = match.group(1)

    match = _REPEATING_PATTERN.match(body)
    if match:
        spec.repeating = True
        body = match.group(1)

    match = _POSITIONAL_PATTERN.match(body)
    if match:
        spec.kind = ParamKind.POSITIONAL
        spec.name = spec.value = match.group(1)
        return spec

    match = _GENERIC_PATTERN.match(body)
    if match:
        spec.kind = ParamKind.GENERIC
        spec.value = match.group(1)
        return spec

    match = _OPTION_PATTERN.match(body)
    if not match:
        return spec

    name = match.group(1)
    rest = body[match.end() :]
    if not rest:
        # a flag is only meaningful when it may be left out
        if spec.optional and not spec.repeating:
            spec.kind = ParamKind.FLAG
            spec.name = name
        return spec

    if spec.repeating:
        return spec

    value_match = _VALUE_PATTERN.match(rest)
    if value_match:
        spec.kind = ParamKind.ASSOC
        spec.name = name
        spec.value = value_match.group(1)
        return spec

    value_match = _OPTIONAL_VALUE_PATTERN.match(rest)
    if value_match and spec.optional:
        spec.kind = ParamKind.ASSOC
        spec.name = name
        spec.value = value_match.group(1)
        spec.value_optional = True
    return spec


def parse_synopsis(synopsis: str) -> list[ParameterSpec]:
    """Parse a synopsis string into parameter specs.

    Never fails: tokens that match no known form are kept as
    ``ParamKind.UNKNOWN`` entries so callers can report them.

    Args:
        synopsis: Text like ``<id> [--format=<table|json>] [--force]``

    Returns:
        One spec per token, in token order
    """
    return [_classify(token) for token in split_synopsis(synopsis)]


def _render_arg(arg: dict[str, Any]) -> str:
    name = arg.get("name")
    kind = arg["type"]
    if kind == ParamKind.POSITIONAL:
        rendered = f"<{name}>"
    elif kind == ParamKind.ASSOC:
        value = arg.get("value")
        if isinstance(value, dict):
            value = value.get("name")
        rendered = f"--{name}=<{value or name}>"
    elif kind == ParamKind.GENERIC:
        rendered = "--<field>=<value>"
    else:
        rendered = f"--{name}"
    if arg.get("repeating"):
        rendered += "..."
    if arg.get("optional"):
        rendered = f"[{rendered}]"
    return rendered


def render_synopsis(args: list[dict[str, Any]]) -> tuple[str, list[dict[str, Any]]]:
    """Render structured argument definitions to a synopsis string.

    Arguments are grouped as positional, assoc, generic then flag, each
    group keeping its declaration order. Entries without a name are skipped,
    except generic ones.

    Args:
        args: Dicts with ``type``, ``name``, ``optional``, ``repeating`` and
            ``value`` keys

    Returns:
        Tuple of (synopsis, args reordered to match the synopsis)
    """
    tokens: list[str] = []
    reordered: list[dict[str, Any]] = []
    for kind in _RENDER_ORDER:
        for arg in args:
            if arg.get("type") != kind:
                continue
            if not arg.get("name") and kind != ParamKind.GENERIC:
                continue
            tokens.append(_render_arg(arg))
            reordered.append(arg)
    return " ".join(tokens), reordered
