"""Interactive prompting for command arguments (``--prompt``)."""

from __future__ import annotations

from typing import Any

import questionary
from questionary import Choice

from .commands.docblock import DocBlock
from .commands.models import CommandNode, ParameterSpec, ParamKind
from .commands.parsing import parse_synopsis

__all__ = ["prompt_args", "prompted_names"]

_PROMPTABLE = (ParamKind.POSITIONAL, ParamKind.ASSOC, ParamKind.FLAG, ParamKind.GENERIC)


class _Cancelled(Exception):
    """The user interrupted the prompts."""


def prompted_names(prompt: bool | str) -> list[str] | None:
    """Return the assoc names requested by ``--prompt=a,b`` (None means everything)."""
    if prompt is True or not isinstance(prompt, str):
        return None
    return [name.strip() for name in prompt.split(",") if name.strip()]


def _answer(answer: Any) -> Any:  # noqa: ANN401
    if answer is None:  # Cancelled
        raise _Cancelled
    return answer


def _ask_value(question: str, options: list[Any] | None, default: Any) -> str:  # noqa: ANN401
    """Ask for a value, offering a selection when the legal values are known."""
    if options:
        choices = [Choice(title=str(option), value=str(option)) for option in options]
        initial = str(default) if default is not None and str(default) in {str(o) for o in options} else None
        return str(_answer(questionary.select(question, choices=choices, default=initial).ask()))
    default_str = "" if default is None else str(default)
    return str(_answer(questionary.text(question, default=default_str).ask()))


def _ask_generic(question: str, assoc_args: dict[str, Any]) -> None:
    """Ask for key/value pairs until an empty key is given."""
    while True:
        key = _answer(questionary.text(f"{question} (key, empty to stop)").ask()).strip()
        if not key:
            return
        assoc_args[key] = _answer(questionary.text(f"--{key}=").ask())


def _ask_one(spec: ParameterSpec, counter: str, docblock: DocBlock, args: list[str], assoc_args: dict[str, Any]) -> None:
    question = f"{counter} {spec.token}"
    if spec.kind == ParamKind.GENERIC:
        _ask_generic(question, assoc_args)
    elif spec.kind == ParamKind.FLAG:
        if _answer(questionary.confirm(question, default=False).ask()):
            assoc_args[spec.name or ""] = True
    elif spec.kind == ParamKind.POSITIONAL:
        sidecar = docblock.get_arg_args(spec.name or "") or {}
        response = _ask_value(question, sidecar.get("options"), sidecar.get("default"))
        if response:
            args.extend(response.split() if spec.repeating else [response])
    else:
        sidecar = docblock.get_param_args(spec.name or "") or {}
        response = _ask_value(question, sidecar.get("options"), sidecar.get("default"))
        if response:
            assoc_args[spec.name or ""] = response


def prompt_args(
    node: CommandNode, args: list[str], assoc_args: dict[str, Any], prompt: bool | str
) -> tuple[list[str], dict[str, Any]]:
    """Ask for the synopsis parameters missing from the command line.

    Args:
        node: The leaf about to run
        args: Positional arguments already supplied
        assoc_args: Associative arguments already supplied
        prompt: True for every parameter, or a comma separated list of assoc names

    Returns:
        Tuple of (additional positional args, assoc args including the answers)
    """
    assoc_args = dict(assoc_args)
    extra: list[str] = []
    if not node.synopsis:
        return extra, assoc_args

    specs = [spec for spec in parse_synopsis(node.synopsis) if spec.kind in _PROMPTABLE]
    names = prompted_names(prompt)
    docblock = node.docblock or DocBlock(f"{node.shortdesc}\n\n{node.longdesc}")
    position = 0
    try:
        for index, spec in enumerate(specs, 1):
            if spec.kind == ParamKind.POSITIONAL:
                position += 1
                if position <= len(args):
                    continue
            elif spec.name in assoc_args:
                continue
            if names is not None and (spec.kind != ParamKind.ASSOC or spec.name not in names):
                continue
            _ask_one(spec, f"{index}/{len(specs)}", docblock, extra, assoc_args)
    except _Cancelled:
        # keep what was gathered so far
        return extra, assoc_args
    return extra, assoc_args
