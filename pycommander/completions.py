"""Shell completion candidates computed from the command tree.

A shell completion script passes the whole command line typed so far and
prints the returned candidates, one per line.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .commands.models import ParamKind
from .commands.parsing import parse_synopsis
from .commands.tree import get_subcommands
from .models import CommanderError

if TYPE_CHECKING:
    from .commands.models import CommandNode
    from .engine import Engine

__all__ = ["get_completions", "get_global_parameters"]

_ASSOC_WORD = re.compile(r"^--([^=]+)=?")


def get_global_parameters(engine: Engine) -> dict[str, bool | str]:
    """Return visible runtime parameters mapped to their runtime placeholder.

    Boolean parameters (``--[no-]color``) also get their ``no-`` variant.
    """
    params: dict[str, bool | str] = {}
    for entry in engine.spec:
        if not entry.is_runtime or entry.deprecated or entry.hidden:
            continue
        params[entry.name] = entry.runtime
        if entry.runtime is True:
            params[f"no-{entry.name}"] = ""
    return params


def _find_command(engine: Engine, words: list[str]) -> tuple[CommandNode, set[str]] | None:
    positional: list[str] = []
    assoc: set[str] = set()
    for word in words:
        match = _ASSOC_WORD.match(word)
        if match:
            assoc.add(match.group(1))
        else:
            positional.append(word)
    try:
        command, _, _ = engine.find_command_to_run(positional)
    except CommanderError:
        if not positional:
            return None
        # the last word may be a partially typed command
        try:
            command, _, _ = engine.find_command_to_run(positional[:-1])
        except CommanderError:
            return None
    return command, assoc


def get_completions(engine: Engine, line: str) -> list[str]:
    """Return completion candidates for a partial command line.

    Args:
        engine: The engine holding the command tree
        line: Command line typed so far, program name first

    Returns:
        Candidates starting with the word being completed
    """
    words = line.split(" ")[1:]
    cur_word = words[-1] if words else ""
    if cur_word and not cur_word.startswith("-"):
        words.pop()

    is_alias = is_help = False
    if words and words[0].startswith("@"):
        words.pop(0)
        is_alias = True
    elif words and words[0] == "help":
        words.pop(0)
        is_help = True

    found = _find_command(engine, [word for word in words if word])
    if found is None:
        return []
    command, assoc = found

    candidates: list[str] = []
    specs = parse_synopsis(command.synopsis)
    if any(spec.kind == ParamKind.POSITIONAL and spec.name == "file" for spec in specs):
        candidates.append("<file> ")
    elif command.can_have_subcommands():
        if command is engine.root and not is_alias and not is_help:
            candidates.extend(f"{name} " for name in engine.aliases)
        candidates.extend(f"{name} " for name in get_subcommands(command))
    else:
        for spec in specs:
            if spec.kind not in (ParamKind.FLAG, ParamKind.ASSOC) or spec.name in assoc:
                continue
            if spec.kind == ParamKind.FLAG:
                candidates.append(f"--{spec.name} ")
            else:
                candidates.append(f"--{spec.name}" if spec.value_optional else f"--{spec.name}=")
        for param, runtime in get_global_parameters(engine).items():
            if param in assoc:
                continue
            candidates.append(f"--{param} " if runtime == "" or not isinstance(runtime, str) else f"--{param}=")

    return [candidate for candidate in candidates if candidate.startswith(cur_word)]
