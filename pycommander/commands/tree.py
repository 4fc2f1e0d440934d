"""Command tree navigation and invocation."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from ..config_spec import get_suggestion
from ..models import ParameterError, UsageError
from .docblock import DocBlock
from .models import CommandNode, NodeKind, ParamKind
from .parsing import parse_synopsis
from .validator import SynopsisValidator

if TYPE_CHECKING:
    from ..engine import Engine

__all__ = [
    "command_path",
    "enumerate_commands",
    "find_subcommand",
    "get_aliases",
    "get_path",
    "get_subcommands",
    "invoke",
    "validate_args",
]


def get_subcommands(node: CommandNode) -> dict[str, CommandNode]:
    """Return the children of `node`, sorted by name.

    The root asks its loader to register every top-level command first.
    """
    if node.kind == NodeKind.ROOT and node.loader is not None:
        node.loader.ensure_all()
    return dict(sorted(node.children.items()))


def get_aliases(children: dict[str, CommandNode]) -> dict[str, str]:
    """Return a mapping of alias to command name."""
    return {child.alias: name for name, child in children.items() if child.alias}


def find_subcommand(node: CommandNode, args: list[str]) -> CommandNode | None:
    """Consume the first argument and return the matching child.

    `args` is modified in place: the consumed token is removed.

    Args:
        node: A Root, Composite or Namespace node
        args: Remaining positional arguments

    Returns:
        The child, or None if there is no such command
    """
    if not args or not node.can_have_subcommands():
        return None
    name = args.pop(0)
    if node.kind == NodeKind.ROOT:
        if node.loader is not None:
            node.loader.ensure(name)
        children = dict(node.children)
    else:
        children = get_subcommands(node)
    if name not in children:
        name = get_aliases(children).get(name, name)
    return children.get(name)


def get_path(node: CommandNode) -> list[str]:
    """Return the names from the root down to `node` (root name included)."""
    path: list[str] = []
    current: CommandNode | None = node
    while current is not None:
        path.insert(0, current.name)
        current = current.parent
    return path


def command_path(node: CommandNode) -> str:
    """Return the space separated path of `node`, root excluded."""
    return " ".join(get_path(node)[1:])


def enumerate_commands(node: CommandNode, parent: str = "") -> Iterator[tuple[str, CommandNode]]:
    """Yield every descendant of `node`, depth first.

    Args:
        node: Where to start
        parent: Prefix of the yielded names

    Returns:
        Iterator of (name relative to `node`, descendant) pairs
    """
    for child in get_subcommands(node).values():
        name = f"{parent} {child.name}" if parent else child.name
        yield name, child
        if child.can_have_subcommands():
            yield from enumerate_commands(child, name)


def _docblock(node: CommandNode) -> DocBlock:
    if node.docblock is not None:
        return node.docblock
    return DocBlock(f"{node.shortdesc}\n\n{node.longdesc}")


def _in_options(value: Any, options: list[Any]) -> bool:
    return str(value) in {str(option) for option in options}


def validate_args(  # pylint: disable=too-many-locals,too-many-branches
    node: CommandNode,
    args: list[str],
    assoc_args: dict[str, Any],
    extra_args: dict[str, Any],
    engine: Engine,
) -> tuple[list[str], list[str], dict[str, Any]]:
    """Check a leaf invocation against the leaf synopsis.

    Sidecar defaults are applied to missing arguments first.

    Args:
        node: The leaf
        args: Positional arguments
        assoc_args: Associative arguments from the command line
        extra_args: Config values scoped to this command
        engine: The running engine

    Returns:
        Tuple of (keys to remove, args, assoc_args)

    Raises:
        UsageError: if mandatory positional arguments are missing
        ParameterError: on invalid or unknown arguments
    """
    if not node.synopsis:
        return [], args, assoc_args

    args = list(args)
    assoc_args = dict(assoc_args)
    validator = SynopsisValidator(node.synopsis)
    path = command_path(node)

    if not validator.enough_positionals(args):
        engine.show_usage(node)
        msg = f"Not enough positional arguments for '{path}'."
        raise UsageError(msg)

    unknown_positionals = validator.unknown_positionals(args)
    if unknown_positionals:
        msg = "Too many positional arguments: " + " ".join(unknown_positionals)
        raise ParameterError(msg)

    docblock = _docblock(node)
    fatal: dict[str, str] = {}
    position = 0
    for spec in parse_synopsis(node.synopsis):
        if spec.kind == ParamKind.POSITIONAL:
            spec_args = docblock.get_arg_args(spec.name or "") or {}
            if position == len(args) and "default" in spec_args:
                args.append(str(spec_args["default"]))
            options = spec_args.get("options")
            if options:
                values = args[position:] if spec.repeating else args[position : position + 1]
                if any(not _in_options(value, options) for value in values):
                    msg = "Invalid value specified for positional arg."
                    raise ParameterError(msg)
            position += 1
        elif spec.kind == ParamKind.ASSOC:
            key = spec.name or ""
            spec_args = docblock.get_param_args(key) or {}
            if key not in assoc_args and key not in extra_args and "default" in spec_args:
                assoc_args[key] = spec_args["default"]
            options = spec_args.get("options")
            if key in assoc_args and options and not _in_options(assoc_args[key], options):
                fatal[key] = "Invalid value specified for '{}' ({}). Expected one of: {}".format(
                    key, docblock.get_param_desc(key), ", ".join(str(option) for option in options)
                )

    errors, to_unset = validator.validate_assoc({**engine.config, **extra_args, **assoc_args})

    known = [spec.name for spec in validator.spec if spec.name and spec.kind in (ParamKind.ASSOC, ParamKind.FLAG)]
    known.extend(engine.spec.names())
    unknown: list[str] = []
    for key in validator.unknown_assoc(assoc_args):
        suggestion = get_suggestion(key, known)
        unknown.append(f"unknown --{key} parameter" + (f"\nDid you mean '--{suggestion}'?" if suggestion else ""))

    if fatal or errors.fatal or unknown:
        messages = list(fatal.values())
        for key, error in errors.fatal.items():
            if key in fatal:
                continue
            desc = docblock.get_param_desc(key)
            messages.append(f"{error} ({desc})" if desc else error)
        messages.extend(unknown)
        raise ParameterError("Parameter errors:\n " + "\n ".join(messages), messages)

    for warning in errors.warning.values():
        engine.log.warning(warning)

    return to_unset, args, assoc_args


def _run_hooks(engine: Engine, stage: str, node: CommandNode) -> None:
    parent = command_path(node.parent) if node.parent is not None else ""
    if parent:
        engine.do_hook(f"{stage}:{parent}")
    engine.do_hook(f"{stage}:{command_path(node)}")


def invoke(node: CommandNode, args: list[str], assoc_args: dict[str, Any], extra_args: dict[str, Any], engine: Engine) -> Any:
    """Invoke a node.

    Containers display their usage. Leaves validate their arguments and
    call the handler with the command-scoped config merged beneath the
    command line associative arguments.

    Args:
        node: The node to invoke
        args: Positional arguments
        assoc_args: Associative arguments from the command line
        extra_args: Config values scoped to this command
        engine: The running engine

    Returns:
        Whatever the handler returns
    """
    if node.kind != NodeKind.LEAF:
        engine.show_usage(node)
        return None

    if engine.should_prompt(node):
        extra_positionals, assoc_args = engine.prompt_args(node, args, assoc_args)
        args = [*args, *extra_positionals]

    to_unset, args, assoc_args = validate_args(node, args, assoc_args, extra_args, engine)
    for key in to_unset:
        assoc_args.pop(key, None)
        extra_args.pop(key, None)

    _run_hooks(engine, "before_invoke", node)
    assert node.handler is not None
    result = node.handler(args, {**extra_args, **assoc_args})
    _run_hooks(engine, "after_invoke", node)
    return result
