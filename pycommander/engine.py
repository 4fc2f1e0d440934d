"""The command engine: registration, configuration and dispatch.

An `Engine` is built once by the host, which registers its commands and then
hands the command line to `Engine.main`::

    engine = Engine("mytool")
    engine.add_command("cache", CacheCommands)
    sys.exit(engine.main(sys.argv[1:]))
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from . import help as help_pages
from .ansi import set_color_mode
from .commands import tree
from .commands.docblock import SourceReader
from .commands.factory import create
from .commands.models import CommandNode, LazyLoader, NodeKind
from .commands.parsing import render_synopsis
from .commands.providers import classify
from .commands.validator import SynopsisValidator
from .config import Configuration
from .config_spec import DEFAULT_SPEC, ConfigSpec, get_suggestion
from .configurator import Configurator
from .constants import BIN_NAME, CONFIG_PATH_ENV, GLOBAL_CONFIG_FILE, PROJECT_CONFIG_FILES, SUGGESTION_THRESHOLD
from .logging_setup import LogSink
from .models import (
    CommandDisabled,
    CommanderError,
    CommandNotFound,
    ConfigError,
    ExitCode,
    RegistrationError,
    UsageError,
)
from .prompt import prompt_args

__all__ = ["Engine", "get_global_config_path", "get_project_config_path"]

Hook = Callable[..., Any]


def get_global_config_path() -> Path | None:
    """Return the user level config file, if any.

    ``$PYCOMMANDER_CONFIG_PATH`` wins and must exist when set.
    """
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return GLOBAL_CONFIG_FILE if GLOBAL_CONFIG_FILE.exists() else None


def get_project_config_path(start: Path | None = None) -> Path | None:
    """Search the project config file from `start` (default: cwd) upward."""
    directory = (start or Path.cwd()).resolve()
    for candidate in (directory, *directory.parents):
        for name in PROJECT_CONFIG_FILES:
            path = candidate / name
            if path.is_file():
                return path
    return None


def _synopsis_longdesc(args: list[dict[str, Any]], synopsis: str, longdesc: str | None) -> str:
    """Build an ``## OPTIONS`` section out of structured argument definitions."""
    parts = []
    for token, arg in zip(synopsis.split(), args, strict=False):
        lines = [token]
        if arg.get("description"):
            lines.append(f": {arg['description']}")
        sidecar = {key: arg[key] for key in ("default", "options") if key in arg}
        if sidecar:
            lines.append("---")
            lines.append(yaml.safe_dump(sidecar, default_flow_style=False).rstrip("\n"))
            lines.append("---")
        parts.append("\n".join(lines))
    if not parts:
        return longdesc or ""
    text = "## OPTIONS\n\n" + "\n\n".join(parts)
    if longdesc:
        text += "\n\n" + longdesc.lstrip("\r\n")
    return text


class Engine:  # pylint: disable=too-many-instance-attributes,too-many-public-methods
    """Command registry, configuration and dispatcher for one program."""

    def __init__(
        self,
        bin_name: str = BIN_NAME,
        spec: ConfigSpec = DEFAULT_SPEC,
        log: LogSink | None = None,
        loader: LazyLoader | None = None,
        reader: SourceReader | None = None,
        output: Callable[[str], None] = print,
    ) -> None:
        """Initialize the engine.

        Args:
            bin_name: Program name, shown in usage and help
            spec: Recognized global parameters
            log: Logging sink
            loader: Callbacks registering top-level commands on demand
            reader: Source reader used when docstrings were stripped
            output: Where usage and help text is written
        """
        self.bin_name = bin_name
        self.spec = spec
        self.log = log or LogSink()
        self.reader = reader or SourceReader()
        self.output = output
        self.configurator = Configurator(spec, self.log)
        self.root = CommandNode(
            name=bin_name,
            kind=NodeKind.ROOT,
            shortdesc=f"Manage {bin_name} through the command-line.",
            loader=loader,
        )
        self.config = Configuration(self.configurator.config, logger=self.log.log, spec=spec)
        self.extra_config: dict[str, Any] = {}
        self.aliases: dict[str, dict[str, Any] | list[str]] = {}
        self.alias: str | None = None
        self.arguments: list[str] = []
        self.assoc_args: dict[str, Any] = {}
        self.runtime_config: dict[str, Any] = {}
        self.hooks: dict[str, list[Hook]] = {}
        self._fired_hooks: dict[str, tuple[Any, ...]] = {}
        self.early_invoke: dict[str, list[CommandNode]] = {}
        self._prompted = False
        self.add_command("help", self.help_command)

    # Hooks

    def add_hook(self, when: str, callback: Hook) -> None:
        """Register `callback` for hook `when`.

        A callback added after the hook already fired is called right away,
        with the arguments of the last firing.
        """
        self.hooks.setdefault(when, []).append(callback)
        if when in self._fired_hooks:
            callback(*self._fired_hooks[when])

    def do_hook(self, when: str, *args: Any) -> None:  # noqa: ANN401
        """Call every callback registered for `when`."""
        self._fired_hooks[when] = args
        for callback in self.hooks.get(when, []):
            callback(*args)

    # Registration

    def add_command(  # pylint: disable=too-many-arguments,too-many-branches
        self,
        name: str,
        provider: Any,  # noqa: ANN401
        *,
        shortdesc: str | None = None,
        longdesc: str | None = None,
        synopsis: str | list[dict[str, Any]] | None = None,
        when: str | None = None,
        before_invoke: Hook | None = None,
        after_invoke: Hook | None = None,
    ) -> CommandNode | None:
        """Register a command.

        Args:
            name: Command path, e.g. "cache flush"; missing parents are created
            provider: Function, method, ``(receiver, "method")`` pair, class,
                instance or ``"module:attribute"`` reference
            shortdesc: Overrides the documented short description
            longdesc: Overrides the documented long description
            synopsis: Synopsis string, or structured argument definitions
            when: Early invocation stage (see `do_early_invoke`)
            before_invoke: Callback run before the command
            after_invoke: Callback run after the command

        Returns:
            The registered node, or None when a namespace was skipped because
            the command already exists

        Raises:
            RegistrationError: if the provider or the path is invalid
        """
        classified = classify(provider)
        if classified is None:
            msg = f"Callable {provider!r} does not exist, and cannot be registered as '{name}'."
            raise RegistrationError(msg)

        path = name.split()
        if not path:
            msg = "Cannot register a command without a name."
            raise RegistrationError(msg)
        if before_invoke:
            self.add_hook(f"before_invoke:{name}", before_invoke)
        if after_invoke:
            self.add_hook(f"after_invoke:{name}", after_invoke)

        leaf_name = path.pop()
        parent = self._ensure_parents(path)

        node = create(leaf_name, classified, parent, self.reader, self.log)
        existing = parent.children.get(leaf_name)
        if node.kind == NodeKind.NAMESPACE and existing is not None:
            return None
        if shortdesc is not None:
            node.shortdesc = shortdesc
        if longdesc is not None:
            node.longdesc = longdesc
        if isinstance(synopsis, str):
            node.synopsis = synopsis
        elif synopsis is not None:
            rendered, ordered = render_synopsis(synopsis)
            node.synopsis = rendered
            node.longdesc = _synopsis_longdesc(ordered, rendered, longdesc)
        if shortdesc is not None or longdesc is not None or synopsis is not None:
            node.docblock = None

        self._register_node(node, when)
        if existing is not None and existing.can_have_subcommands() and node.can_have_subcommands():
            # a real command replacing a namespace keeps what was registered under it
            for child_name, child in existing.children.items():
                if child_name not in node.children:
                    node.add_subcommand(child_name, child)
        parent.add_subcommand(leaf_name, node)
        self.do_hook(f"after_add_command:{name}")
        return node

    def _ensure_parents(self, path: list[str]) -> CommandNode:
        """Walk `path` from the root, creating empty containers where missing."""
        command = self.root
        for index, part in enumerate(path):
            subcommand = tree.find_subcommand(command, [part])
            if subcommand is None:
                subcommand = CommandNode(name=part, kind=NodeKind.COMPOSITE)
                command.add_subcommand(part, subcommand)
            elif not subcommand.can_have_subcommands():
                msg = f"'{' '.join(path[: index + 1])}' can't have subcommands."
                raise RegistrationError(msg)
            command = subcommand
        return command

    def _register_node(self, node: CommandNode, when: str | None = None) -> None:
        """Report invalid synopsis parts and record early invocations."""
        if node.synopsis:
            for token in SynopsisValidator(node.synopsis).get_unknown():
                self.log.warning(f"The '{tree.command_path(node)}' command has an invalid synopsis part: {token}")
        stage = when or node.when
        if stage:
            self.register_early_invoke(stage, node)
        for child in node.children.values():
            self._register_node(child)

    def register_early_invoke(self, when: str, node: CommandNode) -> None:
        """Run `node` at stage `when` instead of at the regular dispatch time."""
        self.early_invoke.setdefault(when, []).append(node)

    def do_early_invoke(self, when: str) -> bool:
        """Run the requested command now if it was registered for stage `when`.

        Args:
            when: Stage name reached by the host

        Returns:
            True if the command ran (the host should stop)
        """
        nodes = self.early_invoke.get(when)
        if not nodes or not self.arguments:
            return False
        node, _, _ = self.find_command_to_run(list(self.arguments))
        requested = tree.command_path(node)
        for candidate in nodes:
            path = tree.command_path(candidate)
            if requested == path or requested.startswith(f"{path} "):
                self.run_command(list(self.arguments), dict(self.assoc_args))
                return True
        return False

    # Lookup

    def is_command_disabled(self, node: CommandNode) -> bool:
        """Return True if the config file disabled the command."""
        return tree.command_path(node) in self.config.get_list("disabled_commands")

    def find_command_to_run(self, args: list[str]) -> tuple[CommandNode, list[str], list[str]]:
        """Walk the tree following positional arguments.

        Args:
            args: Positional arguments

        Returns:
            Tuple of (command node, remaining args, consumed path tokens)

        Raises:
            CommandNotFound: if a token matches no command
            CommandDisabled: if the command was disabled by the configuration
        """
        self.do_hook("find_command_to_run_pre")
        command = self.root
        args = list(args)
        cmd_path: list[str] = []
        while args and command.can_have_subcommands():
            cmd_path.append(args[0])
            full_name = " ".join(cmd_path)
            subcommand = tree.find_subcommand(command, args)
            if subcommand is None:
                if len(cmd_path) > 1:
                    child = cmd_path.pop()
                    parent_name = " ".join(cmd_path)
                    msg = (
                        f"'{child}' is not a registered subcommand of '{parent_name}'. "
                        f"See '{self.bin_name} help {parent_name}' for available subcommands."
                    )
                    raise CommandNotFound(msg + self._did_you_mean(child, command))
                msg = f"'{full_name}' is not a registered {self.bin_name} command. See '{self.bin_name} help' for available commands."
                raise CommandNotFound(msg + self._did_you_mean(full_name, command))
            if self.is_command_disabled(subcommand):
                msg = f"The '{full_name}' command has been disabled from the config file."
                raise CommandDisabled(msg)
            command = subcommand
        return command, args, cmd_path

    def _did_you_mean(self, entry: str, command: CommandNode) -> str:
        names = [name for name, _ in tree.enumerate_commands(command)]
        suggestion = get_suggestion(entry, names, SUGGESTION_THRESHOLD)
        return f"\nDid you mean '{suggestion}'?" if suggestion else ""

    # Invocation

    def should_prompt(self, node: CommandNode) -> bool:
        """Return True if arguments must be asked interactively for `node`."""
        return bool(self.config.get("prompt")) and not self._prompted and node.name != "help"

    def prompt_args(self, node: CommandNode, args: list[str], assoc_args: dict[str, Any]) -> tuple[list[str], dict[str, Any]]:
        """Ask for the missing arguments of `node` (once per run)."""
        self._prompted = True
        return prompt_args(node, args, assoc_args, self.config.get("prompt"))  # type: ignore[arg-type]

    def show_usage(self, node: CommandNode) -> None:
        """Write the usage of `node`."""
        self.output(help_pages.get_usage(node, self))

    def run_command(self, args: list[str], assoc_args: dict[str, Any] | None = None) -> Any:  # noqa: ANN401
        """Find and invoke the command named by `args`.

        Config values scoped to the command path (``[cache]`` tables) are
        passed beneath `assoc_args`.

        Args:
            args: Positional arguments, command path first
            assoc_args: Associative arguments

        Returns:
            Whatever the command returns
        """
        self.do_hook("before_run_command", args, assoc_args)
        command, final_args, cmd_path = self.find_command_to_run(args)
        name = tree.command_path(command)
        extra_args = self.extra_config.get(name) or self.extra_config.get(" ".join(cmd_path)) or {}
        if not isinstance(extra_args, dict):
            extra_args = {}
        self.log.debug(f"Running command: {name}", "bootstrap")
        return tree.invoke(command, final_args, dict(assoc_args or {}), dict(extra_args), self)

    def help_command(self, args: list[str], assoc_args: dict[str, Any]) -> None:  # pylint: disable=unused-argument
        """Get help on a command.

        ## OPTIONS

        [<command>...]
        : Get help on a specific command.
        """
        node = self.root
        if args:
            node, _, _ = self.find_command_to_run(args)
        self.output(help_pages.get_command_help(node, self))

    # Startup

    def init_config(self, argv: list[str]) -> None:
        """Resolve the configuration from config files and `argv`.

        Args:
            argv: Command line tokens, program name excluded

        Raises:
            ConfigError: on unreadable config files or invalid alias groups
        """
        argv = list(argv)
        self.configurator = Configurator(self.spec, self.log)
        self.alias = None
        if argv and self.configurator.is_alias(argv[0]):
            self.alias = argv.pop(0)

        self.configurator.merge_file(get_global_config_path(), self.alias)
        self.configurator.merge_file(get_project_config_path(), self.alias)

        self.arguments, self.assoc_args, self.runtime_config = self.configurator.parse_args(argv)
        self.configurator.merge_array(self.runtime_config)
        config, self.extra_config = self.configurator.to_array()
        self.config = Configuration(config, logger=self.log.log, spec=self.spec)
        self.aliases = self.configurator.get_aliases()

        for group, members in self.aliases.items():
            if isinstance(members, list):
                invalid = [member for member in members if member not in self.aliases]
                if invalid:
                    msg = f"Group '{group}' contains one or more invalid aliases: {', '.join(invalid)}"
                    raise ConfigError(msg)

        self.log.configure(quiet=self.config.get_bool("quiet"), debug=self.config.get("debug") or False)  # type: ignore[arg-type]
        set_color_mode(self.config.get("color", "auto"))  # type: ignore[arg-type]

    def set_alias(self, alias: str) -> None:
        """Apply the bundle of `alias` on top of the resolved config.

        Values given explicitly on the command line are kept as associative
        arguments of the command.
        """
        bundle = self.aliases.get(alias)
        if not isinstance(bundle, dict):
            return
        for key, value in bundle.items():
            if key in self.runtime_config and self.runtime_config[key] is not None:
                self.assoc_args[key] = self.runtime_config[key]
            self.config[key] = value

    def _alias_members(self, alias: str) -> list[str]:
        if alias == "@all":
            if not self.aliases:
                msg = "Cannot use '@all' when no aliases are registered."
                raise ConfigError(msg)
            return [name for name, value in self.aliases.items() if isinstance(value, dict)]
        if alias not in self.aliases:
            suggestion = get_suggestion(alias, self.aliases, SUGGESTION_THRESHOLD)
            msg = f"Alias '{alias}' not found." + (f"\nDid you mean '{suggestion}'?" if suggestion else "")
            raise ConfigError(msg)
        members = self.aliases[alias]
        return list(members) if isinstance(members, list) else [alias]

    def _run_with_alias(self, alias: str, args: list[str]) -> None:
        saved_config = Configuration(self.config, logger=self.log.log, spec=self.spec)
        saved_assoc = dict(self.assoc_args)
        try:
            self.set_alias(alias)
            self.log.debug(f"Running with alias {alias}", "bootstrap")
            self.run_command(args, self.assoc_args)
        finally:
            self.config = saved_config
            self.assoc_args = saved_assoc

    def start(self, argv: list[str]) -> None:
        """Resolve the configuration and run the requested command.

        Args:
            argv: Command line tokens, program name excluded
        """
        self.init_config(argv)
        self.do_hook("before_run")
        args = self.arguments or ["help"]

        if self.alias:
            members = self._alias_members(self.alias)
            if members == [self.alias]:
                self._run_with_alias(self.alias, args)
                return
            for member in members:
                self.output(member)
                self._run_with_alias(member, args)
            return

        self.run_command(args, self.assoc_args)

    def main(self, argv: list[str]) -> int:
        """Run the program and return its exit status.

        Args:
            argv: Command line tokens, program name excluded

        Returns:
            The process exit code
        """
        try:
            self.start(argv)
        except UsageError as e:
            self.log.debug(str(e), "bootstrap")
            return e.exit_code
        except CommanderError as e:
            self.log.error(str(e))
            return e.exit_code
        return ExitCode.SUCCESS
