"""Resolve configuration from defaults, config files and the command line.

Precedence, lowest first: spec defaults, global config file, project config
file, runtime arguments. Keys flagged ``multiple`` accumulate across every
source instead of being overwritten.
"""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any

from .config_spec import DEFAULT_SPEC, ConfigSpec
from .constants import ALIAS_REGEX, ALIAS_SPEC
from .logging_setup import LogSink
from .models import ConfigError

__all__ = ["Configurator", "merge"]

_ALIAS_PATTERN = re.compile(ALIAS_REGEX)
_NO_FLAG = re.compile(r"^--no-([^=]+)$")
_FLAG = re.compile(r"^--([^=]+)$")
_ASSOC = re.compile(r"^--([^=]+)=(.*)$", re.DOTALL)

AssocPair = tuple[str, Any]


def merge(merged: dict[str, Any], obj2: dict[str, Any]) -> dict[str, Any]:
    """Merge the content of obj2 into merged.

    Args:
        merged (dict): Dictionary to merge into
        obj2 (dict): Dictionary to merge from

    Returns:
        `merged` dictionary with the merged content

    Eg:
        merge({"a": {"b": 1}}, {"a": {"c": 2}}) == {"a": {"b": 1, "c": 2}}

    """
    for key, value in obj2.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merge(merged[key], value)
        elif key in merged and isinstance(merged[key], list) and isinstance(value, list):
            merged[key] = merged[key] + value
        else:
            merged[key] = value
    return merged


def _arrayify(value: Any) -> list[Any]:  # noqa: ANN401
    return value if isinstance(value, list) else [value]


def _to_pair(arg: str) -> AssocPair | None:
    match = _NO_FLAG.match(arg)
    if match:
        return match.group(1), False
    match = _FLAG.match(arg)
    if match:
        return match.group(1), True
    match = _ASSOC.match(arg)
    if match:
        return match.group(1), match.group(2)
    return None


def _absolutize(path: Any, base: Path) -> Any:  # noqa: ANN401
    if not isinstance(path, str) or not path or Path(path).expanduser().is_absolute():
        return path
    return str(base / path)


class Configurator:
    """Handles file- and runtime-based configuration values."""

    def __init__(self, spec: ConfigSpec = DEFAULT_SPEC, log: LogSink | None = None) -> None:
        """Initialize the configurator.

        Args:
            spec: Recognized global parameters
            log: Logging sink (deprecation warnings, loaded files)
        """
        self.spec = spec
        self.log = log or LogSink()
        self.config: dict[str, Any] = spec.defaults()
        self.extra_config: dict[str, Any] = {}
        self.aliases: dict[str, dict[str, Any] | list[str]] = {}

    def to_array(self) -> tuple[dict[str, Any], dict[str, Any]]:
        """Return the resolved ``(config, extra_config)`` pair."""
        return self.config, self.extra_config

    def get_spec(self) -> ConfigSpec:
        """Return the recognized global parameters."""
        return self.spec

    def get_aliases(self) -> dict[str, dict[str, Any] | list[str]]:
        """Return the alias table: bundles (dicts) and groups (lists)."""
        return self.aliases

    @staticmethod
    def is_alias(name: str) -> bool:
        """Return True if `name` looks like an alias (``@prod``)."""
        return bool(_ALIAS_PATTERN.match(name))

    @staticmethod
    def extract_assoc(arguments: list[str]) -> tuple[list[str], list[AssocPair], list[AssocPair]]:
        """Split positional from associative arguments.

        A lone ``--`` ends option parsing: what follows is positional. Assoc
        arguments before the first positional one (or before ``--`` when
        present) are global, the others are local to the command.

        Args:
            arguments: Raw command line tokens

        Returns:
            Tuple of (positional args, global assoc pairs, local assoc pairs)
        """
        positional: list[str] = []
        global_assoc: list[AssocPair] = []
        local_assoc: list[AssocPair] = []
        has_separator = "--" in arguments
        options_ended = False

        for arg in arguments:
            if options_ended:
                positional.append(arg)
                continue
            if arg == "--":
                options_ended = True
                continue
            pair = _to_pair(arg)
            if pair is None:
                positional.append(arg)
                continue
            if has_separator or not positional:
                global_assoc.append(pair)
            else:
                local_assoc.append(pair)

        return positional, global_assoc, local_assoc

    def parse_args(self, arguments: list[str]) -> tuple[list[str], dict[str, Any], dict[str, Any]]:
        """Split command line tokens into positional, assoc and runtime config.

        Args:
            arguments: Raw command line tokens

        Returns:
            Tuple of (positional args, assoc args, runtime config)
        """
        positional, global_assoc, local_assoc = self.extract_assoc(arguments)
        assoc_args, runtime_config = self.unmix_assoc_args(global_assoc, local_assoc)
        return positional, assoc_args, runtime_config

    def unmix_assoc_args(
        self, global_assoc: list[AssocPair], local_assoc: list[AssocPair] | None = None
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Separate runtime parameters from command-specific parameters.

        Only global pairs can set runtime parameters; local pairs always
        belong to the command.

        Args:
            global_assoc: Pairs given before the command path
            local_assoc: Pairs given after it

        Returns:
            Tuple of (assoc args, runtime config)
        """
        assoc_args: dict[str, Any] = {}
        runtime_config: dict[str, Any] = {}
        for key, value in global_assoc:
            entry = self.spec.get(key)
            if entry is None or not entry.is_runtime:
                assoc_args[key] = value
                continue
            if entry.deprecated:
                self.log.warning(f"The --{key} global parameter is deprecated. {entry.deprecated}")
            if entry.multiple:
                runtime_config.setdefault(key, []).append(value)
            else:
                runtime_config[key] = value
        for key, value in local_assoc or []:
            assoc_args[key] = value
        return assoc_args, runtime_config

    def load_file(self, path: str | Path) -> dict[str, Any]:
        """Load a TOML config file, making its relative paths absolute.

        Args:
            path: File to read

        Returns:
            The file content

        Raises:
            ConfigError: If the file is unreadable or malformed
        """
        fname = Path(path).expanduser()
        try:
            with fname.open("rb") as f:
                config = tomllib.load(f)
        except OSError as e:
            msg = f"Cannot read config file {fname}: {e}"
            raise ConfigError(msg) from e
        except tomllib.TOMLDecodeError as e:
            msg = f"Problem reading {fname}: {e}"
            raise ConfigError(msg) from e
        self.log.debug(f"Loaded config file {fname}", "bootstrap")

        base = fname.parent
        reserved = config.get("_")
        if isinstance(reserved, dict) and "inherit" in reserved:
            reserved["inherit"] = _absolutize(reserved["inherit"], base)
        if "path" in config:
            config["path"] = _absolutize(config["path"], base)
        if "require" in config:
            config["require"] = [_absolutize(item, base) for item in _arrayify(config["require"])]
        return config

    def merge_file(
        self, path: str | Path | None, current_alias: str | None = None, _seen: set[Path] | None = None
    ) -> None:
        """Merge a config file into the current configuration.

        ``_.inherit`` names a file merged before this one; ``_.merge`` makes
        list and table values of extra keys accumulate instead of replacing
        the previous ones.

        Args:
            path: File to merge (nothing happens when empty)
            current_alias: Alias selected on the command line, if any; its
                bundle keys are then left alone

        Raises:
            ConfigError: If the file is unreadable, malformed or part of an
                inheritance cycle
        """
        if not path:
            return
        fname = Path(path).expanduser().resolve()
        seen = set() if _seen is None else _seen
        if fname in seen:
            msg = f"Config file {fname} inherits itself"
            raise ConfigError(msg)
        seen.add(fname)
        content = self.load_file(path)
        reserved = content.get("_") if isinstance(content.get("_"), dict) else {}
        if reserved.get("inherit"):
            self.merge_file(reserved["inherit"], current_alias, seen)

        for key, value in content.items():
            if key == "_":
                continue
            if self.is_alias(key):
                self._add_alias(key, value, Path(path).expanduser().parent)
                continue
            entry = self.spec.get(key)
            if entry is None or not entry.is_file:
                previous = self.extra_config.get(key)
                if reserved.get("merge") and isinstance(previous, dict | list) and isinstance(value, type(previous)):
                    self.extra_config.update(merge({key: previous}, {key: value}))
                else:
                    self.extra_config[key] = value
            elif entry.multiple:
                self.config[key] = _arrayify(self.config.get(key) or []) + _arrayify(value)
            elif current_alias and key in ALIAS_SPEC:
                continue
            else:
                self.config[key] = value

    def _add_alias(self, name: str, value: Any, base: Path) -> None:  # noqa: ANN401
        if isinstance(value, dict):
            bundle = {key: value[key] for key in ALIAS_SPEC if key in value}
            if bundle:
                if "path" in bundle and "ssh" not in bundle:
                    bundle["path"] = _absolutize(bundle["path"], base)
                self.aliases[name] = bundle
                return
        if isinstance(value, list):
            self.aliases[name] = [item for item in value if isinstance(item, str) and self.is_alias(item)]
        else:
            self.aliases[name] = {}

    def merge_array(self, config: dict[str, Any]) -> None:
        """Merge runtime values (from `parse_args`) into the configuration.

        Args:
            config: Runtime config mapping
        """
        for entry in self.spec:
            if not entry.is_runtime or entry.name not in config:
                continue
            value = config[entry.name]
            if entry.multiple:
                self.config[entry.name] = _arrayify(self.config.get(entry.name) or []) + _arrayify(value)
            else:
                self.config[entry.name] = value
