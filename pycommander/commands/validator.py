"""Check a concrete invocation against a parsed synopsis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .models import ParameterSpec, ParamKind
from .parsing import parse_synopsis

__all__ = ["AssocErrors", "SynopsisValidator"]


@dataclass
class AssocErrors:
    """Assoc argument problems, keyed by parameter name."""

    fatal: dict[str, str] = field(default_factory=dict)
    warning: dict[str, str] = field(default_factory=dict)


class SynopsisValidator:
    """Validate positional and associative arguments for one synopsis."""

    def __init__(self, synopsis: str | list[ParameterSpec]) -> None:
        """Initialize the validator.

        Args:
            synopsis: Synopsis string or already parsed specs
        """
        self.spec = parse_synopsis(synopsis) if isinstance(synopsis, str) else list(synopsis)

    def query(self, kind: ParamKind) -> list[ParameterSpec]:
        """Return the specs of the given kind, in synopsis order."""
        return [param for param in self.spec if param.kind == kind]

    def get_unknown(self) -> list[str]:
        """Return the raw tokens which could not be classified."""
        return [param.token for param in self.query(ParamKind.UNKNOWN)]

    def enough_positionals(self, args: list[str]) -> bool:
        """Check that every mandatory positional got a value.

        Args:
            args: Positional arguments

        Returns:
            True if there are at least as many args as mandatory positionals
        """
        mandatory = [param for param in self.query(ParamKind.POSITIONAL) if not param.optional]
        return len(args) >= len(mandatory)

    def unknown_positionals(self, args: list[str]) -> list[str]:
        """Return the positional arguments the synopsis does not account for.

        Args:
            args: Positional arguments

        Returns:
            The extra trailing arguments, empty when a repeating positional exists
        """
        positionals = self.query(ParamKind.POSITIONAL)
        if any(param.repeating for param in positionals):
            return []
        return args[len(positionals) :]

    def validate_assoc(self, assoc_args: dict[str, Any]) -> tuple[AssocErrors, list[str]]:
        """Check declared assoc parameters against the supplied values.

        Args:
            assoc_args: Supplied associative arguments

        Returns:
            Tuple of (errors, keys to remove before invoking the command)
        """
        errors = AssocErrors()
        to_unset: list[str] = []
        for param in self.query(ParamKind.ASSOC):
            key = param.name
            assert key is not None
            value = assoc_args.get(key)
            if value is None:
                if not param.optional:
                    errors.fatal[key] = f"missing --{key} parameter"
            elif value is True and not param.value_optional:
                bucket = errors.warning if param.optional else errors.fatal
                bucket[key] = f"--{key} parameter needs a value"
                to_unset.append(key)
        return errors, to_unset

    def unknown_assoc(self, assoc_args: dict[str, Any]) -> list[str]:
        """Return supplied keys matching neither an assoc nor a flag.

        Args:
            assoc_args: Supplied associative arguments

        Returns:
            Unknown keys, empty when a generic catch-all is declared
        """
        if self.query(ParamKind.GENERIC):
            return []
        known = {param.name for param in self.spec if param.kind in (ParamKind.ASSOC, ParamKind.FLAG)}
        return [key for key in assoc_args if key not in known]
