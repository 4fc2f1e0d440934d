"""Error types and exit codes shared by the engine."""

from enum import IntEnum

__all__ = [
    "CommandDisabled",
    "CommandNotFound",
    "CommanderError",
    "ConfigError",
    "ExitCode",
    "ParameterError",
    "RegistrationError",
    "UsageError",
]


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    COMMAND_ERROR = 1  # Unknown/disabled command, invalid parameters
    USAGE_ERROR = 2  # Not enough positional arguments
    CONFIG_ERROR = 3  # Unreadable or malformed configuration file


class CommanderError(Exception):
    """Base class for fatal engine errors.

    Raised once the condition has been detected; `Engine.main` is the only
    place turning it into a process exit status.
    """

    exit_code: ExitCode = ExitCode.COMMAND_ERROR


class ConfigError(CommanderError):
    """A configuration file could not be read or parsed."""

    exit_code = ExitCode.CONFIG_ERROR


class RegistrationError(CommanderError):
    """A command provider could not be added to the tree."""


class CommandNotFound(CommanderError):
    """The requested command path does not exist."""


class CommandDisabled(CommanderError):
    """The requested command was disabled by the configuration."""


class UsageError(CommanderError):
    """Not enough positional arguments, usage was already displayed."""

    exit_code = ExitCode.USAGE_ERROR


class ParameterError(CommanderError):
    """One or more parameters failed validation.

    Attributes:
        errors: every violation message, in detection order
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]
