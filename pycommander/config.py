"""Configuration wrapper providing typed access to resolved values."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import logging

    from .config_spec import ConfigSpec

__all__ = ["BOOL_FALSE_STRINGS", "BOOL_TRUE_STRINGS", "Configuration", "coerce_to_bool"]

# Type alias for config values
ConfigValueType = float | bool | str | list | dict

BOOL_TRUE_STRINGS = frozenset({"true", "yes", "on", "1", "enabled"})
BOOL_FALSE_STRINGS = frozenset({"false", "no", "off", "0", "disabled"})


def coerce_to_bool(value: ConfigValueType | None, default: bool = False) -> bool:
    """Coerce a value to boolean, handling loose typing.

    Args:
        value: The value to coerce
        default: Default value if value is None

    Returns:
        The boolean value

    Behavior:
        - None → default
        - Empty string → False
        - Explicit falsy strings ("false", "no", "off", "0", "disabled") → False
        - Any other non-empty string → True
        - Non-string values → bool(value)
    """
    if value is None:
        return default
    if isinstance(value, str):
        if not value.strip():
            return False
        return value.lower().strip() not in BOOL_FALSE_STRINGS
    return bool(value)


class Configuration(dict):
    """Resolved configuration with typed accessors.

    Keys missing from the mapping fall back to the global parameter defaults.
    """

    def __init__(
        self,
        *args: Any,  # noqa: ANN401
        logger: logging.Logger,
        spec: ConfigSpec | None = None,
        **kwargs: Any,  # noqa: ANN401
    ):
        """Initialize the configuration object.

        Args:
            *args: Arguments for dict
            logger: Logger instance to use for warnings
            spec: Global parameter spec providing defaults
            **kwargs: Keyword arguments for dict
        """
        super().__init__(*args, **kwargs)
        self.log = logger
        self._defaults: dict[str, Any] = spec.defaults() if spec else {}

    def get(self, name: str, default: ConfigValueType | None = None) -> ConfigValueType | None:  # type: ignore[override]
        """Get a value with spec-aware defaults.

        Args:
            name: The configuration key
            default: Fallback if key is missing and has no spec default

        Returns:
            The value, spec default, or provided default
        """
        if name in self:
            return dict.get(self, name)  # type: ignore[no-any-return]
        if self._defaults.get(name) is not None:
            return self._defaults[name]  # type: ignore[no-any-return]
        return default

    def get_bool(self, name: str, default: bool = False) -> bool:
        """Get a boolean value, handling loose typing (see `coerce_to_bool`)."""
        return coerce_to_bool(self.get(name), default)

    def get_int(self, name: str, default: int = 0) -> int:
        """Get an integer value.

        Args:
            name: The key name
            default: Default value if key is missing or invalid

        Returns:
            The integer value
        """
        value = self.get(name)
        if value is None:
            return default
        try:
            return int(value)  # type: ignore[arg-type]
        except (ValueError, TypeError):
            self.log.warning("Invalid integer value for %s: %s", name, value)
            return default

    def get_str(self, name: str, default: str = "") -> str:
        """Get a string value."""
        value = self.get(name)
        if value is None:
            return default
        return str(value)

    def get_list(self, name: str) -> list[Any]:
        """Get a list value; a scalar becomes a one item list, comma separated strings are split."""
        value = self.get(name)
        if value is None or value is False:
            return []
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [value]

    def has_explicit(self, name: str) -> bool:
        """Check if value was explicitly set (not from spec default)."""
        return name in self
