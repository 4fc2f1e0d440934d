"""Debug mode state management."""

import os

__all__ = [
    "debug_groups",
    "is_debug",
    "set_debug",
]


class _DebugState:
    """Container for mutable debug state to avoid global statement."""

    value: bool = bool(os.environ.get("DEBUG"))
    groups: frozenset[str] = frozenset()


_debug_state = _DebugState()


def is_debug(group: str | None = None) -> bool:
    """Return the current debug state.

    Args:
        group: when given, only True if debugging is on for every group
               or this specific group was requested
    """
    if not _debug_state.value:
        return False
    if group is None or not _debug_state.groups:
        return True
    return group in _debug_state.groups


def debug_groups() -> frozenset[str]:
    """Return the restricted debug groups (empty means all)."""
    return _debug_state.groups


def set_debug(value: bool | str) -> None:
    """Set the debug state.

    Args:
        value: a boolean, or a comma separated list of groups (``--debug=bootstrap``)
    """
    if isinstance(value, str):
        groups = frozenset(g.strip() for g in value.split(",") if g.strip())
        _debug_state.value = True
        _debug_state.groups = groups
    else:
        _debug_state.value = bool(value)
        _debug_state.groups = frozenset()
