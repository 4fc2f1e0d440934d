"""Documentation block parsing.

A command's documentation is its docstring, written like::

    Flush the object cache.

    ## OPTIONS

    [--group=<name>]
    : Only flush this group.
    ---
    default: all
    options:
      - all
      - posts
    ---

    @alias purge

The first line is the short description, everything up to the first
``@tag`` line is the long description. Lines followed by a ``: description``
line make up the synopsis unless an explicit ``@synopsis`` tag is given.
"""

from __future__ import annotations

import ast
import inspect
import re
from pathlib import Path
from typing import Any

import yaml

from ..logging_setup import get_logger

__all__ = ["DocBlock", "SourceReader", "extract_source_doc", "get_doc", "strip_decorations"]

_OPENING_QUOTES = re.compile(r"^\s*[rRuU]?(\"\"\"|''')")
_CLOSING_QUOTES = re.compile(r"(\"\"\"|''')\s*$")
_SHORTDESC_PATTERN = re.compile(r"^([^@][^\n]+)\n*")
_SYNOPSIS_TAG = re.compile(r"^@synopsis\s+(.+)", re.MULTILINE)
_TAG_PATTERN = re.compile(r"^@([A-Za-z0-9_-]+)\s+(\S+)", re.MULTILINE)
_DERIVED_SYNOPSIS = re.compile(r"(.+?)[\r\n]+:")
_FENCE = "---"


def strip_decorations(doc: str) -> str:
    """Remove quoting and indentation from a raw documentation string.

    Applying it to an already stripped string returns it unchanged.

    Args:
        doc: Raw docstring text, possibly still quoted

    Returns:
        The cleaned text
    """
    doc = _OPENING_QUOTES.sub("", doc, count=1)
    doc = _CLOSING_QUOTES.sub("", doc, count=1)
    return inspect.cleandoc(doc)


class DocBlock:
    """Parsed documentation of one command provider."""

    def __init__(self, doc: str | None) -> None:
        """Initialize the block.

        Args:
            doc: Raw documentation text (may be empty)
        """
        self.text = strip_decorations(doc or "")

    @property
    def shortdesc(self) -> str:
        """First line, unless the text starts with a tag."""
        match = _SHORTDESC_PATTERN.match(self.text)
        return match.group(1).strip() if match else ""

    @property
    def longdesc(self) -> str:
        """Text following the short description, up to the first tag line."""
        shortdesc = self.shortdesc
        if not shortdesc:
            return ""
        lines = []
        for line in self.text[self.text.index(shortdesc) + len(shortdesc) :].split("\n"):
            if line.startswith("@"):
                break
            lines.append(line)
        return "\n".join(lines).strip()

    @property
    def tags(self) -> dict[str, str]:
        """All ``@name value`` tags, the first occurrence of each winning."""
        found: dict[str, str] = {}
        for name, value in _TAG_PATTERN.findall(self.text):
            found.setdefault(name, value)
        return found

    def get_tag(self, name: str) -> str:
        """Return the value of tag `name`, or an empty string."""
        return self.tags.get(name, "")

    def get_synopsis(self) -> str:
        """Return the explicit ``@synopsis`` value, or an empty string."""
        match = _SYNOPSIS_TAG.search(self.text)
        return match.group(1).strip() if match else ""

    @property
    def synopsis(self) -> str:
        """Explicit synopsis, else the one derived from the long description."""
        explicit = self.get_synopsis()
        if explicit:
            return explicit
        return " ".join(token.strip() for token in _DERIVED_SYNOPSIS.findall(self.longdesc))

    def get_arg_desc(self, name: str) -> str:
        """Return the description line of positional `name`."""
        return self._description(rf"\[?<{re.escape(name)}>.*\n: (.+?)(\n|$)")

    def get_param_desc(self, key: str) -> str:
        """Return the description line of assoc parameter `key`."""
        return self._description(rf"\[?--{re.escape(key)}=.*\n: (.+?)(\n|$)")

    def get_arg_args(self, name: str) -> dict[str, Any] | None:
        """Return the sidecar document (``default``, ``options``) of positional `name`."""
        return self._sidecar(re.compile(rf"^\[?<{re.escape(name)}>"))

    def get_param_args(self, key: str) -> dict[str, Any] | None:
        """Return the sidecar document (``default``, ``options``) of assoc parameter `key`."""
        return self._sidecar(re.compile(rf"^\[?--{re.escape(key)}="))

    def _description(self, pattern: str) -> str:
        match = re.search(pattern, self.text)
        return match.group(1) if match else ""

    def _sidecar(self, start: re.Pattern[str]) -> dict[str, Any] | None:
        within_arg = False
        within_doc = False
        document: list[str] = []
        for line in self.text.split("\n"):
            if not within_arg:
                within_arg = bool(start.match(line))
                continue
            if line.strip() == _FENCE:
                if within_doc:
                    break
                within_doc = True
                continue
            if within_doc:
                document.append(line)
            elif not line.strip():
                break
        if not document:
            return None
        try:
            data = yaml.safe_load("\n".join(document))
        except yaml.YAMLError as e:
            get_logger("pycommander.docblock").debug("Invalid parameter document: %s", e)
            return None
        return data if isinstance(data, dict) else None


class SourceReader:
    """Read source files as line lists, caching them per path."""

    def __init__(self) -> None:
        self._cache: dict[str, list[str]] = {}

    def lines(self, path: str) -> list[str]:
        """Return the lines of `path` (without line endings).

        Args:
            path: Source file path

        Returns:
            The file lines, read once per path
        """
        if path not in self._cache:
            self._cache[path] = Path(path).read_text(encoding="utf-8").splitlines()
        return self._cache[path]

    def clear(self) -> None:
        """Forget every cached file."""
        self._cache.clear()


def _declaration_nodes(tree: ast.AST) -> list[ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef]:
    return [node for node in ast.walk(tree) if isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef)]


def _first_line(node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef) -> int:
    return min([node.lineno] + [decorator.lineno for decorator in node.decorator_list])


def _comment_block(lines: list[str], lineno: int) -> str:
    """Return the ``#`` comment block ending right above line `lineno` (1-based)."""
    block: list[str] = []
    index = lineno - 2
    while index >= 0:
        line = lines[index].strip()
        if not line.startswith("#"):
            break
        text = line[1:]
        block.append(text[1:] if text.startswith(" ") else text)
        index -= 1
    return "\n".join(reversed(block)).strip()


def extract_source_doc(lines: list[str], lineno: int) -> str:
    """Recover a declaration's documentation from its source text.

    Used when the docstring is not available at runtime (``python -OO``).
    The docstring written in the source wins; otherwise the contiguous
    comment block right above the declaration (and its decorators) is used.

    Args:
        lines: Source file lines
        lineno: 1-based line of the declaration or of its first decorator

    Returns:
        The documentation text, or an empty string
    """
    try:
        tree = ast.parse("\n".join(lines))
    except SyntaxError as e:
        get_logger("pycommander.docblock").debug("Cannot parse source: %s", e)
        return _comment_block(lines, lineno)

    for node in _declaration_nodes(tree):
        first = _first_line(node)
        if lineno in (first, node.lineno):
            return ast.get_docstring(node) or _comment_block(lines, first)
    return _comment_block(lines, lineno)


def _declaration_line(obj: Any) -> int | None:
    code = getattr(obj, "__code__", None)
    if code is not None:
        return code.co_firstlineno
    return getattr(obj, "__firstlineno__", None)


def get_doc(obj: Any, reader: SourceReader | None = None) -> str:
    """Return the documentation attached to a function, method or class.

    Args:
        obj: The documented object
        reader: Source reader used when the docstring was stripped

    Returns:
        The raw documentation, or an empty string
    """
    if inspect.isclass(obj):
        # only the class' own docstring, not an inherited one
        doc = obj.__dict__.get("__doc__")
        doc = inspect.cleandoc(doc) if isinstance(doc, str) else None
    else:
        doc = inspect.getdoc(obj)
    if doc or reader is None:
        return doc or ""
    target = obj if inspect.isclass(obj) else inspect.unwrap(getattr(obj, "__func__", obj))
    path = inspect.getsourcefile(target) if (inspect.isfunction(target) or inspect.isclass(target)) else None
    if not path:
        return ""
    lines = reader.lines(path)
    lineno = _declaration_line(target)
    if lineno is None:
        # classes before Python 3.13 carry no line number
        lineno = next(
            (
                _first_line(node)
                for node in _declaration_nodes(ast.parse("\n".join(lines)))
                if isinstance(node, ast.ClassDef) and node.name == target.__name__
            ),
            None,
        )
    if lineno is None:
        return ""
    return extract_source_doc(lines, lineno)
