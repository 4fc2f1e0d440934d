"""Tests for usage and help rendering."""

from pycommander.ansi import set_color_mode
from pycommander.config_spec import ConfigSpec, ConfigSpecEntry
from pycommander.help import get_command_help, get_global_parameters, get_usage, get_usage_line


class Cache:
    """Manage the cache.

    Caches are kept per group.
    """

    def flush(self, args, assoc_args):
        """Flush the cache.

        ## OPTIONS

        [--group=<group>]
        : Group to flush.
        ---
        default: all
        ---

        ## EXAMPLES

            tool cache flush --group=posts
        """

    def status(self, args, assoc_args):
        """Show the cache status."""


class TestUsage:
    """Tests for usage lines."""

    def test_leaf(self, engine):
        """Test a leaf usage line."""
        engine.add_command("cache", Cache)
        flush = engine.root.children["cache"].children["flush"]
        assert get_usage_line(flush) == "tool cache flush [--group=<group>]"
        assert get_usage(flush, engine) == "usage: tool cache flush [--group=<group>]"

    def test_root(self, engine):
        """Test the root usage lists the top-level commands."""
        engine.add_command("cache", Cache)
        assert get_usage(engine.root, engine).split("\n") == [
            "usage: tool cache <command>",
            "   or: tool help [<command>...]",
            "",
            "See 'tool help <command>' for more information on a specific command.",
        ]

    def test_disabled_hidden(self, engine):
        """Test disabled commands are left out."""
        engine.add_command("cache", Cache)
        engine.config["disabled_commands"] = ["cache flush"]
        assert get_usage(engine.root.children["cache"], engine).split("\n")[0] == "usage: tool cache status"


class TestCommandHelp:
    """Tests for help pages."""

    def test_leaf_page(self, engine):
        """Test the sections of a leaf help page."""
        engine.add_command("cache", Cache)
        page = get_command_help(engine.root.children["cache"].children["flush"], engine)
        assert page.startswith(
            "NAME\n\n  tool cache flush\n\nDESCRIPTION\n\n  Flush the cache.\n\n"
            "SYNOPSIS\n\n  tool cache flush [--group=<group>]\n\n"
            "OPTIONS\n\n  [--group=<group>]\n  : Group to flush.\n  default: all\n\n"
            "EXAMPLES\n\n      tool cache flush --group=posts\n\nGLOBAL PARAMETERS"
        )
        assert "  --[no-]color\n      Whether to colorize the output." in page
        assert "--site" not in page

    def test_composite_page(self, engine):
        """Test a composite lists its subcommands."""
        engine.add_command("cache", Cache)
        page = get_command_help(engine.root.children["cache"], engine)
        assert "SUBCOMMANDS\n\n  flush   Flush the cache.\n  status  Show the cache status." in page
        assert "  Caches are kept per group." in page

    def test_colored_headings(self, engine):
        """Test headings are bold when colors are on."""
        set_color_mode(True)
        page = get_command_help(engine.root, engine)
        assert page.startswith("\x1b[1mNAME\x1b[0m")


def test_global_parameters():
    """Test hidden and deprecated parameters are left out."""
    spec = ConfigSpec(
        ConfigSpecEntry("color", runtime=True, desc="Colors."),
        ConfigSpecEntry("path", runtime="=<path>", desc="Path."),
        ConfigSpecEntry("old", runtime="=<x>", deprecated="Gone."),
        ConfigSpecEntry("secret", runtime="", hidden=True),
        ConfigSpecEntry("file_only", file="<x>"),
    )
    assert get_global_parameters(spec) == [("--[no-]color", "Colors."), ("--path=<path>", "Path.")]
