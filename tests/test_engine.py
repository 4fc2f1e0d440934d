"""Tests for the engine: registration, dispatch, aliases and startup."""

from pathlib import Path

import pytest

from pycommander.commands.models import NodeKind
from pycommander.commands.providers import CommandNamespace
from pycommander.engine import Engine, get_global_config_path, get_project_config_path
from pycommander.models import (
    CommandDisabled,
    CommandNotFound,
    ExitCode,
    ParameterError,
    RegistrationError,
    UsageError,
)


class Recorder:
    """Collects handler calls."""

    def __init__(self):
        self.calls = []

    def __call__(self, args, assoc_args):
        self.calls.append((args, assoc_args))


class Cache:
    """Manage the cache."""

    def __init__(self):
        self.calls = []

    def flush(self, args, assoc_args):
        """Flush the cache.

        [--group=<group>]
        : Group to flush.
        ---
        options:
          - posts
          - users
        ---

        [--hard]
        : Flush harder.
        """
        CALLS.append(("flush", args, assoc_args))

    def status(self, args, assoc_args):
        """Show the cache status."""
        CALLS.append(("status", args, assoc_args))


class Post(CommandNamespace):
    """Manage posts."""


CALLS = []


@pytest.fixture(autouse=True)
def _reset_calls():
    CALLS.clear()


@pytest.fixture
def recorder():
    return Recorder()


def _project_config(content):
    Path("pycommander.toml").write_text(content, encoding="utf-8")


class TestConfigPaths:
    """Tests for config file lookup."""

    def test_global_from_environment(self, monkeypatch, tmp_path):
        """Test the environment variable wins."""
        monkeypatch.setenv("PYCOMMANDER_CONFIG_PATH", str(tmp_path / "custom.toml"))
        assert get_global_config_path() == tmp_path / "custom.toml"

    def test_global_missing(self):
        """Test no global file."""
        assert get_global_config_path() is None

    def test_project_upward(self, tmp_path):
        """Test the project file is searched in parent directories."""
        (tmp_path / "project" / "sub" / "dir").mkdir(parents=True)
        (tmp_path / "project" / "pycommander.toml").write_text("", encoding="utf-8")
        found = get_project_config_path(tmp_path / "project" / "sub" / "dir")
        assert found == (tmp_path / "project" / "pycommander.toml").resolve()

    def test_project_local_first(self, tmp_path):
        """Test the local variant is preferred."""
        (tmp_path / "project" / "pycommander.toml").write_text("", encoding="utf-8")
        (tmp_path / "project" / "pycommander.local.toml").write_text("", encoding="utf-8")
        assert get_project_config_path().name == "pycommander.local.toml"


class TestRegistration:
    """Tests for add_command."""

    def test_path_creates_parents(self, engine, recorder):
        """Test missing containers are created."""
        engine.add_command("site option get", recorder)
        site = engine.root.children["site"]
        assert site.kind == NodeKind.COMPOSITE
        assert site.children["option"].children["get"].handler is recorder

    def test_leaf_under_leaf(self, engine, recorder):
        """Test leaves can't have subcommands."""
        engine.add_command("version", recorder)
        with pytest.raises(RegistrationError, match="'version' can't have subcommands."):
            engine.add_command("version check", recorder)

    def test_invalid_provider(self, engine):
        """Test values that can't provide a command."""
        with pytest.raises(RegistrationError, match="cannot be registered as 'nothing'"):
            engine.add_command("nothing", 42)

    def test_overrides(self, engine, recorder):
        """Test descriptions and synopsis given at registration."""
        node = engine.add_command("greet", recorder, shortdesc="Greet.", longdesc="Says hi.", synopsis="<name>")
        assert (node.shortdesc, node.longdesc, node.synopsis) == ("Greet.", "Says hi.", "<name>")
        assert node.docblock is None

    def test_structured_synopsis(self, engine, recorder):
        """Test structured argument definitions."""
        node = engine.add_command(
            "export",
            recorder,
            synopsis=[
                {"type": "flag", "name": "verbose", "optional": True, "description": "More output."},
                {"type": "positional", "name": "format", "optional": True, "default": "csv", "options": ["csv", "json"]},
            ],
        )
        assert node.synopsis == "[<format>] [--verbose]"
        assert node.longdesc.startswith("## OPTIONS\n\n[<format>]\n---\ndefault: csv\n")
        assert "[--verbose]\n: More output." in node.longdesc
        engine.main(["export"])
        assert recorder.calls == [(["csv"], {})]

    def test_invalid_synopsis_part(self, engine, recorder, log_sink):
        """Test malformed synopsis tokens are reported."""
        engine.add_command("odd", recorder, synopsis="<ok> <not ok>")
        log_sink.warning.assert_any_call("The 'odd' command has an invalid synopsis part: <not")
        log_sink.warning.assert_any_call("The 'odd' command has an invalid synopsis part: ok>")

    def test_namespace_replaced(self, engine):
        """Test a real command replaces a namespace and keeps its children."""
        engine.add_command("post", Post)
        engine.add_command("post list", lambda args, assoc_args: None)
        node = engine.add_command("post", Cache)
        assert node.kind == NodeKind.COMPOSITE
        assert sorted(node.children) == ["flush", "list", "status"]
        assert node.children["list"].parent is node

    def test_namespace_skipped(self, engine):
        """Test a namespace never replaces an existing command."""
        cache = engine.add_command("cache", Cache)
        assert engine.add_command("cache", Post) is None
        assert engine.root.children["cache"] is cache

    def test_after_add_hook(self, engine, recorder):
        """Test the after_add_command hook."""
        events = []
        engine.add_hook("after_add_command:greet", lambda: events.append("added"))
        engine.add_command("greet", recorder)
        assert events == ["added"]

    def test_late_hook(self, engine):
        """Test a hook added after it fired runs right away."""
        events = []
        engine.do_hook("before_run")
        engine.add_hook("before_run", lambda: events.append("late"))
        assert events == ["late"]

    def test_late_hook_arguments(self, engine):
        """Test a late callback gets the arguments of the last firing."""
        events = []
        engine.do_hook("before_run_command", ["cache", "flush"], {"hard": True})
        engine.add_hook("before_run_command", lambda args, assoc_args: events.append((args, assoc_args)))
        assert events == [(["cache", "flush"], {"hard": True})]


class TestDispatch:
    """Tests for command lookup and invocation."""

    def test_run(self, engine):
        """Test a nested command runs with its arguments."""
        engine.add_command("cache", Cache)
        assert engine.main(["cache", "flush", "--group=posts", "--hard"]) == ExitCode.SUCCESS
        assert CALLS == [("flush", [], {"group": "posts", "hard": True})]

    def test_not_found(self, engine):
        """Test unknown top-level commands suggest a close one."""
        engine.add_command("cache", Cache)
        with pytest.raises(CommandNotFound) as excinfo:
            engine.find_command_to_run(["cahce"])
        assert str(excinfo.value) == (
            "'cahce' is not a registered tool command. See 'tool help' for available commands.\nDid you mean 'cache'?"
        )

    def test_subcommand_not_found(self, engine):
        """Test unknown subcommands."""
        engine.add_command("cache", Cache)
        with pytest.raises(CommandNotFound) as excinfo:
            engine.find_command_to_run(["cache", "flsh"])
        assert str(excinfo.value) == (
            "'flsh' is not a registered subcommand of 'cache'. "
            "See 'tool help cache' for available subcommands.\nDid you mean 'flush'?"
        )

    def test_remaining_args(self, engine):
        """Test the arguments after the command path are returned."""
        engine.add_command("cache", Cache)
        node, rest, path = engine.find_command_to_run(["cache", "flush", "extra"])
        assert node.name == "flush"
        assert rest == ["extra"]
        assert path == ["cache", "flush"]

    def test_disabled(self, engine):
        """Test commands disabled from the config file."""
        _project_config('disabled_commands = ["cache flush"]\n')
        engine.add_command("cache", Cache)
        engine.init_config(["cache", "flush"])
        with pytest.raises(CommandDisabled, match="The 'cache flush' command has been disabled from the config file."):
            engine.run_command(engine.arguments)

    def test_container_usage(self, engine, output):
        """Test invoking a container prints its usage."""
        engine.add_command("cache", Cache)
        assert engine.main(["cache"]) == ExitCode.SUCCESS
        assert output == [
            "usage: tool cache flush [--group=<group>] [--hard]\n"
            "   or: tool cache status\n"
            "\n"
            "See 'tool help cache <command>' for more information on a specific command."
        ]

    def test_empty_namespace(self, engine, output):
        """Test a namespace without commands."""
        engine.add_command("post", Post)
        engine.main(["post"])
        assert output == ["The namespace post does not contain any usable commands in the current context."]

    def test_extra_config(self, engine):
        """Test command-scoped config tables lie beneath the command line."""
        _project_config('[cache]\ngroup = "users"\n\n["cache flush"]\nhard = true\n')
        engine.add_command("cache", Cache)
        engine.main(["cache", "flush"])
        engine.main(["cache", "flush", "--hard=no", "--group=posts"])
        assert CALLS == [
            ("flush", [], {"hard": True}),
            ("flush", [], {"hard": "no", "group": "posts"}),
        ]

    def test_config_flag_without_value(self, engine, log_sink):
        """Test a command-scoped config flag given for a value parameter is dropped."""
        _project_config('["cache flush"]\ngroup = true\n')
        engine.add_command("cache", Cache)
        assert engine.main(["cache", "flush"]) == ExitCode.SUCCESS
        log_sink.warning.assert_called_once_with("--group parameter needs a value")
        assert CALLS == [("flush", [], {})]

    def test_main_twice(self, engine, monkeypatch, tmp_path):
        """Test running main again does not merge the config files twice."""
        global_file = tmp_path / "global.toml"
        global_file.write_text('require = "global.py"\n', encoding="utf-8")
        monkeypatch.setenv("PYCOMMANDER_CONFIG_PATH", str(global_file))
        engine.add_command("cache", Cache)
        engine.main(["cache", "status"])
        engine.main(["cache", "status"])
        assert engine.config.get_list("require") == [str(tmp_path / "global.py")]

    def test_invoke_hooks(self, engine):
        """Test before_invoke and after_invoke callbacks."""
        events = []
        engine.add_command(
            "greet",
            lambda args, assoc_args: events.append("run"),
            before_invoke=lambda: events.append("before"),
            after_invoke=lambda: events.append("after"),
        )
        engine.main(["greet"])
        assert events == ["before", "run", "after"]


class TestEarlyInvoke:
    """Tests for early invocation."""

    def test_runs_at_stage(self, engine, recorder):
        """Test the requested command runs when its stage is reached."""
        engine.add_command("setup", recorder, when="before_load")
        engine.init_config(["setup", "--fast"])
        assert engine.do_early_invoke("after_load") is False
        assert engine.do_early_invoke("before_load") is True
        assert recorder.calls == [([], {"fast": True})]

    def test_other_command(self, engine, recorder):
        """Test nothing runs when another command was requested."""
        engine.add_command("setup", recorder, when="before_load")
        engine.add_command("other", recorder)
        engine.init_config(["other"])
        assert engine.do_early_invoke("before_load") is False
        assert recorder.calls == []

    def test_when_tag(self, engine):
        """Test the @when tag registers the command."""

        def install(args, assoc_args):
            """Install things.

            @when before_load
            """

        node = engine.add_command("install", install)
        assert engine.early_invoke["before_load"] == [node]


class TestMain:
    """Tests for main and its exit codes."""

    def test_empty_runs_help(self, engine, output):
        """Test no arguments shows the root help."""
        assert engine.main([]) == ExitCode.SUCCESS
        assert output[0].startswith("NAME\n\n  tool")

    def test_usage_error(self, engine, output, log_sink):
        """Test missing positionals print the usage and exit with 2."""
        engine.add_command("greet", lambda args, assoc_args: None, synopsis="<name>")
        assert engine.main(["greet"]) == ExitCode.USAGE_ERROR
        assert output == ["usage: tool greet <name>"]
        log_sink.error.assert_not_called()

    def test_command_error(self, engine, log_sink):
        """Test unknown commands are logged as errors."""
        assert engine.main(["nope"]) == ExitCode.COMMAND_ERROR
        log_sink.error.assert_called_once()
        assert "'nope' is not a registered tool command." in log_sink.error.call_args.args[0]

    def test_parameter_errors(self, engine, log_sink):
        """Test parameter errors are aggregated."""
        engine.add_command("cache", Cache)
        assert engine.main(["cache", "flush", "--group=pages", "--hellox"]) == ExitCode.COMMAND_ERROR
        message = log_sink.error.call_args.args[0]
        assert message.startswith("Parameter errors:\n Invalid value specified for 'group' (Group to flush.)")
        assert "unknown --hellox parameter" in message

    def test_config_error(self, engine):
        """Test broken config files exit with 3."""
        _project_config("broken = = toml\n")
        assert engine.main(["help"]) == ExitCode.CONFIG_ERROR

    def test_inherit_cycle(self, engine, log_sink):
        """Test config files inheriting each other exit with 3."""
        Path("a.toml").write_text('_ = { inherit = "b.toml" }\n', encoding="utf-8")
        Path("b.toml").write_text('_ = { inherit = "a.toml" }\n', encoding="utf-8")
        _project_config('_ = { inherit = "a.toml" }\n')
        engine.add_command("cache", Cache)
        assert engine.main(["cache", "flush"]) == ExitCode.CONFIG_ERROR
        assert "inherits itself" in log_sink.error.call_args[0][0]
        assert CALLS == []

    def test_raises_outside_main(self, engine):
        """Test errors propagate from start."""
        engine.add_command("greet", lambda args, assoc_args: None, synopsis="<name>")
        with pytest.raises(UsageError):
            engine.start(["greet"])
        with pytest.raises(ParameterError):
            engine.start(["greet", "a", "b"])

    def test_global_parameters(self, engine, recorder, log_sink):
        """Test runtime parameters are consumed by the engine."""
        engine.add_command("greet", recorder)
        engine.main(["--quiet", "--no-color", "greet", "--loud"])
        assert engine.config.get_bool("quiet") is True
        assert engine.config.get("color") is False
        assert log_sink.quiet is True
        assert recorder.calls == [([], {"loud": True})]

    def test_help_for_command(self, engine, output):
        """Test the help command."""
        engine.add_command("cache", Cache)
        engine.main(["help", "cache", "flush"])
        assert output[0].startswith("NAME\n\n  tool cache flush\n\nDESCRIPTION\n\n  Flush the cache.")


class TestAliases:
    """Tests for aliases."""

    CONFIG = """\
url = "default.org"
"@both" = ["@prod", "@dev"]

["@prod"]
url = "prod.org"
user = "admin"

["@dev"]
url = "dev.org"
"""

    @pytest.fixture
    def seen(self, engine):
        seen = []

        def report(args, assoc_args):
            seen.append((engine.config.get("url"), engine.config.get("user"), assoc_args))

        engine.add_command("report", report)
        return seen

    def test_without_alias(self, engine, seen):
        """Test the plain config."""
        _project_config(self.CONFIG)
        engine.main(["report"])
        assert seen == [("default.org", None, {})]

    def test_alias(self, engine, seen):
        """Test the alias bundle overrides the config."""
        _project_config(self.CONFIG)
        assert engine.main(["@prod", "report"]) == ExitCode.SUCCESS
        assert seen == [("prod.org", "admin", {})]
        assert engine.config.get("user") is None

    def test_explicit_value_kept(self, engine, seen):
        """Test explicit runtime values become command arguments."""
        _project_config(self.CONFIG)
        engine.main(["@prod", "--user=root", "report"])
        assert seen == [("prod.org", "admin", {"user": "root"})]

    def test_group(self, engine, seen, output):
        """Test a group runs once per member."""
        _project_config(self.CONFIG)
        engine.main(["@both", "report"])
        assert output == ["@prod", "@dev"]
        assert [url for url, _, _ in seen] == ["prod.org", "dev.org"]

    def test_all(self, engine, seen, output):
        """Test @all runs for every bundle."""
        _project_config(self.CONFIG)
        engine.main(["@all", "report"])
        assert output == ["@prod", "@dev"]
        assert len(seen) == 2

    def test_all_without_aliases(self, engine, seen, log_sink):
        """Test @all needs aliases."""
        assert engine.main(["@all", "report"]) == ExitCode.CONFIG_ERROR
        log_sink.error.assert_called_once_with("Cannot use '@all' when no aliases are registered.")

    def test_unknown(self, engine, seen, log_sink):
        """Test unknown aliases suggest a close one."""
        _project_config(self.CONFIG)
        assert engine.main(["@prd", "report"]) == ExitCode.CONFIG_ERROR
        log_sink.error.assert_called_once_with("Alias '@prd' not found.\nDid you mean '@prod'?")

    def test_invalid_group(self, engine, log_sink):
        """Test groups referencing undefined aliases."""
        _project_config('"@both" = ["@prod", "@nope"]\n\n["@prod"]\nurl = "prod.org"\n')
        assert engine.main(["help"]) == ExitCode.CONFIG_ERROR
        log_sink.error.assert_called_once_with("Group '@both' contains one or more invalid aliases: @nope")

    def test_default_sink(self):
        """Test an engine can be built with the default sink."""
        assert Engine("other").root.name == "other"


def test_require_accumulates(engine, monkeypatch, tmp_path):
    """Test require values from every source are appended in order."""
    global_file = tmp_path / "global.toml"
    global_file.write_text('require = "global.py"\n', encoding="utf-8")
    monkeypatch.setenv("PYCOMMANDER_CONFIG_PATH", str(global_file))
    _project_config('require = ["project.py"]\n')
    engine.init_config(["--require=cli.py", "help"])
    assert engine.config.get_list("require") == [
        str(tmp_path / "global.py"),
        str(Path.cwd() / "project.py"),
        "cli.py",
    ]
