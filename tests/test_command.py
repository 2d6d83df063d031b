"""Tests for the fluent Command builder."""

import gc
import itertools
from pathlib import Path
from unittest.mock import patch

import pytest

from svnkit.command import CatCommand, InfoCommand, LogCommand, Preserve
from svnkit.config import Config
from svnkit.errors import EmptyCommand, InvalidArgument
from svnkit.instance import Repository
from svnkit.opts import Switch


class TestPrepare:
    """Tests for argument vector rendering."""

    def test_bare_command(self, wc):
        """Test a command with nothing set renders binary and subcommand."""
        assert wc.info().prepare() == ["svn", "info"]

    def test_catalog_types(self, wc):
        """Test instance factories return the matching command classes."""
        assert isinstance(wc.info(), InfoCommand)
        assert isinstance(wc.log(), LogCommand)
        assert isinstance(wc.cat(), CatCommand)
        assert wc.ls().subcommand == "list"

    @pytest.mark.parametrize(
        "order",
        list(
            itertools.permutations(
                [Switch.QUIET, Switch.VERBOSE, Switch.STOP_ON_COPY, Switch.INCREMENTAL]
            )
        ),
    )
    def test_switches_render_in_table_order(self, wc, order):
        """Test switch order is independent of the order they were enabled."""
        cmd = wc.log()
        for switch in order:
            cmd.switch(switch)

        expected = [switch.value for switch in Switch if switch in order]
        assert cmd.prepare()[2:] == expected

    def test_quiet_then_verbose(self, wc):
        """Test enabling QUIET then VERBOSE renders -v -q."""
        assert wc.log().quiet().verbose().prepare() == ["svn", "log", "-v", "-q"]

    def test_options_render_by_ordinal(self, wc):
        """Test option order is independent of call order."""
        cmd = wc.log().target("a.txt").limit(3).revision(5)

        assert cmd.prepare() == ["svn", "log", "-r", "5", "-l", "3", "a.txt"]

    def test_switches_before_options(self, wc):
        """Test switches precede options."""
        cmd = wc.log().limit(1).verbose()

        assert cmd.prepare() == ["svn", "log", "-v", "-l", "1"]

    def test_revision_range(self, wc):
        """Test revision(5, "HEAD") renders -r 5:HEAD."""
        cmd = wc.log().revision(5, "HEAD")

        assert cmd.prepare() == ["svn", "log", "-r", "5:HEAD"]
        assert "-r 5:HEAD" in cmd.command_line

    def test_repeated_targets_keep_call_order(self, wc):
        """Test three identical targets render three times."""
        cmd = wc.cat().target("a.txt").target("a.txt").target("a.txt")

        assert cmd.prepare() == ["svn", "cat", "a.txt", "a.txt", "a.txt"]

    def test_distinct_targets_keep_call_order(self, wc):
        """Test targets are not sorted by name."""
        cmd = wc.cat().target("z").target("a").target("m")

        assert cmd.prepare()[2:] == ["z", "a", "m"]

    def test_target_with_spaces_is_one_argument(self, wc):
        """Test a target with spaces stays a single argv entry."""
        cmd = wc.cat().target("my file.txt")

        assert cmd.prepare() == ["svn", "cat", "my file.txt"]
        assert cmd.command_line == "svn cat 'my file.txt'"

    def test_dash_target_is_not_an_option(self, wc):
        """Test a target starting with '-' cannot reach svn as a flag."""
        argv = wc.cat().target("--force-log").target("-r").prepare()

        assert argv == ["svn", "cat", "./--force-log", "./-r"]

    def test_peg_revision_target(self, wc):
        """Test target with peg renders path@peg."""
        assert wc.cat().target("a.txt", peg=3).prepare()[-1] == "a.txt@3"

    def test_binary_from_config(self, make_wc):
        """Test the binary name comes from config."""
        wc = make_wc(binary="/opt/svn/bin/svn")
        assert wc.info().prepare()[0] == "/opt/svn/bin/svn"

    def test_parse_output_adds_xml(self, wc):
        """Test parsing output switches on --xml for parsed subcommands."""
        assert wc.info().parse_output().prepare() == ["svn", "info", "--xml"]

    def test_parse_output_ignored_without_parser(self, wc):
        """Test cat has no parser so no --xml is added."""
        assert wc.cat().target("a").parse_output().prepare() == ["svn", "cat", "a"]

    def test_custom_option_validator(self, wc):
        """Test option() accepts an explicit validator."""
        from svnkit.opts import OptKind

        cmd = wc.update()
        with pytest.raises(InvalidArgument):
            cmd.option(OptKind.CHANGELIST, "wip", validate=lambda v: v.startswith("cl-"))

        cmd.option(OptKind.CHANGELIST, "cl-1", validate=lambda v: v.startswith("cl-"))
        assert cmd.prepare() == ["svn", "update", "--changelist", "cl-1"]


class TestPreparedState:
    """Tests for the prepared cache."""

    def test_prepare_sets_prepared(self, wc):
        """Test prepare caches and marks the command prepared."""
        cmd = wc.info()
        assert not cmd.prepared

        cmd.prepare()

        assert cmd.prepared

    def test_prepare_without_cache(self, wc):
        """Test prepare(cache=False) leaves the command unprepared."""
        cmd = wc.info()
        cmd.prepare(cache=False)

        assert not cmd.prepared

    def test_mutation_invalidates_cache(self, wc):
        """Test any mutation after prepare drops the cached vector."""
        cmd = wc.log()
        cmd.prepare()

        cmd.limit(2)

        assert not cmd.prepared
        assert cmd.prepare() == ["svn", "log", "-l", "2"]

    def test_switch_mutation_invalidates_cache(self, wc):
        """Test toggling a switch after prepare drops the cached vector."""
        cmd = wc.log()
        cmd.prepare()

        cmd.toggle(Switch.VERBOSE)

        assert cmd.prepare() == ["svn", "log", "-v"]

    def test_prepare_returns_copy(self, wc):
        """Test callers cannot mutate the cached vector."""
        cmd = wc.info()
        cmd.prepare().append("--bogus")

        assert cmd.prepare() == ["svn", "info"]


class TestValidationErrors:
    """Tests for option errors on commands."""

    def test_invalid_option_leaves_state_intact(self, wc):
        """Test a rejected value does not disturb existing options."""
        cmd = wc.log().limit(3)

        with pytest.raises(InvalidArgument):
            cmd.limit(0)

        assert cmd.prepare() == ["svn", "log", "-l", "3"]

    def test_unsupported_switch(self, wc):
        """Test a switch outside the subcommand's set is rejected."""
        with pytest.raises(InvalidArgument, match="not supported by svn cat"):
            wc.cat().verbose()

    def test_invalid_accept(self, wc):
        """Test accept validates its policy."""
        with pytest.raises(InvalidArgument):
            wc.update().accept("mine")

    @pytest.mark.parametrize(
        "build",
        [
            lambda wc: wc.cat().accept("postpone"),
            lambda wc: wc.info().limit(3),
            lambda wc: wc.ls().changelist("wip"),
            lambda wc: wc.log().accept("postpone"),
        ],
    )
    def test_unsupported_option(self, wc, build):
        """Test an option kind outside the subcommand's set is rejected."""
        with pytest.raises(InvalidArgument, match="not supported by svn"):
            build(wc)

    def test_unsupported_option_through_option(self, wc):
        """Test option() applies the same per-subcommand check."""
        from svnkit.opts import OptKind

        cmd = wc.cat().revision(3)

        with pytest.raises(InvalidArgument, match="-l"):
            cmd.option(OptKind.LIMIT, 5)

        assert cmd.prepare() == ["svn", "cat", "-r", "3"]

    def test_shared_options_everywhere(self, wc):
        """Test auth options are accepted by every subcommand."""
        for cmd in [wc.info(), wc.log(), wc.ls(), wc.cat(), wc.update()]:
            cmd.username("alice")
            assert cmd.prepare()[-2:] == ["--username", "alice"]


class TestClear:
    """Tests for clear() and preserve flags."""

    def test_clear_matches_fresh_command(self, wc):
        """Test clear() with no flags renders like a new command."""
        fresh = wc.log().prepare()
        cmd = wc.log().verbose().limit(2).target("x").parse_output()
        cmd.prepare()

        cmd.clear()

        assert cmd.prepare() == fresh
        assert not cmd.parse_output_enabled

    def test_clear_preserve_opts(self, wc):
        """Test Preserve.CMD_OPTS keeps options but resets switches."""
        cmd = wc.log().verbose().limit(2).target("x")

        cmd.clear(Preserve.CMD_OPTS)

        assert cmd.prepare() == ["svn", "log", "-l", "2", "x"]

    def test_clear_preserve_switches(self, wc):
        """Test Preserve.CMD_SWITCHES keeps switches but resets options."""
        cmd = wc.log().verbose().limit(2)

        cmd.clear(Preserve.CMD_SWITCHES)

        assert cmd.prepare() == ["svn", "log", "-v"]

    def test_clear_preserve_internal(self, wc):
        """Test Preserve.INTERNAL keeps the parse-output flag."""
        cmd = wc.info().parse_output()

        cmd.clear(Preserve.INTERNAL)

        assert cmd.parse_output_enabled

    def test_clear_always_unprepares(self, wc):
        """Test even Preserve.ALL drops the prepared state."""
        cmd = wc.log().verbose()
        cmd.prepare()

        cmd.clear(Preserve.ALL)

        assert not cmd.prepared
        assert cmd.prepare() == ["svn", "log", "-v"]

    def test_clear_returns_self(self, wc):
        """Test clear is chainable."""
        cmd = wc.log()
        assert cmd.clear() is cmd


class TestDefaults:
    """Tests for default options populated from config."""

    @pytest.fixture
    def configured_wc(self, make_wc, tmp_path):
        return make_wc(
            username="alice",
            password="s3cret",
            config_dir=tmp_path / "svnconf",
            non_interactive=True,
            no_auth_cache=True,
        )

    def test_defaults_applied(self, configured_wc, tmp_path):
        """Test username, password, config dir and switches come from config."""
        argv = configured_wc.info().prepare()

        assert argv == [
            "svn",
            "info",
            "--non-interactive",
            "--no-auth-cache",
            "--username",
            "alice",
            "--password",
            "s3cret",
            "--config-dir",
            str(tmp_path / "svnconf"),
        ]

    def test_defaults_disabled(self, configured_wc):
        """Test defaults=False builds a bare command."""
        assert configured_wc.info(defaults=False).prepare() == ["svn", "info"]

    def test_instance_defaults_switch(self, configured_wc):
        """Test SvnInstance.defaults(False) applies to new commands."""
        configured_wc.defaults(False)
        assert configured_wc.log().prepare() == ["svn", "log"]

    def test_defaults_reapplied_after_clear(self, configured_wc):
        """Test clear() restores defaults it reset."""
        cmd = configured_wc.info()
        fresh = cmd.prepare()
        cmd.username("bob")

        cmd.clear()

        assert cmd.prepare() == fresh

    def test_password_redacted(self, configured_wc):
        """Test the password never appears in the redacted forms."""
        cmd = configured_wc.info()

        assert "s3cret" not in cmd.redacted_argv()
        assert "s3cret" not in cmd.redacted_line
        assert "s3cret" not in repr(cmd)
        assert "s3cret" in cmd.prepare()


class TestTargets:
    """Tests for target handling."""

    def test_aggregate_targets(self, wc):
        """Test aggregated targets share one --targets file."""
        cmd = wc.cat()
        for name in ["a.txt", "b.txt", "c.txt", "d.txt", "e.txt"]:
            cmd.target(name, aggregate=True)

        argv = cmd.prepare()

        assert argv[2] == "--targets"
        assert len(argv) == 4
        assert Path(argv[3]).read_text().splitlines() == [
            "a.txt",
            "b.txt",
            "c.txt",
            "d.txt",
            "e.txt",
        ]
        cmd.close()
        assert not Path(argv[3]).exists()

    def test_aggregate_and_discrete_targets(self, wc):
        """Test discrete targets render after the --targets file."""
        cmd = wc.cat().target("x").target("y", aggregate=True)
        argv = cmd.prepare()

        assert argv[2] == "--targets"
        assert argv[-1] == "x"
        cmd.close()

    def test_targets_file(self, wc, tmp_path):
        """Test targets_file references a caller-owned file."""
        targets = tmp_path / "list.txt"
        targets.write_text("a\nb\n")

        assert wc.cat().targets_file(targets).prepare() == ["svn", "cat", "--targets", str(targets)]

    def test_repository_targets_use_file_url(self, tmp_path, registry):
        """Test repository targets are prefixed with the file:// URL."""
        repo_path = tmp_path / "repo"
        repo_path.mkdir()
        repo = Repository(
            repo_path, config=Config(non_interactive=False), verify=False, registry=registry
        )

        argv = repo.ls().target("trunk").prepare()

        assert argv[-1] == repo_path.resolve().as_uri() + "/trunk"


class TestExecute:
    """Tests for execute() delegation."""

    def test_empty_command(self, wc):
        """Test cat without targets fails before spawning anything."""
        with patch("svnkit.process.subprocess.Popen") as mock_popen:
            with pytest.raises(EmptyCommand, match="svn cat"):
                wc.cat().execute()

            mock_popen.assert_not_called()

    def test_execute_delegates_to_handler(self, wc):
        """Test execute returns the handler's result."""
        cmd = wc.cat().target("a.txt")

        with patch.object(cmd.handler, "execute", return_value=b"contents") as mock_execute:
            assert cmd.execute() == b"contents"

        mock_execute.assert_called_once_with()

    def test_execute_unprepares(self, wc):
        """Test the command is unprepared after execute, even on failure."""
        cmd = wc.info()
        cmd.prepare()

        with patch.object(cmd.handler, "execute", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                cmd.execute()

        assert not cmd.prepared

    def test_execute_attaches_parser(self, wc):
        """Test parse_output selects the subcommand's parser."""
        from svnkit.parsers import InfoParser, PassthroughParser

        cmd = wc.info()
        with patch.object(cmd.handler, "execute", return_value=iter([])):
            cmd.parse_output().execute()
            assert isinstance(cmd.handler.parser, InfoParser)

            cmd.parse_output(False).execute()
            assert isinstance(cmd.handler.parser, PassthroughParser)

    def test_execute_keeps_caller_parser(self, wc):
        """Test a parser attached to the handler survives a raw execute."""
        from svnkit.parsers import InfoParser, LogParser

        cmd = wc.info()
        custom = LogParser()
        cmd.handler.attach_parser(custom)

        with patch.object(cmd.handler, "execute", return_value=iter([])):
            cmd.execute()
            assert cmd.handler.parser is custom

            cmd.parse_output().execute()
            assert isinstance(cmd.handler.parser, InfoParser)


class TestLifecycle:
    """Tests for command disposal."""

    def test_command_attached_on_creation(self, wc, registry):
        """Test a new command is registered with its handler."""
        cmd = wc.info()

        assert registry.lookup(cmd) is cmd.handler

    def test_close_detaches(self, wc, registry):
        """Test close removes the registry entry."""
        cmd = wc.info()

        cmd.close()

        assert registry.lookup(cmd) is None

    def test_context_manager_closes(self, wc, registry):
        """Test leaving the with block closes the command."""
        with wc.info() as cmd:
            assert cmd in registry

        assert cmd not in registry

    def test_close_closes_handler(self, wc):
        """Test close releases the handler's process."""
        cmd = wc.info()

        with patch.object(cmd.handler, "close") as mock_close:
            cmd.close()

        mock_close.assert_called()

    def test_discarded_command_reaps_child(self, fake_svn, make_wc, registry):
        """Test dropping an un-executed command stops its running child."""
        wc = make_wc(binary=str(fake_svn(sleep=30)))
        cmd = wc.info()
        command_id = cmd.command_id
        cmd.handler.open()
        process = cmd.handler._process
        assert process.poll() is None

        del cmd
        gc.collect()

        assert process.poll() is not None
        assert command_id not in registry
