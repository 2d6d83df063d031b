"""
Fluent svn command builder.

A Command accumulates switches and options, renders them into an argument
vector on prepare(), and hands execution to its ProcessHandler. Rendering is
deterministic: switches follow the Switch table order and options follow
their ordinals, whatever order the calls were made in.
"""

import enum
import logging
import shlex
import uuid
from typing import TYPE_CHECKING, Any, Optional

from svnkit.config import Config
from svnkit.errors import EmptyCommand, InvalidArgument
from svnkit.opts import (
    FLAGS,
    OptionSet,
    OptKind,
    RevisionOption,
    ShellOption,
    Switch,
    TargetOption,
    TargetsFileOption,
    Validator,
)
from svnkit.parsers import ParserKind, make_parser
from svnkit.process import ProcessHandler
from svnkit.registry import ProcessRegistry

if TYPE_CHECKING:
    from pathlib import Path

    from svnkit.instance import SvnInstance

logger = logging.getLogger(__name__)

GLOBAL_SWITCHES = frozenset(
    {Switch.NON_INTERACTIVE, Switch.NO_AUTH_CACHE, Switch.TRUST_SERVER_CERT}
)

GLOBAL_OPTIONS = frozenset(
    {OptKind.USERNAME, OptKind.PASSWORD, OptKind.CONFIG_DIR, OptKind.TARGETS, OptKind.TARGET}
)

REDACTED = "******"


class Preserve(enum.Flag):
    """What clear() keeps."""

    NONE = 0
    CMD_SWITCHES = enum.auto()
    CMD_OPTS = enum.auto()
    INTERNAL = enum.auto()
    ALL = CMD_SWITCHES | CMD_OPTS | INTERNAL


class Command:
    """
    Base class for svn subcommands.

    Subclasses set ``subcommand``, the switches and option kinds they accept,
    whether a target is mandatory and which parser reads their --xml output.

    Args:
        instance: Working copy or repository the command runs against
        defaults: Populate auth/config options and switches from config
        registry: Registry for the process handler (defaults to the instance's)
        config: Configuration (defaults to the instance's)
    """

    subcommand = ""
    allowed_switches: frozenset[Switch] = GLOBAL_SWITCHES
    allowed_options: frozenset[OptKind] = GLOBAL_OPTIONS
    requires_target = False
    parser_kind = ParserKind.NONE

    def __init__(
        self,
        instance: "SvnInstance",
        defaults: bool = True,
        registry: Optional[ProcessRegistry] = None,
        config: Optional[Config] = None,
    ):
        self.command_id = uuid.uuid4().hex
        self.instance = instance
        self.config = config if config is not None else instance.config
        self.use_defaults = defaults
        self.opts = OptionSet()
        self.prepared = False
        self.parse_output_enabled = False
        self._argv: list[str] = []
        self._line = ""

        self._apply_default_options()
        self._apply_default_switches()

        self.handler = ProcessHandler(
            self,
            config=self.config,
            registry=registry if registry is not None else instance.registry,
        )
        # Parser execute() installed last; anything else came from the caller
        self._selected_parser = self.handler.parser

    # Defaults

    def _apply_default_options(self) -> None:
        if not self.use_defaults:
            return
        if self.config.username:
            self.opts.set(ShellOption(OptKind.USERNAME, self.config.username))
        if self.config.password:
            self.opts.set(ShellOption(OptKind.PASSWORD, self.config.password))
        if self.config.config_dir:
            self.opts.set(ShellOption(OptKind.CONFIG_DIR, self.config.config_dir))

    def _apply_default_switches(self) -> None:
        if not self.use_defaults:
            return
        if self.config.non_interactive:
            self.opts.enable(Switch.NON_INTERACTIVE)
        if self.config.no_auth_cache:
            self.opts.enable(Switch.NO_AUTH_CACHE)

    def _touch(self) -> "Command":
        self.prepared = False
        return self

    # Switches

    def switch(self, switch: Switch, on: bool = True) -> "Command":
        """
        Enable or disable a switch.

        Raises:
            InvalidArgument: If the subcommand does not accept the switch
        """
        if switch not in self.allowed_switches:
            raise InvalidArgument(switch.value, on, f"not supported by svn {self.subcommand}")
        if on:
            self.opts.enable(switch)
        else:
            self.opts.disable(switch)
        return self._touch()

    def toggle(self, switch: Switch) -> "Command":
        return self.switch(switch, not self.opts.has(switch))

    def verbose(self, on: bool = True) -> "Command":
        return self.switch(Switch.VERBOSE, on)

    def quiet(self, on: bool = True) -> "Command":
        return self.switch(Switch.QUIET, on)

    def recursive(self, on: bool = True) -> "Command":
        return self.switch(Switch.RECURSIVE, on)

    def incremental(self, on: bool = True) -> "Command":
        return self.switch(Switch.INCREMENTAL, on)

    # Options

    def _check_kind(self, kind: OptKind, argument: object) -> None:
        if kind not in self.allowed_options:
            raise InvalidArgument(
                FLAGS[kind] or kind.value, argument, f"not supported by svn {self.subcommand}"
            )

    def option(
        self, kind: OptKind, argument: object, validate: Optional[Validator] = None
    ) -> "Command":
        """
        Set an option of any kind, optionally with a custom validator.

        Raises:
            InvalidArgument: If the subcommand does not accept the option kind
                or the value fails validation
        """
        self._check_kind(kind, argument)
        self.opts.set(ShellOption(kind, argument, validate))
        return self._touch()

    def revision(self, revision: object, end: object = None) -> "Command":
        """Operative revision, or the range revision:end."""
        self._check_kind(OptKind.REVISION, revision)
        self.opts.set(RevisionOption(revision, end))
        return self._touch()

    def depth(self, depth: str) -> "Command":
        return self.option(OptKind.DEPTH, depth)

    def limit(self, limit: int) -> "Command":
        return self.option(OptKind.LIMIT, limit)

    def accept(self, policy: str) -> "Command":
        return self.option(OptKind.ACCEPT, policy)

    def changelist(self, name: str) -> "Command":
        return self.option(OptKind.CHANGELIST, name)

    def username(self, username: str) -> "Command":
        return self.option(OptKind.USERNAME, username)

    def password(self, password: str) -> "Command":
        return self.option(OptKind.PASSWORD, password)

    def config_dir(self, path: "str | Path") -> "Command":
        return self.option(OptKind.CONFIG_DIR, path)

    def targets_file(self, path: "str | Path") -> "Command":
        """Read targets from an existing file (--targets)."""
        self.opts.set(TargetsFileOption(path))
        return self._touch()

    def target(self, path: "str | Path", peg: object = None, aggregate: bool = False) -> "Command":
        """
        Add a target path, optionally pinned to a peg revision.

        Args:
            path: Path relative to the instance (or a URL)
            peg: Peg revision (integer or keyword)
            aggregate: Write the target to a shared --targets file instead of
                adding a discrete option; worthwhile beyond three or four targets
        """
        prefix = self.instance.prepend_path
        if aggregate:
            self.opts.aggregate().add(path, peg, prefix)
        else:
            self.opts.add_target(TargetOption(path, peg, prefix))
        return self._touch()

    def parse_output(self, on: bool = True) -> "Command":
        """Return parsed records from execute() instead of raw bytes."""
        self.parse_output_enabled = on
        return self._touch()

    @property
    def parsing(self) -> bool:
        return self.parse_output_enabled and self.parser_kind is not ParserKind.NONE

    # Rendering

    def prepare(self, cache: bool = True) -> list[str]:
        """
        Build the argument vector.

        Args:
            cache: Keep the result (and its shell string) until the next mutation

        Returns:
            [binary, subcommand, switches..., option tokens...]
        """
        if self.prepared and cache:
            return list(self._argv)

        extra = [Switch.XML] if self.parsing else []
        switches = self.opts.render_switches(extra)
        rendered = [option.render() for option in self.opts.ordered()]

        argv = [self.config.binary, self.subcommand, *switches]
        for text in rendered:
            argv.extend(shlex.split(text))
        line = " ".join([shlex.quote(self.config.binary), self.subcommand, *switches, *rendered])

        if cache:
            self._argv = argv
            self._line = line
            self.prepared = True
        return list(argv)

    @property
    def command_line(self) -> str:
        """Shell-escaped command line."""
        if not self.prepared:
            self.prepare()
        return self._line

    def redacted_argv(self) -> list[str]:
        """Argument vector with the password masked, for logs and errors."""
        argv = self.prepare()
        for i, token in enumerate(argv[:-1]):
            if token == "--password":
                argv[i + 1] = REDACTED
        return argv

    @property
    def redacted_line(self) -> str:
        return " ".join(shlex.quote(token) for token in self.redacted_argv())

    @property
    def working_path(self) -> "Optional[Path]":
        return self.instance.working_path

    # State

    def clear(self, preserve: Preserve = Preserve.NONE) -> "Command":
        """
        Reset the command for reuse.

        Options, switches and internal flags are reset unless named in
        preserve; defaults are re-applied for whatever was reset. The prepared
        state is always dropped.
        """
        if not preserve & Preserve.CMD_OPTS:
            self.opts.clear_options()
            self._apply_default_options()
        if not preserve & Preserve.CMD_SWITCHES:
            self.opts.clear_switches()
            self._apply_default_switches()
        if not preserve & Preserve.INTERNAL:
            self.parse_output_enabled = False
        self.prepared = False
        self._argv = []
        self._line = ""
        return self

    def execute(self) -> Any:
        """
        Run the command through its process handler.

        With parse_output on, the subcommand's parser replaces whatever the
        handler holds. Otherwise a parser attached directly to the handler is
        kept; only one installed by an earlier parsed run is dropped.

        Returns:
            Raw stdout bytes, or an iterator of records when parsing

        Raises:
            EmptyCommand: If a target is required and none was given
            SubprocessFailure: If svn exits non-zero
        """
        if self.requires_target and not self.opts.has_targets():
            raise EmptyCommand(self.subcommand)

        if self.parsing:
            self.handler.attach_parser(make_parser(self.parser_kind))
            self._selected_parser = self.handler.parser
        elif self.handler.parser is self._selected_parser:
            self.handler.attach_parser(None)
            self._selected_parser = self.handler.parser
        try:
            return self.handler.execute()
        finally:
            self.prepared = False

    def close(self) -> None:
        """Release the handler's process, registry entry and temp files."""
        self.handler.close()
        self.handler.detach()
        self.opts.close()

    def __enter__(self) -> "Command":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        handler = getattr(self, "handler", None)
        if handler is not None:
            handler.close()
            handler.detach()
        opts = getattr(self, "opts", None)
        if opts is not None:
            opts.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.redacted_line!r})"


class InfoCommand(Command):
    """svn info"""

    subcommand = "info"
    allowed_switches = GLOBAL_SWITCHES | {Switch.RECURSIVE, Switch.INCREMENTAL, Switch.XML}
    allowed_options = GLOBAL_OPTIONS | {OptKind.REVISION, OptKind.DEPTH, OptKind.CHANGELIST}
    parser_kind = ParserKind.INFO


class LogCommand(Command):
    """svn log"""

    subcommand = "log"
    allowed_switches = GLOBAL_SWITCHES | {
        Switch.VERBOSE,
        Switch.QUIET,
        Switch.INCREMENTAL,
        Switch.XML,
        Switch.STOP_ON_COPY,
        Switch.USE_MERGE_HISTORY,
    }
    allowed_options = GLOBAL_OPTIONS | {OptKind.REVISION, OptKind.DEPTH, OptKind.LIMIT}
    parser_kind = ParserKind.LOG

    def stop_on_copy(self, on: bool = True) -> "LogCommand":
        self.switch(Switch.STOP_ON_COPY, on)
        return self


class ListCommand(Command):
    """svn list"""

    subcommand = "list"
    allowed_switches = GLOBAL_SWITCHES | {
        Switch.VERBOSE,
        Switch.RECURSIVE,
        Switch.INCREMENTAL,
        Switch.XML,
    }
    allowed_options = GLOBAL_OPTIONS | {OptKind.REVISION, OptKind.DEPTH}
    parser_kind = ParserKind.LIST


class CatCommand(Command):
    """svn cat"""

    subcommand = "cat"
    allowed_switches = GLOBAL_SWITCHES | {Switch.IGNORE_EXTERNALS}
    allowed_options = GLOBAL_OPTIONS | {OptKind.REVISION}
    requires_target = True


class UpdateCommand(Command):
    """svn update"""

    subcommand = "update"
    allowed_switches = GLOBAL_SWITCHES | {Switch.QUIET, Switch.FORCE, Switch.IGNORE_EXTERNALS}
    allowed_options = GLOBAL_OPTIONS | {
        OptKind.REVISION,
        OptKind.DEPTH,
        OptKind.ACCEPT,
        OptKind.CHANGELIST,
    }
