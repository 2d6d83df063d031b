"""Fluent command construction and process execution for the svn CLI."""

from svnkit.command import (
    CatCommand,
    Command,
    InfoCommand,
    ListCommand,
    LogCommand,
    Preserve,
    UpdateCommand,
)
from svnkit.config import Config, get_config
from svnkit.errors import (
    DuplicateAttachment,
    EmptyCommand,
    InvalidArgument,
    OutputParseError,
    ProcessTimeout,
    SubprocessFailure,
    SvnKitError,
    VerificationFailure,
)
from svnkit.instance import Repository, SvnInstance, WorkingCopy
from svnkit.opts import OptKind, ShellOption, Switch
from svnkit.parsers import InfoEntry, ListEntry, LogEntry, LogPath, ParserKind
from svnkit.process import ProcessHandler, StreamMode
from svnkit.registry import Attachment, ProcessRegistry, get_registry

__all__ = [
    "Attachment",
    "CatCommand",
    "Command",
    "Config",
    "DuplicateAttachment",
    "EmptyCommand",
    "InfoCommand",
    "InfoEntry",
    "InvalidArgument",
    "ListCommand",
    "ListEntry",
    "LogCommand",
    "LogEntry",
    "LogPath",
    "OptKind",
    "OutputParseError",
    "ParserKind",
    "Preserve",
    "ProcessHandler",
    "ProcessRegistry",
    "ProcessTimeout",
    "Repository",
    "ShellOption",
    "StreamMode",
    "SubprocessFailure",
    "SvnInstance",
    "SvnKitError",
    "Switch",
    "UpdateCommand",
    "VerificationFailure",
    "WorkingCopy",
    "get_config",
    "get_registry",
]
