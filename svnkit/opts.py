"""
Switches and options for svn subcommands.

Switches are no-argument flags; their rendering order is the declaration order
of the Switch enum. Options carry an argument and a fixed ordinal that decides
where they appear in the rendered argument list. Every argument is escaped with
shlex.quote so the rendered string parses back into the same tokens.
"""

import enum
import logging
import os
import shlex
import tempfile
from pathlib import Path
from typing import Callable, Iterable, Optional

from svnkit.errors import InvalidArgument

logger = logging.getLogger(__name__)

Validator = Callable[[object], bool]


class Switch(enum.Enum):
    """No-argument switches, declared in rendering order."""

    VERBOSE = "-v"
    QUIET = "-q"
    RECURSIVE = "-R"
    INCREMENTAL = "--incremental"
    XML = "--xml"
    STOP_ON_COPY = "--stop-on-copy"
    USE_MERGE_HISTORY = "-g"
    IGNORE_EXTERNALS = "--ignore-externals"
    FORCE = "--force"
    STRICT = "--strict"
    NON_INTERACTIVE = "--non-interactive"
    NO_AUTH_CACHE = "--no-auth-cache"
    TRUST_SERVER_CERT = "--trust-server-cert"


class OptKind(enum.Enum):
    """Kinds of argument-taking options."""

    REVISION = "revision"
    DEPTH = "depth"
    LIMIT = "limit"
    ACCEPT = "accept"
    CHANGELIST = "changelist"
    USERNAME = "username"
    PASSWORD = "password"
    CONFIG_DIR = "config-dir"
    TARGETS = "targets"
    TARGET = "target"


ORDINALS: dict[OptKind, int] = {
    OptKind.REVISION: 10,
    OptKind.DEPTH: 20,
    OptKind.LIMIT: 30,
    OptKind.ACCEPT: 40,
    OptKind.CHANGELIST: 50,
    OptKind.USERNAME: 80,
    OptKind.PASSWORD: 81,
    OptKind.CONFIG_DIR: 90,
    OptKind.TARGETS: 100,
    OptKind.TARGET: 110,
}

FLAGS: dict[OptKind, str] = {
    OptKind.REVISION: "-r",
    OptKind.DEPTH: "--depth",
    OptKind.LIMIT: "-l",
    OptKind.ACCEPT: "--accept",
    OptKind.CHANGELIST: "--changelist",
    OptKind.USERNAME: "--username",
    OptKind.PASSWORD: "--password",
    OptKind.CONFIG_DIR: "--config-dir",
    OptKind.TARGETS: "--targets",
    OptKind.TARGET: "",
}

REVISION_KEYWORDS = frozenset({"HEAD", "BASE", "COMMITTED", "PREV"})
ACCEPT_POLICIES = frozenset(
    {
        "postpone",
        "base",
        "mine-conflict",
        "theirs-conflict",
        "mine-full",
        "theirs-full",
        "edit",
        "launch",
    }
)
DEPTHS = frozenset({"empty", "files", "immediates", "infinity"})


def validate_revision(value: object) -> bool:
    """Accept a non-negative integer or one of the revision keywords."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, str):
        return value.isdigit() or value in REVISION_KEYWORDS
    return False


def validate_accept(value: object) -> bool:
    return value in ACCEPT_POLICIES


def validate_depth(value: object) -> bool:
    return value in DEPTHS


def validate_limit(value: object) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return int(str(value)) > 0
    except ValueError:
        return False


def validate_existing_file(value: object) -> bool:
    return isinstance(value, (str, os.PathLike)) and Path(value).is_file()


def validate_text(value: object) -> bool:
    """Non-empty single-line text."""
    text = str(value) if isinstance(value, (str, os.PathLike)) else ""
    return bool(text) and "\n" not in text


VALIDATORS: dict[OptKind, Validator] = {
    OptKind.REVISION: validate_revision,
    OptKind.DEPTH: validate_depth,
    OptKind.LIMIT: validate_limit,
    OptKind.ACCEPT: validate_accept,
    OptKind.CHANGELIST: validate_text,
    OptKind.USERNAME: validate_text,
    OptKind.CONFIG_DIR: validate_text,
    OptKind.TARGETS: validate_existing_file,
    OptKind.TARGET: validate_text,
}

EXPECTED: dict[OptKind, str] = {
    OptKind.REVISION: f"expected a non-negative integer or one of {sorted(REVISION_KEYWORDS)}",
    OptKind.DEPTH: f"expected one of {sorted(DEPTHS)}",
    OptKind.LIMIT: "expected a positive integer",
    OptKind.ACCEPT: f"expected one of {sorted(ACCEPT_POLICIES)}",
    OptKind.TARGETS: "targets file does not exist",
}


class ShellOption:
    """
    A single command-line option.

    The ordinal is fixed per kind and only used for ordering; two options of
    the same kind are still distinct objects.

    Args:
        kind: Option kind (selects flag text and ordinal)
        argument: Option value
        validate: Validation callable; defaults to the kind's built-in rule

    Raises:
        InvalidArgument: If validation rejects the argument
    """

    def __init__(self, kind: OptKind, argument: object, validate: Optional[Validator] = None):
        self.kind = kind
        self._validate = validate if validate is not None else VALIDATORS.get(kind)
        self.argument = self._check(argument)

    def _check(self, value: object, label: Optional[str] = None) -> str:
        if self._validate is not None and not self._validate(value):
            raise InvalidArgument(
                label or self.flag or self.kind.value,
                value,
                EXPECTED.get(self.kind, "rejected by validator"),
            )
        return os.fspath(value) if isinstance(value, os.PathLike) else str(value)

    @property
    def ordinal(self) -> int:
        return ORDINALS[self.kind]

    @property
    def flag(self) -> str:
        return FLAGS[self.kind]

    def change_argument(self, value: object) -> None:
        """Replace the argument, re-running validation first."""
        self.argument = self._check(value)

    def escaped(self) -> str:
        return shlex.quote(self.argument)

    def render(self) -> str:
        """Flag text followed by the shell-escaped argument."""
        if self.flag:
            return f"{self.flag} {self.escaped()}"
        return self.escaped()

    def tokens(self) -> list[str]:
        """Argument vector fragment for this option."""
        return shlex.split(self.render())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.render()!r})"


class RevisionOption(ShellOption):
    """Operative revision, optionally a range joined by ':'."""

    def __init__(self, revision: object, end: object = None):
        super().__init__(OptKind.REVISION, revision)
        self.end = self._check(end) if end is not None else None

    def escaped(self) -> str:
        if self.end is None:
            return super().escaped()
        return f"{super().escaped()}:{shlex.quote(self.end)}"


class TargetOption(ShellOption):
    """
    Positional target path or URL, optionally pinned to a peg revision.

    A path containing '@' with no peg gets a trailing '@' so svn does not
    read the tail as a peg revision. A path starting with '-' is anchored
    as './-name' so svn cannot read it as an option.
    """

    def __init__(self, path: object, peg: object = None, prefix: str = ""):
        super().__init__(OptKind.TARGET, path)
        self.argument = f"{prefix}{self.argument}"
        if self.argument.startswith("-"):
            self.argument = f"./{self.argument}"
        self.peg: Optional[str] = None
        if peg is not None:
            if not validate_revision(peg):
                raise InvalidArgument("peg revision", peg, EXPECTED[OptKind.REVISION])
            self.peg = str(peg)

    def escaped(self) -> str:
        if self.peg is not None:
            return f"{super().escaped()}@{shlex.quote(self.peg)}"
        if "@" in self.argument:
            return shlex.quote(f"{self.argument}@")
        return super().escaped()

    @property
    def line(self) -> str:
        """Unescaped form, as written to a targets file."""
        if self.peg is not None:
            return f"{self.argument}@{self.peg}"
        if "@" in self.argument:
            return f"{self.argument}@"
        return self.argument


class TargetsFileOption(ShellOption):
    """--targets pointing at an existing, caller-managed file."""

    def __init__(self, path: object):
        super().__init__(OptKind.TARGETS, path)


class AggregateTargets(ShellOption):
    """
    Many targets written to one temporary file referenced by --targets.

    Each discrete target is escaped and rendered on its own; past a handful of
    targets a single file is cheaper. The file is rewritten on every render
    and removed by cleanup().
    """

    def __init__(self) -> None:
        fd, name = tempfile.mkstemp(prefix="svnkit-targets-", text=True)
        os.close(fd)
        super().__init__(OptKind.TARGETS, name)
        self.entries: list[TargetOption] = []
        logger.debug(f"Created aggregate targets file: {name}")

    def add(self, path: object, peg: object = None, prefix: str = "") -> None:
        self.entries.append(TargetOption(path, peg, prefix))

    def write(self) -> None:
        with open(self.argument, "w", encoding="utf-8") as f:
            for entry in self.entries:
                f.write(entry.line + "\n")

    def render(self) -> str:
        self.write()
        return super().render()

    def cleanup(self) -> None:
        try:
            os.unlink(self.argument)
            logger.debug(f"Removed aggregate targets file: {self.argument}")
        except FileNotFoundError:
            pass


class OptionSet:
    """
    Options and switches for one command.

    At most one option per kind; targets are the exception and keep call
    order. Switch rendering follows the Switch declaration table.
    """

    def __init__(self) -> None:
        self._options: dict[OptKind, ShellOption] = {}
        self._targets: list[TargetOption] = []
        self._switches: set[Switch] = set()

    # Options

    def set(self, option: ShellOption) -> None:
        if option.kind is OptKind.TARGET:
            raise ValueError("Targets are added with add_target()")
        previous = self._options.get(option.kind)
        if isinstance(previous, AggregateTargets) and previous is not option:
            previous.cleanup()
        self._options[option.kind] = option

    def get(self, kind: OptKind) -> Optional[ShellOption]:
        return self._options.get(kind)

    def remove(self, kind: OptKind) -> None:
        option = self._options.pop(kind, None)
        if isinstance(option, AggregateTargets):
            option.cleanup()

    def add_target(self, option: TargetOption) -> None:
        self._targets.append(option)

    def aggregate(self) -> AggregateTargets:
        """Return the aggregate targets option, creating it on first use."""
        current = self._options.get(OptKind.TARGETS)
        if isinstance(current, AggregateTargets):
            return current
        if current is not None:
            raise InvalidArgument("--targets", current.argument, "a targets file is already set")
        aggregate = AggregateTargets()
        self._options[OptKind.TARGETS] = aggregate
        return aggregate

    @property
    def targets(self) -> list[TargetOption]:
        return list(self._targets)

    def has_targets(self) -> bool:
        return bool(self._targets) or OptKind.TARGETS in self._options

    def ordered(self) -> list[ShellOption]:
        """Options sorted by ordinal; ties keep insertion order."""
        options = list(self._options.values()) + self._targets
        return sorted(options, key=lambda option: option.ordinal)

    def render_options(self) -> list[str]:
        return [option.render() for option in self.ordered()]

    def clear_options(self) -> None:
        self.remove(OptKind.TARGETS)
        self._options.clear()
        self._targets.clear()

    # Switches

    def enable(self, switch: Switch) -> None:
        self._switches.add(switch)

    def disable(self, switch: Switch) -> None:
        self._switches.discard(switch)

    def toggle(self, switch: Switch) -> None:
        if switch in self._switches:
            self._switches.remove(switch)
        else:
            self._switches.add(switch)

    def has(self, switch: Switch) -> bool:
        return switch in self._switches

    @property
    def switches(self) -> frozenset[Switch]:
        return frozenset(self._switches)

    def render_switches(self, extra: Iterable[Switch] = ()) -> list[str]:
        enabled = self._switches | set(extra)
        return [switch.value for switch in Switch if switch in enabled]

    def clear_switches(self) -> None:
        self._switches.clear()

    def close(self) -> None:
        """Release temporary files held by options."""
        self.remove(OptKind.TARGETS)
