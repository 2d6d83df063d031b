"""
Output parsers for svn subcommands.

A parser decides where stdout goes (its own sink, or a handler pipe) and turns
the captured output into records. Parsers are picked from a closed table by
ParserKind; the pass-through parser keeps the execute path uniform when no
structured output is wanted.
"""

import enum
import io
import logging
import tempfile
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import IO, Any, Iterator, Optional, Protocol, Union

from svnkit.errors import OutputParseError

logger = logging.getLogger(__name__)


class ParserKind(enum.Enum):
    NONE = "none"
    INFO = "info"
    LOG = "log"
    LIST = "list"


@dataclass
class InfoEntry:
    """One <entry> of svn info --xml."""

    path: str
    kind: str
    revision: Optional[int]
    url: str = ""
    repository_root: str = ""
    repository_uuid: str = ""
    last_changed_rev: Optional[int] = None
    last_changed_author: Optional[str] = None
    last_changed_date: Optional[datetime] = None


@dataclass
class LogPath:
    """Changed path of a log entry (svn log -v)."""

    path: str
    action: str
    kind: str = ""
    copyfrom_path: Optional[str] = None
    copyfrom_rev: Optional[int] = None


@dataclass
class LogEntry:
    """One <logentry> of svn log --xml."""

    revision: int
    author: Optional[str] = None
    date: Optional[datetime] = None
    message: str = ""
    paths: list[LogPath] = field(default_factory=list)


@dataclass
class ListEntry:
    """One <entry> of svn list --xml."""

    name: str
    kind: str
    size: Optional[int] = None
    commit_revision: Optional[int] = None
    author: Optional[str] = None
    date: Optional[datetime] = None


Record = Union[InfoEntry, LogEntry, ListEntry]


class OutputParser(Protocol):
    """Contract between a process handler and its output parser."""

    kind: ParserKind

    def sink(self) -> Optional[IO[bytes]]:
        """
        File object stdout should be written to.

        Returns:
            A file owned by the parser, or None to have the handler pipe stdout
        """

    def parse(self, stdout: Optional[bytes]) -> Any:
        """
        Turn captured output into the execute() result.

        Args:
            stdout: Piped stdout bytes, or None when the parser's sink was used
        """

    def close(self) -> None:
        """Release the sink without parsing it (failed runs)."""


class PassthroughParser:
    """No-op parser: stdout is piped and returned as raw bytes."""

    kind = ParserKind.NONE

    def sink(self) -> Optional[IO[bytes]]:
        return None

    def parse(self, stdout: Optional[bytes]) -> bytes:
        return stdout if stdout is not None else b""

    def close(self) -> None:
        pass


def _int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError as e:
        raise OutputParseError(f"Expected an integer, got {value!r}") from e


def _date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.strptime(value.strip(), "%Y-%m-%dT%H:%M:%S.%fZ")
    except ValueError as e:
        raise OutputParseError(f"Unrecognised svn date: {value!r}") from e
    return parsed.replace(tzinfo=timezone.utc)


class XmlParser:
    """
    Base for parsers of --xml output.

    stdout is redirected to a temporary file owned by the parser and read back
    lazily, one record per matching element. The resulting iterator is single
    pass; the file is closed once it is exhausted.
    """

    kind = ParserKind.NONE
    tag = ""

    def __init__(self) -> None:
        self._sink: Optional[IO[bytes]] = None

    def sink(self) -> Optional[IO[bytes]]:
        if self._sink is not None:
            self._sink.close()
        self._sink = tempfile.TemporaryFile()
        return self._sink

    def parse(self, stdout: Optional[bytes]) -> Iterator[Record]:
        if stdout is not None:
            source: IO[bytes] = io.BytesIO(stdout)
        elif self._sink is not None:
            source = self._sink
            source.seek(0)
            self._sink = None
        else:
            raise OutputParseError(f"No output captured for {self.kind.value} parser")
        return self._records(source)

    def close(self) -> None:
        if self._sink is not None:
            self._sink.close()
            self._sink = None

    def _records(self, source: IO[bytes]) -> Iterator[Record]:
        try:
            for _, element in ET.iterparse(source, events=("end",)):
                if element.tag == self.tag:
                    yield self.record(element)
                    element.clear()
        except ET.ParseError as e:
            raise OutputParseError(f"Malformed svn {self.kind.value} output: {e}") from e
        finally:
            source.close()

    def record(self, element: ET.Element) -> Record:
        raise NotImplementedError


class InfoParser(XmlParser):
    kind = ParserKind.INFO
    tag = "entry"

    def record(self, element: ET.Element) -> InfoEntry:
        commit = element.find("commit")
        return InfoEntry(
            path=element.get("path", ""),
            kind=element.get("kind", ""),
            revision=_int(element.get("revision")),
            url=element.findtext("url", ""),
            repository_root=element.findtext("repository/root", ""),
            repository_uuid=element.findtext("repository/uuid", ""),
            last_changed_rev=_int(commit.get("revision")) if commit is not None else None,
            last_changed_author=element.findtext("commit/author"),
            last_changed_date=_date(element.findtext("commit/date")),
        )


class LogParser(XmlParser):
    kind = ParserKind.LOG
    tag = "logentry"

    def record(self, element: ET.Element) -> LogEntry:
        paths = [
            LogPath(
                path=(path.text or "").strip(),
                action=path.get("action", ""),
                kind=path.get("kind", ""),
                copyfrom_path=path.get("copyfrom-path"),
                copyfrom_rev=_int(path.get("copyfrom-rev")),
            )
            for path in element.iterfind("paths/path")
        ]
        return LogEntry(
            revision=_int(element.get("revision")) or 0,
            author=element.findtext("author"),
            date=_date(element.findtext("date")),
            message=element.findtext("msg", ""),
            paths=paths,
        )


class ListParser(XmlParser):
    kind = ParserKind.LIST
    tag = "entry"

    def record(self, element: ET.Element) -> ListEntry:
        commit = element.find("commit")
        return ListEntry(
            name=element.findtext("name", ""),
            kind=element.get("kind", ""),
            size=_int(element.findtext("size")),
            commit_revision=_int(commit.get("revision")) if commit is not None else None,
            author=element.findtext("commit/author"),
            date=_date(element.findtext("commit/date")),
        )


PARSERS: dict[ParserKind, type] = {
    ParserKind.NONE: PassthroughParser,
    ParserKind.INFO: InfoParser,
    ParserKind.LOG: LogParser,
    ParserKind.LIST: ListParser,
}


def make_parser(kind: ParserKind) -> OutputParser:
    """Instantiate the parser registered for kind."""
    parser: OutputParser = PARSERS[kind]()
    logger.debug(f"Using {parser.__class__.__name__} for {kind.value} output")
    return parser
