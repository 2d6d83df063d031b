"""Registry mapping commands to the process handlers that run them."""

import logging
import uuid
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from svnkit.errors import DuplicateAttachment

if TYPE_CHECKING:
    from svnkit.command import Command
    from svnkit.process import ProcessHandler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    """Opaque token returned when a command is attached to a handler."""

    command_id: str
    token: str


Key = Union["Command", Attachment, str]


def _command_id(key: Key) -> str:
    if isinstance(key, str):
        return key
    return key.command_id


class ProcessRegistry:
    """
    One process handler per command.

    Keyed by the command's explicit ``command_id``, never by object identity.
    Handlers are held weakly; a collected handler drops out on its own.
    A command may be reused for sequential runs but cannot be attached to two
    handlers at once.

    Example:
        registry = ProcessRegistry()
        wc = WorkingCopy("/srv/checkout", registry=registry)
        cmd = wc.info()
        handler = registry.lookup(cmd)
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[Attachment, "weakref.ref[ProcessHandler]"]] = {}

    def attach(self, command: "Command", handler: "ProcessHandler") -> Attachment:
        """
        Register handler as the process handler for command.

        Returns:
            Attachment token identifying this registration

        Raises:
            DuplicateAttachment: If command already has a handler
        """
        if command.command_id in self._entries:
            raise DuplicateAttachment(command.command_id)

        attachment = Attachment(command_id=command.command_id, token=uuid.uuid4().hex)
        self._entries[command.command_id] = (
            attachment,
            weakref.ref(handler, lambda _ref: self.detach(attachment)),
        )
        logger.debug(f"Attached command {command.command_id} to {handler!r}")
        return attachment

    def detach(self, key: Key) -> None:
        """
        Remove the mapping for a command. No error if absent.

        A stale Attachment (superseded by a later attach) is ignored.
        """
        command_id = _command_id(key)
        entry = self._entries.get(command_id)
        if entry is None:
            return
        if isinstance(key, Attachment) and entry[0].token != key.token:
            logger.debug(f"Ignoring stale attachment for command {command_id}")
            return
        del self._entries[command_id]
        logger.debug(f"Detached command {command_id}")

    def lookup(self, key: Key) -> Optional["ProcessHandler"]:
        entry = self._entries.get(_command_id(key))
        return entry[1]() if entry else None

    def attachment(self, key: Key) -> Optional[Attachment]:
        entry = self._entries.get(_command_id(key))
        return entry[0] if entry else None

    def __contains__(self, key: Key) -> bool:
        return _command_id(key) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


_default_registry: Optional[ProcessRegistry] = None


def get_registry() -> ProcessRegistry:
    """Process-wide default registry, created on first access."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ProcessRegistry()
    return _default_registry
