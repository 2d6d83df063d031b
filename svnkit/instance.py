"""Working copies and repositories that svn commands run against."""

import logging
from pathlib import Path
from typing import Optional, TypeVar, Union

from svnkit.command import (
    CatCommand,
    Command,
    InfoCommand,
    ListCommand,
    LogCommand,
    UpdateCommand,
)
from svnkit.config import Config, get_config
from svnkit.errors import OutputParseError, VerificationFailure
from svnkit.probes import is_repository
from svnkit.registry import ProcessRegistry, get_registry

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=Command)


class SvnInstance:
    """
    Base for a directory svn commands are run against.

    Args:
        path: Directory of the working copy or repository
        config: Configuration (defaults to get_config())
        verify: Verify the path on construction
        registry: Registry for command process handlers

    Raises:
        VerificationFailure: If verify is set and the path is unusable
    """

    def __init__(
        self,
        path: Union[str, Path],
        config: Optional[Config] = None,
        verify: bool = True,
        registry: Optional[ProcessRegistry] = None,
    ):
        self.path = Path(path)
        self.config = config if config is not None else get_config()
        self.registry = registry if registry is not None else get_registry()
        self.sub_path = ""
        self.use_defaults = True
        if verify:
            self.verify()

    def verify(self) -> None:
        if not self.path.is_dir():
            raise VerificationFailure(self.path, "not a directory")

    def defaults(self, use: bool = True) -> "SvnInstance":
        """Whether new commands get default options from config."""
        self.use_defaults = use
        return self

    def set_sub_path(self, path: str) -> None:
        """
        Base later path operations on a subdirectory (a branch or tag, say).

        Changing it while a command is being built only affects targets
        added afterwards.
        """
        self.sub_path = path

    @property
    def full_path(self) -> Path:
        if not self.sub_path:
            return self.path
        return self.path / self.sub_path

    @property
    def working_path(self) -> Optional[Path]:
        """Directory commands run in, or None to inherit the caller's."""
        return None

    @property
    def prepend_path(self) -> str:
        """Prefix added to every target."""
        return ""

    def command(self, command_cls: type[C], defaults: Optional[bool] = None) -> C:
        use = self.use_defaults if defaults is None else defaults
        return command_cls(self, defaults=use)

    def info(self, defaults: Optional[bool] = None) -> InfoCommand:
        return self.command(InfoCommand, defaults)

    def log(self, defaults: Optional[bool] = None) -> LogCommand:
        return self.command(LogCommand, defaults)

    def ls(self, defaults: Optional[bool] = None) -> ListCommand:
        return self.command(ListCommand, defaults)

    def cat(self, defaults: Optional[bool] = None) -> CatCommand:
        return self.command(CatCommand, defaults)

    def __fspath__(self) -> str:
        return str(self.path)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self.path)!r})"


class WorkingCopy(SvnInstance):
    """Root of a Subversion working copy."""

    def __init__(self, *args, **kwargs):
        self._repo_root: Optional[str] = None
        self._latest_rev: Optional[int] = None
        super().__init__(*args, **kwargs)

    def verify(self) -> None:
        super().verify()
        if not (self.path / ".svn").is_dir():
            raise VerificationFailure(
                self.path, "contains no svn metadata; it is not a working copy directory"
            )
        logger.debug(f"Working copy verified: {self.path}")

    @property
    def working_path(self) -> Optional[Path]:
        return self.full_path

    def _load_info(self) -> None:
        with self.info() as cmd:
            entries = list(cmd.target(".").parse_output().execute())
        if not entries:
            raise OutputParseError(f"svn info returned no entries for {self.path}")
        self._repo_root = entries[0].repository_root
        self._latest_rev = entries[0].revision
        logger.debug(f"Repository root: {self._repo_root}, revision: {self._latest_rev}")

    @property
    def repo_root(self) -> Optional[str]:
        """Repository root URL, looked up with svn info on first access."""
        if self._repo_root is None:
            self._load_info()
        return self._repo_root

    @property
    def latest_rev(self) -> Optional[int]:
        """Working copy revision, looked up with svn info on first access."""
        if self._latest_rev is None:
            self._load_info()
        return self._latest_rev

    def update(self, defaults: Optional[bool] = None) -> UpdateCommand:
        return self.command(UpdateCommand, defaults)


class Repository(SvnInstance):
    """A local Subversion repository, addressed through file:// URLs."""

    def verify(self) -> None:
        super().verify()
        if not is_repository(self.path, self.config.admin_binary):
            raise VerificationFailure(self.path, "not a valid Subversion repository")
        logger.debug(f"Repository verified: {self.path}")

    @property
    def prepend_path(self) -> str:
        return self.full_path.resolve().as_uri() + "/"
