"""Process handler: owns the svn subprocess for one command."""

import enum
import logging
import subprocess
from typing import TYPE_CHECKING, Any, Optional

from svnkit.config import Config
from svnkit.errors import ProcessTimeout, SubprocessFailure
from svnkit.parsers import OutputParser, PassthroughParser
from svnkit.registry import Attachment, ProcessRegistry, get_registry

if TYPE_CHECKING:
    from svnkit.command import Command

logger = logging.getLogger(__name__)

# Seconds to wait for a terminated child before killing it
TERMINATE_GRACE = 5.0


class StreamMode(enum.Enum):
    """How a standard stream of the child is wired."""

    PIPE = "pipe"
    SINK = "sink"
    INHERIT = "inherit"
    DEVNULL = "devnull"


class ProcessHandler:
    """
    Spawns, drains and reaps the svn process for a single command.

    At most one child is alive per handler: open() closes any previous one
    first. close() is idempotent and runs on every execute() exit path.

    Args:
        command: Command whose argument vector is executed
        config: Configuration (defaults to the command's)
        registry: Registry to attach to (defaults to the process-wide one)
        parser: Output parser (defaults to pass-through)
        timeout: Seconds before the child is killed (defaults to config.timeout)
        stdout: PIPE to capture stdout, INHERIT to leave it to the caller

    Raises:
        DuplicateAttachment: If command already has a handler in registry
    """

    def __init__(
        self,
        command: "Command",
        config: Optional[Config] = None,
        registry: Optional[ProcessRegistry] = None,
        parser: Optional[OutputParser] = None,
        timeout: Optional[float] = None,
        stdout: StreamMode = StreamMode.PIPE,
    ):
        self._process: Optional[subprocess.Popen[bytes]] = None
        self.command = command
        self.config = config if config is not None else command.config
        self.registry = registry if registry is not None else get_registry()
        self.timeout = timeout if timeout is not None else self.config.timeout
        self.stdout_mode = stdout
        self._parser: OutputParser = parser if parser is not None else PassthroughParser()
        self.stream_plan: dict[str, StreamMode] = {}
        self.returncode: Optional[int] = None
        self.stderr = ""
        self.attachment: Optional[Attachment] = self.registry.attach(command, self)

    @property
    def parser(self) -> OutputParser:
        return self._parser

    def attach_parser(self, parser: Optional[OutputParser]) -> None:
        """Use parser for subsequent runs; None restores pass-through."""
        self._parser = parser if parser is not None else PassthroughParser()

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    def open(self) -> None:
        """
        Spawn the svn process for the command's current argument vector.

        Raises:
            SubprocessFailure: If the binary cannot be started or the working
                directory is unusable
        """
        self.close()
        self.returncode = None
        self.stderr = ""

        argv = self.command.prepare()
        cwd = self.command.working_path

        stdout_target: Any = None
        stdout_mode = StreamMode.INHERIT
        if self.stdout_mode is StreamMode.PIPE:
            sink = self._parser.sink()
            if sink is not None:
                stdout_target, stdout_mode = sink, StreamMode.SINK
            else:
                stdout_target, stdout_mode = subprocess.PIPE, StreamMode.PIPE

        self.stream_plan = {
            "stdin": StreamMode.DEVNULL,
            "stdout": stdout_mode,
            "stderr": StreamMode.PIPE,
        }

        logger.debug(f"Running: {self.command.redacted_line} (cwd={cwd})")
        try:
            self._process = subprocess.Popen(
                argv,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=stdout_target,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            if cwd is not None and e.filename is not None and str(e.filename) == str(cwd):
                logger.error(f"Working directory unavailable: {cwd}")
                returncode = 126
            elif isinstance(e, FileNotFoundError):
                logger.error(f"Binary not found: {argv[0]}")
                returncode = 127
            else:
                logger.error(f"Cannot execute {argv[0]}: {e.strerror}")
                returncode = 126
            raise SubprocessFailure(self.command.redacted_argv(), returncode, str(e)) from e

    def drain(self) -> tuple[Optional[bytes], bytes]:
        """
        Read stdout and stderr to completion and wait for exit.

        Both pipes are read concurrently by communicate(), so a full stderr
        buffer cannot block a pending stdout read.

        Returns:
            (stdout bytes or None when not piped, stderr bytes)

        Raises:
            ProcessTimeout: If the child outlives the timeout (it is killed)
        """
        if self._process is None:
            raise RuntimeError("No process is open")

        try:
            stdout, stderr = self._process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            logger.error(f"Timed out after {self.timeout}s: {self.command.redacted_line}")
            self._process.kill()
            self.close()
            raise ProcessTimeout(self.command.redacted_argv(), self.timeout or 0.0) from e

        self.returncode = self._process.returncode
        self.stderr = (stderr or b"").decode("utf-8", errors="replace")
        logger.debug(f"Exit code: {self.returncode}")
        return stdout, stderr or b""

    def check(self) -> None:
        """
        Interpret the exit status of the last run.

        Any non-zero exit is a failure. Without stderr text the failure
        carries an empty diagnostic.

        Raises:
            SubprocessFailure: If the child exited non-zero
        """
        diagnostic = self.stderr.strip()
        if self.returncode == 0:
            if diagnostic:
                logger.warning(f"svn reported warnings: {diagnostic}")
            return

        if diagnostic:
            logger.error(f"Command failed ({self.returncode}): {diagnostic}")
        else:
            logger.warning(f"Command exited {self.returncode} without diagnostics")
        raise SubprocessFailure(self.command.redacted_argv(), self.returncode, diagnostic)

    def execute(self) -> Any:
        """
        Run the command to completion and return the parser's result.

        Raises:
            SubprocessFailure: If the binary is missing or exits non-zero
            ProcessTimeout: If the timeout elapses
        """
        try:
            self.open()
            stdout, _ = self.drain()
            self.check()
        except BaseException:
            self._parser.close()
            raise
        finally:
            self.close()
        return self._parser.parse(stdout)

    def close(self) -> None:
        """
        Release the child process and its pipes. Safe to call repeatedly.

        A child that is still running is terminated, then killed if it does
        not exit within TERMINATE_GRACE seconds.
        """
        process = self._process
        if process is None:
            return
        self._process = None

        if process.poll() is None:
            logger.debug(f"Terminating running process {process.pid}")
            process.terminate()

        for stream in (process.stdin, process.stdout, process.stderr):
            if stream is not None:
                stream.close()

        try:
            process.wait(timeout=TERMINATE_GRACE)
        except subprocess.TimeoutExpired:
            logger.warning(f"Process {process.pid} ignored SIGTERM, killing")
            process.kill()
            process.wait()

        if self.returncode is None:
            self.returncode = process.returncode

    def detach(self) -> None:
        """Remove this handler's registry mapping."""
        if self.attachment is not None:
            self.registry.detach(self.attachment)
            self.attachment = None

    def __enter__(self) -> "ProcessHandler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_process", None) is not None:
            self.close()

    def __repr__(self) -> str:
        return f"ProcessHandler(command={self.command.subcommand!r}, pid={self.pid})"
