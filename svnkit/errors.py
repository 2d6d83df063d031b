"""svnkit exception hierarchy with exit codes."""

from typing import Optional, Sequence

# Exit code constants
EXIT_SUCCESS = 0  # Operation succeeded
EXIT_ERROR = 1  # Generic error / subprocess failure
EXIT_NOT_READY = 2  # Precondition failed (path verification)
EXIT_USAGE = 5  # Invalid usage / arguments


class SvnKitError(Exception):
    """Base exception for all svnkit errors."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class InvalidArgument(SvnKitError):
    """An option received a value outside its allowed domain."""

    exit_code = EXIT_USAGE

    def __init__(self, option: str, value: object, reason: str = "invalid value"):
        super().__init__(f"Invalid argument for {option}: {value!r} ({reason})", self.exit_code)
        self.option = option
        self.value = value
        self.reason = reason


class EmptyCommand(SvnKitError):
    """Subcommand requires at least one target but none was given."""

    exit_code = EXIT_USAGE

    def __init__(self, subcommand: str):
        super().__init__(f"svn {subcommand} requires at least one target", self.exit_code)
        self.subcommand = subcommand


class DuplicateAttachment(SvnKitError):
    """Command is already attached to a process handler."""

    exit_code = EXIT_ERROR

    def __init__(self, command_id: str):
        super().__init__(f"Command {command_id} is already attached to a process handler")
        self.command_id = command_id


class SubprocessFailure(SvnKitError):
    """
    External binary exited with a non-zero status.

    Carries the raw stderr text so callers can act on the diagnostic.
    """

    exit_code = EXIT_ERROR

    def __init__(
        self,
        argv: Sequence[str],
        returncode: Optional[int],
        stderr: str = "",
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"Command failed ({returncode}): {' '.join(argv)}"
            if stderr:
                message += f"\n{stderr}"
        super().__init__(message, self.exit_code)
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr


class ProcessTimeout(SubprocessFailure):
    """External binary did not finish within the configured timeout."""

    def __init__(self, argv: Sequence[str], timeout: float):
        super().__init__(
            argv,
            None,
            message=f"Command timed out after {timeout}s: {' '.join(argv)}",
        )
        self.timeout = timeout


class VerificationFailure(SvnKitError):
    """Path is not a usable working copy or repository."""

    exit_code = EXIT_NOT_READY

    def __init__(self, path: object, reason: str):
        super().__init__(f"{path}: {reason}", self.exit_code)
        self.path = path
        self.reason = reason


class ConfigError(SvnKitError):
    """Configuration errors (invalid values, unreadable files)."""

    exit_code = EXIT_ERROR

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message, exit_code=self.exit_code)


class OutputParseError(SvnKitError):
    """Subprocess output could not be parsed into records."""

    exit_code = EXIT_ERROR

    def __init__(self, message: str = "Malformed svn output"):
        super().__init__(message, exit_code=self.exit_code)
