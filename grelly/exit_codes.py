"""
Standard exit codes and error kinds for grelly.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
CONFIG_ERROR = 66        # Malformed pattern or configuration value
REPOSITORY_ERROR = 67    # Repository could not be read
RELEASE_CONFLICT = 68    # Release marker already exists
CHANGELOG_ERROR = 69     # Changelog could not be written after release
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'ConfigError': CONFIG_ERROR,
    'RepositoryAccessError': REPOSITORY_ERROR,
    'ReleaseConflictError': RELEASE_CONFLICT,
    'ChangelogIOError': CHANGELOG_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when a pattern or configuration value is malformed."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class RepositoryAccessError(CommandError):
    """Raised when the repository cannot be read (not a repo, no commits, git failure)."""
    def __init__(self, message: str, stderr: Optional[str] = None):
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message, REPOSITORY_ERROR)


class ReleaseConflictError(CommandError):
    """Raised when the release target already exists."""
    def __init__(self, message: str):
        super().__init__(message, RELEASE_CONFLICT)


class ChangelogIOError(CommandError):
    """
    Raised when the changelog cannot be written.

    In release mode this happens after the release marker was created, so
    the message carries the manual recovery step.
    """
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, CHANGELOG_ERROR)
        self.path = path


class AmbiguousSignalWarning(UserWarning):
    """Version signals disagree in a way precedence settles only by rule."""
