"""Process exit codes.

Every command maps its outcome to one of these codes. The values are part
of the tool's contract with CI scripts and must remain stable:
- 0: Success
- 1: Fatal error (invariant violation, policy violation, remote failure)
- 2: Cancelled by the operator (not an error)
- 3: Configuration missing or invalid
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    FATAL_ERROR = 1
    USER_ABORTED = 2
    CONFIG_ERROR = 3

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        """Cancellation is neither success nor an error."""
        return self not in (ErrorCode.OK, ErrorCode.USER_ABORTED)
