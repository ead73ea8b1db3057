"""Exit codes for the artipack CLI.

The numeric values are part of the command-line contract and must stay
stable:

- 0: success
- 1: catalog load failure, invalid arguments or configuration
- 2: one or more collections failed a blocking validation gate
- 3: one or more tool downloads failed
- 4: packaging I/O failure or a package that fails its deploy check
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    VALIDATION_ERROR = 2
    NETWORK_ERROR = 3
    IO_ERROR = 4
