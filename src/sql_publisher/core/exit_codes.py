"""Standard exit codes for SQL Publisher.

Exit codes follow Unix conventions; values 1-7 match the ones used by
the sibling PostgreSQL tooling so wrappers can share handling.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for SQL Publisher commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    USAGE_ERROR = 2
    INPUT_ERROR = 3
    OUTPUT_ERROR = 4
    NETWORK_ERROR = 5
    TIMEOUT = 6
    CONFIG_ERROR = 7
    SCHEMA_ERROR = 8
    QUERY_ERROR = 9
    CONVERSION_ERROR = 10
