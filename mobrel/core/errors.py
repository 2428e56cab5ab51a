"""Process exit codes used by the CLI. Keep the values stable."""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit status per failure category.

    - 0: success
    - 1: user error (missing configuration, bad arguments)
    - 2: environment error (signing credentials, openssl, git)
    - 3: build error (unreadable or missing build artifact)
    - 4: network error (remote service unreachable or rejecting a call)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
