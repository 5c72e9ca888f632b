# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Exception classes for muxtunnel.

Every error raised by the library derives from MuxTunnelError so callers
(and the CLI's handle_errors) can catch them in one place. Errors that come
from a failed ssh invocation carry the command line, exit code and stderr.
"""

from typing import List, Optional


class MuxTunnelError(Exception):
    """Base class for all muxtunnel errors.

    The optional hint is shown by the CLI below the error message.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class InvalidInputError(MuxTunnelError, ValueError):
    """Raised when a constructor argument is malformed (port range, empty host, timeout format)."""


class PortExhaustedError(MuxTunnelError):
    """Raised when no free local port exists in the scanned range."""

    def __init__(self, start: int, end: int):
        super().__init__(
            f"Could not find a free port between {start} and {end}",
            hint="Pass an explicit local_port or widen ports.range_start/range_end",
        )
        self.start = start
        self.end = end


class SSHCommandError(MuxTunnelError):
    """An ssh control command exited with an unexpected status."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
        hint: Optional[str] = None,
    ):
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr.strip() if stderr else ""
        detail = message
        if returncode is not None:
            detail += f" (exit code {returncode})"
        if self.stderr:
            detail += f"\n{self.stderr}"
        super().__init__(detail, hint=hint)


class ProbeFailedError(SSHCommandError):
    """Raised when `ssh -O check` returns something other than running / not running."""


class MasterStartFailedError(SSHCommandError):
    """Raised when the master connection is still not running after a start attempt."""


class MasterStopFailedError(SSHCommandError):
    """Raised when `ssh -O exit` fails."""


class TunnelStartFailedError(SSHCommandError):
    """Raised when `ssh -O forward` fails (includes the local port being taken)."""


class TunnelStopFailedError(SSHCommandError):
    """Raised when `ssh -O cancel` fails. The forward may still be attached."""
