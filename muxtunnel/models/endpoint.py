# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Remote end of a forward: a host:port pair or a socket path on the SSH server."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from muxtunnel.errors import InvalidInputError


class RemoteKind(Enum):
    TCP = "tcp"
    SOCKET = "socket"


def validate_port(port: int, name: str) -> int:
    """Ensure port is an int in 1-65535, raising InvalidInputError otherwise."""
    if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
        raise InvalidInputError(
            f"Invalid {name} given. Must be in the range of 1-65535 (given: {port!r})"
        )
    return port


@dataclass(frozen=True)
class Remote:
    """Forward target on the SSH server side.

    Build with Remote.tcp() or Remote.socket(); the constructor is not meant
    to be called directly.
    """

    kind: RemoteKind
    host: Optional[str] = None
    port: Optional[int] = None
    socket_path: Optional[str] = None

    def __post_init__(self):
        if self.kind is RemoteKind.TCP:
            if not self.host:
                raise InvalidInputError("Invalid remote host given. Must be a non-empty string")
            validate_port(self.port, "remote port")
            if self.socket_path is not None:
                raise InvalidInputError("A TCP remote cannot also have a socket path")
        elif self.kind is RemoteKind.SOCKET:
            if not self.socket_path:
                raise InvalidInputError("Invalid socket path given. Must be a non-empty string")
            if self.host is not None or self.port is not None:
                raise InvalidInputError("A socket remote cannot also have a host or port")
        else:
            raise InvalidInputError(f"Unknown remote kind: {self.kind!r}")

    @classmethod
    def tcp(cls, port: int, host: str = "127.0.0.1") -> "Remote":
        """host:port as seen from the SSH server."""
        return cls(kind=RemoteKind.TCP, host=host, port=port)

    @classmethod
    def socket(cls, path: str) -> "Remote":
        """Unix socket path on the SSH server."""
        return cls(kind=RemoteKind.SOCKET, socket_path=path)

    @classmethod
    def parse(cls, spec: str) -> "Remote":
        """Parse a command-line remote spec.

        Examples:
            "5432"               -> tcp 127.0.0.1:5432
            "db.internal:5432"   -> tcp db.internal:5432
            "/run/app.sock"      -> socket /run/app.sock
        """
        spec = (spec or "").strip()
        if not spec:
            raise InvalidInputError("Empty remote spec")
        if "/" in spec:
            return cls.socket(spec)

        host, sep, port_str = spec.rpartition(":")
        if not sep:
            host, port_str = "127.0.0.1", spec
        # [::1]:80 style IPv6 literals
        host = host.strip("[]")
        try:
            port = int(port_str)
        except ValueError:
            raise InvalidInputError(f"Invalid remote port in {spec!r}") from None
        return cls.tcp(port, host)

    @property
    def path(self) -> str:
        """String embedded into the -L forward spec."""
        if self.kind is RemoteKind.TCP:
            return f"{self.host}:{self.port}"
        return self.socket_path

    def render_path(self) -> str:
        return self.path

    def __str__(self) -> str:
        return self.path
