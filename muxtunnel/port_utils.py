# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Local port availability checks.

A port reported free here can still be taken by another process before ssh
binds it. That race is accepted: ssh then fails the forward and the caller
sees TunnelStartFailedError.
"""

import socket

from muxtunnel.errors import InvalidInputError, PortExhaustedError
from muxtunnel.models.endpoint import validate_port

LOOPBACK = "127.0.0.1"
EPHEMERAL_PORT_START = 49152
EPHEMERAL_PORT_END = 65535


def is_port_free(port: int, host: str = LOOPBACK) -> bool:
    """Try to bind host:port; the probe socket is closed before returning."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        sock.listen(1)
        return True
    except OSError:
        return False
    finally:
        sock.close()


def find_free_port(start: int = EPHEMERAL_PORT_START, end: int = EPHEMERAL_PORT_END) -> int:
    """Return the first port in [start, end] that binds on loopback.

    Raises:
        InvalidInputError: if the range is malformed
        PortExhaustedError: if every port in the range is taken
    """
    validate_port(start, "start port")
    validate_port(end, "end port")
    if start > end:
        raise InvalidInputError(f"Invalid port range {start}-{end}")

    for port in range(start, end + 1):
        if is_port_free(port):
            return port

    raise PortExhaustedError(start, end)
