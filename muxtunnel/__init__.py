# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""muxtunnel - SSH port forwards over a shared ControlMaster connection."""

__version__ = "0.1.0"

from muxtunnel.errors import (
    InvalidInputError,
    MasterStartFailedError,
    MasterStopFailedError,
    MuxTunnelError,
    PortExhaustedError,
    ProbeFailedError,
    SSHCommandError,
    TunnelStartFailedError,
    TunnelStopFailedError,
)
from muxtunnel.models.endpoint import Remote
from muxtunnel.models.tunnel_config import TunnelConfig
from muxtunnel.port_utils import find_free_port
from muxtunnel.tunnel import TunnelSession, TunnelState

__all__ = [
    "InvalidInputError",
    "MasterStartFailedError",
    "MasterStopFailedError",
    "MuxTunnelError",
    "PortExhaustedError",
    "ProbeFailedError",
    "Remote",
    "SSHCommandError",
    "TunnelConfig",
    "TunnelSession",
    "TunnelStartFailedError",
    "TunnelState",
    "TunnelStopFailedError",
    "find_free_port",
]
