# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Immutable per-session tunnel settings."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from muxtunnel.errors import InvalidInputError
from muxtunnel.models.endpoint import validate_port
from muxtunnel.models.host_config import TIMEOUT_PATTERN

DEFAULT_SSH_PORT = 22


@dataclass(frozen=True)
class TunnelConfig:
    """Settings for one TunnelSession.

    Password authentication is not supported; use ssh keys or an agent.

    auto_disconnect_timeout is handed to ControlPersist: the master closes
    itself after this much idle time with no forwards attached. Units:

        (none)  seconds     600    -> 600 seconds
        s | S   seconds     10m    -> 10 minutes
        m | M   minutes     1h30m  -> 90 minutes
        h | H   hours
        d | D   days
        w | W   weeks
    """

    ssh_host: str
    ssh_user: str = ""
    ssh_port: int = DEFAULT_SSH_PORT
    # Forced local port; a free one is picked when unset
    local_port: Optional[int] = None
    auto_disconnect_timeout: str = "10s"
    # Tear the forward down when the session's `with` block ends
    disconnect_on_destroy: bool = True
    debug_master_output: bool = False

    def __post_init__(self):
        if not self.ssh_host:
            raise InvalidInputError("Invalid ssh_host given. Must be a non-empty string")
        if self.ssh_user is None:
            object.__setattr__(self, "ssh_user", "")
        if not isinstance(self.auto_disconnect_timeout, str) or not TIMEOUT_PATTERN.fullmatch(
            self.auto_disconnect_timeout
        ):
            raise InvalidInputError(
                "Invalid auto_disconnect_timeout format given. Must be in the format of "
                f'<number>[s|m|h|d|w] (given: "{self.auto_disconnect_timeout}")'
            )
        if self.local_port is not None:
            validate_port(self.local_port, "local_port")
        validate_port(self.ssh_port, "ssh_port")

    @property
    def destination(self) -> str:
        """[user@]host"""
        if self.ssh_user:
            return f"{self.ssh_user}@{self.ssh_host}"
        return self.ssh_host

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TunnelConfig":
        """Create config from a mapping, filling gaps from the host config defaults."""
        from muxtunnel.host_config import get_config

        defaults = get_config().defaults
        return cls(
            ssh_host=data.get("ssh_host", ""),
            ssh_user=data.get("ssh_user") or "",
            ssh_port=data.get("ssh_port", DEFAULT_SSH_PORT),
            local_port=data.get("local_port"),
            auto_disconnect_timeout=data.get(
                "auto_disconnect_timeout", defaults.auto_disconnect_timeout
            ),
            disconnect_on_destroy=data.get(
                "disconnect_on_destroy", defaults.disconnect_on_destroy
            ),
            debug_master_output=data.get("debug_master_output", defaults.debug_master_output),
        )
