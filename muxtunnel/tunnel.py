# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Tunnel sessions: one local port forwarded through a shared ssh master.

Usage:
    from muxtunnel import Remote, TunnelConfig, TunnelSession

    config = TunnelConfig(ssh_host="db.example.com", ssh_user="deploy")
    with TunnelSession(config, Remote.tcp(5432)) as tunnel:
        connect("127.0.0.1", tunnel.used_port)

State machine:

    IDLE --start()--> STARTING --forward ok--> ATTACHED --stop()--> IDLE
                          |                        |
                          +--forward failed--> IDLE <--master gone (probe)

used_port is set exactly while the session is ATTACHED.

A session is meant to be used from one thread. Calling start() concurrently
on the same instance is not supported; use one session per thread.
"""

from enum import Enum
from typing import Optional, Tuple

from muxtunnel import registry
from muxtunnel.errors import TunnelStartFailedError, TunnelStopFailedError
from muxtunnel.master import ensure_master_running, is_master_running, stop_master
from muxtunnel.models.endpoint import Remote
from muxtunnel.models.tunnel_config import TunnelConfig
from muxtunnel.port_utils import find_free_port
from muxtunnel.ssh_control import SSHControl
from muxtunnel.utils.logging import get_logger

logger = get_logger(__name__)


class TunnelState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    ATTACHED = "attached"


class TunnelSession:
    """Forwards a local loopback port to a Remote through an ssh ControlMaster."""

    def __init__(
        self,
        config: TunnelConfig,
        remote: Remote,
        control: Optional[SSHControl] = None,
        port_range: Optional[Tuple[int, int]] = None,
    ):
        """
        Args:
            config: Tunnel settings
            remote: Forward target on the SSH server side
            control: ssh control interface, built from config if not given
            port_range: (start, end) scanned for a free local port when
                config.local_port is unset; defaults to the host config range
        """
        if port_range is None:
            from muxtunnel.host_config import get_config

            ports = get_config().ports
            port_range = (ports.range_start, ports.range_end)

        self.config = config
        self.remote = remote
        self.control = control or SSHControl(config)
        self.port_range = port_range
        self._state = TunnelState.IDLE
        self._used_port: Optional[int] = None

    def __repr__(self) -> str:
        return (
            f"TunnelSession({self.config.destination} -> {self.remote.path}, "
            f"state={self._state.value}, used_port={self._used_port})"
        )

    @property
    def used_port(self) -> Optional[int]:
        """Local port of the attached forward, None when not attached."""
        return self._used_port

    @property
    def state(self) -> TunnelState:
        return self._state

    @property
    def is_attached(self) -> bool:
        return self._state is TunnelState.ATTACHED

    def _transition(self, state: TunnelState, port: Optional[int] = None) -> None:
        """Single place where state and used_port change."""
        if state is not self._state:
            logger.debug(
                f"{self.config.destination} -> {self.remote.path}: "
                f"{self._state.value} -> {state.value}"
            )
        self._state = state
        self._used_port = port if state is TunnelState.ATTACHED else None

        if state is TunnelState.ATTACHED:
            registry.register(self)
        else:
            registry.unregister(self)

    def _forget_forward(self) -> None:
        """Drop forward state after the master was found dead."""
        if self._state is TunnelState.IDLE:
            return
        logger.warning(
            f"SSH master for {self.config.destination} is gone, "
            f"forgetting local port {self._used_port}"
        )
        self._transition(TunnelState.IDLE)

    def _master_running(self) -> bool:
        running = is_master_running(self.control)
        if not running:
            self._forget_forward()
        return running

    def start(self) -> int:
        """Make sure the master is up and the forward attached.

        Safe to call repeatedly: once attached, further calls return the same
        port without sending another forward request.

        Returns:
            The local port

        Raises:
            ProbeFailedError, MasterStartFailedError: master problems
            PortExhaustedError: no free local port
            TunnelStartFailedError: ssh refused the forward (e.g. port taken meanwhile)
        """
        ensure_master_running(self.control, on_not_running=self._forget_forward)

        if self._state is TunnelState.ATTACHED:
            logger.debug(f"Forward already attached on local port {self._used_port}")
            return self._used_port

        self._transition(TunnelState.STARTING)
        try:
            port = self.config.local_port or find_free_port(*self.port_range)
            result = self.control.forward(port, self.remote)
        except Exception:
            self._transition(TunnelState.IDLE)
            raise

        if result.returncode != 0:
            self._transition(TunnelState.IDLE)
            raise TunnelStartFailedError(
                f"Could not forward local port {port} to {self.remote.path}",
                command=list(result.args),
                returncode=result.returncode,
                stderr=result.stderr or "",
                hint=f"Local port {port} may already be in use",
            )

        self._transition(TunnelState.ATTACHED, port)
        logger.success(
            f"Forwarding 127.0.0.1:{port} -> {self.remote.path} via {self.config.destination}"
        )
        return port

    def stop(self) -> None:
        """Cancel the forward. No-op when nothing is attached or the master is gone.

        Raises:
            ProbeFailedError: the master probe failed
            TunnelStopFailedError: ssh refused the cancel; used_port is kept so
                the call can be retried
        """
        if self._used_port is None:
            return
        if not self._master_running():
            return

        port = self._used_port
        result = self.control.cancel(port, self.remote)
        if result.returncode != 0:
            raise TunnelStopFailedError(
                f"Could not cancel forward of local port {port} to {self.remote.path}",
                command=list(result.args),
                returncode=result.returncode,
                stderr=result.stderr or "",
            )

        self._transition(TunnelState.IDLE)
        logger.info(f"Stopped forward on local port {port}.")

    def stop_master(self) -> None:
        """Shut the whole master connection down, including other sessions' forwards.

        Rarely needed; the master exits on its own after auto_disconnect_timeout.
        """
        stop_master(self.control)
        self._transition(TunnelState.IDLE)

    def close(self) -> None:
        """stop(), logging instead of raising. Used on scope exit and at process exit."""
        try:
            self.stop()
        except Exception as e:
            logger.error(f"Could not tear down tunnel on local port {self._used_port}", exc=e)

    def __enter__(self) -> "TunnelSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.config.disconnect_on_destroy:
            self.close()
        return False
