# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Command construction and invocation for the ssh control socket.

Every operation is one `ssh` process run to completion:

    check   ssh -O check   <control options> <destination>
    start   ssh            <control options> <destination>
    forward ssh -O forward <forward options> <control options> <destination>
    cancel  ssh -O cancel  <forward options> <control options> <destination>
    exit    ssh -O exit    <control options> <destination>

The control options are the same for all five so that ssh resolves the
same control socket every time.
"""

import shlex
import subprocess
from typing import IO, Callable, List, Optional, Type, Union

from muxtunnel.errors import (
    MasterStartFailedError,
    MasterStopFailedError,
    ProbeFailedError,
    SSHCommandError,
    TunnelStartFailedError,
    TunnelStopFailedError,
)
from muxtunnel.models.endpoint import Remote
from muxtunnel.models.tunnel_config import DEFAULT_SSH_PORT, TunnelConfig
from muxtunnel.port_utils import LOOPBACK
from muxtunnel.utils.logging import get_logger

logger = get_logger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


class SSHControl:
    """Talks to one ssh ControlMaster, identified by the session's user/host/port."""

    def __init__(
        self,
        config: TunnelConfig,
        ssh_binary: Optional[str] = None,
        control_path: Optional[str] = None,
        runner: Optional[Runner] = None,
    ):
        """
        Args:
            config: Tunnel settings (destination, ControlPersist timeout)
            ssh_binary: ssh executable, defaults to the host config value
            control_path: Control socket path template, defaults to the host config value
            runner: subprocess.run compatible callable
        """
        if ssh_binary is None or control_path is None:
            from muxtunnel.host_config import get_config

            host_config = get_config()
            ssh_binary = ssh_binary or host_config.ssh_binary
            control_path = control_path or host_config.control_path

        self.config = config
        self.ssh_binary = ssh_binary
        self.control_path = control_path
        self._run = runner if runner is not None else subprocess.run

    def control_options(self) -> List[str]:
        return [
            "-v",
            "-f",
            "-N",
            "-o",
            "ControlMaster=auto",
            "-o",
            f"ControlPersist={self.config.auto_disconnect_timeout}",
            "-S",
            self.control_path,
        ]

    def destination_args(self) -> List[str]:
        """[-p port] [user@]host, with -p left out for port 22."""
        args = []
        if self.config.ssh_port != DEFAULT_SSH_PORT:
            args.extend(["-p", str(self.config.ssh_port)])
        args.append(self.config.destination)
        return args

    @staticmethod
    def forward_options(local_port: int, remote: Remote) -> List[str]:
        return [
            "-o",
            "ExitOnForwardFailure=yes",
            f"-L{LOOPBACK}:{local_port}:{remote.path}",
        ]

    def build_command(self, operation: Optional[str] = None, extra: Optional[List[str]] = None) -> List[str]:
        command = [self.ssh_binary]
        if operation:
            command.extend(["-O", operation])
        command.extend(extra or [])
        command.extend(self.control_options())
        command.extend(self.destination_args())
        return command

    def check(self) -> subprocess.CompletedProcess:
        return self._invoke(self.build_command("check"), ProbeFailedError)

    def start_master(self, output: Union[IO, int, None] = subprocess.DEVNULL) -> subprocess.CompletedProcess:
        """Start the master connection; ssh backgrounds itself after authenticating.

        Output goes to `output` (a file or DEVNULL) rather than a pipe: the
        backgrounded ssh keeps its stdio open, so reading a pipe to EOF would
        block until the master exits.
        """
        return self._invoke(
            self.build_command(),
            MasterStartFailedError,
            stdout=output,
            stderr=subprocess.STDOUT,
        )

    def forward(self, local_port: int, remote: Remote) -> subprocess.CompletedProcess:
        return self._invoke(
            self.build_command("forward", self.forward_options(local_port, remote)),
            TunnelStartFailedError,
        )

    def cancel(self, local_port: int, remote: Remote) -> subprocess.CompletedProcess:
        return self._invoke(
            self.build_command("cancel", self.forward_options(local_port, remote)),
            TunnelStopFailedError,
        )

    def exit(self) -> subprocess.CompletedProcess:
        return self._invoke(self.build_command("exit"), MasterStopFailedError)

    def _invoke(
        self,
        command: List[str],
        error_cls: Type[SSHCommandError],
        **kwargs,
    ) -> subprocess.CompletedProcess:
        """Run command and return the finished process, whatever its exit code.

        Only a failure to launch ssh at all raises (as error_cls).
        """
        if "stdout" not in kwargs:
            kwargs["capture_output"] = True
            kwargs["text"] = True
        logger.debug(f"Running: {shlex.join(command)}")
        try:
            result = self._run(command, stdin=subprocess.DEVNULL, check=False, **kwargs)
        except OSError as e:
            raise error_cls(
                f"Could not run {self.ssh_binary}: {e}",
                command=command,
                hint="Is the OpenSSH client installed and on PATH?",
            ) from e
        logger.debug(f"{self.ssh_binary} exited with {result.returncode}")
        return result
