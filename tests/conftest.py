# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Pytest fixtures for muxtunnel tests.

No real ssh is run. FakeSSH stands in for subprocess.run and keeps the
state a control socket would have (master up/down, attached forwards), so
tests can assert on both the issued command lines and the resulting state.
"""

import subprocess
from typing import Callable, Dict, List, Optional, Set, Tuple

import pytest

from muxtunnel import registry
from muxtunnel.host_config import reset_config
from muxtunnel.models.endpoint import Remote
from muxtunnel.models.tunnel_config import TunnelConfig
from muxtunnel.ssh_control import SSHControl
from muxtunnel.tunnel import TunnelSession

CONTROL_PATH = "/tmp/muxtunnel-test/master-%r@%h:%p"


class FakeSSH:
    """subprocess.run replacement that emulates `ssh` with a control socket."""

    def __init__(self, master_running: bool = False):
        self.master_running = master_running
        self.forwards: Set[str] = set()
        self.calls: List[List[str]] = []
        self.kwargs: List[dict] = []
        # operation -> (returncode, stderr) to force a failure
        self.fail: Dict[str, Tuple[int, str]] = {}
        self.start_brings_up_master = True
        self.start_returncode = 0
        self.master_output = "debug1: Reading configuration data /etc/ssh/ssh_config\n"
        self.on_start: Optional[Callable[[], None]] = None

    @staticmethod
    def operation(command: List[str]) -> str:
        if "-O" in command:
            return command[command.index("-O") + 1]
        return "start"

    @staticmethod
    def forward_spec(command: List[str]) -> Optional[str]:
        for arg in command:
            if arg.startswith("-L"):
                return arg[2:]
        return None

    def commands(self, operation: str) -> List[List[str]]:
        return [c for c in self.calls if self.operation(c) == operation]

    def count(self, operation: str) -> int:
        return len(self.commands(operation))

    def __call__(self, command, **kwargs):
        command = list(command)
        self.calls.append(command)
        self.kwargs.append(kwargs)
        op = self.operation(command)

        if op in self.fail:
            returncode, stderr = self.fail[op]
            return subprocess.CompletedProcess(command, returncode, "", stderr)

        handler = getattr(self, f"_op_{op}")
        return handler(command, **kwargs)

    def _not_running(self, command):
        return subprocess.CompletedProcess(
            command, 255, "", "Control socket connect(/tmp/x): No such file or directory\n"
        )

    def _op_check(self, command, **kwargs):
        if not self.master_running:
            return self._not_running(command)
        return subprocess.CompletedProcess(command, 0, "", "Master running (pid=4242)\n")

    def _op_start(self, command, **kwargs):
        if self.on_start is not None:
            self.on_start()
        output = kwargs.get("stdout")
        if hasattr(output, "write"):
            output.write(self.master_output.encode())
        if self.start_brings_up_master:
            self.master_running = True
        return subprocess.CompletedProcess(command, self.start_returncode)

    def _op_forward(self, command, **kwargs):
        if not self.master_running:
            return self._not_running(command)
        self.forwards.add(self.forward_spec(command))
        return subprocess.CompletedProcess(command, 0, "", "")

    def _op_cancel(self, command, **kwargs):
        if not self.master_running:
            return self._not_running(command)
        self.forwards.discard(self.forward_spec(command))
        return subprocess.CompletedProcess(command, 0, "", "")

    def _op_exit(self, command, **kwargs):
        if not self.master_running:
            return self._not_running(command)
        self.master_running = False
        self.forwards.clear()
        return subprocess.CompletedProcess(command, 0, "", "Exit request sent.\n")


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point the config file at an empty temp path and keep exit hooks out of the test process."""
    monkeypatch.setenv("MUXTUNNEL_CONFIG", str(tmp_path / "config.yml"))
    monkeypatch.delenv("MUXTUNNEL_LOG_FILE", raising=False)
    monkeypatch.delenv("MUXTUNNEL_QUIET", raising=False)
    monkeypatch.setattr(registry, "_installed", True)
    monkeypatch.setattr("muxtunnel.utils.logging._quiet_mode", False)
    monkeypatch.setattr("muxtunnel.utils.logging._debug_mode", False)
    reset_config()
    yield
    registry._sessions.clear()
    reset_config()


@pytest.fixture
def fake_ssh():
    return FakeSSH()


@pytest.fixture
def running_ssh():
    """FakeSSH with a master already up."""
    return FakeSSH(master_running=True)


@pytest.fixture
def config():
    return TunnelConfig(ssh_host="example")


@pytest.fixture
def make_control():
    """Factory: SSHControl wired to a FakeSSH."""

    def _make(config: TunnelConfig, fake: FakeSSH) -> SSHControl:
        return SSHControl(config, ssh_binary="ssh", control_path=CONTROL_PATH, runner=fake)

    return _make


@pytest.fixture
def make_session(make_control):
    """Factory: TunnelSession for ssh_host "example" forwarding to remote port 5432 by default."""

    def _make(
        fake: FakeSSH,
        config: Optional[TunnelConfig] = None,
        remote: Optional[Remote] = None,
        **kwargs,
    ) -> TunnelSession:
        config = config or TunnelConfig(ssh_host="example")
        remote = remote or Remote.tcp(5432)
        return TunnelSession(config, remote, control=make_control(config, fake), **kwargs)

    return _make


@pytest.fixture
def system_ssh(monkeypatch, fake_ssh):
    """FakeSSH installed as subprocess.run, for code that builds its own SSHControl."""
    monkeypatch.setattr("muxtunnel.ssh_control.subprocess.run", fake_ssh)
    return fake_ssh
