# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT

"""Tests for ssh command construction."""

import subprocess
from unittest.mock import MagicMock

import pytest

from muxtunnel.errors import ProbeFailedError, TunnelStartFailedError
from muxtunnel.models.endpoint import Remote
from muxtunnel.models.tunnel_config import TunnelConfig
from muxtunnel.ssh_control import SSHControl

CONTROL_OPTIONS = [
    "-v",
    "-f",
    "-N",
    "-o",
    "ControlMaster=auto",
    "-o",
    "ControlPersist=10s",
    "-S",
    "/tmp/muxtunnel-test/master-%r@%h:%p",
]


@pytest.fixture
def control(config, fake_ssh, make_control):
    return make_control(config, fake_ssh)


class TestCommandConstruction:
    def test_destination_default_port_omits_p(self, config, make_control, fake_ssh):
        assert make_control(config, fake_ssh).destination_args() == ["example"]

    def test_destination_custom_port(self, make_control, fake_ssh):
        config = TunnelConfig(ssh_host="example", ssh_user="deploy", ssh_port=2222)
        assert make_control(config, fake_ssh).destination_args() == ["-p", "2222", "deploy@example"]

    def test_control_options(self, control):
        assert control.control_options() == CONTROL_OPTIONS

    def test_control_persist_follows_timeout(self, make_control, fake_ssh):
        config = TunnelConfig(ssh_host="example", auto_disconnect_timeout="1h30m")
        assert "ControlPersist=1h30m" in make_control(config, fake_ssh).control_options()

    def test_forward_options_bind_loopback(self):
        assert SSHControl.forward_options(50000, Remote.tcp(5432, "db")) == [
            "-o",
            "ExitOnForwardFailure=yes",
            "-L127.0.0.1:50000:db:5432",
        ]

    def test_forward_options_socket(self):
        options = SSHControl.forward_options(50000, Remote.socket("/run/pg.sock"))
        assert options[-1] == "-L127.0.0.1:50000:/run/pg.sock"

    def test_all_operations_share_control_options(self, control, fake_ssh):
        """check/start/forward/cancel/exit must address the same control socket."""
        fake_ssh.master_running = True
        remote = Remote.tcp(5432)
        control.check()
        control.start_master()
        control.forward(50000, remote)
        control.cancel(50000, remote)
        control.exit()

        assert len(fake_ssh.calls) == 5
        for command in fake_ssh.calls:
            assert command[0] == "ssh"
            assert command[-len(CONTROL_OPTIONS) - 1 : -1] == CONTROL_OPTIONS
            assert command[-1] == "example"

    def test_forward_and_cancel_use_same_spec(self, control, fake_ssh):
        fake_ssh.master_running = True
        remote = Remote.tcp(5432)
        control.forward(50000, remote)
        control.cancel(50000, remote)
        forward, cancel = fake_ssh.calls
        assert forward[:3] == ["ssh", "-O", "forward"]
        assert cancel[:3] == ["ssh", "-O", "cancel"]
        assert forward[3:] == cancel[3:]

    def test_start_has_no_control_operation(self, control, fake_ssh):
        control.start_master()
        assert "-O" not in fake_ssh.calls[0]


class TestInvocation:
    def test_control_commands_capture_output(self, control, fake_ssh):
        control.check()
        kwargs = fake_ssh.kwargs[0]
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert kwargs["check"] is False
        assert kwargs["stdin"] is subprocess.DEVNULL

    def test_start_master_writes_to_given_output(self, control, fake_ssh):
        output = MagicMock()
        control.start_master(output)
        kwargs = fake_ssh.kwargs[0]
        assert kwargs["stdout"] is output
        assert kwargs["stderr"] is subprocess.STDOUT
        assert "capture_output" not in kwargs

    def test_nonzero_exit_is_returned(self, control, fake_ssh):
        result = control.check()
        assert result.returncode == 255

    def test_missing_binary(self, config):
        runner = MagicMock(side_effect=FileNotFoundError("ssh"))
        control = SSHControl(config, ssh_binary="ssh", control_path="/tmp/x", runner=runner)
        with pytest.raises(ProbeFailedError) as exc_info:
            control.check()
        assert exc_info.value.hint

        with pytest.raises(TunnelStartFailedError):
            control.forward(50000, Remote.tcp(80))

    def test_defaults_from_host_config(self, config, tmp_path, monkeypatch):
        from muxtunnel.host_config import reset_config

        config_file = tmp_path / "ssh.yml"
        config_file.write_text("ssh:\n  binary: /usr/local/bin/ssh\n  control_path: /run/cm-%C\n")
        monkeypatch.setenv("MUXTUNNEL_CONFIG", str(config_file))
        reset_config()

        control = SSHControl(config, runner=MagicMock())
        assert control.ssh_binary == "/usr/local/bin/ssh"
        assert control.control_path == "/run/cm-%C"
        assert control.build_command("check")[0] == "/usr/local/bin/ssh"
