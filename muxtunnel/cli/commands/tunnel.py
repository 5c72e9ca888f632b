# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Tunnel commands: forward, check, stop-master."""

import sys
import time

import click

from muxtunnel.cli import cli
from muxtunnel.cli.helpers import build_config, console, handle_errors, ssh_target_options
from muxtunnel.master import is_master_running, stop_master
from muxtunnel.models.endpoint import Remote
from muxtunnel.ssh_control import SSHControl
from muxtunnel.tunnel import TunnelSession


def _wait_for_interrupt() -> None:
    """Block until Ctrl+C."""
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass


@cli.command()
@click.argument("ssh_host")
@click.argument("remote")
@ssh_target_options
@click.option("--local-port", "-L", type=int, default=None,
              help="Local port to listen on (default: first free port).")
@click.option("--debug-master", "debug_master_output", is_flag=True,
              help="Show ssh output while starting the master.")
@handle_errors
def forward(ssh_host, remote, ssh_user, ssh_port, auto_disconnect_timeout, local_port,
            debug_master_output):
    """Forward a local port to REMOTE through SSH_HOST until Ctrl+C.

    REMOTE is PORT, HOST:PORT (as seen from SSH_HOST) or a socket path.
    The local port is printed on stdout.
    """
    config = build_config(
        ssh_host,
        ssh_user=ssh_user,
        ssh_port=ssh_port,
        local_port=local_port,
        auto_disconnect_timeout=auto_disconnect_timeout,
        debug_master_output=debug_master_output or None,
        disconnect_on_destroy=True,
    )
    with TunnelSession(config, Remote.parse(remote)) as session:
        click.echo(session.used_port)
        console.print("[dim]Press Ctrl+C to close the tunnel[/dim]")
        _wait_for_interrupt()


@cli.command()
@click.argument("ssh_host")
@ssh_target_options
@handle_errors
def check(ssh_host, ssh_user, ssh_port, auto_disconnect_timeout):
    """Report whether a master connection to SSH_HOST is running.

    Exits 0 when running, 1 otherwise.
    """
    config = build_config(
        ssh_host,
        ssh_user=ssh_user,
        ssh_port=ssh_port,
        auto_disconnect_timeout=auto_disconnect_timeout,
    )
    if is_master_running(SSHControl(config)):
        click.echo("running")
        return
    click.echo("not running")
    sys.exit(1)


@cli.command("stop-master")
@click.argument("ssh_host")
@ssh_target_options
@handle_errors
def stop_master_command(ssh_host, ssh_user, ssh_port, auto_disconnect_timeout):
    """Close the master connection to SSH_HOST and every forward on it."""
    config = build_config(
        ssh_host,
        ssh_user=ssh_user,
        ssh_port=ssh_port,
        auto_disconnect_timeout=auto_disconnect_timeout,
    )
    if not stop_master(SSHControl(config)):
        console.print("[dim]No SSH master running[/dim]")
