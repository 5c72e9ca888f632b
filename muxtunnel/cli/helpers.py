# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Shared helpers for the muxtunnel CLI."""

import functools
import sys
from typing import Callable, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from muxtunnel.errors import InvalidInputError, MuxTunnelError, SSHCommandError
from muxtunnel.models.tunnel_config import TunnelConfig

console = Console(stderr=True)


def show_error_panel(title: str, message: str, hint: Optional[str] = None) -> None:
    """Display a formatted error panel.

    Args:
        title: Panel title (shown in red)
        message: Main error message
        hint: Optional hint text (shown with blue "Hint:" prefix)
    """
    content = escape(message)
    if hint:
        content += f"\n\n[blue]Hint:[/blue] {escape(hint)}"
    console.print(Panel(content, title=f"[red]{title}[/red]", border_style="red"))


def handle_errors(func: Callable) -> Callable:
    """Decorator that wraps CLI commands with standard error handling.

    - InvalidInputError: "Invalid Input" panel
    - SSHCommandError: "SSH Error" panel with hint if provided
    - other MuxTunnelError: "Tunnel Error" panel
    - ClickException: passed through to click
    Every handled error exits with code 1.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except click.ClickException:
            raise
        except InvalidInputError as exc:
            show_error_panel("Invalid Input", str(exc), exc.hint)
            sys.exit(1)
        except SSHCommandError as exc:
            show_error_panel("SSH Error", str(exc), exc.hint)
            sys.exit(1)
        except MuxTunnelError as exc:
            show_error_panel("Tunnel Error", str(exc), exc.hint)
            sys.exit(1)

    return wrapper


def ssh_target_options(func: Callable) -> Callable:
    """Options shared by every command that addresses an SSH server."""
    func = click.option(
        "--timeout",
        "auto_disconnect_timeout",
        default=None,
        help="Idle time before the master closes itself (e.g. 10s, 5m, 1h30m).",
    )(func)
    func = click.option("--port", "-p", "ssh_port", type=int, default=22, show_default=True,
                        help="SSH server port.")(func)
    func = click.option("--user", "-u", "ssh_user", default="", help="SSH login user.")(func)
    return func


def build_config(ssh_host: str, **kwargs) -> TunnelConfig:
    """TunnelConfig from CLI values; options left unset fall back to config.yml."""
    data = {key: value for key, value in kwargs.items() if value is not None}
    data["ssh_host"] = ssh_host
    return TunnelConfig.from_dict(data)
