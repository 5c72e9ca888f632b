# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Centralized path definitions for muxtunnel.

Usage:
    from muxtunnel.paths import HostPaths

    config_file = HostPaths.config_file()
    control_path = HostPaths.control_path()
"""

import os
from pathlib import Path
from typing import Optional

# ssh expands %r (remote user), %h (host) and %p (port) itself
DEFAULT_CONTROL_PATH = "~/.ssh/master-%r@%h:%p"


class HostPaths:
    """Paths on the machine where the ssh client runs."""

    @staticmethod
    def config_dir() -> Path:
        """~/.config/muxtunnel/"""
        return Path.home() / ".config" / "muxtunnel"

    @staticmethod
    def config_file() -> Path:
        """~/.config/muxtunnel/config.yml (MUXTUNNEL_CONFIG overrides)."""
        env_path = os.getenv("MUXTUNNEL_CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        return HostPaths.config_dir() / "config.yml"

    @staticmethod
    def control_path(template: Optional[str] = None) -> str:
        """Control socket path handed to `ssh -S`.

        Only a leading ~ is expanded. The %-tokens are left for ssh.
        """
        return os.path.expanduser(template or DEFAULT_CONTROL_PATH)

    @staticmethod
    def log_file() -> Optional[Path]:
        """Log file from MUXTUNNEL_LOG_FILE, or None when file logging is off."""
        env_log_file = os.getenv("MUXTUNNEL_LOG_FILE")
        if env_log_file:
            return Path(env_log_file).expanduser()
        return None
