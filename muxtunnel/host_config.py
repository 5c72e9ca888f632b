# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Centralized host-side configuration for muxtunnel."""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from muxtunnel.models.host_config import HostConfigModel, PortRange, TunnelDefaults
from muxtunnel.paths import HostPaths

logger = logging.getLogger(__name__)


class HostConfig:
    """Manages user configuration from ~/.config/muxtunnel/config.yml."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or HostPaths.config_file()
        self._model = self._load()

    def _load(self) -> HostConfigModel:
        """Load configuration from file, falling back to defaults."""
        if not self.config_path.exists():
            return HostConfigModel()

        try:
            with open(self.config_path) as f:
                raw_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {self.config_path}: {e}")
            return HostConfigModel()

        if not isinstance(raw_config, dict):
            logger.warning(f"Ignoring {self.config_path}: expected a mapping at top level")
            return HostConfigModel()

        try:
            return HostConfigModel.model_validate(raw_config)
        except ValidationError as e:
            logger.warning(f"Config validation errors in {self.config_path}: {e}")
            return HostConfigModel()

    @property
    def defaults(self) -> TunnelDefaults:
        return self._model.defaults

    @property
    def ports(self) -> PortRange:
        return self._model.ports

    @property
    def ssh_binary(self) -> str:
        return self._model.ssh.binary

    @property
    def control_path(self) -> str:
        """Control socket path with ~ expanded."""
        return HostPaths.control_path(self._model.ssh.control_path)


_config: Optional[HostConfig] = None


def get_config() -> HostConfig:
    """Get the global host configuration."""
    global _config
    if _config is None:
        _config = HostConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    global _config
    _config = None
