# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Pydantic models for the user config file (~/.config/muxtunnel/config.yml)."""

import re

from pydantic import BaseModel, Field, field_validator, model_validator

# sshd_config TIME_FORMATS: one or more "<number>[s|m|h|d|w]" groups,
# a group without a unit counts as seconds (e.g. "600", "1h30m").
# Every group but the last must carry a unit, so digit runs split one way only.
TIMEOUT_PATTERN = re.compile(r"(?:\d+[smhdw])*\d+[smhdw]?", re.IGNORECASE)


class SSHSettings(BaseModel):
    """How the ssh client is invoked."""

    binary: str = "ssh"
    control_path: str = "~/.ssh/master-%r@%h:%p"

    @field_validator("binary", "control_path")
    @classmethod
    def not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value


class TunnelDefaults(BaseModel):
    """Defaults applied to TunnelConfig.from_dict when a key is missing."""

    auto_disconnect_timeout: str = "10s"
    debug_master_output: bool = False
    disconnect_on_destroy: bool = True

    @field_validator("auto_disconnect_timeout")
    @classmethod
    def valid_timeout(cls, value: str) -> str:
        if not TIMEOUT_PATTERN.fullmatch(value):
            raise ValueError(f"invalid time format: {value!r}")
        return value


class PortRange(BaseModel):
    """Range scanned for a free local port."""

    range_start: int = Field(default=49152, ge=1, le=65535)
    range_end: int = Field(default=65535, ge=1, le=65535)

    @model_validator(mode="after")
    def ordered(self) -> "PortRange":
        if self.range_start > self.range_end:
            raise ValueError("range_start must not be greater than range_end")
        return self


class HostConfigModel(BaseModel):
    """Root of config.yml."""

    ssh: SSHSettings = Field(default_factory=SSHSettings)
    defaults: TunnelDefaults = Field(default_factory=TunnelDefaults)
    ports: PortRange = Field(default_factory=PortRange)
