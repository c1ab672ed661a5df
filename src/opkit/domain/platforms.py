"""Supported target platforms."""

from __future__ import annotations

import sys
from enum import StrEnum


class Platform(StrEnum):
    """Desktop platforms the pipeline can build for."""

    MAC = "mac"
    LINUX = "linux"
    WIN = "win"

    @property
    def command_key(self) -> str:
        """Settings key holding this platform's user build command."""
        return f"{self.value}_cmd"

    @property
    def executable_suffix(self) -> str:
        return ".exe" if self is Platform.WIN else ""


def current_platform() -> Platform:
    """Detect the platform the pipeline is running on."""
    if sys.platform == "darwin":
        return Platform.MAC
    if sys.platform.startswith("win") or sys.platform == "cygwin":
        return Platform.WIN
    return Platform.LINUX
