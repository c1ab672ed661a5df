"""Process environment and CLI flag models.

Project settings come from ``settings.config`` (see
:mod:`opkit.domain.settings`). This module covers the two other inputs:

- :class:`BuildEnvironment`: environment variables read once through
  Pydantic Settings (compiler, signing and review credentials).
- :class:`PipelineFlags`: the stage toggles collected by the CLI.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

from opkit.domain.platforms import Platform

DEFAULT_COMPILERS: dict[Platform, str] = {
    Platform.MAC: "/usr/bin/g++",
    Platform.LINUX: "/usr/bin/g++",
    Platform.WIN: "clang++",
}


def _default_prefix() -> Path:
    return Path.home() / ".opkit"


class BuildEnvironment(BaseSettings):
    """Environment variables consumed by the pipeline.

    Field names are usable as init kwargs (tests); the environment is read
    through the upper-case aliases.
    """

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "env_ignore_empty": True,
        "extra": "ignore",
    }

    cxx: str | None = Field(default=None, validation_alias="CXX")
    cxx_flags: str = Field(default="", validation_alias="CXX_FLAGS")
    prefix: Path = Field(default_factory=_default_prefix, validation_alias="OPKIT_PREFIX")
    signtool: str | None = Field(default=None, validation_alias="SIGNTOOL")
    makeappx: str | None = Field(default=None, validation_alias="MAKEAPPX")
    csc_key_password: SecretStr = Field(
        default=SecretStr(""), validation_alias="CSC_KEY_PASSWORD"
    )
    apple_id: str | None = Field(default=None, validation_alias="APPLE_ID")
    apple_id_password: SecretStr | None = Field(default=None, validation_alias="APPLE_ID_PASSWORD")

    def compiler(self, platform: Platform) -> str:
        """Configured compiler, or the platform default when ``CXX`` is unset."""
        return self.cxx or DEFAULT_COMPILERS[platform]

    def secrets(self) -> list[str]:
        """Secret values to redact from logged commands."""
        values = [self.csc_key_password.get_secret_value()]
        if self.apple_id_password is not None:
            values.append(self.apple_id_password.get_secret_value())
        return [v for v in values if v]


class PipelineFlags(BaseModel):
    """Stage toggles selected on the command line."""

    model_config = {"frozen": True}

    store: bool = False
    codesign: bool = False
    entitlements: bool = False
    notarize: bool = False
    only_user_build: bool = False
    package: bool = False
    run: bool = False
    debug: bool = True


class OutputOptions(BaseModel):
    """How results and logs are presented."""

    model_config = {"frozen": True}

    json_output: bool = False
    verbose: bool = False
    log_json: bool = False
