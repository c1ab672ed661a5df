"""Project settings: the ``settings.config`` key/value model.

The file is line-oriented ``key: value`` text. Blank lines and lines whose
first non-blank character is ``#`` are ignored. Each remaining line splits on
the first colon; key and value are trimmed, the value is otherwise kept
verbatim (later duplicates win, order of first appearance is preserved).

INVARIANT: :func:`validate_settings` runs before any side effect of the
pipeline. The debug-mode suffix is applied at most once per settings object.
"""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

from pydantic import BaseModel, Field

from opkit.domain.platforms import Platform
from opkit.errors import ConfigError

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.config"

REQUIRED_KEYS: tuple[str, ...] = ("name", "title", "executable", "output", "version", "arch")
COMMAND_KEY = "_cmd"

DEBUG_SUFFIX = "-dev"
DEBUG_FIELDS: tuple[str, ...] = ("name", "title", "executable")

# Characters encodeURIComponent leaves alone.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class Settings(BaseModel):
    """Ordered string-to-string settings mapping.

    Attributes:
        values: Every parsed key, plus the synthetic ``_cmd`` key copied from
            the running platform's build command.
        source: Raw text of the settings file (embedded into the binary).
        debug_applied: Whether :func:`apply_debug_mode` already ran.
    """

    model_config = {"frozen": True}

    values: dict[str, str] = Field(default_factory=dict)
    source: str = ""
    debug_applied: bool = False

    def __getitem__(self, key: str) -> str:
        return self.values[key]

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def get(self, key: str, default: str = "") -> str:
        return self.values.get(key, default)

    @property
    def name(self) -> str:
        return self.values["name"]

    @property
    def title(self) -> str:
        return self.values["title"]

    @property
    def executable(self) -> str:
        return self.values["executable"]

    @property
    def output(self) -> str:
        return self.values["output"]

    @property
    def version(self) -> str:
        return self.values["version"]

    @property
    def arch(self) -> str:
        return self.values["arch"]

    @property
    def build_command(self) -> str:
        return self.values[COMMAND_KEY]


def _iter_entries(text: str) -> list[tuple[str, str]]:
    entries: list[tuple[str, str]] = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(":")
        if not sep:
            logger.warning("Ignoring settings line %d without a colon: %r", lineno, line)
            continue
        entries.append((key.strip(), value.strip()))
    return entries


def parse_settings(text: str, platform: Platform) -> Settings:
    """Parse settings text, copying *platform*'s build command into ``_cmd``."""
    values: dict[str, str] = {}
    for key, value in _iter_entries(text):
        values[key] = value
    command = values.get(platform.command_key)
    if command is not None:
        values[COMMAND_KEY] = command
    return Settings(values=values, source=text)


def load_settings(project_root: Path, platform: Platform) -> Settings:
    """Read ``settings.config`` from *project_root*.

    Raises:
        ConfigError: The file is missing or unreadable.
    """
    path = project_root / SETTINGS_FILENAME
    if not path.is_file():
        msg = f"Settings file not found: {path}"
        raise ConfigError(msg)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Unable to read {path}: {exc}"
        raise ConfigError(msg) from exc
    return parse_settings(text, platform)


def validate_settings(settings: Settings) -> None:
    """Check the build command and every required key are present and non-empty.

    Raises:
        ConfigError: Naming the first missing key.
    """
    if not settings.get(COMMAND_KEY):
        keys = ", ".join(f"'{p.command_key}'" for p in Platform)
        msg = f"at least one of {keys} key/value is required"
        raise ConfigError(msg)
    for key in REQUIRED_KEYS:
        if not settings.get(key):
            msg = f"'{key}' key/value is required"
            raise ConfigError(msg)


def apply_debug_mode(settings: Settings) -> Settings:
    """Return a copy with :data:`DEBUG_SUFFIX` appended to the identity fields.

    Raises:
        ValueError: The suffix was already applied to *settings*.
    """
    if settings.debug_applied:
        msg = "Debug mode suffix already applied"
        raise ValueError(msg)
    values = dict(settings.values)
    for key in DEBUG_FIELDS:
        values[key] = values.get(key, "") + DEBUG_SUFFIX
    return settings.model_copy(update={"values": values, "debug_applied": True})


def serialize_settings(source: str) -> str:
    """Percent-encode settings text with comment and blank lines removed.

    The result is a single token safe to pass as a preprocessor define so the
    compiled binary can embed its own configuration.
    """
    lines = [
        line.strip()
        for line in source.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    return quote("\n".join(lines), safe=_URI_COMPONENT_SAFE)
