"""Manifest template lookup with per-project override support.

Packaged defaults live in ``opkit/templates/<platform>/``. A project may
override any of them by placing a file with the same name in
``<project>/.opkit/templates/<platform>/`` or ``<project>/.opkit/templates/``.

Only Jinja2's loader machinery is used here: sources are rendered by the
placeholder engine in :mod:`opkit.domain.templates`, not by Jinja2.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import BaseLoader, ChoiceLoader, Environment, FileSystemLoader, PackageLoader
from jinja2.exceptions import TemplateNotFound

from opkit.domain.platforms import Platform
from opkit.errors import ConfigError


class ManifestTemplates:
    """Resolve raw template text for one platform."""

    def __init__(self, platform: Platform, *, project_root: Path | None = None) -> None:
        loaders: list[BaseLoader] = []
        if project_root is not None:
            override_root = project_root / ".opkit" / "templates"
            loaders.append(
                FileSystemLoader([str(override_root / platform.value), str(override_root)])
            )
        loaders.append(PackageLoader("opkit", f"templates/{platform.value}"))
        self._env = Environment(loader=ChoiceLoader(loaders), keep_trailing_newline=True)
        self.platform = platform

    def source(self, name: str) -> str:
        """Return the raw text of template *name*.

        Raises:
            ConfigError: No override or packaged template exists.
        """
        assert self._env.loader is not None
        try:
            text, _filename, _uptodate = self._env.loader.get_source(self._env, name)
        except TemplateNotFound as exc:
            msg = f"No {self.platform} template named {name!r}"
            raise ConfigError(msg) from exc
        return text
