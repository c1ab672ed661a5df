"""Distributable packaging per platform.

- linux: symlink ``usr/local/bin/<executable>`` to the installed binary, then
  ``dpkg-deb`` builds the ``.deb`` into the output root.
- mac:   ``ditto`` zips the (already signed) bundle for notarization.
- win:   the Windows SDK ``MakeAppx.exe pack`` turns the bundle directory,
  ``AppxManifest.xml`` included, into ``<bundle>.appx``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from opkit.domain.layout import LayoutPlan
from opkit.domain.platforms import Platform
from opkit.errors import ConfigError, FilesystemError
from opkit.infrastructure.filesystem import create_symlink
from opkit.services.base import BaseService

logger = logging.getLogger(__name__)

APPX_MANIFEST = "AppxManifest.xml"


class Packager(BaseService):
    """Produce the platform's distributable from a built bundle."""

    def package(self, plan: LayoutPlan) -> Path:
        """Dispatch to the platform packager. Returns the archive path."""
        if plan.platform is Platform.LINUX:
            self.package_deb(plan)
        elif plan.platform is Platform.MAC:
            self.archive_bundle(plan)
        else:
            self.package_appx(plan)
        return plan.archive_path

    def package_deb(self, plan: LayoutPlan) -> None:
        assert plan.symlink_path is not None
        assert plan.symlink_target is not None
        create_symlink(plan.symlink_path, plan.symlink_target)
        self._runner.check(
            [
                "dpkg-deb",
                "--build",
                "--root-owner-group",
                str(plan.bundle_root),
                str(plan.output_root),
            ],
            action="create deb package",
        )
        logger.info("created deb package: %s", plan.archive_path)

    def archive_bundle(self, plan: LayoutPlan) -> None:
        self._runner.check(
            [
                "ditto",
                "-c",
                "-k",
                "--sequesterRsrc",
                "--keepParent",
                str(plan.bundle_root),
                str(plan.archive_path),
            ],
            action="create zip for notarization",
        )
        logger.info("created zip artifact: %s", plan.archive_path)

    def package_appx(self, plan: LayoutPlan) -> None:
        """Pack the bundle directory into ``<bundle>.appx`` with ``MakeAppx.exe``.

        Raises:
            ConfigError: ``MAKEAPPX`` is unset.
            FilesystemError: The bundle has no ``AppxManifest.xml``.
        """
        if not self._env.makeappx:
            msg = "missing env var MAKEAPPX, should be the path to the Windows SDK MakeAppx.exe binary."
            raise ConfigError(msg)
        manifest = plan.bundle_root / APPX_MANIFEST
        if not manifest.is_file():
            msg = f"Could not find {manifest}"
            raise FilesystemError(msg)
        self._runner.check(
            [
                self._env.makeappx,
                "pack",
                "/o",
                "/d",
                str(plan.bundle_root),
                "/p",
                str(plan.archive_path),
            ],
            action="create appx package",
        )
        logger.info("package saved: %s", plan.archive_path)
