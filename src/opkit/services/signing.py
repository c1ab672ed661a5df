"""Code signing.

macOS runs ``codesign`` once per auxiliary path listed in ``mac_sign_paths``
(semicolon-separated, relative to the resources directory), once for the
executable and once for the bundle root. Windows runs ``signtool`` on the
AppX container. Linux packages are not signed.
"""

from __future__ import annotations

import logging
from pathlib import Path

from opkit.domain.layout import LayoutPlan
from opkit.domain.platforms import Platform
from opkit.domain.settings import Settings
from opkit.errors import ConfigError
from opkit.infrastructure.filesystem import copy_file
from opkit.services.base import BaseService

logger = logging.getLogger(__name__)

TIMESTAMP_URL = "http://timestamp.digicert.com"
CERTIFICATE_FILE = "cert.pfx"


def split_sign_paths(value: str) -> list[str]:
    """Split a ``;``-separated path list, dropping empty entries."""
    return [part.strip() for part in value.split(";") if part.strip()]


class Signer(BaseService):
    """Invoke the platform signing tool."""

    def sign(self, settings: Settings, plan: LayoutPlan, *, entitlements: bool = False) -> int:
        """Sign the build. Returns the number of signing invocations."""
        if plan.platform is Platform.MAC:
            return self.sign_mac(settings, plan, entitlements=entitlements)
        if plan.platform is Platform.WIN:
            return self.sign_win(plan)
        logger.warning("code signing is not supported on %s; skipping", plan.platform)
        return 0

    def mac_targets(self, settings: Settings, plan: LayoutPlan) -> list[Path]:
        """Auxiliary paths, then the executable, then the bundle root."""
        paths = split_sign_paths(settings.get("mac_sign_paths"))
        auxiliary = [plan.resources_dir / p for p in paths]
        return [*auxiliary, plan.binary_path, plan.bundle_root]

    def install_entitlements(self, settings: Settings, plan: LayoutPlan) -> Path:
        """Copy the project's entitlements file into the bundle."""
        assert plan.entitlements_path is not None
        source = plan.project_root / settings.get("mac_entitlements")
        copy_file(source, plan.entitlements_path)
        return plan.entitlements_path

    def sign_mac(self, settings: Settings, plan: LayoutPlan, *, entitlements: bool) -> int:
        identity = f"Developer ID Application: {settings.get('mac_sign')}"
        entitlement_args: list[str] = []
        if entitlements:
            path = self.install_entitlements(settings, plan)
            entitlement_args = ["--entitlements", str(path)]

        targets = self.mac_targets(settings, plan)
        for target in targets:
            self._runner.check(
                [
                    "codesign",
                    "--force",
                    "--options",
                    "runtime",
                    "--timestamp",
                    *entitlement_args,
                    "--sign",
                    identity,
                    str(target),
                ],
                action="sign",
            )
        logger.info("finished code signing (%d paths)", len(targets))
        return len(targets)

    def sign_win(self, plan: LayoutPlan) -> int:
        """Sign the AppX container with ``signtool``.

        ``cert.pfx`` is resolved relative to the project directory.
        """
        if not self._env.signtool:
            msg = "missing env var SIGNTOOL, should be the path to the Windows SDK signtool.exe binary."
            raise ConfigError(msg)
        self._runner.check(
            [
                self._env.signtool,
                "sign",
                "/debug",
                "/tr",
                TIMESTAMP_URL,
                "/td",
                "sha256",
                "/fd",
                "sha256",
                "/f",
                CERTIFICATE_FILE,
                "/p",
                self._env.csc_key_password.get_secret_value(),
                str(plan.archive_path),
            ],
            action="sign",
            cwd=plan.project_root,
        )
        logger.info("finished code signing: %s", plan.archive_path)
        return 1
