"""Build orchestrator: the ordered stage machine.

Stage order per platform (``STAGE_ORDER``)::

    clean → prepare → user_build → compile → package → sign → [notarize] → run

macOS signs before packaging so the archive submitted for notarization holds
a signed bundle. Each stage is gated by :class:`PipelineFlags`; a skipped
stage is recorded, never silently dropped. The first failing stage aborts the
run by raising an :class:`~opkit.errors.OpkitError`.

INVARIANT: settings are loaded, validated and pre-flight checked before the
first side effect (the clean stage).
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

from opkit.config.settings import BuildEnvironment, PipelineFlags
from opkit.domain.layout import LayoutPlan, resolve_layout, template_variables
from opkit.domain.platforms import Platform, current_platform
from opkit.domain.review import PendingSubmission
from opkit.domain.settings import (
    Settings,
    apply_debug_mode,
    load_settings,
    validate_settings,
)
from opkit.domain.templates import placeholders, render
from opkit.errors import ConfigError
from opkit.infrastructure.filesystem import (
    clean_output,
    copy_file,
    materialize_layout,
    write_text,
)
from opkit.infrastructure.process import ProcessRunner
from opkit.infrastructure.templates import ManifestTemplates
from opkit.services.notarize import NotarizationPoller
from opkit.services.packaging import Packager
from opkit.services.result import ServiceResult
from opkit.services.signing import Signer
from opkit.services.toolchain import Toolchain

logger = logging.getLogger(__name__)


class Stage(StrEnum):
    """Pipeline stages."""

    CLEAN = "clean"
    PREPARE = "prepare"
    USER_BUILD = "user_build"
    COMPILE = "compile"
    PACKAGE = "package"
    SIGN = "sign"
    NOTARIZE = "notarize"
    RUN = "run"


STAGE_ORDER: dict[Platform, tuple[Stage, ...]] = {
    Platform.MAC: (
        Stage.CLEAN,
        Stage.PREPARE,
        Stage.USER_BUILD,
        Stage.COMPILE,
        Stage.SIGN,
        Stage.PACKAGE,
        Stage.NOTARIZE,
        Stage.RUN,
    ),
    Platform.LINUX: (
        Stage.CLEAN,
        Stage.PREPARE,
        Stage.USER_BUILD,
        Stage.COMPILE,
        Stage.PACKAGE,
        Stage.RUN,
    ),
    Platform.WIN: (
        Stage.CLEAN,
        Stage.PREPARE,
        Stage.USER_BUILD,
        Stage.COMPILE,
        Stage.PACKAGE,
        Stage.SIGN,
        Stage.RUN,
    ),
}


@dataclass
class StageRecord:
    """Outcome of one stage."""

    stage: Stage
    ran: bool
    duration_ms: float = 0.0
    note: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": str(self.stage),
            "ran": self.ran,
            "duration_ms": round(self.duration_ms, 2),
            "note": self.note,
        }


def _shell_quote(platform: Platform, value: str) -> str:
    if platform is Platform.WIN:
        return subprocess.list2cmdline([value])
    return shlex.quote(value)


class BuildPipeline:
    """Run every stage for one project directory.

    Collaborators default to the real ones; tests inject a recording
    :class:`ProcessRunner`, a fixed platform and a no-op sleep.
    """

    def __init__(
        self,
        project_root: Path,
        flags: PipelineFlags,
        *,
        environment: BuildEnvironment | None = None,
        runner: ProcessRunner | None = None,
        platform: Platform | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.project_root = project_root
        self.flags = flags
        self.platform = platform or current_platform()
        self.environment = environment or BuildEnvironment()
        self.runner = runner or ProcessRunner(secrets=self.environment.secrets())
        self.toolchain = Toolchain(self.runner, self.environment)
        self.packager = Packager(self.runner, self.environment)
        self.signer = Signer(self.runner, self.environment)
        self.poller = NotarizationPoller(self.runner, self.environment, sleep=sleep)
        self.warnings: list[str] = []
        self.records: list[StageRecord] = []
        self.submission: PendingSubmission | None = None
        self.packaged: Path | None = None

    # ------------------------------------------------------------------
    # Pre-flight
    # ------------------------------------------------------------------

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def load(self) -> Settings:
        """Load and validate settings, applying the debug suffix when enabled."""
        settings = load_settings(self.project_root, self.platform)
        validate_settings(settings)
        if self.flags.debug:
            settings = apply_debug_mode(settings)
        return settings

    def preflight(self, settings: Settings, plan: LayoutPlan) -> None:
        """Check flag-dependent requirements before anything is touched.

        Raises:
            ConfigError: A requested stage lacks a setting, file or env var.
        """
        flags = self.flags
        mac = self.platform is Platform.MAC

        if not self.environment.cxx:
            self._warn(
                f"$CXX env var not set, assuming {self.environment.compiler(self.platform)}"
            )
        if flags.store:
            self._warn("app store bundling is not supported; ignoring the store flag")
        if flags.notarize and not mac:
            self._warn(f"notarization is only available on mac; ignoring on {self.platform}")
        if flags.entitlements and not (mac and flags.codesign):
            self._warn("entitlements are only used when code signing on mac")
        if flags.codesign and self.platform is Platform.LINUX:
            self._warn("code signing is not supported on linux; ignoring")

        if flags.codesign and mac:
            if not settings.get("mac_sign"):
                msg = "'mac_sign' key/value is required for code signing"
                raise ConfigError(msg)
            if flags.entitlements:
                entitlements = settings.get("mac_entitlements")
                if not entitlements:
                    msg = "'mac_entitlements' key/value is required for entitlements"
                    raise ConfigError(msg)
                if not (plan.project_root / entitlements).is_file():
                    msg = f"entitlements file not found: {entitlements}"
                    raise ConfigError(msg)
        if self.platform is Platform.WIN:
            if flags.codesign and not flags.package:
                msg = "code signing on win signs the .appx package; add --package"
                raise ConfigError(msg)
            if flags.codesign and not self.environment.signtool:
                msg = "missing env var SIGNTOOL, should be the path to the Windows SDK signtool.exe binary."
                raise ConfigError(msg)
            if flags.package and not self.environment.makeappx:
                msg = "missing env var MAKEAPPX, should be the path to the Windows SDK MakeAppx.exe binary."
                raise ConfigError(msg)
        if flags.notarize and mac:
            if not settings.get("bundle_identifier"):
                msg = "'bundle_identifier' key/value is required for notarization"
                raise ConfigError(msg)
            self.poller.credentials()

    # ------------------------------------------------------------------
    # Stage gates
    # ------------------------------------------------------------------

    def _gate(self, stage: Stage, plan: LayoutPlan) -> str | None:
        """Return None to run *stage*, or the reason it is skipped."""
        flags = self.flags
        if stage is Stage.CLEAN and flags.only_user_build:
            return "user build only"
        if stage is Stage.COMPILE and flags.only_user_build and plan.binary_path.exists():
            return "binary exists"
        if stage is Stage.PACKAGE:
            wanted = flags.package or (flags.notarize and self.platform is Platform.MAC)
            return None if wanted else "not requested"
        if stage is Stage.SIGN:
            return None if flags.codesign else "not requested"
        if stage is Stage.NOTARIZE:
            return None if flags.notarize else "not requested"
        if stage is Stage.RUN:
            return None if flags.run else "not requested"
        return None

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def clean(self, settings: Settings, plan: LayoutPlan) -> str:
        removed = clean_output(plan.output_root)
        logger.info("cleaned: %s", plan.output_root)
        return "removed" if removed else "nothing to remove"

    def prepare(self, settings: Settings, plan: LayoutPlan) -> str:
        """Create the bundle directories and write every manifest."""
        logger.info("preparing build for %s", plan.platform)
        materialize_layout(plan)

        templates = ManifestTemplates(plan.platform, project_root=plan.project_root)
        variables = template_variables(settings, plan)
        for name, destination in plan.manifests.items():
            source = templates.source(name)
            missing = [key for key in placeholders(source) if key not in variables]
            if missing:
                logger.debug("%s: unresolved placeholders %s", name, ", ".join(missing))
            write_text(destination, render(source, variables))

        if plan.icon_path is not None:
            if plan.icon_source is None:
                self._warn("no 'linux_icon' configured; the package has no icon")
            else:
                copy_file(plan.icon_source, plan.icon_path, overwrite=False)

        logger.info("package prepared")
        return f"{len(plan.manifests)} manifests"

    def user_build(self, settings: Settings, plan: LayoutPlan) -> str:
        """Run the user's build command from the project directory."""
        command = " ".join(
            [
                settings.build_command,
                _shell_quote(plan.platform, str(plan.build_resources)),
                f"--debug={int(self.flags.debug)}",
            ]
        )
        logger.info("%s", command)
        result = self.runner.check(command, action="run user build command", cwd=plan.project_root)
        if result.output.strip():
            logger.info("%s", result.output.rstrip())
        logger.info("ran user build command")
        return ""

    def compile(self, settings: Settings, plan: LayoutPlan) -> str:
        self.toolchain.compile(settings, plan, debug=self.flags.debug)
        return str(plan.binary_path)

    def package(self, settings: Settings, plan: LayoutPlan) -> str:
        self.packaged = self.packager.package(plan)
        return str(self.packaged)

    def sign(self, settings: Settings, plan: LayoutPlan) -> str:
        count = self.signer.sign(settings, plan, entitlements=self.flags.entitlements)
        return f"{count} signatures"

    def notarize(self, settings: Settings, plan: LayoutPlan) -> str:
        if self.platform is not Platform.MAC:
            return "mac only"
        self.submission = self.poller.notarize(plan.archive_path, settings["bundle_identifier"])
        return str(self.submission.status) if self.submission else "no request id"

    def run_app(self, settings: Settings, plan: LayoutPlan) -> str:
        result = self.runner.run([str(plan.binary_path)], capture=False)
        logger.debug("application exited with %d", result.returncode)
        return f"exit {result.returncode}"

    def _handler(self, stage: Stage) -> Callable[[Settings, LayoutPlan], str]:
        return {
            Stage.CLEAN: self.clean,
            Stage.PREPARE: self.prepare,
            Stage.USER_BUILD: self.user_build,
            Stage.COMPILE: self.compile,
            Stage.PACKAGE: self.package,
            Stage.SIGN: self.sign,
            Stage.NOTARIZE: self.notarize,
            Stage.RUN: self.run_app,
        }[stage]

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self) -> ServiceResult:
        """Run the whole pipeline.

        Raises:
            OpkitError: From the first failing stage; later stages never run.
        """
        settings = self.load()
        plan = resolve_layout(settings, self.platform, self.project_root)
        self.preflight(settings, plan)

        for stage in STAGE_ORDER[self.platform]:
            reason = self._gate(stage, plan)
            if reason is not None:
                logger.debug("skipping %s: %s", stage, reason)
                self.records.append(StageRecord(stage, ran=False, note=reason))
                continue
            start = time.perf_counter()
            note = self._handler(stage)(settings, plan)
            elapsed = (time.perf_counter() - start) * 1000
            self.records.append(StageRecord(stage, ran=True, duration_ms=elapsed, note=note))

        data: dict[str, Any] = {
            "platform": str(self.platform),
            "debug": self.flags.debug,
            "bundle": str(plan.bundle_root),
            "binary": str(plan.binary_path),
        }
        if self.packaged is not None:
            data["package"] = str(self.packaged)
        if self.submission is not None:
            data["review"] = {
                "request_id": self.submission.request_id,
                "status": str(self.submission.status),
                "attempts": self.submission.attempts,
            }
        return ServiceResult(
            ok=True,
            op="build",
            data=data,
            warnings=list(self.warnings),
            meta={"stages": [record.to_dict() for record in self.records]},
        )
