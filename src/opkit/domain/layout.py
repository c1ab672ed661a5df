"""Platform-specific bundle layout.

:func:`resolve_layout` is pure path arithmetic: it decides where every
pipeline stage reads and writes. Creating the directories is the job of
:func:`opkit.infrastructure.filesystem.materialize_layout`.

Bundle conventions:

- mac:   ``<output>/<name>.app/Contents/{MacOS,Resources,Info.plist}``
- linux: ``<output>/<executable>_<version>-<revision>_<arch>/`` (Debian naming)
  with ``opt/<name>``, ``DEBIAN``, ``usr/share/applications`` and
  ``usr/share/icons/hicolor/256x256/apps``
- win:   ``<output>/<executable>-<version>/`` holding binary and ``AppxManifest.xml``

INVARIANT: every path the pipeline writes lies under ``output_root``.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, Field

from opkit.domain.platforms import Platform
from opkit.domain.settings import Settings
from opkit.errors import ConfigError

DEFAULT_REVISION = "1"

LINUX_ICON_DIR = PurePosixPath("usr/share/icons/hicolor/256x256/apps")
LINUX_APPLICATIONS_DIR = PurePosixPath("usr/share/applications")
LINUX_BIN_DIR = PurePosixPath("usr/local/bin")


class LayoutPlan(BaseModel):
    """Resolved absolute paths for one build.

    Attributes:
        bundle_name: Directory name of the bundle root.
        bin_dir: Directory holding the compiled executable.
        resources_dir: Directory the user build writes its assets to.
        build_resources: ``resources_dir`` as passed to the user build
            command (relative to the project root when possible).
        manifests: Template name to generated manifest destination.
        directories: Directories created before the user build runs.
        archive_path: Distributable produced by the package stage.
        derived: Platform-derived template fields merged over settings at
            render time.
    """

    model_config = {"frozen": True}

    platform: Platform
    project_root: Path
    output_root: Path
    bundle_name: str
    bundle_root: Path
    bin_dir: Path
    resources_dir: Path
    binary_path: Path
    build_resources: Path
    manifests: dict[str, Path] = Field(default_factory=dict)
    directories: tuple[Path, ...] = ()
    archive_path: Path
    entitlements_path: Path | None = None
    icon_source: Path | None = None
    icon_path: Path | None = None
    symlink_path: Path | None = None
    symlink_target: PurePosixPath | None = None
    derived: dict[str, str] = Field(default_factory=dict)

    def written_paths(self) -> list[Path]:
        """Every path the pipeline may create or overwrite."""
        paths = [
            self.bundle_root,
            self.bin_dir,
            self.resources_dir,
            self.binary_path,
            self.archive_path,
            *self.manifests.values(),
            *self.directories,
        ]
        for extra in (self.entitlements_path, self.icon_path, self.symlink_path):
            if extra is not None:
                paths.append(extra)
        return paths


def resolve_output_root(settings: Settings, project_root: Path) -> Path:
    """Resolve the ``output`` setting against *project_root*.

    Raises:
        ConfigError: The output root is the project directory or one of its
            ancestors, which the clean stage would wipe.
    """
    project = project_root.resolve()
    output_root = (project / settings.output).resolve()
    if output_root == project or project.is_relative_to(output_root):
        msg = f"'output' must not contain the project directory: {output_root}"
        raise ConfigError(msg)
    return output_root


def _relative_to_project(path: Path, project_root: Path) -> Path:
    try:
        return path.relative_to(project_root)
    except ValueError:
        return path


def _mac_layout(settings: Settings, project: Path, output_root: Path) -> dict[str, object]:
    bundle_name = f"{settings.name}.app"
    bundle_root = output_root / bundle_name
    contents = bundle_root / "Contents"
    bin_dir = contents / "MacOS"
    resources_dir = contents / "Resources"
    return {
        "bundle_name": bundle_name,
        "bundle_root": bundle_root,
        "bin_dir": bin_dir,
        "resources_dir": resources_dir,
        "manifests": {"Info.plist": contents / "Info.plist"},
        "directories": (bin_dir, resources_dir),
        "archive_path": output_root / f"{settings.executable}.zip",
        "entitlements_path": resources_dir / "entitlements.plist",
    }


def _linux_layout(settings: Settings, project: Path, output_root: Path) -> dict[str, object]:
    revision = settings.get("revision") or DEFAULT_REVISION
    bundle_name = f"{settings.executable}_{settings.version}-{revision}_{settings.arch}"
    bundle_root = output_root / bundle_name
    install_dir = bundle_root / "opt" / settings.name
    control_dir = bundle_root / "DEBIAN"
    applications_dir = bundle_root / LINUX_APPLICATIONS_DIR
    icons_dir = bundle_root / LINUX_ICON_DIR
    icon_name = f"{settings.executable}.png"
    install_path = PurePosixPath("/opt") / settings.name / settings.executable

    icon_source = project / settings.get("linux_icon") if settings.get("linux_icon") else None
    return {
        "bundle_name": bundle_name,
        "bundle_root": bundle_root,
        "bin_dir": install_dir,
        "resources_dir": install_dir,
        "manifests": {
            "app.desktop": applications_dir / f"{settings.name}.desktop",
            "control": control_dir / "control",
        },
        "directories": (icons_dir, install_dir, applications_dir, control_dir),
        "archive_path": output_root / f"{bundle_name}.deb",
        "icon_source": icon_source,
        "icon_path": icons_dir / icon_name,
        "symlink_path": bundle_root / LINUX_BIN_DIR / settings.executable,
        "symlink_target": install_path,
        "derived": {
            "revision": revision,
            "linux_executable_path": str(install_path),
            "linux_icon_path": str(PurePosixPath("/") / LINUX_ICON_DIR / icon_name),
        },
    }


def _win_layout(settings: Settings, project: Path, output_root: Path) -> dict[str, object]:
    bundle_name = f"{settings.executable}-{settings.version}"
    bundle_root = output_root / bundle_name
    return {
        "bundle_name": bundle_name,
        "bundle_root": bundle_root,
        "bin_dir": bundle_root,
        "resources_dir": bundle_root,
        "manifests": {"AppxManifest.xml": bundle_root / "AppxManifest.xml"},
        "directories": (bundle_root,),
        "archive_path": output_root / f"{bundle_name}.appx",
        "derived": {"revision": settings.get("revision") or DEFAULT_REVISION},
    }


_PLATFORM_LAYOUTS = {
    Platform.MAC: _mac_layout,
    Platform.LINUX: _linux_layout,
    Platform.WIN: _win_layout,
}


def resolve_layout(settings: Settings, platform: Platform, project_root: Path) -> LayoutPlan:
    """Compute the :class:`LayoutPlan` for *platform*.

    Raises:
        ConfigError: A settings value would place a written path outside the
            output root (for example a ``name`` containing ``..``).
    """
    project = project_root.resolve()
    output_root = resolve_output_root(settings, project)
    parts = _PLATFORM_LAYOUTS[platform](settings, project, output_root)

    bin_dir = parts["bin_dir"]
    resources_dir = parts["resources_dir"]
    assert isinstance(bin_dir, Path)
    assert isinstance(resources_dir, Path)

    plan = LayoutPlan(
        platform=platform,
        project_root=project,
        output_root=output_root,
        binary_path=bin_dir / f"{settings.executable}{platform.executable_suffix}",
        build_resources=_relative_to_project(resources_dir, project),
        **parts,
    )

    for path in plan.written_paths():
        # Lexical: a symlink left by an earlier build must not be followed.
        if not Path(os.path.normpath(path)).is_relative_to(output_root):
            msg = f"Path escapes output root: {path}"
            raise ConfigError(msg)
    return plan


def template_variables(settings: Settings, plan: LayoutPlan) -> dict[str, str]:
    """Settings merged with the plan's derived fields (derived wins)."""
    return {**settings.values, **plan.derived}
