"""Tests for platform layout resolution."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

import pytest

from opkit.domain.layout import resolve_layout, resolve_output_root, template_variables
from opkit.domain.platforms import Platform
from opkit.domain.settings import Settings
from opkit.errors import ConfigError


def _settings(**values: str) -> Settings:
    base = {
        "name": "foo",
        "title": "Foo",
        "executable": "foo",
        "output": "build",
        "version": "1.0",
        "revision": "2",
        "arch": "amd64",
        "_cmd": "true",
    }
    base.update(values)
    return Settings(values=base)


class TestLinuxLayout:
    def test_debian_bundle_name(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(), Platform.LINUX, tmp_path)
        assert plan.bundle_name == "foo_1.0-2_amd64"
        assert plan.bundle_root == tmp_path.resolve() / "build" / "foo_1.0-2_amd64"

    def test_directories(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(), Platform.LINUX, tmp_path)
        root = plan.bundle_root
        assert plan.bin_dir == root / "opt" / "foo"
        assert plan.resources_dir == plan.bin_dir
        assert plan.binary_path == root / "opt" / "foo" / "foo"
        assert set(plan.directories) == {
            root / "opt" / "foo",
            root / "DEBIAN",
            root / "usr" / "share" / "applications",
            root / "usr" / "share" / "icons" / "hicolor" / "256x256" / "apps",
        }

    def test_manifests(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(), Platform.LINUX, tmp_path)
        assert plan.manifests == {
            "app.desktop": plan.bundle_root / "usr" / "share" / "applications" / "foo.desktop",
            "control": plan.bundle_root / "DEBIAN" / "control",
        }

    def test_derived_fields(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(), Platform.LINUX, tmp_path)
        assert plan.derived["linux_executable_path"] == "/opt/foo/foo"
        assert plan.derived["linux_icon_path"] == "/usr/share/icons/hicolor/256x256/apps/foo.png"

    def test_symlink_and_archive(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(), Platform.LINUX, tmp_path)
        assert plan.symlink_path == plan.bundle_root / "usr" / "local" / "bin" / "foo"
        assert plan.symlink_target == PurePosixPath("/opt/foo/foo")
        assert plan.archive_path == plan.output_root / "foo_1.0-2_amd64.deb"

    def test_icon_source_relative_to_project(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(linux_icon="assets/icon.png"), Platform.LINUX, tmp_path)
        assert plan.icon_source == tmp_path.resolve() / "assets" / "icon.png"
        assert plan.icon_path is not None
        assert plan.icon_path.name == "foo.png"

    def test_missing_revision_defaults(self, tmp_path: Path) -> None:
        settings = _settings()
        del settings.values["revision"]
        plan = resolve_layout(settings, Platform.LINUX, tmp_path)
        assert plan.bundle_name == "foo_1.0-1_amd64"

    def test_build_resources_relative_to_project(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(), Platform.LINUX, tmp_path)
        assert plan.build_resources == Path("build/foo_1.0-2_amd64/opt/foo")


class TestMacLayout:
    def test_app_bundle(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(name="Foo"), Platform.MAC, tmp_path)
        contents = plan.output_root / "Foo.app" / "Contents"
        assert plan.bundle_name == "Foo.app"
        assert plan.bin_dir == contents / "MacOS"
        assert plan.resources_dir == contents / "Resources"
        assert plan.binary_path == contents / "MacOS" / "foo"
        assert plan.manifests == {"Info.plist": contents / "Info.plist"}

    def test_archive_and_entitlements(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(), Platform.MAC, tmp_path)
        assert plan.archive_path == plan.output_root / "foo.zip"
        assert plan.entitlements_path == plan.resources_dir / "entitlements.plist"


class TestWinLayout:
    def test_bundle_and_exe(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(), Platform.WIN, tmp_path)
        assert plan.bundle_name == "foo-1.0"
        assert plan.bin_dir == plan.bundle_root
        assert plan.binary_path.name == "foo.exe"
        assert plan.manifests == {"AppxManifest.xml": plan.bundle_root / "AppxManifest.xml"}
        assert plan.archive_path == plan.output_root / "foo-1.0.appx"

    def test_revision_defaults_to_one(self, tmp_path: Path) -> None:
        settings = _settings()
        del settings.values["revision"]
        plan = resolve_layout(settings, Platform.WIN, tmp_path)
        assert plan.derived["revision"] == "1"


class TestInvariants:
    @pytest.mark.parametrize("platform", list(Platform))
    def test_every_written_path_under_output_root(self, tmp_path: Path, platform: Platform) -> None:
        plan = resolve_layout(_settings(), platform, tmp_path)
        for path in plan.written_paths():
            assert path.is_relative_to(plan.output_root)

    @pytest.mark.parametrize("platform", list(Platform))
    def test_resolve_creates_nothing(self, tmp_path: Path, platform: Platform) -> None:
        resolve_layout(_settings(), platform, tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_name_escaping_output_root(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="escapes output root"):
            resolve_layout(_settings(name="../../etc"), Platform.MAC, tmp_path)

    def test_existing_symlink_not_followed(self, tmp_path: Path) -> None:
        plan = resolve_layout(_settings(), Platform.LINUX, tmp_path)
        assert plan.symlink_path is not None
        plan.symlink_path.parent.mkdir(parents=True)
        plan.symlink_path.symlink_to("/opt/foo/foo")

        again = resolve_layout(_settings(), Platform.LINUX, tmp_path)

        assert again.symlink_path == plan.symlink_path

    @pytest.mark.parametrize("output", [".", "..", "./"])
    def test_output_must_not_contain_project(self, tmp_path: Path, output: str) -> None:
        with pytest.raises(ConfigError, match="must not contain the project"):
            resolve_output_root(_settings(output=output), tmp_path / "project")

    def test_absolute_output_allowed(self, tmp_path: Path) -> None:
        target = tmp_path / "elsewhere"
        root = resolve_output_root(_settings(output=str(target)), tmp_path / "project")
        assert root == target.resolve()


def test_template_variables_prefer_derived(tmp_path: Path) -> None:
    settings = _settings()
    del settings.values["revision"]
    plan = resolve_layout(settings, Platform.WIN, tmp_path)
    variables = template_variables(settings, plan)
    assert variables["revision"] == "1"
    assert variables["name"] == "foo"
