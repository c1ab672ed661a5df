"""Native compiler invocation.

The compiled binary embeds its own configuration: the settings file (comments
stripped, percent-encoded) is passed as the ``SETTINGS`` preprocessor define
alongside ``DEBUG``.
"""

from __future__ import annotations

import logging
import shlex

from opkit.domain.layout import LayoutPlan
from opkit.domain.platforms import Platform
from opkit.domain.settings import Settings, serialize_settings
from opkit.infrastructure.process import CommandResult
from opkit.services.base import BaseService

logger = logging.getLogger(__name__)

SOURCE_FILES: dict[Platform, tuple[str, ...]] = {
    Platform.MAC: ("main.cc", "process_unix.cc"),
    Platform.LINUX: ("main.cc", "process_unix.cc"),
    Platform.WIN: ("main.cc", "process_win.cc"),
}

PLATFORM_FLAGS: dict[Platform, tuple[str, ...]] = {
    Platform.MAC: ("-std=c++2a", "-framework", "WebKit", "-framework", "Cocoa", "-ObjC++"),
    Platform.LINUX: ("-std=c++2a",),
    Platform.WIN: ("-std=c++20",),
}

PKG_CONFIG_COMMAND = ("pkg-config", "--cflags", "--libs", "gtk+-3.0", "webkit2gtk-4.0")


class Toolchain(BaseService):
    """Build compiler command lines and run them."""

    def platform_flags(self, platform: Platform) -> list[str]:
        """Fixed platform flags followed by ``CXX_FLAGS``."""
        flags = list(PLATFORM_FLAGS[platform])
        if platform is Platform.LINUX:
            result = self._runner.check(PKG_CONFIG_COMMAND, action="query pkg-config")
            flags.extend(shlex.split(result.output))
        elif platform is Platform.WIN:
            prefix = self._env.prefix
            win64 = prefix / "src" / "win64"
            flags.extend([f"-I{prefix}", f"-I{win64}", f"-L{win64}"])
        flags.extend(shlex.split(self._env.cxx_flags))
        return flags

    def compile_command(self, settings: Settings, plan: LayoutPlan, *, debug: bool) -> list[str]:
        sources = [str(self._env.prefix / "src" / name) for name in SOURCE_FILES[plan.platform]]
        extra = settings.get("debug_flags" if debug else "flags")
        return [
            self._env.compiler(plan.platform),
            *sources,
            *self.platform_flags(plan.platform),
            *shlex.split(extra),
            "-o",
            str(plan.binary_path),
            f"-DDEBUG={int(debug)}",
            f'-DSETTINGS="{serialize_settings(settings.source)}"',
        ]

    def compile(self, settings: Settings, plan: LayoutPlan, *, debug: bool) -> CommandResult:
        """Compile the native binary to ``plan.binary_path``.

        Raises:
            SubprocessError: The compiler (or pkg-config) failed.
        """
        command = self.compile_command(settings, plan, debug=debug)
        result = self._runner.check(command, action="build")
        logger.info("compiled native binary: %s", plan.binary_path)
        return result
