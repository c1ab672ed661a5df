"""BaseService: shared foundation for pipeline services.

Every service receives the :class:`ProcessRunner` used for external tools and
the :class:`BuildEnvironment` read from the process environment. Services
sharing one runner share its secret redaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from opkit.config.settings import BuildEnvironment
    from opkit.infrastructure.process import ProcessRunner


class BaseService:
    """Base for service-layer classes.

    Usage::

        class Signer(BaseService):
            def sign(self, settings, plan) -> int:
                self._runner.check([...], action="sign")
    """

    def __init__(self, runner: ProcessRunner, environment: BuildEnvironment) -> None:
        self._runner = runner
        self._env = environment
