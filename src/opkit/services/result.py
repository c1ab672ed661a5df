"""Build outcome models.

A finished pipeline returns ``ServiceResult(ok=True, op="build")``. A failed
one raises :class:`~opkit.errors.OpkitError`; the CLI context turns that into
``ServiceResult.from_error`` so both outcomes render (and serialize to JSON)
through the same code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from opkit.errors import OpkitError


class ServiceError(BaseModel):
    """Error payload: code, message, and exit code / tool output in ``detail``."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one pipeline operation.

    Attributes:
        ok: Whether every requested stage completed.
        op: Operation name (``"build"``).
        data: Bundle, binary, package and review summary on success.
        warnings: Non-fatal issues found during pre-flight or a stage.
        error: Set when ``ok`` is False.
        meta: ``{"stages": [...]}`` with per-stage timings.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def from_error(cls, op: str, exc: OpkitError) -> ServiceResult:
        """Failed result carrying *exc*'s exit code, tool output and command."""
        detail: dict[str, Any] = {"exit_code": exc.exit_code}
        output = getattr(exc, "output", "")
        if output:
            detail["output"] = output
        command = getattr(exc, "command", "")
        if command:
            detail["command"] = command if isinstance(command, str) else list(command)
        request_id = getattr(exc, "request_id", None)
        if request_id is not None:
            detail["request_id"] = request_id
        return cls(
            ok=False,
            op=op,
            error=ServiceError(code=exc.code, message=exc.message, detail=detail),
        )
