"""Filesystem operations for bundle layouts.

Every ``OSError`` is converted into :class:`~opkit.errors.FilesystemError`
so the pipeline aborts with one error type instead of continuing on a
partially created bundle. Nothing outside the output root is ever removed.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path, PurePath

from opkit.domain.layout import LayoutPlan
from opkit.errors import FilesystemError

logger = logging.getLogger(__name__)


def clean_output(output_root: Path) -> bool:
    """Recursively remove *output_root*. Returns False if it did not exist."""
    if not output_root.exists() and not output_root.is_symlink():
        return False
    try:
        if output_root.is_dir() and not output_root.is_symlink():
            shutil.rmtree(output_root)
        else:
            output_root.unlink()
    except OSError as exc:
        msg = f"Unable to clean {output_root}: {exc}"
        raise FilesystemError(msg) from exc
    return True


def materialize_layout(plan: LayoutPlan) -> None:
    """Create every directory of *plan* (existing content is kept)."""
    for directory in plan.directories:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Unable to create directory {directory}: {exc}"
            raise FilesystemError(msg) from exc


def write_text(path: Path, content: str) -> None:
    """Write *content* to *path*, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        msg = f"Unable to write {path}: {exc}"
        raise FilesystemError(msg) from exc


def copy_file(source: Path, destination: Path, *, overwrite: bool = True) -> bool:
    """Copy *source* to *destination*. Returns False if skipped.

    With ``overwrite=False`` an existing destination is left untouched.
    """
    if not overwrite and destination.exists():
        return False
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
    except OSError as exc:
        msg = f"Unable to copy {source} to {destination}: {exc}"
        raise FilesystemError(msg) from exc
    return True


def create_symlink(link: Path, target: PurePath) -> None:
    """Create *link* pointing at *target*, replacing a previous link."""
    try:
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink():
            link.unlink()
        os.symlink(target, link)
    except OSError as exc:
        msg = f"Unable to link {link} -> {target}: {exc}"
        raise FilesystemError(msg) from exc

