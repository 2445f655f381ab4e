"""Copying benchmark executables out of the build tree.

``target/`` belongs to whichever branch is checked out. Once the branch
changes, a rebuild may overwrite or remove the binaries, so each set is
copied into its own scratch directory right after compilation.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Iterable

from critcompare.errors import CopyError
from critcompare.logging import get_logger

log = get_logger("relocate")

SCRATCH_PREFIX = "criterion-compare"


def relocate_executables(
    executables: Iterable[Path],
    scratch_root: Path | None = None,
) -> list[Path]:
    """Copy executables into a fresh scratch directory.

    File names and permission bits are preserved. The directory is left in
    place for the rest of the run.

    Args:
        executables: Paths to the compiled benchmark binaries.
        scratch_root: Parent for the scratch directory (default: system temp).

    Returns:
        The new paths, in input order.

    Raises:
        CopyError: If the directory cannot be created or a copy fails.
    """
    try:
        dest_dir = Path(
            tempfile.mkdtemp(
                prefix=f"{SCRATCH_PREFIX}-",
                dir=str(scratch_root) if scratch_root is not None else None,
            )
        )
    except OSError as exc:
        raise CopyError(f"Could not create scratch directory: {exc}") from exc

    moved: list[Path] = []
    for exe in executables:
        dest = dest_dir / exe.name
        try:
            shutil.copy2(exe, dest)
        except OSError as exc:
            raise CopyError(f"Could not copy {exe} to {dest}: {exc}") from exc
        log.debug("Copied %s -> %s", exe, dest)
        moved.append(dest)
    return moved
