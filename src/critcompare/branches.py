"""Tracking which branch is checked out.

The working tree is the one shared resource of a comparison: only one
branch can be checked out at a time, and every benchmark must run with its
own branch's sources in place. :class:`BranchSwitcher` owns that state and
is the only thing that runs ``git checkout``.
"""

from __future__ import annotations

import enum
from pathlib import Path

from critcompare.errors import CheckoutError
from critcompare.logging import get_logger
from critcompare.process import ProcessRunner

log = get_logger("branches")


class BranchContext(enum.Enum):
    """The branch currently checked out."""

    ON_CHANGES = "changes"
    ON_BASE = "base"


class BranchSwitcher:
    """Two-state machine over the working tree's checked-out branch.

    Starts on the changes branch. Moving to the base branch checks out
    *base_branch* by name; moving back uses ``git checkout -``.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        base_branch: str,
        cwd: Path | None = None,
        state: BranchContext = BranchContext.ON_CHANGES,
    ) -> None:
        self.runner = runner
        self.base_branch = base_branch
        self.cwd = cwd
        self.state = state
        self.checkouts = 0

    def ensure(self, target: BranchContext) -> bool:
        """Check out *target* unless it is already checked out.

        Returns:
            True if a checkout happened.

        Raises:
            CheckoutError: If git fails. The recorded state is unchanged.
        """
        if self.state is target:
            return False

        if target is BranchContext.ON_BASE:
            args = ["checkout", self.base_branch]
        else:
            args = ["checkout", "-"]

        result = self.runner.run("git", args, cwd=self.cwd)
        if not result.ok:
            raise CheckoutError(
                f"git {' '.join(args)} failed with exit code {result.returncode}",
                result=result,
            )
        self.state = target
        self.checkouts += 1
        log.debug("Checked out to %s branch", target.value)
        return True

    def restore(self) -> bool:
        """Return to the changes branch if needed."""
        return self.ensure(BranchContext.ON_CHANGES)
