from __future__ import annotations

import logging
from typing import Sequence

from ..errors import InstallerError
from .command import run_cmd

logger = logging.getLogger(__name__)


def pacstrap(target_root: str, packages: Sequence[str], *, dry_run: bool = False) -> None:
    """Bootstrap packages into target_root. No retry: a failure ends the run."""

    if not packages:
        raise InstallerError("Package manifest is empty")
    # -K initializes an empty pacman keyring in the target.
    run_cmd(["pacstrap", "-K", target_root, *packages], dry_run=dry_run)
    logger.info("Installed %d packages into %s", len(packages), target_root)
