from __future__ import annotations

import logging
from typing import Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)


def chroot_cmd(
    target_root: str,
    argv: Sequence[str],
    *,
    check: bool = True,
    input_text: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command inside target root.

    arch-chroot sets up /proc, /sys, /dev and resolv.conf itself, so no bind
    mounts are managed here.
    """

    return run_cmd(["arch-chroot", target_root, *argv], check=check, input_text=input_text, dry_run=dry_run)
