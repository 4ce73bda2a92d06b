from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)

ROOT_LABEL = "arch_root"


@dataclass(frozen=True)
class Subvolume:
    name: str
    mountpoint: str


# Home, logs and caches live outside @ so root snapshots stay small.
SUBVOLUMES: Sequence[Subvolume] = (
    Subvolume("@", "/"),
    Subvolume("@home", "/home"),
    Subvolume("@snapshots", "/.snapshots"),
    Subvolume("@var_log", "/var/log"),
    Subvolume("@var_cache", "/var/cache"),
)


def subvolume(name: str) -> Subvolume:
    return next(s for s in SUBVOLUMES if s.name == name)


def btrfs_mount_options(compression: str, subvol: Optional[str] = None) -> str:
    opts = ["noatime", f"compress={compression}", "ssd", "discard=async"]
    if subvol:
        opts.append(f"subvol={subvol}")
    return ",".join(opts)


def in_target(target_root: str, mountpoint: str) -> str:
    return str(Path(target_root) / mountpoint.lstrip("/")) if mountpoint != "/" else target_root


def format_esp(device: str, *, dry_run: bool = False) -> None:
    run_cmd(["mkfs.fat", "-F", "32", device], dry_run=dry_run)


def format_root(device: str, *, dry_run: bool = False) -> None:
    run_cmd(["mkfs.btrfs", "-f", "-L", ROOT_LABEL, device], dry_run=dry_run)


def create_subvolumes(
    device: str,
    setup_mount: str,
    subvolumes: Sequence[Subvolume] = SUBVOLUMES,
    *,
    dry_run: bool = False,
) -> None:
    """Create subvolumes on a temporary top-level mount, then unmount it."""

    run_cmd(["mkdir", "-p", setup_mount], dry_run=dry_run)
    run_cmd(["mount", "-o", "defaults,noatime", device, setup_mount], dry_run=dry_run)
    try:
        for sv in subvolumes:
            run_cmd(["btrfs", "subvolume", "create", f"{setup_mount}/{sv.name}"], dry_run=dry_run)
    finally:
        run_cmd(["umount", setup_mount], dry_run=dry_run)


def mount_subvolume(
    device: str,
    sv: Subvolume,
    target_root: str,
    compression: str,
    *,
    dry_run: bool = False,
) -> None:
    run_cmd(
        ["mount", "-o", btrfs_mount_options(compression, sv.name), device, in_target(target_root, sv.mountpoint)],
        dry_run=dry_run,
    )


def mount_layout(
    root_device: str,
    esp_device: str,
    target_root: str,
    compression: str,
    subvolumes: Sequence[Subvolume] = SUBVOLUMES,
    *,
    dry_run: bool = False,
) -> List[str]:
    """Mount @ first, then the other subvolumes, then the ESP on /boot.

    Returns the mountpoints in the order they were mounted.
    """

    root_sv = next(s for s in subvolumes if s.mountpoint == "/")
    others = [s for s in subvolumes if s.mountpoint != "/"]

    run_cmd(["mkdir", "-p", target_root], dry_run=dry_run)
    mount_subvolume(root_device, root_sv, target_root, compression, dry_run=dry_run)
    mounted = [target_root]

    dirs = [in_target(target_root, m) for m in ["/boot", *(s.mountpoint for s in others)]]
    run_cmd(["mkdir", "-p", *dirs], dry_run=dry_run)

    for sv in others:
        mount_subvolume(root_device, sv, target_root, compression, dry_run=dry_run)
        mounted.append(in_target(target_root, sv.mountpoint))

    boot = in_target(target_root, "/boot")
    run_cmd(["mount", esp_device, boot], dry_run=dry_run)
    mounted.append(boot)

    snapshots = in_target(target_root, "/.snapshots")
    if snapshots in mounted:
        if dry_run:
            logger.info("Would chmod 750 %s", snapshots)
        else:
            os.chmod(snapshots, 0o750)

    logger.info("Mounted subvolume layout under %s", target_root)
    return mounted


def unmount_all(target_root: str, *, dry_run: bool = False) -> bool:
    """Best-effort recursive unmount; returns False (with a warning) on failure."""

    r = run_cmd(["umount", "-R", target_root], check=False, dry_run=dry_run)
    if r.returncode != 0:
        logger.warning("umount -R %s failed (rc=%s): %s", target_root, r.returncode, r.stderr.strip())
        return False
    return True
