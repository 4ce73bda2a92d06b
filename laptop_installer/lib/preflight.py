from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Iterable, List

from ..errors import PreflightError
from .command import run_cmd

logger = logging.getLogger(__name__)

# Host tools used before the target system exists.
REQUIRED_COMMANDS = (
    "sgdisk",
    "partprobe",
    "blockdev",
    "udevadm",
    "dd",
    "cryptsetup",
    "mkfs.fat",
    "mkfs.btrfs",
    "btrfs",
    "mkswap",
    "swapon",
    "blkid",
    "pacstrap",
    "genfstab",
    "arch-chroot",
)

NETWORK_PROBE_HOST = "archlinux.org"


def missing_commands(names: Iterable[str]) -> List[str]:
    return [n for n in names if shutil.which(n) is None]


def require_commands(names: Iterable[str]) -> None:
    missing = missing_commands(names)
    if missing:
        raise PreflightError(f"Required command(s) not found: {', '.join(missing)}")


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def require_block_device(path: str) -> None:
    if not is_block_device(path):
        raise PreflightError(f"Disk {path} not present (not a block device)")


def is_uefi_boot() -> bool:
    """True when the live environment was booted in UEFI mode."""

    return Path("/sys/firmware/efi").exists()


def require_uefi() -> None:
    if not is_uefi_boot():
        raise PreflightError("Live environment is not booted in UEFI mode (/sys/firmware/efi missing)")


def require_root() -> None:
    if os.geteuid() != 0:
        raise PreflightError("The installer must run as root")


def check_network(host: str = NETWORK_PROBE_HOST, *, dry_run: bool = False) -> bool:
    """Best-effort reachability probe. Never raises."""

    try:
        r = run_cmd(["ping", "-c", "1", "-W", "2", host], check=False, dry_run=dry_run)
        online = r.returncode == 0
    except Exception as e:
        logger.warning("Network check could not run: %s", e)
        online = False

    if not online:
        logger.warning("Network check failed (%s unreachable). Continuing but pacstrap may fail.", host)
    return online
