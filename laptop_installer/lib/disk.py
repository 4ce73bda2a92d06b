from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, Iterable

from ..errors import InstallerError
from .command import run_cmd
from .planner import DiskLayout

logger = logging.getLogger(__name__)

# Zeroed at both ends of the disk to drop stale GPT/LUKS/filesystem signatures.
WIPE_MIB = 32


def partition_path(disk: str, n: int) -> str:
    # nvme/mmcblk devices use p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def partition_paths(disk: str, layout: DiskLayout) -> Dict[str, str]:
    return {r.name: partition_path(disk, r.number) for r in layout.regions}


def get_disk_size_bytes(disk: str, *, dry_run: bool = False) -> int:
    r = run_cmd(["blockdev", "--getsize64", disk], dry_run=dry_run)
    out = (r.stdout or "").strip()
    if not out:
        if dry_run:
            return 0
        raise InstallerError(f"Unable to determine size of {disk}")
    return int(out)


def get_uuid(dev: str, *, dry_run: bool = False) -> str:
    """Return the filesystem (or LUKS header) UUID for a block device."""

    r = run_cmd(["blkid", "-s", "UUID", "-o", "value", dev], dry_run=dry_run)
    uuid = (r.stdout or "").strip()
    if not uuid and not dry_run:
        raise InstallerError(f"Unable to determine UUID for {dev}")
    return uuid


def sector_size(disk: str) -> int:
    p = Path("/sys/block") / Path(disk).name / "queue/hw_sector_size"
    try:
        return int(p.read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        logger.warning("Could not read %s; assuming 512-byte sectors", p)
        return 512


def flush_writes(*, dry_run: bool = False) -> None:
    """Flush outstanding writes and let udev finish processing events."""

    run_cmd(["sync"], dry_run=dry_run)
    r = run_cmd(["udevadm", "settle"], check=False, dry_run=dry_run)
    if r.returncode != 0:
        logger.warning("udevadm settle failed (rc=%s); continuing", r.returncode)


def reread_partitions(disk: str, *, check: bool = True, dry_run: bool = False) -> None:
    run_cmd(["partprobe", disk], check=check, dry_run=dry_run)
    run_cmd(["udevadm", "settle"], check=False, dry_run=dry_run)


def wait_for_devices(
    paths: Iterable[str],
    *,
    timeout_s: float = 10.0,
    interval_s: float = 0.5,
    dry_run: bool = False,
) -> None:
    """Block until every device node exists."""

    pending = list(paths)
    if dry_run:
        return

    deadline = time.monotonic() + timeout_s
    while True:
        pending = [p for p in pending if not Path(p).exists()]
        if not pending:
            return
        if time.monotonic() >= deadline:
            raise InstallerError(f"Device node(s) did not appear: {', '.join(pending)}")
        time.sleep(interval_s)


def wipe_disk(disk: str, *, dry_run: bool = False) -> None:
    """Destroy the partition table and the first/last WIPE_MIB of the disk.

    Irreversible. Must run before create_partitions().
    """

    logger.info("Wiping existing partition table and headers on %s", disk)
    run_cmd(["sgdisk", "--zap-all", disk], dry_run=dry_run)

    r = run_cmd(
        ["dd", "if=/dev/zero", f"of={disk}", "bs=1M", f"count={WIPE_MIB}", "conv=fsync"],
        check=False,
        dry_run=dry_run,
    )
    if r.returncode != 0:
        logger.warning("Zeroing the start of %s failed: %s", disk, r.stderr.strip())

    if dry_run:
        logger.info("Would zero the final %s MiB of %s", WIPE_MIB, disk)
    else:
        end_sector = int(run_cmd(["blockdev", "--getsz", disk]).stdout.strip())
        # blockdev --getsz reports 512-byte units regardless of the hardware sector size.
        bs = sector_size(disk)
        total = end_sector * 512 // bs
        tail = WIPE_MIB * 1024 * 1024 // bs
        r = run_cmd(
            ["dd", "if=/dev/zero", f"of={disk}", f"bs={bs}", f"seek={max(total - tail, 0)}", f"count={tail}", "conv=fsync"],
            check=False,
        )
        if r.returncode != 0:
            logger.warning("Zeroing the end of %s failed: %s", disk, r.stderr.strip())

    flush_writes(dry_run=dry_run)
    reread_partitions(disk, check=False, dry_run=dry_run)


def create_partitions(disk: str, layout: DiskLayout, *, dry_run: bool = False) -> Dict[str, str]:
    """Create the GPT layout and wait for the partition nodes.

    Returns a mapping of region name to partition device path.
    """

    labels = {"efi": "EFI", "root": "ROOT", "swap": "SWAP"}
    last = layout.regions[-1]

    for r in layout.regions:
        # The last region takes the remainder so GPT's backup header fits.
        end = "0" if r is last else f"+{r.size_mib}MiB"
        run_cmd(
            [
                "sgdisk",
                f"--new={r.number}:0:{end}",
                f"--typecode={r.number}:{r.type_code}",
                f"--change-name={r.number}:{labels.get(r.name, r.name.upper())}",
                disk,
            ],
            dry_run=dry_run,
        )

    flush_writes(dry_run=dry_run)
    reread_partitions(disk, dry_run=dry_run)

    parts = partition_paths(disk, layout)
    wait_for_devices(parts.values(), dry_run=dry_run)
    logger.info("Partition table created: %s", parts)
    return parts
