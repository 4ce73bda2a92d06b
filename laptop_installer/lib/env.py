from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    target_root: str = "/mnt"
    btrfs_setup_mount: str = "/mnt/btrfs_setup"
    state_default: str = "/var/lib/laptop-installer/state.json"
    log_default: str = "/var/log/laptop-installer.log"


@dataclass(frozen=True)
class Defaults:
    disk: str = "/dev/nvme0n1"
    hostname: str = "archlinux"
    username: str = "player1"
    timezone: str = "America/Denver"
    locale: str = "en_US.UTF-8"
    keymap: str = "us"
    swap_gib: int = 16
    compression: str = "zstd:3"
    esp_size_mib: int = 512
    # 20 GiB
    min_root_mib: int = 20480
    # Assumed device size when --dry-run cannot query the disk.
    dry_run_disk_bytes: int = 512 * 1024**3


# Device-mapper names for the LUKS containers.
CRYPT_ROOT = "cryptroot"
CRYPT_SWAP = "cryptswap"

PATHS = Paths()
DEFAULTS = Defaults()
