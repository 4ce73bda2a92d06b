from __future__ import annotations

import logging
from typing import Any, Dict

from ..install_config import config_from_state
from ..lib.env import PATHS
from ..lib.filesystems import create_subvolumes, format_esp, format_root, mount_layout

logger = logging.getLogger(__name__)


class FilesystemStep:
    step_id = "50_filesystems"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_from_state(state)
        mounts = state.setdefault("execution", {}).setdefault("mounts", {})
        dry_run = bool(state["config"].get("dry_run", False))

        esp_part = mounts.get("esp_part")
        root_device = mounts.get("root_device")
        if not esp_part or not root_device:
            raise RuntimeError("execution.mounts incomplete; run 35_partition and 40_encryption first")

        target_root = mounts.setdefault("target_root", PATHS.target_root)

        logger.info("Formatting EFI and root (btrfs)")
        format_esp(esp_part, dry_run=dry_run)
        format_root(root_device, dry_run=dry_run)

        logger.info("Creating btrfs subvolumes")
        create_subvolumes(root_device, PATHS.btrfs_setup_mount, dry_run=dry_run)

        logger.info("Mounting final subvolume layout")
        mounts["mounted"] = mount_layout(root_device, esp_part, target_root, cfg.compression, dry_run=dry_run)
        return state
