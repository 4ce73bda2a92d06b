from __future__ import annotations

import logging
from typing import Any, Dict

from ..install_config import config_from_state
from ..lib.disk import create_partitions
from ..lib.planner import DiskLayout

logger = logging.getLogger(__name__)


class PartitionStep:
    step_id = "35_partition"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_from_state(state)
        exe = state.setdefault("execution", {})
        dry_run = bool(state["config"].get("dry_run", False))

        layout = DiskLayout.from_dict(exe["layout"])
        parts = create_partitions(cfg.disk, layout, dry_run=dry_run)

        mounts = exe.setdefault("mounts", {})
        mounts["esp_part"] = parts["efi"]
        mounts["root_part"] = parts["root"]
        mounts["swap_part"] = parts.get("swap")
        # Until encryption says otherwise, filesystems go on the raw partitions.
        mounts["root_device"] = parts["root"]
        mounts["swap_device"] = parts.get("swap")
        return state
