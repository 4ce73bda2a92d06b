from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.fstab import write_fstab

logger = logging.getLogger(__name__)


class WriteFstabStep:
    step_id = "65_write_fstab"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        mounts = (state.get("execution") or {}).get("mounts") or {}
        target_root = mounts.get("target_root")
        if not target_root:
            raise RuntimeError("execution.mounts.target_root missing; run 50_filesystems first")

        write_fstab(target_root, dry_run=bool(cfg.get("dry_run", False)))
        return state
