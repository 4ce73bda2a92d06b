from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.manifests import load_packages
from ..lib.pkg import pacstrap

logger = logging.getLogger(__name__)


class InstallBaseStep:
    step_id = "60_install_base"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        mounts = (state.get("execution") or {}).get("mounts") or {}
        target_root = mounts.get("target_root")
        if not target_root:
            raise RuntimeError("execution.mounts.target_root missing; run 50_filesystems first")

        dry_run = bool(cfg.get("dry_run", False))

        logger.info("Installing base system (pacstrap)")
        pacstrap(target_root, load_packages(), dry_run=dry_run)
        return state
