from __future__ import annotations

import logging
from typing import Any, Dict

from ..install_config import config_from_state
from ..lib.disk import wipe_disk

logger = logging.getLogger(__name__)


class WipeDiskStep:
    step_id = "30_wipe_disk"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_from_state(state)
        dry_run = bool(state["config"].get("dry_run", False))

        if "layout" not in (state.get("execution") or {}):
            raise RuntimeError("execution.layout missing; run 20_plan_layout before wiping")

        wipe_disk(cfg.disk, dry_run=dry_run)
        return state
