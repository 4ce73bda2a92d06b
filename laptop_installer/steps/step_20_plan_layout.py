from __future__ import annotations

import logging
from typing import Any, Dict

from ..install_config import config_from_state
from ..lib.disk import get_disk_size_bytes
from ..lib.env import DEFAULTS
from ..lib.planner import plan_layout

logger = logging.getLogger(__name__)


class PlanLayoutStep:
    step_id = "20_plan_layout"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_from_state(state)
        dry_run = bool(state["config"].get("dry_run", False))

        size = get_disk_size_bytes(cfg.disk, dry_run=dry_run)
        if not size and dry_run:
            size = DEFAULTS.dry_run_disk_bytes
            logger.info("Dry run: assuming disk size %s bytes", size)

        layout = plan_layout(size, cfg.swap_mib)

        state.setdefault("execution", {})["layout"] = layout.to_dict()
        return state
