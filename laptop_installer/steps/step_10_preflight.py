from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import PreflightError
from ..lib.env import DEFAULTS
from ..lib.preflight import (
    REQUIRED_COMMANDS,
    check_network,
    require_block_device,
    require_commands,
    require_root,
    require_uefi,
)

logger = logging.getLogger(__name__)


class PreflightStep:
    step_id = "10_preflight"
    always_run = True

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.setdefault("config", {})
        dry_run = bool(cfg.get("dry_run", False))
        disk = cfg.setdefault("disk", DEFAULTS.disk)

        logger.info("Validating live environment prerequisites")
        checks = [
            lambda: require_commands(REQUIRED_COMMANDS),
            require_root,
            require_uefi,
            lambda: require_block_device(disk),
        ]
        for check in checks:
            try:
                check()
            except PreflightError as e:
                if not dry_run:
                    raise
                logger.warning("Dry run, ignoring: %s", e)

        online = check_network(dry_run=dry_run)
        state.setdefault("execution", {}).setdefault("decisions", {})["network_reachable"] = online
        return state
