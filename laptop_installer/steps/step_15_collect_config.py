from __future__ import annotations

import logging
from typing import Any, Dict

from ..install_config import InstallConfig
from ..lib import prompts
from ..state_store import completed_any
from .step_30_wipe_disk import WipeDiskStep
from .step_35_partition import PartitionStep
from .step_40_encryption import EncryptionStep
from .step_50_filesystems import FilesystemStep

logger = logging.getLogger(__name__)

# Once any of these has run, disk, swap size and encryption are fixed on disk.
LAYOUT_STEP_IDS = (
    WipeDiskStep.step_id,
    PartitionStep.step_id,
    EncryptionStep.step_id,
    FilesystemStep.step_id,
)


def layout_applied(state: Dict[str, Any]) -> bool:
    return completed_any(state, LAYOUT_STEP_IDS)


class CollectConfigStep:
    step_id = "15_collect_config"
    # Secrets are never persisted, so every invocation prompts again.
    always_run = True

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.setdefault("config", {})

        # Values saved by an earlier run become the defaults.
        defaults = InstallConfig.from_dict(cfg)
        locked = layout_applied(state)
        if locked:
            logger.info(
                "Resuming on an applied layout: disk=%s swap_gib=%s encrypted=%s are kept",
                defaults.disk,
                defaults.swap_gib,
                defaults.encrypted,
            )
        config, secrets = prompts.collect_config(defaults, layout_locked=locked)

        cfg.update(config.to_dict())
        state["secrets"] = secrets
        return state
