from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.crypto import disable_swap, luks_close
from ..lib.env import CRYPT_ROOT, CRYPT_SWAP, PATHS
from ..lib.filesystems import unmount_all

logger = logging.getLogger(__name__)

NEXT_STEPS = (
    "Installation complete. You may now 'reboot'.",
    "Next steps after boot: login as {user} and verify services (systemctl --failed).",
    "Enable audio: 'systemctl --user enable --now pipewire-pulse.service wireplumber.service'",
)


class FinalizeStep:
    """Best-effort teardown; failures here only warn."""

    step_id = "90_finalize"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        mounts = (state.get("execution") or {}).get("mounts") or {}
        target_root = mounts.get("target_root") or PATHS.target_root
        dry_run = bool(cfg.get("dry_run", False))

        logger.info("Finalizing installation (unmounting)")
        disable_swap(dry_run=dry_run)
        clean = unmount_all(target_root, dry_run=dry_run)

        if cfg.get("encrypted"):
            clean = luks_close(CRYPT_ROOT, dry_run=dry_run) and clean
            if mounts.get("swap_part"):
                clean = luks_close(CRYPT_SWAP, dry_run=dry_run) and clean

        state.setdefault("execution", {}).setdefault("decisions", {})["clean_teardown"] = clean

        for line in NEXT_STEPS:
            logger.info(line.format(user=cfg.get("username", "your user")))
        return state
