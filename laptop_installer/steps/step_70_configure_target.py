from __future__ import annotations

import logging
from typing import Any, Dict

from ..install_config import config_from_state, secrets_from_state
from ..lib.disk import get_uuid
from ..lib.target_config import TargetContext, apply_target_configuration

logger = logging.getLogger(__name__)


class ConfigureTargetStep:
    step_id = "70_configure_target"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_from_state(state)
        secrets = secrets_from_state(state)
        exe = state.setdefault("execution", {})
        mounts = exe.get("mounts") or {}
        dry_run = bool(state["config"].get("dry_run", False))

        target_root = mounts.get("target_root")
        root_part = mounts.get("root_part")
        if not target_root or not root_part:
            raise RuntimeError("Missing target_root/root_part; run the disk stages first")

        # Encrypted: the LUKS header UUID of the raw partition (cryptdevice=).
        # Plain: the btrfs UUID on the same partition.
        root_uuid = get_uuid(root_part, dry_run=dry_run)
        swap_part = mounts.get("swap_part")
        swap_uuid = get_uuid(swap_part, dry_run=dry_run) if swap_part else None

        ctx = TargetContext(
            config=cfg,
            secrets=secrets,
            target_root=target_root,
            root_device=mounts.get("root_device") or root_part,
            root_uuid=root_uuid,
            swap_uuid=swap_uuid,
            dry_run=dry_run,
        )
        done = apply_target_configuration(ctx)

        decisions = exe.setdefault("decisions", {})
        decisions["root_uuid"] = root_uuid
        decisions["swap_uuid"] = swap_uuid
        decisions["target_steps"] = done
        return state
