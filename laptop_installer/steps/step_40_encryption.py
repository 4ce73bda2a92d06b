from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import EncryptionError
from ..install_config import config_from_state, secrets_from_state
from ..lib.crypto import enable_swap, luks_format, luks_open
from ..lib.env import CRYPT_ROOT, CRYPT_SWAP

logger = logging.getLogger(__name__)


class EncryptionStep:
    """LUKS containers for root and swap, then swap activation.

    Plain installs pass straight through to swap activation on the raw
    partition. Any LUKS failure aborts; there is no unencrypted fallback.
    """

    step_id = "40_encryption"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_from_state(state)
        mounts = state.setdefault("execution", {}).setdefault("mounts", {})
        dry_run = bool(state["config"].get("dry_run", False))

        root_part = mounts.get("root_part")
        swap_part = mounts.get("swap_part")
        if not root_part:
            raise RuntimeError("execution.mounts.root_part missing; run 35_partition first")

        if cfg.encrypted:
            passphrase = secrets_from_state(state).luks_passphrase
            if not passphrase:
                raise EncryptionError("Encryption selected but no LUKS passphrase was collected")

            luks_format(root_part, passphrase, label=CRYPT_ROOT, dry_run=dry_run)
            mounts["root_device"] = luks_open(root_part, CRYPT_ROOT, passphrase, dry_run=dry_run)

            if swap_part:
                luks_format(swap_part, passphrase, label=CRYPT_SWAP, dry_run=dry_run)
                mounts["swap_device"] = luks_open(swap_part, CRYPT_SWAP, passphrase, dry_run=dry_run)
        else:
            logger.info("Non-encrypted path selected")

        if mounts.get("swap_device"):
            enable_swap(mounts["swap_device"], dry_run=dry_run)

        state.setdefault("execution", {}).setdefault("decisions", {})["encrypted"] = cfg.encrypted
        return state
