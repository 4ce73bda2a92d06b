from __future__ import annotations

import logging
from pathlib import Path

from ..errors import CommandError, EncryptionError
from .command import run_cmd

logger = logging.getLogger(__name__)


def mapper_path(name: str) -> str:
    return f"/dev/mapper/{name}"


def is_mapping_open(name: str) -> bool:
    return Path(mapper_path(name)).exists()


def luks_format(device: str, passphrase: str, *, label: str, dry_run: bool = False) -> None:
    """Initialize a LUKS2 container with an argon2id key slot."""

    if not passphrase:
        raise EncryptionError("LUKS passphrase must not be empty")
    logger.info("Setting up LUKS2 encryption (argon2id) on %s", device)
    try:
        run_cmd(
            [
                "cryptsetup",
                "luksFormat",
                "--batch-mode",
                "--type",
                "luks2",
                "--pbkdf",
                "argon2id",
                "--label",
                label,
                "--key-file=-",
                device,
            ],
            input_text=passphrase,
            dry_run=dry_run,
        )
    except CommandError as e:
        raise EncryptionError(f"Failed to format {device} as LUKS2: {e}") from e


def luks_open(device: str, name: str, passphrase: str, *, dry_run: bool = False) -> str:
    """Unlock device as /dev/mapper/<name>; refuses to reuse an open mapping."""

    if not dry_run and is_mapping_open(name):
        raise EncryptionError(f"Mapping {mapper_path(name)} is already open; close it before installing")
    try:
        run_cmd(["cryptsetup", "open", "--key-file=-", device, name], input_text=passphrase, dry_run=dry_run)
    except CommandError as e:
        raise EncryptionError(f"Failed to open {device} as {name}: {e}") from e
    return mapper_path(name)


def luks_close(name: str, *, dry_run: bool = False) -> bool:
    """Best-effort close; returns False (with a warning) when it fails."""

    r = run_cmd(["cryptsetup", "close", name], check=False, dry_run=dry_run)
    if r.returncode != 0:
        logger.warning("cryptsetup close %s failed (rc=%s): %s", name, r.returncode, r.stderr.strip())
        return False
    return True


def enable_swap(device: str, *, dry_run: bool = False) -> None:
    run_cmd(["mkswap", device], dry_run=dry_run)
    run_cmd(["swapon", device], dry_run=dry_run)


def disable_swap(*, dry_run: bool = False) -> None:
    r = run_cmd(["swapoff", "-a"], check=False, dry_run=dry_run)
    if r.returncode != 0:
        logger.warning("swapoff -a failed (rc=%s): %s", r.returncode, r.stderr.strip())
