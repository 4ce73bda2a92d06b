from __future__ import annotations

import getpass
import logging
import re
from typing import Callable, Optional, Tuple

from ..errors import AbortedByUser, ValidationError
from ..install_config import InstallConfig, InstallSecrets

logger = logging.getLogger(__name__)

Ask = Callable[[str], str]

_USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
_HOST_LABEL_RE = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def ask_with_default(ask: Ask, label: str, default: str) -> str:
    value = ask(f"{label} [{default}]: ").strip()
    return value or default


def validate_passwords(password: str, confirm: str) -> None:
    if password != confirm:
        raise ValidationError("Passwords do not match")
    if not password:
        raise ValidationError("Password cannot be empty")


def validate_luks_passphrase(passphrase: str, confirm: str, account_password: str) -> None:
    """Disk passphrase must be confirmed, non-empty and distinct from the login password."""

    if passphrase != confirm:
        raise ValidationError("LUKS passphrases do not match")
    if not passphrase:
        raise ValidationError("LUKS passphrase cannot be empty")
    if passphrase == account_password:
        raise ValidationError("LUKS passphrase must differ from user/root password")


def is_valid_hostname(name: str) -> bool:
    return 0 < len(name) <= 253 and all(_HOST_LABEL_RE.match(label) for label in name.split("."))


def is_valid_username(name: str) -> bool:
    return bool(_USERNAME_RE.match(name))


def parse_swap_gib(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"Swap size must be a whole number of GiB, got {raw!r}") from None
    if value < 0:
        raise ValidationError(f"Swap size must not be negative, got {value}")
    return value


def parse_install_type(raw: str) -> bool:
    """'1' selects encryption, '2' a plain install."""

    if raw not in {"1", "2"}:
        raise ValidationError(f"Invalid choice {raw!r}; expected 1 or 2")
    return raw == "1"


def _ask_validated(ask: Ask, label: str, default: str, valid: Callable[[str], bool]) -> str:
    while True:
        value = ask_with_default(ask, label, default)
        if valid(value):
            return value
        print(f"Invalid {label.lower()}: {value!r}")


def collect_luks_passphrase(ask_secret: Ask, account_password: str, *, attempts: Optional[int] = None) -> str:
    """Prompt until a valid passphrase is entered (or attempts run out)."""

    tries = 0
    while True:
        tries += 1
        passphrase = ask_secret("LUKS Password: ")
        confirm = ask_secret("Confirm LUKS Password: ")
        try:
            validate_luks_passphrase(passphrase, confirm, account_password)
            return passphrase
        except ValidationError as e:
            if attempts is not None and tries >= attempts:
                raise
            print(f"{e}, try again")


def summary(cfg: InstallConfig) -> str:
    return "\n".join(
        [
            "Summary:",
            f"  Disk: {cfg.disk}",
            f"  Hostname: {cfg.hostname}",
            f"  User: {cfg.username}",
            f"  Encrypted: {'YES' if cfg.encrypted else 'NO'}",
            f"  Swap GiB: {cfg.swap_gib}",
            f"  Timezone: {cfg.timezone}",
            f"  Locale: {cfg.locale}",
            f"  Keymap: {cfg.keymap}",
            f"  Snapshots: {'YES' if cfg.snapshots else 'NO'}",
        ]
    )


def collect_config(
    defaults: InstallConfig,
    *,
    ask: Ask = input,
    ask_secret: Ask = getpass.getpass,
    layout_locked: bool = False,
) -> Tuple[InstallConfig, InstallSecrets]:
    """Interactively gather the installation config and credentials.

    With layout_locked the disk has already been partitioned, so swap size
    and install type are taken from defaults instead of being asked.

    Raises ValidationError on bad input and AbortedByUser when the final
    confirmation is declined.
    """

    print("Collecting install preferences")
    hostname = _ask_validated(ask, "Hostname", defaults.hostname, is_valid_hostname)
    username = _ask_validated(ask, "Username", defaults.username, is_valid_username)
    locale = ask_with_default(ask, "Locale", defaults.locale)
    keymap = ask_with_default(ask, "Keymap", defaults.keymap)
    timezone = ask_with_default(ask, "Timezone", defaults.timezone)
    if layout_locked:
        swap_gib = defaults.swap_gib
        encrypted = defaults.encrypted
        print(
            f"Disk layout already applied: keeping swap {swap_gib} GiB, "
            f"{'encrypted' if encrypted else 'non-encrypted'} install"
        )
    else:
        swap_gib = parse_swap_gib(ask_with_default(ask, "Swap size GiB", str(defaults.swap_gib)))

        print("Choose installation type:")
        print("  1) Encrypted (LUKS2 root + encrypted swap partition)")
        print("  2) Non-encrypted (plain btrfs root + swap partition)")
        encrypted = parse_install_type(ask("Enter choice [1/2]: ").strip())

    snap_default = "Y/n" if defaults.snapshots else "y/N"
    snap_raw = ask(f"Configure snapper snapshots? ({snap_default}): ").strip().lower()
    snapshots = defaults.snapshots if not snap_raw else snap_raw == "y"

    print("Enter password for root and user (will not echo)")
    password = ask_secret("Password (root & user): ")
    confirm = ask_secret("Confirm Password: ")
    validate_passwords(password, confirm)

    luks_passphrase = None
    if encrypted:
        print("Enter separate LUKS2 disk encryption password (distinct from user password)")
        luks_passphrase = collect_luks_passphrase(ask_secret, password)

    cfg = InstallConfig(
        disk=defaults.disk,
        hostname=hostname,
        username=username,
        timezone=timezone,
        locale=locale,
        keymap=keymap,
        swap_gib=swap_gib,
        compression=defaults.compression,
        encrypted=encrypted,
        snapshots=snapshots,
    )

    print(summary(cfg))
    if ask(f"Proceed with disk wipe and install on {cfg.disk}? (y/N): ").strip() != "y":
        raise AbortedByUser("Aborted by user")

    logger.info("Configuration collected: %s", cfg)
    return cfg, InstallSecrets(password=password, luks_passphrase=luks_passphrase)
