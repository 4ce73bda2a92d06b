"""Configuration of the freshly bootstrapped system.

File contents are generated from the InstallConfig record. Files owned by
packages (mkinitcpio.conf, /etc/default/grub, ufw config) are edited by key
with set_conf_value() instead of pattern substitution. Commands run inside
the target through arch-chroot. There is no rollback: a failing step leaves
earlier steps applied.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import InstallerError
from ..install_config import InstallConfig, InstallSecrets
from .chroot import chroot_cmd
from .command import run_cmd
from .env import CRYPT_ROOT, CRYPT_SWAP
from .filesystems import in_target, mount_subvolume, subvolume
from .manifests import load_services

logger = logging.getLogger(__name__)

EDITOR = "nano"
BOOTLOADER_ID = "ArchLinux"
SUDOERS_WHEEL = "%wheel ALL=(ALL:ALL) ALL\n"

_BASE_HOOKS = ["base", "udev", "autodetect", "modconf", "kms", "keyboard", "keymap", "consolefont", "block"]
_TAIL_HOOKS = ["resume", "filesystems", "fsck"]


@dataclass(frozen=True)
class TargetContext:
    config: InstallConfig
    secrets: InstallSecrets
    target_root: str
    root_device: str
    root_uuid: str
    swap_uuid: Optional[str] = None
    dry_run: bool = False

    @property
    def has_swap(self) -> bool:
        return bool(self.swap_uuid)


def render_locale_gen(locale: str) -> str:
    charset = locale.split(".", 1)[1] if "." in locale else "UTF-8"
    return f"{locale} {charset}\n"


def render_locale_conf(locale: str) -> str:
    return f"LANG={locale}\n"


def render_vconsole(keymap: str) -> str:
    return f"KEYMAP={keymap}\n"


def render_hosts(hostname: str) -> str:
    return (
        "127.0.0.1   localhost\n"
        "::1         localhost\n"
        f"127.0.1.1   {hostname}.localdomain {hostname}\n"
    )


def mkinitcpio_hooks(encrypted: bool) -> List[str]:
    """Hook list: encrypt only for LUKS root, resume always."""

    return [*_BASE_HOOKS, *(["encrypt"] if encrypted else []), *_TAIL_HOOKS]


def kernel_cmdline(*, encrypted: bool, root_uuid: str, swap_uuid: Optional[str]) -> str:
    if encrypted:
        params = [
            f"cryptdevice=UUID={root_uuid}:{CRYPT_ROOT}",
            f"root=/dev/mapper/{CRYPT_ROOT}",
            "rootflags=subvol=@",
        ]
        if swap_uuid:
            params.append(f"resume=/dev/mapper/{CRYPT_SWAP}")
    else:
        params = [f"root=UUID={root_uuid}", "rootflags=subvol=@"]
        if swap_uuid:
            params.append(f"resume=UUID={swap_uuid}")
    params.append("rw")
    return " ".join(params)


def render_crypttab(swap_uuid: str) -> str:
    return f"{CRYPT_SWAP}\tUUID={swap_uuid}\tnone\tluks\n"


def render_user_profile(editor: str = EDITOR) -> str:
    return (
        f"export EDITOR={editor}\n"
        f"export VISUAL={editor}\n"
        'export PATH="$HOME/bin:$PATH"\n'
        "if [ -f ~/.bashrc ]; then . ~/.bashrc; fi\n"
    )


def set_conf_value(text: str, key: str, value: str) -> str:
    """Set KEY=value in shell-style config text.

    The first active KEY= line is replaced and later duplicates dropped; a
    commented-out '#KEY=' line is replaced when no active one exists;
    otherwise the assignment is appended.
    """

    active = re.compile(rf"^\s*{re.escape(key)}=")
    commented = re.compile(rf"^\s*#\s*{re.escape(key)}=")
    new_line = f"{key}={value}"

    lines = text.splitlines()
    out: List[str] = []
    placed = False
    for line in lines:
        if active.match(line):
            if not placed:
                out.append(new_line)
                placed = True
            continue
        out.append(line)

    if not placed:
        idx = next((i for i, line in enumerate(out) if commented.match(line)), None)
        if idx is None:
            out.append(new_line)
        else:
            out[idx] = new_line

    return "\n".join(out) + "\n"


def _target_path(root: str, rel: str) -> Path:
    return Path(root) / rel.lstrip("/")


def _write_file(root: str, rel: str, contents: str, *, mode: Optional[int] = None, dry_run: bool) -> None:
    p = _target_path(root, rel)
    if dry_run:
        logger.info("Would write %s", str(p))
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    if mode is not None:
        os.chmod(p, mode)


def edit_conf_file(root: str, rel: str, values: Mapping[str, str], *, dry_run: bool) -> None:
    """Apply set_conf_value() for each key; creates the file if missing."""

    p = _target_path(root, rel)
    if dry_run:
        logger.info("Would set %s in %s", ", ".join(values), str(p))
        return
    text = p.read_text(encoding="utf-8") if p.exists() else ""
    for key, value in values.items():
        text = set_conf_value(text, key, value)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")


def configure_time(ctx: TargetContext) -> None:
    tz = ctx.config.timezone
    zone = _target_path(ctx.target_root, f"/usr/share/zoneinfo/{tz}")
    if not ctx.dry_run and not zone.is_file():
        raise InstallerError(f"Unknown timezone {tz!r} (missing {zone})")
    chroot_cmd(ctx.target_root, ["ln", "-sf", f"/usr/share/zoneinfo/{tz}", "/etc/localtime"], dry_run=ctx.dry_run)
    chroot_cmd(ctx.target_root, ["hwclock", "--systohc"], dry_run=ctx.dry_run)


def configure_locale(ctx: TargetContext) -> None:
    _write_file(ctx.target_root, "/etc/locale.gen", render_locale_gen(ctx.config.locale), dry_run=ctx.dry_run)
    chroot_cmd(ctx.target_root, ["locale-gen"], dry_run=ctx.dry_run)
    _write_file(ctx.target_root, "/etc/locale.conf", render_locale_conf(ctx.config.locale), dry_run=ctx.dry_run)


def configure_keymap(ctx: TargetContext) -> None:
    _write_file(ctx.target_root, "/etc/vconsole.conf", render_vconsole(ctx.config.keymap), dry_run=ctx.dry_run)


def configure_hostname(ctx: TargetContext) -> None:
    _write_file(ctx.target_root, "/etc/hostname", ctx.config.hostname + "\n", dry_run=ctx.dry_run)
    _write_file(ctx.target_root, "/etc/hosts", render_hosts(ctx.config.hostname), dry_run=ctx.dry_run)


def configure_accounts(ctx: TargetContext) -> None:
    user = ctx.config.username
    chroot_cmd(ctx.target_root, ["groupadd", "-f", user], dry_run=ctx.dry_run)

    exists = (not ctx.dry_run) and chroot_cmd(ctx.target_root, ["id", "-u", user], check=False).returncode == 0
    if exists:
        logger.info("User %s already exists; ensuring wheel membership", user)
        chroot_cmd(ctx.target_root, ["usermod", "-aG", "wheel", user], dry_run=ctx.dry_run)
    else:
        chroot_cmd(
            ctx.target_root,
            ["useradd", "-m", "-g", user, "-G", "wheel", "-s", "/bin/bash", user],
            dry_run=ctx.dry_run,
        )

    pw = ctx.secrets.password
    chroot_cmd(ctx.target_root, ["chpasswd"], input_text=f"root:{pw}\n{user}:{pw}\n", dry_run=ctx.dry_run)


def configure_sudo(ctx: TargetContext) -> None:
    _write_file(ctx.target_root, "/etc/sudoers.d/10-wheel", SUDOERS_WHEEL, mode=0o440, dry_run=ctx.dry_run)


def configure_initramfs(ctx: TargetContext) -> None:
    hooks = mkinitcpio_hooks(ctx.config.encrypted)
    logger.info("mkinitcpio hooks: %s", " ".join(hooks))
    edit_conf_file(ctx.target_root, "/etc/mkinitcpio.conf", {"HOOKS": f"({' '.join(hooks)})"}, dry_run=ctx.dry_run)
    chroot_cmd(ctx.target_root, ["mkinitcpio", "-P"], dry_run=ctx.dry_run)


def configure_crypttab(ctx: TargetContext) -> None:
    if not (ctx.config.encrypted and ctx.has_swap):
        return
    _write_file(ctx.target_root, "/etc/crypttab", render_crypttab(str(ctx.swap_uuid)), dry_run=ctx.dry_run)


def configure_bootloader(ctx: TargetContext) -> None:
    chroot_cmd(
        ctx.target_root,
        [
            "grub-install",
            "--target=x86_64-efi",
            "--efi-directory=/boot",
            f"--bootloader-id={BOOTLOADER_ID}",
            "--recheck",
        ],
        dry_run=ctx.dry_run,
    )

    cmdline = kernel_cmdline(encrypted=ctx.config.encrypted, root_uuid=ctx.root_uuid, swap_uuid=ctx.swap_uuid)
    values: Dict[str, str] = {"GRUB_CMDLINE_LINUX": f'"{cmdline}"'}
    if ctx.config.encrypted:
        values["GRUB_ENABLE_CRYPTODISK"] = "y"
    edit_conf_file(ctx.target_root, "/etc/default/grub", values, dry_run=ctx.dry_run)
    logger.info("Kernel command line: %s", cmdline)

    chroot_cmd(ctx.target_root, ["grub-mkconfig", "-o", "/boot/grub/grub.cfg"], dry_run=ctx.dry_run)


def enable_services(ctx: TargetContext) -> None:
    services = load_services()
    for svc in services["required"]:
        chroot_cmd(ctx.target_root, ["systemctl", "enable", svc], dry_run=ctx.dry_run)
    for svc in services["optional"]:
        r = chroot_cmd(ctx.target_root, ["systemctl", "enable", svc], check=False, dry_run=ctx.dry_run)
        if r.returncode != 0:
            logger.warning("Optional service %s could not be enabled", svc)


def configure_firewall(ctx: TargetContext) -> None:
    edit_conf_file(
        ctx.target_root,
        "/etc/default/ufw",
        {"DEFAULT_INPUT_POLICY": '"DROP"', "DEFAULT_OUTPUT_POLICY": '"ACCEPT"'},
        dry_run=ctx.dry_run,
    )
    edit_conf_file(ctx.target_root, "/etc/ufw/ufw.conf", {"ENABLED": "yes"}, dry_run=ctx.dry_run)


def configure_cpupower(ctx: TargetContext) -> None:
    edit_conf_file(ctx.target_root, "/etc/default/cpupower", {"governor": "'powersave'"}, dry_run=ctx.dry_run)


def configure_editor(ctx: TargetContext) -> None:
    edit_conf_file(ctx.target_root, "/etc/environment", {"EDITOR": EDITOR, "VISUAL": EDITOR}, dry_run=ctx.dry_run)


def write_user_profile(ctx: TargetContext) -> None:
    user = ctx.config.username
    _write_file(ctx.target_root, f"/home/{user}/.profile", render_user_profile(), dry_run=ctx.dry_run)
    chroot_cmd(ctx.target_root, ["chown", f"{user}:{user}", f"/home/{user}/.profile"], dry_run=ctx.dry_run)


def configure_snapper(ctx: TargetContext) -> None:
    """Create snapper's root config while keeping @snapshots as /.snapshots.

    create-config refuses an existing /.snapshots and creates its own nested
    subvolume, so @snapshots is unmounted first and remounted afterwards.
    """

    if not ctx.config.snapshots:
        logger.info("Snapshots disabled; skipping snapper")
        return

    snapshots = in_target(ctx.target_root, "/.snapshots")
    run_cmd(["umount", snapshots], dry_run=ctx.dry_run)
    run_cmd(["rmdir", snapshots], dry_run=ctx.dry_run)
    chroot_cmd(ctx.target_root, ["snapper", "--no-dbus", "-c", "root", "create-config", "/"], dry_run=ctx.dry_run)
    chroot_cmd(ctx.target_root, ["btrfs", "subvolume", "delete", "/.snapshots"], dry_run=ctx.dry_run)
    run_cmd(["mkdir", "-p", snapshots], dry_run=ctx.dry_run)
    mount_subvolume(
        ctx.root_device, subvolume("@snapshots"), ctx.target_root, ctx.config.compression, dry_run=ctx.dry_run
    )
    if not ctx.dry_run:
        os.chmod(snapshots, 0o750)


TARGET_STEPS: Sequence[Tuple[str, Callable[[TargetContext], None]]] = (
    ("timezone", configure_time),
    ("locale", configure_locale),
    ("keymap", configure_keymap),
    ("hostname", configure_hostname),
    ("accounts", configure_accounts),
    ("sudo", configure_sudo),
    ("initramfs", configure_initramfs),
    ("crypttab", configure_crypttab),
    ("bootloader", configure_bootloader),
    ("services", enable_services),
    ("firewall", configure_firewall),
    ("cpupower", configure_cpupower),
    ("editor", configure_editor),
    ("profile", write_user_profile),
    ("snapper", configure_snapper),
)


def apply_target_configuration(ctx: TargetContext) -> List[str]:
    """Run every target step in order; returns the names of the steps run."""

    done: List[str] = []
    for name, fn in TARGET_STEPS:
        logger.info("[target] %s", name)
        fn(ctx)
        done.append(name)
    return done
