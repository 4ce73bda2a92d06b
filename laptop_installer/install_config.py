from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from .errors import InstallerError
from .lib.env import DEFAULTS


@dataclass(frozen=True)
class InstallConfig:
    """Operator choices; created once by the collector, never mutated."""

    disk: str = DEFAULTS.disk
    hostname: str = DEFAULTS.hostname
    username: str = DEFAULTS.username
    timezone: str = DEFAULTS.timezone
    locale: str = DEFAULTS.locale
    keymap: str = DEFAULTS.keymap
    swap_gib: int = DEFAULTS.swap_gib
    compression: str = DEFAULTS.compression
    encrypted: bool = False
    snapshots: bool = True

    @property
    def swap_mib(self) -> int:
        return self.swap_gib * 1024

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "InstallConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in raw.items() if k in known})


@dataclass(frozen=True)
class InstallSecrets:
    """Credentials; held in memory only (see state_store.save_state)."""

    password: str
    luks_passphrase: Optional[str] = None

    def __repr__(self) -> str:
        return "InstallSecrets(<redacted>)"


def config_from_state(state: Dict[str, Any]) -> InstallConfig:
    raw = state.get("config") or {}
    if "hostname" not in raw:
        raise InstallerError("Installation config missing; run the 15_collect_config stage first")
    return InstallConfig.from_dict(raw)


def secrets_from_state(state: Dict[str, Any]) -> InstallSecrets:
    secrets = state.get("secrets")
    if not isinstance(secrets, InstallSecrets):
        raise InstallerError("Credentials missing; they are collected on every run by 15_collect_config")
    return secrets
