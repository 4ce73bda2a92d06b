from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml

MANIFEST_DIR = Path(__file__).resolve().parents[1] / "manifests"


def load_yaml_rel(rel_path: str) -> Dict[str, Any]:
    """Load a YAML manifest shipped inside the package (manifests/...)."""

    p = MANIFEST_DIR / rel_path.lstrip("/")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {p}")
    return data


def _str_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"Manifest key {key!r} must be a list")
    return [str(v) for v in value]


def load_packages() -> List[str]:
    return _str_list(load_yaml_rel("packages.yaml"), "packages")


def load_services() -> Dict[str, List[str]]:
    data = load_yaml_rel("services.yaml")
    return {"required": _str_list(data, "required"), "optional": _str_list(data, "optional")}
