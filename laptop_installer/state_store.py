from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

# Keys that only live for the process lifetime and are never written out.
TRANSIENT_KEYS = ("secrets",)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    fmt = _detect_format(p)
    data: Dict[str, Any]

    if fmt in {"yaml", "yml"}:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    else:
        data = json.loads(p.read_text(encoding="utf-8"))

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    return data


def persistable(state: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of state without transient (secret) keys."""

    return {k: v for k, v in state.items() if k not in TRANSIENT_KEYS}


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    data = persistable(state)
    fmt = _detect_format(p)
    if fmt in {"yaml", "yml"}:
        p.write_text(yaml.safe_dump(data, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    # The config record names the operator's disk and account; keep it private.
    p.chmod(0o600)


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with sane defaults (without overriding saved values)."""

    state.setdefault("version", "1")
    state.setdefault("config", {})
    state.setdefault("execution", {})

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])
    exe.setdefault("mounts", {})

    return state


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed


def completed_any(state: Dict[str, Any], step_ids) -> bool:
    return any(is_step_completed(state, s) for s in step_ids)
