from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Optional

from .errors import InstallerError
from .lib.env import DEFAULTS, PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import check_step_ids, run_pipeline
from .state_store import ensure_defaults, is_step_completed, load_state, save_state
from .steps import (
    CollectConfigStep,
    ConfigureTargetStep,
    EncryptionStep,
    FilesystemStep,
    FinalizeStep,
    InstallBaseStep,
    PartitionStep,
    PlanLayoutStep,
    PreflightStep,
    WipeDiskStep,
    WriteFstabStep,
)
from .steps.step_15_collect_config import layout_applied

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = PATHS.state_default


def build_steps():
    # Planning must stay ahead of the first destructive step (wipe).
    return [
        PreflightStep(),
        CollectConfigStep(),
        PlanLayoutStep(),
        WipeDiskStep(),
        PartitionStep(),
        EncryptionStep(),
        FilesystemStep(),
        InstallBaseStep(),
        WriteFstabStep(),
        ConfigureTargetStep(),
        FinalizeStep(),
    ]


def run(
    *,
    disk: Optional[str] = None,
    target_root: Optional[str] = None,
    state_path: str = DEFAULT_STATE_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Run the installer pipeline and save the non-secret state for resume.

    A dry run reads saved state but never writes it back. A saved state that
    records a finished install, or a layout applied to another disk, is
    refused unless force is given. Forcing a full run (no start_at) also
    forgets which stages were completed.
    """

    actual_log_path = configure_logging(log_path=log_path)

    steps = build_steps()
    check_step_ids(steps, start_at=start_at, stop_after=stop_after)

    state = ensure_defaults(load_state(state_path))
    if force and start_at is None:
        state["execution"]["completed_steps"] = []
    elif not force and is_step_completed(state, FinalizeStep.step_id):
        raise InstallerError(
            f"State file {state_path} records a finished install; pass --force to install again"
        )

    cfg = state["config"]
    saved_disk = cfg.get("disk")
    if disk and saved_disk and disk != saved_disk and layout_applied(state):
        raise InstallerError(
            f"State file {state_path} holds a layout applied to {saved_disk}, not {disk}; "
            "pass --force to start over"
        )
    cfg["dry_run"] = dry_run
    if disk:
        cfg["disk"] = disk
    cfg.setdefault("disk", DEFAULTS.disk)

    mounts = state["execution"]["mounts"]
    if target_root:
        mounts["target_root"] = target_root
    mounts.setdefault("target_root", PATHS.target_root)
    state["execution"].setdefault("paths", {})["log_path_actual"] = actual_log_path

    try:
        result = run_pipeline(
            state=state,
            steps=steps,
            start_at=start_at,
            stop_after=stop_after,
            force=force,
        )
        state = result.state
        state.setdefault("execution", {}).setdefault("summary", {})["ran_steps"] = result.ran_steps
        state.setdefault("execution", {}).setdefault("summary", {})["skipped_steps"] = result.skipped_steps
        return state
    except Exception as e:
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
            }
        )
        raise
    finally:
        if dry_run:
            logger.info("Dry run: state not written to %s", state_path)
        else:
            save_state(state_path, state)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="laptop-installer",
        description="Interactive Arch Linux laptop installer (ERASES the target disk)",
    )
    p.add_argument("--disk", default=None, help=f"Target block device (default: {DEFAULTS.disk})")
    p.add_argument("--target", default=None, help=f"Mount point for the new system (default: {PATHS.target_root})")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to installer state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 60_install_base)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run completed steps; without --start-at, begin a fresh install")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")

    args = p.parse_args(argv)

    try:
        run(
            disk=args.disk,
            target_root=args.target,
            state_path=args.state,
            log_path=args.log,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=args.force,
            dry_run=args.dry_run,
        )
    except InstallerError as e:
        logger.error("ERROR: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted; the target disk may be partially configured and mounted")
        return 130
    except Exception:
        logger.exception("Installer failed")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
