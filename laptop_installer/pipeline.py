from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .state_store import is_step_completed, mark_step_completed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single installation stage.

    Stages with ``always_run = True`` run on every invocation, even when
    completed or positioned before ``start_at``.
    """

    step_id: str

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def check_step_ids(
    steps: Sequence[Step],
    *,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> None:
    known = {s.step_id for s in steps}
    for option, value in (("start_at", start_at), ("stop_after", stop_after)):
        if value is not None and value not in known:
            raise ValueError(f"Unknown step_id for {option}: {value}")


def run_pipeline(
    *,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> PipelineResult:
    """Walk the stages once, skipping those the state already lists as done.

    Both start_at and stop_after must name a known stage. A stage that
    raises ends the walk with current_step still pointing at it.
    """

    check_step_ids(steps, start_at=start_at, stop_after=stop_after)

    ran: List[str] = []
    skipped: List[str] = []

    started = start_at is None

    for step in steps:
        always = bool(getattr(step, "always_run", False))

        if not started:
            if step.step_id == start_at:
                started = True
            elif not always:
                skipped.append(step.step_id)
                continue

        state.setdefault("execution", {})["current_step"] = step.step_id

        if (not force) and (not always) and is_step_completed(state, step.step_id):
            logger.info("Skipping step %s (already completed)", step.step_id)
            skipped.append(step.step_id)
        else:
            logger.info("Running step %s", step.step_id)
            state = step.run(state)
            mark_step_completed(state, step.step_id)
            ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    state.setdefault("execution", {})["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
