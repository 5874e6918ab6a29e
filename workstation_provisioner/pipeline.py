from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .errors import UnknownStep
from .state_store import is_step_completed, mark_step_completed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single provisioning step."""

    step_id: str

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def select_steps(
    steps: Sequence[Step],
    *,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> List[Step]:
    """The contiguous slice of `steps` between start_at and stop_after."""

    ids = [s.step_id for s in steps]
    for option, step_id in (("--start-at", start_at), ("--stop-after", stop_after)):
        if step_id is not None and step_id not in ids:
            raise UnknownStep(option, step_id)

    first = ids.index(start_at) if start_at is not None else 0
    last = ids.index(stop_after) if stop_after is not None else len(ids) - 1
    return list(steps[first : last + 1])


def run_pipeline(
    *,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    resume: bool = False,
    dry_run: bool = False,
) -> PipelineResult:
    """Run the selected steps in order.

    Every selected step runs unless `resume` is set, in which case steps
    completed by an earlier run are skipped. A fresh run clears the
    completion record so a later resume continues from this run's failure.
    Dry runs change nothing on the host and leave the record untouched.
    """

    selected = select_steps(steps, start_at=start_at, stop_after=stop_after)
    exe = state.setdefault("execution", {})
    if not resume and not dry_run:
        exe["completed_steps"] = []

    ran: List[str] = []
    skipped: List[str] = []

    for step in selected:
        exe["current_step"] = step.step_id

        if resume and is_step_completed(state, step.step_id):
            logger.info("Skipping step %s (completed by an earlier run)", step.step_id)
            skipped.append(step.step_id)
            continue

        logger.info("Running step %s%s", step.step_id, " (dry run)" if dry_run else "")
        state = step.run(state)
        exe = state.setdefault("execution", {})
        if not dry_run:
            mark_step_completed(state, step.step_id)
        ran.append(step.step_id)

    if stop_after is not None:
        logger.info("Stopped after %s", stop_after)
    exe["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)
