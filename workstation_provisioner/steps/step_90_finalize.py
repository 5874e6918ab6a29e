from __future__ import annotations

import logging
import time
from typing import Any, Dict

from ..lib.apt import apt_autoremove
from .common import step_settings

logger = logging.getLogger(__name__)


class FinalizeStep:
    step_id = "90_finalize"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        _, dry_run = step_settings(state)
        exe = state.setdefault("execution", {})

        apt_autoremove(dry_run=dry_run)

        started = exe.get("started_at")
        if started is not None:
            exe["elapsed_seconds"] = int(time.time() - float(started))

        logger.info("Finalize summary: %s", exe.get("decisions") or {})
        logger.info("Completed in %s seconds", exe.get("elapsed_seconds", "?"))
        return state
