from __future__ import annotations

import logging
import shutil
from typing import Any, Callable, Dict, Optional, Sequence

from ..lib.apt import detect_apt_version
from ..lib.hostid import HostDetector, default_detectors, detect_host_identity
from ..repo_bootstrap import PREREQUISITES, ensure_prerequisite
from .common import run_presets, step_settings

logger = logging.getLogger(__name__)


class DetectHostStep:
    step_id = "10_detect_host"

    def __init__(
        self,
        *,
        detectors: Optional[Sequence[HostDetector]] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.detectors = detectors
        self.which = which

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        root, dry_run = step_settings(state)
        preset_os, preset_dist = run_presets(state)

        host = detect_host_identity(
            preset_os=preset_os,
            preset_dist=preset_dist,
            detectors=default_detectors(root) if self.detectors is None else self.detectors,
        )
        state["host"] = host.to_dict()

        for tool, package in PREREQUISITES:
            ensure_prerequisite(tool, package, which=self.which, dry_run=dry_run)

        apt = detect_apt_version(dry_run=dry_run)
        state["apt"] = {"version": apt.full, "major": apt.major, "minor": apt.minor, "code": apt.code}

        logger.info("Host %s/%s, apt %s (signed-by=%s)", host.os, host.dist, apt.full, apt.supports_signed_by)
        return state
