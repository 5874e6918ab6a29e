from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.apt import apt_install
from ..lib.command import run_cmd
from ..lib.manifests import package_group
from ..state_store import record_decision, record_warning
from .common import step_settings

logger = logging.getLogger(__name__)

GROUPS = ("utilities", "emulation")


class InstallUtilitiesStep:
    step_id = "40_install_utilities"

    def __init__(self, manifest: Dict[str, Any]) -> None:
        self.manifest = manifest

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        _, dry_run = step_settings(state)

        for group in GROUPS:
            packages = package_group(self.manifest, group)
            logger.info("Installing %s (%s)", group, " ".join(packages))
            apt_install(packages, dry_run=dry_run)

        services = (self.manifest.get("services") or {}).get("enable_now") or []
        for svc in services:
            run_cmd(["systemctl", "enable", str(svc), "--now"], dry_run=dry_run)
        record_decision(state, "services_enabled", [str(s) for s in services])

        # Informational: a stale command-not-found index is not worth aborting for.
        r = run_cmd(["apt-file", "update"], check=False, dry_run=dry_run)
        if r.returncode != 0:
            record_warning(state, {"step": self.step_id, "command": "apt-file update", "returncode": r.returncode})

        return state
