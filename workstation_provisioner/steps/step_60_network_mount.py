from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.command import run_cmd
from ..lib.env import under_root
from ..lib.fstab import FstabEntry, append_entries
from ..state_store import record_decision
from .common import step_settings, username

logger = logging.getLogger(__name__)


class NetworkMountStep:
    step_id = "60_network_mount"

    def __init__(self, manifest: Dict[str, Any]) -> None:
        self.manifest = manifest

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        root, dry_run = step_settings(state)
        user = username(state, self.manifest)
        mounts = self.manifest.get("mounts") or {}

        for d in mounts.get("directories") or []:
            p = under_root(root, str(d).format(user=user))
            if dry_run:
                logger.info("Would create %s", str(p))
            else:
                p.mkdir(parents=True, exist_ok=True)

        entries = [FstabEntry.from_dict(raw, user=user) for raw in (mounts.get("fstab") or [])]
        added = append_entries(under_root(root, "/etc/fstab"), entries, dry_run=dry_run)
        record_decision(state, "fstab_added", [e.mountpoint for e in added])

        run_cmd(["systemctl", "daemon-reload"], dry_run=dry_run)
        run_cmd(["mount", "--verbose", "--all"], dry_run=dry_run)

        logger.info("Mounted %d fstab entries (%d new)", len(entries), len(added))
        return state
