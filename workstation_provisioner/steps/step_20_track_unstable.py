from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import ManifestError
from ..lib.apt import apt_autoremove, apt_dist_upgrade, apt_install, apt_purge, apt_update, write_sources_list
from ..lib.env import under_root
from ..lib.manifests import package_group
from ..state_store import record_decision
from .common import step_settings

logger = logging.getLogger(__name__)


class TrackUnstableStep:
    """Point apt at sid and dist-upgrade to it."""

    step_id = "20_track_unstable"

    def __init__(self, manifest: Dict[str, Any]) -> None:
        self.manifest = manifest

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        root, dry_run = step_settings(state)

        sources = self.manifest.get("sources_list") or {}
        lines = [str(ln) for ln in (sources.get("lines") or [])]
        if not lines:
            raise ManifestError("manifest sources_list.lines is empty")
        sources_path = under_root(root, sources.get("path") or "/etc/apt/sources.list")

        apt_update(dry_run=dry_run)
        apt_purge([str(p) for p in (self.manifest.get("purge") or [])], dry_run=dry_run)
        apt_autoremove(dry_run=dry_run)
        apt_install(package_group(self.manifest, "script_deps"), dry_run=dry_run)

        write_sources_list(sources_path, lines, dry_run=dry_run)

        apt_update(dry_run=dry_run)
        apt_dist_upgrade(dry_run=dry_run)

        record_decision(state, "sources_list", str(sources_path))
        logger.info("Tracking unstable via %s", str(sources_path))
        return state
