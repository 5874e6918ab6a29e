from __future__ import annotations

import logging
import shutil
from typing import Any, Callable, Dict, Optional

from ..lib.apt import apt_install
from ..lib.keys import dearmor_key
from ..lib.manifests import package_group, repository
from ..lib.transfer import TransferClient
from ..repo_bootstrap import bootstrap_repository
from ..state_store import record_decision
from .common import apt_from_state, host_from_state, run_presets, step_settings

logger = logging.getLogger(__name__)


class InstallEditorStep:
    step_id = "30_install_editor"
    repository_name = "vscode"
    group_name = "editor"

    def __init__(
        self,
        manifest: Dict[str, Any],
        client: TransferClient,
        *,
        which: Callable[[str], Optional[str]] = shutil.which,
        dearmor: Callable[[bytes], bytes] = dearmor_key,
    ) -> None:
        self.manifest = manifest
        self.client = client
        self.which = which
        self.dearmor = dearmor

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        root, dry_run = step_settings(state)
        preset_os, preset_dist = run_presets(state)

        result = bootstrap_repository(
            repository(self.manifest, self.repository_name),
            client=self.client,
            host=host_from_state(state),
            apt_version=apt_from_state(state),
            preset_os=preset_os,
            preset_dist=preset_dist,
            dearmor=self.dearmor,
            which=self.which,
            root=root,
            dry_run=dry_run,
        )
        record_decision(state, f"repository:{self.repository_name}", result.to_dict())

        packages = package_group(self.manifest, self.group_name)
        apt_install(packages, dry_run=dry_run)
        logger.info("Installed %s", " ".join(packages))
        return state
