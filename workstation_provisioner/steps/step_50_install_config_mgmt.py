from __future__ import annotations

from typing import Any, Dict

from ..lib.apt import apt_autoremove
from .common import step_settings
from .step_30_install_editor import InstallEditorStep


class InstallConfigMgmtStep(InstallEditorStep):
    """packagecloud-hosted edi: the definition is fetched per os/dist."""

    step_id = "50_install_config_mgmt"
    repository_name = "get-edi"
    group_name = "config_mgmt"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        state = super().run(state)
        _, dry_run = step_settings(state)
        apt_autoremove(dry_run=dry_run)
        return state
