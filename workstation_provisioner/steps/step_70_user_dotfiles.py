from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..lib.command import run_cmd
from ..lib.env import under_root
from ..state_store import record_decision
from .common import step_settings, username, write_file

logger = logging.getLogger(__name__)


def render_dotfile(template: str, values: Dict[str, str]) -> str:
    out = template
    for key, value in values.items():
        out = out.replace("{" + key + "}", value)
    return out


class UserDotfilesStep:
    step_id = "70_user_dotfiles"

    def __init__(self, manifest: Dict[str, Any]) -> None:
        self.manifest = manifest

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        root, dry_run = step_settings(state)
        user = username(state, self.manifest)
        git = (self.manifest.get("user") or {}).get("git") or {}

        values = {
            "user": user,
            "git_name": str(git.get("name") or user),
            "git_email": str(git.get("email") or ""),
            "git_default_branch": str(git.get("default_branch") or "main"),
        }

        home = f"/home/{user}"
        written: List[str] = []
        for name, template in (self.manifest.get("dotfiles") or {}).items():
            rel = f"{home}/{name}"
            write_file(under_root(root, rel), render_dotfile(str(template), values), dry_run=dry_run, mode=0o644)
            written.append(rel)

        if written:
            run_cmd(["chown", f"{user}:{user}", *[str(under_root(root, p)) for p in written]], dry_run=dry_run)

        record_decision(state, "dotfiles", written)
        logger.info("Wrote %d dotfiles for %s", len(written), user)
        return state
