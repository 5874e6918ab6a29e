from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..errors import ConfigurationError
from ..lib.apt import AptVersion
from ..lib.hostid import HostIdentity

logger = logging.getLogger(__name__)


def step_settings(state: Dict[str, Any]) -> Tuple[str, bool]:
    """(root, dry_run) for this run. dry_run lives in the unsaved run section."""

    cfg = state.get("config") or {}
    run = state.get("run") or {}
    return str(cfg.get("root") or "/"), bool(run.get("dry_run", False))


def run_presets(state: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    run = state.get("run") or {}
    return run.get("os"), run.get("dist")


def username(state: Dict[str, Any], manifest: Dict[str, Any]) -> str:
    cfg = state.get("config") or {}
    name = cfg.get("username") or (manifest.get("user") or {}).get("name")
    if not name:
        raise ConfigurationError(
            "No user configured",
            remediation="Pass --user, or set user.name in the manifest.",
        )
    return str(name)


def host_from_state(state: Dict[str, Any]) -> Optional[HostIdentity]:
    host = state.get("host") or {}
    if not host.get("dist"):
        return None
    return HostIdentity(os=str(host.get("os") or ""), dist=str(host["dist"]), source=str(host.get("source") or "state"))


def apt_from_state(state: Dict[str, Any]) -> Optional[AptVersion]:
    apt = state.get("apt") or {}
    if "major" not in apt or "minor" not in apt:
        return None
    return AptVersion(full=str(apt.get("version") or ""), major=int(apt["major"]), minor=int(apt["minor"]))


def write_file(path: Path, contents: str, *, dry_run: bool, mode: int | None = None) -> None:
    if dry_run:
        logger.info("Would write %s", str(path))
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        path.unlink()
    path.write_text(contents, encoding="utf-8")
    if mode is not None:
        path.chmod(mode)
