from __future__ import annotations

import argparse
import logging
import os
import time
from typing import Any, Dict, List, Mapping, Optional

from .console import print_failure, print_summary
from .errors import ProvisionError
from .lib.env import PATHS
from .lib.manifests import load_manifest
from .lib.transfer import CurlTransferClient, TransferClient
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import Step, run_pipeline
from .state_store import begin_run, load_state, save_state
from .steps import (
    DetectHostStep,
    FinalizeStep,
    InstallConfigMgmtStep,
    InstallEditorStep,
    InstallUtilitiesStep,
    NetworkMountStep,
    TrackUnstableStep,
    UserDotfilesStep,
)

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = PATHS.state_default


def build_steps(manifest: Dict[str, Any], client: TransferClient) -> List[Step]:
    return [
        DetectHostStep(),
        TrackUnstableStep(manifest),
        InstallEditorStep(manifest, client),
        InstallUtilitiesStep(manifest),
        InstallConfigMgmtStep(manifest, client),
        NetworkMountStep(manifest),
        UserDotfilesStep(manifest),
        FinalizeStep(),
    ]


def apply_overrides(state: Dict[str, Any], overrides: Mapping[str, Any]) -> None:
    """Apply non-empty CLI values on top of the saved state['config']."""

    cfg = state.setdefault("config", {})
    for key, value in overrides.items():
        if value not in (None, ""):
            cfg[key] = value


def run(
    *,
    state_path: str = DEFAULT_STATE_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    overrides: Optional[Mapping[str, Any]] = None,
    run_settings: Optional[Mapping[str, Any]] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    resume: bool = False,
    verbose: bool = False,
    client: Optional[TransferClient] = None,
    steps: Optional[List[Step]] = None,
) -> Dict[str, Any]:
    """Run the provisioning pipeline and save what outlives the run.

    `overrides` update the saved config (root, username, manifest_path).
    `run_settings` (dry_run, os, dist) apply to this invocation only.
    """

    actual_log_path = configure_logging(log_path=log_path, verbose=verbose)

    state = begin_run(load_state(state_path), run_settings)
    apply_overrides(state, overrides or {})
    dry_run = bool(state["run"]["dry_run"])
    exe = state["execution"]
    exe.setdefault("paths", {})["log_path_requested"] = log_path
    exe.setdefault("paths", {})["log_path_actual"] = actual_log_path
    exe["started_at"] = time.time()

    try:
        if steps is None:
            manifest = load_manifest(state["config"].get("manifest_path"))
            steps = build_steps(manifest, client or CurlTransferClient())

        result = run_pipeline(
            state=state,
            steps=steps,
            start_at=start_at,
            stop_after=stop_after,
            resume=resume,
            dry_run=dry_run,
        )
        state = result.state
        state.setdefault("execution", {})["summary"] = {
            "ran_steps": result.ran_steps,
            "skipped_steps": result.skipped_steps,
            "dry_run": dry_run,
        }
        return state
    except Exception as e:
        logger.exception("Provisioning failed")
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
                "kind": type(e).__name__,
            }
        )
        raise
    finally:
        save_state(state_path, state)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="workstation-provisioner")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to provisioning state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to provisioning log")
    p.add_argument("--manifest", default=None, help="Provisioning manifest (YAML); defaults to the bundled one")
    p.add_argument("--root", default=None, help="Filesystem root that system paths are written under")
    p.add_argument("--os", dest="os_name", default=None, help="Override OS detection for this run (with --dist)")
    p.add_argument("--dist", default=None, help="Override distribution codename detection for this run")
    p.add_argument("--user", default=None, help="User account that receives dotfiles and mounts")
    p.add_argument("--dry-run", action="store_true", help="Log commands and writes without executing them")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 50_install_config_mgmt)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--resume", action="store_true", help="Skip steps the previous run completed")
    p.add_argument("--verbose", "-v", action="store_true", help="Show debug output on the console")
    p.add_argument("--list-steps", action="store_true", help="Print step ids and exit")

    args = p.parse_args(argv)

    if args.list_steps:
        for step in build_steps({}, CurlTransferClient()):
            print(step.step_id)
        return 0

    overrides: Dict[str, Any] = {
        "root": args.root,
        "username": args.user,
        "manifest_path": args.manifest,
    }
    run_settings: Dict[str, Any] = {
        # Same os=/dist= environment convention as the vendor install scripts.
        "os": args.os_name or os.environ.get("os"),
        "dist": args.dist or os.environ.get("dist"),
        "dry_run": args.dry_run,
    }

    try:
        state = run(
            state_path=args.state,
            log_path=args.log,
            overrides=overrides,
            run_settings=run_settings,
            start_at=args.start_at,
            stop_after=args.stop_after,
            resume=args.resume,
            verbose=args.verbose,
        )
    except ProvisionError as e:
        print_failure(e)
        return 1

    print_summary(state)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
