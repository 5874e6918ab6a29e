from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import StateFileError
from .lib.env import PATHS

logger = logging.getLogger(__name__)

# Sections that describe the current invocation only. They are rebuilt on
# every run and never written to the state file.
RUN_SCOPED_SECTIONS = ("run", "host", "apt")


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    if _detect_format(p) in {"yaml", "yml"}:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    else:
        data = json.loads(p.read_text(encoding="utf-8"))

    if not isinstance(data, dict):
        raise StateFileError(f"State file {p} must hold a mapping, got {type(data).__name__}")

    return data


def persistable(state: Mapping[str, Any]) -> Dict[str, Any]:
    """The part of `state` that outlives this run."""

    return {k: v for k, v in state.items() if k not in RUN_SCOPED_SECTIONS}


def save_state(path: str, state: Mapping[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = persistable(state)

    if _detect_format(p) in {"yaml", "yml"}:
        p.write_text(yaml.safe_dump(data, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with defaults (without overriding user values)."""

    state.setdefault("version", "2")
    state.setdefault("config", {})
    state.setdefault("run", {})
    state.setdefault("host", {})
    state.setdefault("apt", {})
    state.setdefault("execution", {})

    cfg = state["config"]
    cfg.setdefault("root", PATHS.root)
    # None means "take it from the manifest".
    cfg.setdefault("username", None)
    cfg.setdefault("manifest_path", None)

    run = state["run"]
    run.setdefault("dry_run", False)
    # Detection override; both set skips detection entirely.
    run.setdefault("os", None)
    run.setdefault("dist", None)

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("decisions", {})
    exe.setdefault("warnings", [])
    exe.setdefault("errors", [])

    return state


def begin_run(state: Dict[str, Any], run_settings: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Reset the run-scoped sections for a fresh invocation."""

    for section in RUN_SCOPED_SECTIONS:
        state[section] = {}
    state["run"].update({k: v for k, v in (run_settings or {}).items() if v not in (None, "")})
    return ensure_defaults(state)


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed


def record_decision(state: Dict[str, Any], key: str, value: Any) -> None:
    state.setdefault("execution", {}).setdefault("decisions", {})[key] = value


def record_warning(state: Dict[str, Any], warning: Dict[str, Any]) -> None:
    logger.warning("%s", warning)
    state.setdefault("execution", {}).setdefault("warnings", []).append(warning)
