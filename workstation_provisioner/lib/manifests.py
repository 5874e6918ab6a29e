from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..errors import ManifestError
from ..repo_bootstrap import RepositorySpec

DEFAULT_MANIFEST = Path(__file__).resolve().parents[1] / "manifests" / "provision.yaml"


def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest must be a mapping/dict: {p}")
    return data


def load_manifest(path: Optional[str] = None) -> Dict[str, Any]:
    return load_yaml(path or DEFAULT_MANIFEST)


def package_group(manifest: Dict[str, Any], name: str) -> List[str]:
    groups = manifest.get("package_groups") or {}
    if not isinstance(groups, dict):
        raise ManifestError("package_groups must be a mapping")
    pkgs = groups.get(name) or []
    if not isinstance(pkgs, list):
        raise ManifestError(f"package group {name} must be a list")
    return [str(p).strip() for p in pkgs if str(p).strip()]


def repository(manifest: Dict[str, Any], name: str) -> RepositorySpec:
    repos = manifest.get("repositories") or {}
    raw = repos.get(name) if isinstance(repos, dict) else None
    if not isinstance(raw, dict):
        raise ManifestError(f"repository {name} missing from manifest")
    return RepositorySpec.from_dict(name, raw)
