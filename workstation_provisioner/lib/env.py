from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    root: str = "/"
    state_default: str = "/var/lib/workstation-provisioner/state.json"


PATHS = Paths()


def under_root(root: str | Path, path: str | Path) -> Path:
    """Resolve an absolute system path beneath `root`."""

    return Path(root) / str(path).lstrip("/")
