from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Sequence

from ..errors import UnsupportedHost
from .command import CmdResult, run_cmd
from .env import under_root

logger = logging.getLogger(__name__)

Runner = Callable[..., CmdResult]


@dataclass(frozen=True)
class HostIdentity:
    os: str
    dist: str
    source: str

    def to_dict(self) -> Dict[str, str]:
        return {"os": self.os, "dist": self.dist, "source": self.source}


class HostDetector(Protocol):
    name: str

    def attempt_detect(self) -> Optional[HostIdentity]:
        ...


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return None


def _squash(value: str) -> str:
    return "".join(value.split())


def parse_shell_vars(text: str) -> Dict[str, str]:
    """Parse KEY=value lines of a sourced release file."""

    out: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
            value = value[1:-1]
        out[key.strip()] = value
    return out


def debian_version_major(root: str | Path) -> Optional[str]:
    txt = _read_text(under_root(root, "/etc/debian_version"))
    if txt is None:
        return None
    return txt.strip().split(".", 1)[0] or None


class LsbReleaseFileDetector:
    name = "lsb-release-file"

    def __init__(self, root: str | Path = "/") -> None:
        self.root = root

    def attempt_detect(self) -> Optional[HostIdentity]:
        txt = _read_text(under_root(self.root, "/etc/lsb-release"))
        if txt is None:
            return None
        fields = parse_shell_vars(txt)

        distrib_id = fields.get("DISTRIB_ID") or fields.get("ID") or ""
        if distrib_id.lower() == "raspbian":
            # Raspbian's codename lives in debian_version, not lsb-release.
            dist = debian_version_major(self.root) or ""
        else:
            dist = fields.get("DISTRIB_CODENAME") or fields.get("DISTRIB_RELEASE") or ""

        if not dist.strip():
            return None
        return HostIdentity(os=distrib_id, dist=dist, source=self.name)


class LsbReleaseCommandDetector:
    name = "lsb_release"

    def __init__(
        self,
        *,
        runner: Runner = run_cmd,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.runner = runner
        self.which = which

    def _field(self, flag: str) -> str:
        r = self.runner(["lsb_release", flag], check=False)
        if r.returncode != 0:
            return ""
        # "Codename:\tbookworm" -> "bookworm"
        first = (r.stdout.splitlines() or [""])[0]
        parts = first.split("\t")
        return parts[1].strip() if len(parts) > 1 else ""

    def attempt_detect(self) -> Optional[HostIdentity]:
        if not self.which("lsb_release"):
            return None
        dist = self._field("-c")
        if not dist:
            return None
        os_words = self._field("-i").split()
        return HostIdentity(os=os_words[0] if os_words else "", dist=dist, source=self.name)


class DebianVersionDetector:
    name = "debian_version"

    def __init__(self, root: str | Path = "/") -> None:
        self.root = root

    def attempt_detect(self) -> Optional[HostIdentity]:
        version = _read_text(under_root(self.root, "/etc/debian_version"))
        if version is None:
            return None

        issue = _read_text(under_root(self.root, "/etc/issue")) or ""
        first_line = (issue.splitlines() or [""])[0].split()
        os_name = first_line[0] if first_line else ""

        # Some Debians carry "trixie/sid", others "12.5".
        version = version.strip()
        if "/" in version:
            dist = version.split("/", 1)[0]
        else:
            dist = version.split(".", 1)[0]

        if not dist.strip():
            return None
        return HostIdentity(os=os_name, dist=dist, source=self.name)


def default_detectors(root: str | Path = "/", *, runner: Runner = run_cmd) -> list[HostDetector]:
    return [
        LsbReleaseFileDetector(root),
        LsbReleaseCommandDetector(runner=runner),
        DebianVersionDetector(root),
    ]


def detect_host_identity(
    *,
    preset_os: Optional[str] = None,
    preset_dist: Optional[str] = None,
    detectors: Sequence[HostDetector] = (),
) -> HostIdentity:
    """Return the host's (os, dist) pair.

    Any preset disables detection and the presets are used verbatim, so a
    lone `os` preset ends in UnsupportedHost for want of a dist. Otherwise
    the first detector yielding a codename wins.
    """

    if preset_os or preset_dist:
        if not preset_dist:
            raise UnsupportedHost()
        logger.info("Using preset operating system %s/%s", preset_os or "", preset_dist)
        return HostIdentity(os=preset_os or "", dist=preset_dist, source="preset")

    found: Optional[HostIdentity] = None
    for detector in detectors:
        candidate = detector.attempt_detect()
        if candidate is not None and candidate.dist.strip():
            found = candidate
            break
        logger.debug("Detector %s yielded nothing", detector.name)

    if found is None:
        raise UnsupportedHost()

    identity = HostIdentity(os=_squash(found.os).lower(), dist=_squash(found.dist), source=found.source)
    logger.info("Detected operating system as %s/%s (via %s)", identity.os, identity.dist, identity.source)
    return identity
