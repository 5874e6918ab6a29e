from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from ..errors import InvalidVersionFormat
from .command import APT_ENV, CmdResult, run_cmd

logger = logging.getLogger(__name__)

# apt < 1.1 ignores per-source signed-by= and only trusts keys in trusted.gpg.d.
LEGACY_KEYRING_THRESHOLD = 110


@dataclass(frozen=True)
class AptVersion:
    full: str
    major: int
    minor: int

    @property
    def code(self) -> int:
        # Concatenated, not weighted: 1.0 -> 100, 0.9 -> 90, 2.6 -> 260.
        return int(f"{self.major}{self.minor}0")

    @property
    def supports_signed_by(self) -> bool:
        return self.code >= LEGACY_KEYRING_THRESHOLD


def parse_apt_version(first_line: str) -> AptVersion:
    """Parse the first line of `apt-get -v` (e.g. 'apt 2.6.1 (amd64)')."""

    fields = first_line.split()
    if len(fields) < 2:
        raise InvalidVersionFormat(first_line)
    full = fields[1]
    parts = full.split(".")
    if len(parts) < 2:
        raise InvalidVersionFormat(full)
    try:
        major = int(parts[0])
        minor = int(parts[1])
    except ValueError as e:
        raise InvalidVersionFormat(full) from e
    return AptVersion(full=full, major=major, minor=minor)


def detect_apt_version(*, dry_run: bool = False) -> AptVersion:
    if dry_run:
        # Planning only; assume a modern apt.
        return AptVersion(full="2.0", major=2, minor=0)
    r = run_cmd(["apt-get", "-v"])
    lines = r.stdout.splitlines()
    version = parse_apt_version(lines[0] if lines else "")
    logger.info("Detected apt version as %s (code=%d)", version.full, version.code)
    return version


def apt_get(args: Sequence[str], *, check: bool = True, dry_run: bool = False) -> CmdResult:
    return run_cmd(["apt-get", *args], check=check, env=APT_ENV, dry_run=dry_run)


def apt_update(*, dry_run: bool = False) -> None:
    apt_get(["update"], dry_run=dry_run)


def apt_install(packages: Sequence[str], *, check: bool = True, dry_run: bool = False) -> CmdResult | None:
    if not packages:
        return None
    return apt_get(["install", "-y", *packages], check=check, dry_run=dry_run)


def apt_purge(patterns: Sequence[str], *, dry_run: bool = False) -> None:
    if not patterns:
        return
    apt_get(["remove", "--purge", "--assume-yes", *patterns], dry_run=dry_run)


def apt_autoremove(*, dry_run: bool = False) -> None:
    apt_get(["autoremove", "-y"], dry_run=dry_run)


def apt_dist_upgrade(*, dry_run: bool = False) -> None:
    apt_get(["dist-upgrade", "-y"], dry_run=dry_run)


def write_sources_list(path: Path, lines: Sequence[str], *, dry_run: bool = False) -> None:
    """Replace a sources list with the given lines (never appended to)."""

    if dry_run:
        logger.info("Would replace %s (%d lines)", str(path), len(lines))
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        path.unlink()
    path.write_text("".join(f"{ln}\n" for ln in lines), encoding="utf-8")
    logger.info("Replaced %s", str(path))
