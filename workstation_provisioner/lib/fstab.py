from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Set

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FstabEntry:
    spec: str
    mountpoint: str
    fstype: str
    options: str = "defaults"
    dump: int = 0
    passno: int = 0

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], **fmt: str) -> "FstabEntry":
        return cls(
            spec=str(raw["spec"]).format(**fmt),
            mountpoint=str(raw["mountpoint"]).format(**fmt),
            fstype=str(raw.get("fstype") or "auto"),
            options=str(raw.get("options") or "defaults"),
            dump=int(raw.get("dump", 0)),
            passno=int(raw.get("passno", 0)),
        )

    def render(self) -> str:
        return "\t".join([self.spec, self.mountpoint, self.fstype, self.options, str(self.dump), str(self.passno)])


def render_fstab(entries: Iterable[FstabEntry]) -> str:
    return "".join(e.render() + "\n" for e in entries)


def existing_mountpoints(text: str) -> Set[str]:
    out: Set[str] = set()
    for line in text.splitlines():
        fields = line.split()
        if len(fields) >= 2 and not fields[0].startswith("#"):
            out.add(fields[1])
    return out


def append_entries(fstab_path: Path, entries: Iterable[FstabEntry], *, dry_run: bool = False) -> List[FstabEntry]:
    """Append entries whose mountpoint is not already in fstab. Returns what was added."""

    current = fstab_path.read_text(encoding="utf-8") if fstab_path.exists() else ""
    present = existing_mountpoints(current)
    new = [e for e in entries if e.mountpoint not in present]

    for e in entries:
        if e.mountpoint in present:
            logger.info("fstab already has %s; leaving it", e.mountpoint)

    if not new:
        return []
    if dry_run:
        logger.info("Would append to %s:\n%s", str(fstab_path), render_fstab(new))
        return new

    fstab_path.parent.mkdir(parents=True, exist_ok=True)
    prefix = "" if (not current or current.endswith("\n")) else "\n"
    with fstab_path.open("a", encoding="utf-8") as f:
        f.write(prefix + render_fstab(new))
    logger.info("Appended %d fstab entries to %s", len(new), str(fstab_path))
    return new
