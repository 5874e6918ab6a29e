"""Third-party APT repository bootstrap.

Linear flow, any failure aborts by raising a ProvisionError:

    detect host -> ensure gpg/curl -> detect apt version
      -> fetch (or write) the repository declaration -> install signing key

The legacy trusted.gpg.d branch is a compatibility shim for apt < 1.1, which
does not honor per-source signed-by= references. It is gated solely on
LEGACY_KEYRING_THRESHOLD.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .errors import (
    ManifestError,
    PrerequisiteInstallFailed,
    TlsTrustFailure,
    TransferFailure,
    UnsupportedHostOrRepo,
)
from .lib.apt import AptVersion, apt_install, apt_update, detect_apt_version
from .lib.env import under_root
from .lib.hostid import HostDetector, HostIdentity, default_detectors, detect_host_identity
from .lib.keys import dearmor_key
from .lib.transfer import TransferClient, TransferOutcome, TransferResult

logger = logging.getLogger(__name__)

DEFAULT_KEYRINGS_DIR = "/etc/apt/keyrings"

# (tool on PATH, package providing it)
PREREQUISITES: Sequence[tuple[str, str]] = (
    ("curl", "curl"),
    ("gpg", "gnupg"),
)


@dataclass(frozen=True)
class RepositorySpec:
    name: str
    key_url: str
    source_path: str
    keyring_file: str
    legacy_key_path: str
    keyrings_dir: str = DEFAULT_KEYRINGS_DIR
    # Either a templated definition URL ({os}, {dist}) fetched from the vendor...
    config_url: Optional[str] = None
    # ...or a static "URI suite component..." line rendered locally.
    source_line: Optional[str] = None
    source_options: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, name: str, raw: Mapping[str, Any]) -> "RepositorySpec":
        if not raw.get("key_url"):
            raise ManifestError(f"repository {name}: key_url is required")
        if bool(raw.get("config_url")) == bool(raw.get("source_line")):
            raise ManifestError(f"repository {name}: exactly one of config_url/source_line is required")
        return cls(
            name=name,
            key_url=str(raw["key_url"]),
            source_path=str(raw["source_path"]),
            keyring_file=str(raw["keyring_file"]),
            legacy_key_path=str(raw["legacy_key_path"]),
            keyrings_dir=str(raw.get("keyrings_dir") or DEFAULT_KEYRINGS_DIR),
            config_url=raw.get("config_url"),
            source_line=raw.get("source_line"),
            source_options=[str(o) for o in (raw.get("source_options") or [])],
        )

    @property
    def keyring_path(self) -> str:
        return f"{self.keyrings_dir.rstrip('/')}/{self.keyring_file}"

    def definition_url(self, host: HostIdentity) -> str:
        if not self.config_url:
            raise ValueError(f"repository {self.name} has no config_url")
        return self.config_url.format(os=host.os, dist=host.dist)

    def render_source_line(self, apt_version: AptVersion) -> str:
        if not self.source_line:
            raise ValueError(f"repository {self.name} has no source_line")
        options = list(self.source_options)
        if apt_version.supports_signed_by:
            options.append(f"signed-by={self.keyring_path}")
        if options:
            return f"deb [{' '.join(options)}] {self.source_line}"
        return f"deb {self.source_line}"


@dataclass(frozen=True)
class KeyInstallResult:
    path: str
    legacy: bool


@dataclass(frozen=True)
class BootstrapResult:
    repository: str
    host: HostIdentity
    apt: AptVersion
    source_path: str
    key: KeyInstallResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository": self.repository,
            "host": self.host.to_dict(),
            "apt": {"version": self.apt.full, "code": self.apt.code},
            "source_path": self.source_path,
            "key_path": self.key.path,
            "legacy_key": self.key.legacy,
        }


def ensure_prerequisite(
    tool: str,
    package: str,
    *,
    which: Callable[[str], Optional[str]] = shutil.which,
    dry_run: bool = False,
) -> None:
    logger.info("Checking for %s...", tool)
    if which(tool):
        logger.info("Detected %s", tool)
        return

    logger.info("Installing %s for %s...", package, tool)
    r = apt_install([package], check=False, dry_run=dry_run)
    if dry_run:
        return
    if r is None or r.returncode != 0 or not which(tool):
        raise PrerequisiteInstallFailed(tool, package)


def raise_for_transfer(result: TransferResult, url: str) -> None:
    if result.outcome is TransferOutcome.SUCCESS:
        return
    if result.outcome is TransferOutcome.HTTP_REJECTED:
        raise UnsupportedHostOrRepo(url)
    if result.outcome is TransferOutcome.TLS_FAILURE:
        raise TlsTrustFailure(url)
    raise TransferFailure(url, result.exit_code)


def fetch_repository_definition(
    repo: RepositorySpec,
    host: HostIdentity,
    *,
    client: TransferClient,
    root: str | Path = "/",
    dry_run: bool = False,
) -> Path:
    """Replace the repository declaration with the vendor's definition for this host."""

    url = repo.definition_url(host)
    dest = under_root(root, repo.source_path)
    logger.info("Installing %s from %s", str(dest), url)
    if dry_run:
        return dest

    if dest.exists():
        dest.unlink()
    dest.parent.mkdir(parents=True, exist_ok=True)

    result = client.download(url, dest)
    if not result.ok:
        logger.error("Repository definition fetch failed (%s, exit %d)", result.outcome.value, result.exit_code)
        if dest.exists():
            dest.unlink()
        raise_for_transfer(result, url)

    return dest


def write_repository_definition(
    repo: RepositorySpec,
    apt_version: AptVersion,
    *,
    root: str | Path = "/",
    dry_run: bool = False,
) -> Path:
    dest = under_root(root, repo.source_path)
    line = repo.render_source_line(apt_version)
    if dry_run:
        logger.info("Would write %s: %s", str(dest), line)
        return dest
    if dest.exists():
        dest.unlink()
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(line + "\n", encoding="utf-8")
    logger.info("Wrote %s", str(dest))
    return dest


def install_signing_key(
    repo: RepositorySpec,
    apt_version: AptVersion,
    *,
    client: TransferClient,
    dearmor: Callable[[bytes], bytes] = dearmor_key,
    root: str | Path = "/",
    dry_run: bool = False,
) -> KeyInstallResult:
    """Install the repository signing key where this apt will trust it."""

    keyrings_dir = under_root(root, repo.keyrings_dir)
    keyring = under_root(root, repo.keyring_path)
    legacy = under_root(root, repo.legacy_key_path)
    use_legacy = not apt_version.supports_signed_by
    target = repo.legacy_key_path if use_legacy else repo.keyring_path

    logger.info("Importing %s signing key from %s", repo.name, repo.key_url)
    if dry_run:
        logger.info("Would install key at %s", target)
        return KeyInstallResult(path=target, legacy=use_legacy)

    for stale in (keyring, legacy):
        if stale.exists():
            stale.unlink()

    result = client.fetch(repo.key_url)
    raise_for_transfer(result, repo.key_url)

    keyrings_dir.mkdir(parents=True, exist_ok=True)
    keyring.write_bytes(dearmor(result.body))
    keyring.chmod(0o644)

    if use_legacy:
        legacy.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(keyring), str(legacy))
        legacy.chmod(0o644)
        if not any(keyrings_dir.iterdir()):
            keyrings_dir.rmdir()

    logger.info("%s signing key imported to %s", repo.name, target)
    return KeyInstallResult(path=target, legacy=use_legacy)


def bootstrap_repository(
    repo: RepositorySpec,
    *,
    client: TransferClient,
    host: Optional[HostIdentity] = None,
    apt_version: Optional[AptVersion] = None,
    preset_os: Optional[str] = None,
    preset_dist: Optional[str] = None,
    detectors: Optional[Sequence[HostDetector]] = None,
    dearmor: Callable[[bytes], bytes] = dearmor_key,
    which: Callable[[str], Optional[str]] = shutil.which,
    root: str | Path = "/",
    dry_run: bool = False,
) -> BootstrapResult:
    """Register a third-party repository and its signing key.

    `host`/`apt_version` may be passed when already detected earlier in the run.
    """

    if host is None:
        host = detect_host_identity(
            preset_os=preset_os,
            preset_dist=preset_dist,
            detectors=default_detectors(root) if detectors is None else detectors,
        )

    for tool, package in PREREQUISITES:
        ensure_prerequisite(tool, package, which=which, dry_run=dry_run)

    if apt_version is None:
        apt_version = detect_apt_version(dry_run=dry_run)

    # apt-transport-https needs a fresh package index; Debian also needs the archive keyring first.
    apt_update(dry_run=dry_run)
    if host.os.lower() == "debian":
        apt_install(["debian-archive-keyring"], dry_run=dry_run)
    apt_install(["apt-transport-https"], dry_run=dry_run)

    if repo.config_url:
        source = fetch_repository_definition(repo, host, client=client, root=root, dry_run=dry_run)
    else:
        source = write_repository_definition(repo, apt_version, root=root, dry_run=dry_run)

    key = install_signing_key(repo, apt_version, client=client, dearmor=dearmor, root=root, dry_run=dry_run)

    apt_update(dry_run=dry_run)
    logger.info("The %s repository is set up", repo.name)
    return BootstrapResult(repository=repo.name, host=host, apt=apt_version, source_path=str(source), key=key)
