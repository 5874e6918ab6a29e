"""HTTPS transfer interface.

The real client shells out to curl; its numeric exit status is the whole
contract we consult. Tests use an in-memory fake implementing the same ABC.
"""

from __future__ import annotations

import enum
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CURL_HTTP_ERROR = 22
CURL_TLS_EXIT_CODES = frozenset({35, 60})


class TransferOutcome(enum.Enum):
    SUCCESS = "success"
    HTTP_REJECTED = "http_rejected"
    TLS_FAILURE = "tls_failure"
    OTHER_TRANSFER_ERROR = "other_transfer_error"


@dataclass(frozen=True)
class TransferResult:
    outcome: TransferOutcome
    exit_code: int
    body: bytes = b""
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is TransferOutcome.SUCCESS


def classify_curl_exit(exit_code: int) -> TransferOutcome:
    if exit_code == 0:
        return TransferOutcome.SUCCESS
    if exit_code == CURL_HTTP_ERROR:
        return TransferOutcome.HTTP_REJECTED
    if exit_code in CURL_TLS_EXIT_CODES:
        return TransferOutcome.TLS_FAILURE
    return TransferOutcome.OTHER_TRANSFER_ERROR


class TransferClient(ABC):
    """Abstract HTTPS GET operations."""

    @abstractmethod
    def download(self, url: str, dest: Path) -> TransferResult:
        """GET `url` writing the body to `dest`.

        A failed transfer may leave a partial `dest`; callers clean it up.
        """
        ...

    @abstractmethod
    def fetch(self, url: str) -> TransferResult:
        """GET `url` returning the body in the result."""
        ...


class CurlTransferClient(TransferClient):
    """curl-backed transfers. No timeout: a stalled server blocks the run."""

    def _run(self, argv: list[str]) -> subprocess.CompletedProcess:
        logger.info("CMD %s", " ".join(argv))
        return subprocess.run(argv, stdout=subprocess.PIPE, stderr=subprocess.PIPE)

    def download(self, url: str, dest: Path) -> TransferResult:
        p = self._run(["curl", "-sSf", "-o", str(dest), url])
        detail = p.stderr.decode("utf-8", errors="replace").strip()
        if detail:
            logger.debug("STDERR %s", detail)
        return TransferResult(outcome=classify_curl_exit(p.returncode), exit_code=p.returncode, detail=detail)

    def fetch(self, url: str) -> TransferResult:
        p = self._run(["curl", "-fsSL", url])
        detail = p.stderr.decode("utf-8", errors="replace").strip()
        if detail:
            logger.debug("STDERR %s", detail)
        outcome = classify_curl_exit(p.returncode)
        body = p.stdout if outcome is TransferOutcome.SUCCESS else b""
        return TransferResult(outcome=outcome, exit_code=p.returncode, body=body, detail=detail)
