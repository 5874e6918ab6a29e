"""Shared fakes for unit tests: recorded subprocess calls and an in-memory transfer client."""
import subprocess
from pathlib import Path

import pytest

from workstation_provisioner.lib import command
from workstation_provisioner.lib.transfer import (
    TransferClient,
    TransferOutcome,
    TransferResult,
    classify_curl_exit,
)


class FakeCommands:
    """Stands in for subprocess.run; answers by argv prefix and records every call."""

    def __init__(self):
        self.calls = []
        self.responses = {}

    def respond(self, prefix, returncode=0, stdout="", stderr=""):
        self.responses[tuple(prefix)] = (returncode, stdout, stderr)

    def argvs(self):
        return [list(c) for c in self.calls]

    def ran(self, prefix):
        n = len(prefix)
        return any(list(c[:n]) == list(prefix) for c in self.calls)

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        returncode, stdout, stderr = 0, "", ""
        best = -1
        for prefix, resp in self.responses.items():
            if tuple(argv[: len(prefix)]) == prefix and len(prefix) > best:
                best = len(prefix)
                returncode, stdout, stderr = resp
        if kwargs.get("text"):
            return subprocess.CompletedProcess(argv, returncode, stdout, stderr)
        return subprocess.CompletedProcess(argv, returncode, stdout.encode(), stderr.encode())


class FakeTransferClient(TransferClient):
    """In-memory transfer client keyed by URL.

    `exit_codes` maps URL -> curl exit code (default 0). `bodies` maps URL -> bytes.
    `partial` writes these bytes to dest before failing, like curl does.
    """

    def __init__(self, *, bodies=None, exit_codes=None, partial=b"partial"):
        self.bodies = bodies or {}
        self.exit_codes = exit_codes or {}
        self.partial = partial
        self.requested = []

    def _result(self, url, body=b""):
        code = self.exit_codes.get(url, 0)
        outcome = classify_curl_exit(code)
        return TransferResult(outcome=outcome, exit_code=code, body=body if outcome is TransferOutcome.SUCCESS else b"")

    def download(self, url, dest: Path):
        self.requested.append(url)
        result = self._result(url)
        if result.ok:
            dest.write_bytes(self.bodies.get(url, b""))
        elif self.partial:
            dest.write_bytes(self.partial)
        return result

    def fetch(self, url):
        self.requested.append(url)
        return self._result(url, self.bodies.get(url, b""))


@pytest.fixture
def fake_commands(monkeypatch):
    fake = FakeCommands()
    fake.respond(["apt-get", "-v"], stdout="apt 2.6.1 (amd64)\nSupported modules:\n")
    monkeypatch.setattr(command.subprocess, "run", fake)
    return fake


@pytest.fixture
def fake_client():
    return FakeTransferClient()


@pytest.fixture
def all_tools():
    return lambda tool: f"/usr/bin/{tool}"


@pytest.fixture
def dearmor():
    return lambda armored: b"BINARY:" + armored


@pytest.fixture
def make_client():
    return FakeTransferClient
