"""
Unit tests for apt helpers and version parsing.
"""
import pytest

from workstation_provisioner.errors import CommandError, InvalidVersionFormat
from workstation_provisioner.lib.apt import (
    LEGACY_KEYRING_THRESHOLD,
    AptVersion,
    apt_install,
    detect_apt_version,
    parse_apt_version,
    write_sources_list,
)


class TestVersion:
    @pytest.mark.parametrize(
        "line,code",
        [
            ("apt 1.0.9.8 (amd64)", 100),
            ("apt 0.9.7 (i386)", 90),
            ("apt 1.1 (amd64)", 110),
            ("apt 2.6.1 (amd64)", 260),
        ],
    )
    def test_code(self, line, code):
        assert parse_apt_version(line).code == code

    def test_threshold(self):
        assert LEGACY_KEYRING_THRESHOLD == 110
        assert not AptVersion("1.0", 1, 0).supports_signed_by
        assert AptVersion("1.1", 1, 1).supports_signed_by

    @pytest.mark.parametrize("line", ["", "apt", "apt 2 (amd64)", "apt x.y (amd64)"])
    def test_malformed(self, line):
        with pytest.raises(InvalidVersionFormat):
            parse_apt_version(line)

    def test_detect_runs_apt_get(self, fake_commands):
        version = detect_apt_version()
        assert version.full == "2.6.1"
        assert fake_commands.ran(["apt-get", "-v"])


class TestCommands:
    def test_install_is_noninteractive(self, fake_commands, monkeypatch):
        seen = {}

        def capture(argv, **kwargs):
            seen.update(kwargs.get("env") or {})
            return fake_commands(argv, **kwargs)

        monkeypatch.setattr("workstation_provisioner.lib.command.subprocess.run", capture)
        apt_install(["tmux"])
        assert seen["DEBIAN_FRONTEND"] == "noninteractive"

    def test_empty_install_runs_nothing(self, fake_commands):
        assert apt_install([]) is None
        assert fake_commands.calls == []

    def test_failure_raises(self, fake_commands):
        fake_commands.respond(["apt-get", "install"], returncode=100, stderr="E: Unable to locate package")
        with pytest.raises(CommandError) as exc:
            apt_install(["nope"])
        assert exc.value.returncode == 100

    def test_dry_run_executes_nothing(self, fake_commands):
        apt_install(["tmux"], dry_run=True)
        assert fake_commands.calls == []


class TestSourcesList:
    def test_replaces_not_appends(self, tmp_path):
        path = tmp_path / "etc/apt/sources.list"
        path.parent.mkdir(parents=True)
        path.write_text("deb http://old bullseye main\n")
        write_sources_list(path, ["deb http://deb.debian.org/debian sid main"])
        write_sources_list(path, ["deb http://deb.debian.org/debian sid main"])
        assert path.read_text() == "deb http://deb.debian.org/debian sid main\n"
