from __future__ import annotations

from typing import Optional

SUPPORT_CONTACT = "support@packagecloud.io"
OS_DIST_DOCS = "https://packagecloud.io/docs#os_distro_version"

OVERRIDE_HELP = "\n".join(
    [
        "You can override the OS detection by setting os= and dist= prior to running this tool",
        "(or pass --os/--dist; overrides apply to that run only).",
        f"You can find a list of supported OSes and distributions at {OS_DIST_DOCS}",
        "",
        "For example, to force Ubuntu Trusty: os=ubuntu dist=trusty workstation-provisioner",
    ]
)


class ProvisionError(RuntimeError):
    """A fatal provisioning condition.

    `remediation` is operator-facing guidance printed after the message.
    """

    def __init__(self, message: str, *, remediation: Optional[str] = None) -> None:
        super().__init__(message)
        self.remediation = remediation


class CommandError(ProvisionError):
    def __init__(self, argv: list[str], returncode: int, stderr: str = "") -> None:
        super().__init__(f"Command failed ({returncode}): {' '.join(argv)}\n{stderr}".rstrip())
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr


class ConfigurationError(ProvisionError, ValueError):
    """Manifest, state file or CLI settings that cannot be used."""


class ManifestError(ConfigurationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, remediation="Fix the provisioning manifest (see --manifest) and re-run.")


class StateFileError(ConfigurationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, remediation="Repair or delete the state file (see --state) and re-run.")


class UnknownStep(ConfigurationError):
    def __init__(self, option: str, step_id: str) -> None:
        super().__init__(
            f"Unknown step for {option}: {step_id}",
            remediation="Run with --list-steps to see the available step ids.",
        )
        self.step_id = step_id


class UnsupportedHost(ProvisionError):
    def __init__(self, message: str = "Unfortunately, your operating system distribution and version are not supported.") -> None:
        super().__init__(
            message,
            remediation=OVERRIDE_HELP + f"\n\nPlease email {SUPPORT_CONTACT} and let us know if you run into any issues.",
        )


class PrerequisiteInstallFailed(ProvisionError):
    def __init__(self, tool: str, package: str) -> None:
        super().__init__(
            f"Unable to install {package} (for {tool})! Your base system has a problem.",
            remediation=(
                f"Please check your default OS's package repositories because {package} should install.\n"
                "Repository installation aborted."
            ),
        )
        self.tool = tool
        self.package = package


class InvalidVersionFormat(ProvisionError):
    def __init__(self, raw: str) -> None:
        super().__init__(
            f"Unable to parse apt version from {raw!r}",
            remediation="Check that apt-get is installed and that `apt-get -v` prints a version on its first line.",
        )
        self.raw = raw


class UnsupportedHostOrRepo(ProvisionError):
    def __init__(self, url: str) -> None:
        super().__init__(
            f"Unable to download repo config from: {url}",
            remediation=(
                "This usually happens if your operating system is not supported by the repository "
                "provider, or the OS detection failed.\n\n"
                + OVERRIDE_HELP
                + f"\n\nIf you are running a supported OS, please email {SUPPORT_CONTACT} and report this."
            ),
        )
        self.url = url


class TlsTrustFailure(ProvisionError):
    def __init__(self, url: str) -> None:
        super().__init__(
            f"curl is unable to connect over TLS when running: curl {url}",
            remediation="\n".join(
                [
                    "This is usually due to one of two things:",
                    "",
                    " 1.) Missing CA root certificates (make sure the ca-certificates package is installed)",
                    " 2.) An old version of libssl. Try upgrading libssl on your system to a more recent version",
                    "",
                    f"Contact {SUPPORT_CONTACT} with information about your system for help.",
                ]
            ),
        )
        self.url = url


class TransferFailure(ProvisionError):
    def __init__(self, url: str, exit_code: int) -> None:
        super().__init__(
            f"Unable to run: curl {url} (exit {exit_code})",
            remediation="Double check your curl installation and try again.",
        )
        self.url = url
        self.exit_code = exit_code
