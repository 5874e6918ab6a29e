from __future__ import annotations

import logging
from pathlib import Path

from rich.logging import RichHandler

from .console import stderr_console

DEFAULT_LOG_PATH = "/var/log/workstation-provisioner.log"
FALLBACK_LOG_NAME = "workstation-provisioner.log"

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _open_log_file(log_path: str) -> logging.FileHandler:
    """Open `log_path`, or a file in the working directory when it is not writable."""

    try:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        return logging.FileHandler(str(Path.cwd() / FALLBACK_LOG_NAME), encoding="utf-8")


def configure_logging(log_path: str = DEFAULT_LOG_PATH, *, verbose: bool = False) -> str:
    """Send every command and decision to the provisioning log.

    The file gets DEBUG and up; stderr gets INFO (DEBUG with `verbose`)
    through rich. Calling it again keeps the first configuration.
    Returns the path actually written to.
    """

    root = logging.getLogger()
    existing = getattr(root, "_provisioner_log_path", None)
    if existing is not None:
        return existing

    root.setLevel(logging.DEBUG)

    file_handler = _open_log_file(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, "%Y-%m-%dT%H:%M:%S%z"))
    root.addHandler(file_handler)

    # Command lines and URLs contain brackets, so no markup.
    console_handler = RichHandler(
        console=stderr_console,
        markup=False,
        rich_tracebacks=True,
        show_path=False,
    )
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.addHandler(console_handler)

    actual = file_handler.baseFilename
    setattr(root, "_provisioner_log_path", actual)
    logging.getLogger(__name__).info("Logging to %s (requested %s)", actual, log_path)
    return actual
