from __future__ import annotations

import logging

from .command import run_cmd_bytes

logger = logging.getLogger(__name__)


def dearmor_key(armored: bytes) -> bytes:
    """Convert an ASCII-armored OpenPGP key to binary keyring form."""

    binary = run_cmd_bytes(["gpg", "--dearmor"], input_bytes=armored)
    logger.debug("Dearmored key (%d -> %d bytes)", len(armored), len(binary))
    return binary
