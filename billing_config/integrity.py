"""
Configuration Integrity — checksum pinning for approved settings.

When a config set directory contains an APPROVED_FINGERPRINT file, the
settings checksum must match the pinned value.  This prevents
unauthorized or accidental edits to approved settings.

If no APPROVED_FINGERPRINT file exists, the check is skipped
(draft/dev workflow).
"""

from __future__ import annotations

from pathlib import Path

PINFILE_NAME = "APPROVED_FINGERPRINT"


class ConfigIntegrityError(Exception):
    """Settings checksum does not match the approved pin.

    Attributes:
        config_id: The configuration set identifier.
        expected: The pinned (approved) checksum.
        actual: The computed checksum.
        pin_path: Path to the APPROVED_FINGERPRINT file.
    """

    code: str = "CONFIG_INTEGRITY_MISMATCH"

    def __init__(
        self,
        config_id: str,
        expected: str,
        actual: str,
        pin_path: Path,
    ):
        self.config_id = config_id
        self.expected = expected
        self.actual = actual
        self.pin_path = pin_path
        super().__init__(
            f"Config integrity check failed for '{config_id}': "
            f"pinned checksum {expected[:16]}... != "
            f"computed checksum {actual[:16]}... "
            f"(pin file: {pin_path})"
        )


def read_pinned_fingerprint(config_dir: Path) -> str | None:
    """The pinned SHA-256 hex string, or None if no pin file exists."""
    pin_path = config_dir / PINFILE_NAME
    if not pin_path.is_file():
        return None
    return pin_path.read_text().strip()


def verify_fingerprint_pin(config_id: str, checksum: str, config_dir: Path) -> None:
    """
    No-op if no APPROVED_FINGERPRINT file exists.

    Raises:
        ConfigIntegrityError: If a pin exists and the checksum differs.
    """
    pinned = read_pinned_fingerprint(config_dir)
    if pinned is None:
        return

    if checksum != pinned:
        raise ConfigIntegrityError(
            config_id=config_id,
            expected=pinned,
            actual=checksum,
            pin_path=config_dir / PINFILE_NAME,
        )
