#!/usr/bin/env python3
"""
Approve a billing configuration set by writing its settings checksum to
APPROVED_FINGERPRINT.

Usage:
    python scripts/approve_config.py [config_set_directory]

If no directory is given, defaults to billing_config/sets/default/.

The APPROVED_FINGERPRINT file is a separate git artifact from root.yaml;
changing the YAML without re-running approval will cause
get_active_settings() to raise ConfigIntegrityError.
"""

import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from billing_config.integrity import PINFILE_NAME
from billing_config.loader import load_settings


def approve(config_set_dir: Path) -> str:
    """Parse the set's root.yaml and write the pin file.

    Returns the checksum that was written.
    """
    print(f"Loading settings from: {config_set_dir}")
    settings = load_settings(config_set_dir)
    print(f"  config_id: {settings.config_id}")
    print(f"  version:   {settings.version}")
    print(f"  checksum:  {settings.checksum[:16]}...")

    pin_path = config_set_dir / PINFILE_NAME
    pin_path.write_text(settings.checksum + "\n")
    print(f"Wrote {pin_path}")
    return settings.checksum


def main():
    if len(sys.argv) > 1:
        target = Path(sys.argv[1])
    else:
        target = ROOT / "billing_config" / "sets" / "default"

    if not target.is_dir():
        print(f"Error: directory not found: {target}", file=sys.stderr)
        sys.exit(1)

    approve(target)
    print("Done. Settings are now pinned.")


if __name__ == "__main__":
    main()
