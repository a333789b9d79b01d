"""
Tests for billing settings loading and checksum pinning.
"""

import json
import logging

import pytest
import yaml

from billing_config import ConfigIntegrityError, get_active_settings
from billing_config.integrity import PINFILE_NAME, read_pinned_fingerprint
from billing_config.loader import compute_checksum, load_yaml_file, parse_settings
from billing_config.schema import BillingSettings
from billing_kernel.domain.facility import TaxBehavior

ROOT = {
    "config_id": "acme-billing",
    "version": 3,
    "billing": {
        "currency": "usd",
        "default_tax_mode": "tax-included",
        "absent_amount_marker": "n/a",
    },
    "database": {"url": "sqlite:///billing.db"},
    "logging": {"level": "debug"},
}


def _write_set(base, name="acme", data=None):
    set_dir = base / name
    set_dir.mkdir()
    (set_dir / "root.yaml").write_text(yaml.safe_dump(data or ROOT))
    return set_dir


class TestBillingSettings:

    def test_defaults(self):
        settings = BillingSettings(config_id="x", version=1)

        assert settings.currency == "USD"
        assert settings.default_tax_mode is TaxBehavior.PRE_TAX
        assert settings.absent_amount_marker == "—"
        assert settings.logging_level == logging.INFO

    def test_inherit_default_rejected(self):
        with pytest.raises(ValueError):
            BillingSettings(config_id="x", version=1, default_tax_mode="inherit-client")

    def test_version_must_be_positive(self):
        with pytest.raises(ValueError):
            BillingSettings(config_id="x", version=0)

    def test_bad_log_level(self):
        with pytest.raises(ValueError):
            BillingSettings(config_id="x", version=1, log_level="LOUD")

    def test_config_id_required(self):
        with pytest.raises(ValueError):
            BillingSettings(config_id="", version=1)


class TestLoader:

    def test_parse_full_document(self):
        settings = parse_settings(ROOT)

        assert settings.config_id == "acme-billing"
        assert settings.version == 3
        assert settings.currency == "USD"
        assert settings.default_tax_mode is TaxBehavior.TAX_INCLUDED
        assert settings.absent_amount_marker == "n/a"
        assert settings.database_url == "sqlite:///billing.db"
        assert settings.log_level == "DEBUG"
        assert settings.checksum == compute_checksum(ROOT)

    def test_optional_sections(self):
        settings = parse_settings({"config_id": "bare", "version": 1})

        assert settings.default_tax_mode is TaxBehavior.PRE_TAX
        assert settings.database_url == "sqlite://"

    def test_missing_version(self):
        with pytest.raises(KeyError):
            parse_settings({"config_id": "bare"})

    def test_checksum_ignores_key_order(self):
        reordered = json.loads(json.dumps(ROOT))
        reordered = dict(reversed(list(reordered.items())))

        assert compute_checksum(reordered) == compute_checksum(ROOT)

    def test_non_mapping_yaml(self, tmp_path):
        path = tmp_path / "root.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError):
            load_yaml_file(path)


class TestGetActiveSettings:

    def test_packaged_default_set(self):
        settings = get_active_settings()

        assert settings.config_id == "billing-default"
        assert settings.default_tax_mode is TaxBehavior.PRE_TAX
        assert settings.absent_amount_marker == "—"

    def test_custom_directory(self, tmp_path):
        _write_set(tmp_path)

        settings = get_active_settings("acme", config_dir=tmp_path)

        assert settings.config_id == "acme-billing"

    def test_unknown_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_settings("missing", config_dir=tmp_path)

    def test_emits_config_trace(self, tmp_path, captured_logs):
        _write_set(tmp_path)
        get_active_settings("acme", config_dir=tmp_path)

        traces = [r for r in captured_logs() if r["message"] == "BILLING_CONFIG_TRACE"]
        assert traces[0]["config_set_id"] == "acme-billing"
        assert traces[0]["default_tax_mode"] == "tax-included"


class TestFingerprintPin:

    def test_matching_pin(self, tmp_path):
        set_dir = _write_set(tmp_path)
        checksum = get_active_settings("acme", config_dir=tmp_path).checksum
        (set_dir / PINFILE_NAME).write_text(checksum + "\n")

        assert read_pinned_fingerprint(set_dir) == checksum
        assert get_active_settings("acme", config_dir=tmp_path).checksum == checksum

    def test_mismatched_pin(self, tmp_path):
        set_dir = _write_set(tmp_path)
        (set_dir / PINFILE_NAME).write_text("0" * 64)

        with pytest.raises(ConfigIntegrityError) as exc_info:
            get_active_settings("acme", config_dir=tmp_path)

        assert exc_info.value.code == "CONFIG_INTEGRITY_MISMATCH"
        assert exc_info.value.config_id == "acme-billing"

    def test_no_pin_file(self, tmp_path):
        assert read_pinned_fingerprint(tmp_path) is None


class TestApproveScript:

    def test_approve_pins_current_checksum(self, tmp_path):
        from scripts.approve_config import approve

        set_dir = _write_set(tmp_path)
        checksum = approve(set_dir)

        assert read_pinned_fingerprint(set_dir) == checksum
        assert get_active_settings("acme", config_dir=tmp_path).checksum == checksum

    def test_edit_after_approval_fails(self, tmp_path):
        from scripts.approve_config import approve

        set_dir = _write_set(tmp_path)
        approve(set_dir)
        edited = dict(ROOT, version=4)
        (set_dir / "root.yaml").write_text(yaml.safe_dump(edited))

        with pytest.raises(ConfigIntegrityError):
            get_active_settings("acme", config_dir=tmp_path)
