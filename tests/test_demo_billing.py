"""Smoke test for the recurring billing walkthrough script."""

import json
import logging
import sys

import pytest

from billing_kernel.db.engine import reset_engine


@pytest.fixture
def demo_main(monkeypatch):
    from scripts import demo_billing

    def _run(*args):
        monkeypatch.setattr(sys, "argv", ["demo_billing.py", "--db-url", "sqlite://", *args])
        try:
            return demo_billing.main()
        finally:
            logging.disable(logging.NOTSET)
            reset_engine()

    return _run


class TestDemoBilling:

    def test_json_output(self, demo_main, capsys):
        assert demo_main("--year", "2027", "--month", "4", "--json") == 0

        view = json.loads(capsys.readouterr().out)
        assert view["previous"]["month_label"] == "March"
        assert view["preview"]["month_label"] == "April"
        facilities = view["delta"]["facilities"]
        assert {f["location_name"] for f in facilities} == {
            "Main Office", "Warehouse", "Pool House",
        }

    def test_table_output(self, demo_main, capsys):
        assert demo_main("--month", "3") == 0

        out = capsys.readouterr().out
        assert "Main Office" in out
        assert "Weekly schedule" in out
