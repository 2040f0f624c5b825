from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from ledger_recon.reconcile import Side
from ledger_recon.utils.json_utils import write_json


class _Gauge:
    def __init__(self, value):
        self.value = value


def test_write_json_encodes_enum_date_and_decimal(tmp_path: Path):
    out = tmp_path / "nested" / "summary.json"
    write_json(out, {"side": Side.B, "on": date(2024, 1, 5), "amount": Decimal("10.50")})
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data == {"side": "B", "on": "2024-01-05", "amount": "10.50"}


def test_write_json_rejects_objects_with_value_attribute(tmp_path: Path):
    out = tmp_path / "meta.json"
    with pytest.raises(TypeError, match="_Gauge"):
        write_json(out, {"gauge": _Gauge(3)})
    assert not out.exists()
