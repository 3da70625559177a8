import os
import sys
from datetime import datetime
from decimal import Decimal

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from parking_pricing.config.settings import Settings
from parking_pricing.engine.models import PriceRule


@pytest.fixture
def make_rule():
    """Factory for PriceRule objects built from their API representation."""
    def _make(
        rule_id="R1",
        adjustment_type="PERCENTAGE",
        value=10,
        priority=0,
        conditions=None,
        parking_id="P-1",
        rule_type="DISCOUNT",
        active=True,
    ):
        return PriceRule.from_dict({
            "id": rule_id,
            "parkingId": parking_id,
            "name": f"Rule {rule_id}",
            "type": rule_type,
            "adjustmentType": adjustment_type,
            "adjustmentValue": value,
            "conditions": conditions or {},
            "priority": priority,
            "isActive": active,
        })
    return _make


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at files under tmp_path, no tax."""
    return Settings(
        project_root=tmp_path,
        parkings_csv=tmp_path / "parkings.csv",
        rules_csv=tmp_path / "rules.csv",
        compiled_rules=tmp_path / "compiled_rules.json",
        tax_rate=Decimal("0"),
        default_currency="EUR",
    )


def at(day: int, hour: int, minute: int = 0) -> datetime:
    """A naive instant in March 2026 (the 10th is a Tuesday, the 14th a Saturday)."""
    return datetime(2026, 3, day, hour, minute)
