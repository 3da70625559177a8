"""
Print the full calculation trace for one booking.

Usage:
    python scripts/debug_price.py P-100 2026-03-14T08:00 2026-03-14T12:00
"""
import sys
from datetime import datetime
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from parking_pricing.api.state import AppState


def debug(parking_id: str, start: str, end: str):
    state = AppState.build()

    parking = state.catalog.get(parking_id)
    if parking is None:
        print(f"Parking {parking_id} not found in {state.settings.parkings_csv}")
        sys.exit(1)

    print(f"Parking: {parking.title} ({parking.base_price} {parking.currency}/h)")
    print("Active rules:")
    for rule in state.rule_store.rules_for_parking(parking_id):
        print(f"  [{rule.priority}] {rule.id} {rule.adjustment_type.value} {rule.adjustment_value} {rule.conditions.to_dict()}")

    calculation = state.engine.calculate(
        parking_id=parking_id,
        base_price=parking.base_price,
        start_time=datetime.fromisoformat(start),
        end_time=datetime.fromisoformat(end),
        currency=parking.currency,
    )
    print("\nTrace:")
    print(calculation.get_trace_text())
    print("\nResult:")
    print(calculation.to_dict())


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(2)
    debug(*sys.argv[1:])
