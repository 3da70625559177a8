#!/usr/bin/env python
"""
Build pipeline - compiles price rules and runs the engine tests.

Usage:
    python scripts/build_all.py
"""
import subprocess
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from parking_pricing.config.settings import get_settings
from parking_pricing.rules.compile_rules import compile_rules


def main():
    print("=" * 60)
    print("PARKING PRICING BUILD PIPELINE")
    print("=" * 60)
    print()

    settings = get_settings()

    print("[1/2] Compiling price rules...")
    success, rules, errors = compile_rules(settings.rules_csv, settings.compiled_rules)

    if not success:
        print("\n❌ BUILD FAILED")
        for error in errors:
            print(f"  ERROR: {error}")
        sys.exit(1)

    print()
    print("[2/2] Running engine tests...")

    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests', '-v', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )

    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)

    print()
    print("=" * 60)
    print("✅ BUILD COMPLETE")
    print("=" * 60)
    print()
    print("Summary:")
    print(f"  Rules: {len(rules)} ({sum(1 for r in rules if r.is_active)} active)")
    by_parking = {}
    for rule in rules:
        by_parking[rule.parking_id] = by_parking.get(rule.parking_id, 0) + 1
    for parking_id, count in sorted(by_parking.items()):
        print(f"  {parking_id}: {count} rules")


if __name__ == "__main__":
    main()
