"""
Rule Compiler - Validates and compiles price rules from CSV to JSON.

Reads rules.csv, validates every row, and outputs compiled_rules.json
which the CompiledRuleStore serves to the pricing engine.
"""
import csv
import json
import logging
import sys
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from ..engine.models import (
    AdjustmentType,
    DateCondition,
    DayCondition,
    DurationCondition,
    PriceRule,
    PriceRuleType,
    RuleConditions,
    TimeCondition,
)
from ..engine.rule_matcher import parse_clock

logger = logging.getLogger(__name__)


CSV_COLUMNS = [
    'rule_id', 'parking_id', 'name', 'description', 'type',
    'adjustment_type', 'adjustment_value', 'start_time', 'end_time',
    'days_of_week', 'start_date', 'end_date', 'min_hours', 'max_hours',
    'priority', 'active', 'created_at', 'updated_at',
]

VALID_RULE_TYPES = {t.value for t in PriceRuleType}
VALID_ADJUSTMENT_TYPES = {t.value for t in AdjustmentType}


def parse_bool(value: str) -> bool:
    """Parse a boolean from CSV string."""
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def parse_optional_float(value: str) -> Optional[float]:
    """Parse optional float."""
    if value is None or str(value).strip() == '':
        return None
    return float(value)


def parse_optional_str(value: str) -> Optional[str]:
    """Parse optional string (empty = None)."""
    if value is None or str(value).strip() == '':
        return None
    return str(value).strip()


def parse_days(value: str) -> Optional[list[int]]:
    """Parse "0,6" or "0;6" into a list of day numbers."""
    text = parse_optional_str(value)
    if text is None:
        return None
    return [int(p) for p in text.replace(';', ',').split(',') if p.strip()]


def check_rule(rule: PriceRule) -> list[str]:
    """
    Check a parsed rule for values the engine cannot evaluate.

    Returns a list of error messages, empty when the rule is valid.
    """
    errors = []

    if not rule.id:
        errors.append("id is required")
    if not rule.parking_id:
        errors.append("parkingId is required")
    if not rule.name:
        errors.append("name is required")

    conditions = rule.conditions
    if conditions.time:
        for label, value in (('startTime', conditions.time.start_time), ('endTime', conditions.time.end_time)):
            try:
                parse_clock(value)
            except ValueError:
                errors.append(f"time.{label} must be HH:mm, got '{value}'")

    if conditions.day:
        if not conditions.day.days_of_week:
            errors.append("day.daysOfWeek must not be empty")
        bad = [d for d in conditions.day.days_of_week if not 0 <= d <= 6]
        if bad:
            errors.append(f"day.daysOfWeek values must be 0 (Sunday) to 6 (Saturday), got {bad}")

    if conditions.date:
        if conditions.date.start_date > conditions.date.end_date:
            errors.append("date.startDate must not be after date.endDate")

    if conditions.duration:
        if conditions.duration.min_hours < 0:
            errors.append("duration.minHours must not be negative")
        max_hours = conditions.duration.max_hours
        if max_hours is not None and max_hours < conditions.duration.min_hours:
            errors.append("duration.maxHours must not be below minHours")

    return errors


def rule_from_csv_row(row: dict) -> PriceRule:
    """
    Create a PriceRule from a CSV row.

    Raises ValueError on values that cannot be parsed.
    """
    rule_type = parse_optional_str(row.get('type')) or PriceRuleType.DISCOUNT.value
    if rule_type not in VALID_RULE_TYPES:
        raise ValueError(f"invalid type '{rule_type}', must be one of: {sorted(VALID_RULE_TYPES)}")

    adjustment_type = parse_optional_str(row.get('adjustment_type'))
    if adjustment_type not in VALID_ADJUSTMENT_TYPES:
        raise ValueError(
            f"invalid adjustment_type '{adjustment_type}', must be one of: {sorted(VALID_ADJUSTMENT_TYPES)}"
        )

    value_str = parse_optional_str(row.get('adjustment_value'))
    if value_str is None:
        raise ValueError("adjustment_value is required")
    try:
        adjustment_value = Decimal(value_str)
    except InvalidOperation:
        raise ValueError(f"adjustment_value must be numeric, got '{value_str}'")

    try:
        priority = int(parse_optional_str(row.get('priority')) or 0)
    except ValueError:
        raise ValueError("priority must be an integer")

    conditions = RuleConditions()

    start_time = parse_optional_str(row.get('start_time'))
    end_time = parse_optional_str(row.get('end_time'))
    if start_time or end_time:
        if not (start_time and end_time):
            raise ValueError("start_time and end_time must be given together")
        conditions.time = TimeCondition(start_time=start_time, end_time=end_time)

    days = parse_days(row.get('days_of_week'))
    if days is not None:
        conditions.day = DayCondition(days_of_week=days)

    start_date = parse_optional_str(row.get('start_date'))
    end_date = parse_optional_str(row.get('end_date'))
    if start_date or end_date:
        if not (start_date and end_date):
            raise ValueError("start_date and end_date must be given together")
        try:
            conditions.date = DateCondition(
                start_date=date.fromisoformat(start_date),
                end_date=date.fromisoformat(end_date),
            )
        except ValueError:
            raise ValueError("start_date/end_date must be YYYY-MM-DD format")

    min_hours = parse_optional_float(row.get('min_hours'))
    max_hours = parse_optional_float(row.get('max_hours'))
    if min_hours is not None or max_hours is not None:
        conditions.duration = DurationCondition(min_hours=min_hours or 0.0, max_hours=max_hours)

    return PriceRule(
        id=parse_optional_str(row.get('rule_id')) or '',
        parking_id=parse_optional_str(row.get('parking_id')) or '',
        name=parse_optional_str(row.get('name')) or parse_optional_str(row.get('rule_id')) or '',
        description=parse_optional_str(row.get('description')),
        type=PriceRuleType(rule_type),
        adjustment_type=AdjustmentType(adjustment_type),
        adjustment_value=adjustment_value,
        conditions=conditions,
        priority=priority,
        is_active=parse_bool(row.get('active', 'true')),
        created_at=parse_optional_str(row.get('created_at')),
        updated_at=parse_optional_str(row.get('updated_at')),
    )


def _fmt_hours(value: Optional[float]) -> str:
    if value is None:
        return ''
    return str(int(value)) if float(value).is_integer() else str(value)


def rule_to_csv_row(rule: PriceRule) -> dict:
    """Convert a PriceRule to CSV row format."""
    c = rule.conditions
    return {
        'rule_id': rule.id,
        'parking_id': rule.parking_id,
        'name': rule.name,
        'description': rule.description or '',
        'type': rule.type.value,
        'adjustment_type': rule.adjustment_type.value,
        'adjustment_value': str(rule.adjustment_value),
        'start_time': c.time.start_time if c.time else '',
        'end_time': c.time.end_time if c.time else '',
        'days_of_week': ','.join(str(d) for d in c.day.days_of_week) if c.day else '',
        'start_date': c.date.start_date.isoformat() if c.date else '',
        'end_date': c.date.end_date.isoformat() if c.date else '',
        'min_hours': _fmt_hours(c.duration.min_hours) if c.duration else '',
        'max_hours': _fmt_hours(c.duration.max_hours) if c.duration else '',
        'priority': str(rule.priority),
        'active': 'true' if rule.is_active else 'false',
        'created_at': rule.created_at or '',
        'updated_at': rule.updated_at or '',
    }


def validate_rule(row: dict, line_num: int) -> tuple[Optional[PriceRule], list[str]]:
    """
    Validate and parse a rule from a CSV row.

    Returns (rule, errors) - rule is None if validation failed.
    """
    if not parse_optional_str(row.get('rule_id')):
        return None, [f"Line {line_num}: rule_id is required"]

    try:
        rule = rule_from_csv_row(row)
    except ValueError as e:
        return None, [f"Line {line_num}: {e}"]

    errors = [f"Line {line_num}: {e}" for e in check_rule(rule)]
    if errors:
        return None, errors
    return rule, []


def compile_rules(
    rules_csv: Path,
    output_json: Path,
) -> tuple[bool, list[PriceRule], list[str]]:
    """
    Compile rules from CSV to JSON.

    Returns (success, rules, errors). Nothing is written when any row
    fails validation.
    """
    all_errors = []
    rules = []

    if not rules_csv.exists():
        all_errors.append(f"Rules file not found: {rules_csv}")
        return False, [], all_errors

    seen_ids = set()
    with open(rules_csv, 'r', newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)

        for line_num, row in enumerate(reader, start=2):  # +2 for 1-indexed header row
            rule, errors = validate_rule(row, line_num)

            if errors:
                all_errors.extend(errors)
            elif rule:
                if rule.id in seen_ids:
                    all_errors.append(f"Line {line_num}: duplicate rule_id '{rule.id}'")
                    continue
                seen_ids.add(rule.id)
                rules.append(rule)

    if all_errors:
        for err in all_errors:
            logger.error("Rule validation failed: %s", err)
        return False, rules, all_errors

    # Sort by priority (lower = applied first); stable, so CSV order breaks ties
    rules.sort(key=lambda r: r.priority)

    output_data = {
        "compiled_at": datetime.now().isoformat(),
        "source_file": str(rules_csv),
        "total_rules": len(rules),
        "active_rules": sum(1 for r in rules if r.is_active),
        "rules": [rule.to_dict() for rule in rules],
    }

    output_json.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = output_json.with_suffix(output_json.suffix + '.tmp')
    with open(tmp_path, 'w', encoding='utf-8') as f:
        json.dump(output_data, f, indent=2)
    tmp_path.replace(output_json)

    logger.info("Compiled %d rules (%d active) to %s", len(rules), output_data['active_rules'], output_json)
    return True, rules, []


def main():
    """CLI entry point."""
    from ..config.settings import get_settings

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(message)s')
    settings = get_settings()

    print("Compiling price rules...")
    success, rules, errors = compile_rules(settings.rules_csv, settings.compiled_rules)

    if not success:
        print(f"\n❌ Compilation failed with {len(errors)} errors")
        sys.exit(1)
    print(f"✅ Compiled {len(rules)} rules → {settings.compiled_rules}")


if __name__ == "__main__":
    main()
