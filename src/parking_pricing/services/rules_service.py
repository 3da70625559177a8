"""
Rules Service - CRUD operations for price rules.
Handles reading/writing rules.csv and auto-compiling to JSON.
"""
import csv
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

from ..data.parking_catalog import ParkingCatalog
from ..engine.errors import RuleStoreUnavailableError, RuleValidationError
from ..engine.models import PriceRule
from ..engine.rule_store import CompiledRuleStore
from ..rules.compile_rules import (
    CSV_COLUMNS,
    check_rule,
    compile_rules,
    rule_from_csv_row,
    rule_to_csv_row,
)

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of rule validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='seconds')


class RulesService:
    """Service for managing price rules."""

    def __init__(
        self,
        rules_csv_path: Path,
        compiled_rules_path: Path,
        parking_catalog: Optional[ParkingCatalog] = None,
        rule_store: Optional[CompiledRuleStore] = None,
    ):
        self.rules_csv_path = rules_csv_path
        self.compiled_rules_path = compiled_rules_path
        self.parking_catalog = parking_catalog
        self.rule_store = rule_store

    def list_rules(self, parking_id: Optional[str] = None, include_inactive: bool = True) -> list[PriceRule]:
        """
        List rules from CSV in file order, optionally for one parking.

        Raises RuleStoreUnavailableError when rules.csv cannot be read or
        holds a row that does not parse.
        """
        rules = []
        if not self.rules_csv_path.exists():
            return rules

        try:
            with open(self.rules_csv_path, 'r', encoding='utf-8', newline='') as f:
                rows = list(csv.DictReader(f))
        except OSError as e:
            raise RuleStoreUnavailableError(f"Cannot read {self.rules_csv_path}: {e}") from e

        for line_num, row in enumerate(rows, start=2):
            if not (row.get('rule_id') or '').strip():
                continue
            try:
                rule = rule_from_csv_row(row)
            except ValueError as e:
                raise RuleStoreUnavailableError(f"{self.rules_csv_path} line {line_num}: {e}") from e
            if parking_id is not None and rule.parking_id != str(parking_id):
                continue
            if include_inactive or rule.is_active:
                rules.append(rule)

        return rules

    def get_rule(self, rule_id: str) -> Optional[PriceRule]:
        """Get a single rule by ID."""
        for rule in self.list_rules():
            if rule.id == rule_id:
                return rule
        return None

    def create_rule(self, data: dict, auto_compile: bool = True) -> PriceRule:
        """
        Create a new rule from its API representation (camelCase keys).

        Raises RuleValidationError on invalid data and ValueError when the
        ID is already taken.
        """
        data = dict(data)
        if not data.get('id'):
            data['id'] = self._generate_rule_id(str(data.get('parkingId') or '').strip(), data.get('type') or 'DISCOUNT')
        now = _now()
        data.setdefault('createdAt', now)
        data['updatedAt'] = now

        rule = self._build_rule(data)

        validation = self.validate_rule(rule)
        if not validation.valid:
            raise RuleValidationError(validation.errors)

        if self.get_rule(rule.id):
            raise ValueError(f"Rule with ID '{rule.id}' already exists")

        rules = self.list_rules()
        rules.append(rule)
        self._save(rules, auto_compile)
        logger.info("Created price rule %s for parking %s", rule.id, rule.parking_id)

        return rule

    def update_rule(self, rule_id: str, updates: dict, auto_compile: bool = True) -> PriceRule:
        """
        Update an existing rule with a partial API representation.

        A given 'conditions' object replaces the rule's conditions as a whole.
        """
        rules = self.list_rules()

        for i, rule in enumerate(rules):
            if rule.id == rule_id:
                break
        else:
            raise ValueError(f"Rule with ID '{rule_id}' not found")

        data = rule.to_dict()
        for key, value in updates.items():
            if key in ('id', 'createdAt'):
                continue
            if key == 'conditions' and value is None:
                value = {}
            data[key] = value
        data['updatedAt'] = _now()

        updated = self._build_rule(data)
        validation = self.validate_rule(updated)
        if not validation.valid:
            raise RuleValidationError(validation.errors)

        rules[i] = updated
        self._save(rules, auto_compile)
        logger.info("Updated price rule %s", rule_id)

        return updated

    def delete_rule(self, rule_id: str, auto_compile: bool = True) -> bool:
        """Delete a rule."""
        rules = self.list_rules()
        original_count = len(rules)
        rules = [r for r in rules if r.id != rule_id]

        if len(rules) == original_count:
            raise ValueError(f"Rule with ID '{rule_id}' not found")

        self._save(rules, auto_compile)
        logger.info("Deleted price rule %s", rule_id)

        return True

    def validate_rule(self, rule: PriceRule) -> ValidationResult:
        """Validate a rule before saving."""
        result = ValidationResult(valid=True)

        errors = check_rule(rule)
        if errors:
            result.errors.extend(errors)
            result.valid = False

        # Warn if the date window is in the past
        if rule.conditions.date and rule.conditions.date.end_date < date.today():
            result.warnings.append("Rule has expired (end date is in the past)")

        if self.parking_catalog is not None and rule.parking_id and rule.parking_id not in self.parking_catalog:
            result.warnings.append(f"Parking '{rule.parking_id}' not found in parking catalog")

        if result.valid:
            result.warnings.extend(self._check_conflicts(rule))

        return result

    def _check_conflicts(self, rule: PriceRule) -> list[str]:
        """Check for rules of the same parking sharing a priority."""
        warnings = []
        for existing in self.list_rules(parking_id=rule.parking_id, include_inactive=False):
            if existing.id == rule.id:
                continue
            if existing.priority == rule.priority:
                warnings.append(
                    f"Rule '{existing.id}' has the same priority {rule.priority}; "
                    "stored order decides which applies first"
                )
        return warnings

    def _build_rule(self, data: dict) -> PriceRule:
        """
        Build a rule as it will be stored.

        The rule goes through its CSV form so that checks see the same
        stripped values the compiler will read back.
        """
        try:
            rule = PriceRule.from_dict(data)
            return rule_from_csv_row(rule_to_csv_row(rule))
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise RuleValidationError([f"Invalid rule data: {e}"]) from e

    def _generate_rule_id(self, parking_id: str, rule_type: str) -> str:
        """Generate a unique rule ID."""
        base = f"PR-{parking_id or 'ANY'}-{str(rule_type).split('_')[0][:4].upper()}"

        existing_ids = {r.id for r in self.list_rules()}
        candidate = base
        counter = 1
        while candidate in existing_ids:
            candidate = f"{base}-{counter}"
            counter += 1

        return candidate

    def _write_rules(self, rules: list[PriceRule]):
        """Write rules back to CSV."""
        self.rules_csv_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.rules_csv_path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for rule in rules:
                writer.writerow(rule_to_csv_row(rule))

    def _save(self, rules: list[PriceRule], auto_compile: bool):
        """
        Write rules.csv and recompile it.

        When compilation fails the previous rules.csv is put back and the
        compile errors are raised as RuleValidationError.
        """
        previous = self.rules_csv_path.read_bytes() if self.rules_csv_path.exists() else None
        self._write_rules(rules)
        if not auto_compile:
            return

        try:
            self.compile_rules()
        except RuleValidationError:
            if previous is None:
                self.rules_csv_path.unlink()
            else:
                self.rules_csv_path.write_bytes(previous)
            logger.warning("Restored previous %s after failed compilation", self.rules_csv_path)
            raise

    def compile_rules(self) -> list[PriceRule]:
        """
        Compile rules.csv and reload the attached rule store.

        Raises RuleValidationError with the compiler's messages when any
        row is invalid. compiled_rules.json is left untouched in that case.
        """
        success, rules, errors = compile_rules(self.rules_csv_path, self.compiled_rules_path)
        if not success:
            logger.error("Rule compilation failed with %d errors", len(errors))
            raise RuleValidationError(errors)
        if self.rule_store is not None:
            self.rule_store.reload()
        return rules

    def get_stats(self) -> dict:
        """Get statistics about rules."""
        rules = self.list_rules()
        today = date.today()

        active = [r for r in rules if r.is_active]
        expired = [r for r in rules if r.conditions.date and r.conditions.date.end_date < today]
        by_parking = {}
        by_type = {}
        for r in rules:
            by_parking[r.parking_id] = by_parking.get(r.parking_id, 0) + 1
            by_type[r.type.value] = by_type.get(r.type.value, 0) + 1

        return {
            'total': len(rules),
            'active': len(active),
            'inactive': len(rules) - len(active),
            'expired': len(expired),
            'by_parking': by_parking,
            'by_type': by_type,
        }
