"""
Rule Store - Read access to price rules per parking.

The engine only reads rules. Lookups for unknown parkings return an
empty list; failures to read the backing data raise
RuleStoreUnavailableError.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Iterable, Optional

from .errors import RuleStoreUnavailableError
from .models import PriceRule

logger = logging.getLogger(__name__)


class RuleStore:
    """Base class for rule stores. Subclasses implement _load_all()."""

    def _load_all(self) -> list[PriceRule]:
        raise NotImplementedError

    def all_rules(self, parking_id: Optional[str] = None, include_inactive: bool = True) -> list[PriceRule]:
        """List rules in stored order, optionally for one parking."""
        rules = self._load_all()
        return [
            r for r in rules
            if (parking_id is None or r.parking_id == str(parking_id))
            and (include_inactive or r.is_active)
        ]

    def rules_for_parking(self, parking_id: str) -> list[PriceRule]:
        """Active rules of a parking, in stored order."""
        return self.all_rules(parking_id=parking_id, include_inactive=False)

    def get_rule(self, rule_id: str) -> Optional[PriceRule]:
        """Get a single rule by ID."""
        for rule in self._load_all():
            if rule.id == rule_id:
                return rule
        return None


class InMemoryRuleStore(RuleStore):
    """Rule store over a fixed list of rules."""

    def __init__(self, rules: Iterable[PriceRule] = ()):
        self._rules = tuple(rules)

    def _load_all(self) -> list[PriceRule]:
        return list(self._rules)


class CompiledRuleStore(RuleStore):
    """
    Rule store backed by compiled_rules.json (see rules/compile_rules.py).

    A missing file is an empty store. An unreadable or malformed file
    makes every lookup raise until a reload succeeds.
    """

    def __init__(self, compiled_rules_path: Path):
        self.path = Path(compiled_rules_path)
        self.loaded = False
        self._rules: tuple[PriceRule, ...] = ()
        self._error: Optional[str] = None
        self._lock = threading.Lock()

    def reload(self):
        """Re-read the compiled rules file."""
        with self._lock:
            if not self.path.exists():
                logger.warning("Compiled rules not found at %s, no rules loaded", self.path)
                self._rules = ()
                self._error = None
                self.loaded = False
                return

            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                rules = tuple(PriceRule.from_dict(r) for r in data.get('rules', []))
            except (OSError, ValueError, KeyError, TypeError) as e:
                self._error = f"Cannot read compiled rules {self.path}: {e}"
                self.loaded = False
                logger.error(self._error)
                raise RuleStoreUnavailableError(self._error) from e

            self._rules = rules
            self._error = None
            self.loaded = True
            logger.info("Loaded %d price rules from %s", len(rules), self.path)

    def _load_all(self) -> list[PriceRule]:
        if not self.loaded and self._error is None:
            self.reload()
        if self._error is not None:
            raise RuleStoreUnavailableError(self._error)
        return list(self._rules)

    @property
    def rule_count(self) -> int:
        return len(self._rules)
