"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation.
Dictionaries produced by to_dict() use the camelCase keys of the
marketplace API.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Optional

from .money import to_decimal


class PriceRuleType(str, Enum):
    """Display category of a rule. Matching never looks at it."""
    TIME_BASED = 'TIME_BASED'
    DAY_BASED = 'DAY_BASED'
    DATE_BASED = 'DATE_BASED'
    DURATION_BASED = 'DURATION_BASED'
    DISCOUNT = 'DISCOUNT'


class AdjustmentType(str, Enum):
    PERCENTAGE = 'PERCENTAGE'
    FIXED = 'FIXED'


_ONE_HOUR_US = 3_600_000_000


@dataclass
class TimeCondition:
    """Wall-clock window "HH:mm"; end before start spans midnight."""
    start_time: str
    end_time: str


@dataclass
class DayCondition:
    """Days of week, 0 = Sunday ... 6 = Saturday."""
    days_of_week: list[int]


@dataclass
class DateCondition:
    """Inclusive calendar date range."""
    start_date: date
    end_date: date


@dataclass
class DurationCondition:
    """Booking length bounds in hours; no max_hours means unbounded."""
    min_hours: float
    max_hours: Optional[float] = None


@dataclass
class RuleConditions:
    time: Optional[TimeCondition] = None
    day: Optional[DayCondition] = None
    date: Optional[DateCondition] = None
    duration: Optional[DurationCondition] = None

    def is_empty(self) -> bool:
        return not (self.time or self.day or self.date or self.duration)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'RuleConditions':
        data = data or {}
        conditions = cls()
        if data.get('time'):
            t = data['time']
            conditions.time = TimeCondition(start_time=t['startTime'], end_time=t['endTime'])
        if data.get('day'):
            conditions.day = DayCondition(days_of_week=[int(d) for d in data['day']['daysOfWeek']])
        if data.get('date'):
            d = data['date']
            conditions.date = DateCondition(
                start_date=_parse_date(d['startDate']),
                end_date=_parse_date(d['endDate']),
            )
        if data.get('duration'):
            d = data['duration']
            max_hours = d.get('maxHours')
            conditions.duration = DurationCondition(
                min_hours=float(d.get('minHours') or 0),
                max_hours=float(max_hours) if max_hours is not None else None,
            )
        return conditions

    def to_dict(self) -> dict:
        out = {}
        if self.time:
            out['time'] = {'startTime': self.time.start_time, 'endTime': self.time.end_time}
        if self.day:
            out['day'] = {'daysOfWeek': list(self.day.days_of_week)}
        if self.date:
            out['date'] = {
                'startDate': self.date.start_date.isoformat(),
                'endDate': self.date.end_date.isoformat(),
            }
        if self.duration:
            duration = {'minHours': self.duration.min_hours}
            if self.duration.max_hours is not None:
                duration['maxHours'] = self.duration.max_hours
            out['duration'] = duration
        return out


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # Accept full ISO timestamps as well as plain dates
    return date.fromisoformat(str(value).strip()[:10])


@dataclass
class PriceRule:
    """A pricing adjustment attached to one parking resource."""
    id: str
    parking_id: str
    name: str
    type: PriceRuleType
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    conditions: RuleConditions = field(default_factory=RuleConditions)
    priority: int = 0
    is_active: bool = True
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'PriceRule':
        """Create a PriceRule from its API/JSON representation."""
        return cls(
            id=str(data['id']),
            parking_id=str(data['parkingId']),
            name=data.get('name') or str(data['id']),
            type=PriceRuleType(data.get('type', PriceRuleType.DISCOUNT.value)),
            adjustment_type=AdjustmentType(data['adjustmentType']),
            adjustment_value=to_decimal(data['adjustmentValue']),
            conditions=RuleConditions.from_dict(data.get('conditions')),
            priority=int(data.get('priority', 0)),
            is_active=bool(data.get('isActive', True)),
            description=data.get('description'),
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
        )

    def to_dict(self) -> dict:
        """Convert to the API/JSON representation."""
        return {
            'id': self.id,
            'parkingId': self.parking_id,
            'name': self.name,
            'description': self.description,
            'type': self.type.value,
            'adjustmentType': self.adjustment_type.value,
            'adjustmentValue': float(self.adjustment_value),
            'conditions': self.conditions.to_dict(),
            'priority': self.priority,
            'isActive': self.is_active,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


@dataclass
class BookingInterval:
    """A requested booking: both instants, end strictly after start."""
    parking_id: str
    start_time: datetime
    end_time: datetime

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def billable_hours(self) -> int:
        """Booking length in whole hours, started hours rounded up."""
        micros = self.duration // timedelta(microseconds=1)
        return -(-micros // _ONE_HOUR_US)

    def local_start(self, tz: Optional[tzinfo] = None) -> datetime:
        """Start instant as wall-clock time in tz (naive starts are taken as-is)."""
        if tz is not None and self.start_time.tzinfo is not None:
            return self.start_time.astimezone(tz)
        return self.start_time


@dataclass
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class AppliedRule:
    """A matched rule's contribution to the price."""
    rule_id: str
    name: str
    type: str
    adjustment: Decimal
    amount: Decimal


@dataclass
class PriceCalculation:
    """Complete result of a price calculation."""
    base_price: Decimal
    applied_rules: list[AppliedRule]
    subtotal: Decimal
    taxes: Decimal
    total: Decimal
    currency: str
    duration_hours: int
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the calculation trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self, include_trace: bool = False) -> dict:
        """Convert to the PriceCalculation JSON shape."""
        data = {
            'basePrice': float(self.base_price),
            'appliedRules': [
                {
                    'ruleId': r.rule_id,
                    'name': r.name,
                    'type': r.type,
                    'adjustment': float(r.adjustment),
                    'amount': float(r.amount),
                }
                for r in self.applied_rules
            ],
            'subtotal': float(self.subtotal),
            'taxes': float(self.taxes),
            'total': float(self.total),
            'currency': self.currency,
            'durationHours': self.duration_hours,
        }
        if include_trace:
            data['trace'] = [
                {'step': t.step, 'description': t.description, 'value': t.value}
                for t in self.trace
            ]
        return data
