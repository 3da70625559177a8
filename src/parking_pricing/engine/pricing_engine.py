"""
Pricing Engine - Core price resolution for parking bookings.

Resolution order:
1. Validate the booking interval and base price
2. Read the parking's active rules from the rule store
3. Match rule conditions against the booking (RuleMatcher)
4. Apply matched rules by priority and add taxes (PriceResolver)

Each call is all-or-nothing: it returns a complete PriceCalculation or
raises a PricingError subclass.
"""
import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from ..config.settings import Settings, get_settings
from .errors import InvalidIntervalError, NegativeBasePriceError
from .models import BookingInterval, PriceCalculation, TraceStep
from .money import Number, to_decimal
from .price_resolver import PriceResolver
from .rule_matcher import RuleMatcher
from .rule_store import RuleStore

logger = logging.getLogger(__name__)


class PricingEngine:
    """Computes PriceCalculation results from a rule store."""

    def __init__(
        self,
        rule_store: RuleStore,
        settings: Optional[Settings] = None,
        tax_rate: Optional[Number] = None,
    ):
        self.settings = settings or get_settings()
        self.rule_store = rule_store
        self.tax_rate = to_decimal(tax_rate if tax_rate is not None else self.settings.tax_rate)

        timezone = ZoneInfo(self.settings.timezone) if self.settings.timezone else None
        self.rule_matcher = RuleMatcher(timezone=timezone)
        self.price_resolver = PriceResolver()

    def calculate(
        self,
        parking_id: str,
        base_price: Number,
        start_time: datetime,
        end_time: datetime,
        currency: Optional[str] = None,
    ) -> PriceCalculation:
        """
        Calculate the price of booking a parking between two instants.

        Args:
            parking_id: Parking resource whose rules apply
            base_price: Hourly rate in major currency units
            start_time: Booking start
            end_time: Booking end, strictly after start_time
            currency: ISO code, defaults to settings.default_currency

        Returns:
            PriceCalculation dataclass with applied rules and totals
        """
        interval = BookingInterval(parking_id=str(parking_id), start_time=start_time, end_time=end_time)
        return self.calculate_interval(interval, base_price, currency)

    def calculate_interval(
        self,
        interval: BookingInterval,
        base_price: Number,
        currency: Optional[str] = None,
    ) -> PriceCalculation:
        """Calculate the price for an already built BookingInterval."""
        self._validate(interval, base_price)
        currency = (currency or self.settings.default_currency).upper()

        rules = self.rule_store.rules_for_parking(interval.parking_id)
        matched = self.rule_matcher.find_matching_rules(rules, interval)

        calculation = self.price_resolver.resolve(
            base_price=base_price,
            matched_rules=matched,
            duration_hours=interval.billable_hours,
            tax_rate=self.tax_rate,
            currency=currency,
        )

        calculation.trace.insert(0, _booking_step(interval, len(rules), len(matched)))
        logger.info(
            "Priced parking %s for %sh: %d/%d rules applied, total %s %s",
            interval.parking_id, calculation.duration_hours, len(matched), len(rules),
            calculation.total, currency,
        )
        return calculation

    def _validate(self, interval: BookingInterval, base_price: Number):
        try:
            valid = interval.end_time > interval.start_time
        except TypeError as e:
            raise InvalidIntervalError(f"Cannot compare booking start and end: {e}") from e
        if not valid:
            raise InvalidIntervalError(
                f"Booking end {interval.end_time.isoformat()} must be after start "
                f"{interval.start_time.isoformat()}"
            )
        if to_decimal(base_price) < 0:
            raise NegativeBasePriceError(f"Base price must not be negative, got {base_price}")


def _booking_step(interval: BookingInterval, rule_count: int, matched_count: int) -> TraceStep:
    return TraceStep(
        step="Booking",
        description=f"Parking {interval.parking_id}, {rule_count} active rules, {matched_count} matched",
        value=f"{interval.start_time.isoformat()} → {interval.end_time.isoformat()}",
    )
