"""
Price Resolver - Turns an hourly base price and matched rules into a
PriceCalculation.

Money math is done in Decimal. Each rule amount is rounded to the
currency's minor unit when it is recorded and the running price compounds
on the rounded value, so recorded amounts always reconcile with the
subtotal.
"""
import logging
from decimal import Decimal
from typing import Sequence

from .errors import InvalidIntervalError, NegativeBasePriceError, PricingError
from .models import AdjustmentType, AppliedRule, PriceCalculation
from .money import Number, format_money, round_money, to_decimal
from .rule_matcher import MatchedRule

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')


class PriceResolver:
    """Applies matched rules, in order, to the base cost of a booking."""

    def resolve(
        self,
        base_price: Number,
        matched_rules: Sequence[MatchedRule],
        duration_hours: int,
        tax_rate: Number,
        currency: str,
    ) -> PriceCalculation:
        """
        Calculate the price of a booking.

        Args:
            base_price: Hourly rate in major currency units
            matched_rules: Rules in application order (see RuleMatcher)
            duration_hours: Billable hours, must be > 0
            tax_rate: Fraction applied to the subtotal (0.1 = 10%)
            currency: ISO currency code

        Returns:
            PriceCalculation with applied rules, subtotal, taxes and total
        """
        base_price = to_decimal(base_price)
        tax_rate = to_decimal(tax_rate)

        if duration_hours <= 0:
            raise InvalidIntervalError(f"Booking duration must be positive, got {duration_hours}h")
        if base_price < ZERO:
            raise NegativeBasePriceError(f"Base price must not be negative, got {base_price}")
        if tax_rate < ZERO:
            raise PricingError(f"Tax rate must not be negative, got {tax_rate}")

        running = round_money(base_price * duration_hours, currency)

        calculation = PriceCalculation(
            base_price=base_price,
            applied_rules=[],
            subtotal=ZERO,
            taxes=ZERO,
            total=ZERO,
            currency=currency,
            duration_hours=duration_hours,
        )
        calculation.add_trace(
            "Base Cost",
            f"{duration_hours}h × {format_money(base_price, currency)}",
            format_money(running, currency),
        )

        for matched in matched_rules:
            rule = matched.rule
            value = rule.adjustment_value

            if rule.adjustment_type == AdjustmentType.PERCENTAGE:
                amount = round_money(running * value / HUNDRED, currency)
                description = f"{rule.name} ({rule.id}) {value}%"
            else:
                amount = round_money(value, currency)
                description = f"{rule.name} ({rule.id}) fixed {format_money(value, currency)}"

            # A booking never invoices a negative amount
            if running + amount < ZERO:
                logger.info(
                    "Rule %s would take price below zero, clamping %s to %s",
                    rule.id, amount, -running,
                )
                amount = -running
                description += " (clamped at zero)"

            running += amount
            calculation.applied_rules.append(AppliedRule(
                rule_id=rule.id,
                name=rule.name,
                type=rule.type.value,
                adjustment=value,
                amount=amount,
            ))
            calculation.add_trace("Rule Applied", description, format_money(running, currency))

        calculation.subtotal = running
        calculation.taxes = round_money(running * tax_rate, currency)
        calculation.total = round_money(calculation.subtotal + calculation.taxes, currency)

        calculation.add_trace("Subtotal", "After rule adjustments", format_money(calculation.subtotal, currency))
        calculation.add_trace("Taxes", f"Rate {tax_rate}", format_money(calculation.taxes, currency))
        calculation.add_trace("Total", "Subtotal + taxes", format_money(calculation.total, currency))

        return calculation
