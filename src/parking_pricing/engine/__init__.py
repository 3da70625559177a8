"""Engine subpackage - core pricing logic and resolution."""
from .pricing_engine import PricingEngine
from .models import PriceRule, BookingInterval, PriceCalculation
from .rule_store import RuleStore, InMemoryRuleStore, CompiledRuleStore

__all__ = [
    'PricingEngine', 'PriceRule', 'BookingInterval', 'PriceCalculation',
    'RuleStore', 'InMemoryRuleStore', 'CompiledRuleStore',
]
