"""
Shared application state for the API: settings, catalog, rule store,
engine and rules service, built once per process.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from ..config.settings import Settings, get_settings
from ..data.parking_catalog import ParkingCatalog
from ..engine import CompiledRuleStore, PricingEngine
from ..engine.errors import RuleStoreUnavailableError
from ..services.rules_service import RulesService

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    settings: Settings
    catalog: ParkingCatalog
    rule_store: CompiledRuleStore
    engine: PricingEngine
    rules_service: RulesService

    @classmethod
    def build(cls, settings: Optional[Settings] = None) -> 'AppState':
        settings = settings or get_settings()
        catalog = ParkingCatalog(settings.parkings_csv, default_currency=settings.default_currency)
        rule_store = CompiledRuleStore(settings.compiled_rules)
        try:
            rule_store.reload()
        except RuleStoreUnavailableError:
            # The store keeps the error; calculations answer 503 until a reload succeeds
            logger.exception("Starting with unavailable rule store")
        engine = PricingEngine(rule_store, settings=settings)
        rules_service = RulesService(
            rules_csv_path=settings.rules_csv,
            compiled_rules_path=settings.compiled_rules,
            parking_catalog=catalog,
            rule_store=rule_store,
        )
        return cls(
            settings=settings,
            catalog=catalog,
            rule_store=rule_store,
            engine=engine,
            rules_service=rules_service,
        )


_state: Optional[AppState] = None


def get_state() -> AppState:
    """FastAPI dependency returning the process-wide AppState."""
    global _state
    if _state is None:
        _state = AppState.build()
    return _state
