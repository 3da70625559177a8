"""
Centralized settings and path configuration for the parking pricing engine.
"""
import os
from decimal import Decimal
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


ENV_PREFIX = "PARKING_PRICING_"


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def _env(name: str) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None or value.strip() == '':
        return None
    return value.strip()


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Parking catalog (parking_id → base price, currency)
    parkings_csv: Path

    # Rule files
    rules_csv: Path
    compiled_rules: Path

    # Tax rate applied on top of the subtotal (0.1 = 10%)
    tax_rate: Decimal = Decimal('0')

    # Currency used when a parking has none
    default_currency: str = 'EUR'

    # Wall-clock zone for time/day/date conditions on tz-aware bookings
    timezone: Optional[str] = None

    log_level: str = 'INFO'

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()
        package_dir = Path(__file__).resolve().parent.parent
        data_dir = package_dir / 'data'
        rules_dir = package_dir / 'rules'

        settings = cls(
            project_root=root,
            parkings_csv=data_dir / 'parkings.csv',
            rules_csv=rules_dir / 'rules.csv',
            compiled_rules=rules_dir / 'compiled_rules.json',
        )

        if _env('PARKINGS_CSV'):
            settings.parkings_csv = Path(_env('PARKINGS_CSV'))
        if _env('RULES_CSV'):
            settings.rules_csv = Path(_env('RULES_CSV'))
        if _env('COMPILED_RULES'):
            settings.compiled_rules = Path(_env('COMPILED_RULES'))
        if _env('TAX_RATE'):
            settings.tax_rate = Decimal(_env('TAX_RATE'))
        if _env('DEFAULT_CURRENCY'):
            settings.default_currency = _env('DEFAULT_CURRENCY').upper()
        if _env('TIMEZONE'):
            settings.timezone = _env('TIMEZONE')
        if _env('LOG_LEVEL'):
            settings.log_level = _env('LOG_LEVEL').upper()

        return settings


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Drop the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
