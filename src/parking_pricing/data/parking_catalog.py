"""
Parking Catalog - Hourly base price and currency per parking resource.

Loaded from parkings.csv (parking_id, title, base_price, currency).
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd

from ..engine.money import to_decimal

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('parking_id', 'base_price')


@dataclass
class Parking:
    """Pricing facts of a parking resource."""
    parking_id: str
    title: str
    base_price: Decimal
    currency: str


class ParkingCatalog:
    """Lookup of parkings by id."""

    def __init__(self, parkings_csv: Optional[Path] = None, default_currency: str = 'EUR'):
        self.parkings_csv = parkings_csv
        self.default_currency = default_currency
        self.catalog = pd.DataFrame(columns=['title', 'base_price', 'currency'])
        self.catalog.index.name = 'parking_id'

        if parkings_csv is not None and parkings_csv.exists():
            self._load(parkings_csv)
        elif parkings_csv is not None:
            logger.warning("Parking catalog not found at %s", parkings_csv)

    def _load(self, path: Path):
        df = pd.read_csv(path, dtype=str).fillna('')
        df.columns = [c.strip() for c in df.columns]

        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"{path} is missing columns: {', '.join(missing)}")

        for col in df.columns:
            df[col] = df[col].astype(str).str.strip()
        if 'title' not in df.columns:
            df['title'] = ''
        if 'currency' not in df.columns:
            df['currency'] = ''

        # Handle potential duplicates by keeping the first entry
        df = df[df['parking_id'] != ''].drop_duplicates(subset='parking_id', keep='first')
        self.catalog = df.set_index('parking_id')
        logger.info("Loaded %d parkings from %s", len(self.catalog), path)

    @classmethod
    def from_records(cls, records: list[dict], default_currency: str = 'EUR') -> 'ParkingCatalog':
        """Build a catalog from dicts with parking_id/base_price/currency keys."""
        catalog = cls(default_currency=default_currency)
        if records:
            df = pd.DataFrame(records, dtype=str)
            for col in ('title', 'currency'):
                if col not in df.columns:
                    df[col] = ''
            catalog.catalog = df.fillna('').set_index('parking_id')
        return catalog

    def __len__(self) -> int:
        return len(self.catalog)

    def __contains__(self, parking_id: str) -> bool:
        return str(parking_id) in self.catalog.index

    def get(self, parking_id: str) -> Optional[Parking]:
        """Get a parking by id, None when unknown."""
        parking_id = str(parking_id).strip()
        if parking_id not in self.catalog.index:
            return None

        row = self.catalog.loc[parking_id]
        return Parking(
            parking_id=parking_id,
            title=row['title'] or parking_id,
            base_price=to_decimal(row['base_price']),
            currency=(row['currency'] or self.default_currency).upper(),
        )
