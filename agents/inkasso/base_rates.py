"""Basiszinssatz history used as rate lookup for variable interest.

Statutory default interest (BGB § 288) is the base rate published by the
Bundesbank plus a fixed surcharge: 5 percentage points for consumers,
9 for business transactions. The engine ships no rate values; the table is
always loaded from an operator-maintained file.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path

import yaml

from .errors import InvalidFinancialInputError

CONSUMER_SURCHARGE = Decimal("5")
BUSINESS_SURCHARGE = Decimal("9")


@dataclass(frozen=True)
class BaseRatePeriod:
    valid_from: date
    base_rate: Decimal


class BaseRateTable:
    """Ordered base rate periods plus a surcharge, callable as ``rate_at(date)``.

    Example file (YAML or JSON)::

        surcharge_points: 5
        rates:
          - valid_from: 2023-07-01
            base_rate: 3.12
          - valid_from: 2024-01-01
            base_rate: 3.62
    """

    def __init__(self, periods: list[BaseRatePeriod], surcharge_points: Decimal = CONSUMER_SURCHARGE):
        if not periods:
            raise ValueError("Base rate table needs at least one period")
        self.periods = sorted(periods, key=lambda p: p.valid_from)
        self._starts = [p.valid_from for p in self.periods]
        if len(set(self._starts)) != len(self._starts):
            raise ValueError("Duplicate valid_from in base rate table")
        self.surcharge_points = Decimal(str(surcharge_points))

    @classmethod
    def from_file(cls, path: str | Path, surcharge_points: Decimal | None = None) -> "BaseRateTable":
        """Load a table from YAML or JSON.

        Args:
            path: File with ``rates`` and optional ``surcharge_points``
            surcharge_points: Overrides the surcharge from the file

        Returns:
            Loaded table

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file has no rates
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        periods = []
        for entry in data.get("rates", []):
            valid_from = entry["valid_from"]
            if isinstance(valid_from, str):
                valid_from = date.fromisoformat(valid_from)
            periods.append(BaseRatePeriod(valid_from, Decimal(str(entry["base_rate"]))))

        if surcharge_points is None:
            surcharge_points = Decimal(str(data.get("surcharge_points", CONSUMER_SURCHARGE)))
        return cls(periods, surcharge_points)

    def base_rate_at(self, day: date) -> Decimal:
        """Base rate in effect on ``day``.

        Raises:
            InvalidFinancialInputError: If ``day`` precedes the first period
        """
        index = bisect.bisect_right(self._starts, day) - 1
        if index < 0:
            raise InvalidFinancialInputError(
                f"Kein Basiszinssatz vor {self._starts[0].isoformat()} hinterlegt",
                day=day.isoformat(),
            )
        return self.periods[index].base_rate

    def rate_at(self, day: date) -> Decimal:
        """Default interest rate (percent p.a.) in effect on ``day``."""
        return self.base_rate_at(day) + self.surcharge_points

    __call__ = rate_at
