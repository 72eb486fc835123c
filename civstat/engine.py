"""
Core engine (civstat)
=====================

This is the heart of the project. civstat works like a tiny offline
"analytics engine":

1) Load the three datasets -> tuples of immutable records
2) Join them on ZIP code through lookup tables built on first use
3) Answer queries, remembering every answer by its arguments (memoization)

Because the records never change after loading, a memoized answer can never
go stale. If an engine were ever refilled with new data, `clear_caches()`
must be called first.

The engine prints nothing and logs nothing; presenting results is the
shell's job (`civstat/cli.py`).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union
import math

from .metrics import PropertyMetric, average_of, extractor, trunc_div
from .models import PopulationRecord, PropertyRecord, VaccinationRecord

VACCINATION_KINDS = ("partial", "full")


def round4(x: float) -> float:
    """Round half-up to 4 decimals."""
    return math.floor(x * 10000.0 + 0.5) / 10000.0


@dataclass
class Analytics:
    """Memoizing query surface over vaccination, population and property data.

    Any of the three collections may be empty; queries then return their
    defined zero/omission result instead of failing.
    """
    vaccinations: Sequence[VaccinationRecord] = ()
    populations: Sequence[PopulationRecord] = ()
    properties: Sequence[PropertyRecord] = ()

    # Memo tables, filled on first use
    _total_population: Optional[int] = field(default=None, init=False, repr=False)
    _population_by_zip: Optional[Dict[str, int]] = field(default=None, init=False, repr=False)
    _properties_by_zip: Optional[Dict[str, List[PropertyRecord]]] = field(default=None, init=False, repr=False)
    _counts: Dict[Tuple[str, str], Dict[str, int]] = field(default_factory=dict, init=False, repr=False)
    _per_capita: Dict[Tuple[str, str], Dict[str, float]] = field(default_factory=dict, init=False, repr=False)
    _averages: Dict[Tuple[PropertyMetric, str], int] = field(default_factory=dict, init=False, repr=False)
    _value_per_capita: Dict[str, int] = field(default_factory=dict, init=False, repr=False)
    _health_risk: Dict[str, Dict[str, float]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.vaccinations = tuple(self.vaccinations or ())
        self.populations = tuple(self.populations or ())
        self.properties = tuple(self.properties or ())

    # ---------------- Availability ----------------
    def has_vaccination_data(self) -> bool:
        return bool(self.vaccinations)

    def has_population_data(self) -> bool:
        return bool(self.populations)

    def has_property_data(self) -> bool:
        return bool(self.properties)

    def clear_caches(self) -> None:
        """Forget every memoized answer."""
        self._total_population = None
        self._population_by_zip = None
        self._properties_by_zip = None
        for memo in (self._counts, self._per_capita, self._averages,
                     self._value_per_capita, self._health_risk):
            memo.clear()

    # ---------------- Lookup tables (ZIP joins) ----------------
    def _population_table(self) -> Dict[str, int]:
        if self._population_by_zip is None:
            self._population_by_zip = {p.zip_code: p.population for p in self.populations}
        return self._population_by_zip

    def population_by_zip(self) -> Dict[str, int]:
        """ZIP -> population (a copy). A ZIP listed twice keeps its last value."""
        return dict(self._population_table())

    def properties_in(self, zip_code: str) -> List[PropertyRecord]:
        if self._properties_by_zip is None:
            by_zip: Dict[str, List[PropertyRecord]] = {}
            for p in self.properties:
                by_zip.setdefault(p.zip_code, []).append(p)
            self._properties_by_zip = by_zip
        return self._properties_by_zip.get(zip_code, [])

    def known_zips(self) -> List[str]:
        """Sorted ZIPs that appear in population or property data."""
        zips = set(self._population_table())
        zips.update(p.zip_code for p in self.properties)
        return sorted(zips)

    # ---------------- Population ----------------
    def total_population(self) -> int:
        if self._total_population is None:
            self._total_population = sum(p.population for p in self.populations)
        return self._total_population

    # ---------------- Vaccination ----------------
    def vaccination_counts(self, kind: str, date: str) -> Dict[str, int]:
        """ZIP -> summed `partial` or `full` counts for records on `date` (YYYY-MM-DD).

        Records with a count of zero or less contribute nothing, so a ZIP
        only appears when it has at least one positive count.
        """
        key = (_kind(kind), date)
        if key not in self._counts:
            use_full = key[0] == "full"
            counts: Dict[str, int] = {}
            for r in self.vaccinations:
                if r.date != date:
                    continue
                n = r.fully_vaccinated if use_full else r.partially_vaccinated
                if n <= 0:
                    continue
                counts[r.zip_code] = counts.get(r.zip_code, 0) + n
            self._counts[key] = counts
        return dict(self._counts[key])

    def vaccination_per_capita(self, kind: str, date: str) -> Dict[str, float]:
        """ZIP -> vaccinated / population, rounded to 4 decimals.

        ZIPs with no vaccinations or no population are left out.
        """
        key = (_kind(kind), date)
        if key not in self._per_capita:
            pops = self._population_table()
            result: Dict[str, float] = {}
            for zip_code, vaccinated in sorted(self.vaccination_counts(*key).items()):
                population = pops.get(zip_code, 0)
                if vaccinated == 0 or population == 0:
                    continue
                result[zip_code] = round4(vaccinated / population)
            self._per_capita[key] = result
        return dict(self._per_capita[key])

    # ---------------- Property ----------------
    def average_by(self, zip_code: str, metric: Union[PropertyMetric, str]) -> int:
        """Truncated mean of `metric` over the properties in `zip_code` (0 if none).

        `metric` may also be a name such as "market_value" or "area".
        """
        if not isinstance(metric, PropertyMetric):
            metric = PropertyMetric.parse(metric)
        key = (metric, zip_code)
        if key not in self._averages:
            self._averages[key] = average_of(self.properties_in(zip_code), extractor(metric))
        return self._averages[key]

    def average_market_value(self, zip_code: str) -> int:
        return self.average_by(zip_code, PropertyMetric.MARKET_VALUE)

    def average_livable_area(self, zip_code: str) -> int:
        return self.average_by(zip_code, PropertyMetric.LIVABLE_AREA)

    def total_livable_area(self, zip_code: str) -> int:
        return sum(p.total_livable_area for p in self.properties_in(zip_code)
                   if p.total_livable_area is not None)

    def market_value_per_capita(self, zip_code: str) -> int:
        """Total market value in `zip_code` divided by its population, truncated.

        0 when the ZIP has no population or no properties.
        """
        if zip_code not in self._value_per_capita:
            population = self._population_table().get(zip_code, 0)
            props = self.properties_in(zip_code)
            if population == 0 or not props:
                value = 0
            else:
                total = sum(p.market_value for p in props if p.market_value is not None)
                value = trunc_div(total, population)
            self._value_per_capita[zip_code] = value
        return self._value_per_capita[zip_code]

    # ---------------- Composite ----------------
    def health_risk_index(self, date: str) -> Dict[str, float]:
        """ZIP -> ((1 - full rate) * population) / total livable area.

        Every ZIP from the population data is considered. ZIPs with zero
        population or zero livable area are left out, except that when
        nobody is fully vaccinated on `date` at all, every ZIP reports 0.0.
        """
        if date not in self._health_risk:
            pops = self._population_table()
            vaccinated = self.vaccination_counts("full", date)
            result: Dict[str, float] = {}
            if not vaccinated:
                result = {z: 0.0 for z in sorted(pops)}
            else:
                for zip_code in sorted(pops):
                    population = pops[zip_code]
                    area = self.total_livable_area(zip_code)
                    if population == 0 or area == 0:
                        continue
                    rate = vaccinated.get(zip_code, 0) / population
                    result[zip_code] = round4(((1.0 - rate) * population) / area)
            self._health_risk[date] = result
        return dict(self._health_risk[date])

    # ---------------- Summaries (used by export/report) ----------------
    def zip_profile(self, zip_code: str) -> Dict[str, object]:
        """Population and property statistics for one ZIP."""
        return {
            "zip_code": zip_code,
            "population": self._population_table().get(zip_code, 0),
            "properties": len(self.properties_in(zip_code)),
            "average_market_value": self.average_market_value(zip_code),
            "average_livable_area": self.average_livable_area(zip_code),
            "market_value_per_capita": self.market_value_per_capita(zip_code),
        }


def _kind(kind: str) -> str:
    k = kind.lower().strip()
    if k not in VACCINATION_KINDS:
        raise ValueError("vaccination kind must be 'partial' or 'full'")
    return k
