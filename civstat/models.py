"""
Data model (records)
====================

Each dataset row that survives validation becomes one record. Records are
immutable (`frozen=True`) so that:
- nothing can edit the data after loading, and
- the engine's caches stay valid for its whole lifetime.

All three record kinds share `zip_code`, the only join key between datasets.
"""

from dataclasses import dataclass
from typing import Optional
import re

from .errors import RowValidationError

ZIP_RE = re.compile(r"\d{5}", re.ASCII)
TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", re.ASCII)


def is_valid_zip(value: str) -> bool:
    """True for exactly five ASCII digits."""
    return isinstance(value, str) and ZIP_RE.fullmatch(value) is not None


def is_valid_timestamp(value: str) -> bool:
    """True for the `YYYY-MM-DD HH:MM:SS` shape (no calendar check)."""
    return isinstance(value, str) and TIMESTAMP_RE.fullmatch(value) is not None


def _check_zip(zip_code: str) -> None:
    if not is_valid_zip(zip_code):
        raise RowValidationError(f"Invalid ZIP code: {zip_code!r}", {"zip_code": zip_code})


@dataclass(frozen=True)
class VaccinationRecord:
    """Vaccination counts reported for one ZIP at one ETL timestamp."""
    zip_code: str
    etl_timestamp: str
    partially_vaccinated: int = 0
    fully_vaccinated: int = 0

    def __post_init__(self) -> None:
        _check_zip(self.zip_code)
        if not is_valid_timestamp(self.etl_timestamp):
            raise RowValidationError(
                f"Invalid timestamp: {self.etl_timestamp!r}",
                {"etl_timestamp": self.etl_timestamp},
            )
        if self.partially_vaccinated < 0 or self.fully_vaccinated < 0:
            raise RowValidationError("Vaccination counts must not be negative")

    @property
    def date(self) -> str:
        """The `YYYY-MM-DD` part of the timestamp."""
        return self.etl_timestamp[:10]


@dataclass(frozen=True)
class PopulationRecord:
    zip_code: str
    population: int

    def __post_init__(self) -> None:
        _check_zip(self.zip_code)


@dataclass(frozen=True)
class PropertyRecord:
    """One assessed property.

    `None` means the value was absent in the source, which is not the same
    as a recorded zero.
    """
    zip_code: str
    market_value: Optional[int] = None
    total_livable_area: Optional[int] = None

    def __post_init__(self) -> None:
        _check_zip(self.zip_code)
