"""
Dataset loaders (file -> record list)
=====================================

One reader per dataset kind. Each reader turns one file into a list of
immutable records.

Key ideas:
- Tabular files go through `RowReader` (quoted CSV grammar), never through
  line splitting.
- The header row is mapped case-insensitively to column positions, so column
  order in the file does not matter.
- A *structural* problem (unreadable file, missing header column, broken
  quoting) aborts the whole file: `load_all()` returns [] and keeps the error
  on `reader.error` for the caller to report.
- A *row* problem (bad ZIP, bad timestamp, bad required number) drops just
  that row, silently.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Tuple
import json
import math
import numbers
import os
import re

import pandas as pd

from .errors import MissingColumnsError, RowValidationError, StructuralError
from .models import PopulationRecord, PropertyRecord, VaccinationRecord
from .tokenizer import RowReader, iter_chars

_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)


def _parse_int(s: str) -> Optional[int]:
    """Strict integer text (optional sign, ASCII digits). None if invalid."""
    s = s.strip()
    if not _INT_RE.fullmatch(s):
        return None
    return int(s)


def _count_or_zero(s: str) -> int:
    """Vaccination counts: anything unusable (blank, junk, negative) is 0."""
    v = _parse_int(s)
    if v is None or v < 0:
        return 0
    return v


def _parse_truncated(s: str) -> Optional[int]:
    """Decimal text truncated toward zero. None if blank, invalid or not finite."""
    s = s.strip()
    if not s:
        return None
    try:
        f = float(s)
    except ValueError:
        return None
    if not math.isfinite(f):
        return None
    return int(f)


def header_map(header: Sequence[str]) -> Dict[str, int]:
    """Map trimmed, lower-cased column names to positions (last one wins)."""
    return {name.strip().lower(): i for i, name in enumerate(header)}


def _cell(row: Sequence[str], cols: Dict[str, int], name: str) -> str:
    """Trimmed cell text, or "" when the column is absent or past the row end."""
    i = cols.get(name)
    if i is None or i >= len(row):
        return ""
    return row[i].strip()


def _unreadable(path: str, e: Exception) -> StructuralError:
    err = StructuralError(f"Cannot read {path}: {e}", {"path": str(path)})
    err.__cause__ = e
    return err


class TabularReader:
    """Shared header/row handling for the CSV datasets.

    Subclasses set `kind`, `required`, `optional` and implement `_record`.
    """
    kind = "CSV"
    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()

    def __init__(self, path: str) -> None:
        self.path = path
        self.error: Optional[StructuralError] = None

    def load_all(self) -> List[Any]:
        """Read the whole file. Never raises; see `self.error` on failure."""
        self.error = None
        try:
            with open(self.path, "r", encoding="utf-8-sig", newline="") as fh:
                return self.parse(RowReader(iter_chars(fh)))
        except StructuralError as e:
            self.error = e
        except (OSError, UnicodeDecodeError) as e:
            self.error = _unreadable(self.path, e)
        return []

    def parse(self, reader: RowReader) -> List[Any]:
        """Turn tokenized rows into records.

        Raises:
            StructuralError: no header, missing columns, or a tokenizer error.
        """
        header = reader.read_row()
        if header is None:
            raise StructuralError(f"{self.kind} file is empty or missing header.")

        cols = header_map(header)
        missing = [c for c in self.required if c not in cols]
        if missing:
            raise MissingColumnsError(missing)

        # A row must reach the right-most required column
        min_len = max(cols[c] for c in self.required) + 1

        records: List[Any] = []
        for row in reader:
            if len(row) < min_len:
                continue
            try:
                records.append(self._record(row, cols))
            except RowValidationError:
                continue
        return records

    def _record(self, row: Sequence[str], cols: Dict[str, int]) -> Any:
        raise NotImplementedError


class VaccinationCsvReader(TabularReader):
    kind = "COVID"
    required = ("zip_code", "etl_timestamp")
    optional = ("partially_vaccinated", "fully_vaccinated")

    def _record(self, row: Sequence[str], cols: Dict[str, int]) -> VaccinationRecord:
        # Optional columns are named after the count fields they fill
        counts = {name: _count_or_zero(_cell(row, cols, name)) for name in self.optional}
        return VaccinationRecord(
            zip_code=_cell(row, cols, "zip_code"),
            etl_timestamp=_cell(row, cols, "etl_timestamp"),
            **counts,
        )


class PopulationReader(TabularReader):
    kind = "population"
    required = ("zip_code", "population")

    def _record(self, row: Sequence[str], cols: Dict[str, int]) -> PopulationRecord:
        population = _parse_int(_cell(row, cols, "population"))
        if population is None:
            raise RowValidationError("Population is not an integer")
        return PopulationRecord(zip_code=_cell(row, cols, "zip_code"), population=population)


class PropertyReader(TabularReader):
    kind = "property"
    required = ("zip_code", "market_value", "total_livable_area")

    def _record(self, row: Sequence[str], cols: Dict[str, int]) -> PropertyRecord:
        # Only the first five characters matter ("19103-1234" -> "19103")
        zip_code = _cell(row, cols, "zip_code")[:5]
        return PropertyRecord(
            zip_code=zip_code,
            market_value=_parse_truncated(_cell(row, cols, "market_value")),
            total_livable_area=_parse_truncated(_cell(row, cols, "total_livable_area")),
        )


# ---------------- JSON vaccination data ----------------

def _is_missing(x: Any) -> bool:
    return x is None or (pd.api.types.is_scalar(x) and pd.isna(x))


def _zip_text(x: Any) -> str:
    """ZIPs may arrive as JSON numbers (19103 or 19103.0)."""
    if isinstance(x, float) and x.is_integer():
        return str(int(x))
    return str(x)


def _json_count(x: Any) -> int:
    if _is_missing(x):
        return 0
    if isinstance(x, bool):
        raise RowValidationError("Vaccination count is not an integer")
    if isinstance(x, numbers.Integral):
        v = int(x)
    elif isinstance(x, float) and x.is_integer():
        v = int(x)
    else:
        raise RowValidationError("Vaccination count is not an integer")
    return v if v > 0 else 0


class VaccinationJsonReader:
    """Vaccination data as a JSON array of objects with the CSV field names."""
    kind = "COVID"

    def __init__(self, path: str) -> None:
        self.path = path
        self.error: Optional[StructuralError] = None

    def load_all(self) -> List[VaccinationRecord]:
        """Read the whole file. Never raises; see `self.error` on failure."""
        self.error = None
        try:
            return self.parse(self._read_objects())
        except StructuralError as e:
            self.error = e
        return []

    def _read_objects(self) -> List[Dict[str, Any]]:
        try:
            with open(self.path, "r", encoding="utf-8-sig") as fh:
                text = fh.read()
        except (OSError, UnicodeDecodeError) as e:
            raise _unreadable(self.path, e) from e
        return read_records(text, source=os.fspath(self.path))

    def parse(self, objects: Sequence[Dict[str, Any]]) -> List[VaccinationRecord]:
        records: List[VaccinationRecord] = []
        for obj in objects:
            try:
                records.append(self._record(obj))
            except RowValidationError:
                continue
        return records

    def _record(self, obj: Dict[str, Any]) -> VaccinationRecord:
        ts = obj.get("etl_timestamp")
        if not isinstance(ts, str):
            raise RowValidationError("Missing etl_timestamp")
        return VaccinationRecord(
            zip_code=_zip_text(obj.get("zip_code")),
            etl_timestamp=ts,
            partially_vaccinated=_json_count(obj.get("partially_vaccinated")),
            fully_vaccinated=_json_count(obj.get("fully_vaccinated")),
        )


def read_records(text: str, source: str = "<string>") -> List[Dict[str, Any]]:
    """Parse a JSON array and keep only its object elements.

    Anything else in the array (numbers, strings, null, nested arrays) is
    skipped like an invalid row.

    Raises:
        StructuralError: the text does not parse or is not a JSON array.
    """
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise StructuralError(f"{source}: invalid JSON: {e}", {"path": source}) from e
    if not isinstance(doc, list):
        raise StructuralError(f"{source}: JSON document must be an array of objects", {"path": source})
    return [obj for obj in doc if isinstance(obj, dict)]
