"""
civstat Command Line Interface (CLI)
====================================

This file provides the interactive terminal program you run like:

    python -m civstat --covid=covid.csv --population=pop.csv --properties=props.csv --log=events.log

It demonstrates:
- Argument parsing (argparse, `--name=value` only, no repeats)
- Loading whichever datasets were given (any subset works)
- A numbered menu loop mapping choices to engine queries

Every answer is printed between `BEGIN OUTPUT` and `END OUTPUT` lines so the
output is easy to pick out of a transcript.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, TextIO, Tuple
import argparse
import logging
import os
import re
import sys

from .engine import Analytics
from .errors import CivstatError
from .loader import PopulationReader, PropertyReader, VaccinationCsvReader, VaccinationJsonReader
from .logging_config import close_logging, setup_logging
from .report import EXPORT_FORMATS, ReportConfig, export_table, generate_docx_report

MENU = """0. Exit the program.
1. Show the available actions.
2. Show the total population for all ZIP Codes.
3. Show the total vaccinations per capita for each ZIP Code for the specified date.
4. Show the average market value for properties in a specified ZIP Code.
5. Show the average total livable area for properties in a specified ZIP Code.
6. Show the total market value of properties, per capita, for a specified ZIP Code.
7. Show the health risk index for each ZIP Code for the specified date.
8. Export the last result to a file (.csv, .json or .xlsx).
9. Write a DOCX report of the loaded data."""

_ARG_RE = re.compile(r"^--(?P<name>.+?)=(?P<value>.+)$")
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
_ZIP_RE = re.compile(r"\d{5}", re.ASCII)

Rows = List[Dict[str, object]]


class UsageError(CivstatError):
    """Bad command line."""
    pass


# -----------------------------
# Configuration (command line)
# -----------------------------

@dataclass(frozen=True)
class SessionConfig:
    covid: Optional[str] = None
    population: Optional[str] = None
    properties: Optional[str] = None
    log: Optional[str] = None

    def source_files(self) -> Dict[str, str]:
        return {k: os.path.basename(v) for k, v in
                (("covid", self.covid), ("population", self.population), ("properties", self.properties))
                if v}


class _ArgParser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(message)


class _StoreOnce(argparse.Action):
    """Store a value, rejecting a second occurrence of the same flag."""

    def __call__(self, parser, namespace, values, option_string=None):
        if getattr(namespace, self.dest) is not None:
            raise UsageError(f"Duplicate argument {option_string}")
        setattr(namespace, self.dest, values)


def parse_args(argv: Sequence[str]) -> SessionConfig:
    """Parse `--name=value` arguments into a SessionConfig.

    Raises:
        UsageError: malformed, unknown or repeated argument.
    """
    for arg in argv:
        if not _ARG_RE.match(arg):
            raise UsageError(f"Invalid argument format '{arg}'. Expected format: --name=value")

    ap = _ArgParser(prog="civstat", allow_abbrev=False, add_help=False)
    ap.add_argument("--covid", action=_StoreOnce, help="Vaccination data (.csv or .json)")
    ap.add_argument("--population", action=_StoreOnce, help="Population data (.csv)")
    ap.add_argument("--properties", action=_StoreOnce, help="Property data (.csv)")
    ap.add_argument("--log", action=_StoreOnce, help="Append session events to this file (default: stderr)")
    args = ap.parse_args(list(argv))
    return SessionConfig(covid=args.covid, population=args.population,
                         properties=args.properties, log=args.log)


def check_readable(path: str) -> None:
    if not os.path.isfile(path):
        raise OSError(f"File does not exist: {path}")
    if not os.access(path, os.R_OK):
        raise OSError(f"File not readable: {path}")


def build_readers(config: SessionConfig, logger: logging.Logger) -> Dict[str, object]:
    """Pick a reader per given dataset. Files are checked, not read, here.

    Raises:
        UsageError: a file is missing, unreadable or has an unknown format.
    """
    readers: Dict[str, object] = {}
    for key, label, path in (("covid", "COVID", config.covid),
                             ("population", "population", config.population),
                             ("properties", "property", config.properties)):
        if path is None:
            continue
        try:
            check_readable(path)
        except OSError as e:
            raise UsageError(f"Error opening {label} file: {e}") from e
        if key == "covid":
            ext = os.path.splitext(path)[1].lower()
            if ext == ".csv":
                readers[key] = VaccinationCsvReader(path)
            elif ext == ".json":
                readers[key] = VaccinationJsonReader(path)
            else:
                raise UsageError("Error: Unknown COVID file format.")
        elif key == "population":
            readers[key] = PopulationReader(path)
        else:
            readers[key] = PropertyReader(path)
        logger.info(path)
    return readers


def load_engine(readers: Dict[str, object], logger: logging.Logger, err: Optional[TextIO] = None) -> Analytics:
    """Load every reader and build the engine. Failed files load as empty."""
    err = err or sys.stderr
    loaded: Dict[str, list] = {}
    for key, reader in readers.items():
        loaded[key] = reader.load_all()
        if reader.error is not None:
            logger.error(f"Error reading {reader.kind} file {reader.path}: {reader.error}")
            print(f"Error reading {reader.kind} file: {reader.error}", file=err)
    return Analytics(
        vaccinations=loaded.get("covid", ()),
        populations=loaded.get("population", ()),
        properties=loaded.get("properties", ()),
    )


# -----------------------------
# Interactive menu
# -----------------------------

class Shell:
    """Numbered-menu loop over an Analytics engine."""

    def __init__(self, engine: Analytics, logger: logging.Logger, *,
                 input_fn: Optional[Callable[[], str]] = None, out: Optional[TextIO] = None,
                 report_config: Optional[ReportConfig] = None) -> None:
        self.engine = engine
        self.logger = logger
        self.input_fn = input_fn or input
        self.out = out or sys.stdout
        self.report_config = report_config or ReportConfig()
        # (label, rows) of the last answer, for export
        self.last_result: Optional[Tuple[str, Rows]] = None
        self._actions: Dict[int, Callable[[], None]] = {
            1: self.show_available_actions,
            2: self.show_total_population,
            3: self.show_vaccinations_per_capita,
            4: self.show_average_market_value,
            5: self.show_average_livable_area,
            6: self.show_market_value_per_capita,
            7: self.show_health_risk_index,
            8: self.export_last_result,
            9: self.write_report,
        }

    def run(self) -> None:
        """Loop until the user picks 0 or input ends."""
        self.print_menu()
        while True:
            try:
                choice = self._ask("> ")
            except EOFError:
                return
            if not re.fullmatch(r"[0-9]", choice):
                self._print("Invalid input. Please enter a number between 0 and 9.")
                continue
            n = int(choice)
            if n == 0:
                return
            try:
                self._actions[n]()
            except EOFError:
                return
            self.print_menu()

    def print_menu(self) -> None:
        self._print(MENU)

    # ---------------- Actions ----------------
    def show_available_actions(self) -> None:
        e = self.engine
        pop, prop, vac = e.has_population_data(), e.has_property_data(), e.has_vaccination_data()
        lines = ["0", "1"]
        if pop:
            lines.append("2")
        if vac and pop:
            lines.append("3")
        if prop:
            lines += ["4", "5"]
        if prop and pop:
            lines.append("6")
        if prop and pop and vac:
            lines.append("7")
        if self.last_result is not None:
            lines.append("8")
        if pop or prop or vac:
            lines.append("9")
        self._output(lines)

    def show_total_population(self) -> None:
        if not self.engine.has_population_data():
            self._output(["Population data not available."])
            return
        total = self.engine.total_population()
        self.last_result = ("total_population", [{"metric": "total_population", "value": total}])
        self._output([str(total)])

    def show_vaccinations_per_capita(self) -> None:
        if not self.engine.has_vaccination_data() or not self.engine.has_population_data():
            self._output(["Vaccination or population data not available."])
            return
        while True:
            self._print("Enter 'partial' or 'full':")
            kind = self._ask("> ").lower()
            self.logger.info(kind)
            if kind in ("partial", "full"):
                break
            self._print("Invalid input.")
        date = self._prompt_date()
        result = self.engine.vaccination_per_capita(kind, date)
        self._remember_mapping(f"{kind}_vaccination_per_capita", result)
        self._output([f"{z} {v:.4f}" for z, v in result.items()] or ["0"])

    def show_average_market_value(self) -> None:
        if not self.engine.has_property_data():
            self._output(["Property data not available."])
            return
        zip_code = self._prompt_zip()
        self._answer_for_zip("average_market_value", zip_code, self.engine.average_market_value(zip_code))

    def show_average_livable_area(self) -> None:
        if not self.engine.has_property_data():
            self._output(["Property data not available."])
            return
        zip_code = self._prompt_zip()
        self._answer_for_zip("average_livable_area", zip_code, self.engine.average_livable_area(zip_code))

    def show_market_value_per_capita(self) -> None:
        if not self.engine.has_population_data() or not self.engine.has_property_data():
            self._output(["Required data not available."])
            return
        zip_code = self._prompt_zip()
        self._answer_for_zip("market_value_per_capita", zip_code, self.engine.market_value_per_capita(zip_code))

    def show_health_risk_index(self) -> None:
        e = self.engine
        if not e.has_population_data() or not e.has_property_data() or not e.has_vaccination_data():
            self._output(["Required data not available."])
            return
        date = self._prompt_date()
        result = e.health_risk_index(date)
        self._remember_mapping("health_risk_index", result)
        self._output([f"{z} {v:.4f}" for z, v in result.items()])

    def export_last_result(self) -> None:
        if self.last_result is None:
            self._output(["No result to export."])
            return
        path = self._prompt_path("Enter output file name (.csv, .json or .xlsx):", EXPORT_FORMATS)
        label, rows = self.last_result
        try:
            export_table(rows, path)
        except (OSError, ValueError, ImportError) as ex:
            self.logger.error(f"Export to {path} failed: {ex}")
            self._output([f"Error: {ex}"])
            return
        self._output([f"Exported {label} to {path}"])

    def write_report(self) -> None:
        e = self.engine
        if not (e.has_population_data() or e.has_property_data() or e.has_vaccination_data()):
            self._output(["No data loaded."])
            return
        path = self._prompt_path("Enter report file name (.docx):", (".docx",))
        date = self._prompt_date() if e.has_vaccination_data() else None
        try:
            generate_docx_report(e, path, config=self.report_config, date=date)
        except (OSError, ValueError, ImportError) as ex:
            self.logger.error(f"Report to {path} failed: {ex}")
            self._output([f"Error: {ex}"])
            return
        self._output([f"Report written to {path}"])

    # ---------------- Prompts ----------------
    def _prompt_date(self) -> str:
        while True:
            self._print("Enter date in format YYYY-MM-DD:")
            date = self._ask("> ")
            self.logger.info(date)
            if _DATE_RE.fullmatch(date):
                return date
            self._print("Invalid date format.")

    def _prompt_zip(self) -> str:
        while True:
            self._print("Enter a 5-digit ZIP Code:")
            zip_code = self._ask("> ")
            self.logger.info(zip_code)
            if _ZIP_RE.fullmatch(zip_code):
                return zip_code
            self._print("Invalid ZIP Code.")

    def _prompt_path(self, message: str, extensions: Sequence[str]) -> str:
        while True:
            self._print(message)
            path = self._ask("> ")
            self.logger.info(path)
            if os.path.splitext(path)[1].lower() in extensions:
                return path
            self._print("Invalid file name.")

    # ---------------- Helpers ----------------
    def _ask(self, prompt: str) -> str:
        self._print(prompt, end="")
        self.out.flush()
        return self.input_fn().strip()

    def _print(self, *args, end: str = "\n") -> None:
        print(*args, end=end, file=self.out)

    def _output(self, lines: Sequence[str]) -> None:
        self._print()
        self._print("BEGIN OUTPUT")
        for line in lines:
            self._print(line)
        self._print("END OUTPUT")

    def _remember_mapping(self, label: str, result: Dict[str, float]) -> None:
        self.last_result = (label, [{"zip_code": z, "value": v} for z, v in result.items()])

    def _answer_for_zip(self, label: str, zip_code: str, value: int) -> None:
        self.last_result = (label, [{"zip_code": zip_code, "value": value}])
        self._output([str(value)])


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the civstat CLI.

    1) Parse arguments and start the session log
    2) Load the given datasets
    3) Start the interactive menu
    """
    argv = sys.argv[1:] if argv is None else list(argv)
    try:
        config = parse_args(argv)
    except UsageError as e:
        print(f"Error: {e}")
        return 1

    try:
        logger = setup_logging(config.log)
    except OSError:
        print(f"Error: Unable to open log file '{config.log}' for writing.")
        print("Error: Failed to initialize logger.")
        return 1

    try:
        if argv:
            logger.info(" ".join(argv))
        try:
            readers = build_readers(config, logger)
        except UsageError as e:
            print(e)
            return 1
        engine = load_engine(readers, logger)
        shell = Shell(engine, logger, report_config=ReportConfig(source_files=config.source_files()))
        shell.run()
    finally:
        close_logging(logger)
    return 0


if __name__ == "__main__":
    sys.exit(main())
