r"""podpredict/app/services/fetchers.py

Sources of daily metrics.

Every fetcher returns an ordered batch of validated ``DailyRecord`` values or
raises ``FetchError``. Tabular sources share one row policy
(:func:`parse_rows`): columns are Date, GMV, Users, Marketing Cost, FE Pods,
BE Pods; dates are ``dd/mm/yyyy``; numbers may carry thousands separators.
Bad rows are logged and skipped rather than failing the whole batch.
"""

from __future__ import annotations

import io
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Protocol, Sequence

import pandas as pd
import requests

from ..core.exceptions import FetchError, RecordValidationError
from ..models.daily import DailyRecord
from .io_utils import load_table

LOGGER = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"
REQUIRED_CELLS = 4
SHEET_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export"


class Fetcher(Protocol):
    def fetch(self) -> List[DailyRecord]:
        ...


# ---------------------------------------------------------------------------
# Cell parsing


def _cell(row: Sequence[Any], index: int) -> str:
    if index >= len(row):
        return ""
    value = row[index]
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip()


def parse_float(text: str) -> float:
    """Parse a number that may contain thousands commas ("1,234.5")."""

    return float(text.replace(",", ""))


def parse_int(text: str) -> int:
    clean = text.replace(",", "")
    try:
        return int(clean)
    except ValueError:
        # Parquet round-trips integer columns as "12.0"
        number = float(clean)
        if not number.is_integer():
            raise ValueError(f"not an integer: {text!r}") from None
        return int(number)


def parse_date(text: str) -> date:
    return datetime.strptime(text, DATE_FORMAT).date()


def _optional_pods(text: str, label: str, row_num: int) -> Optional[int]:
    if not text:
        return None
    try:
        return parse_int(text)
    except ValueError as exc:
        LOGGER.warning("row %d: failed to parse %s: %s", row_num, label, exc)
        return None


def parse_row(row: Sequence[Any], row_num: int) -> DailyRecord:
    """Convert one sheet row into a ``DailyRecord``.

    Raises ``ValueError`` (including ``RecordValidationError``) when a required
    cell is missing or invalid. Unparseable pod cells are treated as absent.
    """

    if len(row) < REQUIRED_CELLS:
        raise ValueError(f"row {row_num}: not enough columns")
    cells = [_cell(row, idx) for idx in range(REQUIRED_CELLS)]
    if not all(cells):
        raise ValueError(f"row {row_num}: missing required value")

    try:
        day = parse_date(cells[0])
    except ValueError as exc:
        raise ValueError(f"row {row_num}: failed to parse date: {exc}") from exc
    try:
        gmv = parse_float(cells[1])
    except ValueError as exc:
        raise ValueError(f"row {row_num}: failed to parse GMV: {exc}") from exc
    try:
        users = parse_int(cells[2])
    except ValueError as exc:
        raise ValueError(f"row {row_num}: failed to parse Users: {exc}") from exc
    try:
        marketing_cost = parse_float(cells[3])
    except ValueError as exc:
        raise ValueError(f"row {row_num}: failed to parse Marketing Cost: {exc}") from exc

    fe_pods = _optional_pods(_cell(row, 4), "FE Pods", row_num)
    be_pods = _optional_pods(_cell(row, 5), "BE Pods", row_num)

    try:
        return DailyRecord(
            date=day,
            gmv=gmv,
            users=users,
            marketing_cost=marketing_cost,
            fe_pods=fe_pods,
            be_pods=be_pods,
        )
    except RecordValidationError as exc:
        raise ValueError(f"row {row_num}: failed to create daily record: {exc}") from exc


def parse_rows(frame: pd.DataFrame) -> List[DailyRecord]:
    """Parse every data row of ``frame`` (header already consumed by pandas)."""

    results: List[DailyRecord] = []
    for offset, row in enumerate(frame.itertuples(index=False, name=None)):
        # sheet row numbers are 1-based and the header occupies row 1
        row_num = offset + 2
        try:
            results.append(parse_row(row, row_num))
        except ValueError as exc:
            LOGGER.warning("Skipping row: %s", exc)
    return results


# ---------------------------------------------------------------------------
# Fetchers


class StaticFetcher:
    """Serve a fixed batch of records, e.g. seed data or test fixtures."""

    def __init__(self, records: Iterable[DailyRecord]) -> None:
        self._records = tuple(records)

    def fetch(self) -> List[DailyRecord]:
        return list(self._records)


class TableFetcher:
    """Read daily metrics from a CSV file (or its ``.parquet`` sibling)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def fetch(self) -> List[DailyRecord]:
        try:
            frame = load_table(self.path)
        except (OSError, ValueError) as exc:
            raise FetchError("failed to read metrics table", details=f"{self.path}: {exc}") from exc

        records = parse_rows(frame)
        LOGGER.info("Fetched %d daily records from %s (%d rows read)", len(records), self.path, len(frame))
        return records


class SheetExportFetcher:
    """Download the CSV export of a shared spreadsheet and parse it.

    Only sheets readable through their export link are supported; no
    credentials are sent.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        gid: int = 0,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not spreadsheet_id:
            raise ValueError("spreadsheet_id is required")
        self.spreadsheet_id = spreadsheet_id
        self.gid = int(gid)
        self.timeout = float(timeout)
        self.session = session or requests.Session()

    @property
    def url(self) -> str:
        return SHEET_EXPORT_URL.format(spreadsheet_id=self.spreadsheet_id)

    def fetch(self) -> List[DailyRecord]:
        try:
            response = self.session.get(
                self.url,
                params={"format": "csv", "gid": self.gid},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError("failed to fetch sheet data", details=str(exc)) from exc

        try:
            frame = pd.read_csv(
                io.StringIO(response.text),
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
            )
        except ValueError as exc:
            raise FetchError("sheet export is not valid CSV", details=str(exc)) from exc

        records = parse_rows(frame)
        LOGGER.info(
            "Fetched %d daily records from spreadsheet %s (%d rows read)",
            len(records),
            self.spreadsheet_id,
            len(frame),
        )
        return records


def build_fetcher(settings: Any) -> Fetcher:
    """Return the fetcher selected by ``settings.data_source``."""

    source = (settings.data_source or "table").strip().lower()
    if source == "table":
        return TableFetcher(settings.data_path)
    if source == "sheets":
        if not settings.spreadsheet_id:
            raise ValueError("PODPREDICT_SPREADSHEET_ID is required when data_source is 'sheets'")
        return SheetExportFetcher(settings.spreadsheet_id, gid=settings.sheet_gid)
    raise ValueError(f"unknown data source {settings.data_source!r}; expected 'table' or 'sheets'")
