"""Distributor revenue report parsing.

Reports arrive as .csv or .tsv exports. Column names vary between
distributors, so columns are located by alias: an exact header match or
a header that contains the alias. Sale month, store and earnings are
required; everything else is optional.

Rows that can't be parsed are reported back as errors and skipped; the
rest of the report still imports.
"""

import csv
import io
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

REQUIRED_COLUMNS = ("sale month", "store", "earnings (usd)")

# field name -> header alias
_OPTIONAL_COLUMNS = {
    "reporting_month": "reporting date",
    "artist_name": "artist",
    "title": "title",
    "quantity": "quantity",
    "song_album": "song/album",
    "country_of_sale": "country of sale",
}
_EXACT_COLUMNS = {"isrc": "isrc", "upc": "upc"}


class ReportFormatError(ValueError):
    """The file as a whole can't be imported."""


@dataclass
class ParsedReport:
    rows: list[dict] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total_earnings(self) -> float:
        return round(sum(r["amount_usd"] for r in self.rows), 2)


def _find_column(headers: list[str], alias: str) -> int:
    for i, h in enumerate(headers):
        if h == alias or alias in h:
            return i
    return -1


def parse_month(value: str) -> datetime:
    """'2024-03', '2024-03-15', '03/2024' or '2024' → first day of that month (UTC)."""
    value = value.strip()
    if "-" in value:
        text = value[:7] + "-01"
    elif "/" in value:
        month, year = value.split("/", 1)
        text = f"{year.strip()}-{month.strip().zfill(2)}-01"
    else:
        text = value + "-01-01" if len(value) == 4 else value + "-01"
    return datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=timezone.utc)


def _optional(row: list[str], index: int) -> Optional[str]:
    if index == -1 or index >= len(row):
        return None
    return row[index] or None


def parse_report(filename: str, content: str) -> ParsedReport:
    lower = filename.lower()
    if lower.endswith(".tsv"):
        delimiter = "\t"
    elif lower.endswith(".csv"):
        delimiter = ","
    else:
        raise ReportFormatError("File must be a .tsv or .csv file")

    lines = [line for line in content.splitlines() if line.strip()]
    if len(lines) < 2:
        raise ReportFormatError("File must contain at least a header and one data row")

    reader = csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter)
    table = [[cell.strip() for cell in row] for row in reader]
    headers = [h.lower() for h in table[0]]

    required = {alias: _find_column(headers, alias) for alias in REQUIRED_COLUMNS}
    missing = [alias for alias, idx in required.items() if idx == -1]
    if missing:
        raise ReportFormatError(
            "Required columns not found. Need at least: Sale Month, Store, "
            "and Earnings (USD)"
        )
    optional = {name: _find_column(headers, alias) for name, alias in _OPTIONAL_COLUMNS.items()}
    optional.update(
        {name: headers.index(alias) if alias in headers else -1
         for name, alias in _EXACT_COLUMNS.items()}
    )

    report = ParsedReport()
    # The first reporting date in the file applies to every row.
    reporting_month: Optional[datetime] = None

    for line_no, row in enumerate(table[1:], start=2):
        if len(row) < len(headers):
            report.errors.append(f"Row {line_no}: Insufficient columns")
            continue

        sale_raw = row[required["sale month"]]
        store = row[required["store"]]
        try:
            earnings = float(row[required["earnings (usd)"]] or "0")
        except ValueError:
            earnings = math.nan
        if not sale_raw or not store or math.isnan(earnings):
            report.errors.append(
                f"Row {line_no}: Missing required data (sale month, store, or earnings)"
            )
            continue

        try:
            sale_month = parse_month(sale_raw)
        except ValueError:
            report.errors.append(f"Row {line_no}: Invalid date format: {sale_raw}")
            continue

        reporting_raw = _optional(row, optional["reporting_month"])
        if reporting_raw and reporting_month is None:
            try:
                reporting_month = parse_month(reporting_raw)
            except ValueError:
                reporting_month = None

        quantity_raw = _optional(row, optional["quantity"])
        try:
            quantity = int(float(quantity_raw)) if quantity_raw else None
        except ValueError:
            quantity = None

        report.rows.append(
            {
                "reporting_month": reporting_month,
                "sale_month": sale_month,
                "platform": store,
                "artist_name": _optional(row, optional["artist_name"]),
                "title": _optional(row, optional["title"]),
                "isrc": _optional(row, optional["isrc"]),
                "upc": _optional(row, optional["upc"]),
                "quantity": quantity,
                "song_album": _optional(row, optional["song_album"]),
                "country_of_sale": _optional(row, optional["country_of_sale"]),
                "amount_usd": earnings,
            }
        )

    return report
