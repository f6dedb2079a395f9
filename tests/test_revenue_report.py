"""Distributor report parsing tests."""

from datetime import datetime, timezone

import pytest

from alera.services.revenue_report import ReportFormatError, parse_month, parse_report


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-03", datetime(2024, 3, 1, tzinfo=timezone.utc)),
        ("2024-03-15", datetime(2024, 3, 1, tzinfo=timezone.utc)),
        ("03/2024", datetime(2024, 3, 1, tzinfo=timezone.utc)),
        ("3/2024", datetime(2024, 3, 1, tzinfo=timezone.utc)),
        ("2024", datetime(2024, 1, 1, tzinfo=timezone.utc)),
    ],
)
def test_parse_month(value, expected):
    assert parse_month(value) == expected


def test_parse_month_rejects_garbage():
    with pytest.raises(ValueError):
        parse_month("March")


def test_tsv_with_loose_headers():
    content = (
        "Sale Month\tStore Name\tTotal Earnings (USD)\tCountry of Sale\n"
        "2024-01\tSpotify\t1.25\tUS\n"
        "\n"
        "2024-02\tTidal\tabc\tDE\n"
        "2024-13\tDeezer\t0.10\tFR\n"
        "2024-02\tYouTube\n"
    )
    report = parse_report("jan.tsv", content)
    assert len(report.rows) == 1
    row = report.rows[0]
    assert row["platform"] == "Spotify"
    assert row["amount_usd"] == 1.25
    assert row["country_of_sale"] == "US"
    assert row["sale_month"] == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert report.errors == [
        "Row 3: Missing required data (sale month, store, or earnings)",
        "Row 4: Invalid date format: 2024-13",
        "Row 5: Insufficient columns",
    ]
    assert report.total_earnings == 1.25


def test_first_reporting_date_applies_to_all_rows():
    content = (
        "Reporting Date,Sale Month,Store,Earnings (USD)\n"
        "2024-05-10,2024-01,Spotify,1.00\n"
        "2024-06-10,2024-02,Spotify,2.00\n"
    )
    report = parse_report("may.csv", content)
    assert {r["reporting_month"] for r in report.rows} == {
        datetime(2024, 5, 1, tzinfo=timezone.utc)
    }


@pytest.mark.parametrize(
    "filename,content",
    [
        ("report.xlsx", "Sale Month,Store,Earnings (USD)\n2024-01,Spotify,1\n"),
        ("report.csv", "Sale Month,Store,Earnings (USD)\n"),
        ("report.csv", "Month,Store,Earnings (USD)\n2024-01,Spotify,1\n"),
    ],
)
def test_unimportable_files(filename, content):
    with pytest.raises(ReportFormatError):
        parse_report(filename, content)
