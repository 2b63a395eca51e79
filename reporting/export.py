"""
CSV export of apartment evaluations.

The column layout is fixed and Swedish, so spreadsheets built on earlier
exports keep working.
"""

import csv
import io
from datetime import date
from typing import Iterable, Optional

from core.models import EvaluationRecord


CSV_HEADERS = [
    "Adress",
    "Storlek (kvm)",
    "Pris (SEK)",
    "Rum",
    "Månadsavgift (SEK)",
    "Skapad datum",
    "Status",
    "Planlösning",
    "Kök",
    "Badrum",
    "Sovrum",
    "Ytor",
    "Förvaring",
    "Ljusinsläpp",
    "Balkong",
    "Skuld per kvm",
    "Avgift per kvm",
    "Kassaflöde per kvm",
    "Äger mark",
    "Underhållsplan",
    "Kommentarer",
]

STATUS_DRAFT = "Utkast"
STATUS_FINAL = "Slutförd"


def _cell(value) -> str:
    """Render a value; missing and zero values are left blank."""
    if value is None or value == 0 or value == "":
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _yes_no(value: Optional[bool]) -> str:
    if value is True:
        return "Ja"
    if value is False:
        return "Nej"
    return ""


def evaluation_row(record: EvaluationRecord) -> list[str]:
    """One CSV row in header order."""
    created: date = record.created_at.date()
    return [
        record.address or "",
        _cell(record.size),
        _cell(record.price),
        record.rooms or "",
        _cell(record.monthly_fee),
        created.isoformat(),
        STATUS_DRAFT if record.is_draft else STATUS_FINAL,
        _cell(record.layout),
        _cell(record.kitchen),
        _cell(record.bathroom),
        _cell(record.bedrooms),
        _cell(record.surfaces),
        _cell(record.storage),
        _cell(record.light),
        _cell(record.balcony),
        _cell(record.debt_per_sqm),
        _cell(record.fee_per_sqm),
        _cell(record.cashflow_per_sqm),
        _yes_no(record.owns_land),
        record.maintenance_plan or "",
        record.comments or "",
    ]


def export_evaluations_csv(records: Iterable[EvaluationRecord]) -> str:
    """
    Export evaluations as CSV text.

    Args:
        records: Evaluations in the order they should appear

    Returns:
        CSV document with the header row first
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(evaluation_row(record))
    return buffer.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    """Download filename stamped with the export date."""
    return f"lagenhetsutvarderingar_{(today or date.today()).isoformat()}.csv"
