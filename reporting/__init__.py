"""
Reporting module for the apartment evaluation engine.

Generates evaluation report PDFs and CSV exports.

Usage:
    from reporting import generate_evaluation_report, export_evaluations_csv

    result = generate_evaluation_report(subject, metrics, scoring, "reports/a.pdf")
    csv_text = export_evaluations_csv(evaluations)
"""

from .pdf_generator import (
    EvaluationReportGenerator,
    ReportSuccess,
    generate_evaluation_report,
    generate_evaluation_report_bytes,
)
from .export import CSV_HEADERS, export_evaluations_csv, export_filename

__all__ = [
    # PDF
    "EvaluationReportGenerator",
    "ReportSuccess",
    "generate_evaluation_report",
    "generate_evaluation_report_bytes",
    # CSV
    "CSV_HEADERS",
    "export_evaluations_csv",
    "export_filename",
]
