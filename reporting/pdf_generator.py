"""
Apartment Evaluation Report

Generates a printable PDF for one evaluation: apartment summary, the
automatic comparison against the cohort and the weighted scoring
breakdown. Uses ReportLab for deterministic PDF generation.

Output Structure:
1. Header with address and generation date
2. Apartment Summary
3. Comparison Against Cohort
4. Weighted Score (composite, recommendation, per-metric breakdown)
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from core.comparison import ComparisonMetric
from core.derived import EnrichedEvaluation, enrich
from core.models import RATING_FIELDS, EvaluationRecord
from core.scoring import MetricCategory, ScoringResult
from utils.formatting import format_number, format_value


# =============================================================================
# Report Generation Result Types
# =============================================================================

@dataclass
class ReportSuccess:
    """Returned when PDF generation succeeds."""
    path: Path
    size_bytes: int


# =============================================================================
# Color Palette
# =============================================================================

class Palette:
    """Print-friendly palette: charcoal text on white with a navy accent."""
    BLACK = colors.Color(0.1, 0.1, 0.1)
    CHARCOAL = colors.Color(0.2, 0.2, 0.22)
    SLATE = colors.Color(0.35, 0.38, 0.42)
    GRAY = colors.Color(0.5, 0.5, 0.5)
    LIGHT_GRAY = colors.Color(0.85, 0.85, 0.85)
    PALE_GRAY = colors.Color(0.95, 0.95, 0.95)
    WHITE = colors.white

    ACCENT = colors.Color(0.15, 0.25, 0.4)
    ACCENT_LIGHT = colors.Color(0.92, 0.94, 0.97)

    SUCCESS = colors.Color(0.15, 0.4, 0.25)
    WARNING = colors.Color(0.5, 0.4, 0.15)


# =============================================================================
# Style Configuration
# =============================================================================

def get_report_styles():
    """Create paragraph styles for the evaluation report."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='ReportTitle',
        parent=styles['Normal'],
        fontSize=18,
        leading=23,
        textColor=Palette.CHARCOAL,
        alignment=TA_LEFT,
        fontName='Helvetica-Bold',
        spaceAfter=3*mm,
    ))

    styles.add(ParagraphStyle(
        name='ReportSubtitle',
        parent=styles['Normal'],
        fontSize=9,
        leading=12,
        textColor=Palette.SLATE,
        fontName='Helvetica',
        spaceAfter=6*mm,
    ))

    styles.add(ParagraphStyle(
        name='SectionTitle',
        parent=styles['Normal'],
        fontSize=13,
        leading=17,
        textColor=Palette.CHARCOAL,
        fontName='Helvetica-Bold',
        spaceBefore=16,
        spaceAfter=10,
    ))

    styles.add(ParagraphStyle(
        name='SubsectionTitle',
        parent=styles['Normal'],
        fontSize=10.5,
        leading=14,
        textColor=Palette.SLATE,
        fontName='Helvetica-Bold',
        spaceBefore=10,
        spaceAfter=6,
    ))

    styles['BodyText'].fontSize = 9.5
    styles['BodyText'].leading = 14
    styles['BodyText'].textColor = Palette.CHARCOAL
    styles['BodyText'].spaceAfter = 6
    styles['BodyText'].fontName = 'Helvetica'

    styles.add(ParagraphStyle(
        name='SmallText',
        parent=styles['Normal'],
        fontSize=8,
        leading=11,
        textColor=Palette.GRAY,
        fontName='Helvetica',
        spaceAfter=4,
    ))

    styles.add(ParagraphStyle(
        name='MetricValue',
        parent=styles['Normal'],
        fontSize=22,
        leading=26,
        textColor=Palette.ACCENT,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold',
    ))

    styles.add(ParagraphStyle(
        name='MetricLabel',
        parent=styles['Normal'],
        fontSize=8,
        leading=10,
        textColor=Palette.SLATE,
        alignment=TA_CENTER,
        fontName='Helvetica',
    ))

    return styles


def _table_style(header_background=Palette.CHARCOAL) -> TableStyle:
    return TableStyle([
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 0), (-1, -1), 8.5),
        ('BACKGROUND', (0, 0), (-1, 0), header_background),
        ('TEXTCOLOR', (0, 0), (-1, 0), Palette.WHITE),
        ('TEXTCOLOR', (0, 1), (-1, -1), Palette.CHARCOAL),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('ALIGN', (0, 0), (0, -1), 'LEFT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, Palette.LIGHT_GRAY),
        ('TOPPADDING', (0, 0), (-1, -1), 2.5*mm),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 2.5*mm),
        ('LEFTPADDING', (0, 0), (-1, -1), 2*mm),
        ('RIGHTPADDING', (0, 0), (-1, -1), 2*mm),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [Palette.WHITE, Palette.PALE_GRAY]),
    ])


def format_metric_value(value: Optional[float], unit: str) -> str:
    """Format a comparison value according to its unit."""
    if value is None:
        return "-"
    if unit == "kr/kvm":
        return format_value(value, "price_per_sqm")
    if unit == "/5":
        return f"{format_number(value, 1)} /5"
    return format_number(value, 1)


# =============================================================================
# Report Generator Class
# =============================================================================

class EvaluationReportGenerator:
    """
    Generates evaluation report PDFs.

    The same input always produces the same document content.
    """

    PAGE_WIDTH, PAGE_HEIGHT = A4
    MARGIN_LEFT = 18*mm
    MARGIN_RIGHT = 18*mm
    MARGIN_TOP = 18*mm
    MARGIN_BOTTOM = 22*mm

    def __init__(self, generated_at: Optional[datetime] = None):
        """
        Args:
            generated_at: Timestamp printed on the report (defaults to now)
        """
        self.styles = get_report_styles()
        self.generated_at = generated_at or datetime.now(timezone.utc)

    def generate_report(
        self,
        subject: Union[EvaluationRecord, EnrichedEvaluation],
        metrics: Sequence[ComparisonMetric],
        scoring: Optional[ScoringResult],
        output_path: Union[str, Path],
    ) -> ReportSuccess:
        """
        Write the report to a file.

        Args:
            subject: The evaluated apartment
            metrics: Comparison metrics from build_comparison_metrics
            scoring: Weighted scoring result, or None to omit the section
            output_path: Destination PDF path; parent directories are created

        Returns:
            ReportSuccess with path and size
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        content = self.generate_to_buffer(subject, metrics, scoring)
        path.write_bytes(content)

        return ReportSuccess(path=path, size_bytes=len(content))

    def generate_to_buffer(
        self,
        subject: Union[EvaluationRecord, EnrichedEvaluation],
        metrics: Sequence[ComparisonMetric],
        scoring: Optional[ScoringResult],
    ) -> bytes:
        """Generate PDF and return as bytes (for streaming or testing)."""
        buffer = BytesIO()
        self._build_document(enrich(subject), metrics, scoring, buffer)
        return buffer.getvalue()

    def _build_document(
        self,
        subject: EnrichedEvaluation,
        metrics: Sequence[ComparisonMetric],
        scoring: Optional[ScoringResult],
        buffer: BytesIO,
    ):
        """Build the complete PDF document."""
        title = subject.record.address or "Apartment evaluation"
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=self.MARGIN_LEFT,
            rightMargin=self.MARGIN_RIGHT,
            topMargin=self.MARGIN_TOP,
            bottomMargin=self.MARGIN_BOTTOM,
            title=f"Evaluation - {title}",
            subject="Apartment evaluation report",
        )

        story = []
        story.extend(self._build_header(subject))
        story.extend(self._build_summary(subject))
        story.extend(self._build_comparison(metrics))
        if scoring is not None:
            story.extend(self._build_scoring(scoring))

        doc.build(
            story,
            onFirstPage=self._draw_page_frame,
            onLaterPages=self._draw_page_frame,
        )

    # =========================================================================
    # Page Drawing
    # =========================================================================

    def _draw_page_frame(self, canvas_obj: canvas.Canvas, doc):
        """Footer: generation date left, page number right."""
        canvas_obj.saveState()
        canvas_obj.setFont('Helvetica', 7)
        canvas_obj.setFillColor(Palette.GRAY)
        canvas_obj.drawString(
            self.MARGIN_LEFT,
            self.MARGIN_BOTTOM - 10*mm,
            f"Generated {self.generated_at.strftime('%Y-%m-%d %H:%M')} UTC",
        )
        canvas_obj.drawRightString(
            self.PAGE_WIDTH - self.MARGIN_RIGHT,
            self.MARGIN_BOTTOM - 10*mm,
            f"{doc.page}",
        )
        canvas_obj.restoreState()

    # =========================================================================
    # Sections
    # =========================================================================

    def _build_header(self, subject: EnrichedEvaluation) -> list:
        record = subject.record
        status = "Draft" if record.is_draft else "Finalized"
        return [
            Paragraph(escape(record.address or "Apartment evaluation"), self.styles['ReportTitle']),
            Paragraph(
                f"Evaluation created {record.created_at.date().isoformat()} &middot; {status}",
                self.styles['ReportSubtitle'],
            ),
        ]

    def _build_summary(self, subject: EnrichedEvaluation) -> list:
        """Apartment figures and physical ratings side by side."""
        record = subject.record
        elements = [Paragraph("Apartment Summary", self.styles['SectionTitle'])]

        facts = [
            ["Figure", "Value"],
            ["Price", format_value(record.price, "price") or "-"],
            ["Size", format_value(record.size, "area") or "-"],
            ["Rooms", format_value(record.rooms, "rooms") or "-"],
            ["Monthly fee", format_value(record.monthly_fee, "fee") or "-"],
            ["Price per sqm", format_value(subject.price_per_sqm, "price_per_sqm") or "-"],
            ["Fee per sqm", format_value(subject.fee_per_sqm, "fee_per_sqm") or "-"],
            ["Debt per sqm", format_value(record.debt_per_sqm, "debt_per_sqm") or "-"],
        ]
        ratings = [["Rating", "Score"]]
        for key in RATING_FIELDS:
            value = getattr(record, key)
            ratings.append([key.capitalize(), f"{value} /5" if value else "-"])
        ratings.append(["Average", format_metric_value(subject.physical_average, "/5")])

        facts_table = Table(facts, colWidths=[35*mm, 42*mm])
        facts_table.setStyle(_table_style())
        ratings_table = Table(ratings, colWidths=[35*mm, 42*mm])
        ratings_table.setStyle(_table_style(Palette.ACCENT))

        layout = Table([[facts_table, ratings_table]], colWidths=[87*mm, 87*mm])
        layout.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LEFTPADDING', (0, 0), (-1, -1), 0),
        ]))
        elements.append(layout)

        if record.comments:
            elements.append(Spacer(1, 8))
            elements.append(Paragraph(escape(record.comments), self.styles['BodyText']))

        return elements

    def _build_comparison(self, metrics: Sequence[ComparisonMetric]) -> list:
        elements = [Paragraph("Comparison Against Cohort", self.styles['SectionTitle'])]

        if not metrics:
            elements.append(Paragraph(
                "No comparable evaluations were found for this apartment.",
                self.styles['BodyText'],
            ))
            return elements

        rows = [["Metric", "This apartment", "Average", "Best", "Worst", "Better than"]]
        for metric in metrics:
            rows.append([
                metric.name,
                format_metric_value(metric.value, metric.unit),
                format_metric_value(metric.average, metric.unit),
                format_metric_value(metric.best, metric.unit),
                format_metric_value(metric.worst, metric.unit),
                f"{metric.beats_summary} ({format_number(metric.effective_percentile)} %)",
            ])

        table = Table(rows, colWidths=[44*mm, 27*mm, 25*mm, 25*mm, 25*mm, 28*mm])
        table.setStyle(_table_style())
        elements.append(table)
        elements.append(Spacer(1, 6))
        elements.append(Paragraph(
            "Percentages are expressed so that higher is always better.",
            self.styles['SmallText'],
        ))
        return elements

    def _build_scoring(self, scoring: ScoringResult) -> list:
        elements = [Paragraph("Weighted Score", self.styles['SectionTitle'])]

        score_text = str(scoring.total_score) if scoring.is_scored else "-"
        headline = Table(
            [
                [Paragraph(score_text, self.styles['MetricValue']),
                 Paragraph(escape(scoring.recommendation_level), self.styles['MetricValue'])],
                [Paragraph("Composite score (0-100)", self.styles['MetricLabel']),
                 Paragraph("Recommendation", self.styles['MetricLabel'])],
            ],
            colWidths=[87*mm, 87*mm],
        )
        headline.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), Palette.ACCENT_LIGHT),
            ('TOPPADDING', (0, 0), (-1, -1), 3*mm),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3*mm),
        ]))
        elements.append(headline)
        elements.append(Spacer(1, 6))
        elements.append(Paragraph(
            f"Compared against {scoring.comparison_count} evaluations. "
            f"{scoring.valid_metrics} metrics scored, "
            f"weight applied {format_number(scoring.actual_weight, 1)} of "
            f"{format_number(scoring.total_possible_weight, 1)}.",
            self.styles['SmallText'],
        ))

        for category, title in (
            (MetricCategory.FINANCIAL, "Financial"),
            (MetricCategory.PHYSICAL, "Physical"),
        ):
            entries = scoring.category_breakdown(category)
            if not entries:
                continue
            elements.append(Paragraph(title, self.styles['SubsectionTitle']))
            rows = [["Metric", "Value", "Average", "Score", "Assessment", "Weight"]]
            for entry in entries:
                rows.append([
                    entry.metric_name,
                    format_number(entry.subject_value, 1) if entry.subject_value is not None else "-",
                    format_number(entry.comparison_average, 1) if entry.comparison_average is not None else "-",
                    str(entry.score) if entry.score is not None else "-",
                    entry.assessment,
                    format_number(entry.weight, 1),
                ])
            table = Table(rows, colWidths=[40*mm, 27*mm, 27*mm, 18*mm, 40*mm, 22*mm])
            table.setStyle(_table_style())
            elements.append(table)

        return elements


def generate_evaluation_report(
    subject: Union[EvaluationRecord, EnrichedEvaluation],
    metrics: Sequence[ComparisonMetric],
    scoring: Optional[ScoringResult],
    output_path: Union[str, Path],
) -> ReportSuccess:
    """
    Generate an evaluation report PDF.

    This is the primary entry point for report generation.

    Example:
        from core.comparison import build_comparison_metrics
        from core.scoring import calculate_score, load_scoring_config

        metrics = build_comparison_metrics(subject, cohort)
        scoring = calculate_score(subject, cohort, load_scoring_config())
        result = generate_evaluation_report(subject, metrics, scoring, "reports/a.pdf")
        print(f"Report generated: {result.path}")
    """
    return EvaluationReportGenerator().generate_report(subject, metrics, scoring, output_path)


def generate_evaluation_report_bytes(
    subject: Union[EvaluationRecord, EnrichedEvaluation],
    metrics: Sequence[ComparisonMetric],
    scoring: Optional[ScoringResult],
) -> bytes:
    """Generate an evaluation report PDF in memory."""
    return EvaluationReportGenerator().generate_to_buffer(subject, metrics, scoring)
