#!/usr/bin/env python3
"""
CLI for comparing, scoring and exporting apartment evaluations.

Usage:
    python -m reporting.cli score <evaluations_json> --subject <id>
    python -m reporting.cli compare <evaluations_json> --subject <id>
    python -m reporting.cli export <evaluations_json> [--output <csv>]
    python -m reporting.cli report <evaluations_json> --subject <id> [--output <pdf>]

The input file holds a JSON array of evaluation objects (the same shape
the API returns). Every evaluation in the file is treated as belonging to
the subject's owner.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from core.comparison import ComparisonBase
from core.evaluation_analyzer import EvaluationAnalyzer
from core.models import EvaluationRecord
from core.scoring import load_scoring_config
from utils.config import Config
from utils.formatting import format_number

from .export import export_evaluations_csv
from .pdf_generator import format_metric_value, generate_evaluation_report


def load_evaluations(path: Path) -> List[EvaluationRecord]:
    """
    Load evaluations from a JSON array file.

    Raises:
        ValueError: If the file is not a JSON array of valid evaluations
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError("Expected a JSON array of evaluations")

    return [EvaluationRecord.from_dict(item) for item in data]


def _find_subject(records: List[EvaluationRecord], subject_id: str) -> Optional[EvaluationRecord]:
    for record in records:
        if record.id == subject_id:
            return record
    return None


def _load_inputs(args):
    """Shared loading for subject-based commands. Returns (analyzer, subject, records) or an exit code."""
    input_path = Path(args.evaluations_file)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    try:
        records = load_evaluations(input_path)
        config = load_scoring_config(args.config) if getattr(args, "config", None) else None
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1
    except (KeyError, TypeError, ValueError) as e:
        print(f"Error: Invalid input: {e}", file=sys.stderr)
        return 1

    subject = _find_subject(records, args.subject)
    if subject is None:
        print(f"Error: Evaluation not found: {args.subject}", file=sys.stderr)
        return 1

    candidates = [record for record in records if record.user_id == subject.user_id]
    return EvaluationAnalyzer(config), subject, candidates


def cmd_compare(args):
    """Print comparison metrics for one evaluation."""
    loaded = _load_inputs(args)
    if isinstance(loaded, int):
        return loaded
    analyzer, subject, candidates = loaded

    base = ComparisonBase.from_string(args.base)
    analysis = analyzer.compare(subject, candidates, base)

    if args.json:
        print(json.dumps(analysis.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print(f"Evaluation: {subject.address or subject.id}")
    print(f"Comparison base: {base.value} ({analysis.cohort_size} evaluations)")
    if not analysis.metrics:
        print("No comparable data.")
        return 0

    for metric in analysis.metrics:
        print(
            f"  {metric.name:<30} {format_metric_value(metric.value, metric.unit):>14}"
            f"  avg {format_metric_value(metric.average, metric.unit):>14}"
            f"  better than {metric.beats_summary}"
            f" (effective pct {format_number(metric.effective_percentile)})"
        )
    return 0


def cmd_score(args):
    """Print the weighted score for one evaluation."""
    loaded = _load_inputs(args)
    if isinstance(loaded, int):
        return loaded
    analyzer, subject, candidates = loaded

    base = ComparisonBase.from_string(args.base)
    analysis = analyzer.analyze(subject, candidates, base)
    scoring = analysis.scoring

    if args.json:
        print(json.dumps(scoring.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print(f"Evaluation: {subject.address or subject.id}")
    print(f"Comparison base: {base.value} ({scoring.comparison_count} evaluations)")
    if scoring.is_scored:
        print(f"Score: {scoring.total_score}/100 - {scoring.recommendation_level}")
    else:
        print(f"Score: {scoring.recommendation_level}")

    for entry in scoring.breakdown:
        score = str(entry.score) if entry.score is not None else "-"
        print(f"  {entry.metric_name:<30} {score:>4}  {entry.assessment}")
    return 0


def cmd_export(args):
    """Export evaluations as CSV."""
    input_path = Path(args.evaluations_file)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    try:
        records = load_evaluations(input_path)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1
    except (KeyError, TypeError, ValueError) as e:
        print(f"Error: Invalid input: {e}", file=sys.stderr)
        return 1

    content = export_evaluations_csv(records)
    if args.output:
        Path(args.output).write_text(content, encoding="utf-8")
        print(f"Exported {len(records)} evaluations to: {args.output}")
    else:
        sys.stdout.write(content)
    return 0


def cmd_report(args):
    """Generate a PDF report for one evaluation."""
    loaded = _load_inputs(args)
    if isinstance(loaded, int):
        return loaded
    analyzer, subject, candidates = loaded

    base = ComparisonBase.from_string(args.base)
    analysis = analyzer.analyze(subject, candidates, base)

    output = args.output or Path(Config.load().reports_path) / f"evaluation-{subject.id}.pdf"
    result = generate_evaluation_report(subject, analysis.metrics, analysis.scoring, output)

    print(f"Report generated: {result.path}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Apartment evaluation comparison and scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m reporting.cli score evaluations.json --subject abc123 --base all
    python -m reporting.cli compare evaluations.json --subject abc123 --json
    python -m reporting.cli export evaluations.json --output export.csv
    python -m reporting.cli report evaluations.json --subject abc123
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    bases = [base.value for base in ComparisonBase]

    def add_subject_arguments(sub):
        sub.add_argument("evaluations_file", help="Path to JSON array of evaluations")
        sub.add_argument("--subject", required=True, help="Id of the evaluation to analyse")
        sub.add_argument(
            "--base",
            choices=bases,
            default=ComparisonBase.LAST_MONTH.value,
            help="Comparison base (default: last-month)",
        )
        sub.add_argument("--config", help="Path to a scoring configuration JSON file")

    # Score command
    score_parser = subparsers.add_parser("score", help="Weighted score and recommendation")
    add_subject_arguments(score_parser)
    score_parser.add_argument("--json", action="store_true", help="Print JSON output")
    score_parser.set_defaults(func=cmd_score)

    # Compare command
    compare_parser = subparsers.add_parser("compare", help="Comparison against the cohort")
    add_subject_arguments(compare_parser)
    compare_parser.add_argument("--json", action="store_true", help="Print JSON output")
    compare_parser.set_defaults(func=cmd_compare)

    # Export command
    export_parser = subparsers.add_parser("export", help="Export evaluations as CSV")
    export_parser.add_argument("evaluations_file", help="Path to JSON array of evaluations")
    export_parser.add_argument("--output", "-o", help="CSV file to write (default: stdout)")
    export_parser.set_defaults(func=cmd_export)

    # Report command
    report_parser = subparsers.add_parser("report", help="Generate a PDF report")
    add_subject_arguments(report_parser)
    report_parser.add_argument("--output", "-o", help="PDF path (default: <reports dir>/evaluation-<id>.pdf)")
    report_parser.set_defaults(func=cmd_report)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
