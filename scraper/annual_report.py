"""
Annual report parser.

Downloads a housing association's annual report (PDF), extracts its text
and picks out the per-sqm key figures: association debt, fee and
cashflow. Figures outside their normal range are reported as issues.
"""

import logging
import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional
from urllib.parse import urlparse

import requests
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from core.intake.validation import ValueRange
from scraper.booli import REQUEST_TIMEOUT_SECONDS, USER_AGENT


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

METRIC_RANGES = {
    "debt_per_sqm": ValueRange(1_000, 25_000),
    "fee_per_sqm": ValueRange(10, 150),
    "cashflow_per_sqm": ValueRange(-50, 100),
}

METRIC_LABELS = {
    "debt_per_sqm": "Debt per sqm",
    "fee_per_sqm": "Fee per sqm",
    "cashflow_per_sqm": "Cashflow per sqm",
}

# "8 500", "8500", "12,5"
_NUMBER = r"(\d+(?:\s?\d+)*(?:[,.]\d+)?)"
_PER_SQM = r"\s+per\s+kvm?\s*[:\-]?\s*"


# =============================================================================
# Result Data Structure
# =============================================================================

@dataclass
class AnnualReportMetrics:
    """Key figures found in an annual report."""
    url: str = ""
    debt_per_sqm: Optional[float] = None
    fee_per_sqm: Optional[float] = None
    cashflow_per_sqm: Optional[float] = None
    issues: list[str] = field(default_factory=list)

    @property
    def found(self) -> dict[str, float]:
        """Figures that were found, keyed by evaluation field name."""
        return {
            key: getattr(self, key) for key in METRIC_RANGES
            if getattr(self, key) is not None
        }

    def valid_fields(self) -> dict[str, float]:
        """Found figures inside their normal range."""
        return {
            key: value for key, value in self.found.items()
            if METRIC_RANGES[key].contains(value)
        }

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "metrics": self.found,
            "issues": list(self.issues),
        }


# =============================================================================
# Parser
# =============================================================================

class AnnualReportParser:
    """
    Pattern based extractor for annual report text.

    Every pattern of a metric is applied; when several values match, the
    median is used.
    """

    METRIC_PATTERNS = {
        "debt_per_sqm": [
            r"skuld" + _PER_SQM + _NUMBER,
            r"belåning(?:sgrad)?" + _PER_SQM + _NUMBER,
            r"total\s+skuld.{0,50}per\s+kvm?\s*[:\-]?\s*" + _NUMBER,
            r"skuldsättning" + _PER_SQM + _NUMBER,
        ],
        "fee_per_sqm": [
            r"avgift" + _PER_SQM + _NUMBER,
            r"månadsavgift.{0,30}per\s+kvm?\s*[:\-]?\s*" + _NUMBER,
            r"föreningsavgift" + _PER_SQM + _NUMBER,
            r"avgift.{0,20}kvm?\s*[:\-]?\s*" + _NUMBER,
        ],
        "cashflow_per_sqm": [
            r"kassaflöde" + _PER_SQM + _NUMBER,
            r"(?:årligt\s+)?kassaflöde.{0,30}per\s+kvm?\s*[:\-]?\s*" + _NUMBER,
            r"netto(?:kassaflöde)?" + _PER_SQM + _NUMBER,
            r"resultat" + _PER_SQM + _NUMBER,
        ],
    }

    @staticmethod
    def _to_number(raw: str) -> Optional[float]:
        try:
            return float(re.sub(r"\s+", "", raw).replace(",", "."))
        except ValueError:
            return None

    @classmethod
    def find_values(cls, text: str, metric: str) -> list[float]:
        """All positive values matched for one metric, in ascending order."""
        values = []
        for pattern in cls.METRIC_PATTERNS[metric]:
            for match in re.finditer(pattern, text, re.IGNORECASE):
                value = cls._to_number(match.group(1))
                if value is not None and value > 0:
                    values.append(value)
        return sorted(values)

    @classmethod
    def parse(cls, text: str, url: str = "") -> AnnualReportMetrics:
        """
        Extract key figures from report text.

        Args:
            text: Plain text of the annual report.
            url: Report URL, carried onto the result.

        Returns:
            AnnualReportMetrics with issues for out-of-range figures.
        """
        metrics = AnnualReportMetrics(url=url)
        for metric in cls.METRIC_PATTERNS:
            values = cls.find_values(text, metric)
            if values:
                setattr(metrics, metric, values[len(values) // 2])

        metrics.issues = validate_metrics(metrics)
        return metrics


def validate_metrics(metrics: AnnualReportMetrics) -> list[str]:
    """Describe every found figure outside its normal range."""
    issues = []
    for key, value in metrics.found.items():
        value_range = METRIC_RANGES[key]
        if not value_range.contains(value):
            issues.append(
                f"{METRIC_LABELS[key]} ({value:g}) is outside the normal range "
                f"({value_range.min:g}-{value_range.max:g})"
            )
    return issues


def extract_pdf_text(content: bytes) -> str:
    """
    Extract the text of every page of a PDF.

    Raises:
        ValueError: If the content cannot be read as a PDF.
    """
    try:
        reader = PdfReader(BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
    except PyPdfError as e:
        raise ValueError(f"Could not read PDF: {e}") from e
    return "\n".join(pages)


# =============================================================================
# Fetcher
# =============================================================================

class AnnualReportFetcher:
    """
    Downloads and parses one annual report.

    One request per fetch, no retries. Use as a context manager to close
    the underlying session.
    """

    def __init__(self, timeout: int = REQUEST_TIMEOUT_SECONDS, session: Optional[requests.Session] = None):
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def fetch(self, url: str) -> AnnualReportMetrics:
        """
        Download a report and extract its key figures.

        Args:
            url: http(s) URL of the report PDF.

        Returns:
            AnnualReportMetrics for the report.

        Raises:
            ValueError: If the URL is not http(s) or the file is not a readable PDF.
            requests.RequestException: On network or HTTP errors.
        """
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"Not an http(s) URL: {url!r}")

        logger.info("Downloading annual report %s", url)
        response = self._session.get(url, timeout=self._timeout)
        response.raise_for_status()

        content_type = response.headers.get("Content-Type", "")
        if "pdf" not in content_type.lower():
            logger.warning("Annual report %s has content type %r", url, content_type)

        metrics = AnnualReportParser.parse(extract_pdf_text(response.content), url=url)
        logger.info("Extracted %d figures from %s", len(metrics.found), url)
        return metrics

    def close(self) -> None:
        """Close the session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
