"""
Listing scrapers and annual report parsing for pre-filling evaluations.
"""

from .annual_report import AnnualReportFetcher, AnnualReportMetrics, AnnualReportParser
from .booli import BooliListing, BooliParser, BooliScraper, is_booli_url

__all__ = [
    "AnnualReportFetcher",
    "AnnualReportMetrics",
    "AnnualReportParser",
    "BooliListing",
    "BooliParser",
    "BooliScraper",
    "is_booli_url",
]
