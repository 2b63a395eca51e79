"""
Booli listing scraper.

Extracts the basic figures of a single apartment listing on booli.se so
an evaluation can be pre-filled. Only values that pass the plausibility
checks are returned.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests

from core.intake.validation import parse_number, validate_value


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

BOOLI_DOMAIN = "booli.se"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
REQUEST_TIMEOUT_SECONDS = 30


def is_booli_url(url: Optional[str]) -> bool:
    """True for http(s) URLs on booli.se or one of its subdomains."""
    if not url:
        return False
    parsed = urlparse(url.strip())
    host = (parsed.hostname or "").lower()
    return parsed.scheme in ("http", "https") and (
        host == BOOLI_DOMAIN or host.endswith("." + BOOLI_DOMAIN)
    )


# =============================================================================
# Listing Data Structure
# =============================================================================

@dataclass
class BooliListing:
    """Figures extracted from a Booli listing page."""
    url: str = ""
    address: Optional[str] = None
    size: Optional[float] = None
    rooms: Optional[str] = None
    start_price: Optional[float] = None
    final_price: Optional[float] = None
    monthly_fee: Optional[float] = None

    def to_dict(self) -> dict:
        """Present fields only."""
        return {
            key: value for key, value in {
                "url": self.url,
                "address": self.address,
                "size": self.size,
                "rooms": self.rooms,
                "start_price": self.start_price,
                "final_price": self.final_price,
                "monthly_fee": self.monthly_fee,
            }.items()
            if value is not None
        }

    def to_evaluation_fields(self) -> dict:
        """Map onto EvaluationRecord field names."""
        mapped = {
            "apartment_url": self.url or None,
            "address": self.address,
            "size": self.size,
            "rooms": self.rooms,
            "price": self.start_price,
            "final_price": self.final_price,
            "monthly_fee": self.monthly_fee,
        }
        return {key: value for key, value in mapped.items() if value is not None}


# =============================================================================
# Parser
# =============================================================================

# Swedish amounts may be grouped with spaces: "3 250 000"
_AMOUNT = r"(\d+(?:\s\d{3})*)"


class BooliParser:
    """
    Pattern based extractor for Booli listing HTML.

    Each field has an ordered list of patterns; the first match wins.
    """

    FIELD_PATTERNS = {
        "address": [
            r"<h1[^>]*>([^<]+)</h1>",
            r"<title>([^|]+)\|",
            r"property-address[^>]*>([^<]+)<",
            r'"streetAddress":"([^"]+)"',
        ],
        "size": [
            r"(\d+)\s*m²",
            r"(\d+)\s*kvm",
            r'"size":(\d+)',
            r"boarea[^>]*>(\d+)",
        ],
        "rooms": [
            r"(\d+)\s*rum",
            r"(\d+)\s*r\s*o\s*k",
            r'"rooms":(\d+)',
            r"antal rum[^>]*>(\d+)",
        ],
        "start_price": [
            r"utgångspris[^>]*>[\s\S]*?" + _AMOUNT,
            r"startpris[^>]*>[\s\S]*?" + _AMOUNT,
            r'"startingPrice":(\d+)',
            r"pris[^>]*>[\s\S]*?" + _AMOUNT,
        ],
        "final_price": [
            r"slutpris[^>]*>[\s\S]*?" + _AMOUNT,
            r"såld för[^>]*>[\s\S]*?" + _AMOUNT,
            r'"finalPrice":(\d+)',
            r"sold.*?" + _AMOUNT,
        ],
        "monthly_fee": [
            r"månadsavgift[^>]*>[\s\S]*?" + _AMOUNT,
            r"avgift[^>]*>[\s\S]*?" + _AMOUNT,
            r'"monthlyFee":(\d+)',
            r"/månad[^>]*>[\s\S]*?" + _AMOUNT,
        ],
    }

    @classmethod
    def extract_raw(cls, html: str) -> dict[str, str]:
        """
        Extract raw text for each field found in the page.

        Amounts are returned with their grouping spaces removed.
        """
        raw: dict[str, str] = {}
        for field, patterns in cls.FIELD_PATTERNS.items():
            for pattern in patterns:
                match = re.search(pattern, html, re.IGNORECASE)
                if match and match.group(1):
                    value = match.group(1).strip()
                    if field != "address":
                        value = re.sub(r"\s", "", value)
                    raw[field] = value
                    break
        return raw

    @classmethod
    def parse(cls, html: str, url: str = "") -> BooliListing:
        """
        Parse a listing page, keeping only plausible values.

        Args:
            html: Raw HTML of the listing page.
            url: Listing URL, carried onto the result.

        Returns:
            BooliListing with implausible or missing fields left as None.
        """
        raw = cls.extract_raw(html)
        listing = BooliListing(url=url, address=raw.get("address") or None)
        size = raw.get("size")

        if size and validate_value("size", size).is_valid:
            listing.size = parse_number(size)

        rooms = raw.get("rooms")
        if rooms and validate_value("rooms", rooms, size).is_valid:
            listing.rooms = rooms

        for field, rule in (
            ("start_price", "price"),
            ("final_price", "price"),
            ("monthly_fee", "monthly_fee"),
        ):
            value = raw.get(field)
            if not value:
                continue
            result = validate_value(rule, value, size)
            if result.is_valid:
                setattr(listing, field, parse_number(value))
            else:
                logger.info("Dropping %s=%s from %s: %s", field, value, url, result.reason)

        return listing


# =============================================================================
# Scraper
# =============================================================================

class BooliScraper:
    """
    Fetches and parses a single Booli listing.

    One request per fetch, no retries. Use as a context manager to close
    the underlying session.
    """

    def __init__(self, timeout: int = REQUEST_TIMEOUT_SECONDS, session: Optional[requests.Session] = None):
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "sv-SE,sv;q=0.9",
        })

    def fetch(self, url: str) -> BooliListing:
        """
        Fetch a listing page and extract its figures.

        Args:
            url: A booli.se listing URL.

        Returns:
            BooliListing with validated fields only.

        Raises:
            ValueError: If the URL is not a Booli URL.
            requests.RequestException: On network or HTTP errors.
        """
        if not is_booli_url(url):
            raise ValueError(f"Not a Booli URL: {url!r}")

        logger.info("Fetching Booli listing %s", url)
        response = self._session.get(url, timeout=self._timeout)
        response.raise_for_status()

        listing = BooliParser.parse(response.text, url=url)
        logger.info("Extracted %d fields from %s", len(listing.to_dict()) - 1, url)
        return listing

    def close(self) -> None:
        """Close the session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
