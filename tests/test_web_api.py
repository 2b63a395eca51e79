"""
Tests for the evaluation web API.

Runs against an in-memory repository and fake fetchers for Booli
listings and annual reports.
"""

from datetime import datetime, timedelta, timezone
import inspect
from pathlib import Path
import sys

import pytest
import requests
from fastapi.testclient import TestClient

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.storage import EvaluationRepository
from scraper import AnnualReportMetrics, BooliListing
from utils.config import Config
from web.app import create_app
from web.evaluation_routes import ingest_annual_report, ingest_booli


USER = {"X-User-Id": "user-1"}
OTHER_USER = {"X-User-Id": "user-2"}
BOOLI_URL = "https://www.booli.se/bostad/4455667"
REPORT_URL = "https://example.org/brf-solgarden-2023.pdf"


class FakeFetcher:
    """Stands in for BooliScraper or AnnualReportFetcher; returns a fixed result or raises."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.urls = []
        self.error = error
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    def fetch(self, url):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def scraper():
    return FakeFetcher(result=BooliListing(
        url=BOOLI_URL,
        address="Götgatan 12",
        size=65,
        rooms="3",
        start_price=3_250_000,
        monthly_fee=3500,
    ))


@pytest.fixture
def annual_report():
    return FakeFetcher(result=AnnualReportMetrics(
        url=REPORT_URL,
        debt_per_sqm=8500,
        fee_per_sqm=62,
        cashflow_per_sqm=400,
        issues=["Cashflow per sqm (400) is outside the normal range (-50-100)"],
    ))


@pytest.fixture
def client(tmp_path, scraper, annual_report):
    config = Config(data_dir=str(tmp_path))
    app = create_app(
        config,
        repository=EvaluationRepository(),
        scraper_factory=lambda: scraper,
        annual_report_factory=lambda: annual_report,
    )
    return TestClient(app)


@pytest.fixture
def create(client):
    """Factory fixture: create an evaluation and return its JSON."""
    def _create(headers=USER, **fields):
        response = client.post("/api/evaluations", json=fields, headers=headers)
        assert response.status_code == 201
        return response.json()
    return _create


@pytest.fixture
def finalized(client, create):
    """Factory fixture: create and finalize an evaluation."""
    def _finalized(**fields):
        evaluation = create(**fields)
        response = client.post(f"/api/evaluations/{evaluation['id']}/finalize", headers=USER)
        return response.json()
    return _finalized


# =============================================================================
# Test: Health
# =============================================================================

class TestHealth:

    def test_root(self, client):
        assert client.get("/").json() == {"status": "ok"}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


# =============================================================================
# Test: CRUD
# =============================================================================

class TestEvaluationCrud:

    def test_missing_user_header(self, client):
        response = client.get("/api/evaluations")

        assert response.status_code == 400

    def test_create(self, create):
        evaluation = create(address="Götgatan 12", size=60, price=3_000_000, kitchen=4)

        assert evaluation["user_id"] == "user-1"
        assert evaluation["is_draft"] is True
        assert evaluation["source_id"] == "address:götgatan-12"
        assert evaluation["warnings"] == []

    def test_create_invalid_rating(self, client):
        response = client.post("/api/evaluations", json={"kitchen": 9}, headers=USER)

        assert response.status_code == 400

    def test_implausible_values_warn(self, create):
        evaluation = create(size=60, price=50_000)

        assert evaluation["warnings"]
        assert evaluation["warnings"][0].startswith("price:")

    def test_list_scoped_to_owner(self, client, create):
        create(address="A")
        create(headers=OTHER_USER, address="B")

        data = client.get("/api/evaluations", headers=USER).json()

        assert data["total"] == 1
        assert data["evaluations"][0]["address"] == "A"

    def test_get_other_users_evaluation(self, client, create):
        evaluation = create()

        response = client.get(f"/api/evaluations/{evaluation['id']}", headers=OTHER_USER)

        assert response.status_code == 404

    def test_update(self, client, create):
        evaluation = create(size=60, comments="Första intryck")

        response = client.put(
            f"/api/evaluations/{evaluation['id']}",
            json={"size": 62, "comments": None},
            headers=USER,
        )

        data = response.json()
        assert response.status_code == 200
        assert data["size"] == 62
        assert data["comments"] is None
        assert data["updated_at"] is not None

    def test_update_missing(self, client):
        response = client.put("/api/evaluations/nope", json={"size": 50}, headers=USER)

        assert response.status_code == 404

    def test_finalize(self, finalized):
        assert finalized()["is_draft"] is False

    def test_delete(self, client, create):
        evaluation = create()

        response = client.delete(f"/api/evaluations/{evaluation['id']}", headers=USER)
        again = client.delete(f"/api/evaluations/{evaluation['id']}", headers=USER)

        assert response.json() == {"deleted": True, "id": evaluation["id"]}
        assert again.status_code == 404


# =============================================================================
# Test: Comparison and Scoring
# =============================================================================

class TestComparisonAndScore:

    @pytest.fixture
    def subject(self, create, finalized):
        finalized(size=60, price=2_400_000, monthly_fee=3000, kitchen=3)
        finalized(size=60, price=3_000_000, monthly_fee=3600, kitchen=5)
        return create(size=60, price=2_700_000, monthly_fee=2400, kitchen=4)

    def test_comparison(self, client, subject):
        response = client.get(
            f"/api/evaluations/{subject['id']}/comparison", params={"base": "all"}, headers=USER
        )

        data = response.json()
        metrics = {metric["key"]: metric for metric in data["metrics"]}
        assert response.status_code == 200
        assert data["cohort_size"] == 2
        assert data["derived"]["price_per_sqm"] == 45_000
        assert metrics["price_per_sqm"]["average"] == 45_000
        assert data["scoring"] is None

    def test_score(self, client, subject):
        response = client.get(f"/api/evaluations/{subject['id']}/score", headers=USER)

        data = response.json()
        assert response.status_code == 200
        assert data["base"] == "last-month"
        assert data["status"] == "scored"
        assert data["comparison_count"] == 2
        assert 0 <= data["total_score"] <= 100

    def test_score_without_cohort(self, client, create):
        evaluation = create(size=60, price=2_700_000)

        data = client.get(f"/api/evaluations/{evaluation['id']}/score", headers=USER).json()

        assert data["status"] == "comparison_not_possible"
        assert data["total_score"] is None

    def test_invalid_base(self, client, subject):
        response = client.get(
            f"/api/evaluations/{subject['id']}/score", params={"base": "yesterday"}, headers=USER
        )

        assert response.status_code == 400

    def test_comparison_page(self, client, subject):
        response = client.get(
            f"/evaluations/{subject['id']}/comparison", params={"user": "user-1", "base": "all"}
        )

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Score breakdown" in response.text

    def test_report_pdf(self, client, subject):
        response = client.get(f"/api/evaluations/{subject['id']}/report.pdf", headers=USER)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")


# =============================================================================
# Test: Export
# =============================================================================

def test_export_csv(client, create):
    create(address="Götgatan 12", size=60)

    response = client.get("/api/export.csv", headers=USER)

    assert response.status_code == 200
    assert "lagenhetsutvarderingar_" in response.headers["content-disposition"]
    lines = response.text.strip().split("\n")
    assert lines[0].startswith("Adress,")
    assert lines[1].startswith("Götgatan 12,60,")


# =============================================================================
# Test: Booli Ingestion
# =============================================================================

class TestBooliIngest:

    def test_invalid_url(self, client):
        response = client.post(
            "/api/ingest/booli", json={"url": "https://www.hemnet.se/bostad/1"}, headers=USER
        )

        assert response.status_code == 400

    def test_listing_only(self, client, scraper):
        response = client.post("/api/ingest/booli", json={"url": BOOLI_URL}, headers=USER)

        data = response.json()
        assert response.status_code == 200
        assert data["listing"]["start_price"] == 3_250_000
        assert "evaluation" not in data
        assert scraper.closed is True

    def test_create_evaluation(self, client):
        body = {"url": BOOLI_URL, "create_evaluation": True}

        first = client.post("/api/ingest/booli", json=body, headers=USER).json()
        second = client.post("/api/ingest/booli", json=body, headers=USER).json()

        assert first["created"] is True
        assert first["evaluation"]["source_id"] == "booli:4455667"
        assert first["evaluation"]["price"] == 3_250_000
        assert second["created"] is False
        assert second["evaluation"]["id"] == first["evaluation"]["id"]

    def test_fetch_failure(self, client, scraper):
        scraper.error = requests.ConnectionError("timed out")

        response = client.post("/api/ingest/booli", json={"url": BOOLI_URL}, headers=USER)

        assert response.status_code == 502

    def test_ingest_routes_run_in_threadpool(self):
        # Blocking fetches must not be declared as coroutines
        assert not inspect.iscoroutinefunction(ingest_booli)
        assert not inspect.iscoroutinefunction(ingest_annual_report)


# =============================================================================
# Test: Evaluation List Filters
# =============================================================================

class TestListFilters:

    def addresses(self, client, **params):
        response = client.get("/api/evaluations", params=params, headers=USER)
        assert response.status_code == 200
        return [evaluation["address"] for evaluation in response.json()["evaluations"]]

    def test_period(self, client, create):
        repository = client.app.state.repository
        repository.create(
            "user-1", address="Old", created_at=datetime.now(timezone.utc) - timedelta(days=60)
        )
        create(address="New")

        assert self.addresses(client, period="month") == ["New"]
        assert self.addresses(client, period="3months") == ["New", "Old"]
        assert self.addresses(client) == ["New", "Old"]

    def test_invalid_period(self, client):
        response = client.get("/api/evaluations", params={"period": "decade"}, headers=USER)

        assert response.status_code == 400
        assert "3months" in response.json()["detail"]

    def test_sort_missing_values_last(self, client, create):
        create(address="A", price=3_000_000)
        create(address="B", price=2_000_000)
        create(address="C")

        assert self.addresses(client, sort="price") == ["B", "A", "C"]
        assert self.addresses(client, sort="price", descending=True) == ["A", "B", "C"]

    def test_sort_by_derived_field(self, client, create):
        create(address="Dyr", price=3_000_000, size=50)
        create(address="Billig", price=3_000_000, size=100)

        assert self.addresses(client, sort="price_per_sqm") == ["Billig", "Dyr"]

    def test_invalid_sort(self, client):
        response = client.get("/api/evaluations", params={"sort": "user_id"}, headers=USER)

        assert response.status_code == 400


# =============================================================================
# Test: Saved Comparisons
# =============================================================================

class TestSavedComparisons:

    @pytest.fixture
    def evaluations(self, create):
        return [create(address="A")["id"], create(address="B")["id"]]

    def save(self, client, headers=USER, **body):
        return client.post("/api/comparisons", json=body, headers=headers)

    def test_save_and_get(self, client, evaluations):
        response = self.save(
            client, name="Söder", selected_evaluations=evaluations, selected_fields=["price", "size"]
        )
        assert response.status_code == 201
        saved = response.json()

        data = client.get(f"/api/comparisons/{saved['id']}", headers=USER).json()

        assert data["name"] == "Söder"
        assert data["selected_fields"] == ["price", "size"]
        assert [e["address"] for e in data["evaluations"]] == ["A", "B"]

    def test_list_scoped_to_owner(self, client, create, evaluations):
        self.save(client, name="Mine", selected_evaluations=evaluations)
        other = create(headers=OTHER_USER)["id"]
        self.save(client, headers=OTHER_USER, name="Theirs", selected_evaluations=[other])

        data = client.get("/api/comparisons", headers=USER).json()

        assert data["total"] == 1
        assert data["comparisons"][0]["name"] == "Mine"

    def test_unknown_evaluation(self, client, evaluations):
        response = self.save(client, name="Söder", selected_evaluations=evaluations + ["nope"])

        assert response.status_code == 400

    def test_other_users_evaluation(self, client, evaluations):
        response = self.save(
            client, headers=OTHER_USER, name="Söder", selected_evaluations=evaluations
        )

        assert response.status_code == 400

    def test_blank_name(self, client, evaluations):
        response = self.save(client, name="  ", selected_evaluations=evaluations)

        assert response.status_code == 400

    def test_other_user_cannot_read(self, client, evaluations):
        saved = self.save(client, name="Söder", selected_evaluations=evaluations).json()

        response = client.get(f"/api/comparisons/{saved['id']}", headers=OTHER_USER)

        assert response.status_code == 404

    def test_delete(self, client, evaluations):
        saved = self.save(client, name="Söder", selected_evaluations=evaluations).json()

        response = client.delete(f"/api/comparisons/{saved['id']}", headers=USER)
        again = client.get(f"/api/comparisons/{saved['id']}", headers=USER)

        assert response.json() == {"deleted": True, "id": saved["id"]}
        assert again.status_code == 404


# =============================================================================
# Test: Annual Report Ingestion
# =============================================================================

class TestAnnualReportIngest:

    def test_metrics_only(self, client, annual_report):
        response = client.post("/api/ingest/annual-report", json={"url": REPORT_URL}, headers=USER)

        data = response.json()
        assert response.status_code == 200
        assert data["metrics"] == {
            "debt_per_sqm": 8500,
            "fee_per_sqm": 62,
            "cashflow_per_sqm": 400,
        }
        assert len(data["issues"]) == 1
        assert "evaluation" not in data
        assert annual_report.closed is True

    def test_updates_evaluation(self, client, create):
        evaluation = create(address="Götgatan 12")

        response = client.post(
            "/api/ingest/annual-report",
            json={"url": REPORT_URL, "evaluation_id": evaluation["id"]},
            headers=USER,
        )

        stored = response.json()["evaluation"]
        assert stored["debt_per_sqm"] == 8500
        assert stored["fee_per_sqm"] == 62
        # Out of range, reported but not saved
        assert stored["cashflow_per_sqm"] is None
        assert stored["annual_report_url"] == REPORT_URL

    def test_uses_stored_report_url(self, client, create, annual_report):
        evaluation = create(annual_report_url="https://example.org/stored.pdf")

        response = client.post(
            "/api/ingest/annual-report", json={"evaluation_id": evaluation["id"]}, headers=USER
        )

        assert response.status_code == 200
        assert annual_report.urls == ["https://example.org/stored.pdf"]

    def test_missing_url(self, client, create):
        evaluation = create()

        response = client.post(
            "/api/ingest/annual-report", json={"evaluation_id": evaluation["id"]}, headers=USER
        )

        assert response.status_code == 400

    def test_unknown_evaluation(self, client):
        response = client.post(
            "/api/ingest/annual-report",
            json={"url": REPORT_URL, "evaluation_id": "nope"},
            headers=USER,
        )

        assert response.status_code == 404

    def test_unreadable_report(self, client, annual_report):
        annual_report.error = ValueError("Could not read PDF: EOF marker not found")

        response = client.post("/api/ingest/annual-report", json={"url": REPORT_URL}, headers=USER)

        assert response.status_code == 400

    def test_fetch_failure(self, client, annual_report):
        annual_report.error = requests.HTTPError("404 Client Error")

        response = client.post("/api/ingest/annual-report", json={"url": REPORT_URL}, headers=USER)

        assert response.status_code == 502
