"""
Evaluation Routes - Web API for Apartment Evaluations

CRUD for a user's evaluations plus comparison, scoring, PDF and CSV
output, saved comparisons and ingestion from Booli listings and annual
reports. The owner is identified by the X-User-Id header; every lookup
is scoped to that owner.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Optional

import requests
from fastapi import APIRouter, Header, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from core.comparison import CohortSelector, ComparisonBase, TimePeriod, sort_evaluations
from core.derived import DERIVED_FIELDS
from core.evaluation_analyzer import EvaluationAnalyzer
from core.intake import invalid_fields, validate_evaluation
from core.models import EvaluationRecord
from core.storage import EvaluationRepository, generate_source_id
from reporting import export_evaluations_csv, export_filename, generate_evaluation_report_bytes
from scraper import is_booli_url
from utils.formatting import format_number, format_value


logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

TEMPLATES_DIR = Path(__file__).parent / "templates"

router = APIRouter(tags=["evaluations"])
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["sv_value"] = format_value
templates.env.filters["sv_number"] = format_number


# =============================================================================
# Request Models
# =============================================================================


class EvaluationPayload(BaseModel):
    """Fields a client may set on an evaluation. All optional."""
    address: Optional[str] = None
    apartment_url: Optional[str] = None
    annual_report_url: Optional[str] = None
    source_id: Optional[str] = None

    size: Optional[float] = None
    price: Optional[float] = None
    final_price: Optional[float] = None
    monthly_fee: Optional[float] = None
    rooms: Optional[str] = None
    debt_per_sqm: Optional[float] = None
    cashflow_per_sqm: Optional[float] = None
    fee_per_sqm: Optional[float] = None

    owns_land: Optional[bool] = None
    major_maintenance_done: Optional[bool] = None
    maintenance_plan: Optional[str] = None

    layout: Optional[int] = None
    kitchen: Optional[int] = None
    bathroom: Optional[int] = None
    bedrooms: Optional[int] = None
    surfaces: Optional[int] = None
    storage: Optional[int] = None
    light: Optional[int] = None
    balcony: Optional[int] = None

    layout_comment: Optional[str] = None
    kitchen_comment: Optional[str] = None
    bathroom_comment: Optional[str] = None
    bedrooms_comment: Optional[str] = None
    surfaces_comment: Optional[str] = None
    storage_comment: Optional[str] = None
    light_comment: Optional[str] = None
    balcony_comment: Optional[str] = None

    comments: Optional[str] = None


class BooliIngestRequest(BaseModel):
    """Request body for Booli ingestion."""
    url: str
    create_evaluation: bool = False


class AnnualReportIngestRequest(BaseModel):
    """
    Request body for annual report ingestion.

    url may be left out when evaluation_id names an evaluation with a
    stored annual_report_url.
    """
    url: Optional[str] = None
    evaluation_id: Optional[str] = None


class SavedComparisonRequest(BaseModel):
    """Request body for saving a comparison."""
    name: str
    selected_evaluations: list[str]
    selected_fields: list[str] = []


# =============================================================================
# Helpers
# =============================================================================


def _repository(request: Request) -> EvaluationRepository:
    return request.app.state.repository


def _analyzer(request: Request) -> EvaluationAnalyzer:
    return request.app.state.analyzer


def require_user(user_id: Optional[str]) -> str:
    """
    Validate the X-User-Id header.

    Raises:
        HTTPException(400) if the header is missing or blank
    """
    if not user_id or not user_id.strip():
        raise HTTPException(status_code=400, detail="Missing X-User-Id header")
    return user_id.strip()


def require_evaluation(request: Request, evaluation_id: str, user_id: str) -> EvaluationRecord:
    """
    Load an evaluation owned by the user.

    Raises:
        HTTPException(404) if not found
    """
    record = _repository(request).get(evaluation_id, user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Evaluation not found")
    return record


def parse_base(base: str) -> ComparisonBase:
    """
    Parse a comparison base query value.

    Raises:
        HTTPException(400) for unknown values
    """
    parsed = ComparisonBase.from_string(base)
    if parsed is None:
        choices = ", ".join(b.value for b in ComparisonBase)
        raise HTTPException(status_code=400, detail=f"Invalid base: {base}. Use one of: {choices}")
    return parsed


def parse_period(period: str) -> TimePeriod:
    """
    Parse a period query value.

    Raises:
        HTTPException(400) for unknown values
    """
    parsed = TimePeriod.from_string(period)
    if parsed is None:
        choices = ", ".join(p.value for p in TimePeriod)
        raise HTTPException(status_code=400, detail=f"Invalid period: {period}. Use one of: {choices}")
    return parsed


SORTABLE_FIELDS = frozenset(
    f.name for f in dataclasses.fields(EvaluationRecord) if f.name not in ("id", "user_id")
) | frozenset(DERIVED_FIELDS)


def evaluation_response(record: EvaluationRecord) -> dict:
    """Evaluation JSON with plausibility warnings for its figures."""
    data = record.to_dict()
    data["warnings"] = invalid_fields(validate_evaluation(record))
    return data


# =============================================================================
# Evaluation CRUD
# =============================================================================


@router.post("/api/evaluations", status_code=201)
async def create_evaluation(
    request: Request,
    payload: EvaluationPayload,
    x_user_id: Optional[str] = Header(None),
):
    """Create a draft evaluation."""
    user_id = require_user(x_user_id)
    try:
        record = _repository(request).create(user_id, **payload.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return evaluation_response(record)


@router.get("/api/evaluations")
async def list_evaluations(
    request: Request,
    include_drafts: bool = Query(True, description="Include draft evaluations"),
    period: str = Query(TimePeriod.ALL.value, description="Creation-time window"),
    sort: Optional[str] = Query(None, description="Field to sort by"),
    descending: bool = Query(False, description="Sort high to low"),
    x_user_id: Optional[str] = Header(None),
):
    """
    List the user's evaluations.

    Newest first unless a sort field is given. Records missing the sort
    value come last in either direction.
    """
    user_id = require_user(x_user_id)
    time_period = parse_period(period)
    if sort is not None and sort not in SORTABLE_FIELDS:
        raise HTTPException(status_code=400, detail=f"Cannot sort by: {sort}")

    records = _repository(request).list_for_user(user_id, include_drafts=include_drafts)
    records = CohortSelector().filter_by_period(records, time_period)
    if sort is not None:
        records = sort_evaluations(records, sort, descending=descending)
    return {
        "evaluations": [record.to_dict() for record in records],
        "total": len(records),
    }


@router.get("/api/evaluations/{evaluation_id}")
async def get_evaluation(
    request: Request,
    evaluation_id: str,
    x_user_id: Optional[str] = Header(None),
):
    """Get one evaluation."""
    user_id = require_user(x_user_id)
    return evaluation_response(require_evaluation(request, evaluation_id, user_id))


@router.put("/api/evaluations/{evaluation_id}")
async def update_evaluation(
    request: Request,
    evaluation_id: str,
    payload: EvaluationPayload,
    x_user_id: Optional[str] = Header(None),
):
    """Update the fields present in the body. Explicit nulls clear a field."""
    user_id = require_user(x_user_id)
    require_evaluation(request, evaluation_id, user_id)
    try:
        record = _repository(request).update(
            evaluation_id, user_id, **payload.model_dump(exclude_unset=True)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return evaluation_response(record)


@router.post("/api/evaluations/{evaluation_id}/finalize")
async def finalize_evaluation(
    request: Request,
    evaluation_id: str,
    x_user_id: Optional[str] = Header(None),
):
    """Mark an evaluation as finalized so it joins comparison cohorts."""
    user_id = require_user(x_user_id)
    require_evaluation(request, evaluation_id, user_id)
    record = _repository(request).finalize(evaluation_id, user_id)
    logger.info("Finalized evaluation %s", evaluation_id)
    return evaluation_response(record)


@router.delete("/api/evaluations/{evaluation_id}")
async def delete_evaluation(
    request: Request,
    evaluation_id: str,
    x_user_id: Optional[str] = Header(None),
):
    """Delete an evaluation."""
    user_id = require_user(x_user_id)
    if not _repository(request).delete(evaluation_id, user_id):
        raise HTTPException(status_code=404, detail="Evaluation not found")
    return {"deleted": True, "id": evaluation_id}


# =============================================================================
# Comparison and Scoring
# =============================================================================


@router.get("/api/evaluations/{evaluation_id}/comparison")
async def evaluation_comparison(
    request: Request,
    evaluation_id: str,
    base: str = Query(ComparisonBase.LAST_MONTH.value, description="Comparison base"),
    x_user_id: Optional[str] = Header(None),
):
    """Compare an evaluation against the user's other finalized evaluations."""
    user_id = require_user(x_user_id)
    subject = require_evaluation(request, evaluation_id, user_id)
    comparison_base = parse_base(base)

    candidates = _repository(request).list_for_user(user_id)
    analysis = _analyzer(request).compare(subject, candidates, comparison_base)
    return analysis.to_dict()


@router.get("/api/evaluations/{evaluation_id}/score")
async def evaluation_score(
    request: Request,
    evaluation_id: str,
    base: str = Query(ComparisonBase.LAST_MONTH.value, description="Comparison base"),
    x_user_id: Optional[str] = Header(None),
):
    """Weighted score and recommendation for an evaluation."""
    user_id = require_user(x_user_id)
    subject = require_evaluation(request, evaluation_id, user_id)
    comparison_base = parse_base(base)

    candidates = _repository(request).list_for_user(user_id)
    analysis = _analyzer(request).analyze(subject, candidates, comparison_base)
    result = analysis.scoring.to_dict()
    result["base"] = comparison_base.value
    return result


@router.get("/api/evaluations/{evaluation_id}/report.pdf")
async def evaluation_report(
    request: Request,
    evaluation_id: str,
    base: str = Query(ComparisonBase.LAST_MONTH.value, description="Comparison base"),
    x_user_id: Optional[str] = Header(None),
):
    """Download the evaluation report as PDF."""
    user_id = require_user(x_user_id)
    subject = require_evaluation(request, evaluation_id, user_id)
    comparison_base = parse_base(base)

    candidates = _repository(request).list_for_user(user_id)
    analysis = _analyzer(request).analyze(subject, candidates, comparison_base)
    content = generate_evaluation_report_bytes(subject, analysis.metrics, analysis.scoring)

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="evaluation-{evaluation_id}.pdf"'},
    )


@router.get("/api/export.csv")
async def export_csv(
    request: Request,
    include_drafts: bool = Query(True, description="Include draft evaluations"),
    x_user_id: Optional[str] = Header(None),
):
    """Download the user's evaluations as CSV."""
    user_id = require_user(x_user_id)
    records = _repository(request).list_for_user(user_id, include_drafts=include_drafts)
    return Response(
        content=export_evaluations_csv(records),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.get("/evaluations/{evaluation_id}/comparison", response_class=HTMLResponse)
async def evaluation_comparison_page(
    request: Request,
    evaluation_id: str,
    base: str = Query(ComparisonBase.LAST_MONTH.value),
    user: Optional[str] = Query(None, description="Owner id, for links opened in a browser"),
    x_user_id: Optional[str] = Header(None),
):
    """Render the comparison and score of one evaluation as HTML."""
    user_id = require_user(x_user_id or user)
    subject = require_evaluation(request, evaluation_id, user_id)
    comparison_base = parse_base(base)

    candidates = _repository(request).list_for_user(user_id)
    analysis = _analyzer(request).analyze(subject, candidates, comparison_base)

    return templates.TemplateResponse(
        request,
        "comparison.html",
        {
            "title": subject.address or "Evaluation",
            "analysis": analysis,
            "record": subject,
            "bases": [b.value for b in ComparisonBase],
            "user_id": user_id,
        },
    )


# =============================================================================
# Saved Comparisons
# =============================================================================


@router.post("/api/comparisons", status_code=201)
async def save_comparison(
    request: Request,
    body: SavedComparisonRequest,
    x_user_id: Optional[str] = Header(None),
):
    """Save a named selection of the user's evaluations."""
    user_id = require_user(x_user_id)
    try:
        comparison = _repository(request).save_comparison(
            user_id,
            body.name,
            body.selected_evaluations,
            body.selected_fields,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return comparison.to_dict()


@router.get("/api/comparisons")
async def list_comparisons(
    request: Request,
    x_user_id: Optional[str] = Header(None),
):
    """List the user's saved comparisons, newest first."""
    user_id = require_user(x_user_id)
    comparisons = _repository(request).list_comparisons(user_id)
    return {
        "comparisons": [comparison.to_dict() for comparison in comparisons],
        "total": len(comparisons),
    }


@router.get("/api/comparisons/{comparison_id}")
async def get_comparison(
    request: Request,
    comparison_id: str,
    x_user_id: Optional[str] = Header(None),
):
    """Get a saved comparison with its evaluations."""
    user_id = require_user(x_user_id)
    repository = _repository(request)
    comparison = repository.get_comparison(comparison_id, user_id)
    if comparison is None:
        raise HTTPException(status_code=404, detail="Comparison not found")

    records = [repository.get(evaluation_id, user_id) for evaluation_id in comparison.selected_evaluations]
    data = comparison.to_dict()
    data["evaluations"] = [record.to_dict() for record in records if record is not None]
    return data


@router.delete("/api/comparisons/{comparison_id}")
async def delete_comparison(
    request: Request,
    comparison_id: str,
    x_user_id: Optional[str] = Header(None),
):
    """Delete a saved comparison."""
    user_id = require_user(x_user_id)
    if not _repository(request).delete_comparison(comparison_id, user_id):
        raise HTTPException(status_code=404, detail="Comparison not found")
    return {"deleted": True, "id": comparison_id}


# =============================================================================
# Ingestion
# =============================================================================

# Plain def routes: the blocking fetch runs in the threadpool.


@router.post("/api/ingest/booli")
def ingest_booli(
    request: Request,
    body: BooliIngestRequest,
    x_user_id: Optional[str] = Header(None),
):
    """
    Extract listing figures from a Booli URL.

    With create_evaluation set, the figures are stored on the user's
    evaluation for that listing, creating a draft when none exists.
    """
    user_id = require_user(x_user_id)
    if not is_booli_url(body.url):
        raise HTTPException(status_code=400, detail="Invalid Booli URL")

    try:
        with request.app.state.scraper_factory() as scraper:
            listing = scraper.fetch(body.url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except requests.RequestException as e:
        logger.warning("Booli fetch failed for %s: %s", body.url, e)
        raise HTTPException(status_code=502, detail="Could not fetch data from Booli")

    response = {"listing": listing.to_dict()}

    if body.create_evaluation:
        repository = _repository(request)
        fields = listing.to_evaluation_fields()
        source_id = generate_source_id(body.url)
        record, created = repository.get_or_create(user_id, source_id, **fields)
        if not created:
            fields.pop("apartment_url", None)
            record = repository.update(record.id, user_id, **fields)
        response["evaluation"] = evaluation_response(record)
        response["created"] = created

    return response


@router.post("/api/ingest/annual-report")
def ingest_annual_report(
    request: Request,
    body: AnnualReportIngestRequest,
    x_user_id: Optional[str] = Header(None),
):
    """
    Extract debt, fee and cashflow per sqm from an annual report PDF.

    With evaluation_id set, figures inside their normal range are stored on
    that evaluation together with the report URL. Out-of-range figures are
    returned as issues and left unsaved.
    """
    user_id = require_user(x_user_id)
    record = None
    if body.evaluation_id:
        record = require_evaluation(request, body.evaluation_id, user_id)

    url = body.url or (record.annual_report_url if record else None)
    if not url:
        raise HTTPException(status_code=400, detail="Missing annual report URL")

    try:
        with request.app.state.annual_report_factory() as fetcher:
            metrics = fetcher.fetch(url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except requests.RequestException as e:
        logger.warning("Annual report fetch failed for %s: %s", url, e)
        raise HTTPException(status_code=502, detail="Could not fetch the annual report")

    response = metrics.to_dict()

    if record is not None:
        record = _repository(request).update(
            record.id, user_id, annual_report_url=url, **metrics.valid_fields()
        )
        response["evaluation"] = evaluation_response(record)

    return response
