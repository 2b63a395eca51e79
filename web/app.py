"""
FastAPI application for the apartment evaluation engine.

Configuration comes from environment variables (see utils.config).
"""

import logging
from typing import Callable, Optional

from fastapi import FastAPI

from core.evaluation_analyzer import EvaluationAnalyzer
from core.scoring import load_scoring_config
from core.storage import EvaluationRepository
from scraper import AnnualReportFetcher, BooliScraper
from utils.config import Config

from web.evaluation_routes import router as evaluation_router


logger = logging.getLogger(__name__)


def create_app(
    config: Optional[Config] = None,
    repository: Optional[EvaluationRepository] = None,
    scraper_factory: Optional[Callable[[], BooliScraper]] = None,
    annual_report_factory: Optional[Callable[[], AnnualReportFetcher]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Application configuration (default: from environment)
        repository: Evaluation store (default: JSON file under the data dir)
        scraper_factory: Callable returning a Booli scraper context manager
        annual_report_factory: Callable returning an annual report fetcher

    Raises:
        ValueError: If the scoring configuration is invalid
    """
    config = config or Config.load()

    app = FastAPI(
        title="Apartment Evaluation Engine",
        description="Compare and score apartment evaluations",
        version="0.1.0",
        debug=config.debug,
    )

    # ==========================================================================
    # Healthcheck endpoints: no dependencies, no IO.
    # ==========================================================================

    @app.get("/", include_in_schema=False)
    def root():
        """Root healthcheck."""
        return {"status": "ok"}

    @app.get("/health", include_in_schema=False)
    def health():
        """Secondary health endpoint."""
        return {"status": "healthy"}

    app.state.config = config
    app.state.repository = repository or EvaluationRepository(config.evaluations_path)
    app.state.analyzer = EvaluationAnalyzer(load_scoring_config(config.scoring_config_path))
    app.state.scraper_factory = scraper_factory or (
        lambda: BooliScraper(timeout=config.request_timeout)
    )
    app.state.annual_report_factory = annual_report_factory or (
        lambda: AnnualReportFetcher(timeout=config.request_timeout)
    )

    app.include_router(evaluation_router)

    logger.info(
        "Evaluation engine ready (%d evaluations loaded)",
        app.state.repository.count(),
    )
    return app
