from __future__ import annotations

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.infrastructure.api.middlewares import add_default_middlewares
from src.infrastructure.api.routes.branch_routes import router as branch_router
from src.infrastructure.api.routes.comparison_routes import router as comparison_router
from src.infrastructure.api.routes.history_routes import router as history_router
from src.infrastructure.api.routes.transfer_routes import router as transfer_router
from src.infrastructure.api.routes.version_routes import router as version_router
from src.infrastructure.log_config import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Image Version Graph",
        version="0.1.0",
        description="""
        ## Image Version Graph API

        Version history for AI-generated images: a parent/child graph of
        versions, named branches over it, comparisons, trees and statistics.

        ### Features
        - **Versions**: Create, update, duplicate and delete versions of a generated image
        - **Branches**: Fork, rename, retire, switch and compare named branches
        - **Comparisons**: Weighted similarity and field-level differences between versions
        - **History**: Version trees, statistics and creation histograms
        - **Import / Export**: JSON and CSV export, validated all-or-nothing import

        ### Error Responses
        - **400 Bad Request**: Invalid data (blank prompt, unknown parent, malformed import)
        - **404 Not Found**: Version or branch does not exist
        - **409 Conflict**: Operation would break the graph or a branch rule
        - **422 Unprocessable Entity**: Validation error in request body
        - **501 Not Implemented**: Branch merging
        """,
    )
    add_default_middlewares(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the API",
    )
    def root():
        """Get API root information."""
        return RootResponse(status="ok", service="version-graph-engine", version=app.version)

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
    )
    def health():
        """Check API health status."""
        return HealthResponse(status="healthy")

    app.include_router(version_router)
    app.include_router(branch_router)
    app.include_router(comparison_router)
    app.include_router(history_router)
    app.include_router(transfer_router)
    return app


app = create_app()
