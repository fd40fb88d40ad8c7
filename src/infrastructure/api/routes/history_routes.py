from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.application.dtos.history_dto import (
    ExportStatisticsResponse,
    HistoryResponse,
    StatisticsResponse,
    VersionTreeResponse,
)
from src.application.use_cases.version_history import VersionHistoryUseCase
from src.domain.errors import VersionGraphError
from src.infrastructure.api.dependencies import get_version_history, http_error

router = APIRouter(
    prefix="/history",
    tags=["Version History"],
    responses={
        400: {"description": "Bad Request - Unsupported format"},
        404: {"description": "Not Found - Version does not exist"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.get(
    "/tree/{root_version_id}",
    response_model=VersionTreeResponse,
    summary="Version Tree",
    description="""
    Build the version tree of a lineage.

    Any member id may be passed; the tree is anchored on its root. Each node
    carries the branch whose head it is, if any.
    """,
)
async def version_tree(
    root_version_id: str,
    max_depth: int | None = Query(None, ge=0, description="Deepest level to include (root is 0)"),
    history: VersionHistoryUseCase = Depends(get_version_history),
):
    """Get the version tree."""
    try:
        tree = history.build_version_tree(root_version_id, max_depth)
    except VersionGraphError as exc:
        raise http_error(exc)
    return VersionTreeResponse.from_entity(tree)


@router.get(
    "/statistics",
    response_model=StatisticsResponse,
    summary="Version Statistics",
    description="Counts, averages, rankings and creation histograms over all versions or one lineage.",
)
async def statistics(
    root_version_id: str | None = Query(None, description="Restrict to this lineage"),
    history: VersionHistoryUseCase = Depends(get_version_history),
):
    """Get version statistics."""
    try:
        stats = history.get_statistics(root_version_id)
    except VersionGraphError as exc:
        raise http_error(exc)
    return StatisticsResponse.from_entity(stats)


@router.get(
    "/statistics/export",
    response_model=ExportStatisticsResponse,
    summary="Export Statistics",
)
async def export_statistics(
    format: str = Query("json", description="json or csv"),
    root_version_id: str | None = Query(None, description="Restrict to this lineage"),
    history: VersionHistoryUseCase = Depends(get_version_history),
):
    """Render statistics as JSON or CSV text."""
    try:
        content = history.export_statistics(format, root_version_id)
    except VersionGraphError as exc:
        raise http_error(exc)
    return ExportStatisticsResponse(format=format.lower(), content=content)


@router.get(
    "/{image_id}",
    response_model=HistoryResponse,
    summary="Version History",
    description="History bundle (versions, tree and summary stats) for the lineage containing `image_id`.",
)
async def load_history(
    image_id: str,
    history: VersionHistoryUseCase = Depends(get_version_history),
):
    """Get the history bundle of a lineage."""
    try:
        bundle = history.load_history(image_id)
    except VersionGraphError as exc:
        raise http_error(exc)
    return HistoryResponse.from_entity(bundle)
