from __future__ import annotations

from fastapi import APIRouter, Depends

from src.application.dtos.comparison_dto import (
    CompareVersionsRequest,
    ComparisonItem,
    ComparisonReportResponse,
)
from src.application.use_cases.compare_versions import CompareVersionsUseCase
from src.domain.errors import VersionGraphError
from src.infrastructure.api.dependencies import get_compare_versions, http_error

router = APIRouter(
    prefix="/comparisons",
    tags=["Comparisons"],
    responses={
        404: {"description": "Not Found - Version does not exist"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.post(
    "",
    response_model=ComparisonItem,
    summary="Compare Versions",
    description="""
    Compare two versions field by field.

    **Similarity weights:** prompt 40%, AI parameters 30%, dimensions 10%,
    tags 10%, file size 5%, generation time 5%.
    """,
)
async def compare_versions(
    body: CompareVersionsRequest,
    use_case: CompareVersionsUseCase = Depends(get_compare_versions),
):
    """Compare two versions."""
    try:
        comparison = use_case.execute(body.version1_id, body.version2_id, body.comparison_type)
    except VersionGraphError as exc:
        raise http_error(exc)
    return ComparisonItem.from_entity(comparison)


@router.post(
    "/report",
    response_model=ComparisonReportResponse,
    summary="Comparison Report",
    description="Compare two versions and render a plain-text report.",
)
async def comparison_report(
    body: CompareVersionsRequest,
    use_case: CompareVersionsUseCase = Depends(get_compare_versions),
):
    """Compare two versions and return the text report."""
    try:
        comparison = use_case.execute(body.version1_id, body.version2_id, body.comparison_type)
    except VersionGraphError as exc:
        raise http_error(exc)
    return ComparisonReportResponse(
        comparison=ComparisonItem.from_entity(comparison),
        report=use_case.report(comparison),
    )
