from __future__ import annotations

from fastapi import APIRouter, Depends

from src.application.dtos.common_dto import OperationResult
from src.application.dtos.history_dto import (
    ExportVersionsRequest,
    ExportVersionsResponse,
    ImportVersionsRequest,
)
from src.application.use_cases.transfer_versions import TransferVersionsUseCase
from src.domain.errors import VersionGraphError
from src.infrastructure.api.dependencies import (
    get_transfer_versions,
    http_error,
    raise_for_result,
)

router = APIRouter(
    prefix="/transfer",
    tags=["Import / Export"],
    responses={
        400: {"description": "Bad Request - Malformed or invalid data"},
        404: {"description": "Not Found - Requested version does not exist"},
        409: {"description": "Conflict - Imported ids already exist"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.post(
    "/export",
    response_model=ExportVersionsResponse,
    summary="Export Versions",
    description="""
    Serialize versions (all when `version_ids` is empty) as JSON or CSV.

    JSON exports also carry the branches fully contained in the selection and,
    optionally, parent/child comparisons.
    """,
)
async def export_versions(
    body: ExportVersionsRequest,
    use_case: TransferVersionsUseCase = Depends(get_transfer_versions),
):
    """Export versions."""
    try:
        content = use_case.export_versions(
            body.version_ids, body.format, body.include_metadata, body.include_comparisons
        )
    except VersionGraphError as exc:
        raise http_error(exc)
    return ExportVersionsResponse(format=body.format, content=content)


@router.post(
    "/import",
    response_model=OperationResult,
    summary="Import Versions",
    description="""
    Load a JSON export.

    **Strategies:**
    - `replace`: discard existing versions and branches
    - `append`: add records; any id already present is a conflict
    - `merge`: incoming records overwrite records with the same id

    The combined graph is validated before anything is written.
    """,
)
async def import_versions(
    body: ImportVersionsRequest,
    use_case: TransferVersionsUseCase = Depends(get_transfer_versions),
):
    """Import versions."""
    return raise_for_result(
        use_case.import_versions(body.source_data, body.merge_strategy, body.validate_data)
    )
