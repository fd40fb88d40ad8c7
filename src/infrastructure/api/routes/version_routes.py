from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.application.dtos.common_dto import OperationResult
from src.application.dtos.version_dto import (
    CreateVersionRequest,
    ListVersionsResponse,
    UpdateVersionRequest,
    VersionFilterRequest,
    VersionItem,
)
from src.application.use_cases.manage_versions import ManageVersionsUseCase
from src.application.use_cases.version_history import VersionHistoryUseCase
from src.infrastructure.api.dependencies import (
    get_manage_versions,
    get_version_history,
    get_version_store,
    raise_for_result,
)
from src.infrastructure.store.version_store import VersionStore

router = APIRouter(
    prefix="/versions",
    tags=["Versions"],
    responses={
        400: {"description": "Bad Request - Invalid version data"},
        404: {"description": "Not Found - Version does not exist"},
        409: {"description": "Conflict - Operation would break the version graph"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.get(
    "",
    response_model=ListVersionsResponse,
    summary="List Versions",
    description="""
    List versions in creation order.

    Pass `root_version_id` to restrict the listing to one lineage.
    """,
)
async def list_versions(
    root_version_id: str | None = Query(None, description="Only versions of this lineage"),
    store: VersionStore = Depends(get_version_store),
):
    """List all versions, optionally for a single lineage."""
    if root_version_id is None:
        versions = store.list_versions()
    else:
        versions = store.lineage(root_version_id)
    return ListVersionsResponse(versions=[VersionItem.from_entity(v) for v in versions])


@router.post(
    "",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create Version",
    description="""
    Record a new version. Omit `parent_version_id` to start a new lineage.

    **Rules:**
    - `version_number` is one more than the number of existing siblings
    - `type` defaults to `branch` for children and `original` for roots
    - A version created on the active branch's head becomes the new head
    """,
)
async def create_version(
    body: CreateVersionRequest,
    use_case: ManageVersionsUseCase = Depends(get_manage_versions),
):
    """Create a root or child version."""
    return raise_for_result(use_case.create(body.to_draft()))


@router.get(
    "/search",
    response_model=ListVersionsResponse,
    summary="Search Versions",
    description="Case-insensitive search over prompt, title, description, tags, model and provider.",
)
async def search_versions(
    q: str = Query("", description="Keyword; blank returns every version"),
    history: VersionHistoryUseCase = Depends(get_version_history),
):
    """Search versions by keyword."""
    return ListVersionsResponse(versions=[VersionItem.from_entity(v) for v in history.search(q)])


@router.post(
    "/filter",
    response_model=ListVersionsResponse,
    summary="Filter Versions",
    description="Apply date, status, type, tag, branch, keyword, model, provider and size criteria.",
)
async def filter_versions(
    body: VersionFilterRequest,
    history: VersionHistoryUseCase = Depends(get_version_history),
):
    """Filter versions by criteria."""
    matches = history.filter(body.to_filter())
    return ListVersionsResponse(versions=[VersionItem.from_entity(v) for v in matches])


@router.get(
    "/{version_id}",
    response_model=VersionItem,
    summary="Get Version",
)
async def get_version(version_id: str, store: VersionStore = Depends(get_version_store)):
    """Get a single version."""
    version = store.get(version_id)
    if version is None:
        raise HTTPException(status_code=404, detail=f"Version {version_id} not found")
    return VersionItem.from_entity(version)


@router.patch(
    "/{version_id}",
    response_model=OperationResult,
    summary="Update Version",
    description="Apply a partial update. Structural fields (parent, root, children) cannot be changed.",
)
async def update_version(
    version_id: str,
    body: UpdateVersionRequest,
    use_case: ManageVersionsUseCase = Depends(get_manage_versions),
):
    """Update version fields."""
    return raise_for_result(use_case.update(version_id, body.to_patch()))


@router.delete(
    "/{version_id}",
    response_model=OperationResult,
    summary="Delete Version",
    description="""
    Delete a leaf version.

    Fails with 409 while the version has children or is the head of a branch.
    """,
)
async def delete_version(
    version_id: str,
    use_case: ManageVersionsUseCase = Depends(get_manage_versions),
):
    """Delete a version."""
    return raise_for_result(use_case.delete(version_id))


@router.post(
    "/{version_id}/duplicate",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate Version",
    description="Copy a version as a new sibling under the same parent.",
)
async def duplicate_version(
    version_id: str,
    use_case: ManageVersionsUseCase = Depends(get_manage_versions),
):
    """Duplicate a version."""
    return raise_for_result(use_case.duplicate(version_id))
