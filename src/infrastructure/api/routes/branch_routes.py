from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from src.application.dtos.branch_dto import (
    BranchItem,
    ConflictsResponse,
    CreateBranchRequest,
    DifferenceItem,
    ListBranchesResponse,
    MergeBranchRequest,
    RenameBranchRequest,
)
from src.application.dtos.common_dto import OperationResult
from src.application.dtos.version_dto import ListVersionsResponse, VersionItem
from src.application.use_cases.manage_branches import ManageBranchesUseCase
from src.domain.errors import VersionGraphError
from src.infrastructure.api.dependencies import (
    get_branch_manager,
    get_manage_branches,
    http_error,
    raise_for_result,
)
from src.infrastructure.store.branch_manager import BranchManager

router = APIRouter(
    prefix="/branches",
    tags=["Branches"],
    responses={
        400: {"description": "Bad Request - Invalid branch name"},
        404: {"description": "Not Found - Branch does not exist"},
        409: {"description": "Conflict - Duplicate name, protected or active branch"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.get("", response_model=ListBranchesResponse, summary="List Branches")
async def list_branches(branches: BranchManager = Depends(get_branch_manager)):
    """List every branch, flagging the active one."""
    current = branches.active_branch_id
    return ListBranchesResponse(
        branches=[BranchItem.from_entity(b, current) for b in branches.list_branches()],
        current_branch_id=current,
    )


@router.post(
    "",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create Branch",
    description="""
    Fork a named branch at an existing version.

    The new branch starts with the source version as its only member and head,
    and becomes the active branch. Names are unique ignoring case.
    """,
)
async def create_branch(
    body: CreateBranchRequest,
    use_case: ManageBranchesUseCase = Depends(get_manage_branches),
):
    """Create a branch."""
    return raise_for_result(use_case.create(body.name, body.source_version_id, body.description))


@router.post(
    "/merge",
    response_model=OperationResult,
    summary="Merge Branches",
    description="Branch merging is not supported; this always answers 501.",
    responses={501: {"description": "Not Implemented - Merging is unsupported"}},
)
async def merge_branches(
    body: MergeBranchRequest,
    use_case: ManageBranchesUseCase = Depends(get_manage_branches),
):
    """Attempt a merge."""
    return raise_for_result(use_case.merge(body.source_branch_id, body.target_branch_id))


@router.get(
    "/conflicts",
    response_model=ConflictsResponse,
    summary="Detect Conflicts",
    description="""
    Compare the heads of two branches on prompt, model, provider and dimensions.

    `old_value` comes from the target head and `new_value` from the source head.
    Nothing is modified.
    """,
)
async def detect_conflicts(
    source: str = Query(..., description="Source branch id or name"),
    target: str = Query(..., description="Target branch id or name"),
    use_case: ManageBranchesUseCase = Depends(get_manage_branches),
):
    """Detect conflicting fields between two branch heads."""
    try:
        source_branch = use_case.resolve(source)
        target_branch = use_case.resolve(target)
        conflicts = use_case.detect_conflicts(source_branch.id, target_branch.id)
    except VersionGraphError as exc:
        raise http_error(exc)
    return ConflictsResponse(
        source_branch_id=source_branch.id,
        target_branch_id=target_branch.id,
        conflicts=[DifferenceItem.from_entity(d) for d in conflicts],
    )


@router.get("/{branch_ref}", response_model=BranchItem, summary="Get Branch")
async def get_branch(
    branch_ref: str,
    use_case: ManageBranchesUseCase = Depends(get_manage_branches),
):
    """Get a branch by id or name."""
    try:
        branch = use_case.resolve(branch_ref)
    except VersionGraphError as exc:
        raise http_error(exc)
    return BranchItem.from_entity(branch, use_case.branches.active_branch_id)


@router.get(
    "/{branch_ref}/history",
    response_model=ListVersionsResponse,
    summary="Branch History",
    description="Versions that belong to the branch, oldest first.",
)
async def branch_history(
    branch_ref: str,
    use_case: ManageBranchesUseCase = Depends(get_manage_branches),
):
    """List the versions of a branch."""
    try:
        versions = use_case.branches.branch_history(use_case.resolve(branch_ref).id)
    except VersionGraphError as exc:
        raise http_error(exc)
    return ListVersionsResponse(versions=[VersionItem.from_entity(v) for v in versions])


@router.patch("/{branch_ref}", response_model=OperationResult, summary="Rename Branch")
async def rename_branch(
    branch_ref: str,
    body: RenameBranchRequest,
    use_case: ManageBranchesUseCase = Depends(get_manage_branches),
):
    """Rename a branch; its color follows the new name."""
    return raise_for_result(use_case.rename(branch_ref, body.new_name))


@router.delete(
    "/{branch_ref}",
    response_model=OperationResult,
    summary="Delete Branch",
    description="The default branch and the active branch cannot be deleted.",
)
async def delete_branch(
    branch_ref: str,
    use_case: ManageBranchesUseCase = Depends(get_manage_branches),
):
    """Delete a branch."""
    return raise_for_result(use_case.delete(branch_ref))


@router.post(
    "/{branch_ref}/retire",
    response_model=OperationResult,
    summary="Retire Branch",
    description="Mark a branch inactive without deleting it.",
)
async def retire_branch(
    branch_ref: str,
    use_case: ManageBranchesUseCase = Depends(get_manage_branches),
):
    """Retire a branch."""
    return raise_for_result(use_case.retire(branch_ref))


@router.post("/{branch_ref}/switch", response_model=OperationResult, summary="Switch Branch")
async def switch_branch(
    branch_ref: str,
    use_case: ManageBranchesUseCase = Depends(get_manage_branches),
):
    """Make a branch the active one."""
    return raise_for_result(use_case.switch(branch_ref))
