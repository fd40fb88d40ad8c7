from __future__ import annotations

from fastapi import HTTPException, status

from src.application.dtos.common_dto import OperationResult
from src.application.use_cases.compare_versions import CompareVersionsUseCase
from src.application.use_cases.manage_branches import ManageBranchesUseCase
from src.application.use_cases.manage_versions import ManageVersionsUseCase
from src.application.use_cases.transfer_versions import TransferVersionsUseCase
from src.application.use_cases.version_history import VersionHistoryUseCase
from src.domain.errors import VersionGraphError
from src.domain.services.comparison_service import ComparisonService
from src.domain.services.statistics_service import StatisticsService
from src.infrastructure.config import get_settings
from src.infrastructure.store.branch_manager import BranchManager
from src.infrastructure.store.version_store import VersionStore

# error code -> HTTP status
ERROR_STATUS = {
    "ValidationError": status.HTTP_400_BAD_REQUEST,
    "NotFoundError": status.HTTP_404_NOT_FOUND,
    "ConflictError": status.HTTP_409_CONFLICT,
    "UnsupportedOperationError": status.HTTP_501_NOT_IMPLEMENTED,
}

_version_store: VersionStore | None = None
_branch_manager: BranchManager | None = None


def get_version_store() -> VersionStore:
    global _version_store
    if _version_store is None:
        _version_store = VersionStore()
    return _version_store


def get_branch_manager() -> BranchManager:
    global _branch_manager
    if _branch_manager is None:
        _branch_manager = BranchManager(
            get_version_store(), default_branch_name=get_settings().default_branch_name
        )
    return _branch_manager


def reset_stores() -> None:
    """Drop the process-wide stores; the next request starts from an empty graph."""
    global _version_store, _branch_manager
    _version_store = None
    _branch_manager = None


def get_manage_versions() -> ManageVersionsUseCase:
    return ManageVersionsUseCase(get_version_store(), get_branch_manager(), get_settings())


def get_manage_branches() -> ManageBranchesUseCase:
    return ManageBranchesUseCase(get_branch_manager())


def get_compare_versions() -> CompareVersionsUseCase:
    return CompareVersionsUseCase(get_version_store(), ComparisonService())


def get_version_history() -> VersionHistoryUseCase:
    return VersionHistoryUseCase(
        get_version_store(), get_branch_manager(), get_settings(), StatisticsService()
    )


def get_transfer_versions() -> TransferVersionsUseCase:
    return TransferVersionsUseCase(
        get_version_store(), get_branch_manager(), get_settings(), ComparisonService()
    )


def raise_for_result(result: OperationResult) -> OperationResult:
    """Turn a failed OperationResult into an HTTPException."""
    if result.success:
        return result
    code = result.error.code if result.error else "ValidationError"
    raise HTTPException(
        status_code=ERROR_STATUS.get(code, status.HTTP_400_BAD_REQUEST),
        detail=result.message,
    )


def http_error(exc: VersionGraphError) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST),
        detail=exc.message,
    )
