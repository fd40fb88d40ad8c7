from __future__ import annotations

import logging
from dataclasses import dataclass

from src.application.dtos.common_dto import OperationResult
from src.domain.entities.branch import Branch
from src.domain.entities.comparison import Difference
from src.domain.errors import NotFoundError, VersionGraphError
from src.infrastructure.store.branch_manager import BranchManager

logger = logging.getLogger(__name__)


@dataclass
class ManageBranchesUseCase:
    """Branch lifecycle. Branches may be referenced by id or by name."""

    branches: BranchManager

    def resolve(self, ref: str) -> Branch:
        branch = self.branches.get(ref) or self.branches.get_by_name(ref)
        if branch is None:
            raise NotFoundError(f"Branch {ref} not found")
        return branch

    def create(
        self, name: str, source_version_id: str, description: str | None = None
    ) -> OperationResult:
        try:
            branch = self.branches.create_branch(name, source_version_id, description)
        except VersionGraphError as exc:
            logger.warning("Create branch %r rejected: %s", name, exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok(
            f'Created branch "{branch.name}"',
            version_id=branch.head_version_id,
            branch_id=branch.id,
        )

    def rename(self, ref: str, new_name: str) -> OperationResult:
        try:
            branch = self.branches.rename_branch(self.resolve(ref).id, new_name)
        except VersionGraphError as exc:
            logger.warning("Rename of branch %s rejected: %s", ref, exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok(f'Renamed branch to "{branch.name}"', branch_id=branch.id)

    def delete(self, ref: str) -> OperationResult:
        try:
            branch = self.branches.delete_branch(self.resolve(ref).id)
        except VersionGraphError as exc:
            logger.warning("Delete of branch %s rejected: %s", ref, exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok(f'Deleted branch "{branch.name}"', branch_id=branch.id)

    def retire(self, ref: str) -> OperationResult:
        try:
            branch = self.branches.retire_branch(self.resolve(ref).id)
        except VersionGraphError as exc:
            logger.warning("Retire of branch %s rejected: %s", ref, exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok(f'Retired branch "{branch.name}"', branch_id=branch.id)

    def switch(self, ref: str) -> OperationResult:
        try:
            branch = self.branches.switch_branch(self.resolve(ref).id)
        except VersionGraphError as exc:
            logger.warning("Switch to branch %s rejected: %s", ref, exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok(
            f'Switched to branch "{branch.name}"',
            version_id=branch.head_version_id,
            branch_id=branch.id,
        )

    def merge(self, source_ref: str, target_ref: str) -> OperationResult:
        try:
            self.branches.merge_branch(source_ref, target_ref)
        except VersionGraphError as exc:
            logger.warning("Merge of %s into %s rejected: %s", source_ref, target_ref, exc.message)
            return OperationResult.failure(exc)
        # merge_branch never returns normally
        raise AssertionError("merge_branch returned without raising")

    def detect_conflicts(self, source_ref: str, target_ref: str) -> list[Difference]:
        """Raises NotFoundError for unknown branches."""
        source = self.resolve(source_ref)
        target = self.resolve(target_ref)
        return self.branches.detect_conflicts(source.id, target.id)
