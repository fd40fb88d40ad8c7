from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from src.application.dtos.common_dto import OperationResult
from src.domain.entities.image_version import ImageVersion, VersionDraft
from src.domain.errors import ConflictError, VersionGraphError
from src.infrastructure.config import Settings
from src.infrastructure.store.branch_manager import BranchManager
from src.infrastructure.store.version_store import VersionStore

logger = logging.getLogger(__name__)


@dataclass
class ManageVersionsUseCase:
    """
    Create, edit, delete and duplicate versions.

    A version created on top of the active branch's head moves that head
    forward, so the branch keeps pointing at its newest version. The first
    root version also gets the default branch when none exists yet.

    Expected failures come back as a failed OperationResult; anything else
    propagates.
    """

    store: VersionStore
    branches: BranchManager
    settings: Settings

    def create(self, draft: VersionDraft) -> OperationResult:
        try:
            version = self._create(draft)
        except VersionGraphError as exc:
            logger.warning("Create version rejected: %s", exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok(
            f"Created version {version.version_number}", version_id=version.id
        )

    def update(self, version_id: str, patch: Mapping[str, Any]) -> OperationResult:
        try:
            self.store.update_version(version_id, patch)
        except VersionGraphError as exc:
            logger.warning("Update of version %s rejected: %s", version_id, exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok("Version updated", version_id=version_id)

    def delete(self, version_id: str) -> OperationResult:
        try:
            version = self.store.require(version_id)
            heads = self.branches.heads_referencing(version_id)
            if heads:
                raise ConflictError(
                    f"Version {version_id} is the head of a branch and cannot be deleted",
                    details="branches: " + ", ".join(b.name for b in heads),
                )
            self.store.delete_version(version_id)
            self.branches.forget_version(version_id)
        except VersionGraphError as exc:
            logger.warning("Delete of version %s rejected: %s", version_id, exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok(
            f"Deleted version {version.version_number}", version_id=version_id
        )

    def duplicate(self, version_id: str) -> OperationResult:
        try:
            copy = self.store.duplicate_version(version_id)
        except VersionGraphError as exc:
            logger.warning("Duplicate of version %s rejected: %s", version_id, exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok(
            f"Duplicated as version {copy.version_number}", version_id=copy.id
        )

    def _create(self, draft: VersionDraft) -> ImageVersion:
        active = self.branches.active_branch
        on_active_head = (
            active is not None
            and active.is_active
            and draft.parent_version_id is not None
            and draft.parent_version_id == active.head_version_id
        )
        if on_active_head and draft.branch_name is None:
            draft = replace(draft, branch_name=active.name)
        if (
            draft.parent_version_id is None
            and draft.branch_name is None
            and self.settings.auto_create_default_branch
            and self.branches.get_by_name(self.settings.default_branch_name) is None
        ):
            draft = replace(draft, branch_name=self.settings.default_branch_name)

        version = self.store.create_version(draft)
        if version.is_root and self.settings.auto_create_default_branch:
            self.branches.ensure_default_branch(version.id)
        elif on_active_head:
            self.branches.advance_head(active.id, version.id)
        return version
