from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, datetime

from src.domain.entities.branch import Branch, branch_color, is_protected
from src.domain.entities.comparison import Difference
from src.domain.entities.image_version import ImageVersion
from src.domain.errors import (
    ConflictError,
    NotFoundError,
    UnsupportedOperationError,
    ValidationError,
)
from src.domain.services.comparison_service import ComparisonService
from src.infrastructure.store.events import Observable
from src.infrastructure.store.version_store import VersionStore

logger = logging.getLogger(__name__)


class BranchManager(Observable):
    """Named pointers into the version graph plus the active-branch pointer.

    Branches are never merged; they are retired or deleted. Names compare
    case-insensitively, and the default branch (main/master) cannot be
    deleted, retired or renamed to something else.
    """

    def __init__(self, versions: VersionStore, default_branch_name: str = "main") -> None:
        super().__init__()
        self.versions = versions
        self.default_branch_name = default_branch_name
        self._branches: dict[str, Branch] = {}
        self._active_branch_id: str | None = None

    # --------- queries ---------
    def get(self, branch_id: str) -> Branch | None:
        return self._branches.get(branch_id)

    def require(self, branch_id: str) -> Branch:
        branch = self._branches.get(branch_id)
        if branch is None:
            raise NotFoundError(f"Branch {branch_id} not found")
        return branch

    def get_by_name(self, name: str) -> Branch | None:
        key = name.strip().lower()
        for branch in self._branches.values():
            if branch.name.lower() == key:
                return branch
        return None

    def list_branches(self) -> list[Branch]:
        return list(self._branches.values())

    def active_branches(self) -> list[Branch]:
        return [b for b in self._branches.values() if b.is_active]

    @property
    def active_branch_id(self) -> str | None:
        return self._active_branch_id

    @property
    def active_branch(self) -> Branch | None:
        if self._active_branch_id is None:
            return None
        return self._branches.get(self._active_branch_id)

    def branch_history(self, branch_id: str) -> list[ImageVersion]:
        branch = self.require(branch_id)
        out = []
        for version_id in branch.version_ids:
            version = self.versions.get(version_id)
            if version is not None:
                out.append(version)
        return out

    def heads_referencing(self, version_id: str) -> list[Branch]:
        return [b for b in self._branches.values() if b.head_version_id == version_id]

    def is_protected(self, branch: Branch) -> bool:
        return is_protected(branch.name) or (
            branch.name.lower() == self.default_branch_name.lower()
        )

    # --------- mutations ---------
    def create_branch(
        self,
        name: str,
        source_version_id: str,
        description: str | None = None,
        activate: bool = True,
    ) -> Branch:
        clean = self._clean_name(name)
        if self.get_by_name(clean) is not None:
            raise ConflictError(f'Branch name "{clean}" already exists')
        source = self.versions.get(source_version_id)
        if source is None:
            raise ConflictError(f"Source version {source_version_id} does not exist")

        branch = Branch(
            id=f"br_{uuid.uuid4().hex[:12]}",
            name=clean,
            description=description or f"Branched from version {source.version_number}",
            root_version_id=source.root_version_id,
            head_version_id=source.id,
            version_ids=(source.id,),
            color=branch_color(clean),
            created_at=datetime.now(UTC),
        )
        self._branches[branch.id] = branch
        if activate:
            self._active_branch_id = branch.id
        logger.info("Created branch %s (%s) at version %s", branch.id, clean, source.id)
        self._emit("created", "branch", branch.id)
        return branch

    def rename_branch(self, branch_id: str, new_name: str) -> Branch:
        clean = self._clean_name(new_name)
        branch = self.require(branch_id)
        if self.is_protected(branch) and clean.lower() != branch.name.lower():
            raise ConflictError(f'Branch "{branch.name}" is protected and cannot be renamed')
        existing = self.get_by_name(clean)
        if existing is not None and existing.id != branch_id:
            raise ConflictError(f'Branch name "{clean}" already exists')
        renamed = replace(branch, name=clean, color=branch_color(clean))
        self._branches[branch_id] = renamed
        logger.info("Renamed branch %s from %s to %s", branch_id, branch.name, clean)
        self._emit("updated", "branch", branch_id)
        return renamed

    def delete_branch(self, branch_id: str) -> Branch:
        branch = self._require_removable(branch_id, "deleted")
        del self._branches[branch_id]
        logger.info("Deleted branch %s (%s)", branch_id, branch.name)
        self._emit("deleted", "branch", branch_id)
        return branch

    def retire_branch(self, branch_id: str) -> Branch:
        branch = self._require_removable(branch_id, "retired")
        retired = replace(branch, is_active=False)
        self._branches[branch_id] = retired
        logger.info("Retired branch %s (%s)", branch_id, branch.name)
        self._emit("updated", "branch", branch_id)
        return retired

    def switch_branch(self, branch_id: str) -> Branch:
        branch = self.require(branch_id)
        if not branch.is_active:
            raise ConflictError(f'Branch "{branch.name}" is retired')
        self._active_branch_id = branch_id
        logger.info("Switched to branch %s (%s)", branch_id, branch.name)
        self._emit("switched", "branch", branch_id)
        return branch

    def merge_branch(self, source_branch_id: str, target_branch_id: str) -> None:
        raise UnsupportedOperationError(
            "Branch merging is not supported",
            details=(
                f"merge of {source_branch_id} into {target_branch_id} was not attempted; "
                "use detect_conflicts to review differences"
            ),
        )

    def detect_conflicts(self, source_branch_id: str, target_branch_id: str) -> list[Difference]:
        source = self.require(source_branch_id)
        target = self.require(target_branch_id)
        source_head = self.versions.get(source.head_version_id)
        target_head = self.versions.get(target.head_version_id)
        if source_head is None or target_head is None:
            raise NotFoundError("Head version of a branch could not be found")
        return ComparisonService.detect_conflicts(source_head, target_head)

    def advance_head(self, branch_id: str, version_id: str) -> Branch:
        branch = self.require(branch_id)
        self.versions.require(version_id)
        version_ids = branch.version_ids
        if version_id not in version_ids:
            version_ids = version_ids + (version_id,)
        advanced = replace(branch, head_version_id=version_id, version_ids=version_ids)
        self._branches[branch_id] = advanced
        logger.debug("Branch %s head moved to %s", branch.name, version_id)
        self._emit("updated", "branch", branch_id)
        return advanced

    def ensure_default_branch(self, root_version_id: str) -> Branch | None:
        """Create the default branch at root_version_id if no such branch exists yet."""
        if self.get_by_name(self.default_branch_name) is not None:
            return None
        return self.create_branch(
            self.default_branch_name,
            root_version_id,
            description="Default branch",
            activate=self._active_branch_id is None,
        )

    def forget_version(self, version_id: str) -> None:
        """Drop a deleted version from branch memberships. Heads must not reference it."""
        for branch in list(self._branches.values()):
            if version_id in branch.version_ids and branch.head_version_id != version_id:
                self._branches[branch.id] = replace(
                    branch, version_ids=tuple(v for v in branch.version_ids if v != version_id)
                )

    def replace_all(self, branches: Iterable[Branch], active_branch_id: str | None = None) -> None:
        incoming: dict[str, Branch] = {}
        names: set[str] = set()
        for b in branches:
            if b.id in incoming:
                raise ValidationError(f"Duplicate branch id {b.id}")
            if b.name.lower() in names:
                raise ValidationError(f'Duplicate branch name "{b.name}"')
            if b.head_version_id not in b.version_ids:
                raise ValidationError(f"Branch {b.id} head is not one of its versions")
            missing = [v for v in b.version_ids if not self.versions.exists(v)]
            if missing:
                raise ValidationError(
                    f"Branch {b.id} references unknown versions", details=", ".join(missing)
                )
            names.add(b.name.lower())
            incoming[b.id] = b
        if active_branch_id is not None and active_branch_id not in incoming:
            active_branch_id = None
        self._branches = incoming
        self._active_branch_id = active_branch_id
        logger.info("Loaded %d branches", len(incoming))
        self._emit("replaced", "branch")

    # --------- helpers ---------
    def _clean_name(self, name: str) -> str:
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Branch name must not be empty")
        return clean

    def _require_removable(self, branch_id: str, verb: str) -> Branch:
        branch = self.require(branch_id)
        if self.is_protected(branch):
            raise ConflictError(f'Branch "{branch.name}" is protected and cannot be {verb}')
        if branch_id == self._active_branch_id:
            raise ConflictError(
                f'Branch "{branch.name}" is the active branch and cannot be {verb}; '
                "switch to another branch first"
            )
        return branch
