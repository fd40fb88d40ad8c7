from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import fields, replace
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from src.domain.entities.image_version import (
    AIParameters,
    Dimensions,
    ImageVersion,
    VersionDraft,
    VersionMetadata,
    VersionStatus,
    VersionType,
    as_utc,
)
from src.domain.errors import ConflictError, NotFoundError, ValidationError
from src.infrastructure.store.events import Observable

logger = logging.getLogger(__name__)

# top-level fields an update may touch; everything else structural is rejected
_EDITABLE_VERSION_FIELDS = frozenset(
    {"status", "prompt", "branch_name", "image_url", "temp_path", "project_id", "character_id"}
)
_EDITABLE_METADATA_FIELDS = frozenset(
    f.name for f in fields(VersionMetadata) if f.name not in ("created_at", "updated_at")
)
# fields that may be changed but never cleared, with the types they accept
_TYPED_FIELDS: dict[str, tuple[type, ...]] = {
    "prompt": (str,),
    "image_url": (str,),
    "generation_time": (int, float),
    "file_size": (int,),
    "dimensions": (Dimensions,),
    "ai_parameters": (AIParameters,),
    "view_count": (int,),
    "like_count": (int,),
    "export_count": (int,),
}
_COUNTERS = ("file_size", "generation_time", "view_count", "like_count", "export_count")


def _check_patch_values(patch: Mapping[str, Any]) -> None:
    for name, types in _TYPED_FIELDS.items():
        if name not in patch:
            continue
        value = patch[name]
        if value is None:
            raise ValidationError(f"{name} cannot be cleared")
        if isinstance(value, bool) or not isinstance(value, types):
            raise ValidationError(
                f"{name} has the wrong type", details=type(value).__name__
            )
    for name in _COUNTERS:
        if name in patch and patch[name] < 0:
            raise ValidationError(f"{name} must not be negative")


class VersionStore(Observable):
    """Canonical arena of ImageVersion records keyed by id.

    Two indexes are maintained on every mutation:
    - by_parent: parent id (None for roots) -> child ids in creation order
    - by_root: root id -> ids of every version in that lineage

    Each mutating method validates fully before writing, so a raised error
    leaves the store untouched.
    """

    def __init__(self, versions: Iterable[ImageVersion] = ()) -> None:
        super().__init__()
        self._versions: dict[str, ImageVersion] = {}
        self._by_parent: dict[str | None, list[str]] = {}
        self._by_root: dict[str, set[str]] = {}
        items = list(versions)
        if items:
            self.replace_all(items, notify=False)

    # --------- queries ---------
    def get(self, version_id: str) -> ImageVersion | None:
        return self._versions.get(version_id)

    def require(self, version_id: str) -> ImageVersion:
        version = self._versions.get(version_id)
        if version is None:
            raise NotFoundError(f"Version {version_id} not found")
        return version

    def exists(self, version_id: str) -> bool:
        return version_id in self._versions

    def list_versions(self) -> list[ImageVersion]:
        return list(self._versions.values())

    def __len__(self) -> int:
        return len(self._versions)

    def snapshot(self) -> Mapping[str, ImageVersion]:
        """Read-only copy for pure read-side computations."""
        return MappingProxyType(dict(self._versions))

    def siblings_count(self, parent_version_id: str | None) -> int:
        return len(self._by_parent.get(parent_version_id, ()))

    def lineage(self, root_version_id: str) -> list[ImageVersion]:
        ids = self._by_root.get(root_version_id, set())
        return [v for v in self._versions.values() if v.id in ids]

    # --------- mutations ---------
    def create_version(self, draft: VersionDraft) -> ImageVersion:
        if not draft.prompt or not draft.prompt.strip():
            raise ValidationError("Prompt must not be empty")
        if not draft.image_url and not draft.temp_path:
            raise ValidationError("An image URL or temporary path is required")
        parent = None
        if draft.parent_version_id is not None:
            parent = self._versions.get(draft.parent_version_id)
            if parent is None:
                raise ValidationError(
                    f"Parent version {draft.parent_version_id} does not exist"
                )
        version_id = draft.id or f"ver_{uuid.uuid4().hex[:12]}"
        if version_id in self._versions:
            raise ConflictError(f"Version {version_id} already exists")

        now = datetime.now(UTC)
        created_at = as_utc(draft.created_at) if draft.created_at else now
        if draft.type is not None:
            version_type = VersionType(draft.type)
        else:
            version_type = VersionType.BRANCH if parent else VersionType.ORIGINAL
        version = ImageVersion(
            id=version_id,
            version_number=self.siblings_count(draft.parent_version_id) + 1,
            status=VersionStatus(draft.status),
            type=version_type,
            root_version_id=parent.root_version_id if parent else version_id,
            prompt=draft.prompt,
            original_prompt=draft.original_prompt if draft.original_prompt is not None else draft.prompt,
            image_url=draft.image_url,
            parent_version_id=draft.parent_version_id,
            branch_name=draft.branch_name,
            temp_path=draft.temp_path,
            project_id=draft.project_id,
            character_id=draft.character_id,
            metadata=VersionMetadata(
                created_at=created_at,
                updated_at=created_at,
                title=draft.title,
                description=draft.description,
                tags=tuple(draft.tags),
                generation_time=draft.generation_time,
                file_size=draft.file_size,
                dimensions=draft.dimensions,
                ai_parameters=draft.ai_parameters,
            ),
        )

        self._versions[version.id] = version
        if parent is not None:
            self._versions[parent.id] = replace(
                parent, child_version_ids=parent.child_version_ids + (version.id,)
            )
        self._index_add(version)
        logger.info(
            "Created version %s (#%d, %s) under %s",
            version.id,
            version.version_number,
            version.type.value,
            version.parent_version_id or "<root>",
        )
        self._emit("created", "version", version.id)
        return version

    def update_version(self, version_id: str, patch: Mapping[str, Any]) -> ImageVersion:
        current = self.require(version_id)
        unknown = set(patch) - _EDITABLE_VERSION_FIELDS - _EDITABLE_METADATA_FIELDS
        if unknown:
            raise ValidationError(
                "Fields cannot be updated", details=", ".join(sorted(unknown))
            )
        _check_patch_values(patch)
        if "prompt" in patch and not patch["prompt"].strip():
            raise ValidationError("Prompt must not be empty")

        top = {k: v for k, v in patch.items() if k in _EDITABLE_VERSION_FIELDS}
        meta = {k: v for k, v in patch.items() if k in _EDITABLE_METADATA_FIELDS}
        if "status" in top:
            try:
                top["status"] = VersionStatus(top["status"])
            except ValueError as exc:
                raise ValidationError(f"Unknown status {top['status']!r}") from exc
        if "tags" in meta:
            meta["tags"] = tuple(meta["tags"] or ())

        metadata = replace(current.metadata, **meta, updated_at=datetime.now(UTC))
        updated = replace(current, **top, metadata=metadata)
        self._versions[version_id] = updated
        logger.info("Updated version %s (%s)", version_id, ", ".join(sorted(patch)) or "touch")
        self._emit("updated", "version", version_id)
        return updated

    def delete_version(self, version_id: str) -> ImageVersion:
        version = self.require(version_id)
        if version.child_version_ids:
            raise ConflictError(
                f"Version {version_id} has child versions and cannot be deleted",
                details=f"children: {', '.join(version.child_version_ids)}",
            )
        del self._versions[version_id]
        if version.parent_version_id is not None:
            parent = self._versions.get(version.parent_version_id)
            if parent is not None:
                self._versions[parent.id] = replace(
                    parent,
                    child_version_ids=tuple(c for c in parent.child_version_ids if c != version_id),
                )
        self._index_remove(version)
        logger.info("Deleted version %s", version_id)
        self._emit("deleted", "version", version_id)
        return version

    def duplicate_version(self, version_id: str) -> ImageVersion:
        """Copy as a sibling of the source (same parent), with fresh counters."""
        source = self.require(version_id)
        m = source.metadata
        title = f"{m.title} (copy)" if m.title else "(copy)"
        note = f"Copied from version {source.version_number}"
        description = f"{m.description}\n\n{note}" if m.description else note
        return self.create_version(
            VersionDraft(
                prompt=source.prompt,
                original_prompt=source.original_prompt,
                image_url=source.image_url,
                temp_path=source.temp_path,
                parent_version_id=source.parent_version_id,
                status=source.status,
                type=VersionType.BRANCH,
                branch_name=source.branch_name,
                title=title,
                description=description,
                tags=m.tags,
                generation_time=m.generation_time,
                file_size=m.file_size,
                dimensions=m.dimensions,
                ai_parameters=m.ai_parameters,
                project_id=source.project_id,
                character_id=source.character_id,
            )
        )

    def replace_all(self, versions: Iterable[ImageVersion], notify: bool = True) -> None:
        """Swap in a whole new version set after checking every invariant."""
        incoming: dict[str, ImageVersion] = {}
        for v in versions:
            if v.id in incoming:
                raise ValidationError(f"Duplicate version id {v.id}")
            incoming[v.id] = v
        problems = validate_versions(incoming)
        if problems:
            raise ValidationError("Version set violates graph invariants", details="; ".join(problems))
        self._versions = incoming
        self._rebuild_indexes()
        logger.info("Loaded %d versions", len(incoming))
        if notify:
            self._emit("replaced", "version")

    # --------- indexes ---------
    def _index_add(self, version: ImageVersion) -> None:
        self._by_parent.setdefault(version.parent_version_id, []).append(version.id)
        self._by_root.setdefault(version.root_version_id, set()).add(version.id)

    def _index_remove(self, version: ImageVersion) -> None:
        siblings = self._by_parent.get(version.parent_version_id, [])
        if version.id in siblings:
            siblings.remove(version.id)
        lineage = self._by_root.get(version.root_version_id)
        if lineage is not None:
            lineage.discard(version.id)
            if not lineage:
                del self._by_root[version.root_version_id]

    def _rebuild_indexes(self) -> None:
        self._by_parent = {}
        self._by_root = {}
        for version in self._versions.values():
            self._index_add(version)


def validate_versions(versions: Mapping[str, ImageVersion]) -> list[str]:
    """Return a description of every graph invariant violation (empty when valid)."""
    problems: list[str] = []
    for v in versions.values():
        if v.parent_version_id is None:
            if v.root_version_id != v.id:
                problems.append(f"root {v.id} has root_version_id {v.root_version_id}")
        else:
            parent = versions.get(v.parent_version_id)
            if parent is None:
                problems.append(f"{v.id} references missing parent {v.parent_version_id}")
            elif v.id not in parent.child_version_ids:
                problems.append(f"{v.id} is not listed as a child of {parent.id}")

        if len(set(v.child_version_ids)) != len(v.child_version_ids):
            problems.append(f"{v.id} lists a child more than once")
        for child_id in v.child_version_ids:
            child = versions.get(child_id)
            if child is None or child.parent_version_id != v.id:
                problems.append(f"{v.id} lists {child_id} as a child without a matching parent link")

        # ancestor chain must end at the recorded root without revisiting a node
        seen = {v.id}
        current = v
        while current.parent_version_id is not None:
            parent = versions.get(current.parent_version_id)
            if parent is None:
                break
            if parent.id in seen:
                problems.append(f"cycle detected in ancestors of {v.id}")
                break
            seen.add(parent.id)
            current = parent
        else:
            if current.id != v.root_version_id:
                problems.append(
                    f"{v.id} has root_version_id {v.root_version_id} but its chain ends at {current.id}"
                )
    return problems
