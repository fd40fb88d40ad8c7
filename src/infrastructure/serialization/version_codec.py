"""Plain-dict rows for versions, branches and comparisons.

Rows are JSON-compatible: datetimes become ISO-8601 strings and enums their
values. `row_to_*` accept both datetime objects and ISO strings.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from src.domain.entities.branch import Branch, branch_color
from src.domain.entities.comparison import Comparison, Difference
from src.domain.entities.image_version import (
    AIParameters,
    Dimensions,
    ImageVersion,
    VersionMetadata,
    VersionStatus,
    VersionTag,
    VersionType,
    as_utc,
)


def _dt(value: Any) -> datetime:
    if isinstance(value, str):
        return as_utc(datetime.fromisoformat(value))
    return as_utc(value)


def tag_to_row(tag: VersionTag) -> dict[str, Any]:
    return {"id": tag.id, "name": tag.name, "color": tag.color, "description": tag.description}


def version_to_row(version: ImageVersion, include_metadata: bool = True) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": version.id,
        "version_number": version.version_number,
        "status": version.status.value,
        "type": version.type.value,
        "parent_version_id": version.parent_version_id,
        "child_version_ids": list(version.child_version_ids),
        "root_version_id": version.root_version_id,
        "branch_name": version.branch_name,
        "prompt": version.prompt,
        "original_prompt": version.original_prompt,
        "image_url": version.image_url,
        "temp_path": version.temp_path,
        "project_id": version.project_id,
        "character_id": version.character_id,
    }
    m = version.metadata
    if include_metadata:
        p = m.ai_parameters
        row["metadata"] = {
            "title": m.title,
            "description": m.description,
            "tags": [tag_to_row(t) for t in m.tags],
            "generation_time": m.generation_time,
            "file_size": m.file_size,
            "dimensions": {"width": m.dimensions.width, "height": m.dimensions.height},
            "ai_parameters": {
                "model": p.model,
                "provider": p.provider,
                "seed": p.seed,
                "guidance": p.guidance,
                "steps": p.steps,
                "sampler": p.sampler,
                "enhance": p.enhance,
                "style": p.style,
            },
            "view_count": m.view_count,
            "like_count": m.like_count,
            "export_count": m.export_count,
            "created_at": m.created_at.isoformat(),
            "updated_at": m.updated_at.isoformat(),
        }
    else:
        # timestamps are needed to restore a version even without descriptive metadata
        row["metadata"] = {
            "created_at": m.created_at.isoformat(),
            "updated_at": m.updated_at.isoformat(),
        }
    return row


def row_to_version(row: dict[str, Any]) -> ImageVersion:
    meta = row.get("metadata") or {}
    dims = meta.get("dimensions") or {"width": 1024, "height": 1024}
    params = meta.get("ai_parameters") or {}
    created_at = _dt(meta["created_at"])
    return ImageVersion(
        id=row["id"],
        version_number=int(row.get("version_number", 1)),
        status=VersionStatus(row.get("status", VersionStatus.ACTIVE.value)),
        type=VersionType(row.get("type", VersionType.ORIGINAL.value)),
        parent_version_id=row.get("parent_version_id"),
        child_version_ids=tuple(row.get("child_version_ids") or ()),
        root_version_id=row.get("root_version_id") or row["id"],
        branch_name=row.get("branch_name"),
        prompt=row["prompt"],
        original_prompt=row.get("original_prompt") or row["prompt"],
        image_url=row.get("image_url", ""),
        temp_path=row.get("temp_path"),
        project_id=row.get("project_id"),
        character_id=row.get("character_id"),
        metadata=VersionMetadata(
            created_at=created_at,
            updated_at=_dt(meta.get("updated_at") or created_at),
            title=meta.get("title"),
            description=meta.get("description"),
            tags=tuple(
                VersionTag(
                    id=t["id"],
                    name=t["name"],
                    color=t.get("color") or "#6B7280",
                    description=t.get("description"),
                )
                for t in meta.get("tags") or ()
            ),
            generation_time=meta.get("generation_time", 0),
            file_size=int(meta.get("file_size", 0)),
            dimensions=Dimensions(width=int(dims["width"]), height=int(dims["height"])),
            ai_parameters=AIParameters(
                model=params.get("model", "unknown"),
                provider=params.get("provider", "unknown"),
                seed=params.get("seed"),
                guidance=params.get("guidance"),
                steps=params.get("steps"),
                sampler=params.get("sampler"),
                enhance=params.get("enhance"),
                style=params.get("style"),
            ),
            view_count=int(meta.get("view_count", 0)),
            like_count=int(meta.get("like_count", 0)),
            export_count=int(meta.get("export_count", 0)),
        ),
    )


def branch_to_row(branch: Branch) -> dict[str, Any]:
    return {
        "id": branch.id,
        "name": branch.name,
        "description": branch.description,
        "root_version_id": branch.root_version_id,
        "head_version_id": branch.head_version_id,
        "version_ids": list(branch.version_ids),
        "color": branch.color,
        "is_active": branch.is_active,
        "created_at": branch.created_at.isoformat(),
    }


def row_to_branch(row: dict[str, Any]) -> Branch:
    return Branch(
        id=row["id"],
        name=row["name"],
        description=row.get("description"),
        root_version_id=row["root_version_id"],
        head_version_id=row["head_version_id"],
        version_ids=tuple(row.get("version_ids") or (row["head_version_id"],)),
        color=row.get("color") or branch_color(row["name"]),
        is_active=bool(row.get("is_active", True)),
        created_at=_dt(row["created_at"]),
    )


def difference_to_row(diff: Difference) -> dict[str, Any]:
    return {
        "type": diff.type.value,
        "field": diff.field,
        "old_value": diff.old_value,
        "new_value": diff.new_value,
        "description": diff.description,
    }


def comparison_to_row(comparison: Comparison) -> dict[str, Any]:
    return {
        "id": comparison.id,
        "version1_id": comparison.version1.id,
        "version2_id": comparison.version2.id,
        "differences": [difference_to_row(d) for d in comparison.differences],
        "similarity": comparison.similarity,
        "compared_at": comparison.compared_at.isoformat(),
        "comparison_type": comparison.comparison_type.value,
    }
