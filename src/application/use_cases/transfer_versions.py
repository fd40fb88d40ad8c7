from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

from src.application.dtos.common_dto import OperationResult
from src.domain.entities.branch import Branch
from src.domain.entities.image_version import ImageVersion
from src.domain.errors import ConflictError, NotFoundError, ValidationError, VersionGraphError
from src.domain.services.comparison_service import ComparisonService
from src.infrastructure.config import Settings
from src.infrastructure.serialization.version_codec import (
    branch_to_row,
    comparison_to_row,
    row_to_branch,
    row_to_version,
    version_to_row,
)
from src.infrastructure.store.branch_manager import BranchManager
from src.infrastructure.store.version_store import VersionStore, validate_versions

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv")
MERGE_STRATEGIES = ("replace", "append", "merge")

CSV_COLUMNS = (
    "id",
    "version_number",
    "status",
    "type",
    "parent_version_id",
    "root_version_id",
    "branch_name",
    "prompt",
    "original_prompt",
    "image_url",
    "created_at",
    "updated_at",
)
CSV_METADATA_COLUMNS = (
    "title",
    "description",
    "tags",
    "model",
    "provider",
    "width",
    "height",
    "file_size",
    "generation_time",
    "view_count",
    "like_count",
    "export_count",
)


@dataclass
class TransferVersionsUseCase:
    """
    Export versions to JSON/CSV text and import them back.

    Imports are all-or-nothing: the combined version and branch sets are
    validated before either store is written, and the version store is
    restored if loading the branches fails.
    """

    store: VersionStore
    branches: BranchManager
    settings: Settings
    comparison: ComparisonService

    def export_versions(
        self,
        version_ids: Iterable[str] = (),
        fmt: str = "json",
        include_metadata: bool = True,
        include_comparisons: bool = False,
    ) -> str:
        """
        Raises:
            NotFoundError: If any requested id is unknown
            ValidationError: If the format is not json or csv
        """
        fmt = fmt.lower()
        if fmt not in EXPORT_FORMATS:
            raise ValidationError(f"Unsupported export format {fmt!r}", details="use json or csv")
        selected = self._select(list(version_ids))

        if fmt == "csv":
            return self._to_csv(selected, include_metadata)

        selected_ids = {v.id for v in selected}
        payload: dict[str, Any] = {
            "exported_at": datetime.now(UTC).isoformat(),
            "versions": [version_to_row(v, include_metadata) for v in selected],
            "branches": [
                branch_to_row(b)
                for b in self.branches.list_branches()
                if set(b.version_ids) <= selected_ids
            ],
            "comparisons": [],
        }
        if include_comparisons:
            for child in selected:
                parent_id = child.parent_version_id
                if parent_id is None or parent_id not in selected_ids:
                    continue
                parent = self.store.require(parent_id)
                payload["comparisons"].append(
                    comparison_to_row(self.comparison.compare(parent, child))
                )
        logger.info("Exported %d versions as json", len(selected))
        return json.dumps(payload, indent=2, ensure_ascii=False)

    def import_versions(
        self, source_data: str, merge_strategy: str = "append", validate_data: bool = True
    ) -> OperationResult:
        try:
            count = self._import(source_data, merge_strategy, validate_data)
        except VersionGraphError as exc:
            logger.warning("Import rejected: %s", exc.message)
            return OperationResult.failure(exc)
        return OperationResult.ok(f"Imported {count} versions ({merge_strategy})")

    # --------- export helpers ---------
    def _select(self, version_ids: list[str]) -> list[ImageVersion]:
        if not version_ids:
            return self.store.list_versions()
        missing = [vid for vid in version_ids if not self.store.exists(vid)]
        if missing:
            raise NotFoundError("Versions not found", details=", ".join(missing))
        return [self.store.require(vid) for vid in dict.fromkeys(version_ids)]

    def _to_csv(self, versions: list[ImageVersion], include_metadata: bool) -> str:
        columns = CSV_COLUMNS + (CSV_METADATA_COLUMNS if include_metadata else ())
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=columns, lineterminator="\n")
        writer.writeheader()
        for v in versions:
            m = v.metadata
            row: dict[str, Any] = {
                "id": v.id,
                "version_number": v.version_number,
                "status": v.status.value,
                "type": v.type.value,
                "parent_version_id": v.parent_version_id or "",
                "root_version_id": v.root_version_id,
                "branch_name": v.branch_name or "",
                "prompt": v.prompt,
                "original_prompt": v.original_prompt,
                "image_url": v.image_url,
                "created_at": m.created_at.isoformat(),
                "updated_at": m.updated_at.isoformat(),
            }
            if include_metadata:
                row.update(
                    title=m.title or "",
                    description=m.description or "",
                    tags=";".join(t.name for t in m.tags),
                    model=m.ai_parameters.model,
                    provider=m.ai_parameters.provider,
                    width=m.dimensions.width,
                    height=m.dimensions.height,
                    file_size=m.file_size,
                    generation_time=m.generation_time,
                    view_count=m.view_count,
                    like_count=m.like_count,
                    export_count=m.export_count,
                )
            writer.writerow(row)
        logger.info("Exported %d versions as csv", len(versions))
        return buf.getvalue()

    # --------- import helpers ---------
    def _import(self, source_data: str, strategy: str, validate_data: bool) -> int:
        if strategy not in MERGE_STRATEGIES:
            raise ValidationError(
                f"Unknown merge strategy {strategy!r}", details="use replace, append or merge"
            )
        incoming, incoming_branches = self._parse(source_data)
        if validate_data:
            self._check_records(incoming)

        existing = {v.id: v for v in self.store.list_versions()}
        existing_branches = {b.id: b for b in self.branches.list_branches()}
        if strategy == "replace":
            combined = {v.id: v for v in incoming}
            combined_branches = {b.id: b for b in incoming_branches}
        elif strategy == "append":
            clashes = [v.id for v in incoming if v.id in existing]
            if clashes:
                raise ConflictError("Imported versions already exist", details=", ".join(clashes))
            names = {b.name.lower() for b in existing_branches.values()}
            branch_clashes = [
                b.name for b in incoming_branches if b.id in existing_branches or b.name.lower() in names
            ]
            if branch_clashes:
                raise ConflictError(
                    "Imported branches already exist", details=", ".join(branch_clashes)
                )
            combined = {**existing, **{v.id: v for v in incoming}}
            combined_branches = {**existing_branches, **{b.id: b for b in incoming_branches}}
        else:
            combined = {**existing, **{v.id: v for v in incoming}}
            incoming_names = {b.name.lower(): b.id for b in incoming_branches}
            combined_branches = {
                bid: b
                for bid, b in existing_branches.items()
                if incoming_names.get(b.name.lower(), bid) == bid
            }
            combined_branches.update({b.id: b for b in incoming_branches})

        combined = relink_children(combined)
        problems = validate_versions(combined)
        if problems:
            raise ValidationError("Imported data violates graph invariants", details="; ".join(problems))
        self._check_branches(combined_branches.values(), combined)

        previous = self.store.list_versions()
        self.store.replace_all(combined.values())
        active_id = self.branches.active_branch_id
        try:
            self.branches.replace_all(
                combined_branches.values(),
                active_id if active_id in combined_branches else None,
            )
        except VersionGraphError:
            self.store.replace_all(previous, notify=False)
            raise
        if self.settings.auto_create_default_branch and not combined_branches:
            roots = sorted(
                (v for v in combined.values() if v.is_root), key=lambda v: v.metadata.created_at
            )
            if roots:
                self.branches.ensure_default_branch(roots[0].id)
        logger.info(
            "Imported %d versions and %d branches (%s)", len(incoming), len(incoming_branches), strategy
        )
        return len(incoming)

    def _parse(self, source_data: str) -> tuple[list[ImageVersion], list[Branch]]:
        try:
            payload = json.loads(source_data)
        except json.JSONDecodeError as exc:
            raise ValidationError("Import data is not valid JSON", details=str(exc)) from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("versions"), list):
            raise ValidationError("Import data must be an object with a versions list")
        try:
            versions = [row_to_version(row) for row in payload["versions"]]
            branches = [row_to_branch(row) for row in payload.get("branches") or []]
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError("Import data contains a malformed record", details=repr(exc)) from exc
        seen: set[str] = set()
        for v in versions:
            if v.id in seen:
                raise ValidationError(f"Duplicate version id {v.id} in import data")
            seen.add(v.id)
        return versions, branches

    @staticmethod
    def _check_records(versions: list[ImageVersion]) -> None:
        problems = []
        for v in versions:
            if not v.prompt.strip():
                problems.append(f"{v.id} has an empty prompt")
            if not v.image_url and not v.temp_path:
                problems.append(f"{v.id} has no image reference")
            if v.version_number < 1:
                problems.append(f"{v.id} has version number {v.version_number}")
        if problems:
            raise ValidationError("Import data failed validation", details="; ".join(problems))

    @staticmethod
    def _check_branches(branches: Iterable[Branch], versions: dict[str, ImageVersion]) -> None:
        names: set[str] = set()
        for b in branches:
            if b.name.lower() in names:
                raise ValidationError(f'Duplicate branch name "{b.name}" in import data')
            names.add(b.name.lower())
            if b.head_version_id not in b.version_ids:
                raise ValidationError(f"Branch {b.id} head is not one of its versions")
            missing = [vid for vid in b.version_ids if vid not in versions]
            if missing:
                raise ValidationError(
                    f"Branch {b.id} references unknown versions", details=", ".join(missing)
                )


def relink_children(versions: dict[str, ImageVersion]) -> dict[str, ImageVersion]:
    """Rebuild child_version_ids from parent links, keeping the recorded order where valid."""
    children: dict[str, list[str]] = {vid: [] for vid in versions}
    for vid, v in versions.items():
        for child_id in v.child_version_ids:
            child = versions.get(child_id)
            if child is not None and child.parent_version_id == vid and child_id not in children[vid]:
                children[vid].append(child_id)
    ordered = sorted(versions.values(), key=lambda v: v.metadata.created_at)
    for v in ordered:
        parent_id = v.parent_version_id
        if parent_id in children and v.id not in children[parent_id]:
            children[parent_id].append(v.id)
    return {
        vid: v if v.child_version_ids == tuple(children[vid]) else replace(
            v, child_version_ids=tuple(children[vid])
        )
        for vid, v in versions.items()
    }
