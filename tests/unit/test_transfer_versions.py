"""
Tests for export/import and the version codec.
"""
from __future__ import annotations

import csv
import io
import json
from datetime import UTC, datetime

import pytest

from src.application.use_cases.manage_versions import ManageVersionsUseCase
from src.application.use_cases.transfer_versions import TransferVersionsUseCase, relink_children
from src.domain.entities.image_version import AIParameters, VersionTag
from src.domain.errors import NotFoundError, ValidationError
from src.domain.services.comparison_service import ComparisonService
from src.infrastructure.serialization.version_codec import row_to_version, version_to_row


@pytest.fixture
def versions_uc(store, branches, settings):
    return ManageVersionsUseCase(store, branches, settings)


@pytest.fixture
def transfer(store, branches, settings):
    return TransferVersionsUseCase(store, branches, settings, ComparisonService())


@pytest.fixture
def lineage(versions_uc, draft):
    root = versions_uc.create(
        draft(
            "a cat",
            title="Cat",
            tags=(VersionTag("t1", "cute"),),
            ai_parameters=AIParameters(model="flux", provider="pollinations", seed=7),
        )
    ).version_id
    child = versions_uc.create(draft("a cat, detailed", parent_version_id=root)).version_id
    return root, child


class TestCodec:
    def test_row_restores_version(self, store, lineage):
        root, _ = lineage
        version = store.require(root)
        assert row_to_version(json.loads(json.dumps(version_to_row(version)))) == version

    def test_row_without_metadata_keeps_timestamps(self, store, lineage):
        root, _ = lineage
        row = version_to_row(store.require(root), include_metadata=False)
        assert set(row["metadata"]) == {"created_at", "updated_at"}
        restored = row_to_version(row)
        assert restored.metadata.title is None
        assert restored.metadata.created_at == store.require(root).metadata.created_at

    def test_naive_timestamps_read_as_utc(self):
        row = {
            "id": "v1",
            "prompt": "a cat",
            "image_url": "u",
            "metadata": {"created_at": "2026-01-01T00:00:00"},
        }
        version = row_to_version(row)
        assert version.metadata.created_at == datetime(2026, 1, 1, tzinfo=UTC)
        assert version.metadata.updated_at.tzinfo is not None


class TestExport:
    def test_json_export_shape(self, transfer, lineage):
        root, child = lineage
        payload = json.loads(transfer.export_versions(include_comparisons=True))
        assert set(payload) == {"exported_at", "versions", "branches", "comparisons"}
        assert [v["id"] for v in payload["versions"]] == [root, child]
        assert [b["name"] for b in payload["branches"]] == ["main"]
        assert len(payload["comparisons"]) == 1
        assert payload["comparisons"][0]["version1_id"] == root
        assert payload["comparisons"][0]["differences"][0]["field"] == "prompt"

    def test_partial_export_skips_branches_outside_selection(self, transfer, lineage):
        root, _ = lineage
        payload = json.loads(transfer.export_versions([root]))
        assert [v["id"] for v in payload["versions"]] == [root]
        assert payload["branches"] == []

    def test_csv_export(self, transfer, lineage):
        root, child = lineage
        text = transfer.export_versions(fmt="csv")
        rows = list(csv.DictReader(io.StringIO(text)))
        assert [r["id"] for r in rows] == [root, child]
        assert rows[0]["tags"] == "cute"
        assert rows[1]["parent_version_id"] == root

        bare_text = transfer.export_versions(fmt="csv", include_metadata=False)
        bare = list(csv.DictReader(io.StringIO(bare_text)))
        assert "title" not in bare[0]

    def test_unknown_id_and_format(self, transfer, lineage):
        with pytest.raises(NotFoundError):
            transfer.export_versions(["ver_missing"])
        with pytest.raises(ValidationError):
            transfer.export_versions(fmt="zip")


class TestImport:
    def test_replace_round_trip(self, transfer, store, branches, lineage):
        root, child = lineage
        exported = transfer.export_versions()
        before = {v.id: v for v in store.list_versions()}

        result = transfer.import_versions(exported, "replace")
        assert result.success
        assert {v.id: v for v in store.list_versions()} == before
        assert branches.get_by_name("main").head_version_id == child

    def test_append_conflicts_on_existing_ids(self, transfer, store, lineage):
        exported = transfer.export_versions()
        result = transfer.import_versions(exported, "append")
        assert result.error.code == "ConflictError"
        assert len(store) == 2

    def test_append_into_empty_store(self, transfer, store, branches, lineage, settings):
        from src.infrastructure.store.branch_manager import BranchManager
        from src.infrastructure.store.version_store import VersionStore

        exported = transfer.export_versions()
        target_store = VersionStore()
        target = TransferVersionsUseCase(
            target_store, BranchManager(target_store), settings, ComparisonService()
        )
        assert target.import_versions(exported, "append").success
        assert len(target_store) == 2
        assert target.branches.get_by_name("main") is not None

    def test_merge_overwrites_and_relinks(self, transfer, store, lineage):
        root, child = lineage
        payload = json.loads(transfer.export_versions([root, child]))
        payload["versions"][1]["prompt"] = "a cat, very detailed"
        # child list dropped from the parent; import re-links it
        payload["versions"][0]["child_version_ids"] = []
        payload["branches"] = []

        result = transfer.import_versions(json.dumps(payload), "merge")
        assert result.success, result.message
        assert store.require(child).prompt == "a cat, very detailed"
        assert store.require(root).child_version_ids == (child,)

    def test_invalid_graph_leaves_stores_untouched(self, transfer, store, branches, lineage):
        root, child = lineage
        payload = json.loads(transfer.export_versions())
        payload["versions"][1]["parent_version_id"] = "ver_missing"
        before_versions = store.list_versions()
        before_branches = branches.list_branches()

        result = transfer.import_versions(json.dumps(payload), "replace")
        assert result.error.code == "ValidationError"
        assert store.list_versions() == before_versions
        assert branches.list_branches() == before_branches

    def test_malformed_input(self, transfer, lineage):
        assert transfer.import_versions("not json").error.code == "ValidationError"
        assert transfer.import_versions('{"versions": [{"id": "x"}]}').error.code == "ValidationError"
        assert transfer.import_versions("{}", "overwrite").error.code == "ValidationError"

    def test_record_validation_can_be_skipped(self, transfer, store, lineage):
        payload = json.loads(transfer.export_versions())
        payload["versions"][1]["image_url"] = ""
        text = json.dumps(payload)
        assert transfer.import_versions(text, "replace").error.code == "ValidationError"
        assert transfer.import_versions(text, "replace", validate_data=False).success


def test_relink_children_restores_symmetry(make_version):
    root = make_version("v1", children=("ghost",))
    child = make_version("v2", parent="v1")
    relinked = relink_children({"v1": root, "v2": child})
    assert relinked["v1"].child_version_ids == ("v2",)
    assert relinked["v2"] is child
