"""
Tests for the application use cases and their OperationResult contract.
"""
from __future__ import annotations

from dataclasses import replace

import pytest

from src.application.use_cases.compare_versions import CompareVersionsUseCase
from src.application.use_cases.manage_branches import ManageBranchesUseCase
from src.application.use_cases.manage_versions import ManageVersionsUseCase
from src.application.use_cases.version_history import VersionHistoryUseCase
from src.domain.entities.comparison import ComparisonType
from src.domain.errors import NotFoundError, ValidationError
from src.domain.services.comparison_service import ComparisonService
from src.domain.services.statistics_service import StatisticsService


@pytest.fixture
def versions_uc(store, branches, settings):
    return ManageVersionsUseCase(store, branches, settings)


@pytest.fixture
def branches_uc(branches):
    return ManageBranchesUseCase(branches)


@pytest.fixture
def history_uc(store, branches, settings):
    return VersionHistoryUseCase(store, branches, settings, StatisticsService())


class TestManageVersions:
    """Test version use cases."""

    def test_first_root_creates_default_branch(self, versions_uc, branches, draft):
        result = versions_uc.create(draft("a cat"))
        assert result.success
        main = branches.get_by_name("main")
        assert main is not None
        assert main.head_version_id == result.version_id
        assert branches.active_branch_id == main.id

    def test_child_of_active_head_advances_branch(self, versions_uc, store, branches, draft):
        root_id = versions_uc.create(draft("a cat")).version_id
        child_id = versions_uc.create(draft("a cat, detailed", parent_version_id=root_id)).version_id
        main = branches.get_by_name("main")
        assert main.head_version_id == child_id
        assert main.version_ids == (root_id, child_id)
        assert store.require(child_id).branch_name == "main"

    def test_child_of_other_version_leaves_head(self, versions_uc, branches, draft):
        root_id = versions_uc.create(draft("a cat")).version_id
        first = versions_uc.create(draft("b", parent_version_id=root_id)).version_id
        versions_uc.create(draft("c", parent_version_id=root_id))
        assert branches.get_by_name("main").head_version_id == first

    def test_failure_result_carries_error_code(self, versions_uc, store, draft):
        result = versions_uc.create(draft("a cat", parent_version_id="ver_missing"))
        assert not result.success
        assert result.error.code == "ValidationError"
        assert len(store) == 0

    def test_update_rejects_structural_field(self, versions_uc, draft):
        vid = versions_uc.create(draft()).version_id
        result = versions_uc.update(vid, {"parent_version_id": "x"})
        assert result.error.code == "ValidationError"
        assert versions_uc.update(vid, {"title": "Cat"}).success

    def test_delete_guards(self, versions_uc, branches, draft):
        root_id = versions_uc.create(draft()).version_id
        child_id = versions_uc.create(draft("b", parent_version_id=root_id)).version_id

        # root has a child
        assert versions_uc.delete(root_id).error.code == "ConflictError"
        # child is the head of main
        assert versions_uc.delete(child_id).error.code == "ConflictError"
        assert versions_uc.delete("ver_missing").error.code == "NotFoundError"

        leaf_id = versions_uc.create(draft("c", parent_version_id=root_id)).version_id
        result = versions_uc.delete(leaf_id)
        assert result.success
        assert leaf_id not in branches.get_by_name("main").version_ids

    def test_duplicate(self, versions_uc, store, draft):
        root_id = versions_uc.create(draft(title="Cat")).version_id
        result = versions_uc.duplicate(root_id)
        assert result.success
        assert store.require(result.version_id).metadata.title == "Cat (copy)"
        assert versions_uc.duplicate("ver_missing").error.code == "NotFoundError"

    def test_auto_default_branch_can_be_disabled(self, store, branches, settings, draft):
        uc = ManageVersionsUseCase(store, branches, replace(settings, auto_create_default_branch=False))
        uc.create(draft())
        assert branches.list_branches() == []


class TestManageBranches:
    """Test branch use cases, including the delete/switch scenario."""

    def test_feature_branch_delete_requires_switch(self, versions_uc, branches_uc, draft):
        root_id = versions_uc.create(draft("a cat")).version_id
        created = branches_uc.create("feature", root_id)
        assert created.success
        assert branches_uc.branches.active_branch_id == created.branch_id

        failed = branches_uc.delete("feature")
        assert not failed.success
        assert failed.error.code == "ConflictError"

        assert branches_uc.switch("main").success
        deleted = branches_uc.delete("feature")
        assert deleted.success
        assert branches_uc.branches.get(created.branch_id) is None

    def test_merge_always_fails(self, versions_uc, branches_uc, draft):
        root_id = versions_uc.create(draft()).version_id
        branches_uc.create("feature", root_id)
        result = branches_uc.merge("feature", "main")
        assert not result.success
        assert result.error.code == "UnsupportedOperationError"

    def test_resolve_by_id_or_name(self, versions_uc, branches_uc, draft):
        versions_uc.create(draft())
        main = branches_uc.resolve("Main")
        assert branches_uc.resolve(main.id) == main
        with pytest.raises(NotFoundError):
            branches_uc.resolve("nope")

    def test_rename_and_retire_results(self, versions_uc, branches_uc, draft):
        root_id = versions_uc.create(draft()).version_id
        feature_id = branches_uc.create("feature", root_id).branch_id
        branches_uc.switch("main")
        assert branches_uc.rename("feature", "experiment").success
        assert branches_uc.rename("main", "trunk").error.code == "ConflictError"
        assert branches_uc.retire(feature_id).success
        assert branches_uc.switch(feature_id).error.code == "ConflictError"
        assert branches_uc.rename("ghost", "x").error.code == "NotFoundError"

    def test_detect_conflicts_by_name(self, versions_uc, branches_uc, draft):
        root_id = versions_uc.create(draft("a cat")).version_id
        other_id = versions_uc.create(draft("a dog", parent_version_id=root_id)).version_id
        branches_uc.create("feature", other_id)
        conflicts = branches_uc.detect_conflicts("feature", "main")
        # main advanced to the dog as well, so heads match
        assert conflicts == []

        branches_uc.switch("main")
        versions_uc.create(draft("a bird", parent_version_id=other_id))
        conflicts = branches_uc.detect_conflicts("feature", "main")
        assert [c.field for c in conflicts] == ["prompt"]
        assert conflicts[0].old_value == "a bird"
        assert conflicts[0].new_value == "a dog"


class TestCompareVersions:
    def test_compare_and_report(self, versions_uc, store, draft):
        v1 = versions_uc.create(draft("a cat")).version_id
        v2 = versions_uc.create(draft("a cat, detailed", parent_version_id=v1)).version_id
        uc = CompareVersionsUseCase(store, ComparisonService())
        comparison = uc.execute(v1, v2, ComparisonType.AUTO)
        assert [d.field for d in comparison.differences] == ["prompt"]
        assert "Automatic comparison" in uc.report(comparison)

    def test_unknown_version(self, store):
        uc = CompareVersionsUseCase(store, ComparisonService())
        with pytest.raises(NotFoundError):
            uc.execute("a", "b")


class TestVersionHistory:
    def test_tree_and_scoped_statistics(self, versions_uc, history_uc, draft):
        root = versions_uc.create(draft("a cat")).version_id
        versions_uc.create(draft("b", parent_version_id=root))
        versions_uc.create(draft("unrelated"))

        tree = history_uc.build_version_tree(root)
        assert tree.total_versions == 2
        assert tree.tree.branch_info is None
        assert tree.tree.children[0].branch_info.name == "main"

        assert history_uc.get_statistics().total_versions == 3
        assert history_uc.get_statistics(root).total_versions == 2
        with pytest.raises(NotFoundError):
            history_uc.build_version_tree("ver_missing")

    def test_load_history_and_queries(self, versions_uc, history_uc, draft):
        root = versions_uc.create(draft("a cat", title="Cat")).version_id
        bundle = history_uc.load_history(root)
        assert bundle.settings.default_branch_name == "main"
        assert bundle.stats.total_versions == 1
        assert [v.id for v in history_uc.search("cat")] == [root]
        with pytest.raises(NotFoundError):
            history_uc.load_history("ver_missing")

    def test_export_statistics(self, versions_uc, history_uc, draft):
        versions_uc.create(draft("a cat"))
        as_json = history_uc.export_statistics("json")
        assert '"total_versions": 1' in as_json
        as_csv = history_uc.export_statistics("csv")
        assert as_csv.splitlines()[0] == "metric,value"
        assert "total_versions,1" in as_csv.splitlines()
        with pytest.raises(ValidationError):
            history_uc.export_statistics("zip")
