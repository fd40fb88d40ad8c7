from datetime import UTC, datetime, timedelta

import pytest

from src.domain.entities.image_version import AIParameters, VersionStatus, VersionTag
from src.domain.entities.version_filter import VersionFilter
from src.domain.services.version_query import filter_versions, search_versions

NOW = datetime(2026, 1, 31, 12, 0, tzinfo=UTC)


@pytest.fixture
def versions(make_version):
    return [
        make_version(
            "v1",
            "a cat on a sofa",
            title="Sofa cat",
            tags=(VersionTag("t1", "cute"),),
            file_size=100,
            created_at=NOW - timedelta(days=3),
        ),
        make_version(
            "v2",
            "a dog in the park",
            parent="v1",
            branch_name="feature",
            status=VersionStatus.ARCHIVED,
            file_size=500,
            created_at=NOW - timedelta(days=1),
            ai_parameters=AIParameters(model="sdxl", provider="replicate"),
        ),
        make_version(
            "v3",
            "abstract shapes",
            description="Generated for the Cat Gallery",
            file_size=1000,
            created_at=NOW,
        ),
    ]


def _ids(items):
    return [v.id for v in items]


def test_empty_filter_keeps_everything(versions):
    assert _ids(filter_versions(versions, VersionFilter())) == ["v1", "v2", "v3"]


def test_date_range(versions):
    criteria = VersionFilter(start=NOW - timedelta(days=2), end=NOW - timedelta(hours=1))
    assert _ids(filter_versions(versions, criteria)) == ["v2"]


def test_naive_bounds_are_read_as_utc(versions):
    start = (NOW - timedelta(days=2)).replace(tzinfo=None)
    end = (NOW - timedelta(hours=1)).replace(tzinfo=None)
    criteria = VersionFilter(start=start, end=end)
    assert _ids(filter_versions(versions, criteria)) == ["v2"]


def test_status_and_tags(versions):
    assert _ids(filter_versions(versions, VersionFilter(statuses=(VersionStatus.ARCHIVED,)))) == ["v2"]
    assert _ids(filter_versions(versions, VersionFilter(tags=("cute", "other")))) == ["v1"]


def test_missing_branch_name_counts_as_default(versions):
    assert _ids(filter_versions(versions, VersionFilter(branches=("main",)))) == ["v1", "v3"]
    assert _ids(filter_versions(versions, VersionFilter(branches=("feature",)))) == ["v2"]


def test_keyword_model_provider_and_size(versions):
    assert _ids(filter_versions(versions, VersionFilter(search_keyword="CAT"))) == ["v1", "v3"]
    assert _ids(filter_versions(versions, VersionFilter(model="sdxl"))) == ["v2"]
    assert _ids(filter_versions(versions, VersionFilter(provider="replicate"))) == ["v2"]
    criteria = VersionFilter(min_file_size=200, max_file_size=800)
    assert _ids(filter_versions(versions, criteria)) == ["v2"]


def test_search_matches_tags_and_model(versions):
    assert _ids(search_versions(versions, "cute")) == ["v1"]
    assert _ids(search_versions(versions, "SDXL")) == ["v2"]
    assert _ids(search_versions(versions, "gallery")) == ["v3"]


def test_blank_search_returns_all(versions):
    assert _ids(search_versions(versions, "  ")) == ["v1", "v2", "v3"]
