import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("DEFAULT_BRANCH_NAME", "main")
os.environ.setdefault("AUTO_CREATE_DEFAULT_BRANCH", "1")

NOW = datetime(2026, 1, 31, 12, 0, tzinfo=UTC)


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from src.main import create_app

    app = create_app()
    return TestClient(app)


@pytest.fixture()
def api(client):
    """Client over an empty graph."""
    from src.infrastructure.api.dependencies import reset_stores

    reset_stores()
    yield client
    reset_stores()


@pytest.fixture()
def settings():
    from src.infrastructure.config import Settings

    return Settings(
        env="test",
        log_level="WARNING",
        default_branch_name="main",
        auto_create_default_branch=True,
        max_tree_depth=100,
        max_versions_to_keep=50,
        top_n_ranking=10,
    )


@pytest.fixture()
def store():
    from src.infrastructure.store.version_store import VersionStore

    return VersionStore()


@pytest.fixture()
def branches(store):
    from src.infrastructure.store.branch_manager import BranchManager

    return BranchManager(store, default_branch_name="main")


@pytest.fixture()
def draft():
    """Factory for VersionDraft with sensible defaults."""
    from src.domain.entities.image_version import VersionDraft

    def make(prompt: str = "a cat", **kwargs):
        kwargs.setdefault("image_url", "https://images.example/a.png")
        return VersionDraft(prompt=prompt, **kwargs)

    return make


@pytest.fixture()
def make_version():
    """Factory for standalone ImageVersion records (not stored)."""
    from src.domain.entities.image_version import (
        AIParameters,
        Dimensions,
        ImageVersion,
        VersionMetadata,
        VersionStatus,
        VersionType,
    )

    def make(
        version_id: str = "v1",
        prompt: str = "a cat",
        parent: str | None = None,
        root: str | None = None,
        children: tuple[str, ...] = (),
        created_at: datetime | None = None,
        **meta,
    ):
        created = created_at or NOW - timedelta(hours=1)
        meta.setdefault("ai_parameters", AIParameters(model="flux", provider="pollinations"))
        meta.setdefault("dimensions", Dimensions(1024, 1024))
        status = meta.pop("status", VersionStatus.ACTIVE)
        vtype = meta.pop("type", VersionType.BRANCH if parent else VersionType.ORIGINAL)
        return ImageVersion(
            id=version_id,
            version_number=meta.pop("version_number", 1),
            status=status,
            type=vtype,
            root_version_id=root or (version_id if parent is None else "v1"),
            prompt=prompt,
            original_prompt=prompt,
            image_url=f"https://images.example/{version_id}.png",
            parent_version_id=parent,
            child_version_ids=children,
            branch_name=meta.pop("branch_name", None),
            metadata=VersionMetadata(created_at=created, updated_at=created, **meta),
        )

    return make
