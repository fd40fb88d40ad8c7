from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str
    default_branch_name: str
    auto_create_default_branch: bool
    max_tree_depth: int
    max_versions_to_keep: int
    top_n_ranking: int


def load_settings() -> Settings:
    return Settings(
        env=os.getenv("ENV", "development"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        default_branch_name=os.getenv("DEFAULT_BRANCH_NAME", "main"),
        auto_create_default_branch=os.getenv("AUTO_CREATE_DEFAULT_BRANCH", "1") == "1",
        max_tree_depth=int(os.getenv("MAX_TREE_DEPTH", "100")),
        max_versions_to_keep=int(os.getenv("MAX_VERSIONS_TO_KEEP", "50")),
        top_n_ranking=int(os.getenv("TOP_N_RANKING", "10")),
    )


# Read once per process; env changes after first use are not picked up
_SETTINGS_SINGLETON: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS_SINGLETON
    if _SETTINGS_SINGLETON is None:
        _SETTINGS_SINGLETON = load_settings()
    return _SETTINGS_SINGLETON
