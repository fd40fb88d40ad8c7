from __future__ import annotations

from collections.abc import Iterable

from src.domain.entities.image_version import ImageVersion, as_utc
from src.domain.entities.version_filter import VersionFilter


def filter_versions(
    versions: Iterable[ImageVersion], criteria: VersionFilter, default_branch: str = "main"
) -> list[ImageVersion]:
    out = []
    for v in versions:
        if _matches(v, criteria, default_branch):
            out.append(v)
    return out


def search_versions(versions: Iterable[ImageVersion], keyword: str) -> list[ImageVersion]:
    """Case-insensitive match on prompt, title, description, tags, model and provider."""
    items = list(versions)
    needle = keyword.strip().lower()
    if not needle:
        return items
    out = []
    for v in items:
        m = v.metadata
        haystack = [
            v.prompt,
            m.title or "",
            m.description or "",
            m.ai_parameters.model,
            m.ai_parameters.provider,
            *(t.name for t in m.tags),
        ]
        if any(needle in text.lower() for text in haystack):
            out.append(v)
    return out


def _matches(v: ImageVersion, c: VersionFilter, default_branch: str) -> bool:
    m = v.metadata
    if c.start is not None and m.created_at < as_utc(c.start):
        return False
    if c.end is not None and m.created_at > as_utc(c.end):
        return False
    if c.statuses and v.status not in c.statuses:
        return False
    if c.types and v.type not in c.types:
        return False
    if c.tags and not any(t.name in c.tags for t in m.tags):
        return False
    if c.branches and (v.branch_name or default_branch) not in c.branches:
        return False
    if c.search_keyword:
        keyword = c.search_keyword.lower()
        texts = (v.prompt, m.title or "", m.description or "")
        if not any(keyword in t.lower() for t in texts):
            return False
    if c.model and m.ai_parameters.model != c.model:
        return False
    if c.provider and m.ai_parameters.provider != c.provider:
        return False
    if c.min_file_size is not None and m.file_size < c.min_file_size:
        return False
    if c.max_file_size is not None and m.file_size > c.max_file_size:
        return False
    return True
