from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

PROTECTED_BRANCH_NAMES = frozenset({"main", "master"})

BRANCH_COLORS = (
    "#3B82F6",  # blue
    "#10B981",  # green
    "#F59E0B",  # yellow
    "#EF4444",  # red
    "#8B5CF6",  # purple
    "#F97316",  # orange
    "#06B6D4",  # cyan
    "#84CC16",  # lime
    "#EC4899",  # pink
    "#6B7280",  # gray
)


def branch_color(name: str) -> str:
    """Pick a palette color from a 32-bit string hash of the branch name.

    Same name always maps to the same color.
    """
    h = 0
    for ch in name:
        h = (ord(ch) + ((h << 5) - h)) & 0xFFFFFFFF
    # interpret as signed 32-bit before taking abs, like a JS hash loop
    if h >= 0x80000000:
        h -= 0x100000000
    return BRANCH_COLORS[abs(h) % len(BRANCH_COLORS)]


def is_protected(name: str) -> bool:
    return name.strip().lower() in PROTECTED_BRANCH_NAMES


@dataclass(frozen=True)
class Branch:
    id: str
    name: str
    root_version_id: str
    head_version_id: str  # always a member of version_ids
    version_ids: tuple[str, ...]
    color: str
    created_at: datetime
    is_active: bool = True
    description: str | None = None

    @property
    def is_protected(self) -> bool:
        return is_protected(self.name)
