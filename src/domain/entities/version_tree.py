from __future__ import annotations

from dataclasses import dataclass, field

from src.domain.entities.branch import Branch
from src.domain.entities.image_version import ImageVersion


@dataclass
class VersionTreeNode:
    version: ImageVersion
    depth: int
    children: list[VersionTreeNode] = field(default_factory=list)
    is_expanded: bool = True
    branch_info: Branch | None = None

    def iter_nodes(self):
        """Pre-order walk without recursion."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass
class VersionTree:
    root_version: ImageVersion
    tree: VersionTreeNode
    branches: list[Branch]
    total_versions: int
    max_depth: int
