from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from src.domain.entities.branch import Branch
from src.domain.entities.image_version import ImageVersion
from src.domain.entities.version_tree import VersionTree, VersionTreeNode

logger = logging.getLogger(__name__)


def build_version_tree(
    versions: Mapping[str, ImageVersion],
    branches: Iterable[Branch],
    root_version_id: str,
    max_depth: int | None = None,
) -> VersionTree | None:
    """Project a lineage into a tree of VersionTreeNode.

    Children keep the insertion order of child_version_ids. Nodes deeper than
    max_depth (root is depth 0) are left out. Children that are missing from
    the snapshot, or whose parent link points elsewhere, are skipped.

    Returns None when root_version_id is unknown.
    """
    root = versions.get(root_version_id)
    if root is None:
        return None
    if root.parent_version_id is not None:
        # a member id was passed; anchor on its lineage root
        root = versions.get(root.root_version_id)
        if root is None:
            return None

    branch_list = list(branches)
    head_index: dict[str, Branch] = {}
    for b in branch_list:
        head_index.setdefault(b.head_version_id, b)

    tree = VersionTreeNode(version=root, depth=0, branch_info=head_index.get(root.id))
    seen = {root.id}
    stack = [tree]
    while stack:
        node = stack.pop()
        if max_depth is not None and node.depth >= max_depth:
            continue
        for child_id in node.version.child_version_ids:
            child = versions.get(child_id)
            if child is None or child.parent_version_id != node.version.id:
                logger.warning(
                    "Skipping orphaned child %s of version %s", child_id, node.version.id
                )
                continue
            if child_id in seen:
                continue
            seen.add(child_id)
            child_node = VersionTreeNode(
                version=child, depth=node.depth + 1, branch_info=head_index.get(child_id)
            )
            node.children.append(child_node)
            stack.append(child_node)

    lineage = [v for v in versions.values() if v.root_version_id == root.id]
    lineage_ids = {v.id for v in lineage}
    return VersionTree(
        root_version=root,
        tree=tree,
        branches=[b for b in branch_list if b.head_version_id in lineage_ids],
        total_versions=len(lineage),
        max_depth=max((ancestor_depth(versions, v) for v in lineage), default=0),
    )


def ancestor_depth(versions: Mapping[str, ImageVersion], version: ImageVersion) -> int:
    """Number of parent hops from version to the first parentless (or missing) ancestor."""
    depth = 0
    current = version
    limit = len(versions)
    while current.parent_version_id is not None and depth <= limit:
        parent = versions.get(current.parent_version_id)
        depth += 1
        if parent is None:
            break
        current = parent
    return depth
