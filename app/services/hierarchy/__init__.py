"""
Hierarchy services package.

- tree: in-memory ReferralTree arena with cycle-safe traversals
- hierarchy_store: edge-backed parent/child store and tree loaders
"""

from app.services.hierarchy.hierarchy_store import BackfillResult, HierarchyStore
from app.services.hierarchy.tree import ReferralTree, TreeNode

__all__ = [
    "HierarchyStore",
    "BackfillResult",
    "ReferralTree",
    "TreeNode",
]
