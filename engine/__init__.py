"""
Engine module - Topology reconstruction and reconciliation

Contains:
- tree: Spanning tree reconstruction from LINKS snapshots
- reconcile: Comparison against the routing map
"""

from .tree import TreeBuilder, TreeOrder, TreeBuildError, NoRootError
from .reconcile import Reconciler, ReconcileResult

__all__ = [
    'TreeBuilder',
    'TreeOrder',
    'TreeBuildError',
    'NoRootError',
    'Reconciler',
    'ReconcileResult',
]
