"""
Transfer planning and execution for the Rebrand Tool.

This module resolves selected modules into remote copy operations and
executes them sequentially over one remote session.
"""

from rebrand_tool.transfer.selection import SelectedItem, SelectionSet, items_for_module
from rebrand_tool.transfer.classifier import (
    CLASSIFICATION_RULES,
    ItemCategory,
    classify,
    group_results,
)
from rebrand_tool.transfer.planner import TransferPlanItem, TransferPlanner, resolve_destination
from rebrand_tool.transfer.executor import TransferExecutor

__all__ = [
    "SelectedItem",
    "SelectionSet",
    "items_for_module",
    "CLASSIFICATION_RULES",
    "ItemCategory",
    "classify",
    "group_results",
    "TransferPlanItem",
    "TransferPlanner",
    "resolve_destination",
    "TransferExecutor",
]
