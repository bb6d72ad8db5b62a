"""
Resolution of selected items into source/destination path pairs.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from rebrand_tool.models.results import ItemType
from rebrand_tool.transfer.classifier import ItemCategory, classify
from rebrand_tool.transfer.selection import SelectedItem
from rebrand_tool.utils.helpers import join_remote


@dataclass(frozen=True)
class TransferPlanItem:
    """One resolved copy operation."""
    name: str
    key: str
    type: ItemType
    category: ItemCategory
    source: str
    destination: str
    is_directory: Optional[bool] = None
    create_destination: bool = False

    def to_dict(self):
        return {
            'name': self.name,
            'key': self.key,
            'type': self.type.value,
            'category': self.category.value,
            'source': self.source,
            'destination': self.destination,
            'is_directory': self.is_directory,
            'create_destination': self.create_destination,
        }


def resolve_destination(item: SelectedItem, domain_root: str) -> str:
    """
    Destination for one selected item under ``domain_root``.

    The main panel lands directly in the web root, the Plex webview halves
    land in the regular ``api/webview`` and ``panel/webview`` folders, and
    everything else keeps its relative source path unchanged.
    """
    domain_root = domain_root.rstrip("/") or "/"
    if item.is_main_panel_placement:
        return domain_root

    if classify(item.display_name, item.source_path) == ItemCategory.PLEX_WEBVIEW:
        if item.type == ItemType.MODULE_API:
            return join_remote(domain_root, "api/webview")
        if item.type == ItemType.MODULE_PANEL:
            return join_remote(domain_root, "panel/webview")

    return join_remote(domain_root, item.source_path)


class TransferPlanner:
    """Turns a selection into an ordered list of ``TransferPlanItem``."""

    def __init__(self, source_root: str):
        self.source_root = source_root

    def plan_item(self, item: SelectedItem, domain_root: str) -> TransferPlanItem:
        category = classify(item.display_name, item.source_path)
        destination = resolve_destination(item, domain_root)
        return TransferPlanItem(
            name=item.display_name,
            key=item.key,
            type=item.type,
            category=category,
            source=join_remote(self.source_root, item.source_path),
            destination=destination,
            is_directory=True if item.is_main_panel_placement else None,
            create_destination=category == ItemCategory.PLEX_WEBVIEW,
        )

    def plan(self, items: Iterable[SelectedItem], domain_root: str) -> List[TransferPlanItem]:
        return [self.plan_item(item, domain_root) for item in items]
