"""
The operator's current selection of modules and panels to transfer.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from rebrand_tool.core.exceptions import ConfigurationError
from rebrand_tool.models.results import ItemType
from rebrand_tool.registry.modules import DEFAULT_REGISTRY, ModuleHalf, ModuleRegistry


@dataclass(frozen=True)
class SelectedItem:
    """A user-chosen unit of transfer."""
    key: str
    type: ItemType
    display_name: str
    source_path: str
    module: str
    is_main_panel_placement: bool = False

    @property
    def half(self) -> Optional[ModuleHalf]:
        if self.type == ItemType.MODULE_API:
            return ModuleHalf.API
        if self.type == ItemType.MODULE_PANEL:
            return ModuleHalf.PANEL
        return None

    def to_dict(self):
        return {
            'key': self.key,
            'type': self.type.value,
            'display_name': self.display_name,
            'source_path': self.source_path,
            'module': self.module,
            'is_main_panel_placement': self.is_main_panel_placement,
        }


def items_for_module(module_key: str, registry: ModuleRegistry = DEFAULT_REGISTRY) -> List[SelectedItem]:
    """
    Expand a registry entry into its selectable items.

    A combined entry (the main panel) yields one item keyed by the module
    key; every other entry yields an ``<key>-api`` and a ``<key>-panel`` item.

    Raises:
        ConfigurationError: If the module key is unknown
    """
    module = registry.resolve(module_key)
    if module is None:
        raise ConfigurationError(f"Unknown module: {module_key}", details={'module': module_key})

    if module.paths.is_combined:
        return [SelectedItem(
            key=module.key,
            type=ItemType.PANEL,
            display_name=module.display_name,
            source_path=module.paths.source_path,
            module=module.key,
            is_main_panel_placement=True,
        )]

    return [
        SelectedItem(
            key=f"{module.key}-api",
            type=ItemType.MODULE_API,
            display_name=f"{module.key} API",
            source_path=module.paths.api,
            module=module.key,
        ),
        SelectedItem(
            key=f"{module.key}-panel",
            type=ItemType.MODULE_PANEL,
            display_name=f"{module.key} Panel",
            source_path=module.paths.panel,
            module=module.key,
        ),
    ]


class SelectionSet:
    """Insertion-ordered map of selected items keyed by item key."""

    def __init__(self, registry: ModuleRegistry = DEFAULT_REGISTRY):
        self.registry = registry
        self._items: Dict[str, SelectedItem] = {}
        self.logger = logging.getLogger(f"rebrand_tool.transfer.{self.__class__.__name__}")

    def select(self, module_key: str) -> List[SelectedItem]:
        items = items_for_module(module_key, self.registry)
        for item in items:
            self._items[item.key] = item
        self.logger.debug(f"Selected {module_key}: {[i.key for i in items]}")
        return items

    def deselect(self, module_key: str) -> None:
        key = module_key.lower()
        for item_key in (key, f"{key}-api", f"{key}-panel"):
            self._items.pop(item_key, None)

    def select_all(self, category: Optional[str] = None) -> None:
        modules = self.registry.in_category(category) if category else self.registry.all()
        for module in modules:
            self.select(module.key)

    def clear(self) -> None:
        self._items.clear()

    def items(self) -> List[SelectedItem]:
        return list(self._items.values())

    def modules(self) -> List[str]:
        seen = []
        for item in self._items.values():
            if item.module not in seen:
                seen.append(item.module)
        return seen

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[SelectedItem]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)
