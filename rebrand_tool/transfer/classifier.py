"""
Ordered classification of transfer items by name and path.

The rules are checked top to bottom and the first match wins, so the
priority between overlapping names (``plex`` before ``webview``) lives in
one list.
"""

from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from rebrand_tool.models.results import TransferItemResult


class ItemCategory(str, Enum):
    """Kinds of transferred items, in display order."""
    MAIN_PANEL = "main_panel"
    PLEX_WEBVIEW = "plex_webview"
    WEBVIEWS = "webviews"
    BRANDING = "branding"
    SUPPORT = "support"
    MODULES = "modules"


Predicate = Callable[[str, str], bool]


def _contains(*needles: str) -> Predicate:
    def predicate(name: str, path: str) -> bool:
        return any(n in name or n in path for n in needles)
    return predicate


def _branding(name: str, path: str) -> bool:
    return "branding" in name or path.startswith("assets") or path.startswith("includes/db")


CLASSIFICATION_RULES: Tuple[Tuple[Predicate, ItemCategory], ...] = (
    (_contains("cockpit"), ItemCategory.MAIN_PANEL),
    (_contains("plex"), ItemCategory.PLEX_WEBVIEW),
    (_contains("webview"), ItemCategory.WEBVIEWS),
    (_branding, ItemCategory.BRANDING),
    (_contains("support"), ItemCategory.SUPPORT),
    (lambda name, path: True, ItemCategory.MODULES),
)


def classify(name: Optional[str], path: Optional[str] = None) -> ItemCategory:
    """Return the category of the first rule matching ``name`` or ``path``."""
    name = (name or "").lower()
    path = (path or "").lower().strip("/")
    for predicate, category in CLASSIFICATION_RULES:
        if predicate(name, path):
            return category
    return ItemCategory.MODULES


def group_results(results: Iterable[TransferItemResult]) -> Dict[ItemCategory, List[TransferItemResult]]:
    """Group transfer results by category, omitting empty groups."""
    grouped: Dict[ItemCategory, List[TransferItemResult]] = {c: [] for c in ItemCategory}
    for result in results:
        grouped[classify(result.name, result.source or result.path)].append(result)
    return {category: items for category, items in grouped.items() if items}
