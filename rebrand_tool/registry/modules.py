"""
Static module registry.

Maps every known module key to its display name, icon, current version and
source path(s). Lookups never raise: unknown names degrade to defaults so
that anything found on disk can still be rendered.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


DEFAULT_VERSION = "2.5.1"
DEFAULT_ICON = "module"

_SUFFIX_RE = re.compile(r"\s+(API|Panel)$", re.IGNORECASE)


class ModuleCategory(str, Enum):
    """Groups shown in the module picker."""
    PANELS = "panels"
    OTT_APPS = "ottApps"
    VOD_APPS = "vodApps"
    VPN_APPS = "vpnApps"
    STORE_APPS = "storeApps"


class ModuleHalf(str, Enum):
    """The two independent halves of a regular module."""
    API = "api"
    PANEL = "panel"


@dataclass(frozen=True)
class PathSpec:
    """Either a single combined ``source_path`` or an ``api``/``panel`` pair."""
    source_path: Optional[str] = None
    api: Optional[str] = None
    panel: Optional[str] = None

    def __post_init__(self):
        if self.source_path and (self.api or self.panel):
            raise ValueError("source_path and api/panel paths are mutually exclusive")
        if not self.source_path and not (self.api and self.panel):
            raise ValueError("either source_path or both api and panel are required")

    @property
    def is_combined(self) -> bool:
        return self.source_path is not None

    def to_dict(self) -> Dict[str, str]:
        if self.is_combined:
            return {'source_path': self.source_path}
        return {'api': self.api, 'panel': self.panel}


@dataclass(frozen=True)
class ModuleDescriptor:
    """One registry entry."""
    key: str
    display_name: str
    version: str
    icon: str
    paths: PathSpec
    category: ModuleCategory

    @property
    def is_main_panel(self) -> bool:
        return self.paths.is_combined


def _module(key, display_name, version, icon, category, api=None, panel=None, source_path=None):
    if source_path is None:
        api = api or f"api/{key}"
        panel = panel or f"panel/{key}"
    return ModuleDescriptor(
        key=key,
        display_name=display_name,
        version=version,
        icon=icon,
        paths=PathSpec(source_path=source_path, api=api, panel=panel),
        category=category,
    )


_P = ModuleCategory.PANELS
_OTT = ModuleCategory.OTT_APPS
_VOD = ModuleCategory.VOD_APPS
_VPN = ModuleCategory.VPN_APPS
_STORE = ModuleCategory.STORE_APPS

BUILTIN_MODULES: Tuple[ModuleDescriptor, ...] = (
    # Panels
    _module("cockpitpanel", "Cockpit Panel", "2.5.1", "rebrands", _P, source_path="cockpitpanel"),
    _module("branding", "Branding", "1.0.0", "branding", _P, api="assets", panel="includes/db"),
    _module("support", "Support", "1.0.0", "telegram", _P),
    _module("multiproxy", "MultiProxy", "2.5.1", "multi", _P, api="api/proxy", panel="panel/proxy"),
    _module("webviews", "Webviews", "2.5.1", "android", _P, api="api/webview", panel="panel/webview"),
    _module("plexwebview", "Plex Webview", "1.0.0", "plex", _P,
            api="plex/api/webview", panel="plex/panel/webview"),
    # OTT applications
    _module("xciptv", "XCIPTV", "2.5.1", "xciptv", _OTT),
    _module("tivimate", "TiviMate", "2.5.1", "tivimate", _OTT),
    _module("smarterspro", "Smarters Pro", "2.5.1", "smarters", _OTT),
    _module("ibo", "IBO Solutions", "2.5.1", "ibosol", _OTT, api="api/ibosol", panel="panel/ibosol"),
    _module("nextv", "NexTV", "2.5.0", "nextv", _OTT),
    _module("neutro", "Neutro", "2.5.1", "neutro", _OTT),
    _module("neu", "Purple Neu", "2.5.0", "pneu", _OTT),
    _module("easy", "Purple Easy", "2.5.0", "peasy", _OTT),
    _module("sparkle", "Sparkle", "2.5.1", "sparkle", _OTT),
    _module("1stream", "1Stream", "2.5.0", "1stream", _OTT),
    _module("9xtream", "9Xtream", "2.5.0", "9xtream", _OTT),
    # VOD applications
    _module("flixvision", "FlixVision", "2.5.1", "flixvision", _VOD),
    _module("smarttube", "SmartTube", "2.5.0", "smarttube", _VOD),
    _module("stremio", "Stremio", "2.5.0", "stremio", _VOD),
    # VPN applications
    _module("orvpn", "ORVPN", "2.5.1", "orvpn", _VPN),
    _module("ipvanish", "IPVanish", "2.5.0", "ipvanish", _VPN),
    _module("pia", "PIA", "2.5.0", "pia", _VPN),
    # Store applications
    _module("downloader", "Downloader", "2.5.0", "downloader", _STORE),
    _module("sh9store", "SH9 Store", "2.5.0", "sh9", _STORE, api="api/s9hstore", panel="panel/s9hstore"),
)


def parse_version(version: str) -> List[int]:
    """Split a dotted version into integers; non-numeric parts count as 0."""
    parts = []
    for part in str(version or "").strip().lstrip("vV").split("."):
        match = re.match(r"\d+", part)
        parts.append(int(match.group()) if match else 0)
    return parts


def compare_versions(left: str, right: str) -> int:
    """
    Compare two dotted-numeric versions component-wise.

    Missing trailing components are treated as zero.

    Returns:
        -1 if ``left < right``, 0 if equal, 1 if ``left > right``
    """
    a, b = parse_version(left), parse_version(right)
    length = max(len(a), len(b))
    a += [0] * (length - len(a))
    b += [0] * (length - len(b))
    return (a > b) - (a < b)


def has_update(installed: Optional[str], latest: Optional[str]) -> bool:
    """True iff ``installed`` is strictly older than ``latest``."""
    if not installed or not latest:
        return False
    return compare_versions(installed, latest) < 0


class ModuleRegistry:
    """Read-only lookup table over module descriptors."""

    def __init__(self, modules: Iterable[ModuleDescriptor] = BUILTIN_MODULES):
        self._modules: Dict[str, ModuleDescriptor] = {}
        for module in modules:
            if module.key in self._modules:
                raise ValueError(f"Duplicate module key: {module.key}")
            self._modules[module.key] = module

        self._by_display_name = {m.display_name: m.key for m in self._modules.values()}
        self._by_directory: Dict[Tuple[ModuleHalf, str], str] = {}
        for module in self._modules.values():
            if module.paths.is_combined:
                continue
            for half, path in ((ModuleHalf.API, module.paths.api), (ModuleHalf.PANEL, module.paths.panel)):
                self._by_directory.setdefault((half, path.rstrip("/").split("/")[-1]), module.key)

    def __contains__(self, key: str) -> bool:
        return self.resolve(key) is not None

    def __iter__(self):
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)

    def resolve(self, key: Optional[str]) -> Optional[ModuleDescriptor]:
        if not key:
            return None
        return self._modules.get(key.lower())

    def all(self) -> List[ModuleDescriptor]:
        return list(self._modules.values())

    def keys(self) -> List[str]:
        return list(self._modules)

    def find_by_display_name(self, display_name: str) -> Optional[str]:
        """Reverse lookup of a module key by its exact display name."""
        return self._by_display_name.get(display_name)

    def find_by_directory(self, dir_name: str, half: ModuleHalf) -> Optional[str]:
        """
        Map a folder found under ``api/`` or ``panel/`` to its module key.

        Folder names that are themselves module keys resolve directly.
        """
        key = self._by_directory.get((ModuleHalf(half), dir_name))
        if key:
            return key
        module = self.resolve(dir_name)
        return module.key if module else None

    def display_name(self, name: Optional[str]) -> str:
        module = self.resolve(name)
        return module.display_name if module else (name or "")

    def icon(self, name: Optional[str]) -> str:
        module = self.resolve(name)
        return module.icon if module else DEFAULT_ICON

    def version(self, name: Optional[str]) -> str:
        """
        Current version for a module key or label.

        Labels such as ``"xciptv API"`` or ``"Cockpit Panel"`` are normalized
        by stripping a trailing ``API``/``Panel`` and lowercasing.
        """
        if not name:
            return DEFAULT_VERSION
        module = self.resolve(_SUFFIX_RE.sub("", name))
        return module.version if module else DEFAULT_VERSION

    def category_of(self, name: str) -> Optional[ModuleCategory]:
        module = self.resolve(name)
        return module.category if module else None

    def categories(self) -> Dict[str, List[str]]:
        """Module keys grouped by category, in table order."""
        grouped: Dict[str, List[str]] = {c.value: [] for c in ModuleCategory}
        for module in self._modules.values():
            grouped[module.category.value].append(module.key)
        return grouped

    def in_category(self, category: str) -> List[ModuleDescriptor]:
        category = ModuleCategory(category)
        return [m for m in self._modules.values() if m.category == category]

    def path_map(self) -> Dict[str, Dict[str, str]]:
        return {key: m.paths.to_dict() for key, m in self._modules.items()}

    def versions(self) -> Dict[str, str]:
        return {key: m.version for key, m in self._modules.items()}

    def icons(self) -> Dict[str, str]:
        return {key: m.icon for key, m in self._modules.items()}

    def has_update(self, name: str, installed_version: Optional[str]) -> bool:
        return has_update(installed_version, self.version(name))


DEFAULT_REGISTRY = ModuleRegistry()
