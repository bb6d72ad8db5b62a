"""
Domain structure analysis.

Walks a domain's web root once, then reads the small JSON metadata files
that installed components leave behind to work out which panels and
modules are present and whether newer versions exist. Results are rebuilt
on every call; nothing is cached because module files change often.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from rebrand_tool.core.exceptions import RebrandToolError
from rebrand_tool.discovery.batch_reader import BatchReader
from rebrand_tool.models.config import AnalyzerConfig
from rebrand_tool.models.results import DomainStructureAnalysis, InstalledModule, RemoteEntry
from rebrand_tool.registry.modules import DEFAULT_REGISTRY, ModuleHalf, ModuleRegistry
from rebrand_tool.utils.helpers import join_remote

ROOT_METADATA = "panel_info.json"
BRANDING_METADATA = "assets/branding_info.json"
SUPPORT_METADATA = "panel/support/module_info.json"
WEBVIEW_METADATA = "panel/webview/module_info.json"
MODULE_METADATA = "panel/{directory}/module_info.json"

# Components reported through dedicated fields rather than ``modules``
_SPECIAL_KEYS = frozenset(["cockpitpanel", "branding", "support", "webviews", "plexwebview"])


def _walk_strings(value: Any):
    if isinstance(value, dict):
        for item in value.values():
            yield from _walk_strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _walk_strings(item)
    elif isinstance(value, str):
        yield value


def _file_names(metadata: Dict[str, Any]) -> List[str]:
    names = []
    for entry in metadata.get("files") or []:
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, dict):
            names.append(str(entry.get("name") or entry.get("file") or entry.get("path") or ""))
    return names


def _has_plexed_file(metadata):
    return any("plexed.php" in name.lower() for name in _file_names(metadata))


def _has_plex_file(metadata):
    return any("plex" in name.lower() for name in _file_names(metadata))


def _has_plex_page_title(metadata):
    for page in metadata.get("pages") or []:
        if isinstance(page, dict) and "plex" in str(page.get("title", "")).lower():
            return True
    return False


def _has_plex_option(metadata):
    for page in metadata.get("pages") or []:
        if not isinstance(page, dict):
            continue
        for option in page.get("option") or []:
            if any("Plex" in text for text in _walk_strings(option)):
                return True
    return False


def _has_plex_anywhere(metadata):
    return "plex" in json.dumps(metadata, default=str).lower()


# Checked in order; the first hit wins. The last check is a deliberately
# loose whole-document substring match kept as the lowest-priority signal.
PLEX_CHECKS = (
    ("plexed.php file", _has_plexed_file),
    ("plex file", _has_plex_file),
    ("plex page title", _has_plex_page_title),
    ("plex option", _has_plex_option),
    ("plex substring", _has_plex_anywhere),
)


def detect_plex(metadata: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Decide whether webview metadata describes the Plex-enabled variant.

    Returns:
        The name of the first matching check, or None
    """
    if not isinstance(metadata, dict):
        return None
    for name, check in PLEX_CHECKS:
        if check(metadata):
            return name
    return None


def _version_of(metadata: Any) -> Optional[str]:
    if isinstance(metadata, dict) and metadata.get("version") is not None:
        return str(metadata["version"])
    return None


@dataclass
class _ModuleHit:
    key: str
    directory: str
    halves: List[str]


class DomainAnalyzer:
    """Builds a ``DomainStructureAnalysis`` for one web root."""

    def __init__(
        self,
        files,
        config: Optional[AnalyzerConfig] = None,
        registry: ModuleRegistry = DEFAULT_REGISTRY
    ):
        self.files = files
        self.config = config or AnalyzerConfig()
        self.registry = registry
        self.logger = logging.getLogger(f"rebrand_tool.discovery.{self.__class__.__name__}")

    def _installed(self, key: str, path: str, kind: str, metadata: Any) -> InstalledModule:
        version = _version_of(metadata)
        latest = self.registry.version(key)
        return InstalledModule(
            name=key,
            display_name=self.registry.display_name(key),
            type=kind,
            path=path,
            version=version,
            latest_version=latest,
            has_update=self.registry.has_update(key, version),
        )

    async def analyze(self, domain: str, web_root: str) -> DomainStructureAnalysis:
        """
        Analyze ``web_root`` of ``domain``.

        Never raises for remote failures; they are reported in ``error``.
        """
        analysis = DomainStructureAnalysis(domain=domain, web_root=web_root)
        self.logger.info(f"Analyzing structure for domain: {domain}")

        try:
            tree = await self.files.scan_tree(web_root, self.config.max_depth)
        except RebrandToolError as e:
            analysis.error = e.message
            return analysis
        if tree.get("error"):
            analysis.error = tree["error"]
            return analysis

        items: List[RemoteEntry] = tree["items"]
        top = {entry.name: entry for entry in items}
        analysis.top_level = [entry.name for entry in items]

        panel_children = self._child_dirs(top.get("panel"))
        api_children = self._child_dirs(top.get("api"))
        analysis.panel_dir_empty = not (top.get("panel") and top["panel"].children)
        analysis.api_dir_empty = not (top.get("api") and top["api"].children)

        hits = self._match_modules(panel_children, api_children)

        async def read_metadata(relative_path: str) -> Any:
            return await self.files.read_json(join_remote(web_root, relative_path))

        wanted = [ROOT_METADATA]
        if "assets" in top or "includes" in top:
            wanted.append(BRANDING_METADATA)
        if "support" in hits:
            wanted.append(SUPPORT_METADATA)
        if "webviews" in hits:
            wanted.append(WEBVIEW_METADATA)
        for key, hit in hits.items():
            if key not in _SPECIAL_KEYS and "panel" in hit.halves:
                wanted.append(MODULE_METADATA.format(directory=hit.directory))

        reader = BatchReader(
            read_metadata,
            concurrency=self.config.concurrency,
            batch_size=self.config.batch_size,
            retries=self.config.retries,
            retry_delay=self.config.retry_delay,
        )
        try:
            metadata = await reader.read_all(wanted)
        except RebrandToolError as e:
            analysis.error = e.message
            return analysis

        root_meta = metadata.get(ROOT_METADATA)
        if root_meta is not None:
            analysis.has_main_panel = True
            analysis.main_panel = self._installed("cockpitpanel", web_root, "panel", root_meta)

        if "assets" in top or "includes" in top:
            analysis.has_branding = True
            analysis.branding = self._installed(
                "branding", "assets", "branding", metadata.get(BRANDING_METADATA)
            )

        if "support" in hits:
            analysis.has_support = True
            analysis.support = self._installed(
                "support", "panel/support", "+".join(hits["support"].halves), metadata.get(SUPPORT_METADATA)
            )

        if "webviews" in hits:
            webview_meta = metadata.get(WEBVIEW_METADATA)
            signal = detect_plex(webview_meta)
            kind = "+".join(hits["webviews"].halves)
            if signal:
                self.logger.debug(f"Plex webview detected by {signal}")
                analysis.has_plex_webview = True
                analysis.webview = self._installed("plexwebview", "panel/webview", kind, webview_meta)
            else:
                analysis.has_webview = True
                analysis.webview = self._installed("webviews", "panel/webview", kind, webview_meta)

        for key, hit in hits.items():
            if key in _SPECIAL_KEYS:
                continue
            meta = metadata.get(MODULE_METADATA.format(directory=hit.directory))
            analysis.modules.append(
                self._installed(key, hit.directory, "+".join(hit.halves), meta)
            )

        self.logger.debug(
            f"Domain analysis complete for {domain}: {len(analysis.modules)} modules, "
            f"{reader.stats.succeeded}/{reader.stats.requested} metadata files read"
        )
        return analysis

    @staticmethod
    def _child_dirs(entry: Optional[RemoteEntry]) -> List[str]:
        if entry is None or not entry.is_directory or not entry.children:
            return []
        return [child.name for child in entry.children if child.is_directory]

    def _match_modules(self, panel_dirs: List[str], api_dirs: List[str]) -> Dict[str, _ModuleHit]:
        hits: Dict[str, _ModuleHit] = {}
        for half, directories in ((ModuleHalf.PANEL, panel_dirs), (ModuleHalf.API, api_dirs)):
            for directory in directories:
                key = self.registry.find_by_directory(directory, half)
                if key is None:
                    self.logger.debug(f"Unregistered {half.value} directory: {directory}")
                    key = directory
                hit = hits.setdefault(key, _ModuleHit(key=key, directory=directory, halves=[]))
                if half.value not in hit.halves:
                    hit.halves.append(half.value)
        return hits
