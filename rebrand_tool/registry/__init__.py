"""
Module registry for the Rebrand Tool.
"""

from rebrand_tool.registry.modules import (
    DEFAULT_ICON,
    DEFAULT_REGISTRY,
    DEFAULT_VERSION,
    BUILTIN_MODULES,
    ModuleCategory,
    ModuleDescriptor,
    ModuleHalf,
    ModuleRegistry,
    PathSpec,
    compare_versions,
    has_update,
    parse_version,
)

__all__ = [
    "DEFAULT_ICON",
    "DEFAULT_REGISTRY",
    "DEFAULT_VERSION",
    "BUILTIN_MODULES",
    "ModuleCategory",
    "ModuleDescriptor",
    "ModuleHalf",
    "ModuleRegistry",
    "PathSpec",
    "compare_versions",
    "has_update",
    "parse_version",
]
