"""
Data models for the Rebrand Tool.

This module contains the Pydantic configuration models and the result
data structures returned by the deployment services.
"""

from rebrand_tool.models.config import (
    PhpMode,
    LogLevelName,
    ConnectionConfig,
    DnsConfig,
    PathsConfig,
    ProvisioningConfig,
    TransferConfig,
    AnalyzerConfig,
    SettingsConfig,
    AppConfig,
)
from rebrand_tool.models.results import (
    CommandStatus,
    ItemStatus,
    ItemType,
    RemoteCommandResult,
    RemoteEntry,
    TransferItemResult,
    TransferSummary,
    Domain,
    InstalledModule,
    DomainStructureAnalysis,
    DnsRecord,
    DnsRecordResult,
    DnsCreationResult,
    ProvisioningResult,
    DeploymentResult,
)

__all__ = [
    # Configuration
    "PhpMode",
    "LogLevelName",
    "ConnectionConfig",
    "DnsConfig",
    "PathsConfig",
    "ProvisioningConfig",
    "TransferConfig",
    "AnalyzerConfig",
    "SettingsConfig",
    "AppConfig",
    # Results
    "CommandStatus",
    "ItemStatus",
    "ItemType",
    "RemoteCommandResult",
    "RemoteEntry",
    "TransferItemResult",
    "TransferSummary",
    "Domain",
    "InstalledModule",
    "DomainStructureAnalysis",
    "DnsRecord",
    "DnsRecordResult",
    "DnsCreationResult",
    "ProvisioningResult",
    "DeploymentResult",
]
