"""
Result data structures for remote operations and deployment workflows.

Every mid-level service returns one of these instead of raising for
per-item failures; each exposes ``to_dict`` for CLI/JSON rendering.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CommandStatus(str, Enum):
    """Completion status of a remote command."""
    OK = "ok"
    FAILED = "failed"
    TIMED_OUT = "timed-out"


class ItemStatus(str, Enum):
    """Per-item outcome used by transfer and DNS results."""
    SUCCESS = "success"
    CREATED = "created"
    ERROR = "error"
    SKIPPED = "skipped"


class ItemType(str, Enum):
    """Kind of a selected transfer item."""
    PANEL = "panel"
    MODULE_API = "module-api"
    MODULE_PANEL = "module-panel"


@dataclass
class RemoteCommandResult:
    """Outcome of one executed remote command."""
    command: str
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    status: CommandStatus = CommandStatus.OK
    label: Optional[str] = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == CommandStatus.OK

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr

    def lines(self) -> List[str]:
        """Non-empty, stripped stdout lines."""
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


@dataclass
class RemoteEntry:
    """A directory entry on the remote host."""
    name: str
    path: str
    is_directory: bool
    size: int = 0
    modify_time: Optional[int] = None
    children: Optional[List["RemoteEntry"]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'path': self.path,
            'is_directory': self.is_directory,
            'size': self.size,
            'modify_time': self.modify_time,
        }
        if self.children is not None:
            data['children'] = [child.to_dict() for child in self.children]
        return data


@dataclass
class TransferItemResult:
    """Outcome for one transferred item."""
    name: str
    status: ItemStatus
    path: Optional[str] = None
    type: Optional[str] = None
    error: Optional[str] = None
    source: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ItemStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


@dataclass
class TransferSummary:
    """Aggregated outcome of a transfer batch."""
    results: List[TransferItemResult] = field(default_factory=list)
    target_root: Optional[str] = None
    cancelled: bool = False
    ownership_fixed: bool = True
    error: Optional[str] = None

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def success(self) -> bool:
        return self.success_count > 0

    @property
    def fully_succeeded(self) -> bool:
        return self.total_count > 0 and self.success_count == self.total_count

    @property
    def partially_succeeded(self) -> bool:
        return 0 < self.success_count < self.total_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'success_count': self.success_count,
            'total_count': self.total_count,
            'target_root': self.target_root,
            'cancelled': self.cancelled,
            'ownership_fixed': self.ownership_fixed,
            'error': self.error,
            'results': [r.to_dict() for r in self.results],
        }


@dataclass
class Domain:
    """A domain discovered on the remote host."""
    name: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class InstalledModule:
    """A module or panel found in a domain's web root."""
    name: str
    display_name: str
    type: str
    path: str
    version: Optional[str] = None
    latest_version: Optional[str] = None
    has_update: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DomainStructureAnalysis:
    """Snapshot of what is installed under one domain's web root."""
    domain: str
    web_root: str
    has_main_panel: bool = False
    has_branding: bool = False
    has_support: bool = False
    has_plex_webview: bool = False
    has_webview: bool = False
    main_panel: Optional[InstalledModule] = None
    branding: Optional[InstalledModule] = None
    support: Optional[InstalledModule] = None
    webview: Optional[InstalledModule] = None
    modules: List[InstalledModule] = field(default_factory=list)
    panel_dir_empty: bool = True
    api_dir_empty: bool = True
    top_level: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def updates_available(self) -> List[InstalledModule]:
        found = [m for m in (self.main_panel, self.branding, self.support, self.webview) if m]
        return [m for m in found + self.modules if m.has_update]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['updates_available'] = [m.name for m in self.updates_available]
        return data


@dataclass
class DnsRecord:
    """A concrete DNS record to create."""
    name: str
    type: str
    content: str
    ttl: int = 1
    proxied: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'name': self.name,
            'content': self.content,
            'ttl': self.ttl,
            'proxied': self.proxied,
        }


@dataclass
class DnsRecordResult:
    """Outcome for one DNS record."""
    name: str
    type: str
    status: ItemStatus
    id: Optional[str] = None
    content: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        return data


@dataclass
class DnsCreationResult:
    """Aggregated outcome of DNS record creation for one subdomain."""
    subdomain: str
    root_domain: str
    records: List[DnsRecordResult] = field(default_factory=list)
    cancelled: bool = False
    error: Optional[str] = None

    @property
    def created_count(self) -> int:
        return sum(1 for r in self.records if r.status == ItemStatus.CREATED)

    @property
    def total_count(self) -> int:
        return len(self.records)

    @property
    def success(self) -> bool:
        return self.created_count > 0

    @property
    def message(self) -> str:
        if self.error:
            return self.error
        fqdn = f"{self.subdomain}.{self.root_domain}"
        if not self.success:
            return f"Failed to create DNS records for {fqdn}"
        return (
            f"Successfully created {self.created_count} of {self.total_count} "
            f"DNS records for {fqdn}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'message': self.message,
            'subdomain': self.subdomain,
            'root_domain': self.root_domain,
            'created_count': self.created_count,
            'total_count': self.total_count,
            'cancelled': self.cancelled,
            'error': self.error,
            'records': [r.to_dict() for r in self.records],
        }


@dataclass
class ProvisioningResult:
    """Outcome of creating a subdomain through the control panel."""
    success: bool
    domain_name: str
    web_root_path: Optional[str] = None
    php_config_warning: Optional[str] = None
    error: Optional[str] = None
    output: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DeploymentResult:
    """Combined outcome of a transfer followed by DNS creation."""
    domain: str
    transfer: TransferSummary
    dns: Optional[DnsCreationResult] = None

    @property
    def success(self) -> bool:
        return self.transfer.success

    def to_dict(self) -> Dict[str, Any]:
        return {
            'domain': self.domain,
            'success': self.success,
            'transfer': self.transfer.to_dict(),
            'dns': self.dns.to_dict() if self.dns else None,
        }
