"""
Configuration models for the Rebrand Tool.

This module defines the Pydantic models for every configuration section
consumed by the remote layer, the DNS service, domain provisioning and
the transfer executor.
"""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class PhpMode(str, Enum):
    """PHP execution modes understood by the control panel."""
    FPM = "fpm"
    CGI = "cgi"
    FCGID = "fcgid"
    MOD_PHP = "mod_php"


class LogLevelName(str, Enum):
    """Log level names accepted in settings."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ConnectionConfig(BaseModel):
    """SSH/SFTP connection settings for the remote host."""
    host: str = ""
    username: str = ""
    password: str = ""
    port: int = Field(default=22, ge=1, le=65535)
    key_filename: Optional[str] = None
    connect_timeout: float = Field(default=20.0, gt=0)
    test_timeout: float = Field(default=10.0, gt=0)
    command_timeout: float = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def connect_timeout_shorter_than_command(self):
        if self.connect_timeout >= self.command_timeout:
            raise ValueError("connect_timeout must be shorter than command_timeout")
        return self

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.username)


class DnsConfig(BaseModel):
    """DNS provider credentials and zone settings."""
    api_token: str = ""
    email: str = ""
    api_key: str = ""
    zone_id: str = ""
    root_domain: str = ""
    ipv4_address: str = ""
    ipv6_address: str = ""
    default_ttl: int = Field(default=3600, ge=1)
    api_base_url: str = "https://api.cloudflare.com/client/v4"
    request_timeout: float = Field(default=30.0, gt=0)

    @property
    def has_token_auth(self) -> bool:
        return bool(self.api_token)

    @property
    def has_key_auth(self) -> bool:
        return bool(self.email and self.api_key)

    @property
    def has_auth(self) -> bool:
        return self.has_token_auth or self.has_key_auth


class PathsConfig(BaseModel):
    """Paths on the remote Linux server."""
    base_path: str = "/home/"
    local_destination: str = "/home/"
    domains_root: str = "/home/streamnet/domains"
    web_root_name: str = "public_html"

    @field_validator("domains_root")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/") or "/"


class ProvisioningConfig(BaseModel):
    """Control panel settings used when creating subdomains."""
    control_panel_command: str = "virtualmin"
    parent_domain: Optional[str] = None
    template: str = "default"
    plan: str = "Default"
    disk_quota: int = Field(default=500, ge=0)  # MB
    bandwidth_quota: int = Field(default=1000, ge=0)  # MB
    php_mode: PhpMode = PhpMode.FPM
    php_version: str = "8.1"
    default_description: str = "Created by Rebrand Tool"


class TransferConfig(BaseModel):
    """Ownership and permission settings applied after copying files."""
    owner: str = "1000:1000"
    dir_mode: str = "755"
    file_mode: str = "644"

    @field_validator("owner")
    @classmethod
    def owner_format(cls, v):
        if not re.fullmatch(r"[\w.-]+(:[\w.-]+)?", v):
            raise ValueError(f"Invalid owner (expected user:group): {v!r}")
        return v

    @field_validator("dir_mode", "file_mode")
    @classmethod
    def octal_mode(cls, v):
        if not re.fullmatch(r"[0-7]{3,4}", v):
            raise ValueError(f"Invalid permission mode: {v!r}")
        return v


class AnalyzerConfig(BaseModel):
    """Tuning for domain structure analysis."""
    max_depth: int = Field(default=2, ge=0, le=5)
    concurrency: int = Field(default=5, ge=1, le=32)
    batch_size: int = Field(default=5, ge=1, le=100)
    retries: int = Field(default=2, ge=0, le=10)
    retry_delay: float = Field(default=0.5, ge=0)


class SettingsConfig(BaseModel):
    """Application settings."""
    log_level: LogLevelName = LogLevelName.INFO
    log_sftp_commands: bool = False
    log_file: Optional[str] = None
    audit_log_file: Optional[str] = None
    structured_logging: bool = False
    log_rotation: bool = True
    max_log_size: int = Field(default=50 * 1024 * 1024, gt=0)  # bytes
    log_backup_count: int = Field(default=5, ge=0)


class AppConfig(BaseModel):
    """Complete application configuration."""
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    dns: DnsConfig = Field(default_factory=DnsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    provisioning: ProvisioningConfig = Field(default_factory=ProvisioningConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    settings: SettingsConfig = Field(default_factory=SettingsConfig)

    @property
    def parent_domain(self) -> str:
        """Parent domain for new subdomains, falling back to the DNS root."""
        return self.provisioning.parent_domain or self.dns.root_domain
