"""
DNS record creation for the Rebrand Tool.
"""

from rebrand_tool.dns.backends import (
    CLOUDFLARE_AVAILABLE,
    CloudflareSdkBackend,
    DnsBackend,
    HttpxRestBackend,
    create_backend,
)
from rebrand_tool.dns.service import FALLBACK_ROOT_DOMAIN, DnsService, root_domain_or_default
from rebrand_tool.dns.templates import DEFAULT_TEMPLATES, DnsRecordTemplate, expand_templates

__all__ = [
    "CLOUDFLARE_AVAILABLE",
    "CloudflareSdkBackend",
    "DnsBackend",
    "HttpxRestBackend",
    "create_backend",
    "FALLBACK_ROOT_DOMAIN",
    "DnsService",
    "root_domain_or_default",
    "DEFAULT_TEMPLATES",
    "DnsRecordTemplate",
    "expand_templates",
]
