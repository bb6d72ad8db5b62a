"""
DNS record templates and their expansion for one subdomain.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from rebrand_tool.models.config import DnsConfig
from rebrand_tool.models.results import DnsRecord

SUBDOMAIN_PLACEHOLDER = "{{subdomain}}"

# Placeholders for record content resolved from configuration
IPV4 = "{{ipv4}}"
IPV6 = "{{ipv6}}"

AUTO_TTL = 1


@dataclass(frozen=True)
class DnsRecordTemplate:
    """A record pattern; ``name_pattern`` contains the subdomain placeholder."""
    name_pattern: str
    record_type: str
    content: str
    proxied: bool
    ttl: Optional[int] = AUTO_TTL

    def expand(self, subdomain: str, config: DnsConfig) -> DnsRecord:
        content = self.content
        if content == IPV4:
            content = config.ipv4_address
        elif content == IPV6:
            content = config.ipv6_address
        return DnsRecord(
            name=self.name_pattern.replace(SUBDOMAIN_PLACEHOLDER, subdomain),
            type=self.record_type,
            content=content,
            ttl=self.ttl if self.ttl is not None else config.default_ttl,
            proxied=self.proxied,
        )


DEFAULT_TEMPLATES: Tuple[DnsRecordTemplate, ...] = (
    DnsRecordTemplate("admin.{{subdomain}}", "A", IPV4, proxied=True),
    DnsRecordTemplate("localhost.{{subdomain}}", "A", "127.0.0.1", proxied=False),
    DnsRecordTemplate("{{subdomain}}", "A", IPV4, proxied=True),
    DnsRecordTemplate("www.{{subdomain}}", "A", IPV4, proxied=True),
    DnsRecordTemplate("{{subdomain}}", "AAAA", IPV6, proxied=True),
    DnsRecordTemplate("www.{{subdomain}}", "AAAA", IPV6, proxied=True),
)


def expand_templates(
    subdomain: str,
    config: DnsConfig,
    templates: Iterable[DnsRecordTemplate] = DEFAULT_TEMPLATES
) -> List[DnsRecord]:
    """Concrete records for ``subdomain``, in template order."""
    return [template.expand(subdomain, config) for template in templates]
