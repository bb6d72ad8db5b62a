"""
Tests for DNS templates, backends and record creation.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from rebrand_tool.core.exceptions import ConfigurationError, DnsError
from rebrand_tool.dns import (
    DEFAULT_TEMPLATES,
    CloudflareSdkBackend,
    DnsBackend,
    DnsRecordTemplate,
    DnsService,
    HttpxRestBackend,
    create_backend,
    expand_templates,
    root_domain_or_default,
)
from rebrand_tool.models.config import DnsConfig
from rebrand_tool.models.results import DnsRecord, ItemStatus


class FakeBackend(DnsBackend):
    """Backend that records requests and fails for chosen record names."""

    name = "fake"

    def __init__(self, config, fail_names=(), on_create=None):
        super().__init__(config)
        self.fail_names = set(fail_names)
        self.on_create = on_create
        self.created = []

    async def create_record(self, zone_id, record):
        if self.on_create:
            self.on_create(record)
        if f"{record.type} {record.name}" in self.fail_names:
            raise DnsError(f"rejected {record.name}")
        self.created.append((zone_id, record))
        return {'id': f"id-{len(self.created)}", 'name': record.name, 'type': record.type}


class TestTemplates:
    """Test expansion of the standard record set."""

    def test_standard_record_set(self, dns_config):
        assert len(DEFAULT_TEMPLATES) == 6
        records = expand_templates("demo", dns_config)
        assert [(r.type, r.name) for r in records] == [
            ("A", "admin.demo"),
            ("A", "localhost.demo"),
            ("A", "demo"),
            ("A", "www.demo"),
            ("AAAA", "demo"),
            ("AAAA", "www.demo"),
        ]

    def test_contents_and_proxy_flags(self, dns_config):
        records = {(r.type, r.name): r for r in expand_templates("demo", dns_config)}
        assert records[("A", "demo")].content == "203.0.113.10"
        assert records[("A", "demo")].proxied is True
        assert records[("A", "localhost.demo")].content == "127.0.0.1"
        assert records[("A", "localhost.demo")].proxied is False
        assert records[("AAAA", "www.demo")].content == "2001:db8::10"
        assert all(r.ttl == 1 for r in records.values())

    def test_template_without_ttl_uses_config_default(self, dns_config):
        template = DnsRecordTemplate("mail.{{subdomain}}", "A", "198.51.100.1", False, ttl=None)
        record = template.expand("demo", dns_config)
        assert record.name == "mail.demo"
        assert record.ttl == dns_config.default_ttl

    def test_root_domain_fallback(self):
        assert root_domain_or_default(DnsConfig()) == "streamnet.live"
        assert root_domain_or_default(DnsConfig(root_domain="example.net")) == "example.net"


class TestDnsService:
    """Test sequential record creation."""

    @pytest.mark.asyncio
    async def test_all_records_created(self, dns_config):
        backend = FakeBackend(dns_config)
        service = DnsService(dns_config, backend)

        result = await service.create_records("demo")

        assert result.success is True
        assert result.created_count == 6
        assert result.total_count == 6
        assert result.error is None
        assert result.message == "Successfully created 6 of 6 DNS records for demo.example.com"
        assert all(zone == "zone123" for zone, _ in backend.created)
        assert result.records[0].id == "id-1"

    @pytest.mark.asyncio
    async def test_failed_record_does_not_stop_the_rest(self, dns_config):
        backend = FakeBackend(dns_config, fail_names={"A demo"})
        service = DnsService(dns_config, backend)

        result = await service.create_records("demo")

        assert result.created_count == 5
        failed = [r for r in result.records if r.status == ItemStatus.ERROR]
        assert [(r.type, r.name) for r in failed] == [("A", "demo")]
        assert failed[0].error == "rejected demo"
        assert failed[0].content == "203.0.113.10"
        assert result.records[-1].status == ItemStatus.CREATED

    @pytest.mark.asyncio
    async def test_nothing_created_is_an_error(self, dns_config):
        names = {f"{r.type} {r.name}" for r in expand_templates("demo", dns_config)}
        service = DnsService(dns_config, FakeBackend(dns_config, fail_names=names))

        result = await service.create_records("demo")

        assert result.success is False
        assert result.error == "Failed to create any DNS records"

    @pytest.mark.asyncio
    async def test_missing_ipv6_fails_only_aaaa_records(self):
        config = DnsConfig(api_token="t", zone_id="z", root_domain="example.com", ipv4_address="203.0.113.10")
        service = DnsService(config, FakeBackend(config))

        result = await service.create_records("demo")

        assert result.created_count == 4
        aaaa = [r for r in result.records if r.type == "AAAA"]
        assert all(r.status == ItemStatus.ERROR for r in aaaa)
        assert aaaa[0].error == "No address configured for AAAA record"

    @pytest.mark.asyncio
    async def test_cancellation_between_records(self, dns_config):
        service = None

        def cancel_after_second(record):
            if record.name == "localhost.demo":
                service.cancel()

        backend = FakeBackend(dns_config, on_create=cancel_after_second)
        service = DnsService(dns_config, backend)

        result = await service.create_records("demo")

        assert result.cancelled is True
        assert result.created_count == 2
        skipped = [r for r in result.records if r.status == ItemStatus.SKIPPED]
        assert len(skipped) == 4
        assert len(backend.created) == 2

    @pytest.mark.parametrize("overrides,message", [
        ({'root_domain': ""}, "DNS root domain is not configured"),
        ({'api_token': ""}, "DNS authentication is not configured"),
        ({'zone_id': ""}, "DNS zone ID is not configured"),
    ])
    @pytest.mark.asyncio
    async def test_preconditions_checked_before_any_request(self, dns_config, overrides, message):
        config = dns_config.model_copy(update=overrides)
        backend = AsyncMock(spec=DnsBackend)
        service = DnsService(config, backend)

        with pytest.raises(ConfigurationError) as exc_info:
            await service.create_records("demo")

        assert exc_info.value.message.startswith(message)
        backend.create_record.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_key_auth_satisfies_preconditions(self, dns_config):
        config = dns_config.model_copy(update={'api_token': "", 'email': "ops@example.com", 'api_key': "k"})
        result = await DnsService(config, FakeBackend(config)).create_records("demo")
        assert result.success is True

    @pytest.mark.parametrize("subdomain", ["", "bad_label", "-dash", "two.labels"])
    @pytest.mark.asyncio
    async def test_invalid_subdomain_rejected(self, dns_config, subdomain):
        backend = AsyncMock(spec=DnsBackend)
        with pytest.raises(ConfigurationError):
            await DnsService(dns_config, backend).create_records(subdomain)
        backend.create_record.assert_not_awaited()


class TestHttpxRestBackend:
    """Test the REST backend against a mock transport."""

    def make_backend(self, config, handler):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            base_url=config.api_base_url
        )
        return HttpxRestBackend(config, client=client)

    @pytest.mark.asyncio
    async def test_successful_create(self, dns_config):
        seen = {}

        def handler(request):
            seen['url'] = str(request.url)
            seen['auth'] = request.headers.get("authorization")
            seen['body'] = json.loads(request.content)
            return httpx.Response(200, json={
                'success': True,
                'result': {'id': "rec-1", 'name': "demo.example.com", 'type': "A"},
            })

        backend = self.make_backend(dns_config, handler)
        record = DnsRecord(name="demo", type="A", content="203.0.113.10", proxied=True)

        created = await backend.create_record("zone123", record)

        assert created == {'id': "rec-1", 'name': "demo.example.com", 'type': "A"}
        assert seen['url'] == "https://api.cloudflare.com/client/v4/zones/zone123/dns_records"
        assert seen['auth'] == "Bearer test-token"
        assert seen['body'] == {
            'type': "A", 'name': "demo", 'content': "203.0.113.10", 'ttl': 1, 'proxied': True
        }

    def test_key_auth_headers(self):
        config = DnsConfig(email="ops@example.com", api_key="global-key")
        backend = HttpxRestBackend(config)
        assert backend.auth_headers() == {'X-Auth-Email': "ops@example.com", 'X-Auth-Key': "global-key"}

    def test_missing_auth_raises(self):
        with pytest.raises(ConfigurationError):
            HttpxRestBackend(DnsConfig()).auth_headers()

    @pytest.mark.asyncio
    async def test_provider_errors_are_joined(self, dns_config):
        def handler(request):
            return httpx.Response(400, json={
                'success': False,
                'errors': [{'code': 81057, 'message': "Record already exists."}, {'message': "Second"}],
            })

        backend = self.make_backend(dns_config, handler)

        with pytest.raises(DnsError) as exc_info:
            await backend.create_record("zone123", DnsRecord(name="demo", type="A", content="1.2.3.4"))

        assert exc_info.value.message == "DNS provider error for A demo: Record already exists.; Second"
        assert exc_info.value.details['status_code'] == 400

    @pytest.mark.asyncio
    async def test_success_false_with_ok_status(self, dns_config):
        backend = self.make_backend(dns_config, lambda request: httpx.Response(200, json={'success': False}))
        with pytest.raises(DnsError):
            await backend.create_record("zone123", DnsRecord(name="demo", type="A", content="1.2.3.4"))

    @pytest.mark.asyncio
    async def test_transport_error(self, dns_config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        backend = self.make_backend(dns_config, handler)
        with pytest.raises(DnsError) as exc_info:
            await backend.create_record("zone123", DnsRecord(name="demo", type="A", content="1.2.3.4"))
        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self, dns_config):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        backend = HttpxRestBackend(dns_config, client=client)
        await backend.aclose()
        assert client.is_closed is False
        await client.aclose()


class TestBackendSelection:
    """Test the capability probe behind create_backend."""

    def sdk_client(self):
        created = SimpleNamespace(id="sdk-1", name="demo.example.com", type="A")
        return SimpleNamespace(
            dns=SimpleNamespace(records=SimpleNamespace(create=AsyncMock(return_value=created))),
            close=AsyncMock()
        )

    def test_sdk_backend_when_client_has_expected_shape(self, dns_config):
        backend = create_backend(dns_config, sdk_client_factory=lambda config: self.sdk_client())
        assert isinstance(backend, CloudflareSdkBackend)

    def test_rest_backend_when_shape_differs(self, dns_config):
        backend = create_backend(dns_config, sdk_client_factory=lambda config: SimpleNamespace(zones=None))
        assert isinstance(backend, HttpxRestBackend)

    def test_rest_backend_when_factory_fails(self, dns_config):
        def broken(config):
            raise RuntimeError("sdk import failed")

        assert isinstance(create_backend(dns_config, sdk_client_factory=broken), HttpxRestBackend)

    def test_rest_backend_without_auth(self):
        backend = create_backend(DnsConfig(), sdk_client_factory=lambda config: self.sdk_client())
        assert isinstance(backend, HttpxRestBackend)

    @pytest.mark.asyncio
    async def test_sdk_backend_create_and_close(self, dns_config):
        client = self.sdk_client()
        backend = CloudflareSdkBackend(dns_config, client=client)
        record = DnsRecord(name="demo", type="A", content="203.0.113.10", proxied=True)

        created = await backend.create_record("zone123", record)

        assert created == {'id': "sdk-1", 'name': "demo.example.com", 'type': "A"}
        client.dns.records.create.assert_awaited_once_with(
            zone_id="zone123", type="A", name="demo", content="203.0.113.10", ttl=1, proxied=True
        )
        await backend.aclose()
        client.close.assert_awaited_once()
