"""
Tests for subdomain provisioning.
"""

import pytest

from rebrand_tool.core.exceptions import ConfigurationError, NetworkError
from rebrand_tool.provisioning import ProvisioningService
from rebrand_tool.remote.executor import CommandExecutor

CREATE = "virtualmin create-domain"
MODIFY_WEB = "virtualmin modify-web"
MODIFY_DOMAIN = "virtualmin modify-domain"


class TestProvisioningService:
    """Test subdomain creation over a scripted session."""

    @pytest.fixture(autouse=True)
    def setup(self, fake_session, app_config):
        self.session = fake_session
        self.config = app_config
        self.service = ProvisioningService(CommandExecutor(fake_session), app_config)

    @pytest.mark.asyncio
    async def test_creates_domain_and_sets_php(self):
        self.session.on(CREATE, stdout="Creating virtual server demo.example.com .. done")

        result = await self.service.create_subdomain("demo", description="Demo build")

        assert result.success is True
        assert result.domain_name == "demo.example.com"
        assert result.web_root_path == "/home/streamnet/domains/demo.example.com/public_html"
        assert result.php_config_warning is None
        assert self.session.commands == [
            "virtualmin create-domain --domain demo.example.com --parent example.com "
            "--desc 'Demo build' --web --dir",
            "virtualmin modify-web --domain demo.example.com --php-mode fpm --php-version 8.1",
        ]

    @pytest.mark.asyncio
    async def test_explicit_php_settings(self):
        await self.service.create_subdomain("demo", php_mode="cgi", php_version="7.4")
        assert self.session.commands[1].endswith("--php-mode cgi --php-version 7.4")

    @pytest.mark.asyncio
    async def test_default_description(self):
        await self.service.create_subdomain("demo")
        assert "--desc 'Created by Rebrand Tool'" in self.session.commands[0]

    @pytest.mark.asyncio
    async def test_fallback_php_command_used_when_primary_fails(self):
        self.session.on(MODIFY_WEB, stderr="Unknown option --php-mode", exit_code=1)

        result = await self.service.create_subdomain("demo")

        assert result.success is True
        assert result.php_config_warning is None
        assert self.session.commands[-1] == (
            "virtualmin modify-domain --domain demo.example.com --set-php-version 8.1"
        )

    @pytest.mark.asyncio
    async def test_php_failure_is_only_a_warning(self):
        self.session.on(MODIFY_WEB, stderr="Unknown option", exit_code=1)
        self.session.on(MODIFY_DOMAIN, stderr="PHP 8.1 is not installed", exit_code=1)

        result = await self.service.create_subdomain("demo")

        assert result.success is True
        assert result.web_root_path is not None
        assert result.php_config_warning == (
            "Failed to set PHP version 8.1 for demo.example.com, but domain was created: "
            "PHP 8.1 is not installed"
        )

    @pytest.mark.asyncio
    async def test_domain_creation_failure(self):
        self.session.on(CREATE, stdout="Checking ..", stderr="Domain already exists", exit_code=1)

        result = await self.service.create_subdomain("demo")

        assert result.success is False
        assert result.error == "Domain already exists\nCommand output: Checking .."
        assert result.output == "Checking .."
        assert result.web_root_path is None
        assert self.session.commands_matching("modify-") == []

    @pytest.mark.asyncio
    async def test_connectivity_failure(self):
        self.session.on(CREATE, handler=NetworkError("connection lost"))

        result = await self.service.create_subdomain("demo")

        assert result.success is False
        assert result.error == "connection lost"

    @pytest.mark.asyncio
    async def test_parent_falls_back_to_dns_root(self):
        config = self.config.model_copy(deep=True)
        config.provisioning.parent_domain = None
        config.dns.root_domain = "fallback.org"
        service = ProvisioningService(CommandExecutor(self.session), config)

        result = await service.create_subdomain("demo")

        assert result.domain_name == "demo.fallback.org"

    @pytest.mark.asyncio
    async def test_missing_parent_raises(self):
        config = self.config.model_copy(deep=True)
        config.provisioning.parent_domain = None
        config.dns.root_domain = ""
        service = ProvisioningService(CommandExecutor(self.session), config)

        with pytest.raises(ConfigurationError) as exc_info:
            await service.create_subdomain("demo")

        assert exc_info.value.message == "Parent domain is not configured"
        assert self.session.commands == []

    @pytest.mark.parametrize("subdomain", ["", "bad label", "x;rm -rf /"])
    @pytest.mark.asyncio
    async def test_invalid_subdomain_raises(self, subdomain):
        with pytest.raises(ConfigurationError):
            await self.service.create_subdomain(subdomain)
        assert self.session.commands == []

    @pytest.mark.asyncio
    async def test_invalid_php_mode_raises(self):
        with pytest.raises(ConfigurationError):
            await self.service.create_subdomain("demo", php_mode="turbo")
        assert self.session.commands == []
