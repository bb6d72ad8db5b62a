"""
Tests for configuration persistence, the live service and change notification.
"""

from unittest.mock import MagicMock

import pytest
import yaml

from rebrand_tool.config import ConfigChannel, ConfigurationService, ConfigurationStore
from rebrand_tool.core.exceptions import ConfigurationError
from rebrand_tool.models.config import AppConfig, ConnectionConfig, PhpMode


class Subscriber:
    def __init__(self):
        self.sections = []

    def on_config_changed(self, section):
        self.sections.append(section)


class BrokenSubscriber:
    def on_config_changed(self, section):
        raise RuntimeError("subscriber exploded")


class TestConfigurationStore:
    """Test loading and saving configuration files."""

    def test_missing_file_gives_defaults(self, tmp_path):
        store = ConfigurationStore(tmp_path / "config.yaml", environ={})
        config = store.load()
        assert config == AppConfig()

    @pytest.mark.parametrize("filename", ["config.yaml", "config.yml", "config.toml"])
    def test_round_trip(self, tmp_path, app_config, filename):
        store = ConfigurationStore(tmp_path / "nested" / filename, environ={})

        path = store.save(app_config)

        assert path.exists()
        assert store.load() == app_config

    def test_yaml_keeps_field_order(self, tmp_path, app_config):
        store = ConfigurationStore(tmp_path / "config.yaml", environ={})
        store.save(app_config)
        data = yaml.safe_load((tmp_path / "config.yaml").read_text())
        assert list(data) == list(AppConfig.model_fields)
        assert data["provisioning"]["php_mode"] == "fpm"

    def test_unsupported_format(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigurationStore(tmp_path / "config.ini")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("connection: [unclosed\n")
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigurationStore(path, environ={}).load()
        assert "Invalid YAML" in exc_info.value.message

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[connection\nhost = \n")
        with pytest.raises(ConfigurationError):
            ConfigurationStore(path, environ={}).load()

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            ConfigurationStore(path, environ={}).load()

    def test_validation_failure(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("connection:\n  port: 70000\n")
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigurationStore(path, environ={}).load()
        assert exc_info.value.details['errors']

    def test_unknown_sections_ignored(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("legacy:\n  theme: dark\ndns:\n  root_domain: example.com\n")
        config = ConfigurationStore(path, environ={}).load()
        assert config.dns.root_domain == "example.com"

    def test_environment_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("dns:\n  root_domain: example.com\n  api_token: from-file\n")
        environ = {
            'CLOUDFLARE_API_TOKEN': "from-env",
            'CLOUDFLARE_ZONE_ID': "zone-env",
            'SSH_HOST': "ssh.example.com",
            'SSH_PORT': "2222",
            'CLOUDFLARE_EMAIL': "",
        }

        config = ConfigurationStore(path, environ=environ).load()

        assert config.dns.api_token == "from-env"
        assert config.dns.zone_id == "zone-env"
        assert config.dns.root_domain == "example.com"
        assert config.dns.email == ""
        assert config.connection.host == "ssh.example.com"
        assert config.connection.port == 2222


class TestConfigModels:
    """Test validation rules on the configuration models."""

    def test_connect_timeout_must_be_shorter(self):
        with pytest.raises(ValueError):
            ConnectionConfig(connect_timeout=30, command_timeout=30)

    def test_parent_domain_fallback(self):
        config = AppConfig.model_validate({'dns': {'root_domain': "example.com"}})
        assert config.parent_domain == "example.com"

    def test_domains_root_trailing_slash(self):
        config = AppConfig.model_validate({'paths': {'domains_root': "/srv/domains/"}})
        assert config.paths.domains_root == "/srv/domains"

    def test_logging_settings_defaults(self):
        settings = AppConfig().settings
        assert settings.structured_logging is False
        assert settings.log_rotation is True
        assert settings.max_log_size == 50 * 1024 * 1024
        assert settings.log_backup_count == 5

    def test_max_log_size_must_be_positive(self):
        with pytest.raises(ValueError):
            AppConfig.model_validate({'settings': {'max_log_size': 0}})

    @pytest.mark.parametrize("owner", ["root; rm -rf /", "a b", ""])
    def test_owner_rejected(self, owner):
        with pytest.raises(ValueError):
            AppConfig.model_validate({'transfer': {'owner': owner}})


class TestConfigurationService:
    """Test reading and changing the live configuration."""

    def setup_method(self):
        self.service = ConfigurationService(config=AppConfig.model_validate({
            'dns': {'root_domain': "example.com"},
        }))

    def test_get_dotted_key(self):
        assert self.service.get("dns.root_domain") == "example.com"
        assert self.service.get("connection.port") == 22
        assert self.service.get("dns.nope", "fallback") == "fallback"
        assert self.service.get("nope.nothing") is None

    def test_snapshot_is_independent(self):
        snapshot = self.service.snapshot()
        snapshot.dns.root_domain = "changed.org"
        assert self.service.config.dns.root_domain == "example.com"

    def test_set_validates_and_coerces(self):
        updated = self.service.set("connection.port", "2222")
        assert updated.connection.port == 2222
        assert self.service.config.connection.port == 2222

    def test_set_enum_value(self):
        self.service.set("provisioning.php_mode", "cgi")
        assert self.service.config.provisioning.php_mode == PhpMode.CGI

    def test_set_whole_section(self):
        self.service.set("paths", {'base_path': "/srv/source/"})
        assert self.service.config.paths.base_path == "/srv/source/"
        assert self.service.config.paths.web_root_name == "public_html"

    def test_set_whole_section_requires_mapping(self):
        with pytest.raises(ConfigurationError):
            self.service.set("paths", "/srv")

    @pytest.mark.parametrize("key", ["nope.value", "dns.nope", "dns.root_domain.deeper"])
    def test_set_unknown_key(self, key):
        with pytest.raises(ConfigurationError):
            self.service.set(key, "x")

    def test_invalid_value_leaves_config_unchanged(self):
        with pytest.raises(ConfigurationError):
            self.service.set("connection.port", 0)
        assert self.service.config.connection.port == 22

    def test_set_persists_through_store(self):
        store = MagicMock()
        service = ConfigurationService(config=AppConfig(), store=store)

        updated = service.set("dns.zone_id", "zone-9")

        store.save.assert_called_once_with(updated)

    def test_loads_from_store_when_no_config_given(self):
        store = MagicMock()
        store.load.return_value = AppConfig.model_validate({'dns': {'zone_id': "from-store"}})
        service = ConfigurationService(store=store)
        assert service.get("dns.zone_id") == "from-store"

    def test_subscribers_notified_with_section(self):
        subscriber = Subscriber()
        self.service.subscribe(subscriber)

        self.service.set("dns.zone_id", "zone-1")
        self.service.set("settings.log_level", "DEBUG")

        assert subscriber.sections == ["dns", "settings"]


class TestConfigChannel:
    """Test the publish/subscribe channel."""

    def test_handler_without_callback_rejected(self):
        channel = ConfigChannel()
        with pytest.raises(ConfigurationError):
            channel.subscribe(object())
        assert len(channel) == 0

    def test_failing_subscriber_does_not_stop_others(self):
        channel = ConfigChannel()
        good = Subscriber()
        channel.subscribe(BrokenSubscriber())
        channel.subscribe(good)

        channel.publish("dns")

        assert good.sections == ["dns"]

    def test_subscribe_is_idempotent_and_unsubscribe(self):
        channel = ConfigChannel()
        subscriber = Subscriber()
        channel.subscribe(subscriber)
        channel.subscribe(subscriber)
        assert len(channel) == 1

        channel.unsubscribe(subscriber)
        channel.publish("dns")
        assert subscriber.sections == []
