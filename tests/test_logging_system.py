"""
Tests for structured logging, the history buffer and audit logging.
"""

import json
import logging
import logging.handlers

import pytest

from rebrand_tool.remote.executor import CommandExecutor
from rebrand_tool.utils.logging import (
    AuditLogger,
    LogCategory,
    LogEntry,
    LogHistoryHandler,
    LogLevel,
    StructuredFormatter,
    category_for_logger,
    clear_log_history,
    get_audit_logger,
    get_log_history,
    read_log_file,
    setup_logging,
)


class TestLogEntry:
    """Test structured log entries."""

    def test_category_from_logger_name(self):
        assert category_for_logger("rebrand_tool.dns.DnsService") == LogCategory.DNS
        assert category_for_logger("rebrand_tool.remote.CommandExecutor") == LogCategory.REMOTE
        assert category_for_logger("rebrand_tool.cli") == LogCategory.CLI
        assert category_for_logger("rebrand_tool.unknown.X") == LogCategory.SYSTEM
        assert category_for_logger("paramiko.transport") == LogCategory.SYSTEM

    def test_dict_round_trip(self):
        entry = LogEntry(
            level=LogLevel.WARNING,
            category=LogCategory.TRANSFER,
            logger="rebrand_tool.transfer.TransferExecutor",
            message="Source path not found",
            metadata={'item': "xciptv API"},
        )
        restored = LogEntry.from_dict(json.loads(entry.to_json()))
        assert restored == entry

    def test_from_dict_tolerates_unknown_values(self):
        entry = LogEntry.from_dict({'level': "verbose", 'category': "elsewhere", 'message': "hi"})
        assert entry.level == LogLevel.INFO
        assert entry.category == LogCategory.SYSTEM
        assert entry.message == "hi"

    def test_structured_formatter(self):
        record = logging.LogRecord(
            "rebrand_tool.dns.DnsService", logging.ERROR, __file__, 10, "failed %s", ("demo",), None
        )
        data = json.loads(StructuredFormatter().format(record))
        assert data['level'] == "ERROR"
        assert data['category'] == "dns"
        assert data['message'] == "failed demo"


class TestLogHistoryHandler:
    """Test the in-memory history used by the logs command."""

    def setup_method(self):
        self.handler = LogHistoryHandler(max_entries=10)
        self.logger = logging.getLogger("rebrand_tool.dns.HistoryTest")
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self.logger.addHandler(self.handler)
        self.other = logging.getLogger("rebrand_tool.transfer.HistoryTest")
        self.other.setLevel(logging.DEBUG)
        self.other.propagate = False
        self.other.addHandler(self.handler)

    def teardown_method(self):
        self.logger.removeHandler(self.handler)
        self.other.removeHandler(self.handler)

    def test_filters(self):
        self.logger.info("created record")
        self.logger.error("record rejected")
        self.other.info("copied item")

        assert len(self.handler) == 3
        assert [e.message for e in self.handler.get_entries(level="error")] == ["record rejected"]
        assert [e.message for e in self.handler.get_entries(category="TRANSFER")] == ["copied item"]
        assert [e.message for e in self.handler.get_entries(limit=2)] == ["record rejected", "copied item"]
        assert self.handler.get_entries(limit=0) == []

    def test_extra_fields_become_metadata(self):
        self.logger.info("with extra", extra={'host': "server.example.com"})
        (entry,) = self.handler.get_entries()
        assert entry.metadata['host'] == "server.example.com"
        assert entry.metadata['function'] == "test_extra_fields_become_metadata"

    def test_bounded_size(self):
        for i in range(15):
            self.logger.debug(f"message {i}")
        entries = self.handler.get_entries()
        assert len(entries) == 10
        assert entries[0].message == "message 5"

    def test_clear(self):
        self.logger.info("one")
        self.handler.clear()
        assert len(self.handler) == 0


class TestReadLogFile:
    """Test reading JSON-lines log files."""

    def test_reads_entries_and_skips_noise(self, tmp_path):
        path = tmp_path / "audit.log"
        lines = [
            LogEntry(message="first").to_json(),
            "not json at all",
            "",
            json.dumps(["a", "list"]),
            LogEntry(message="second", level=LogLevel.ERROR).to_json(),
        ]
        path.write_text("\n".join(lines) + "\n")

        entries = read_log_file(str(path))

        assert [e.message for e in entries] == ["first", "second"]
        assert entries[1].level == LogLevel.ERROR
        assert [e.message for e in read_log_file(str(path), limit=1)] == ["second"]

    def test_missing_file(self, tmp_path):
        assert read_log_file(str(tmp_path / "missing.log")) == []


class TestAuditLogging:
    """Test the audit logger and its use for remote commands."""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        yield
        setup_logging(rich_console=False)

    def test_log_event_writes_json_line(self, tmp_path):
        log_file = tmp_path / "logs" / "audit.log"
        audit = AuditLogger(str(log_file))
        try:
            audit.log_event("dns_record_created", {'name': "demo", 'type': "A"})
        finally:
            audit.close()

        (entry,) = read_log_file(str(log_file))
        assert entry.category == LogCategory.AUDIT
        assert entry.operation == "dns_record_created"
        assert entry.metadata['details'] == {'name': "demo", 'type': "A"}

    @pytest.mark.asyncio
    async def test_remote_commands_are_audited(self, tmp_path, fake_session):
        log_file = tmp_path / "audit.log"
        setup_logging(rich_console=False, audit_log_file=str(log_file))
        assert get_audit_logger() is not None
        fake_session.on("whoami", stdout="deploy\n")

        await CommandExecutor(fake_session).run("whoami", label="Who am I")

        (entry,) = read_log_file(str(log_file))
        details = entry.metadata['details']
        assert entry.operation == "remote_command"
        assert details['label'] == "Who am I"
        assert details['command'] == "whoami"
        assert details['exit_code'] == 0
        assert details['status'] == "ok"
        assert details['stdout'] == "deploy\n"

    def test_setup_without_audit_file_disables_audit(self, tmp_path):
        setup_logging(rich_console=False, audit_log_file=str(tmp_path / "audit.log"))
        setup_logging(rich_console=False)
        assert get_audit_logger() is None

    def test_history_collects_package_logs(self):
        setup_logging(level="DEBUG", rich_console=False)
        clear_log_history()

        logging.getLogger("rebrand_tool.provisioning.ProvisioningService").warning("PHP not set")

        entries = get_log_history(category="provisioning")
        assert [e.message for e in entries] == ["PHP not set"]
        assert entries[0].level == LogLevel.WARNING

    def test_rotating_structured_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        setup_logging(
            rich_console=False, log_file=str(log_file), structured_logging=True,
            log_rotation=True, max_log_size=1024, backup_count=2
        )

        logging.getLogger("rebrand_tool.dns.DnsService").info("Created demo")

        handlers = logging.getLogger("rebrand_tool").handlers
        (rotating,) = [h for h in handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert rotating.maxBytes == 1024
        assert rotating.backupCount == 2
        data = json.loads(log_file.read_text().splitlines()[-1])
        assert data['message'] == "Created demo"
        assert data['category'] == "dns"

    def test_plain_log_file_without_rotation(self, tmp_path):
        log_file = tmp_path / "app.log"
        setup_logging(rich_console=False, log_file=str(log_file), log_rotation=False)

        handlers = logging.getLogger("rebrand_tool").handlers
        assert not any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)
        assert any(isinstance(h, logging.FileHandler) for h in handlers)
