"""
Logging and audit support for the Rebrand Tool.

This module provides console logging through Rich, optional rotating file
logs, structured JSON output, an audit logger for remote commands and an
in-memory history buffer that backs the ``logs`` command.
"""

import json
import logging
import logging.handlers
import sys
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler


ROOT_LOGGER_NAME = "rebrand_tool"
DEFAULT_HISTORY_SIZE = 5000


class LogLevel(str, Enum):
    """Log levels for structured logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogCategory(str, Enum):
    """Categories for structured logging."""
    SYSTEM = "system"
    REMOTE = "remote"
    TRANSFER = "transfer"
    DISCOVERY = "discovery"
    DNS = "dns"
    PROVISIONING = "provisioning"
    CONFIG = "config"
    AUDIT = "audit"
    CLI = "cli"


# Logger name segment (after ``rebrand_tool.``) to category
_CATEGORY_BY_COMPONENT = {
    "remote": LogCategory.REMOTE,
    "transfer": LogCategory.TRANSFER,
    "discovery": LogCategory.DISCOVERY,
    "dns": LogCategory.DNS,
    "provisioning": LogCategory.PROVISIONING,
    "config": LogCategory.CONFIG,
    "audit": LogCategory.AUDIT,
    "cli": LogCategory.CLI,
}

_STANDARD_RECORD_KEYS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage',
    'exc_info', 'exc_text', 'stack_info', 'taskName', 'log_entry',
])


def category_for_logger(logger_name: str) -> LogCategory:
    """Map a ``rebrand_tool.<component>...`` logger name to a category."""
    parts = logger_name.split(".")
    if len(parts) > 1 and parts[0] == ROOT_LOGGER_NAME:
        return _CATEGORY_BY_COMPONENT.get(parts[1], LogCategory.SYSTEM)
    return LogCategory.SYSTEM


@dataclass
class LogEntry:
    """Structured log entry with metadata."""
    timestamp: datetime = field(default_factory=datetime.now)
    level: LogLevel = LogLevel.INFO
    category: LogCategory = LogCategory.SYSTEM
    logger: str = ROOT_LOGGER_NAME
    message: str = ""
    operation: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert log entry to dictionary."""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        data['level'] = self.level.value
        data['category'] = self.category.value
        return data

    def to_json(self) -> str:
        """Convert log entry to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEntry":
        entry = getattr(record, 'log_entry', None)
        if isinstance(entry, LogEntry):
            return entry

        try:
            level = LogLevel(record.levelname)
        except ValueError:
            level = LogLevel.INFO

        entry = cls(
            timestamp=datetime.fromtimestamp(record.created),
            level=level,
            category=category_for_logger(record.name),
            logger=record.name,
            message=record.getMessage(),
            metadata={
                'module': record.module,
                'function': record.funcName,
                'line': record.lineno,
            }
        )
        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_KEYS:
                entry.metadata[key] = value
        return entry

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        try:
            level = LogLevel(str(data.get('level', 'INFO')).upper())
        except ValueError:
            level = LogLevel.INFO
        try:
            category = LogCategory(data.get('category', 'system'))
        except ValueError:
            category = LogCategory.SYSTEM
        timestamp = data.get('timestamp')
        return cls(
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
            level=level,
            category=category,
            logger=data.get('logger', ROOT_LOGGER_NAME),
            message=data.get('message', ""),
            operation=data.get('operation'),
            error_code=data.get('error_code'),
            metadata=data.get('metadata') or {},
        )


class StructuredFormatter(logging.Formatter):
    """Formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        return LogEntry.from_record(record).to_json()


class LogHistoryHandler(logging.Handler):
    """Keeps the most recent log entries in memory for the log viewer."""

    def __init__(self, max_entries: int = DEFAULT_HISTORY_SIZE):
        super().__init__(level=logging.DEBUG)
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = LogEntry.from_record(record)
        except Exception:
            self.handleError(record)
            return
        with self._lock:
            self._entries.append(entry)

    def get_entries(
        self,
        limit: Optional[int] = None,
        level: Optional[str] = None,
        category: Optional[str] = None
    ) -> List[LogEntry]:
        """
        Return recorded entries, oldest first.

        Args:
            limit: Only return the last ``limit`` matching entries
            level: Only return entries at this level
            category: Only return entries in this category

        Returns:
            Matching log entries
        """
        with self._lock:
            entries = list(self._entries)

        if level:
            entries = [e for e in entries if e.level.value == level.upper()]
        if category:
            entries = [e for e in entries if e.category.value == category.lower()]
        if limit is not None and limit >= 0:
            entries = entries[-limit:] if limit else []
        return entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class AuditLogger:
    """Specialized logger for audit events."""

    def __init__(self, log_file: str):
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.audit")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=10
        )
        handler.setFormatter(StructuredFormatter())
        self.logger.addHandler(handler)
        self._handler = handler

    def log_event(self, event_type: str, details: Optional[Dict[str, Any]] = None):
        """Log an audit event."""
        log_entry = LogEntry(
            level=LogLevel.INFO,
            category=LogCategory.AUDIT,
            logger=self.logger.name,
            message=f"Audit event: {event_type}",
            operation=event_type,
            metadata={
                'event_type': event_type,
                'details': details or {}
            }
        )

        self.logger.info(log_entry.message, extra={'log_entry': log_entry})

    def close(self):
        self.logger.removeHandler(self._handler)
        self._handler.close()


_history_handler: Optional[LogHistoryHandler] = None
_audit_logger: Optional[AuditLogger] = None


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    audit_log_file: Optional[str] = None,
    rich_console: bool = True,
    structured_logging: bool = False,
    log_rotation: bool = True,
    max_log_size: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 5,
    history_size: int = DEFAULT_HISTORY_SIZE
) -> logging.Logger:
    """
    Set up logging for the Rebrand Tool.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        audit_log_file: Optional audit log file path
        rich_console: Whether to use Rich console handler for CLI
        structured_logging: Whether to use structured JSON logging
        log_rotation: Whether to enable log rotation
        max_log_size: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
        history_size: Number of entries kept in the in-memory history

    Returns:
        Configured logger instance
    """
    global _history_handler, _audit_logger

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if rich_console and not structured_logging:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True
        )
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        if structured_logging:
            console_handler.setFormatter(StructuredFormatter())
        else:
            console_handler.setFormatter(logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        if log_rotation:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_log_size,
                backupCount=backup_count
            )
        else:
            file_handler = logging.FileHandler(log_file)

        if structured_logging:
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
        logger.addHandler(file_handler)

    _history_handler = LogHistoryHandler(history_size)
    logger.addHandler(_history_handler)

    if _audit_logger is not None:
        _audit_logger.close()
        _audit_logger = None
    if audit_log_file:
        _audit_logger = AuditLogger(audit_log_file)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific component."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def get_audit_logger() -> Optional[AuditLogger]:
    """Return the audit logger configured by ``setup_logging``, if any."""
    return _audit_logger


def get_log_history(
    limit: Optional[int] = None,
    level: Optional[str] = None,
    category: Optional[str] = None
) -> List[LogEntry]:
    """Return entries from the in-memory history (empty before setup)."""
    if _history_handler is None:
        return []
    return _history_handler.get_entries(limit=limit, level=level, category=category)


def clear_log_history() -> None:
    if _history_handler is not None:
        _history_handler.clear()


def read_log_file(log_file: str, limit: Optional[int] = None) -> List[LogEntry]:
    """
    Read entries from a structured (JSON lines) log file.

    Lines that are not structured entries are skipped.

    Args:
        log_file: Path to the log or audit log file
        limit: Only return the last ``limit`` entries

    Returns:
        Entries oldest first; empty if the file does not exist
    """
    path = Path(log_file).expanduser()
    if not path.exists():
        return []

    entries = []
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict):
                entries.append(LogEntry.from_dict(data))

    if limit is not None and limit >= 0:
        entries = entries[-limit:] if limit else []
    return entries
