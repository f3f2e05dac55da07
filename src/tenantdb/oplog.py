"""Append-only operation log.

Each entry is one JSON object per line:
{timestamp, level, userId, action, details}.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from tenantdb.schema.models import format_timestamp, utc_now
from tenantdb.types import Action, LogLevel

__all__ = [
    "LogEntry",
    "OperationLogStore",
    "InMemoryOperationLog",
    "FileOperationLog",
    "log_database_creation",
    "log_database_access",
    "log_database_migration",
    "log_database_import",
    "log_user_operation",
]

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    level: str
    action: str
    details: dict[str, Any] = field(default_factory=dict)
    user_id: str = "system"
    timestamp: str = field(default_factory=lambda: format_timestamp(utc_now()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "userId": self.user_id,
            "action": self.action,
            "details": self.details,
        }


@runtime_checkable
class OperationLogStore(Protocol):
    """
    Stores operation log entries.

    Semantics:
    - Entries are only ever appended.
    - read() returns the newest entries first.
    """

    def write(
        self,
        level: LogLevel,
        action: str,
        details: dict[str, Any],
        user_id: str = "system",
    ) -> LogEntry:
        ...

    def read(self, limit: int = 100) -> list[dict[str, Any]]:
        ...


def _echo(entry: LogEntry) -> None:
    log_level = logging.ERROR if entry.level == LogLevel.ERROR.value else logging.INFO
    logger.log(
        log_level,
        "[%s] [%s] %s: %s",
        entry.level,
        entry.user_id,
        entry.action,
        json.dumps(entry.details, default=str),
    )


class InMemoryOperationLog:
    def __init__(self) -> None:
        self._entries: list[LogEntry] = []

    def write(
        self,
        level: LogLevel,
        action: str,
        details: dict[str, Any],
        user_id: str = "system",
    ) -> LogEntry:
        entry = LogEntry(level=level.value, action=action, details=details, user_id=user_id)
        self._entries.append(entry)
        _echo(entry)
        return entry

    def read(self, limit: int = 100) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        return [e.to_dict() for e in reversed(self._entries[-limit:])]


class FileOperationLog:
    """Writes entries as JSON lines to a file, appending only."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def write(
        self,
        level: LogLevel,
        action: str,
        details: dict[str, Any],
        user_id: str = "system",
    ) -> LogEntry:
        entry = LogEntry(level=level.value, action=action, details=details, user_id=user_id)
        line = json.dumps(entry.to_dict(), default=str) + "\n"
        try:
            with self._lock, open(self.path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write to log file %s: %s", self.path, e)
        _echo(entry)
        return entry

    def read(self, limit: int = 100) -> list[dict[str, Any]]:
        """Return up to limit entries, newest first. Unparseable lines are skipped."""
        if limit <= 0 or not self.path.exists():
            return []
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            logger.error("Failed to read log file %s: %s", self.path, e)
            return []

        entries = []
        for line in lines:
            if not line.strip():
                continue
            try:
                entries.append(json.loads(line))
            except ValueError:
                continue
        return list(reversed(entries[-limit:]))


def log_database_creation(
    store: OperationLogStore,
    database: str,
    user_id: str,
    success: bool,
    error: Optional[BaseException] = None,
) -> LogEntry:
    if success:
        return store.write(
            LogLevel.SUCCESS, Action.DATABASE_CREATED.value, {"database": database}, user_id
        )
    return store.write(
        LogLevel.ERROR,
        Action.DATABASE_CREATION_FAILED.value,
        {"database": database, "error": str(error) if error else None},
        user_id,
    )


def log_database_access(
    store: OperationLogStore,
    database: str,
    user_id: str,
    success: bool,
    error: Optional[BaseException] = None,
) -> LogEntry:
    if success:
        return store.write(
            LogLevel.INFO, Action.DATABASE_ACCESSED.value, {"database": database}, user_id
        )
    return store.write(
        LogLevel.ERROR,
        Action.DATABASE_ACCESS_FAILED.value,
        {"database": database, "error": str(error) if error else None},
        user_id,
    )


def log_database_migration(
    store: OperationLogStore,
    source: str,
    target: str,
    user_id: str,
    success: bool,
    details: Optional[dict[str, Any]] = None,
) -> LogEntry:
    details = details or {}
    if success:
        return store.write(
            LogLevel.SUCCESS,
            Action.DATABASE_MIGRATED.value,
            {"source": source, "target": target, **details},
            user_id,
        )
    return store.write(
        LogLevel.ERROR,
        Action.DATABASE_MIGRATION_FAILED.value,
        {"source": source, "target": target, "error": details.get("error")},
        user_id,
    )


def log_database_import(
    store: OperationLogStore,
    target: str,
    user_id: str,
    success: bool,
    details: Optional[dict[str, Any]] = None,
) -> LogEntry:
    details = details or {}
    if success:
        return store.write(
            LogLevel.SUCCESS,
            Action.DATABASE_IMPORTED.value,
            {"target": target, **details},
            user_id,
        )
    return store.write(
        LogLevel.ERROR,
        Action.DATABASE_IMPORT_FAILED.value,
        {"target": target, "error": details.get("error")},
        user_id,
    )


def log_user_operation(
    store: OperationLogStore,
    operation: str,
    details: dict[str, Any],
    user_id: str = "system",
) -> LogEntry:
    return store.write(LogLevel.INFO, f"USER_{operation.upper()}", details, user_id)
