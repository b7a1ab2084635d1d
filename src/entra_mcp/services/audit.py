"""Audit trail of account changes, stored in immudb.

Every successful enable/disable is written to a key-value log, an SQL table,
or both. Writes are best-effort: a failing sink is logged and never blocks
the other sink or the tool response.
"""

import asyncio
import json
import logging
import secrets
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from ..config import SINK_MODES, ConfigurationError, ImmudbConfig
from ..models.audit import AuditAction, AuditRecord

try:
    from immudb import ImmudbClient
except ImportError:
    ImmudbClient = None

logger = logging.getLogger(__name__)

KV_PREFIX = "mcp-action:"
SQL_TABLE = "mcp_actions"
MAX_LOG_ENTRIES = 100

CREATE_TABLE_SQL = (
    f"CREATE TABLE IF NOT EXISTS {SQL_TABLE}("
    "id INTEGER AUTO_INCREMENT,"
    "requester_ip VARCHAR,"
    "target_user_id VARCHAR,"
    "action VARCHAR,"
    "ts VARCHAR,"
    "PRIMARY KEY (id))"
)
SELECT_LOGS_SQL = (
    f"SELECT id, requester_ip, target_user_id, action, ts FROM {SQL_TABLE} "
    f"ORDER BY id DESC LIMIT {MAX_LOG_ENTRIES}"
)


def sql_quote(value: Any) -> str:
    """Render a value as an SQL string literal, doubling single quotes."""
    return "'" + str(value).replace("'", "''") + "'"


def insert_statement(record: AuditRecord) -> str:
    values = ",".join(
        sql_quote(v)
        for v in (
            record.requester_ip,
            record.target_user_id,
            record.action.value,
            record.timestamp,
        )
    )
    return f"INSERT INTO {SQL_TABLE}(requester_ip, target_user_id, action, ts) VALUES({values})"


class AuditStore(ABC):
    """The storage operations the audit logger and reader need."""

    @abstractmethod
    async def connect(self) -> None:
        """Authenticate and select the database."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def sql_exec(self, sql: str) -> None:
        ...

    @abstractmethod
    async def scan(self, prefix: str, limit: int, desc: bool = True) -> List[Tuple[str, str]]:
        """Return ``(key, value)`` pairs under ``prefix`` in key order."""
        ...

    @abstractmethod
    async def sql_query(self, sql: str) -> List[Tuple[Any, ...]]:
        ...

    async def list_tables(self) -> List[str]:
        return []

    async def close(self) -> None:
        return None


class ImmudbStore(AuditStore):
    """AuditStore backed by the immudb gRPC client.

    The client is synchronous, so every call runs in a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        database: str,
        client_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.address = f"{host}:{port}"
        self.user = user
        self.password = password
        self.database = database
        self._client_factory = client_factory or ImmudbClient
        self._client: Optional[Any] = None

    @property
    def client(self) -> Any:
        if self._client is None:
            raise ConnectionError("immudb client is not connected")
        return self._client

    def _connect_sync(self) -> Any:
        if self._client_factory is None:
            raise ConfigurationError("The immudb-py package is not installed")
        client = self._client_factory(self.address)
        client.login(self.user, self.password, database=self.database.encode())
        client.useDatabase(self.database.encode())
        return client

    async def connect(self) -> None:
        self._client = await asyncio.to_thread(self._connect_sync)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self.client.set, key.encode(), value.encode())

    async def sql_exec(self, sql: str) -> None:
        await asyncio.to_thread(self.client.sqlExec, sql)

    async def scan(self, prefix: str, limit: int, desc: bool = True) -> List[Tuple[str, str]]:
        entries = await asyncio.to_thread(self.client.scan, b"", prefix.encode(), desc, limit)
        return [(_text(key), _text(value)) for key, value in entries.items()]

    async def sql_query(self, sql: str) -> List[Tuple[Any, ...]]:
        rows = await asyncio.to_thread(self.client.sqlQuery, sql)
        return [tuple(row) for row in rows]

    async def list_tables(self) -> List[str]:
        tables = await asyncio.to_thread(self.client.listTables)
        return [_text(table) for table in tables]

    async def close(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await asyncio.to_thread(client.logout)
        except Exception as e:
            logger.warning(f"immudb logout failed: {e}")


def _text(value: Union[bytes, str]) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


class AuditLogger:
    """Records account changes to the configured immudb sinks."""

    def __init__(self, config: ImmudbConfig, store: Optional[AuditStore] = None):
        """Initialize the logger.

        Args:
            config: Connection settings and sink mode.
            store: Storage to write to. Defaults to an ImmudbStore built
                from ``config``.

        Raises:
            ConfigurationError: If a required connection setting is missing.
        """
        missing = config.missing_fields()
        if missing:
            raise ConfigurationError(
                "Missing required immuDB configuration (host, port, user, password, database): "
                f"{', '.join(missing)} not set"
            )

        mode = (config.mode or "kv").lower()
        if mode not in SINK_MODES:
            logger.warning(f"Unknown IMMUDB_MODE {config.mode!r}, falling back to 'kv'")
            mode = "kv"
        self.mode = mode
        self.use_kv = mode in ("kv", "both")
        self.use_sql = mode in ("sql", "both")

        if store is None and ImmudbClient is None:
            logger.error("immudb-py package could not be loaded; audit logging disabled")
            self.enabled = False
        else:
            self.enabled = config.enabled

        if store is None:
            store = ImmudbStore(
                config.host, config.port, config.user, config.password, config.database
            )
        self.store = store
        self.address = f"{config.host}:{config.port}"
        self.database = config.database

        self._connected = False
        self._connect_task: Optional[asyncio.Task] = None
        self._schema_ready = False
        self._last_key_ms = 0
        self._pending: Set[asyncio.Task] = set()

        logger.info(f"Audit logger: enabled={self.enabled}, mode={self.mode}, address={self.address}")

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def ensure_connected(self) -> bool:
        """Connect on first use. Concurrent callers share one attempt.

        Returns:
            True when the store is ready. A failed attempt is logged and the
            next call tries again.
        """
        if self._connected:
            return True
        if not self.enabled:
            return False

        if self._connect_task is None:
            self._connect_task = asyncio.ensure_future(self._connect())
        task = self._connect_task
        try:
            await asyncio.shield(task)
        except Exception as e:
            if self._connect_task is task:
                self._connect_task = None
            logger.error(f"Failed to connect to immuDB at {self.address}: {e}")
            return False
        return True

    async def _connect(self) -> None:
        await self.store.connect()
        self._connected = True
        logger.info(f"immuDB connected: {self.address} / {self.database} / mode={self.mode}")
        if self.use_sql:
            await self._ensure_schema()

    async def _ensure_schema(self) -> None:
        try:
            await self.store.sql_exec(CREATE_TABLE_SQL)
        except Exception as e:
            logger.warning(f"Failed to ensure immuDB SQL table {SQL_TABLE}: {e}")
            return
        self._schema_ready = True
        logger.info(f"SQL table {SQL_TABLE} ensured")

    def next_key(self) -> str:
        """Build a fresh KV key. The millisecond part never repeats or goes
        backwards, so descending key order is newest first."""
        now_ms = int(time.time() * 1000)
        if now_ms <= self._last_key_ms:
            now_ms = self._last_key_ms + 1
        self._last_key_ms = now_ms
        return f"{KV_PREFIX}{now_ms:013d}:{secrets.token_hex(6)}"

    async def record_action(
        self,
        requester_ip: str,
        target_user_id: str,
        action: Union[AuditAction, str],
        authenticated_user: Optional[str] = None,
    ) -> None:
        """Write one audit record to every enabled sink.

        Sink failures are logged, not raised.

        Raises:
            ValueError: If a field is missing or the action is unknown.
        """
        if not self.enabled:
            logger.debug("immuDB logging disabled, skipping audit record")
            return

        if not requester_ip or not target_user_id or not action:
            raise ValueError(
                "requesterIp, targetUserId, and action are required to log into immuDB"
            )
        record = AuditRecord(
            requester_ip=requester_ip,
            target_user_id=target_user_id,
            action=AuditAction(action),
            authenticated_user=authenticated_user,
        )

        if not await self.ensure_connected():
            logger.error(
                f"Audit record dropped ({record.action.value} {record.target_user_id}): "
                "immuDB unavailable"
            )
            return

        sinks: List[str] = []
        writes = []
        if self.use_kv:
            sinks.append("KV")
            writes.append(self._write_kv(record))
        if self.use_sql:
            sinks.append("SQL")
            writes.append(self._write_sql(record))

        results = await asyncio.gather(*writes, return_exceptions=True)
        for sink, result in zip(sinks, results):
            if isinstance(result, BaseException):
                logger.error(f"Failed to write audit ({sink}): {result}")

    async def _write_kv(self, record: AuditRecord) -> None:
        key = self.next_key()
        logger.debug(f"Writing to immuDB KV: key={key}")
        await self.store.set(key, json.dumps(record.to_dict()))
        logger.info(f"Audit written to immuDB KV: {record.action.value} {record.target_user_id}")

    async def _write_sql(self, record: AuditRecord) -> None:
        if not self._schema_ready:
            await self._ensure_schema()
        logger.debug(f"Writing to immuDB SQL: INSERT {SQL_TABLE}")
        await self.store.sql_exec(insert_statement(record))
        logger.info(f"Audit written to immuDB SQL: {record.action.value} {record.target_user_id}")

    def record_in_background(
        self,
        requester_ip: str,
        target_user_id: str,
        action: Union[AuditAction, str],
        authenticated_user: Optional[str] = None,
    ) -> Optional[asyncio.Task]:
        """Schedule ``record_action`` without waiting for it.

        Returns:
            The scheduled task, or None when logging is disabled.
        """
        if not self.enabled:
            return None
        task = asyncio.create_task(
            self.record_action(requester_ip, target_user_id, action, authenticated_user)
        )
        self._pending.add(task)
        task.add_done_callback(self._background_done)
        return task

    def _background_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background audit write failed: {error}")

    async def drain(self) -> None:
        """Wait for every scheduled background write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        if self._connected:
            await self.store.close()
            self._connected = False
            self._connect_task = None


def _sort_key(entry: Dict[str, Any]) -> datetime:
    value = entry.get("timestamp") or ""
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AuditLogReader:
    """Read side for the log viewer: merges both sinks, newest first."""

    def __init__(self, audit_logger: AuditLogger):
        self.audit_logger = audit_logger

    @property
    def store(self) -> AuditStore:
        return self.audit_logger.store

    async def is_available(self) -> bool:
        return await self.audit_logger.ensure_connected()

    async def latest(self, limit: int = MAX_LOG_ENTRIES) -> List[Dict[str, Any]]:
        """Return up to ``limit`` entries from both sinks, newest first.

        A sink that cannot be read is logged and skipped.
        """
        logs: List[Dict[str, Any]] = []

        try:
            for key, value in await self.store.scan(KV_PREFIX, MAX_LOG_ENTRIES, desc=True):
                try:
                    logs.append({"source": "kv", "key": key, **json.loads(value)})
                except (json.JSONDecodeError, TypeError) as e:
                    logger.error(f"Failed to parse KV entry {key}: {e}")
        except Exception as e:
            logger.warning(f"Failed to fetch KV logs: {e}")

        try:
            for row in await self.store.sql_query(SELECT_LOGS_SQL):
                row_id, requester_ip, target_user_id, action, ts = row
                logs.append(
                    {
                        "source": "sql",
                        "id": row_id,
                        "requesterIp": requester_ip or "unknown",
                        "targetUserId": target_user_id or "unknown",
                        "action": action or "unknown",
                        "timestamp": ts or "unknown",
                    }
                )
        except Exception as e:
            logger.warning(f"Failed to fetch SQL logs: {e}")

        logs.sort(key=_sort_key, reverse=True)
        return logs[:limit]

    async def tables(self) -> List[str]:
        return await self.store.list_tables()
