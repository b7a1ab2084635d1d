"""Unit tests for the immudb audit logger and log reader."""

import asyncio
import json
import re
from unittest.mock import Mock, patch

import pytest

from entra_mcp.config import ConfigurationError, ImmudbConfig
from entra_mcp.models.audit import AuditAction, AuditRecord
from entra_mcp.services.audit import (
    AuditLogger,
    AuditLogReader,
    ImmudbStore,
    insert_statement,
    sql_quote,
)
from tests.fixtures import immudb_config

KEY_PATTERN = re.compile(r"^mcp-action:\d{13}:[0-9a-f]{12}$")


class TestAuditLoggerConfig:
    """Test construction and configuration handling."""

    def test_missing_fields(self, audit_store):
        """Test missing connection settings are a configuration error."""
        with pytest.raises(ConfigurationError, match="password"):
            AuditLogger(ImmudbConfig(host="localhost", port=3322, user="immudb"), audit_store)

    @pytest.mark.parametrize(
        "mode,use_kv,use_sql",
        [("kv", True, False), ("sql", False, True), ("both", True, True), ("BOTH", True, True)],
    )
    def test_modes(self, audit_store, mode, use_kv, use_sql):
        """Test each mode selects its sinks."""
        audit = AuditLogger(immudb_config(mode), audit_store)
        assert (audit.use_kv, audit.use_sql) == (use_kv, use_sql)

    def test_unknown_mode_falls_back_to_kv(self, audit_store):
        """Test an unknown mode is normalized to kv with a warning."""
        with patch("entra_mcp.services.audit.logger") as mock_logger:
            audit = AuditLogger(immudb_config("ledger"), audit_store)

        assert audit.mode == "kv"
        mock_logger.warning.assert_called_once()

    def test_injected_store_is_kept(self, audit_store):
        """Test a supplied store is used as is."""
        audit = AuditLogger(immudb_config(), audit_store)
        assert audit.store is audit_store

    def test_default_store(self):
        """Test an immudb store is built from the configuration when none is given."""
        audit = AuditLogger(immudb_config())
        assert isinstance(audit.store, ImmudbStore)

    def test_disabled_without_client_library(self):
        """Test the logger disables itself when immudb-py is not importable."""
        with patch("entra_mcp.services.audit.ImmudbClient", None):
            audit = AuditLogger(immudb_config())
        assert audit.enabled is False


class TestAuditLoggerWrites:
    """Test writing records to the sinks."""

    @pytest.mark.asyncio
    async def test_disabled_is_noop(self, audit_store):
        """Test a disabled logger never connects."""
        audit = AuditLogger(immudb_config(enabled=False), audit_store)

        await audit.record_action("10.0.0.1", "abc-guid", AuditAction.ENABLE)

        assert audit_store.connect_count == 0
        assert audit.record_in_background("10.0.0.1", "abc-guid", "enable") is None

    @pytest.mark.asyncio
    async def test_kv_write(self, audit_store):
        """Test a KV record has the expected key and JSON value."""
        audit = AuditLogger(immudb_config("kv"), audit_store)

        await audit.record_action("10.0.0.1", "abc-guid", "enable", "admin@contoso.com")

        assert len(audit_store.kv) == 1
        key, value = next(iter(audit_store.kv.items()))
        assert KEY_PATTERN.match(key)
        record = json.loads(value)
        assert record["requesterIp"] == "10.0.0.1"
        assert record["targetUserId"] == "abc-guid"
        assert record["action"] == "enable"
        assert record["authenticatedUser"] == "admin@contoso.com"
        assert record["timestamp"].endswith("Z")
        assert audit_store.inserts() == []

    @pytest.mark.asyncio
    async def test_sql_write_creates_table_first(self, audit_store):
        """Test the table is ensured before the first insert."""
        audit = AuditLogger(immudb_config("sql"), audit_store)

        await audit.record_action("10.0.0.1", "abc-guid", AuditAction.DISABLE)

        assert audit_store.statements[0].startswith("CREATE TABLE IF NOT EXISTS mcp_actions(")
        assert len(audit_store.inserts()) == 1
        assert "'10.0.0.1','abc-guid','disable'," in audit_store.inserts()[0]
        assert audit_store.kv == {}

    @pytest.mark.asyncio
    async def test_both_writes_each_sink_once(self, audit_store):
        """Test both mode writes exactly one record per sink."""
        audit = AuditLogger(immudb_config("both"), audit_store)

        await audit.record_action("10.0.0.1", "abc-guid", AuditAction.ENABLE)

        assert len(audit_store.kv) == 1
        assert len(audit_store.inserts()) == 1

    @pytest.mark.asyncio
    async def test_kv_failure_does_not_block_sql(self, audit_store):
        """Test a failing KV sink still lets the SQL write through."""
        audit_store.fail_kv = True
        audit = AuditLogger(immudb_config("both"), audit_store)

        with patch("entra_mcp.services.audit.logger") as mock_logger:
            await audit.record_action("10.0.0.1", "abc-guid", AuditAction.ENABLE)

        assert len(audit_store.inserts()) == 1
        errors = [c.args[0] for c in mock_logger.error.call_args_list]
        assert any("(KV)" in message for message in errors)

    @pytest.mark.asyncio
    async def test_sql_failure_does_not_block_kv(self, audit_store):
        """Test a failing SQL sink still lets the KV write through."""
        audit_store.fail_sql = True
        audit = AuditLogger(immudb_config("both"), audit_store)

        with patch("entra_mcp.services.audit.logger") as mock_logger:
            await audit.record_action("10.0.0.1", "abc-guid", AuditAction.ENABLE)

        assert len(audit_store.kv) == 1
        errors = [c.args[0] for c in mock_logger.error.call_args_list]
        assert any("(SQL)" in message for message in errors)

    @pytest.mark.asyncio
    async def test_required_fields(self, audit_store):
        """Test missing fields and unknown actions raise ValueError."""
        audit = AuditLogger(immudb_config(), audit_store)

        with pytest.raises(ValueError, match="required"):
            await audit.record_action("", "abc-guid", AuditAction.ENABLE)
        with pytest.raises(ValueError):
            await audit.record_action("10.0.0.1", "abc-guid", "delete")
        assert audit_store.kv == {}

    @pytest.mark.asyncio
    async def test_quotes_are_escaped(self, audit_store):
        """Test single quotes in values are doubled in the SQL insert."""
        audit = AuditLogger(immudb_config("sql"), audit_store)

        await audit.record_action("10.0.0.1", "o'brien@contoso.com", AuditAction.ENABLE)

        assert "'o''brien@contoso.com'" in audit_store.inserts()[0]


class TestAuditLoggerConnection:
    """Test lazy connection handling."""

    @pytest.mark.asyncio
    async def test_concurrent_first_writes_share_connect(self, audit_store):
        """Test concurrent first callers await a single connection attempt."""
        audit_store.connect_delay = 0.01
        audit = AuditLogger(immudb_config(), audit_store)

        await asyncio.gather(
            *(audit.record_action("10.0.0.1", f"user-{i}", AuditAction.ENABLE) for i in range(5))
        )

        assert audit_store.connect_count == 1
        assert len(audit_store.kv) == 5
        assert audit.is_connected is True

    @pytest.mark.asyncio
    async def test_connect_failure_is_retried(self, audit_store):
        """Test a failed connect drops that record and the next write retries."""
        audit_store.fail_connect = True
        audit = AuditLogger(immudb_config(), audit_store)

        await audit.record_action("10.0.0.1", "abc-guid", AuditAction.ENABLE)
        assert audit_store.kv == {}
        assert audit.is_connected is False

        audit_store.fail_connect = False
        await audit.record_action("10.0.0.1", "abc-guid", AuditAction.ENABLE)

        assert audit_store.connect_count == 2
        assert len(audit_store.kv) == 1

    @pytest.mark.asyncio
    async def test_schema_bootstrap_is_retried(self, audit_store):
        """Test a failed CREATE TABLE is attempted again before the next insert."""
        audit_store.fail_ddl = True
        audit = AuditLogger(immudb_config("sql"), audit_store)

        await audit.record_action("10.0.0.1", "abc-guid", AuditAction.ENABLE)
        audit_store.fail_ddl = False
        await audit.record_action("10.0.0.1", "abc-guid", AuditAction.ENABLE)

        assert audit_store.tables == ["mcp_actions"]
        assert len(audit_store.inserts()) == 2

    @pytest.mark.asyncio
    async def test_close(self, audit_store):
        """Test close drains pending writes and closes the store."""
        audit = AuditLogger(immudb_config(), audit_store)
        audit.record_in_background("10.0.0.1", "abc-guid", AuditAction.ENABLE)

        await audit.close()

        assert len(audit_store.kv) == 1
        assert audit_store.closed is True
        assert audit.is_connected is False


class TestAuditKeys:
    """Test KV key generation."""

    def test_keys_are_unique_and_ordered(self, audit_store):
        """Test keys stay distinct and increasing within one millisecond."""
        audit = AuditLogger(immudb_config(), audit_store)

        with patch("entra_mcp.services.audit.time.time", return_value=1700000000.0):
            keys = [audit.next_key() for _ in range(50)]

        assert len(set(keys)) == 50
        assert keys == sorted(keys)
        assert all(KEY_PATTERN.match(k) for k in keys)

    def test_key_timestamp(self, audit_store):
        """Test the key embeds the zero-padded millisecond timestamp."""
        audit = AuditLogger(immudb_config(), audit_store)

        with patch("entra_mcp.services.audit.time.time", return_value=1700000000.5):
            key = audit.next_key()

        assert key.startswith("mcp-action:1700000000500:")


class TestBackgroundWrites:
    """Test fire-and-forget recording."""

    @pytest.mark.asyncio
    async def test_record_in_background(self, audit_store):
        """Test the write happens after the caller moves on."""
        audit = AuditLogger(immudb_config(), audit_store)

        task = audit.record_in_background("10.0.0.1", "abc-guid", AuditAction.ENABLE)
        assert task is not None
        assert audit_store.kv == {}

        await audit.drain()
        assert len(audit_store.kv) == 1

    @pytest.mark.asyncio
    async def test_background_errors_are_logged(self, audit_store):
        """Test a failing background write is logged, not raised."""
        audit = AuditLogger(immudb_config(), audit_store)

        with patch("entra_mcp.services.audit.logger") as mock_logger:
            audit.record_in_background("", "abc-guid", AuditAction.ENABLE)
            await audit.drain()
            await asyncio.sleep(0)

        mock_logger.error.assert_called()


class TestSqlHelpers:
    """Test SQL rendering."""

    def test_sql_quote(self):
        """Test quotes are doubled."""
        assert sql_quote("it's") == "'it''s'"

    def test_insert_statement(self):
        """Test the full insert statement."""
        record = AuditRecord(
            requester_ip="1.2.3.4",
            target_user_id="abc-guid",
            action=AuditAction.ENABLE,
            timestamp="2024-01-01T00:00:00.000Z",
        )
        assert insert_statement(record) == (
            "INSERT INTO mcp_actions(requester_ip, target_user_id, action, ts) "
            "VALUES('1.2.3.4','abc-guid','enable','2024-01-01T00:00:00.000Z')"
        )


class TestImmudbStore:
    """Test the adapter over the synchronous immudb client."""

    @pytest.mark.asyncio
    async def test_connect_and_write(self):
        """Test login, database selection and a KV write."""
        client = Mock()
        factory = Mock(return_value=client)
        store = ImmudbStore("localhost", 3322, "immudb", "secret", "defaultdb", factory)

        await store.connect()
        await store.set("mcp-action:1:abc", '{"a": 1}')

        factory.assert_called_once_with("localhost:3322")
        client.login.assert_called_once_with("immudb", "secret", database=b"defaultdb")
        client.useDatabase.assert_called_once_with(b"defaultdb")
        client.set.assert_called_once_with(b"mcp-action:1:abc", b'{"a": 1}')

    @pytest.mark.asyncio
    async def test_scan_decodes_entries(self):
        """Test scan results are decoded to text pairs."""
        client = Mock()
        client.scan.return_value = {b"mcp-action:2:b": b"{}", b"mcp-action:1:a": b"{}"}
        store = ImmudbStore("h", 1, "u", "p", "db", Mock(return_value=client))
        await store.connect()

        entries = await store.scan("mcp-action:", 100)

        client.scan.assert_called_once_with(b"", b"mcp-action:", True, 100)
        assert entries == [("mcp-action:2:b", "{}"), ("mcp-action:1:a", "{}")]

    @pytest.mark.asyncio
    async def test_use_before_connect(self):
        """Test calls before connect fail clearly."""
        store = ImmudbStore("h", 1, "u", "p", "db", Mock())
        with pytest.raises(ConnectionError):
            await store.set("k", "v")


class TestAuditLogReader:
    """Test the newest-first merged view of both sinks."""

    @pytest.mark.asyncio
    async def test_merges_sources_newest_first(self, audit_store):
        """Test KV and SQL entries are tagged and sorted by timestamp."""
        audit_store.kv = {
            "mcp-action:0000000000001:aaaaaaaaaaaa": json.dumps(
                {
                    "requesterIp": "1.1.1.1",
                    "targetUserId": "old",
                    "action": "enable",
                    "timestamp": "2024-01-01T00:00:00.000Z",
                }
            ),
            "mcp-action:0000000000003:cccccccccccc": json.dumps(
                {
                    "requesterIp": "1.1.1.1",
                    "targetUserId": "newest",
                    "action": "disable",
                    "timestamp": "2024-03-01T00:00:00.000Z",
                }
            ),
        }
        audit_store.rows = [(7, "2.2.2.2", "middle", "enable", "2024-02-01T00:00:00.000Z")]
        reader = AuditLogReader(AuditLogger(immudb_config("both"), audit_store))

        logs = await reader.latest()

        assert [entry["targetUserId"] for entry in logs] == ["newest", "middle", "old"]
        assert [entry["source"] for entry in logs] == ["kv", "sql", "kv"]
        assert logs[0]["key"] == "mcp-action:0000000000003:cccccccccccc"
        assert logs[1]["id"] == 7

    @pytest.mark.asyncio
    async def test_caps_at_limit(self, audit_store):
        """Test the merged result is capped."""
        for i in range(80):
            audit_store.kv[f"mcp-action:{i:013d}:000000000000"] = json.dumps(
                {"timestamp": f"2024-01-01T00:00:{i % 60:02d}.000Z"}
            )
        audit_store.rows = [
            (i, "ip", "user", "enable", "2024-01-02T00:00:00.000Z") for i in range(80)
        ]
        reader = AuditLogReader(AuditLogger(immudb_config("both"), audit_store))

        assert len(await reader.latest()) == 100

    @pytest.mark.asyncio
    async def test_skips_unreadable_entries(self, audit_store):
        """Test bad KV values and a missing SQL table are skipped."""
        audit_store.kv = {"mcp-action:0000000000001:aaaaaaaaaaaa": "not json"}
        audit_store.fail_sql = True
        reader = AuditLogReader(AuditLogger(immudb_config("kv"), audit_store))

        assert await reader.latest() == []

    @pytest.mark.asyncio
    async def test_availability(self, audit_store):
        """Test availability follows the store connection."""
        audit_store.fail_connect = True
        reader = AuditLogReader(AuditLogger(immudb_config(), audit_store))

        assert await reader.is_available() is False
