"""Integration tests: state survives closing and reopening a store directory."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from memproto import AuditConfig
from memproto import MemoryProtocolError
from memproto import MemoryStore
from memproto.audit import AuditEventType


class TestReload:
    async def test_memories_and_head_survive_reopen(self, store: MemoryStore, reopen):
        first = await store.remember({"type": "fact", "content": {"n": 1}})
        second = await store.remember(
            {"type": "lesson", "content": {"n": 2}, "tags": ["x"], "confidence": 0.6}
        )

        reopened = reopen()

        assert reopened.load_errors == []
        assert len(reopened) == 2
        assert reopened.chain_head == second.id
        assert reopened.get(first.id) == first
        assert reopened.get(second.id) == second
        assert reopened.identity == store.identity

    async def test_deleted_memories_survive_reopen(self, store: MemoryStore, reopen):
        memory = await store.remember({"type": "fact", "content": {"gone": True}})
        await store.forget(memory.id)

        reopened = reopen()

        kept = reopened.get(memory.id)
        assert kept is not None
        assert kept.deleted is True
        assert kept.deleted_at is not None
        assert reopened.recall() == []
        assert reopened.stats().deleted == 1

    async def test_reopened_store_verifies(self, store: MemoryStore, reopen):
        for i in range(5):
            await store.remember({"type": "event", "content": {"i": i}})
        memories = store.recall()
        await store.forget(memories[2].id)
        await store.update(memories[3].id, {"tags": ["edited"]})

        result = await reopen().verify()

        assert result.valid is True
        assert result.chain_intact is True
        assert result.orphans == []

    async def test_writes_continue_chain_after_reopen(self, store: MemoryStore, reopen):
        await store.remember({"type": "fact", "content": {"n": 1}})

        reopened = reopen()
        latest = await reopened.remember({"type": "fact", "content": {"n": 2}})

        assert latest.previous_hash is not None
        assert (await reopened.verify()).valid is True

    async def test_identity_not_regenerated(self, store: MemoryStore, reopen):
        created = store.identity.created
        assert reopen().identity.created == created


class TestOnDiskFormat:
    async def test_log_lines_use_wire_names(self, store: MemoryStore, data_dir: Path):
        await store.remember({"type": "fact", "content": {"a": 1}})
        second = await store.remember({"type": "fact", "content": {"b": 2}})
        await store.forget(second.id)

        lines = (data_dir / "memories.jsonl").read_text().splitlines()
        first_line, second_line = (json.loads(line) for line in lines)

        assert "previousHash" not in first_line
        assert "deletedAt" not in first_line
        assert second_line["previousHash"].startswith("sha256:")
        assert second_line["deletedAt"] is not None
        assert second_line["signature"]["verificationMethod"] == "did:soul:test#keys-1"

    async def test_identity_document(self, store: MemoryStore, data_dir: Path):
        memory = await store.remember({"type": "fact", "content": {}})

        doc = json.loads((data_dir / "identity.json").read_text())

        assert doc["soul"] == "did:soul:test"
        assert doc["protocolVersion"] == "0.1.0"
        assert doc["publicKey"].startswith("z6Mk")
        assert doc["chainHead"] == memory.id


class TestCorruptFiles:
    async def test_bad_log_line_skipped(
        self, store: MemoryStore, reopen, data_dir: Path
    ):
        first = await store.remember({"type": "fact", "content": {"n": 1}})
        second = await store.remember({"type": "fact", "content": {"n": 2}})
        with open(data_dir / "memories.jsonl", "a", encoding="utf-8") as fh:
            fh.write("{this is not json\n")

        reopened = reopen()

        assert len(reopened) == 2
        assert first.id in reopened
        assert second.id in reopened
        assert [e.line_number for e in reopened.load_errors] == [3]

    async def test_corrupt_identity_refuses_to_open(self, store: MemoryStore, reopen):
        (store.config.root / "identity.json").write_text("not json at all")

        with pytest.raises(MemoryProtocolError):
            reopen()


class TestAuditTrail:
    async def test_every_operation_recorded(self, store: MemoryStore):
        memory = await store.remember({"type": "fact", "content": {}})
        await store.update(memory.id, {"content": {"x": 1}})
        await store.forget(memory.id, reason="obsolete")
        await store.export()
        await store.verify()

        events = await store.audit.read_events()

        assert [e.event_type for e in events] == [
            AuditEventType.REMEMBER,
            AuditEventType.UPDATE,
            AuditEventType.FORGET,
            AuditEventType.EXPORT,
            AuditEventType.VERIFY,
        ]

    async def test_noops_not_recorded(self, store: MemoryStore):
        await store.forget("mem_unknown")
        await store.update("mem_unknown", {"tags": []})

        assert await store.audit.read_events() == []

    async def test_disabled_audit_writes_nothing(self, store_config, data_dir: Path):
        quiet = MemoryStore(store_config, audit_config=AuditConfig(enabled=False))
        await quiet.remember({"type": "fact", "content": {}})

        assert not (data_dir / "audit.jsonl").exists()

    async def test_custom_layout(self, store_config, tmp_path: Path):
        config = replace(
            store_config,
            data_dir=tmp_path / "custom",
            memories_file="log.jsonl",
        )
        custom = MemoryStore(config, audit_config=AuditConfig(file_name="trail.jsonl"))
        await custom.remember({"type": "fact", "content": {}})

        names = sorted(p.name for p in (tmp_path / "custom").iterdir())
        assert names == ["identity.json", "log.jsonl", "trail.jsonl"]

    async def test_failed_audit_write_keeps_operation(
        self, store: MemoryStore, reopen, monkeypatch, caplog
    ):
        def broken_append(path: Path, line: str) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(store.audit, "_append", broken_append)

        memory = await store.remember({"type": "fact", "content": {}})
        await store.forget(memory.id, reason="obsolete")

        assert store.get(memory.id).deleted is True
        assert "Failed to write REMEMBER audit event" in caplog.text
        reopened = reopen()
        assert reopened.get(memory.id).deleted is True
        assert reopened.chain_head == memory.id
