"""Unit tests for the on-disk identity document and memory log."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from memproto.errors import MemoryProtocolError
from memproto.memory import MemoryLog
from memproto.models import MemoryIdentity
from memproto.models import MemoryObject
from memproto.models import to_wire


def _identity(chain_head: str | None = None) -> MemoryIdentity:
    return MemoryIdentity(
        soul="did:soul:test",
        name="Test",
        created="2026-01-01T00:00:00.000Z",
        public_key="z6MkTest",
        chain_head=chain_head,
    )


def _memory(memory_id: str) -> MemoryObject:
    return MemoryObject(
        id=memory_id,
        type="fact",
        content={"id": memory_id},
        created="2026-01-01T00:00:00.000Z",
        updated="2026-01-01T00:00:00.000Z",
        soul="did:soul:test",
    )


@pytest.fixture()
def log(tmp_path: Path) -> MemoryLog:
    log = MemoryLog(tmp_path / "store")
    log.ensure_directory()
    return log


class TestIdentityDocument:
    def test_missing_identity_is_none(self, log: MemoryLog):
        assert log.load_identity() is None

    def test_save_and_load(self, log: MemoryLog):
        log.save_identity(_identity("mem_1"))
        assert log.load_identity() == _identity("mem_1")

    def test_written_with_camel_case_keys(self, log: MemoryLog):
        log.save_identity(_identity())
        data = json.loads(log.identity_path.read_text())
        assert data["chainHead"] is None
        assert data["publicKey"] == "z6MkTest"

    def test_corrupt_identity_raises(self, log: MemoryLog):
        log.identity_path.write_text("{broken")
        with pytest.raises(MemoryProtocolError, match="identity"):
            log.load_identity()


class TestMemoryLog:
    def test_missing_log_is_empty(self, log: MemoryLog):
        loaded = log.load_memories()
        assert loaded.memories == []
        assert loaded.errors == []

    def test_one_line_per_memory(self, log: MemoryLog):
        log.save_memories([_memory("mem_a"), _memory("mem_b")])
        lines = log.memories_path.read_text().splitlines()
        assert [json.loads(line)["id"] for line in lines] == ["mem_a", "mem_b"]

    def test_rewritten_wholesale(self, log: MemoryLog):
        log.save_memories([_memory("mem_a"), _memory("mem_b")])
        log.save_memories([_memory("mem_c")])
        assert [m.id for m in log.load_memories().memories] == ["mem_c"]

    def test_no_temp_file_left_behind(self, log: MemoryLog):
        log.save(_identity(), [_memory("mem_a")])
        assert sorted(p.name for p in log.root.iterdir()) == [
            "identity.json",
            "memories.jsonl",
        ]

    def test_bad_lines_skipped_and_reported(self, log: MemoryLog):
        good = json.dumps(to_wire(_memory("mem_a")))
        also_good = json.dumps(to_wire(_memory("mem_b")))
        log.memories_path.write_text(
            "\n".join([good, "{not json", '{"id": "mem_x"}', "", also_good]) + "\n"
        )

        loaded = log.load_memories()
        assert [m.id for m in loaded.memories] == ["mem_a", "mem_b"]
        assert [e.line_number for e in loaded.errors] == [2, 3]
