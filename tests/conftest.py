"""Root conftest — suite markers, key pairs and store fixtures.

Every store lives under pytest's ``tmp_path``; nothing touches the real
home directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from memproto import MemoryStore
from memproto import StoreConfig
from memproto.crypto import generate_key_pair

SOUL = "did:soul:test"


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Attach suite markers from test path.

    - `tests/unit/*` -> `unit`
    - `tests/integration/*` -> `integration`
    """
    root = Path(__file__).resolve().parents[1]
    for item in items:
        item_path = Path(str(item.fspath)).resolve()
        try:
            rel = item_path.relative_to(root)
        except ValueError:
            continue

        parts = rel.parts
        if len(parts) < 2 or parts[0] != "tests":
            continue
        if parts[1] == "unit":
            item.add_marker(pytest.mark.unit)
        elif parts[1] == "integration":
            item.add_marker(pytest.mark.integration)


# ---------------------------------------------------------------------------
# Keys and configuration
# ---------------------------------------------------------------------------


@pytest.fixture()
def key_pair() -> tuple[bytes, bytes]:
    """A fresh raw Ed25519 ``(private, public)`` pair."""
    return generate_key_pair()


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "memory-data"


@pytest.fixture()
def store_config(key_pair, data_dir: Path) -> StoreConfig:
    private_key, public_key = key_pair
    return StoreConfig(
        soul=SOUL,
        name="TestAgent",
        private_key=private_key,
        public_key=public_key,
        data_dir=data_dir,
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@pytest.fixture()
def store(store_config: StoreConfig) -> MemoryStore:
    """A fresh store in an empty temporary directory."""
    return MemoryStore(store_config)


@pytest.fixture()
def reopen(store_config: StoreConfig):
    """Factory returning a new store instance over the same directory."""

    def _reopen() -> MemoryStore:
        return MemoryStore(store_config)

    return _reopen
