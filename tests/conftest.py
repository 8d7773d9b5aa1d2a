from __future__ import annotations

from pathlib import Path

import pytest

from inventory import InventoryStore


@pytest.fixture
def store(tmp_path: Path) -> InventoryStore:
    test_store = InventoryStore(db_path=tmp_path / "books.db")
    yield test_store
    test_store.close()
