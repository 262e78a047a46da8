"""Tests for the key-value store backends."""

import asyncio
import json
import tempfile
from pathlib import Path

import pytest

from chatpgp.storage.backends import JsonFileKeyValueStore, MemoryKeyValueStore


class TestMemoryKeyValueStore:
    """Test cases for MemoryKeyValueStore."""

    def test_missing_key(self) -> None:
        """Test that an unknown key reads as None."""
        assert asyncio.run(MemoryKeyValueStore().get("nothing")) is None

    def test_values_are_copied(self) -> None:
        """Test that callers cannot mutate the stored blob."""
        store = MemoryKeyValueStore()
        value = {"1": {"publicKey": "PUB"}}

        asyncio.run(store.set("keys", value))
        value["1"]["publicKey"] = "CHANGED"
        loaded = asyncio.run(store.get("keys"))
        loaded["2"] = {}

        assert asyncio.run(store.get("keys")) == {"1": {"publicKey": "PUB"}}


class TestJsonFileKeyValueStore:
    """Test cases for JsonFileKeyValueStore."""

    def test_missing_file_reads_as_empty(self) -> None:
        """Test that a store without a file has no blobs."""
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JsonFileKeyValueStore(Path(temp_dir) / "keys.json")
            assert asyncio.run(store.get("keys")) is None

    def test_set_creates_file_and_keeps_other_blobs(self) -> None:
        """Test that writing one blob preserves the others."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "nested" / "keys.json"
            store = JsonFileKeyValueStore(path)

            asyncio.run(store.set("keys", {"1": {"publicKey": "PUB"}}))
            asyncio.run(store.set("other", [1, 2]))

            assert json.loads(path.read_text(encoding="utf-8")) == {
                "keys": {"1": {"publicKey": "PUB"}},
                "other": [1, 2],
            }
            assert asyncio.run(store.get("keys")) == {"1": {"publicKey": "PUB"}}
            assert list(path.parent.glob("*.tmp")) == []

    def test_invalid_document(self) -> None:
        """Test that a file not holding a JSON object is rejected."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "keys.json"
            path.write_text("[1, 2, 3]", encoding="utf-8")

            with pytest.raises(ValueError, match="Expected a JSON object"):
                asyncio.run(JsonFileKeyValueStore(path).get("keys"))

    def test_corrupt_json(self) -> None:
        """Test that unparsable JSON surfaces as an error."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "keys.json"
            path.write_text("{not json", encoding="utf-8")

            with pytest.raises(json.JSONDecodeError):
                asyncio.run(JsonFileKeyValueStore(path).get("keys"))
