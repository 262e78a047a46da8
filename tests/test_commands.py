"""Tests for the one-shot conversation commands."""

import asyncio
from unittest.mock import AsyncMock, Mock

from chatpgp.commands import NOT_ONE_TO_ONE, encrypt_and_send_once, toggle_auto_encrypt
from chatpgp.crypto.adapter import CryptoAdapter
from chatpgp.exceptions import CryptoOperationError
from chatpgp.settings import PolicySettings
from chatpgp.storage.backends import MemoryKeyValueStore
from chatpgp.storage.keystore import STORAGE_KEY, KeyStore

CIPHERTEXT = "-----BEGIN PGP MESSAGE-----\n\nwcBMA\n-----END PGP MESSAGE-----"


def make_store(records: dict | None = None) -> KeyStore:
    return KeyStore(MemoryKeyValueStore({STORAGE_KEY: records or {}}))


class TestEncryptAndSendOnce:
    """Test cases for encrypt_and_send_once."""

    def test_sends_ciphertext(self, fake_host) -> None:
        """Test that the encrypted text is sent on the conversation."""
        crypto = Mock(spec=CryptoAdapter)
        crypto.encrypt = AsyncMock(return_value=CIPHERTEXT)
        store = make_store({"123": {"publicKey": "PUB"}})

        result = asyncio.run(
            encrypt_and_send_once(fake_host, store, crypto, "dm-1", "secret"),
        )

        assert result.ok is True
        assert fake_host.sent == [("dm-1", CIPHERTEXT)]
        crypto.encrypt.assert_awaited_once_with("secret", "PUB")

    def test_ignores_auto_encrypt_policy(self, fake_host) -> None:
        """Test that the explicit command works with auto-encrypt disabled."""
        crypto = Mock(spec=CryptoAdapter)
        crypto.encrypt = AsyncMock(return_value=CIPHERTEXT)

        result = asyncio.run(
            encrypt_and_send_once(
                fake_host,
                make_store({"123": {"publicKey": "PUB"}}),
                crypto,
                "dm-1",
                "secret",
            ),
        )

        assert result.ok is True

    def test_not_one_to_one(self, fake_host) -> None:
        """Test that group conversations are refused."""
        crypto = Mock(spec=CryptoAdapter)

        result = asyncio.run(
            encrypt_and_send_once(fake_host, make_store(), crypto, "group-7", "secret"),
        )

        assert result.ok is False
        assert result.message == NOT_ONE_TO_ONE
        assert fake_host.sent == []

    def test_missing_public_key_fails_visibly(self, fake_host) -> None:
        """Test that nothing is sent without a public key."""
        crypto = Mock(spec=CryptoAdapter)

        result = asyncio.run(
            encrypt_and_send_once(
                fake_host,
                make_store({"123": {"privateKey": "PRIV"}}),
                crypto,
                "dm-1",
                "secret",
            ),
        )

        assert result.ok is False
        assert "No public key configured" in result.message
        assert fake_host.sent == []

    def test_encryption_error_is_reported(self, fake_host) -> None:
        """Test that an encryption failure is reported and nothing is sent."""
        crypto = Mock(spec=CryptoAdapter)
        crypto.encrypt = AsyncMock(side_effect=CryptoOperationError("Encryption failed: boom"))

        result = asyncio.run(
            encrypt_and_send_once(
                fake_host,
                make_store({"123": {"publicKey": "PUB"}}),
                crypto,
                "dm-1",
                "secret",
            ),
        )

        assert result.ok is False
        assert result.message == "❌ Error encrypting message: Encryption failed: boom"
        assert fake_host.sent == []


    def test_host_send_failure_is_reported(self, host_factory, caplog) -> None:
        """Test that a failing transport becomes a status line."""

        class ClosedGatewayHost(host_factory):
            async def send_text(self, conversation_id: str, content: str) -> None:
                error_msg = "gateway closed"
                raise RuntimeError(error_msg)

        crypto = Mock(spec=CryptoAdapter)
        crypto.encrypt = AsyncMock(return_value=CIPHERTEXT)

        result = asyncio.run(
            encrypt_and_send_once(
                ClosedGatewayHost({"dm-1": "123"}),
                make_store({"123": {"publicKey": "PUB"}}),
                crypto,
                "dm-1",
                "secret",
            ),
        )

        assert result.ok is False
        assert result.message == "❌ Error encrypting message: gateway closed"
        assert "Error sending one-shot encrypted message on dm-1" in caplog.text

    def test_counterpart_lookup_failure_is_reported(self, host_factory) -> None:
        """Test that a failing conversation lookup becomes a status line."""

        class BrokenLookupHost(host_factory):
            def resolve_counterpart(self, conversation_id: str) -> str | None:
                error_msg = "channel store unavailable"
                raise RuntimeError(error_msg)

        host = BrokenLookupHost()

        result = asyncio.run(
            encrypt_and_send_once(host, make_store(), Mock(spec=CryptoAdapter), "dm-1", "x"),
        )

        assert result.ok is False
        assert "channel store unavailable" in result.message
        assert host.sent == []


class TestToggleAutoEncrypt:
    """Test cases for toggle_auto_encrypt."""

    def test_enable_with_public_key(self, fake_host) -> None:
        """Test enabling for a counterpart with a public key."""
        settings = PolicySettings()

        result = asyncio.run(
            toggle_auto_encrypt(
                fake_host,
                make_store({"123": {"publicKey": "PUB"}}),
                settings,
                "dm-1",
            ),
        )

        assert settings.auto_encrypt is True
        assert result.ok is True
        assert result.message == "Automatic encryption ✅ enabled for this conversation."

    def test_enable_without_public_key_warns(self, fake_host) -> None:
        """Test that enabling warns when no public key is configured."""
        settings = PolicySettings()

        result = asyncio.run(toggle_auto_encrypt(fake_host, make_store(), settings, "dm-1"))

        assert settings.auto_encrypt is True
        assert "⚠️ Warning: No public key configured" in result.message

    def test_disable(self, fake_host) -> None:
        """Test disabling never warns."""
        settings = PolicySettings(auto_encrypt=True)

        result = asyncio.run(toggle_auto_encrypt(fake_host, make_store(), settings, "dm-1"))

        assert settings.auto_encrypt is False
        assert result.message == "Automatic encryption ❌ disabled for this conversation."

    def test_not_one_to_one_leaves_flag(self, fake_host) -> None:
        """Test that the flag is untouched outside direct messages."""
        settings = PolicySettings()

        result = asyncio.run(toggle_auto_encrypt(fake_host, make_store(), settings, "group-7"))

        assert result.ok is False
        assert settings.auto_encrypt is False
