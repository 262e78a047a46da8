"""Tests for the inbound decryption stage."""

import asyncio
from unittest.mock import AsyncMock, Mock

from chatpgp.crypto.adapter import CryptoAdapter, KeyPair
from chatpgp.exceptions import CryptoOperationError
from chatpgp.host import InboundMessage
from chatpgp.pipeline.inbound import DECRYPTED_INDICATOR, InboundProcessor
from chatpgp.pipeline.results import StageOutcome
from chatpgp.settings import PolicySettings
from chatpgp.storage.backends import MemoryKeyValueStore
from chatpgp.storage.keystore import STORAGE_KEY, KeyStore

CIPHERTEXT = "-----BEGIN PGP MESSAGE-----\n\nwcBMA\n-----END PGP MESSAGE-----"
KEYS_FOR_123 = {"123": {"publicKey": "", "privateKey": "PRIV"}}


def make_processor(
    host,
    records: dict | None = None,
    plaintext: str = "hello",
    **settings: bool,
) -> tuple[InboundProcessor, Mock]:
    crypto = Mock(spec=CryptoAdapter)
    crypto.decrypt = AsyncMock(return_value=plaintext)
    store = KeyStore(
        MemoryKeyValueStore({STORAGE_KEY: KEYS_FOR_123 if records is None else records}),
    )
    return InboundProcessor(host, store, crypto, PolicySettings(**settings)), crypto


def inbound(content: str | None = CIPHERTEXT, sender_id: str | None = "123") -> InboundMessage:
    return InboundMessage(
        message_id="m-1",
        conversation_id="dm-1",
        sender_id=sender_id,
        content=content,
    )


class TestInboundProcessor:
    """Test cases for InboundProcessor.process."""

    def test_decrypts_and_publishes(self, fake_host) -> None:
        """Test that a decrypted envelope is published with the indicator."""
        processor, crypto = make_processor(fake_host)
        message = inbound()

        result = asyncio.run(processor.process(message))

        assert result.outcome is StageOutcome.TRANSFORMED
        assert result.content == f"{DECRYPTED_INDICATOR}hello"
        crypto.decrypt.assert_awaited_once_with(CIPHERTEXT, "PRIV")

        assert len(fake_host.published) == 1
        update = fake_host.published[0]
        assert update.decrypted is True
        assert update.displayed_content == "🔓 hello"
        assert update.original_ciphertext == CIPHERTEXT
        assert update.message is message
        assert message.content == CIPHERTEXT

    def test_indicator_can_be_disabled(self, fake_host) -> None:
        """Test that show_indicator=False publishes the bare plaintext."""
        processor, _ = make_processor(fake_host, show_indicator=False)

        result = asyncio.run(processor.process(inbound()))

        assert result.content == "hello"
        assert fake_host.published[0].displayed_content == "hello"

    def test_auto_decrypt_disabled(self, fake_host) -> None:
        """Test that nothing happens with auto-decrypt off."""
        processor, crypto = make_processor(fake_host, auto_decrypt=False)

        result = asyncio.run(processor.process(inbound()))

        assert result.outcome is StageOutcome.UNCHANGED
        assert result.content == CIPHERTEXT
        crypto.decrypt.assert_not_called()
        assert fake_host.published == []

    def test_missing_content_or_sender(self, fake_host) -> None:
        """Test that messages without text or author are skipped."""
        processor, crypto = make_processor(fake_host)

        for message in (inbound(content=""), inbound(content=None), inbound(sender_id=None)):
            result = asyncio.run(processor.process(message))
            assert result.reason == "no content or sender"

        crypto.decrypt.assert_not_called()

    def test_plain_text_is_not_decrypted(self, fake_host) -> None:
        """Test that ordinary text is left alone."""
        processor, crypto = make_processor(fake_host)

        result = asyncio.run(processor.process(inbound(content="hi there")))

        assert result.reason == "not encrypted"
        crypto.decrypt.assert_not_called()

    def test_no_private_key(self, fake_host) -> None:
        """Test that ciphertext stays visible without a private key."""
        processor, crypto = make_processor(
            fake_host,
            records={"123": {"publicKey": "PUB", "privateKey": ""}},
        )

        result = asyncio.run(processor.process(inbound()))

        assert result.reason == "no private key"
        assert result.content == CIPHERTEXT
        crypto.decrypt.assert_not_called()

    def test_unknown_sender(self, fake_host) -> None:
        """Test that senders without a record are skipped."""
        processor, crypto = make_processor(fake_host)

        result = asyncio.run(processor.process(inbound(sender_id="999")))

        assert result.reason == "no private key"
        crypto.decrypt.assert_not_called()

    def test_decrypt_failure_fails_open(self, fake_host, caplog) -> None:
        """Test that a failed decryption keeps the original message."""
        processor, crypto = make_processor(fake_host)
        crypto.decrypt.side_effect = CryptoOperationError("Decryption failed: wrong key")
        message = inbound()

        result = asyncio.run(processor.process(message))

        assert result.is_failed
        assert result.content == CIPHERTEXT
        assert message.content == CIPHERTEXT
        assert fake_host.published == []
        assert "Could not decrypt message m-1 from 123" in caplog.text

    def test_identical_plaintext_is_not_published(self, fake_host) -> None:
        """Test that a decryption returning the input publishes nothing."""
        processor, _ = make_processor(fake_host, plaintext=CIPHERTEXT)

        result = asyncio.run(processor.process(inbound()))

        assert result.outcome is StageOutcome.UNCHANGED
        assert fake_host.published == []

    def test_real_decryption(self, fake_host, alice_keys: KeyPair) -> None:
        """Test the stage with the real OpenPGP adapter."""
        adapter = CryptoAdapter()
        ciphertext = asyncio.run(adapter.encrypt("bonjour", alice_keys.public_key))
        store = KeyStore(
            MemoryKeyValueStore(
                {STORAGE_KEY: {"123": {"publicKey": "", "privateKey": alice_keys.private_key}}},
            ),
        )
        processor = InboundProcessor(fake_host, store, adapter, PolicySettings())

        result = asyncio.run(processor.process(inbound(content=ciphertext)))

        assert result.content == "🔓 bonjour"
        assert fake_host.published[0].original_ciphertext == ciphertext
